import logging
import logging.config

FORMAT = "%(asctime)s %(levelname)s %(name)s: %(message)s"


def build_config(level: str = "INFO") -> dict:
    return {
        "version": 1,
        "disable_existing_loggers": False,  # keep uvicorn/streamlit loggers alive
        "formatters": {
            "default": {"format": FORMAT},
        },
        "handlers": {
            "console": {
                "class": "logging.StreamHandler",
                "level": level,
                "formatter": "default",
            },
        },
        "loggers": {
            "learnboard": {"level": level, "handlers": ["console"], "propagate": False},
            "api": {"level": level, "handlers": ["console"], "propagate": False},
        },
    }


def setup_logging(level: str = "INFO"):
    level = (level or "INFO").upper()
    if not isinstance(logging.getLevelName(level), int):
        level = "INFO"
    logging.config.dictConfig(build_config(level))
