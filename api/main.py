from __future__ import annotations

import logging
import math
from functools import lru_cache
from typing import Optional

import numpy as np
import pandas as pd
from fastapi import Depends, FastAPI, Header
from fastapi.encoders import jsonable_encoder
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from api.schemas import (
    DashboardRequestModel,
    ErrorResponse,
    LoginModel,
    LoginResponse,
    MetaQueriesResponse,
    MetaViewsResponse,
)
from learnboard.errors import AuthenticationError, DataShapeError, QueryError, ValidationError
from learnboard.logging_config import setup_logging
from learnboard.service import DashboardService
from learnboard.session import JsonFileStore, TokenStore
from learnboard.settings import load_settings
from learnboard.views import VIEWS

app = FastAPI(title="Learnboard API", version="0.1.0")
logger = logging.getLogger(__name__)

app.add_middleware(
    CORSMiddleware,
    allow_origins=["http://localhost:3000", "http://127.0.0.1:3000", "http://localhost:8501"],
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

ERROR_STATUS = {
    ValidationError: 400,
    AuthenticationError: 401,
    QueryError: 502,
    DataShapeError: 500,
}

ERROR_RESPONSES = {code: {"model": ErrorResponse} for code in sorted(set(ERROR_STATUS.values()))}


@lru_cache(maxsize=1)
def get_service() -> DashboardService:
    settings = load_settings()
    setup_logging(settings.log_level)
    return DashboardService(settings, tokens=TokenStore(JsonFileStore(settings.token_path)))


def _json(data: object) -> JSONResponse:
    """Return JSON with safe encoding for pandas/numpy objects."""

    def _safe_float(value: object) -> float | None:
        try:
            out = float(value)  # type: ignore[arg-type]
        except Exception:
            return None
        if math.isnan(out) or math.isinf(out):
            return None
        return out

    return JSONResponse(
        content=jsonable_encoder(
            data,
            custom_encoder={
                type(pd.NA): lambda _: None,
                np.integer: int,
                float: _safe_float,
                np.floating: _safe_float,
                np.bool_: bool,
                np.ndarray: lambda arr: arr.tolist(),
                pd.Timestamp: lambda ts: ts.isoformat(),
            },
        )
    )


def _error(exc: Exception, where: str) -> JSONResponse:
    status = next((code for cls, code in ERROR_STATUS.items() if isinstance(exc, cls)), None)
    if status is None:
        logger.exception("%s failed", where)
        status = 500
    elif status == 500:
        logger.error("%s failed: %s", where, exc)
    return JSONResponse(status_code=status, content={"error": str(exc), "type": type(exc).__name__})


def _bearer(authorization: Optional[str]) -> Optional[str]:
    if not authorization:
        return None
    scheme, _, value = authorization.partition(" ")
    if scheme.lower() != "bearer" or not value.strip():
        return None
    return value.strip()


@app.post("/login", responses={200: {"model": LoginResponse}, **ERROR_RESPONSES})
async def login(body: LoginModel, service: DashboardService = Depends(get_service)):
    try:
        if body.view not in VIEWS:
            raise ValidationError(f"Unknown view: {body.view}")
        dashboard = await service.login(body.username, body.password, view=body.view, include_charts=body.include_charts)
        return _json({"token": service.tokens.load(), "dashboard": dashboard})
    except Exception as exc:
        return _error(exc, "login")


@app.post("/dashboard", responses=ERROR_RESPONSES)
async def dashboard(
    body: Optional[DashboardRequestModel] = None,
    authorization: Optional[str] = Header(default=None),
    service: DashboardService = Depends(get_service),
):
    body = body or DashboardRequestModel()
    try:
        if body.view not in VIEWS:
            raise ValidationError(f"Unknown view: {body.view}")
        payload = await service.load(_bearer(authorization), view=body.view, include_charts=body.include_charts)
        return _json(payload)
    except Exception as exc:
        return _error(exc, "dashboard")


@app.post("/logout")
def logout(service: DashboardService = Depends(get_service)):
    service.logout()
    return _json({"logged_out": True})


@app.get("/meta/queries", responses={200: {"model": MetaQueriesResponse}})
def meta_queries(service: DashboardService = Depends(get_service)):
    catalog = service.catalog
    return _json(
        {
            "project_prefix": catalog.project_prefix,
            "queries": [{"name": q.name, "text": q.text} for q in catalog],
        }
    )


@app.get("/meta/views", responses={200: {"model": MetaViewsResponse}})
def meta_views():
    return _json({"views": {name: view.queries for name, view in VIEWS.items()}})
