from __future__ import annotations

from typing import Optional


class DashboardError(Exception):
    """Base class for every failure raised while loading the dashboard."""


class ValidationError(DashboardError):
    """Required user input is empty or unusable. No network call is made."""


class AuthenticationError(DashboardError):
    """The auth endpoint rejected the credentials or answered with garbage."""


class QueryError(DashboardError):
    """One or more catalog queries failed.

    ``token_rejected`` is set when the data endpoint refused the session token,
    which means the caller has to authenticate again.
    """

    def __init__(self, message: str, *, status_code: Optional[int] = None, token_rejected: bool = False):
        super().__init__(message)
        self.status_code = status_code
        self.token_rejected = token_rejected


class DataShapeError(DashboardError):
    """A record is missing a field the aggregation needs."""
