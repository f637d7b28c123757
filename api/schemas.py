from __future__ import annotations

from typing import Any, Dict, List

from pydantic import BaseModel, Field


class LoginModel(BaseModel):
    username: str = ""
    password: str = ""
    view: str = "overview"
    include_charts: bool = True


class DashboardRequestModel(BaseModel):
    view: str = "overview"
    include_charts: bool = True


class LoginResponse(BaseModel):
    token: Any
    dashboard: Dict[str, Any]


class CatalogQueryModel(BaseModel):
    name: str
    text: str


class MetaQueriesResponse(BaseModel):
    project_prefix: str
    queries: List[CatalogQueryModel]


class MetaViewsResponse(BaseModel):
    views: Dict[str, List[str]] = Field(default_factory=dict)


class ErrorResponse(BaseModel):
    error: str
    type: str
