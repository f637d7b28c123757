"""Shared fixtures: fake sign-in and GraphQL endpoints on top of httpx.MockTransport."""

from __future__ import annotations

import asyncio
import copy
import json
from typing import Any, Callable, Dict, List, Optional

import httpx
import pytest

from learnboard.auth import Authenticator
from learnboard.fetcher import DataFetcher
from learnboard.queries import QueryCatalog
from learnboard.service import DashboardService
from learnboard.session import MemoryStore, TokenStore
from learnboard.settings import load_settings

TOKEN = "header.payload.signature"

SAMPLE_DATA: Dict[str, Dict[str, Any]] = {
    "profile": {
        "user": [
            {
                "attrs": {"firstName": "Ada", "lastName": "Lovelace", "email": "ada@example.com", "tel": "0123"},
                "campus": "london",
            }
        ]
    },
    "xp": {
        "user": [
            {
                "xps": [
                    {"amount": 100, "path": "/london/div-01/graphql"},
                    {"amount": 250, "path": "/london/div-01/ascii-art"},
                ]
            }
        ]
    },
    "auditRatio": {
        "user": [
            {
                "audits": [
                    {"grade": 1.2, "createdAt": "2024-01-01T10:00:00+00:00"},
                    {"grade": 0.8, "createdAt": "2024-01-05T10:00:00+00:00"},
                ]
            }
        ]
    },
    "skillTransactions": {
        "user": [
            {
                "transactions": [
                    {"createdAt": "2024-01-02T10:00:00+00:00", "amount": 5, "type": "skill_go", "path": "/london/div-01/go-reloaded"},
                    {"createdAt": "2024-01-03T10:00:00+00:00", "amount": 10, "type": "skill_go", "path": "/london/div-01/ascii-art"},
                ]
            }
        ]
    },
    "projectTransactions": {
        "user": [
            {
                "transactions": [
                    {"createdAt": "2024-01-01T09:00:00+00:00", "amount": 100, "type": "xp", "path": "/london/div-01/graphql"},
                    {"createdAt": "2024-01-02T09:00:00+00:00", "amount": 150, "type": "up", "path": "/london/div-01/graphql"},
                    {"createdAt": "2024-01-03T09:00:00+00:00", "amount": 100, "type": "down", "path": "/london/div-01/ascii-art"},
                    {"createdAt": "2024-01-04T09:00:00+00:00", "amount": 250, "type": "xp", "path": "/london/div-01/ascii-art"},
                ]
            }
        ]
    },
}


def query_name(text: str) -> str:
    """Map a GraphQL query text back to its catalog name."""
    if "attrs" in text:
        return "profile"
    if "xps" in text:
        return "xp"
    if "audits" in text:
        return "auditRatio"
    if "skill_go" in text:
        return "skillTransactions"
    if "_like" in text:
        return "projectTransactions"
    raise AssertionError(f"unexpected query: {text}")


class FakeGraphQL:
    """Answers catalog queries from ``data``; ``overrides`` replace whole envelopes."""

    def __init__(self, data: Optional[Dict[str, Any]] = None, overrides: Optional[Dict[str, Any]] = None, delay: float = 0.0):
        self.data = copy.deepcopy(data if data is not None else SAMPLE_DATA)
        self.overrides = overrides or {}
        self.delay = delay
        self.requests: List[httpx.Request] = []
        self.in_flight = 0
        self.max_in_flight = 0

    async def __call__(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        self.in_flight += 1
        self.max_in_flight = max(self.max_in_flight, self.in_flight)
        try:
            if self.delay:
                await asyncio.sleep(self.delay)
            name = query_name(json.loads(request.content)["query"])
            override = self.overrides.get(name)
            if isinstance(override, httpx.Response):
                return override
            if callable(override):
                return override(request)
            if override is not None:
                return httpx.Response(200, json=override)
            return httpx.Response(200, json={"data": self.data[name]})
        finally:
            self.in_flight -= 1

    @property
    def transport(self) -> httpx.MockTransport:
        return httpx.MockTransport(self)


def sign_in_transport(response: Callable[[httpx.Request], httpx.Response]) -> httpx.MockTransport:
    return httpx.MockTransport(response)


@pytest.fixture()
def settings(tmp_path):
    return load_settings({"domain": "learn.test", "token_path": str(tmp_path / "session.json")}, env={})


@pytest.fixture()
def graphql():
    return FakeGraphQL()


@pytest.fixture()
def sign_in_ok():
    return sign_in_transport(lambda request: httpx.Response(200, json=TOKEN))


@pytest.fixture()
def make_service(settings, sign_in_ok):
    def _make(graphql: FakeGraphQL, *, sign_in: Optional[httpx.MockTransport] = None, store: Optional[MemoryStore] = None):
        return DashboardService(
            settings,
            tokens=TokenStore(store if store is not None else MemoryStore()),
            authenticator=Authenticator(settings.auth_endpoint, transport=sign_in or sign_in_ok),
            fetcher=DataFetcher(settings.graphql_endpoint, transport=graphql.transport),
            catalog=QueryCatalog(settings.project_prefix),
        )

    return _make
