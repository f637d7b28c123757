from __future__ import annotations

from typing import Any, Dict

import httpx
import pytest
import pytest_asyncio

from api.main import app, get_service
from learnboard.session import MemoryStore
from tests.conftest import TOKEN, FakeGraphQL, sign_in_transport


@pytest.fixture()
def wiring() -> Dict[str, Any]:
    """Collaborators the overridden service is built from; tests swap entries before calling."""
    return {"graphql": FakeGraphQL(), "store": MemoryStore(), "sign_in": None}


@pytest_asyncio.fixture()
async def api(make_service, wiring):
    def _service():
        return make_service(wiring["graphql"], store=wiring["store"], sign_in=wiring["sign_in"])

    app.dependency_overrides[get_service] = _service
    transport = httpx.ASGITransport(app=app)
    async with httpx.AsyncClient(transport=transport, base_url="http://test") as client:
        yield client
    app.dependency_overrides.clear()


@pytest.mark.asyncio
class TestLoginEndpoint:
    async def test_login(self, api: httpx.AsyncClient) -> None:
        r = await api.post("/login", json={"username": "ada", "password": "secret", "include_charts": False})
        assert r.status_code == 200
        data = r.json()
        assert data["token"] == TOKEN
        assert data["dashboard"]["summaries"]["total_xp"]["value"] == 350
        assert data["dashboard"]["charts"] == {}

    async def test_empty_credentials(self, api: httpx.AsyncClient) -> None:
        r = await api.post("/login", json={"username": "", "password": ""})
        assert r.status_code == 400
        assert r.json() == {"error": "Username and password cannot be empty.", "type": "ValidationError"}

    async def test_rejected_credentials(self, api: httpx.AsyncClient, wiring) -> None:
        wiring["sign_in"] = sign_in_transport(lambda r: httpx.Response(401))
        r = await api.post("/login", json={"username": "ada", "password": "nope"})
        assert r.status_code == 401
        assert r.json()["error"] == "Invalid username or password"

    async def test_unknown_view(self, api: httpx.AsyncClient) -> None:
        r = await api.post("/login", json={"username": "ada", "password": "secret", "view": "nope"})
        assert r.status_code == 400


@pytest.mark.asyncio
class TestDashboardEndpoint:
    async def test_bearer_header(self, api: httpx.AsyncClient, wiring) -> None:
        r = await api.post("/dashboard", json={"view": "summary"}, headers={"Authorization": "Bearer abc"})
        assert r.status_code == 200
        assert r.json()["view"] == "summary"
        assert wiring["graphql"].requests[0].headers["Authorization"] == "Bearer abc"

    async def test_stored_session(self, api: httpx.AsyncClient, wiring) -> None:
        wiring["store"].set("token", '"stored"')
        r = await api.post("/dashboard", json={"include_charts": False})
        assert r.status_code == 200
        assert r.json()["profile"]["campus"] == "london"

    async def test_no_session(self, api: httpx.AsyncClient) -> None:
        r = await api.post("/dashboard", json={})
        assert r.status_code == 401

    async def test_query_error(self, api: httpx.AsyncClient, wiring) -> None:
        wiring["graphql"] = FakeGraphQL(overrides={"xp": {"errors": [{"message": "field not found"}]}})
        r = await api.post("/dashboard", json={}, headers={"Authorization": f"Bearer {TOKEN}"})
        assert r.status_code == 502
        assert r.json() == {"error": "field not found", "type": "QueryError"}

    async def test_logout(self, api: httpx.AsyncClient, wiring) -> None:
        wiring["store"].set("token", '"stored"')
        r = await api.post("/logout")
        assert r.status_code == 200
        assert wiring["store"].get("token") is None


@pytest.mark.asyncio
class TestMeta:
    async def test_queries(self, api: httpx.AsyncClient) -> None:
        r = await api.get("/meta/queries")
        data = r.json()
        assert [q["name"] for q in data["queries"]] == ["profile", "xp", "auditRatio", "skillTransactions", "projectTransactions"]
        assert data["project_prefix"] == "/london/div-01/"

    async def test_views(self, api: httpx.AsyncClient) -> None:
        r = await api.get("/meta/views")
        assert r.json()["views"]["summary"] == ["profile", "xp", "projectTransactions"]

    async def test_error_shape_is_documented(self, api: httpx.AsyncClient) -> None:
        schema = (await api.get("/openapi.json")).json()
        login = schema["paths"]["/login"]["post"]["responses"]
        assert {"400", "401", "500", "502"} <= set(login)
        assert set(schema["components"]["schemas"]["ErrorResponse"]["properties"]) == {"error", "type"}
