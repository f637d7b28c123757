"""Load sequence: authenticate -> fetch every query -> aggregate into a view."""

from __future__ import annotations

import logging
from typing import Any, Dict, Optional, Union

from learnboard.auth import Authenticator, Token
from learnboard.errors import AuthenticationError, DataShapeError, QueryError, ValidationError
from learnboard.fetcher import DataFetcher
from learnboard.queries import QueryCatalog
from learnboard.session import MemoryStore, TokenStore
from learnboard.settings import Settings
from learnboard.views import OVERVIEW, ViewConfig, build_view, get_view, unwrap_results

logger = logging.getLogger(__name__)


class DashboardService:
    def __init__(
        self,
        settings: Settings,
        *,
        tokens: Optional[TokenStore] = None,
        authenticator: Optional[Authenticator] = None,
        fetcher: Optional[DataFetcher] = None,
        catalog: Optional[QueryCatalog] = None,
        view: ViewConfig = OVERVIEW,
    ):
        self.settings = settings
        self.tokens = tokens or TokenStore(MemoryStore())
        self.authenticator = authenticator or Authenticator(settings.auth_endpoint, timeout=settings.timeout)
        self.fetcher = fetcher or DataFetcher(settings.graphql_endpoint, timeout=settings.timeout)
        self.catalog = catalog or QueryCatalog(settings.project_prefix)
        self.view = view

    @property
    def has_session(self) -> bool:
        return self.tokens.active

    async def login(self, username: str, password: str, *, view: Union[str, ViewConfig, None] = None, include_charts: bool = True) -> Dict[str, Any]:
        if not (username or "").strip() or not password:
            raise ValidationError("Username and password cannot be empty.")
        token = await self.authenticator.authenticate(username, password)
        self.tokens.save(token)
        return await self.load(token, view=view, include_charts=include_charts)

    async def load(
        self,
        token: Optional[Token] = None,
        *,
        view: Union[str, ViewConfig, None] = None,
        include_charts: bool = True,
    ) -> Dict[str, Any]:
        stored = self.tokens.load()
        token = token if token is not None else stored
        if token is None:
            raise AuthenticationError("No active session")
        if isinstance(view, str):
            view = get_view(view)
        view = view or self.view

        try:
            results = await self.fetcher.fetch_all(self.catalog.select(view.queries), token)
        except QueryError as exc:
            if exc.token_rejected and token == stored:
                logger.warning("Session token rejected; clearing stored session")
                self.tokens.clear()
            raise

        try:
            records = unwrap_results(self.catalog, results)
            payload = build_view(view, records, include_charts=include_charts)
        except DataShapeError as exc:
            logger.error("Data source returned malformed records: %s", exc)
            raise
        logger.info("Built %s view from %d queries", view.name, len(results))
        return payload

    def logout(self) -> None:
        self.tokens.clear()
