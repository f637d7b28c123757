"""GraphQL data fetcher: one query per request, all dashboard queries in parallel."""

from __future__ import annotations

import asyncio
import logging
import time
from typing import Any, Dict, Iterable, List, Mapping, Optional, Union

import httpx

from learnboard.auth import Token, bearer_value
from learnboard.errors import DataShapeError, QueryError
from learnboard.queries import CatalogQuery

logger = logging.getLogger(__name__)

ERROR_DELIMITER = ", "
REJECTED_TOKEN_CODES = {"invalid-jwt", "invalid-headers", "access-denied"}


def _error_messages(errors: Any) -> List[str]:
    if not isinstance(errors, list):
        return [str(errors)]
    messages = []
    for err in errors:
        if isinstance(err, Mapping):
            messages.append(str(err.get("message", err)))
        else:
            messages.append(str(err))
    return messages


def _token_rejected(errors: Any) -> bool:
    if not isinstance(errors, list):
        return False
    for err in errors:
        ext = err.get("extensions") if isinstance(err, Mapping) else None
        if isinstance(ext, Mapping) and ext.get("code") in REJECTED_TOKEN_CODES:
            return True
    return False


class DataFetcher:
    """Runs catalog queries against the data endpoint with a bearer token.

    ``fetch`` returns the ``data`` payload untouched; picking the record list
    out of it happens downstream.
    """

    def __init__(
        self,
        endpoint: str,
        *,
        timeout: float = 30.0,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        self.endpoint = endpoint
        self.timeout = timeout
        self.transport = transport

    def _client(self) -> httpx.AsyncClient:
        return httpx.AsyncClient(timeout=self.timeout, transport=self.transport)

    async def fetch(
        self,
        query: Union[CatalogQuery, str],
        token: Token,
        *,
        client: Optional[httpx.AsyncClient] = None,
    ) -> Dict[str, Any]:
        if client is None:
            async with self._client() as own_client:
                return await self.fetch(query, token, client=own_client)

        name = query.name if isinstance(query, CatalogQuery) else "query"
        text = query.text if isinstance(query, CatalogQuery) else query
        headers = {
            "Content-Type": "application/json",
            "Authorization": f"Bearer {bearer_value(token)}",
        }

        start_time = time.time()
        try:
            response = await client.post(self.endpoint, json={"query": text}, headers=headers)
        except httpx.TimeoutException as exc:
            logger.warning("Query %s timed out after %ss", name, self.timeout)
            raise QueryError(f"Query {name} timed out") from exc
        except httpx.HTTPError as exc:
            logger.warning("Query %s failed: %s", name, exc)
            raise QueryError(f"Query {name} failed: {exc}") from exc

        try:
            envelope = response.json()
        except ValueError as exc:
            raise QueryError(
                f"Invalid response for query {name} (HTTP {response.status_code})",
                status_code=response.status_code,
                token_rejected=response.status_code in (401, 403),
            ) from exc

        if isinstance(envelope, Mapping) and envelope.get("errors"):
            errors = envelope["errors"]
            message = ERROR_DELIMITER.join(_error_messages(errors))
            rejected = response.status_code in (401, 403) or _token_rejected(errors)
            logger.warning("Query %s returned errors: %s", name, message)
            raise QueryError(message, status_code=response.status_code, token_rejected=rejected)

        if response.status_code in (401, 403):
            raise QueryError(
                f"Session token rejected (HTTP {response.status_code})",
                status_code=response.status_code,
                token_rejected=True,
            )

        if not isinstance(envelope, Mapping) or not isinstance(envelope.get("data"), Mapping):
            raise DataShapeError(f"Response for query {name} has no data object")

        logger.debug("Query %s answered in %dms", name, int((time.time() - start_time) * 1000))
        return envelope["data"]

    async def fetch_all(self, queries: Iterable[CatalogQuery], token: Token) -> Dict[str, Dict[str, Any]]:
        """Dispatch every query concurrently and join.

        Either all results come back, or one combined failure is raised.
        """
        queries = list(queries)
        async with self._client() as client:
            outcomes = await asyncio.gather(
                *(self.fetch(q, token, client=client) for q in queries),
                return_exceptions=True,
            )

        failures = [o for o in outcomes if isinstance(o, BaseException)]
        if failures:
            query_errors = [f for f in failures if isinstance(f, QueryError)]
            # A rejected token outranks any other failure in the batch.
            if not any(e.token_rejected for e in query_errors):
                for failure in failures:
                    if not isinstance(failure, QueryError):
                        raise failure
            if len(query_errors) == 1:
                raise query_errors[0]
            raise QueryError(
                ERROR_DELIMITER.join(str(e) for e in query_errors),
                status_code=query_errors[0].status_code,
                token_rejected=any(e.token_rejected for e in query_errors),
            )

        return {q.name: data for q, data in zip(queries, outcomes)}
