from __future__ import annotations

import json
from dataclasses import dataclass
from typing import Dict, Iterator, List, Literal, Optional

QueryName = Literal["profile", "xp", "auditRatio", "skillTransactions", "projectTransactions"]

QUERY_NAMES: List[str] = ["profile", "xp", "auditRatio", "skillTransactions", "projectTransactions"]

TRANSACTION_FIELDS = "createdAt, amount, type, path"


@dataclass(frozen=True)
class CatalogQuery:
    """One named read against the ``user`` root.

    ``field`` names the record list inside the user object; ``None`` means the
    user object itself is the result (profile).
    """

    name: str
    selection: str
    field: Optional[str] = None

    @property
    def text(self) -> str:
        return f"query {{ user {{ {self.selection} }} }}"


def _graphql_string(value: str) -> str:
    # GraphQL string literals share JSON's escaping rules.
    return json.dumps(value)


class QueryCatalog:
    """The fixed set of dashboard queries; the project prefix is the only parameter."""

    def __init__(self, project_prefix: str = "/london/div-01/"):
        self.project_prefix = project_prefix
        like = _graphql_string(f"{project_prefix}%")
        self._queries: Dict[str, CatalogQuery] = {
            "profile": CatalogQuery("profile", "attrs, campus"),
            "xp": CatalogQuery("xp", "xps { amount, path }", field="xps"),
            "auditRatio": CatalogQuery(
                "auditRatio",
                "audits(order_by: {createdAt: asc}, where: {grade: {_is_null: false}}) { grade, createdAt }",
                field="audits",
            ),
            "skillTransactions": CatalogQuery(
                "skillTransactions",
                f'transactions(where: {{type: {{_eq: "skill_go"}}}}, order_by: {{amount: asc}}) {{ {TRANSACTION_FIELDS} }}',
                field="transactions",
            ),
            "projectTransactions": CatalogQuery(
                "projectTransactions",
                f"transactions(where: {{path: {{_like: {like}}}}}, order_by: {{createdAt: asc}}) {{ {TRANSACTION_FIELDS} }}",
                field="transactions",
            ),
        }

    def get(self, name: str) -> CatalogQuery:
        try:
            return self._queries[name]
        except KeyError:
            raise KeyError(f"Unknown query: {name}") from None

    def select(self, names: Optional[List[str]] = None) -> List[CatalogQuery]:
        return [self.get(n) for n in (QUERY_NAMES if names is None else names)]

    def names(self) -> List[str]:
        return list(self._queries)

    def __iter__(self) -> Iterator[CatalogQuery]:
        return iter(self._queries.values())

    def __len__(self) -> int:
        return len(self._queries)
