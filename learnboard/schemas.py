"""Typed shapes of the ``data`` payload for each catalog query.

Validation only checks the shape; callers get the server's records back as-is.
"""

from __future__ import annotations

from typing import Any, Dict, List, Mapping, Optional, Type, Union

from pydantic import BaseModel, ConfigDict, Field
from pydantic import ValidationError as PydanticValidationError

from learnboard.errors import DataShapeError
from learnboard.queries import CatalogQuery

Number = Union[int, float]


class Record(BaseModel):
    model_config = ConfigDict(extra="allow", populate_by_name=True)


class ProfileRecord(Record):
    attrs: Dict[str, Any] = Field(default_factory=dict)
    campus: Optional[str] = None


class XpRecord(Record):
    amount: Optional[Number]
    path: Optional[str] = None


class AuditRecord(Record):
    grade: Number
    created_at: str = Field(alias="createdAt")


class TransactionRecord(Record):
    created_at: str = Field(alias="createdAt")
    amount: Optional[Number]
    type: str
    path: str


RECORD_MODELS: Dict[str, Type[Record]] = {
    "profile": ProfileRecord,
    "xp": XpRecord,
    "auditRatio": AuditRecord,
    "skillTransactions": TransactionRecord,
    "projectTransactions": TransactionRecord,
}


def _describe(exc: PydanticValidationError) -> str:
    first = exc.errors()[0]
    loc = ".".join(str(p) for p in first.get("loc", ()))
    return f"{loc}: {first.get('msg')}" if loc else str(first.get("msg"))


def _user(query: CatalogQuery, data: Mapping[str, Any]) -> Mapping[str, Any]:
    users = data.get("user") if isinstance(data, Mapping) else None
    if not isinstance(users, list) or not users:
        raise DataShapeError(f"{query.name}: response has no user")
    user = users[0]
    if not isinstance(user, Mapping):
        raise DataShapeError(f"{query.name}: user entry is not an object")
    return user


def records_for(query: CatalogQuery, data: Mapping[str, Any]) -> Union[List[Dict[str, Any]], Dict[str, Any]]:
    """Validate ``data`` for ``query`` and unwrap it.

    Returns the user object for profile-style queries and the record list for
    the others.
    """
    user = _user(query, data)
    model = RECORD_MODELS.get(query.name, Record)

    if query.field is None:
        try:
            model.model_validate(user)
        except PydanticValidationError as exc:
            raise DataShapeError(f"{query.name}: {_describe(exc)}") from exc
        return dict(user)

    if query.field not in user:
        raise DataShapeError(f"{query.name}: user has no '{query.field}' field")
    records = user[query.field]
    if not isinstance(records, list):
        raise DataShapeError(f"{query.name}: '{query.field}' is not a list")

    for idx, record in enumerate(records):
        try:
            model.model_validate(record)
        except PydanticValidationError as exc:
            raise DataShapeError(f"{query.name}[{idx}]: {_describe(exc)}") from exc
    return list(records)
