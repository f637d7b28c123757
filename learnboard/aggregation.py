"""Aggregation engine: pure transforms from record lists to dashboard numbers.

Every function takes the records in server order and never re-sorts them.
Empty input gives an empty/zero result; a record lacking a required field
raises ``DataShapeError``. An explicit ``null`` amount counts as zero.
"""

from __future__ import annotations

from decimal import ROUND_HALF_UP, Decimal
from typing import Any, Dict, Iterable, List, Mapping, Optional, Sequence, Union

import pandas as pd

from learnboard.errors import DataShapeError

Records = Sequence[Mapping[str, Any]]
Number = Union[int, float]

PATH_SEPARATOR = "/"


def require_fields(records: Records, fields: Iterable[str], context: str = "record") -> None:
    fields = list(fields)
    for idx, record in enumerate(records):
        if not isinstance(record, Mapping):
            raise DataShapeError(f"{context} {idx} is not an object")
        missing = [f for f in fields if f not in record]
        if missing:
            raise DataShapeError(f"{context} {idx} is missing {', '.join(missing)}")


def records_frame(records: Records, fields: Iterable[str], context: str = "record") -> pd.DataFrame:
    fields = list(fields)
    require_fields(records, fields, context)
    if not records:
        return pd.DataFrame(columns=fields)
    return pd.DataFrame.from_records([dict(r) for r in records])


def numeric_column(df: pd.DataFrame, col: str, context: str = "record") -> pd.Series:
    try:
        values = pd.to_numeric(df[col])
    except (TypeError, ValueError) as exc:
        raise DataShapeError(f"{context} field '{col}' is not numeric") from exc
    return values.fillna(0)


def as_number(value: object) -> Number:
    out = float(value)  # type: ignore[arg-type]
    return int(out) if out.is_integer() else out


def round_half_up(value: object, ndigits: int = 0) -> Optional[float]:
    if value is None or pd.isna(value):
        return None
    q = Decimal(10) ** -ndigits
    return float(Decimal(str(value)).quantize(q, rounding=ROUND_HALF_UP))


# ---------------- Scalars ----------------
def total_amount(records: Records, key: str = "amount") -> Number:
    df = records_frame(records, [key], "amount record")
    if df.empty:
        return 0
    return as_number(numeric_column(df, key, "amount record").sum())


def total_xp(records: Records) -> Number:
    return total_amount(records, "amount")


def sum_by_type(records: Records, value_key: str = "amount") -> Dict[str, Number]:
    df = records_frame(records, ["type", value_key], "transaction")
    if df.empty:
        return {}
    df[value_key] = numeric_column(df, value_key, "transaction")
    sums = df.groupby("type", sort=False)[value_key].sum()
    return {str(k): as_number(v) for k, v in sums.items()}


def audit_ratio(transactions: Records, ndigits: int = 1) -> float:
    """Audit volume given ("up") over audit volume received ("down").

    Zero received volume yields 0.0 rather than infinity.
    """
    sums = sum_by_type(transactions)
    up = float(sums.get("up", 0))
    down = float(sums.get("down", 0))
    if down == 0:
        return 0.0
    return round_half_up(up / down, ndigits) or 0.0


def format_ratio(value: object, decimals: int = 1) -> str:
    rounded = round_half_up(value, decimals)
    return f"{(rounded or 0.0):.{decimals}f}"


def average_grade(audits: Records, ndigits: int = 2) -> float:
    df = records_frame(audits, ["grade"], "audit")
    if df.empty:
        return 0.0
    return round_half_up(numeric_column(df, "grade", "audit").mean(), ndigits) or 0.0


# ---------------- Labels & grouping ----------------
def project_label(path: Optional[str]) -> str:
    """Final segment of a slash-delimited path (the whole path when there is no slash)."""
    if path is None:
        return ""
    return str(path).rsplit(PATH_SEPARATOR, 1)[-1]


def label_projects(records: Records, path_key: str = "path", label_key: str = "projectName") -> List[Dict[str, Any]]:
    require_fields(records, [path_key], "transaction")
    return [{**record, label_key: project_label(record[path_key])} for record in records]


def group_by_type(records: Records, type_key: str = "type") -> Dict[str, List[Dict[str, Any]]]:
    """Partition records into buckets keyed by type, in first-appearance order."""
    require_fields(records, [type_key], "transaction")
    buckets: Dict[str, List[Dict[str, Any]]] = {}
    for record in records:
        buckets.setdefault(str(record[type_key]), []).append(dict(record))
    return buckets


def amount_by_project(records: Records, value_key: str = "amount", path_key: str = "path") -> List[Dict[str, Any]]:
    df = records_frame(records, [path_key, value_key], "transaction")
    if df.empty:
        return []
    df[value_key] = numeric_column(df, value_key, "transaction")
    df["projectName"] = df[path_key].astype(str).map(project_label)
    grouped = df.groupby("projectName", sort=False)[value_key].sum().reset_index()
    return [{"projectName": str(r["projectName"]), value_key: as_number(r[value_key])} for _, r in grouped.iterrows()]


# ---------------- Series ----------------
def _series(records: Records, value_key: str, time_key: str, label: Optional[str], cumulative: bool) -> List[Dict[str, Any]]:
    df = records_frame(records, [value_key, time_key], "series record")
    if df.empty:
        return []
    values = numeric_column(df, value_key, "series record")
    if cumulative:
        values = values.cumsum()
    return [
        {"timestamp": ts, "value": as_number(v), "label": label}
        for ts, v in zip(df[time_key].tolist(), values.tolist())
    ]


def cumulative_series(
    records: Records,
    value_key: str = "amount",
    time_key: str = "createdAt",
    label: Optional[str] = None,
) -> List[Dict[str, Any]]:
    """Running sum of ``value_key``; the i-th point sums records 0..i."""
    return _series(records, value_key, time_key, label, cumulative=True)


def value_series(
    records: Records,
    value_key: str = "amount",
    time_key: str = "createdAt",
    label: Optional[str] = None,
) -> List[Dict[str, Any]]:
    return _series(records, value_key, time_key, label, cumulative=False)


def cumulative_by_type(
    records: Records,
    value_key: str = "amount",
    time_key: str = "createdAt",
    types: Optional[Iterable[str]] = None,
) -> Dict[str, List[Dict[str, Any]]]:
    buckets = group_by_type(records)
    wanted = list(types) if types is not None else list(buckets)
    return {t: cumulative_series(buckets.get(t, []), value_key, time_key, label=t) for t in wanted}


# ---------------- Tables ----------------
def to_table(records: Records, columns: Sequence[str], fill_missing: bool = False) -> List[Dict[str, Any]]:
    """Flat rows restricted to ``columns``, in input order.

    Absent fields raise ``DataShapeError`` unless ``fill_missing`` is set, in
    which case they become empty strings.
    """
    if not fill_missing:
        require_fields(records, columns, "table row")
    return [{c: record.get(c, "") for c in columns} for record in records]
