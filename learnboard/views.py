"""Declarative dashboard views.

A ``ViewConfig`` lists which scalar tiles, time series and tables a page
shows; ``build_view`` turns fetched results into the JSON payload the UI and
the API render. Each view only dispatches the queries it needs.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Callable, Dict, List, Mapping, Optional, Tuple

from learnboard import aggregation as agg
from learnboard.charts import line_chart, multi_line_chart, to_vega_spec
from learnboard.queries import QueryCatalog
from learnboard.schemas import records_for


@dataclass(frozen=True)
class SummarySpec:
    name: str
    query: str
    label: str
    compute: Callable[[List[Dict[str, Any]]], Any]
    decimals: int = 0


@dataclass(frozen=True)
class SeriesSpec:
    name: str
    query: str
    title: str
    value_key: str = "amount"
    cumulative: bool = False
    by_type: Tuple[str, ...] = ()
    record_type: Optional[str] = None
    color: str = "steelblue"


@dataclass(frozen=True)
class TableSpec:
    name: str
    query: str
    title: str
    columns: Tuple[str, ...]
    label_projects: bool = False
    fill_missing: bool = False
    record_type: Optional[str] = None
    by_project: bool = False


@dataclass(frozen=True)
class ViewConfig:
    name: str
    include_profile: bool = True
    summaries: Tuple[SummarySpec, ...] = ()
    series: Tuple[SeriesSpec, ...] = ()
    tables: Tuple[TableSpec, ...] = ()

    @property
    def queries(self) -> List[str]:
        needed = ["profile"] if self.include_profile else []
        for spec in (*self.summaries, *self.series, *self.tables):
            if spec.query not in needed:
                needed.append(spec.query)
        return needed


class ViewBuilder:
    def __init__(self, name: str, *, include_profile: bool = True):
        self.name = name
        self.include_profile = include_profile
        self._summaries: List[SummarySpec] = []
        self._series: List[SeriesSpec] = []
        self._tables: List[TableSpec] = []

    def summary(self, name: str, query: str, label: str, compute: Callable, decimals: int = 0) -> "ViewBuilder":
        self._summaries.append(SummarySpec(name, query, label, compute, decimals))
        return self

    def series(self, name: str, query: str, title: str, **options: Any) -> "ViewBuilder":
        self._series.append(SeriesSpec(name, query, title, **options))
        return self

    def table(self, name: str, query: str, title: str, columns: List[str], **options: Any) -> "ViewBuilder":
        self._tables.append(TableSpec(name, query, title, tuple(columns), **options))
        return self

    def build(self) -> ViewConfig:
        return ViewConfig(
            name=self.name,
            include_profile=self.include_profile,
            summaries=tuple(self._summaries),
            series=tuple(self._series),
            tables=tuple(self._tables),
        )


def _headline_tiles(builder: ViewBuilder) -> ViewBuilder:
    return builder.summary("total_xp", "xp", "XP", agg.total_xp).summary(
        "audit_ratio", "projectTransactions", "Audit ratio", agg.audit_ratio, decimals=1
    )


OVERVIEW = (
    _headline_tiles(ViewBuilder("overview"))
    .summary("average_grade", "auditRatio", "Average grade", agg.average_grade, decimals=2)
    .summary("skill_go", "skillTransactions", "Skill Go", agg.total_amount)
    .series("xp_progress", "projectTransactions", "XP Progression", cumulative=True, record_type="xp", color="green")
    .series("audit_volume", "projectTransactions", "Audits Done vs Received", cumulative=True, by_type=("up", "down"))
    .series("grade_evolution", "auditRatio", "Grade Evolution", value_key="grade", color="blue")
    .series("skill_evolution", "skillTransactions", "Skill Go Evolution", color="red")
    .table("xp", "xp", "XP Data", ["amount", "projectName"], label_projects=True)
    .table("ratio", "auditRatio", "Ratio Data", ["createdAt", "grade"])
    .table("skill", "skillTransactions", "Skill Go Data", ["createdAt", "amount", "type", "projectName"], label_projects=True)
    .table("projects", "projectTransactions", "XP by Project", ["projectName", "amount"], record_type="xp", by_project=True)
    .build()
)

SUMMARY = _headline_tiles(ViewBuilder("summary")).build()

VIEWS: Dict[str, ViewConfig] = {v.name: v for v in (OVERVIEW, SUMMARY)}


def get_view(name: str) -> ViewConfig:
    try:
        return VIEWS[name]
    except KeyError:
        raise KeyError(f"Unknown view: {name}") from None


def profile_card(user: Mapping[str, Any]) -> Dict[str, Any]:
    attrs = user.get("attrs") or {}
    first = attrs.get("firstName") or ""
    last = attrs.get("lastName") or ""
    return {
        "name": f"{first} {last}".strip(),
        "email": attrs.get("email"),
        "tel": attrs.get("tel"),
        "campus": user.get("campus"),
    }


def _display(value: Any, decimals: int) -> str:
    if decimals:
        return agg.format_ratio(value, decimals)
    return f"{agg.round_half_up(value, 0) or 0:,.0f}"


def _series_points(spec: SeriesSpec, records: List[Dict[str, Any]]) -> Dict[str, List[Dict[str, Any]]]:
    if spec.record_type is not None:
        records = agg.group_by_type(records).get(spec.record_type, [])
    if spec.by_type:
        if spec.cumulative:
            return agg.cumulative_by_type(records, spec.value_key, types=spec.by_type)
        buckets = agg.group_by_type(records)
        return {t: agg.value_series(buckets.get(t, []), spec.value_key, label=t) for t in spec.by_type}
    transform = agg.cumulative_series if spec.cumulative else agg.value_series
    return {spec.name: transform(records, spec.value_key, label=spec.name)}


def unwrap_results(catalog: QueryCatalog, results: Mapping[str, Mapping[str, Any]]) -> Dict[str, Any]:
    return {name: records_for(catalog.get(name), data) for name, data in results.items()}


def build_view(
    view: ViewConfig,
    records: Mapping[str, Any],
    *,
    include_charts: bool = True,
) -> Dict[str, Any]:
    """Compute the payload for ``view`` from unwrapped query records.

    Every series is derived from the fetched records exactly once here;
    callers must not feed the output back in.
    """
    summaries: Dict[str, Any] = {}
    for spec in view.summaries:
        value = spec.compute(records.get(spec.query, []))
        summaries[spec.name] = {"label": spec.label, "value": value, "display": _display(value, spec.decimals)}

    series: Dict[str, Any] = {}
    charts: Dict[str, Any] = {}
    for spec in view.series:
        points = _series_points(spec, records.get(spec.query, []))
        series[spec.name] = points if spec.by_type else points[spec.name]
        if not include_charts:
            continue
        chart = multi_line_chart(points, spec.title) if spec.by_type else line_chart(points[spec.name], spec.title, spec.color)
        if chart is not None:
            charts[spec.name] = to_vega_spec(chart)

    tables: Dict[str, Any] = {}
    for spec in view.tables:
        rows = records.get(spec.query, [])
        if spec.record_type is not None:
            rows = agg.group_by_type(rows).get(spec.record_type, [])
        if spec.by_project:
            rows = agg.amount_by_project(rows)
        elif spec.label_projects:
            rows = agg.label_projects(rows)
        tables[spec.name] = {
            "title": spec.title,
            "columns": list(spec.columns),
            "rows": agg.to_table(rows, spec.columns, fill_missing=spec.fill_missing),
        }

    profile = profile_card(records.get("profile") or {}) if view.include_profile else None
    return {
        "view": view.name,
        "profile": profile,
        "summaries": summaries,
        "series": series,
        "tables": tables,
        "charts": charts,
    }
