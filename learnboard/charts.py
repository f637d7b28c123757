from __future__ import annotations

from typing import Any, Dict, List, Mapping, Optional, Sequence

import altair as alt
import pandas as pd

alt.data_transformers.disable_max_rows()


def to_vega_spec(chart: alt.Chart) -> Dict[str, Any]:
    """Convert an Altair chart into a Vega-Lite spec dict (JSON-serializable)."""
    return chart.to_dict()


def series_frame(points: Sequence[Mapping[str, Any]]) -> pd.DataFrame:
    df = pd.DataFrame.from_records(list(points), columns=["timestamp", "value", "label"])
    df["step"] = range(1, len(df) + 1)
    return df


def line_chart(points: Sequence[Mapping[str, Any]], title: str, color: str = "steelblue", *, height: int = 260) -> Optional[alt.Chart]:
    """Single line over ``points``; x is the record position, not its timestamp."""
    df = series_frame(points)
    if df.empty:
        return None
    hover = alt.selection_point(fields=["step"], on="mouseover", nearest=True, empty=False)
    line = (
        alt.Chart(df, title=title)
        .mark_line(point={"filled": True, "size": 40}, color=color)
        .encode(
            x=alt.X("step:Q", title="#", axis=alt.Axis(format="d", grid=False)),
            y=alt.Y("value:Q", axis=alt.Axis(gridDash=[4, 4], domain=False, ticks=False), title=None),
            opacity=alt.condition(hover, alt.value(1), alt.value(0.8)),
            tooltip=[
                alt.Tooltip("timestamp:N", title="Date"),
                alt.Tooltip("value:Q", title="Value", format=","),
            ],
        )
        .add_params(hover)
        .properties(height=height)
    )
    return line


def multi_line_chart(groups: Mapping[str, List[Mapping[str, Any]]], title: str, *, height: int = 260) -> Optional[alt.Chart]:
    """One line per group, plotted against time."""
    frames = [series_frame(points).assign(label=name) for name, points in groups.items() if points]
    if not frames:
        return None
    df = pd.concat(frames, ignore_index=True)
    hover = alt.selection_point(fields=["label"], on="mouseover", empty="all")
    return (
        alt.Chart(df, title=title)
        .mark_line(point={"filled": True, "size": 40}, interpolate="step-after")
        .encode(
            x=alt.X("timestamp:T", title="Date", axis=alt.Axis(grid=False)),
            y=alt.Y("value:Q", axis=alt.Axis(format="~s", gridDash=[4, 4], domain=False, ticks=False), title=None),
            color=alt.Color("label:N", title="Type"),
            opacity=alt.condition(hover, alt.value(1), alt.value(0.2)),
            tooltip=["label", "timestamp", alt.Tooltip("value:Q", format=",")],
        )
        .add_params(hover)
        .properties(height=height)
    )
