"""MappedDataset -> Plotly figure JSON.

- 데이터셋이 가진 색상/라벨만 사용한다. 데이터 변형은 하지 않는다.
- 결과는 figure JSON(dict) 형태로 반환한다.
"""
from __future__ import annotations

import json
import math
from typing import Any, Dict, List, Optional

import plotly.graph_objects as go
import plotly.io as pio

from sheetviz.agent.dataset_mapper import format_label
from sheetviz.config import app_config
from sheetviz.models.chart_spec import (
    FunnelDataset,
    HeatmapDataset,
    MappedDataset,
    ScatterDataset,
    Series,
    SeriesDataset,
    TableDataset,
)
from sheetviz.utils.logging import log_event

_FUNNEL_SLOT_PX = 48.0
_HEATMAP_MARKER_SIZE = 36
_SCATTER_MARKER_SIZE = 9


def _resolve_template_name() -> str:
    preferred = app_config.PLOT_TEMPLATE
    if preferred in pio.templates:
        return preferred
    if "plotly_white" in pio.templates:
        return "plotly_white"
    return "plotly"


def _values(series: Series) -> List[Optional[float]]:
    # NaN 은 렌더러에서 빈 칸으로 보이도록 None 으로 넘긴다
    return [None if math.isnan(value) else value for value in series.values]


def _series_trace(series: Series, labels: List[str], horizontal: bool) -> Any:
    if series.type == "line":
        return go.Scatter(
            x=labels,
            y=_values(series),
            name=series.label,
            mode="lines+markers",
            line={"color": series.line_color, "shape": "spline"},
            marker={"color": series.colors or series.line_color, "size": 8},
            connectgaps=False,
        )
    marker: Dict[str, Any] = {"color": series.colors}
    if series.border_colors:
        marker["line"] = {"color": series.border_colors, "width": 1}
    if horizontal:
        return go.Bar(x=_values(series), y=labels, name=series.label, orientation="h", marker=marker)
    return go.Bar(x=labels, y=_values(series), name=series.label, marker=marker)


def _series_figure(dataset: SeriesDataset) -> go.Figure:
    fig = go.Figure()
    if dataset.kind == "pie":
        for series in dataset.series:
            fig.add_trace(
                go.Pie(
                    labels=dataset.labels,
                    values=_values(series),
                    name=series.label,
                    marker={"colors": series.colors},
                    sort=False,
                )
            )
        return fig

    horizontal = dataset.orientation == "horizontal"
    for series in dataset.series:
        trace = _series_trace(series, dataset.labels, horizontal)
        if dataset.kind == "line":
            trace.update(fill="tozeroy")
        fig.add_trace(trace)
    if horizontal:
        fig.update_yaxes(autorange="reversed")
    return fig


def _funnel_figure(dataset: FunnelDataset) -> go.Figure:
    fig = go.Figure()
    for series in dataset.series:
        fig.add_trace(
            go.Bar(
                x=_values(series),
                y=dataset.labels,
                name=series.label,
                orientation="h",
                marker={"color": series.colors},
                # 막대 두께(px) -> 범주 슬롯 대비 비율
                width=[thickness / _FUNNEL_SLOT_PX for thickness in dataset.bar_thickness],
            )
        )
    fig.update_yaxes(autorange="reversed")
    return fig


def _heatmap_figure(dataset: HeatmapDataset) -> go.Figure:
    fig = go.Figure(
        go.Scatter(
            x=[dataset.x_categories[cell.x_index] for cell in dataset.cells],
            y=[dataset.y_categories[cell.y_index] for cell in dataset.cells],
            mode="markers",
            name=dataset.value_label,
            text=[format_label(cell.value) for cell in dataset.cells],
            marker={
                "symbol": "square",
                "size": _HEATMAP_MARKER_SIZE,
                "color": [cell.color for cell in dataset.cells],
            },
        )
    )
    fig.update_xaxes(type="category", categoryorder="array", categoryarray=dataset.x_categories)
    fig.update_yaxes(type="category", categoryorder="array", categoryarray=dataset.y_categories)
    fig.update_layout(showlegend=False)
    return fig


def _scatter_figure(dataset: ScatterDataset) -> go.Figure:
    fig = go.Figure(
        go.Scatter(
            x=[point.x for point in dataset.points],
            y=[point.y for point in dataset.points],
            mode="markers",
            name=dataset.label,
            text=[point.label for point in dataset.points],
            marker={"color": [point.color for point in dataset.points], "size": _SCATTER_MARKER_SIZE},
        )
    )
    fig.update_xaxes(title_text=dataset.x_field)
    fig.update_yaxes(title_text=dataset.y_field)
    return fig


def _table_figure(dataset: TableDataset) -> go.Figure:
    columns = [[format_label(row.get(header)) for row in dataset.rows] for header in dataset.headers]
    return go.Figure(
        go.Table(
            header={"values": dataset.headers},
            cells={"values": columns},
        )
    )


def build_figure(dataset: MappedDataset) -> Dict[str, Any]:
    """Render a mapped dataset as Plotly figure JSON."""
    if isinstance(dataset, SeriesDataset):
        fig = _series_figure(dataset)
    elif isinstance(dataset, FunnelDataset):
        fig = _funnel_figure(dataset)
    elif isinstance(dataset, HeatmapDataset):
        fig = _heatmap_figure(dataset)
    elif isinstance(dataset, ScatterDataset):
        fig = _scatter_figure(dataset)
    else:
        fig = _table_figure(dataset)

    fig.update_layout(template=_resolve_template_name(), margin={"l": 40, "r": 20, "t": 30, "b": 40})
    log_event("figure.build", {"chart": dataset.kind, "trace_count": len(fig.data)})
    return json.loads(pio.to_json(fig))
