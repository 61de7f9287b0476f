"""테이블 + 차트 종류 -> 차트별 데이터셋 변환.

- 렌더링 라이브러리 옵션은 다루지 않는다. "어떤 모양의 데이터인가"만 만든다.
- 모든 입력 조합에 대해 예외 없이 결과를 돌려준다 (빈 테이블 포함).
- line/bar/column/pie/combo/funnel 은 숫자가 아닌 셀을 NaN 으로 남기고,
  scatter/heatmap 은 해당 포인트/셀을 제외한다.
"""
from __future__ import annotations

import math
from dataclasses import dataclass
from typing import Callable, Dict, List, Optional, Tuple

from sheetviz.agent.color_resolver import resolve, resolve_base
from sheetviz.agent.column_classifier import categorical_columns, is_number, numeric_columns
from sheetviz.models.chart_spec import (
    FunnelDataset,
    HeatmapCell,
    HeatmapDataset,
    MappedDataset,
    ScatterDataset,
    ScatterPoint,
    Series,
    SeriesDataset,
    TableDataset,
)
from sheetviz.models.table import Cell, ChartKind, ColorConfig, FieldSelection, Row, Table
from sheetviz.utils.logging import log_event

_NAN = float("nan")
_ROW_LABEL_PREFIX = "Row"
_FUNNEL_LABEL_PREFIX = "Step"
_FUNNEL_MIN_THICKNESS = 24.0
_FUNNEL_MAX_THICKNESS = 48.0
_HEATMAP_MIN_INTENSITY = 0.05
_HEATMAP_SINGLE_CATEGORY = "Value"
_SCATTER_MIN_ALPHA = 0.2


# 입력: table, selection
# 출력: 기본값이 채워진 x / y / y2 필드
@dataclass(frozen=True)
class ResolvedFields:
    x: Optional[str]
    y: Optional[str]
    y2: Optional[str]


def resolve_fields(table: Table, selection: Optional[FieldSelection] = None) -> ResolvedFields:
    """Fill unset fields: x -> first categorical, y -> first numeric, y2 -> second numeric."""
    selection = selection or FieldSelection()
    numeric_cols = numeric_columns(table)
    categorical_cols = categorical_columns(table)
    headers = table.headers

    x = selection.x or (categorical_cols[0] if categorical_cols else (headers[0] if headers else None))
    y = selection.y or (numeric_cols[0] if numeric_cols else (headers[1] if len(headers) > 1 else None))
    y2 = selection.y2 or (numeric_cols[1] if len(numeric_cols) > 1 else None)
    return ResolvedFields(x=x, y=y, y2=y2)


def format_label(cell: Cell) -> str:
    """Display text for a cell used as a label (2020.0 -> "2020")."""
    if cell is None:
        return ""
    if is_number(cell):
        value = float(cell)
        if value.is_integer() and abs(value) < 1e15:
            return str(int(value))
        return repr(value)
    return str(cell)


def _cell(row: Row, field: Optional[str]) -> Cell:
    return row.get(field) if field else None


def _row_label(row: Row, field: Optional[str], index: int, prefix: str = _ROW_LABEL_PREFIX) -> str:
    cell = _cell(row, field)
    if cell is None:
        return f"{prefix} {index + 1}"
    return format_label(cell)


def _numeric_value(row: Row, field: Optional[str]) -> float:
    cell = _cell(row, field)
    return float(cell) if is_number(cell) else _NAN


def _row_labels(table: Table, field: Optional[str]) -> List[str]:
    return [_row_label(row, field, idx) for idx, row in enumerate(table.rows)]


def _bar_series(table: Table, labels: List[str], field: Optional[str], colors: ColorConfig) -> Series:
    return Series(
        label=field,
        type="bar",
        values=[_numeric_value(row, field) for row in table.rows],
        colors=[resolve(colors, idx, label, colors.opacity) for idx, label in enumerate(labels)],
        border_colors=[resolve(colors, idx, label, 1.0) for idx, label in enumerate(labels)],
    )


def _map_category(table: Table, chart: ChartKind, fields: ResolvedFields, colors: ColorConfig) -> SeriesDataset:
    # column 과 bar 는 방향만 다르다
    labels = _row_labels(table, fields.x)
    return SeriesDataset(
        kind=chart,
        orientation="horizontal" if chart == "bar" else "vertical",
        labels=labels,
        series=[_bar_series(table, labels, fields.y, colors)],
    )


def _map_line(table: Table, chart: ChartKind, fields: ResolvedFields, colors: ColorConfig) -> SeriesDataset:
    # 행 순서 그대로 (정렬하지 않는다)
    labels = _row_labels(table, fields.x)
    series = Series(
        label=fields.y,
        type="line",
        values=[_numeric_value(row, fields.y) for row in table.rows],
        colors=[resolve(colors, idx, label, colors.opacity) for idx, label in enumerate(labels)],
        border_colors=[resolve(colors, idx, label, 1.0) for idx, label in enumerate(labels)],
        line_color=resolve_base(colors, 1.0),
    )
    return SeriesDataset(kind="line", labels=labels, series=[series])


def _map_pie(table: Table, chart: ChartKind, fields: ResolvedFields, colors: ColorConfig) -> SeriesDataset:
    labels = _row_labels(table, fields.x)
    series = Series(
        label=fields.y,
        type="pie",
        values=[_numeric_value(row, fields.y) for row in table.rows],
        colors=[resolve(colors, idx, label, colors.opacity) for idx, label in enumerate(labels)],
    )
    return SeriesDataset(kind="pie", labels=labels, series=[series])


def _map_combo(table: Table, chart: ChartKind, fields: ResolvedFields, colors: ColorConfig) -> SeriesDataset:
    labels = _row_labels(table, fields.x)
    series = [_bar_series(table, labels, fields.y, colors)]
    # y2 가 없으면 선 시리즈 자체를 만들지 않는다
    if fields.y2:
        series.append(
            Series(
                label=fields.y2,
                type="line",
                values=[_numeric_value(row, fields.y2) for row in table.rows],
                line_color=resolve_base(colors, 1.0),
            )
        )
    return SeriesDataset(kind="combo", labels=labels, series=series)


def _map_scatter(table: Table, chart: ChartKind, fields: ResolvedFields, colors: ColorConfig) -> ScatterDataset:
    numeric_cols = numeric_columns(table)
    if not numeric_cols:
        return ScatterDataset()
    x_num = numeric_cols[0]
    y_num = numeric_cols[1] if len(numeric_cols) > 1 else numeric_cols[0]
    alpha = max(_SCATTER_MIN_ALPHA, colors.opacity)

    points: List[ScatterPoint] = []
    for row_idx, row in enumerate(table.rows):
        x_cell, y_cell = row.get(x_num), row.get(y_num)
        # 둘 중 하나라도 숫자가 아니면 포인트에서 제외
        if not (is_number(x_cell) and is_number(y_cell)):
            continue
        label = _row_label(row, fields.x, row_idx)
        points.append(
            ScatterPoint(
                x=float(x_cell),
                y=float(y_cell),
                label=label,
                color=resolve(colors, len(points), label, alpha),
            )
        )
    return ScatterDataset(
        label=f"{x_num} vs {y_num}",
        x_field=x_num,
        y_field=y_num,
        points=points,
    )


def _category_key(cell: Cell) -> Optional[str]:
    # 1.0 과 "1" 처럼 같은 라벨로 보이는 값은 하나의 범주로 합친다
    return None if cell is None else format_label(cell)


def _distinct(values: List[Optional[str]]) -> List[str]:
    return list(dict.fromkeys(v for v in values if v is not None))


def _map_heatmap(table: Table, chart: ChartKind, fields: ResolvedFields, colors: ColorConfig) -> HeatmapDataset:
    categorical_cols = categorical_columns(table)
    labels = _row_labels(table, fields.x)
    x_col = categorical_cols[0] if categorical_cols else None
    y_col = categorical_cols[1] if len(categorical_cols) > 1 else None

    # 범주형 컬럼이 없으면 행 라벨을 x 범주로 쓴다
    x_keys_by_row: List[Optional[str]] = (
        [_category_key(row.get(x_col)) for row in table.rows] if x_col else list(labels)
    )
    y_keys_by_row: List[Optional[str]] = (
        [_category_key(row.get(y_col)) for row in table.rows] if y_col else [None] * len(table.rows)
    )
    x_keys = _distinct(x_keys_by_row)
    y_keys: List[Optional[str]] = list(_distinct(y_keys_by_row)) if y_col else [None]

    # (x, y) 조합마다 처음 등장한 행만 사용한다 (합산/평균하지 않음)
    first_match: Dict[Tuple[Optional[str], Optional[str]], Row] = {}
    for row, x_key, y_key in zip(table.rows, x_keys_by_row, y_keys_by_row):
        first_match.setdefault((x_key, y_key), row)

    raw_cells: List[Tuple[int, int, float]] = []
    for y_idx, y_key in enumerate(y_keys):
        for x_idx, x_key in enumerate(x_keys):
            row = first_match.get((x_key, y_key))
            if row is None:
                raw_cells.append((x_idx, y_idx, 0.0))
                continue
            cell = _cell(row, fields.y)
            if not is_number(cell):
                continue
            raw_cells.append((x_idx, y_idx, float(cell)))

    max_value = max((value for _, _, value in raw_cells), default=0.0)
    if max_value <= 0:
        max_value = 1.0

    cells = []
    for x_idx, y_idx, value in raw_cells:
        intensity = min(1.0, max(_HEATMAP_MIN_INTENSITY, value / max_value))
        cells.append(
            HeatmapCell(
                x_index=x_idx,
                y_index=y_idx,
                value=value,
                color=resolve_base(colors, colors.opacity * intensity),
            )
        )

    return HeatmapDataset(
        value_label=fields.y,
        x_categories=x_keys,
        y_categories=_distinct(y_keys) if y_col else [_HEATMAP_SINGLE_CATEGORY],
        cells=cells,
    )


def _funnel_sort_key(entry: Tuple[str, float]) -> Tuple[bool, float]:
    value = entry[1]
    if math.isnan(value):
        return (True, 0.0)
    return (False, -value)


def _map_funnel(table: Table, chart: ChartKind, fields: ResolvedFields, colors: ColorConfig) -> FunnelDataset:
    entries = [
        (_row_label(row, fields.x, idx, _FUNNEL_LABEL_PREFIX), _numeric_value(row, fields.y))
        for idx, row in enumerate(table.rows)
    ]
    # 안정 정렬: 값이 같으면 원래 순서 유지, NaN 은 맨 뒤
    entries.sort(key=_funnel_sort_key)

    finite_values = [value for _, value in entries if not math.isnan(value)]
    max_value = max(finite_values, default=0.0)
    if max_value <= 0:
        max_value = 1.0

    thickness: List[float] = []
    for _, value in entries:
        if math.isnan(value):
            thickness.append(_FUNNEL_MIN_THICKNESS)
            continue
        scaled = _FUNNEL_MAX_THICKNESS * (value / max_value)
        thickness.append(min(_FUNNEL_MAX_THICKNESS, max(_FUNNEL_MIN_THICKNESS, scaled)))

    labels = [label for label, _ in entries]
    series = Series(
        label=fields.y,
        type="bar",
        values=[value for _, value in entries],
        colors=[resolve(colors, idx, label, colors.opacity) for idx, label in enumerate(labels)],
    )
    return FunnelDataset(labels=labels, series=[series], bar_thickness=thickness)


_Builder = Callable[[Table, ChartKind, ResolvedFields, ColorConfig], MappedDataset]

_BUILDERS: Dict[str, _Builder] = {
    "column": _map_category,
    "bar": _map_category,
    "line": _map_line,
    "pie": _map_pie,
    "combo": _map_combo,
    "scatter": _map_scatter,
    "heatmap": _map_heatmap,
    "funnel": _map_funnel,
}


def _empty_dataset(chart: ChartKind) -> MappedDataset:
    if chart == "funnel":
        return FunnelDataset()
    if chart == "heatmap":
        return HeatmapDataset()
    if chart == "scatter":
        return ScatterDataset()
    return SeriesDataset(kind=chart, orientation="horizontal" if chart == "bar" else "vertical")


# 입력: table, chart, selection, colors
# 출력: 차트 종류별 MappedDataset
def map_dataset(
    table: Table,
    chart: ChartKind,
    selection: Optional[FieldSelection] = None,
    colors: Optional[ColorConfig] = None,
) -> MappedDataset:
    """Build the chart-kind-specific dataset the renderer consumes."""
    colors = colors or ColorConfig()

    if chart == "table":
        # 변환 없이 정규화 테이블을 그대로 넘긴다
        return TableDataset(headers=table.headers, rows=table.rows)

    fields = resolve_fields(table, selection)
    if not table.rows:
        dataset = _empty_dataset(chart)
    else:
        dataset = _BUILDERS[chart](table, chart, fields, colors)

    log_event(
        "mapping.done",
        {
            "chart": chart,
            "row_count": table.row_count,
            "x": fields.x,
            "y": fields.y,
            "y2": fields.y2 if chart == "combo" else None,
        },
    )
    return dataset
