from __future__ import annotations

import math

import pytest

from sheetviz.agent.color_resolver import resolve
from sheetviz.agent.dataset_mapper import map_dataset, resolve_fields
from sheetviz.models.chart_spec import (
    FunnelDataset,
    HeatmapDataset,
    ScatterDataset,
    SeriesDataset,
    TableDataset,
)
from sheetviz.models.table import CHART_KINDS, ColorConfig, FieldSelection, Table


def _table(headers, rows) -> Table:
    return Table(headers=headers, rows=[dict(zip(headers, row)) for row in rows])


def _sales() -> Table:
    return _table(
        ["Region", "Units", "Revenue"],
        [
            ["North", 10.0, 100.0],
            [None, 20.0, 250.0],
            ["East", "n/a", 90.0],
            ["West", 5.0, None],
        ],
    )


def test_resolve_fields_defaults() -> None:
    fields = resolve_fields(_sales())

    assert (fields.x, fields.y, fields.y2) == ("Region", "Units", "Revenue")


def test_resolve_fields_without_typed_columns_falls_back_to_headers() -> None:
    table = _table(["a", "b"], [[None, None]])
    fields = resolve_fields(table)

    assert (fields.x, fields.y, fields.y2) == ("a", "b", None)


def test_resolve_fields_honors_explicit_selection() -> None:
    fields = resolve_fields(_sales(), FieldSelection(x="Units", y="Revenue", y2="Units"))

    assert (fields.x, fields.y, fields.y2) == ("Units", "Revenue", "Units")


def test_column_labels_values_and_gaps() -> None:
    dataset = map_dataset(_sales(), "column")

    assert isinstance(dataset, SeriesDataset)
    assert dataset.orientation == "vertical"
    assert dataset.labels == ["North", "Row 2", "East", "West"]
    values = dataset.series[0].values
    assert values[0] == 10.0 and values[1] == 20.0 and values[3] == 5.0
    # 숫자가 아닌 셀은 제외하지 않고 NaN 으로 남긴다
    assert math.isnan(values[2])
    assert dataset.series[0].label == "Units"


def test_bar_is_column_with_horizontal_orientation() -> None:
    column = map_dataset(_sales(), "column")
    bar = map_dataset(_sales(), "bar")

    assert bar.orientation == "horizontal"
    assert bar.labels == column.labels
    assert bar.series[0].colors == column.series[0].colors


def test_line_keeps_row_order() -> None:
    table = _table(["month", "value"], [["Mar", 3.0], ["Jan", 1.0], ["Feb", 2.0]])
    dataset = map_dataset(table, "line")

    assert dataset.labels == ["Mar", "Jan", "Feb"]
    assert dataset.series[0].values == [3.0, 1.0, 2.0]
    assert dataset.series[0].type == "line"
    assert dataset.series[0].line_color == "rgba(0,229,255,1.0)"


def test_pie_colors_resolve_per_row() -> None:
    colors = ColorConfig(palette="colorful", opacity=0.5, per_value_color={"East": "#000000"})
    dataset = map_dataset(_sales(), "pie", colors=colors)

    series = dataset.series[0]
    assert series.type == "pie"
    assert series.colors == [resolve(colors, idx, label, 0.5) for idx, label in enumerate(dataset.labels)]
    assert series.colors[2] == "rgba(0,0,0,0.5)"


def test_numeric_labels_render_without_fraction() -> None:
    table = _table(["year", "value"], [[2020.0, 1.0], [2021.5, 2.0]])
    dataset = map_dataset(table, "column", FieldSelection(x="year", y="value"))

    assert dataset.labels == ["2020", "2021.5"]


def test_scatter_drops_rows_with_non_numeric_cells() -> None:
    dataset = map_dataset(_sales(), "scatter")

    assert isinstance(dataset, ScatterDataset)
    assert (dataset.x_field, dataset.y_field) == ("Units", "Revenue")
    # East(Units="n/a"), West(Revenue=None) 는 제외
    assert [(p.x, p.y) for p in dataset.points] == [(10.0, 100.0), (20.0, 250.0)]
    assert [p.label for p in dataset.points] == ["North", "Row 2"]


def test_scatter_with_single_numeric_column_pairs_it_with_itself() -> None:
    table = _table(["name", "score"], [["a", 1.0], ["b", 2.0]])
    dataset = map_dataset(table, "scatter")

    assert [(p.x, p.y) for p in dataset.points] == [(1.0, 1.0), (2.0, 2.0)]


def test_scatter_without_numeric_columns_is_empty() -> None:
    table = _table(["name"], [["a"], ["b"]])

    assert map_dataset(table, "scatter").points == []


def test_scatter_alpha_has_floor() -> None:
    table = _table(["name", "score"], [["a", 1.0]])
    dataset = map_dataset(table, "scatter", colors=ColorConfig(opacity=0.05))

    assert dataset.points[0].color == "rgba(0,229,255,0.2)"


def test_combo_adds_line_series_for_second_numeric_column() -> None:
    dataset = map_dataset(_sales(), "combo")

    assert [s.type for s in dataset.series] == ["bar", "line"]
    assert [s.label for s in dataset.series] == ["Units", "Revenue"]
    assert dataset.series[1].values[:3] == [100.0, 250.0, 90.0]
    assert math.isnan(dataset.series[1].values[3])


def test_combo_omits_line_series_without_y2() -> None:
    table = _table(["name", "score"], [["a", 1.0], ["b", 2.0]])
    dataset = map_dataset(table, "combo")

    assert [s.type for s in dataset.series] == ["bar"]


def _quarterly() -> Table:
    return _table(
        ["Region", "Quarter", "Sales"],
        [
            ["North", "Q1", 10.0],
            ["North", "Q1", 99.0],
            ["South", "Q1", 20.0],
            ["North", "Q2", 40.0],
        ],
    )


def test_heatmap_uses_first_matching_row_without_aggregation() -> None:
    dataset = map_dataset(_quarterly(), "heatmap")

    assert isinstance(dataset, HeatmapDataset)
    assert dataset.x_categories == ["North", "South"]
    assert dataset.y_categories == ["Q1", "Q2"]
    assert dataset.value_label == "Sales"
    cells = {(c.x_index, c.y_index): c.value for c in dataset.cells}
    # (North, Q1) 는 첫 행 값 10 (99 는 무시)
    assert cells == {(0, 0): 10.0, (1, 0): 20.0, (0, 1): 40.0, (1, 1): 0.0}


def test_heatmap_cell_intensity_scales_alpha() -> None:
    dataset = map_dataset(_quarterly(), "heatmap")
    colors = {(c.x_index, c.y_index): c.color for c in dataset.cells}

    assert colors[(0, 1)] == "rgba(0,229,255,1.0)"
    assert colors[(0, 0)] == "rgba(0,229,255,0.25)"
    assert colors[(1, 0)] == "rgba(0,229,255,0.5)"
    # 0 값 셀도 희미하게 보인다
    assert colors[(1, 1)] == "rgba(0,229,255,0.05)"


def test_heatmap_single_category_column_uses_value_row() -> None:
    table = _table(["Region", "Sales"], [["North", 4.0], ["South", 2.0], ["North", 8.0]])
    dataset = map_dataset(table, "heatmap")

    assert dataset.x_categories == ["North", "South"]
    assert dataset.y_categories == ["Value"]
    assert [(c.x_index, c.value) for c in dataset.cells] == [(0, 4.0), (1, 2.0)]


def test_heatmap_omits_cells_whose_value_is_not_numeric() -> None:
    table = _table(["Region", "Quarter", "Sales"], [["North", "Q1", 10.0], ["South", "Q1", None]])
    dataset = map_dataset(table, "heatmap")

    assert [(c.x_index, c.y_index, c.value) for c in dataset.cells] == [(0, 0, 10.0)]


def test_heatmap_merges_categories_with_the_same_label() -> None:
    table = _table(["Code", "Sales"], [[1.0, 4.0], ["1", 9.0], ["B", 2.0]])
    dataset = map_dataset(table, "heatmap", FieldSelection(y="Sales"))

    assert dataset.x_categories == ["1", "B"]
    # 같은 라벨은 첫 행 값을 쓴다
    assert [(c.x_index, c.value) for c in dataset.cells] == [(0, 4.0), (1, 2.0)]


def test_heatmap_without_categorical_columns_uses_row_labels() -> None:
    table = _table(["a", "b"], [[1.0, 5.0], [2.0, 7.0]])
    dataset = map_dataset(table, "heatmap")

    assert dataset.x_categories == ["1", "2"]
    assert dataset.y_categories == ["Value"]


def _funnel_table() -> Table:
    return _table(
        ["Stage", "Count"],
        [
            ["Visit", 100.0],
            ["Trial", 40.0],
            ["Signup", 40.0],
            ["Cart", 75.0],
            ["Paid", 10.0],
            [None, "unknown"],
        ],
    )


def test_funnel_sorts_descending_and_keeps_tie_order() -> None:
    dataset = map_dataset(_funnel_table(), "funnel")

    assert isinstance(dataset, FunnelDataset)
    assert dataset.labels == ["Visit", "Cart", "Trial", "Signup", "Paid", "Step 6"]
    assert dataset.series[0].values[:5] == [100.0, 75.0, 40.0, 40.0, 10.0]
    assert math.isnan(dataset.series[0].values[5])


def test_funnel_bar_thickness_is_bounded() -> None:
    dataset = map_dataset(_funnel_table(), "funnel")

    assert dataset.bar_thickness == [48.0, 36.0, 24.0, 24.0, 24.0, 24.0]
    assert all(24.0 <= t <= 48.0 for t in dataset.bar_thickness)


def test_table_kind_passes_table_through() -> None:
    table = _sales()
    dataset = map_dataset(table, "table")

    assert isinstance(dataset, TableDataset)
    assert dataset.headers == table.headers
    assert dataset.rows == table.rows


@pytest.mark.parametrize("chart", CHART_KINDS)
def test_empty_table_yields_empty_dataset(chart: str) -> None:
    table = Table(headers=["a", "b"], rows=[])
    dataset = map_dataset(table, chart)

    if isinstance(dataset, SeriesDataset):
        assert dataset.labels == [] and dataset.series == []
    elif isinstance(dataset, FunnelDataset):
        assert dataset.labels == [] and dataset.bar_thickness == []
    elif isinstance(dataset, HeatmapDataset):
        assert dataset.cells == [] and dataset.x_categories == []
    elif isinstance(dataset, ScatterDataset):
        assert dataset.points == []
    else:
        assert dataset.rows == []


@pytest.mark.parametrize("chart", CHART_KINDS)
def test_all_null_columns_do_not_fail(chart: str) -> None:
    table = _table(["a", "b"], [[None, None], [None, "x"]])

    assert map_dataset(table, chart) is not None


def test_unknown_field_names_behave_as_null_columns() -> None:
    dataset = map_dataset(_sales(), "column", FieldSelection(x="missing", y="also_missing"))

    assert dataset.labels == ["Row 1", "Row 2", "Row 3", "Row 4"]
    assert all(math.isnan(v) for v in dataset.series[0].values)


@pytest.mark.parametrize("chart", CHART_KINDS)
def test_mapping_is_deterministic(chart: str) -> None:
    colors = ColorConfig(palette="monochrome", opacity=0.7, per_value_color={"North": "#112233"})
    selection = FieldSelection()

    first = map_dataset(_quarterly(), chart, selection, colors)
    second = map_dataset(_quarterly(), chart, selection, colors)

    assert first.model_dump_json() == second.model_dump_json()


def test_color_config_is_not_mutated() -> None:
    colors = ColorConfig(per_value_color={"North": "#112233"}, palette="colorful", opacity=0.4)
    before = colors.model_dump()

    for chart in CHART_KINDS:
        map_dataset(_sales(), chart, colors=colors)

    assert colors.model_dump() == before
