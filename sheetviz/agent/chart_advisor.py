"""기본 차트 추천 룰.

- 컬럼 분류 결과와 행 수만으로 차트 하나를 고른다.
- scatter / column / pie / line / table 중에서만 추천한다.
  (bar, combo, heatmap, funnel 은 사용자가 직접 골라야 한다)
- 룰 순서가 곧 우선순위다. 먼저 맞는 룰이 이긴다.
"""
from __future__ import annotations

from sheetviz.agent.column_classifier import categorical_columns, numeric_columns
from sheetviz.models.table import ChartKind, Table
from sheetviz.utils.logging import log_event

_PIE_MAX_HEADERS = 2
_PIE_MAX_ROWS = 8
_LINE_MIN_ROWS = 50


def suggest(table: Table) -> ChartKind:
    """Recommend a default chart kind for an unseen table."""
    numeric_cols = numeric_columns(table)
    categorical_cols = categorical_columns(table)
    row_count = table.row_count

    if len(numeric_cols) >= 2:
        # 숫자 컬럼이 2개 이상이면 상관관계 산점도
        chart: ChartKind = "scatter"
    elif len(numeric_cols) == 1 and categorical_cols:
        chart = "column"
    elif len(table.headers) <= _PIE_MAX_HEADERS and row_count <= _PIE_MAX_ROWS:
        chart = "pie"
    elif row_count > _LINE_MIN_ROWS:
        chart = "line"
    else:
        # 확신 있는 추천이 없음
        chart = "table"

    log_event(
        "advisor.suggest",
        {
            "chart": chart,
            "numeric_count": len(numeric_cols),
            "categorical_count": len(categorical_cols),
            "row_count": row_count,
        },
    )
    return chart
