"""정규화된 테이블 / 차트 입력 모델 정의."""
from __future__ import annotations

from typing import Dict, List, Literal, Optional, Union

from pydantic import BaseModel, ConfigDict, Field, model_validator

# 셀 값: Number(float) | String(str) | Null(None)
Cell = Optional[Union[float, str]]
Row = Dict[str, Cell]

ChartKind = Literal[
    "column",
    "bar",
    "line",
    "combo",
    "pie",
    "heatmap",
    "table",
    "funnel",
    "scatter",
]
CHART_KINDS: tuple[str, ...] = (
    "column",
    "bar",
    "line",
    "combo",
    "pie",
    "heatmap",
    "table",
    "funnel",
    "scatter",
)

Palette = Literal["neon", "colorful", "monochrome"]


# 입력: headers, rows
# 출력: Table 모델
# 업로드 1건당 한 번 만들어지고 이후에는 읽기 전용으로 사용한다
class Table(BaseModel):
    model_config = ConfigDict(frozen=True)

    # 컬럼 이름 (첫 등장 순서 유지)
    headers: List[str] = Field(default_factory=list)
    # 행 목록 (표시/반복 순서 유지)
    rows: List[Row] = Field(default_factory=list)

    @model_validator(mode="after")
    def _check_shape(self) -> "Table":
        if len(set(self.headers)) != len(self.headers):
            raise ValueError("headers must be unique")
        expected = set(self.headers)
        for idx, row in enumerate(self.rows):
            if set(row.keys()) != expected:
                raise ValueError(f"row {idx} keys do not match headers")
        return self

    @property
    def row_count(self) -> int:
        return len(self.rows)


# 사용자가 직접 고른 축 필드 (없으면 매퍼가 기본값을 정한다)
class FieldSelection(BaseModel):
    x: Optional[str] = None
    y: Optional[str] = None
    # combo 전용 보조 시리즈
    y2: Optional[str] = None


# 색상 설정
# UI 세션이 소유하고 렌더마다 값으로 전달된다
class ColorConfig(BaseModel):
    # 라벨 -> 고정 색상
    per_value_color: Dict[str, str] = Field(default_factory=dict)
    # 사용자가 입력한 색상 (#rrggbb)
    custom_color: Optional[str] = None
    # 테마 슬롯 이름 (예: chart-neon-3)
    theme_color_ref: Optional[str] = None
    palette: Palette = "neon"
    opacity: float = Field(default=1.0, ge=0.0, le=1.0)
