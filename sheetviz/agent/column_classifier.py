"""컬럼 분류 유틸.

- 한 행이라도 숫자면 numeric, 한 행이라도 문자열이면 categorical 로 본다.
- 두 목록은 독립적으로 계산한다 (한 컬럼이 양쪽에 모두 들어갈 수 있다).
"""
from __future__ import annotations

import numbers
from typing import Any, List

from sheetviz.models.table import Table


def is_number(cell: Any) -> bool:
    return isinstance(cell, numbers.Real) and not isinstance(cell, bool)


def is_text(cell: Any) -> bool:
    return isinstance(cell, str)


def numeric_columns(table: Table) -> List[str]:
    """Headers with at least one Number cell, in header order."""
    return [h for h in table.headers if any(is_number(row.get(h)) for row in table.rows)]


def categorical_columns(table: Table) -> List[str]:
    """Headers with at least one String cell, in header order."""
    return [h for h in table.headers if any(is_text(row.get(h)) for row in table.rows)]
