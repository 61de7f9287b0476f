"""원본 소스 -> 정규화 테이블 변환.

- CSV 텍스트, 스프레드시트 바이너리, 공개 시트에서 받아온 CSV 를 하나의 Table 로 만든다.
- 셀 변환 규칙(coerce_cell)은 세 소스 모두 동일하게 적용한다.
- 스프레드시트는 첫 번째 시트만 읽는다.
"""
from __future__ import annotations

import io
import math
import numbers
import re
from dataclasses import dataclass
from datetime import date, datetime
from pathlib import PurePath
from typing import Any, Dict, List, Optional, Sequence, Union

import pandas as pd

from sheetviz.ingest.errors import ParseError, UnsupportedFormatError
from sheetviz.models.table import Cell, Row, Table
from sheetviz.utils.logging import log_event

# 부호, 정수부, 소수부, 지수부만 허용 (inf/nan/밑줄 구분자는 숫자로 보지 않는다)
_NUMBER_PATTERN = re.compile(r"[+-]?(?:\d+\.?\d*|\.\d+)(?:[eE][+-]?\d+)?")

_DELIMITED_EXTENSIONS = {".csv": ",", ".tsv": "\t"}
_SPREADSHEET_EXTENSIONS = (".xlsx", ".xls")


class SourceKind:
    DELIMITED_TEXT = "delimited_text"
    SPREADSHEET = "spreadsheet"
    FETCHED_TEXT = "fetched_text"


# 입력: kind, payload, name, delimiter
# 정규화 대상 원본 소스 하나
@dataclass(frozen=True)
class TableSource:
    kind: str
    payload: Union[str, bytes]
    name: Optional[str] = None
    delimiter: str = ","


def _coerce_text(text: str) -> Cell:
    s = text.strip()
    if s == "":
        return None
    candidate = s.replace(",", "")
    if _NUMBER_PATTERN.fullmatch(candidate):
        number = float(candidate)
        if math.isfinite(number):
            return number
    return s


# 입력: 원본 셀 값 (문자열, 숫자, None, 날짜 등)
# 출력: Number(float) | String(str) | None
def coerce_cell(value: Any) -> Cell:
    """Apply the shared cell coercion rule used by every source kind."""
    if value is None:
        return None
    if isinstance(value, bool):
        return _coerce_text(str(value))
    if isinstance(value, numbers.Real):
        number = float(value)
        return number if math.isfinite(number) else None
    if isinstance(value, datetime):
        return _coerce_text(value.isoformat(sep=" "))
    if isinstance(value, date):
        return _coerce_text(value.isoformat())
    # pandas 결측값(NaT, NA 등)
    try:
        if pd.isna(value):
            return None
    except (TypeError, ValueError):
        pass
    return _coerce_text(str(value))


def _header_name(raw: Any, index: int, seen: set[str]) -> str:
    name = "" if raw is None else str(raw).strip()
    if not name:
        name = f"col_{index}"
    if name in seen:
        name = f"{name}_{index}"
    while name in seen:
        name = f"{name}_"
    return name


def _build_table(records: Sequence[Sequence[Any]], *, skip_empty_records: bool = True) -> Table:
    if not records:
        return Table(headers=[], rows=[])

    header_row, *data_rows = records
    seen: set[str] = set()
    headers: List[str] = []
    for idx, raw in enumerate(header_row):
        name = _header_name(None if _is_missing(raw) else raw, idx, seen)
        seen.add(name)
        headers.append(name)

    rows: List[Row] = []
    for record in data_rows:
        row: Dict[str, Cell] = {}
        for idx, header in enumerate(headers):
            row[header] = coerce_cell(record[idx]) if idx < len(record) else None
        # 모든 셀이 비어 있는 행은 건너뛴다 (구분자만 있는 CSV 행은 유지)
        if skip_empty_records and all(value is None for value in row.values()):
            continue
        rows.append(row)
    return Table(headers=headers, rows=rows)


def _is_missing(value: Any) -> bool:
    return coerce_cell(value) is None


def _trim_leading_blanks(records: List[List[Any]]) -> List[List[Any]]:
    """Drop blank rows above and blank columns left of the used range."""
    start_row = 0
    while start_row < len(records) and all(_is_missing(v) for v in records[start_row]):
        start_row += 1
    records = records[start_row:]
    if not records:
        return []

    width = max(len(record) for record in records)
    start_col = 0
    while start_col < width and all(
        start_col >= len(record) or _is_missing(record[start_col]) for record in records
    ):
        start_col += 1
    # 중간의 빈 열은 위치를 유지한다
    return [record[start_col:] for record in records]


def _decode(payload: Union[str, bytes]) -> str:
    if isinstance(payload, str):
        return payload
    try:
        return payload.decode("utf-8-sig")
    except UnicodeDecodeError as exc:
        raise ParseError("delimited text is not valid UTF-8") from exc


def _read_delimited(payload: Union[str, bytes], delimiter: str) -> List[List[Any]]:
    text = _decode(payload)
    if not text.strip():
        return []
    try:
        frame = pd.read_csv(
            io.StringIO(text),
            sep=delimiter,
            header=None,
            dtype=str,
            keep_default_na=False,
            skip_blank_lines=True,
        )
    except pd.errors.EmptyDataError:
        return []
    except pd.errors.ParserError as exc:
        raise ParseError(f"malformed delimited text: {exc}") from exc
    return frame.values.tolist()


def _read_spreadsheet(payload: Union[str, bytes]) -> List[List[Any]]:
    if isinstance(payload, str):
        raise ParseError("spreadsheet payload must be binary")
    try:
        frame = pd.read_excel(io.BytesIO(payload), sheet_name=0, header=None, dtype=object)
    except Exception as exc:
        raise ParseError(f"spreadsheet has no readable first sheet: {exc}") from exc
    return _trim_leading_blanks(frame.values.tolist())


# 입력: TableSource
# 출력: 정규화된 Table
def normalize(source: TableSource) -> Table:
    """Normalize one raw source into the canonical table."""
    try:
        if source.kind in (SourceKind.DELIMITED_TEXT, SourceKind.FETCHED_TEXT):
            records = _read_delimited(source.payload, source.delimiter)
        elif source.kind == SourceKind.SPREADSHEET:
            records = _read_spreadsheet(source.payload)
        else:
            raise UnsupportedFormatError(str(source.kind))
        # 스프레드시트는 빈 행을 건너뛰고, 구분자 텍스트는 빈 줄만 건너뛴다
        table = _build_table(records, skip_empty_records=source.kind == SourceKind.SPREADSHEET)
    except (ParseError, UnsupportedFormatError) as exc:
        log_event(
            "table.normalize.error",
            {"source_kind": source.kind, "source_name": source.name, "error": str(exc)},
            level="error",
        )
        raise

    log_event(
        "table.normalize.done",
        {
            "source_kind": source.kind,
            "source_name": source.name,
            "column_count": len(table.headers),
            "row_count": table.row_count,
        },
    )
    return table


def source_for_upload(filename: str, data: bytes) -> TableSource:
    """Pick the source kind from an uploaded file's extension."""
    extension = PurePath(filename or "").suffix.lower()
    if extension in _DELIMITED_EXTENSIONS:
        return TableSource(
            kind=SourceKind.DELIMITED_TEXT,
            payload=data,
            name=filename,
            delimiter=_DELIMITED_EXTENSIONS[extension],
        )
    if extension in _SPREADSHEET_EXTENSIONS:
        return TableSource(kind=SourceKind.SPREADSHEET, payload=data, name=filename)
    raise UnsupportedFormatError(extension)


def normalize_upload(filename: str, data: bytes) -> Table:
    return normalize(source_for_upload(filename, data))
