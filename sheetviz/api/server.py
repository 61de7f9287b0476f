from __future__ import annotations

import math
from typing import Any

from fastapi import FastAPI, File, HTTPException, UploadFile
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from pydantic import BaseModel, Field
from starlette.concurrency import run_in_threadpool

from sheetviz.agent.chart_advisor import suggest
from sheetviz.agent.dataset_mapper import map_dataset
from sheetviz.agent.figure_builder import build_figure
from sheetviz.config import app_config
from sheetviz.ingest import sheet_source
from sheetviz.ingest.errors import FetchError, IngestError, ParseError, UnsupportedFormatError
from sheetviz.ingest.table_normalizer import normalize_upload
from sheetviz.models.chart_spec import (
    MapRequest,
    MapResponse,
    SuggestRequest,
    SuggestResponse,
    TableResponse,
)
from sheetviz.models.table import Table
from sheetviz.utils.logging import log_event, new_request_id

MAX_ROWS = app_config.MAX_ROWS
MAX_UPLOAD_BYTES = app_config.MAX_UPLOAD_BYTES

app = FastAPI(title="Sheet Visualization API")

if app_config.CORS_ALLOW_ORIGINS:
    app.add_middleware(
        CORSMiddleware,
        allow_origins=app_config.CORS_ALLOW_ORIGINS,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

_ERROR_STATUS = {
    UnsupportedFormatError: 415,
    ParseError: 422,
    FetchError: 502,
}


class SheetRequest(BaseModel):
    url: str = Field(..., min_length=1, max_length=2048)


def _sanitize_non_finite(value: Any) -> Any:
    if isinstance(value, bool) or value is None:
        return value
    if isinstance(value, float):
        return value if math.isfinite(value) else None
    if isinstance(value, dict):
        return {str(k): _sanitize_non_finite(v) for k, v in value.items()}
    if isinstance(value, (list, tuple)):
        return [_sanitize_non_finite(item) for item in value]
    return value


def _ingest_http_error(exc: IngestError, request_id: str) -> HTTPException:
    status_code = _ERROR_STATUS.get(type(exc), 400)
    log_event(
        "request.ingest.error",
        {"request_id": request_id, "code": exc.code, "error": exc.message},
        level="error",
    )
    return HTTPException(status_code=status_code, detail={"code": exc.code, "message": exc.message})


def _validate_table(table: Table) -> None:
    if table.row_count > MAX_ROWS:
        raise HTTPException(
            status_code=413,
            detail={"code": "ROWS_LIMIT_EXCEEDED", "message": f"rows size must be <= {MAX_ROWS}"},
        )


def _table_response(table: Table, source_name: str | None, request_id: str) -> TableResponse:
    _validate_table(table)
    return TableResponse(
        request_id=request_id,
        source_name=source_name,
        table=table,
        suggested_chart=suggest(table),
    )


@app.get("/health")
def health_check() -> dict:
    return {"status": "ok"}


@app.post("/tables/upload", response_model=TableResponse)
async def upload_table(file: UploadFile = File(...)) -> TableResponse:
    request_id = new_request_id()
    data = await file.read()
    log_event(
        "request.upload",
        {"request_id": request_id, "filename": file.filename, "bytes": len(data)},
    )
    if len(data) > MAX_UPLOAD_BYTES:
        raise HTTPException(
            status_code=413,
            detail={"code": "UPLOAD_TOO_LARGE", "message": f"file size must be <= {MAX_UPLOAD_BYTES} bytes"},
        )
    try:
        # pandas 파싱은 스레드풀에서 실행해 이벤트 루프를 막지 않는다
        table = await run_in_threadpool(normalize_upload, file.filename or "", data)
    except IngestError as exc:
        raise _ingest_http_error(exc, request_id) from exc
    return _table_response(table, file.filename, request_id)


@app.post("/tables/sheet", response_model=TableResponse)
async def load_sheet(req: SheetRequest) -> TableResponse:
    request_id = new_request_id()
    log_event("request.sheet", {"request_id": request_id})
    try:
        table, source_name = await sheet_source.load_public_sheet(req.url)
    except IngestError as exc:
        raise _ingest_http_error(exc, request_id) from exc
    return _table_response(table, source_name, request_id)


@app.post("/charts/suggest", response_model=SuggestResponse)
def suggest_chart(req: SuggestRequest) -> SuggestResponse:
    _validate_table(req.table)
    return SuggestResponse(chart=suggest(req.table))


@app.post("/charts/map", response_model=MapResponse)
def map_chart(req: MapRequest) -> JSONResponse:
    _validate_table(req.table)
    request_id = new_request_id()
    log_event(
        "request.map",
        {
            "request_id": request_id,
            "chart": req.chart,
            "row_count": req.table.row_count,
            "include_figure": req.include_figure,
        },
    )
    dataset = map_dataset(req.table, req.chart, req.fields, req.colors)
    figure_json = build_figure(dataset) if req.include_figure else None
    result = MapResponse(request_id=request_id, chart=req.chart, dataset=dataset, figure_json=figure_json)
    # NaN(빈 값)은 JSON 에서 null 로 내보낸다
    return JSONResponse(content=_sanitize_non_finite(result.model_dump()))
