"""공개 스프레드시트 URL -> CSV 텍스트.

- 편집 URL 을 CSV export URL 로 바꾸고 받아온 텍스트를 정규화한다.
- 재시도하지 않는다. 오래된 응답을 버리는 것은 호출 측 책임이다.
"""
from __future__ import annotations

import asyncio
import re
from typing import Optional, Tuple

import httpx

from sheetviz.config import app_config
from sheetviz.ingest.errors import FetchError
from sheetviz.ingest.table_normalizer import SourceKind, TableSource, normalize
from sheetviz.models.table import Table
from sheetviz.utils.logging import log_event

PUBLIC_SHEET_HINT = "Failed to fetch sheet. Make sure it is shared publicly (anyone with the link can view)."
SHEET_SOURCE_NAME = "Google Sheet"

_GID_PATTERN = re.compile(r"gid=(\d+)")
_EDIT_PATTERN = re.compile(r"/edit.*$")


def resolve_export_url(url: str) -> str:
    """Rewrite a sheet URL into its CSV export endpoint."""
    export_url = str(url or "").strip()
    gid_match = _GID_PATTERN.search(export_url)
    gid = gid_match.group(1) if gid_match else "0"
    if "/edit" in export_url:
        return _EDIT_PATTERN.sub(f"/export?format=csv&gid={gid}", export_url)
    if "export?format=csv" in export_url:
        return export_url
    separator = "&" if "?" in export_url else "?"
    return f"{export_url}{separator}format=csv"


async def fetch_sheet_text(
    url: str,
    *,
    client: Optional[httpx.AsyncClient] = None,
) -> str:
    """Fetch the CSV export text for an already-resolved URL."""
    log_event("sheet.fetch.start", {"url": url})
    try:
        if client is None:
            async with httpx.AsyncClient(
                timeout=app_config.FETCH_TIMEOUT_SECONDS,
                follow_redirects=True,
            ) as owned_client:
                response = await owned_client.get(url)
        else:
            response = await client.get(url)
    except httpx.HTTPError as exc:
        log_event("sheet.fetch.error", {"url": url, "error": str(exc)}, level="error")
        raise FetchError(PUBLIC_SHEET_HINT) from exc

    if not response.is_success:
        log_event(
            "sheet.fetch.error",
            {"url": url, "status_code": response.status_code},
            level="error",
        )
        raise FetchError(PUBLIC_SHEET_HINT, status_code=response.status_code)

    log_event("sheet.fetch.done", {"url": url, "bytes": len(response.content)})
    return response.text


async def load_public_sheet(
    url: str,
    *,
    client: Optional[httpx.AsyncClient] = None,
) -> Tuple[Table, str]:
    """Resolve, fetch and normalize a published sheet."""
    export_url = resolve_export_url(url)
    text = await fetch_sheet_text(export_url, client=client)
    # pandas 파싱은 이벤트 루프 밖에서 실행한다
    table = await asyncio.to_thread(
        normalize,
        TableSource(kind=SourceKind.FETCHED_TEXT, payload=text, name=SHEET_SOURCE_NAME),
    )
    return table, SHEET_SOURCE_NAME
