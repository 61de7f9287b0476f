"""Ingest error taxonomy.

Empty tables are a valid result, so there is no empty-table error.
"""
from __future__ import annotations


class IngestError(Exception):
    """Base class for table ingestion failures."""

    code = "INGEST_ERROR"

    def __init__(self, message: str) -> None:
        super().__init__(message)
        self.message = message


class ParseError(IngestError):
    """Malformed delimited text or an unreadable spreadsheet."""

    code = "PARSE_ERROR"


class UnsupportedFormatError(IngestError):
    """File type outside the supported set."""

    code = "UNSUPPORTED_FORMAT"

    def __init__(self, extension: str) -> None:
        super().__init__(f"unsupported file type: {extension or '(none)'}")
        self.extension = extension


class FetchError(IngestError):
    """Remote sheet unreachable or not public."""

    code = "FETCH_FAILED"

    def __init__(self, message: str, *, status_code: int | None = None) -> None:
        super().__init__(message)
        self.status_code = status_code
