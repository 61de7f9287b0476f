"""Structured logging helpers for sheetviz.

- 모든 이벤트는 한 줄 JSON 으로 "sheetviz" 로거에 남긴다.
- MONGODB_URI 가 설정되어 있으면 같은 이벤트를 app_events 컬렉션에도 저장한다.
"""
from __future__ import annotations

import json
import logging
from datetime import datetime, timezone
from typing import Any, Dict, Optional
from uuid import uuid4

from pymongo import MongoClient
from pymongo.collection import Collection
from pymongo.errors import PyMongoError

from sheetviz.config import app_config

_LOGGER_NAME = "sheetviz"
_SERVICE_NAME = "sheetviz"
_LOG_FORMAT = "%(asctime)s | %(levelname)s | %(name)s | %(message)s"


def get_logger() -> logging.Logger:
    """Return the shared sheetviz logger."""
    logger = logging.getLogger(_LOGGER_NAME)
    if not logger.handlers:
        handler = logging.StreamHandler()
        handler.setFormatter(logging.Formatter(_LOG_FORMAT))
        logger.addHandler(handler)
        logger.setLevel(logging.INFO)
    return logger


def new_request_id() -> str:
    """Request id shared by every event of one upload/fetch/mapping call."""
    return f"sv-{uuid4().hex[:12]}"


class _MongoEventSink:
    """Lazily connects once; a failed or unconfigured sink stays off for the process."""

    collection_name = "app_events"

    def __init__(self) -> None:
        self._collection: Optional[Collection] = None
        self._resolved = False

    def _connect(self) -> Optional[Collection]:
        if not app_config.MONGODB_URI:
            return None
        try:
            client = MongoClient(app_config.MONGODB_URI, serverSelectionTimeoutMS=2000)
            collection = client[app_config.MONGODB_DB][self.collection_name]
            collection.create_index([("ts", 1)])
            collection.create_index([("event", 1), ("ts", -1)])
        except PyMongoError as exc:
            get_logger().warning("event sink disabled: %s", exc)
            return None
        return collection

    def write(self, data: Dict[str, Any]) -> None:
        if not self._resolved:
            self._collection = self._connect()
            self._resolved = True
        if self._collection is None:
            return
        # BSON 으로 못 쓰는 값(날짜, 사용자 객체 등)은 문자열로 바꾼다
        document = json.loads(json.dumps(data, ensure_ascii=False, default=str))
        try:
            self._collection.insert_one(document)
        except PyMongoError as exc:
            get_logger().warning("event sink write failed: %s", exc)


_EVENT_SINK = _MongoEventSink()


def log_event(
    event: str,
    payload: Dict[str, Any] | None = None,
    *,
    level: str = "info",
) -> None:
    """Emit one structured event as a JSON log line (and to the event sink)."""
    level = level.lower()
    data: Dict[str, Any] = {
        "event": event,
        "ts": datetime.now(timezone.utc).isoformat(),
        "service": _SERVICE_NAME,
        "level": level,
    }
    data.update(payload or {})

    logger = get_logger()
    getattr(logger, level, logger.info)("%s", json.dumps(data, ensure_ascii=False, default=str))
    _EVENT_SINK.write(data)
