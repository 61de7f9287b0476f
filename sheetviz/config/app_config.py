from __future__ import annotations

import os
from pathlib import Path
from typing import List

from dotenv import load_dotenv

# Load project-level .env regardless of current working directory.
_DOTENV_PATH = Path(__file__).resolve().parents[2] / ".env"
load_dotenv(_DOTENV_PATH)


def _env_int(name: str, default: int, *, minimum: int = 1) -> int:
    raw = str(os.getenv(name, "")).strip()
    if not raw:
        return default
    try:
        value = int(raw)
    except ValueError:
        return default
    return max(minimum, value)


def _env_float(name: str, default: float, *, minimum: float = 0.0) -> float:
    raw = str(os.getenv(name, "")).strip()
    if not raw:
        return default
    try:
        value = float(raw)
    except ValueError:
        return default
    return max(minimum, value)


def _env_list(name: str, default: str) -> List[str]:
    return [item.strip() for item in os.getenv(name, default).split(",") if item.strip()]


# Upload / table limits
MAX_ROWS = _env_int("SHEETVIZ_MAX_ROWS", 10000)
MAX_UPLOAD_BYTES = _env_int("SHEETVIZ_MAX_UPLOAD_BYTES", 10 * 1024 * 1024)

# Public sheet fetch (the only network call)
FETCH_TIMEOUT_SECONDS = _env_float("SHEETVIZ_FETCH_TIMEOUT_SECONDS", 30.0, minimum=1.0)

# Plotly figure template
PLOT_TEMPLATE = str(os.getenv("SHEETVIZ_PLOT_TEMPLATE", "plotly_white")).strip() or "plotly_white"

# API
CORS_ALLOW_ORIGINS = _env_list("CORS_ALLOW_ORIGINS", "http://localhost:3000,http://127.0.0.1:3000")

# Optional MongoDB event sink
MONGODB_URI = str(os.getenv("MONGODB_URI", "")).strip()
MONGODB_DB = str(os.getenv("MONGODB_DB", "sheetviz")).strip() or "sheetviz"
