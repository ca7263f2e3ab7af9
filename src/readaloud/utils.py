"""Small utilities shared across modules."""

from __future__ import annotations

from datetime import datetime
from pathlib import Path
import re
import time


_SLUG_RE = re.compile(r"[^\w]+", re.UNICODE)


def slugify(value: str) -> str:
    cleaned = _SLUG_RE.sub("-", value.strip().lower())
    cleaned = cleaned.strip("-_")
    return cleaned or "book"


def generate_run_id() -> str:
    return datetime.now().strftime("%Y%m%d-%H%M%S")


def now_ms() -> int:
    return int(time.time() * 1000)


def ensure_dir(path: Path) -> Path:
    path.mkdir(parents=True, exist_ok=True)
    return path


def normalize_newlines(text: str) -> str:
    return text.replace("\r\n", "\n").replace("\r", "\n")
