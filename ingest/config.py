# ingest/config.py
"""
Runtime configuration for the ingestion pipeline and the portal.

Values come from the process environment, after loading ``.env`` at the repo
root (so TESSERACT_CMD / POPPLER_PATH / DB path work without touching PATH).
"""
from __future__ import annotations

import os
from pathlib import Path

from dotenv import load_dotenv

# --- Paths ---
ROOT = Path(__file__).resolve().parents[1]
load_dotenv(ROOT / ".env")


def _env_int(name: str, default: int) -> int:
    raw = os.getenv(name)
    if raw is None or not raw.strip():
        return default
    try:
        return int(raw)
    except ValueError:
        return default


def _env_float(name: str, default: float) -> float:
    raw = os.getenv(name)
    if raw is None or not raw.strip():
        return default
    try:
        return float(raw)
    except ValueError:
        return default


DB_PATH = Path(os.getenv("MENU_INGEST_DB_PATH") or (ROOT / "ingest" / "menu_ingest.db"))

# --- Import job runner ---
# Plans with this many CREATE+UPDATE actions (or more) run as a background job.
ASYNC_IMPORT_THRESHOLD = _env_int("ASYNC_IMPORT_THRESHOLD", 50)

# --- Reconciliation ---
FUZZY_MATCH_THRESHOLD = _env_float("FUZZY_MATCH_THRESHOLD", 0.82)

# --- Parse session ---
LOW_CONFIDENCE_NOTE_THRESHOLD = _env_int("LOW_CONFIDENCE_NOTE_THRESHOLD", 40)
DEFAULT_MENU_NAME = "Imported Menu"
UNCATEGORIZED = "Uncategorized"

# --- Upload / item limits ---
MAX_UPLOAD_MB = _env_int("MAX_UPLOAD_MB", 20)
MAX_ITEM_NAME_LENGTH = _env_int("MAX_ITEM_NAME_LENGTH", 120)
MAX_ITEM_DESCRIPTION_LENGTH = _env_int("MAX_ITEM_DESCRIPTION_LENGTH", 1000)

# --- OCR fallback for scanned PDFs ---
TESSERACT_CMD = os.getenv("TESSERACT_CMD")
POPPLER_PATH = os.getenv("POPPLER_PATH") or None
TESSERACT_LANG = os.getenv("TESSERACT_LANG") or "eng"
TESSERACT_CONFIG = os.getenv("TESSERACT_CONFIG") or "--oem 1 --psm 6"

# --- Portal ---
SECRET_KEY = os.getenv("SECRET_KEY") or "dev-secret-change-me"
