"""Configuration for the OCR order reconciler."""

import os
from pathlib import Path
from dotenv import load_dotenv

load_dotenv()

BASE_DIR = Path(__file__).parent.parent


def _env_bool(name: str, default: bool) -> bool:
    raw = os.getenv(name)
    if raw is None:
        return default
    return raw.strip().lower() not in ('0', 'false', 'no', 'off', '')


def _env_path(name: str, default: str) -> Path:
    path = Path(os.getenv(name, default))
    return BASE_DIR / path if not path.is_absolute() else path


# Paths
CATALOG_PATH = _env_path("CATALOG_PATH", "data/catalog.json")
DATABASE_PATH = _env_path("DATABASE_PATH", "data/orders.db")
EXPORT_CSV_PATH = _env_path("EXPORT_CSV_PATH", "data/exports/orders.csv")

# Catalog references (accepts 6,7,8,9 by default; REFERENCE_LENGTH kept for single-length setups)
REFERENCE_LENGTHS = tuple(
    int(part.strip())
    for part in os.getenv("REFERENCE_LENGTHS", os.getenv("REFERENCE_LENGTH", "6,7,8,9")).split(",")
    if part.strip().isdigit()
)

# Matching
COLOR_MIN_LENGTH = int(os.getenv("COLOR_MIN_LENGTH", "4"))
MIN_PRICE_VALUE = float(os.getenv("MIN_PRICE_VALUE", "10"))
MAX_REFERENCE_DISTANCE = int(os.getenv("MAX_REFERENCE_DISTANCE", "1"))
MAX_MODEL_DISTANCE = int(os.getenv("MAX_MODEL_DISTANCE", "2"))
MAX_QUANTITY = int(os.getenv("MAX_QUANTITY", "10"))

# A confusable-character hit (distance 0.5) still flags the row for review unless disabled
REVIEW_CONFUSABLE_MATCHES = _env_bool("REVIEW_CONFUSABLE_MATCHES", True)

# Text discovery
ENABLE_TEXT_DISCOVERY = _env_bool("ENABLE_TEXT_DISCOVERY", True)
DISCOVERY_SCAN_BUDGET = int(os.getenv("DISCOVERY_SCAN_BUDGET", "200"))

# Export retry loop
MAX_ATTEMPTS_CEILING = 10
ENABLE_VALIDATION_AGENT = _env_bool("ENABLE_VALIDATION_AGENT", True)
_raw_attempts = int(os.getenv("VALIDATION_MAX_ATTEMPTS", "3"))
VALIDATION_MAX_ATTEMPTS = min(_raw_attempts, MAX_ATTEMPTS_CEILING) if _raw_attempts > 0 else 3

# LLM (Groq, OpenAI-compatible chat completions)
LLM_PROVIDER = os.getenv("LLM_PROVIDER", "groq")
GROQ_API_KEY = os.getenv("GROQ_API_KEY")
GROQ_MODEL = os.getenv("GROQ_MODEL")
GROQ_BASE_URL = os.getenv("GROQ_BASE_URL", "https://api.groq.com/openai/v1/chat/completions")
GROQ_TIMEOUT = int(os.getenv("GROQ_TIMEOUT", "60"))
PROMPT_CATALOG_LIMIT = int(os.getenv("PROMPT_CATALOG_LIMIT", "60"))

# Export targets
EXPORT_TARGET = os.getenv("EXPORT_TARGET", "sheets")  # or "csv"
ENABLE_GOOGLE_SHEETS = _env_bool("ENABLE_GOOGLE_SHEETS", False)
GOOGLE_SHEET_ID = os.getenv("GOOGLE_SHEET_ID")
GOOGLE_SHEETS_TAB_NAME = os.getenv("GOOGLE_SHEETS_TAB_NAME", "Sheet1")
GOOGLE_SHEETS_ACCESS_TOKEN = os.getenv("GOOGLE_SHEETS_ACCESS_TOKEN")
GOOGLE_SHEETS_API_BASE = os.getenv("GOOGLE_SHEETS_API_BASE", "https://sheets.googleapis.com/v4/spreadsheets")
AUTO_EXPORT_ON_PROCESS = _env_bool("AUTO_EXPORT_ON_PROCESS", False)

# API
API_HOST = os.getenv("API_HOST", "0.0.0.0")
API_PORT = int(os.getenv("API_PORT", "8000"))
MAX_UPLOAD_BYTES = int(os.getenv("MAX_UPLOAD_BYTES", str(12 * 1024 * 1024)))
UPLOAD_RATE_LIMIT = os.getenv("UPLOAD_RATE_LIMIT", "10/minute")
EXPORT_RATE_LIMIT = os.getenv("EXPORT_RATE_LIMIT", "20/minute")

# Logging
LOG_LEVEL = os.getenv("LOG_LEVEL", "INFO")
