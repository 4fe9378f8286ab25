import os


def _flag(name: str, default: str) -> bool:
    return (os.getenv(name) or default).strip().lower() in ("1", "true", "yes", "on")


SERVICE_NAME = "negotiation-service"

DATABASE_URL = os.getenv("DATABASE_URL") or "sqlite+aiosqlite:///./fixmate.db"
DB_ECHO = _flag("DB_ECHO", "false")
DB_AUTO_CREATE = _flag("DB_AUTO_CREATE", "true")

JWT_SECRET = os.getenv("JWT_SECRET")
JWT_ALGORITHM = os.getenv("JWT_ALGORITHM") or "HS256"

RABBIT_URL = os.getenv("RABBIT_URL")  # optional, events are disabled without it
EXCHANGE_NAME = "domain_events"

GEMINI_API_KEY = os.getenv("GEMINI_API_KEY")
GEMINI_MODEL = os.getenv("GEMINI_MODEL") or "gemini-2.0-flash"
GEMINI_API_BASE = os.getenv("GEMINI_API_BASE") or "https://generativelanguage.googleapis.com/v1beta"
ESTIMATOR_TIMEOUT_SECONDS = float(os.getenv("ESTIMATOR_TIMEOUT_SECONDS") or "8.0")

LOG_LEVEL = os.getenv("LOG_LEVEL") or "INFO"
