"""Agentboard Backend Configuration."""
import os
from pathlib import Path


def _env_bool(name: str, default: bool = False) -> bool:
    value = os.getenv(name)
    if value is None:
        return default
    return value.strip().lower() in {"1", "true", "yes", "on"}


def _env_int(name: str, default: int) -> int:
    value = os.getenv(name)
    if value is None:
        return default
    try:
        return int(value)
    except ValueError:
        return default


def _env_path(name: str, default: Path) -> Path:
    value = os.getenv(name)
    if not value or not value.strip():
        return default
    return Path(value.strip()).expanduser()


# Session log store written by the external session runner
PROJECTS_DIR = _env_path("AGENTBOARD_PROJECTS_DIR", Path.home() / ".claude" / "projects")

# Service data (chat metadata store)
DATA_DIR = _env_path("AGENTBOARD_DATA_DIR", Path.home() / ".agentboard")
CHATS_DIR = _env_path("AGENTBOARD_CHATS_DIR", DATA_DIR / "chats")

# Caches and external processes
REPO_STATUS_TTL_SECONDS = _env_int("AGENTBOARD_REPO_STATUS_TTL_SECONDS", 5 * 60)
GIT_TIMEOUT_SECONDS = _env_int("AGENTBOARD_GIT_TIMEOUT_SECONDS", 5)

# Session listing
FAST_LISTING_ENABLED = _env_bool("AGENTBOARD_FAST_LISTING_ENABLED", True)
FIND_TIMEOUT_SECONDS = _env_int("AGENTBOARD_FIND_TIMEOUT_SECONDS", 15)
PREVIEW_MAX_CHARS = _env_int("AGENTBOARD_PREVIEW_MAX_CHARS", 200)

# Observability
OTEL_ENABLED = _env_bool("AGENTBOARD_OTEL_ENABLED", False)
OTEL_ENDPOINT = os.getenv("AGENTBOARD_OTEL_ENDPOINT", "http://localhost:4318")
OTEL_SERVICE_NAME = os.getenv("AGENTBOARD_OTEL_SERVICE_NAME", "agentboard-backend")
PROM_PORT = _env_int("AGENTBOARD_PROM_PORT", 9464)

# Server settings
HOST = os.getenv("AGENTBOARD_HOST", "0.0.0.0")
PORT = _env_int("AGENTBOARD_PORT", 8000)

# CORS
FRONTEND_ORIGIN = os.getenv("AGENTBOARD_FRONTEND_ORIGIN", "http://localhost:3000")
