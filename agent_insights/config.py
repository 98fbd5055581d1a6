"""Agent Insights backend configuration."""
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


HOME_DIR = Path.home()

# Source roots, one per supported assistant
CLAUDE_DIR = _env_path("INSIGHTS_CLAUDE_DIR", HOME_DIR / ".claude")
CLAUDE_PROJECTS_DIR = CLAUDE_DIR / "projects"
CLAUDE_HISTORY_FILE = CLAUDE_DIR / "history.jsonl"
CODEX_DIR = _env_path("INSIGHTS_CODEX_DIR", HOME_DIR / ".codex")
CODEX_SESSIONS_DIR = CODEX_DIR / "sessions"
CURSOR_DIR = _env_path("INSIGHTS_CURSOR_DIR", HOME_DIR / ".cursor")
CURSOR_PROJECTS_DIR = CURSOR_DIR / "projects"

# Logging
LOG_LEVEL = os.getenv("INSIGHTS_LOG_LEVEL", "INFO").strip().upper() or "INFO"

# Observability
OTEL_ENABLED = _env_bool("INSIGHTS_OTEL_ENABLED", False)
OTEL_ENDPOINT = os.getenv("INSIGHTS_OTEL_ENDPOINT", "http://localhost:4318")
OTEL_SERVICE_NAME = os.getenv("INSIGHTS_OTEL_SERVICE_NAME", "agent-insights")
PROM_PORT = _env_int("INSIGHTS_PROM_PORT", 9464)

# Auto refresh on file changes
WATCH_ENABLED = _env_bool("INSIGHTS_WATCH_ENABLED", False)

# Summary shaping
CONVERSATION_METRICS_LIMIT = _env_int("INSIGHTS_CONVERSATION_METRICS_LIMIT", 20)
SEARCH_RESULTS_LIMIT = _env_int("INSIGHTS_SEARCH_RESULTS_LIMIT", 50)

# Server settings
HOST = os.getenv("INSIGHTS_HOST", "127.0.0.1")
PORT = _env_int("INSIGHTS_PORT", 3001)

# CORS
FRONTEND_ORIGIN = os.getenv("INSIGHTS_FRONTEND_ORIGIN", "http://localhost:5173")
