import os

from dotenv import load_dotenv

from projection_models import DEFAULT_MAX_OPTIONS, MAX_OPTIONS_LIMIT

load_dotenv()

# ── Paths ─────────────────────────────────────────────────────────────────────
BACKEND_DIR = os.path.dirname(os.path.abspath(__file__))
PROJECT_ROOT = os.path.dirname(BACKEND_DIR)
_DEFAULT_DATA_PATH = os.path.join(PROJECT_ROOT, "data")

_TRUTHY = {"true", "1", "yes", "y"}


def env_bool(name: str, default: bool = False) -> bool:
    raw = os.environ.get(name)
    if raw is None or not raw.strip():
        return default
    return raw.strip().lower() in _TRUTHY


def env_float(name: str, default: float, minimum: float = 0.0) -> float:
    raw = os.environ.get(name, "")
    try:
        return max(minimum, float(raw))
    except (TypeError, ValueError):
        return default


def env_int(name: str, default: int, minimum: int = 1, maximum: int | None = None) -> int:
    raw = os.environ.get(name, "")
    try:
        value = max(minimum, int(raw))
    except (TypeError, ValueError):
        return default
    return value if maximum is None else min(maximum, value)


def env_path(name: str, default: str) -> str:
    raw = os.environ.get(name)
    if not raw:
        return default
    if not os.path.isabs(raw):
        return os.path.join(PROJECT_ROOT, raw)
    return raw


def load_settings() -> dict:
    """Read settings from the environment at call time (tests patch os.environ)."""
    data_path = env_path("DATA_PATH", _DEFAULT_DATA_PATH)
    return {
        "use_stubs": env_bool("USE_STUBS", False),
        "use_backup_fallback": env_bool("USE_BACKUP_FALLBACK", False),
        "ucn_base_hawaii": os.environ.get("UCN_BASE_HAWAII", "").rstrip("/"),
        "ucn_base_puclaro": os.environ.get("UCN_BASE_PUCLARO", "").rstrip("/"),
        "hawaii_auth": os.environ.get("HAWAII_AUTH", ""),
        "data_path": data_path,
        "backup_path": env_path("BACKUP_PATH", os.path.join(data_path, "backup")),
        "offers_path": env_path("OFFERS_PATH", ""),
        "request_timeout_s": env_float("REQUEST_TIMEOUT_S", 10.0, minimum=0.1),
        "slow_request_log_ms": env_float("SLOW_REQUEST_LOG_MS", 750.0, minimum=0.0),
        "default_max_options": env_int(
            "DEFAULT_MAX_OPTIONS", DEFAULT_MAX_OPTIONS, minimum=1, maximum=MAX_OPTIONS_LIMIT
        ),
    }
