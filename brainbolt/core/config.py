"""
Configuration constants for the quiz engine.
"""
import os
from pathlib import Path

# Load environment variables from .env file if it exists
try:
    from dotenv import load_dotenv
    env_path = Path(__file__).resolve().parent.parent.parent / '.env'
    load_dotenv(dotenv_path=env_path)
except ImportError:
    # python-dotenv not installed, read from os.environ directly
    pass


def _int_env(name: str, default: int) -> int:
    raw = os.getenv(name, "").strip()
    if not raw:
        return default
    try:
        return int(raw)
    except ValueError:
        print(f"[CONFIG] Ignoring non-integer {name}={raw!r}, using {default}", flush=True)
        return default


# Fast key-value cache (Redis). CACHE_ENABLED=0 runs every request straight
# against the durable store.
REDIS_URL = os.getenv("REDIS_URL", "redis://localhost:6379/0").strip()
CACHE_ENABLED = os.getenv("CACHE_ENABLED", "1").strip() not in ("0", "false", "no")

# Inactivity window after which streak/confidence decay (5 minutes)
INACTIVITY_DECAY_SECONDS = _int_env("INACTIVITY_DECAY_SECONDS", 5 * 60)

# Per-user answer throttling: fixed 60s windows
RATE_LIMIT_PER_MINUTE = _int_env("RATE_LIMIT_PER_MINUTE", 20)
RATE_LIMIT_WINDOW_SECONDS = _int_env("RATE_LIMIT_WINDOW_SECONDS", 60)

# Replay protection lifetime (24h)
IDEMPOTENCY_TTL_SECONDS = _int_env("IDEMPOTENCY_TTL_SECONDS", 60 * 60 * 24)

# Derived projection lifetimes
USER_STATE_TTL_SECONDS = _int_env("USER_STATE_TTL_SECONDS", 60 * 60)
METRICS_TTL_SECONDS = _int_env("METRICS_TTL_SECONDS", 30)
LEADERBOARD_TOP_TTL_SECONDS = _int_env("LEADERBOARD_TOP_TTL_SECONDS", 30)

# The cached top list holds this many rows; requests slice it.
LEADERBOARD_TOP_MAX = _int_env("LEADERBOARD_TOP_MAX", 100)

RECENT_PERFORMANCE_LIMIT = _int_env("RECENT_PERFORMANCE_LIMIT", 10)
