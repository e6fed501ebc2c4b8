import logging
from datetime import datetime

from brainbolt.core.config import RATE_LIMIT_PER_MINUTE, RATE_LIMIT_WINDOW_SECONDS
from brainbolt.core.errors import RateLimited

logger = logging.getLogger(__name__)


def rate_key(user_id: str, window: int) -> str:
    return f"rate:{user_id}:{window}"


def check_rate_limit(cache, user_id: str, now: datetime) -> None:
    """
    Fixed-window throttle on answer submissions.

    The counter key is scoped to the user and the current window and
    expires when the window ends. If the cache cannot count, the
    submission is admitted.
    """
    epoch = int(now.timestamp())
    window = epoch // RATE_LIMIT_WINDOW_SECONDS
    remaining = (window + 1) * RATE_LIMIT_WINDOW_SECONDS - epoch

    count = cache.incr_window(rate_key(user_id, window), max(remaining, 1))
    if count is None:
        return

    if count > RATE_LIMIT_PER_MINUTE:
        logger.info("[RATE] user=%s throttled count=%s window=%s", user_id, count, window)
        raise RateLimited("Rate limit exceeded")
