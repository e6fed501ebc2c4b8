import logging
from typing import Optional

from brainbolt.core.config import IDEMPOTENCY_TTL_SECONDS

logger = logging.getLogger(__name__)


def idempotency_key(token: str) -> str:
    return f"idemp:{token}"


def check_idempotency(cache, token: str) -> Optional[dict]:
    stored = cache.get_json(idempotency_key(token))
    if stored is not None:
        logger.info("[IDEMPOTENCY] replaying stored response for token=%s", token)
    return stored


def store_idempotency(cache, token: str, response: dict) -> bool:
    """
    Remember *response* for *token*. Only called after the answer
    transaction committed. The first stored response wins, so a token
    never replays two different payloads.
    """
    return cache.set_json(idempotency_key(token), response, IDEMPOTENCY_TTL_SECONDS, nx=True)
