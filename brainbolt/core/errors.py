"""
Error taxonomy for the answer pipeline.

Every error carries the HTTP status the API layer answers with, so routes
never translate exceptions by hand.
"""


class QuizError(Exception):
    status_code = 500

    def __init__(self, detail: str = ""):
        super().__init__(detail)
        self.detail = detail or self.__class__.__name__


class ValidationError(QuizError):
    """Malformed input, rejected before any store access."""
    status_code = 400


class RateLimited(QuizError):
    status_code = 429


class NotFound(QuizError):
    status_code = 404


class StateNotFound(NotFound):
    pass


class QuestionNotFound(NotFound):
    pass


class VersionConflict(QuizError):
    """
    The caller echoed a state_version that no longer matches the durable row.

    ``state`` is the authoritative snapshot after any decay that was
    committed while checking, so callers can resync without another read.
    """
    status_code = 409

    def __init__(self, expected_version: int, current_version: int, state=None):
        super().__init__(
            f"State version mismatch: expected {expected_version}, current {current_version}"
        )
        self.expected_version = expected_version
        self.current_version = current_version
        self.state = state


class TransientStoreError(QuizError):
    """Durable store unavailable. Not retried internally."""
    status_code = 503
