from typing import Optional

from pydantic import BaseModel, Field, StrictInt


class AnswerSubmission(BaseModel):
    user_id: str = Field(..., min_length=1)
    question_id: str = Field(..., min_length=1)
    answer: str = Field(..., min_length=1)
    state_version: StrictInt
    idempotency_token: Optional[str] = Field(default=None, max_length=255)
