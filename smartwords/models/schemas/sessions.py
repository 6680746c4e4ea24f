import datetime
import typing
import uuid

import pydantic

from smartwords.models.schemas.base import BaseSchemaModel


class SessionCreate(BaseSchemaModel):
    set_id: uuid.UUID
    generation_id: uuid.UUID | None = None
    # Only translation drills exist for now
    mode: typing.Literal["translate"]


class SessionCreated(BaseSchemaModel):
    id: uuid.UUID
    set_id: uuid.UUID
    generation_id: uuid.UUID
    started_at: datetime.datetime
    pending_sentences: int


class LatestAttempt(BaseSchemaModel):
    attempt_no: int
    is_correct: bool


class SessionSentence(BaseSchemaModel):
    sentence_id: uuid.UUID
    pl_text: str
    latest_attempt: LatestAttempt | None = None


class SessionProgress(BaseSchemaModel):
    attempted: int
    correct: int
    remaining: int


class SessionDetail(BaseSchemaModel):
    id: uuid.UUID
    set_id: uuid.UUID
    generation_id: uuid.UUID
    started_at: datetime.datetime
    finished_at: datetime.datetime | None
    progress: SessionProgress
    sentences: list[SessionSentence]


class SessionFinish(BaseSchemaModel):
    # e.g. "all_sentences_answered", "abandoned", "manual_exit"
    completed_reason: str = pydantic.Field(min_length=1, max_length=100)


class SessionFinished(BaseSchemaModel):
    message: str = "SESSION_FINISHED"
    finished_at: datetime.datetime


class AttemptCreate(BaseSchemaModel):
    sentence_id: uuid.UUID
    answer_raw: str = pydantic.Field(max_length=500)


class AttemptFeedback(BaseSchemaModel):
    highlight: list[str] = pydantic.Field(default_factory=list)
    explanation: str | None = None


class AttemptOut(BaseSchemaModel):
    attempt_id: uuid.UUID
    attempt_no: int
    is_correct: bool
    answer_raw: str
    answer_norm: str
    checked_at: datetime.datetime
    feedback: AttemptFeedback
