import datetime
import enum
import typing
import uuid

import pydantic

from smartwords.models.db.vocabulary_set import CEFRLevel
from smartwords.models.schemas.base import BaseSchemaModel

PolishText = typing.Annotated[str, pydantic.StringConstraints(strip_whitespace=True, min_length=1, max_length=200)]
# Trimmed before length checks so whitespace-only values are rejected
EnglishText = typing.Annotated[str, pydantic.StringConstraints(strip_whitespace=True, min_length=1, max_length=200)]
SetName = typing.Annotated[str, pydantic.StringConstraints(strip_whitespace=True, min_length=1, max_length=100)]


class SetSortOrder(str, enum.Enum):
    CREATED_AT_DESC = "created_at_desc"
    NAME_ASC = "name_asc"


# ------------------------------
# Commands
# ------------------------------


class WordCreate(BaseSchemaModel):
    pl: PolishText
    en: EnglishText


class WordUpsert(WordCreate):
    id: uuid.UUID | None = None


class SetCreate(BaseSchemaModel):
    name: SetName
    level: CEFRLevel
    timezone: str | None = pydantic.Field(default=None, min_length=1)
    words: list[WordCreate] = pydantic.Field(min_length=1, max_length=5)


class SetUpdate(BaseSchemaModel):
    name: SetName | None = None
    level: CEFRLevel | None = None
    words: list[WordUpsert] | None = pydantic.Field(default=None, min_length=1, max_length=5)

    @pydantic.model_validator(mode="after")
    def _require_one_field(self) -> "SetUpdate":
        if self.name is None and self.level is None and self.words is None:
            raise ValueError("At least one field (name, level, or words) must be provided")
        return self


class WordsAdd(BaseSchemaModel):
    words: list[WordCreate] = pydantic.Field(min_length=1, max_length=5)


class WordUpdate(BaseSchemaModel):
    pl: PolishText | None = None
    en: EnglishText | None = None

    @pydantic.model_validator(mode="after")
    def _require_one_field(self) -> "WordUpdate":
        if self.pl is None and self.en is None:
            raise ValueError("At least one field (pl or en) must be provided")
        return self


# ------------------------------
# Responses
# ------------------------------


class WordOut(BaseSchemaModel):
    id: uuid.UUID
    pl: str
    en: str
    position: int


class SetSummary(BaseSchemaModel):
    id: uuid.UUID
    name: str
    level: CEFRLevel
    words_count: int
    created_at: datetime.datetime


class GenerationMeta(BaseSchemaModel):
    id: uuid.UUID
    occurred_at: datetime.datetime


class SetDetail(SetSummary):
    updated_at: datetime.datetime
    user_id: uuid.UUID
    words: list[WordOut]
    latest_generation: GenerationMeta | None = None


class Pagination(BaseSchemaModel):
    next_cursor: str | None = None
    count: int


class SetsListResponse(BaseSchemaModel):
    data: list[SetSummary]
    pagination: Pagination


class WordsAddResponse(BaseSchemaModel):
    added: list[WordOut]
    words_count: int


class WordDeleteResponse(BaseSchemaModel):
    message: str = "WORD_DELETED"
    words_count: int
