import datetime
import uuid

import pydantic

from smartwords.models.schemas.base import BaseSchemaModel
from smartwords.models.schemas.sets import Pagination


class GenerationCreate(BaseSchemaModel):
    model_id: str = pydantic.Field(min_length=1, max_length=100)
    temperature: float = pydantic.Field(ge=0, le=2)
    prompt_version: str = pydantic.Field(min_length=1, max_length=20, pattern=r"^v\d+\.\d+\.\d+$")


class GeneratedSentence(BaseSchemaModel):
    sentence_id: uuid.UUID
    word_id: uuid.UUID | None
    pl_text: str
    target_en: str


class GenerationUsage(BaseSchemaModel):
    tokens_in: int
    tokens_out: int
    cost_usd: float
    remaining_generations_today: int


class GenerationResult(BaseSchemaModel):
    generation_id: uuid.UUID
    set_id: uuid.UUID
    occurred_at: datetime.datetime
    sentences: list[GeneratedSentence]
    usage: GenerationUsage


class GenerationListItem(BaseSchemaModel):
    id: uuid.UUID
    occurred_at: datetime.datetime
    model_id: str
    tokens_in: int
    tokens_out: int
    sentences_generated: int


class GenerationListResponse(BaseSchemaModel):
    data: list[GenerationListItem]
    pagination: Pagination
