import logging
import uuid

import fastapi
from sqlalchemy.ext.asyncio import AsyncSession as SQLAlchemyAsyncSession

from smartwords.api.dependencies.auth import get_current_user
from smartwords.api.dependencies.provider import get_sentence_provider
from smartwords.api.dependencies.session import get_async_session
from smartwords.models.db.user import User
from smartwords.models.db.vocabulary_set import CEFRLevel
from smartwords.models.schemas.generation import GenerationCreate, GenerationListResponse, GenerationResult
from smartwords.models.schemas.sets import (
    SetCreate,
    SetDetail,
    SetSortOrder,
    SetSummary,
    SetsListResponse,
    SetUpdate,
    WordDeleteResponse,
    WordOut,
    WordsAdd,
    WordsAddResponse,
    WordUpdate,
)
from smartwords.services.generation import GenerationService
from smartwords.services.openrouter import OpenRouterClient
from smartwords.services.sets import SetsService
from smartwords.utilities.exceptions.domain import ValidationFailed

logger = logging.getLogger(__name__)

router = fastapi.APIRouter(prefix="/sets", tags=["sets"])

MAX_IDEMPOTENCY_KEY_LENGTH = 255


@router.post(
    path="",
    name="sets:create",
    response_model=SetSummary,
    status_code=fastapi.status.HTTP_201_CREATED,
    summary="Create a vocabulary set with its first words",
)
async def create_set(
    payload: SetCreate,
    current_user: User = fastapi.Depends(get_current_user),
    session: SQLAlchemyAsyncSession = fastapi.Depends(get_async_session),
) -> SetSummary:
    return await SetsService(session).create_set(current_user.id, payload)


@router.get(
    path="",
    name="sets:list",
    response_model=SetsListResponse,
    status_code=fastapi.status.HTTP_200_OK,
    summary="List the caller's sets with cursor pagination",
)
async def list_sets(
    search: str | None = fastapi.Query(default=None, max_length=100, description="Case-insensitive name prefix"),
    level: CEFRLevel | None = fastapi.Query(default=None),
    cursor: str | None = fastapi.Query(default=None, description="Opaque `sortKey|id` cursor from a previous page"),
    limit: int = fastapi.Query(default=10, ge=1, le=50),
    sort: SetSortOrder = fastapi.Query(default=SetSortOrder.CREATED_AT_DESC),
    current_user: User = fastapi.Depends(get_current_user),
    session: SQLAlchemyAsyncSession = fastapi.Depends(get_async_session),
) -> SetsListResponse:
    return await SetsService(session).list_sets(
        current_user.id, search=search, level=level, cursor=cursor, limit=limit, sort=sort
    )


@router.get(
    path="/{set_id}",
    name="sets:get",
    response_model=SetDetail,
    status_code=fastapi.status.HTTP_200_OK,
)
async def get_set(
    set_id: uuid.UUID,
    current_user: User = fastapi.Depends(get_current_user),
    session: SQLAlchemyAsyncSession = fastapi.Depends(get_async_session),
) -> SetDetail:
    return await SetsService(session).get_set(current_user.id, set_id)


@router.patch(
    path="/{set_id}",
    name="sets:update",
    response_model=SetDetail,
    status_code=fastapi.status.HTTP_200_OK,
    summary="Rename a set, change its level or replace its words",
    description=(
        "Words listed with an `id` are updated, words without one are added and words of the set that are "
        "not listed are removed. Replacing words is refused while an exercise session is active."
    ),
)
async def update_set(
    set_id: uuid.UUID,
    payload: SetUpdate,
    current_user: User = fastapi.Depends(get_current_user),
    session: SQLAlchemyAsyncSession = fastapi.Depends(get_async_session),
) -> SetDetail:
    return await SetsService(session).update_set(current_user.id, set_id, payload)


@router.delete(
    path="/{set_id}",
    name="sets:delete",
    status_code=fastapi.status.HTTP_204_NO_CONTENT,
    response_class=fastapi.Response,
)
async def delete_set(
    set_id: uuid.UUID,
    current_user: User = fastapi.Depends(get_current_user),
    session: SQLAlchemyAsyncSession = fastapi.Depends(get_async_session),
) -> fastapi.Response:
    await SetsService(session).delete_set(current_user.id, set_id)
    return fastapi.Response(status_code=fastapi.status.HTTP_204_NO_CONTENT)


@router.post(
    path="/{set_id}/words",
    name="sets:add-words",
    response_model=WordsAddResponse,
    status_code=fastapi.status.HTTP_201_CREATED,
)
async def add_words(
    set_id: uuid.UUID,
    payload: WordsAdd,
    current_user: User = fastapi.Depends(get_current_user),
    session: SQLAlchemyAsyncSession = fastapi.Depends(get_async_session),
) -> WordsAddResponse:
    return await SetsService(session).add_words(current_user.id, set_id, payload)


@router.patch(
    path="/{set_id}/words/{word_id}",
    name="sets:update-word",
    response_model=WordOut,
    status_code=fastapi.status.HTTP_200_OK,
)
async def update_word(
    set_id: uuid.UUID,
    word_id: uuid.UUID,
    payload: WordUpdate,
    current_user: User = fastapi.Depends(get_current_user),
    session: SQLAlchemyAsyncSession = fastapi.Depends(get_async_session),
) -> WordOut:
    return await SetsService(session).update_word(current_user.id, set_id, word_id, payload)


@router.delete(
    path="/{set_id}/words/{word_id}",
    name="sets:delete-word",
    response_model=WordDeleteResponse,
    status_code=fastapi.status.HTTP_200_OK,
)
async def delete_word(
    set_id: uuid.UUID,
    word_id: uuid.UUID,
    current_user: User = fastapi.Depends(get_current_user),
    session: SQLAlchemyAsyncSession = fastapi.Depends(get_async_session),
) -> WordDeleteResponse:
    return await SetsService(session).delete_word(current_user.id, set_id, word_id)


@router.post(
    path="/{set_id}/generate",
    name="sets:generate",
    response_model=GenerationResult,
    status_code=fastapi.status.HTTP_200_OK,
    summary="Generate practice sentences for the set's words",
    description=(
        "Requires an `X-Idempotency-Key` header. Repeating a request with the same key returns the stored "
        "result without calling the model again. Each new generation counts against the daily limit."
    ),
)
async def generate_sentences(
    set_id: uuid.UUID,
    payload: GenerationCreate,
    idempotency_key: str | None = fastapi.Header(default=None, alias="X-Idempotency-Key"),
    request_id: str | None = fastapi.Header(default=None, alias="X-Request-Id"),
    current_user: User = fastapi.Depends(get_current_user),
    session: SQLAlchemyAsyncSession = fastapi.Depends(get_async_session),
    provider: OpenRouterClient = fastapi.Depends(get_sentence_provider),
) -> GenerationResult:
    key = (idempotency_key or "").strip()
    if not key or len(key) > MAX_IDEMPOTENCY_KEY_LENGTH:
        raise ValidationFailed(
            "MISSING_IDEMPOTENCY_KEY", "X-Idempotency-Key header is required and must be at most 255 characters"
        )
    logger.info("Generation requested for set %s (request_id=%s)", set_id, request_id)
    service = GenerationService(session, provider=provider)
    return await service.trigger_generation(current_user.id, set_id, payload, key)


@router.get(
    path="/{set_id}/generations",
    name="sets:list-generations",
    response_model=GenerationListResponse,
    status_code=fastapi.status.HTTP_200_OK,
)
async def list_generations(
    set_id: uuid.UUID,
    current_user: User = fastapi.Depends(get_current_user),
    session: SQLAlchemyAsyncSession = fastapi.Depends(get_async_session),
    provider: OpenRouterClient = fastapi.Depends(get_sentence_provider),
) -> GenerationListResponse:
    return await GenerationService(session, provider=provider).list_generations(current_user.id, set_id)
