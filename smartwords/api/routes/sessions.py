import uuid

import fastapi
from sqlalchemy.ext.asyncio import AsyncSession as SQLAlchemyAsyncSession

from smartwords.api.dependencies.auth import get_current_user
from smartwords.api.dependencies.session import get_async_session
from smartwords.models.db.user import User
from smartwords.models.schemas.sessions import (
    AttemptCreate,
    AttemptOut,
    SessionCreate,
    SessionCreated,
    SessionDetail,
    SessionFinish,
    SessionFinished,
)
from smartwords.services.sessions import SessionService

router = fastapi.APIRouter(prefix="/sessions", tags=["sessions"])


@router.post(
    path="",
    name="sessions:start",
    response_model=SessionCreated,
    status_code=fastapi.status.HTTP_201_CREATED,
    summary="Start an exercise session",
    description="Uses the given generation, or the latest generation of the set when none is given.",
)
async def start_session(
    payload: SessionCreate,
    current_user: User = fastapi.Depends(get_current_user),
    session: SQLAlchemyAsyncSession = fastapi.Depends(get_async_session),
) -> SessionCreated:
    return await SessionService(session).start_session(current_user.id, payload)


@router.get(
    path="/{session_id}",
    name="sessions:get",
    response_model=SessionDetail,
    status_code=fastapi.status.HTTP_200_OK,
)
async def get_session(
    session_id: uuid.UUID,
    current_user: User = fastapi.Depends(get_current_user),
    session: SQLAlchemyAsyncSession = fastapi.Depends(get_async_session),
) -> SessionDetail:
    return await SessionService(session).get_session(current_user.id, session_id)


@router.patch(
    path="/{session_id}/finish",
    name="sessions:finish",
    response_model=SessionFinished,
    status_code=fastapi.status.HTTP_200_OK,
)
async def finish_session(
    session_id: uuid.UUID,
    payload: SessionFinish,
    current_user: User = fastapi.Depends(get_current_user),
    session: SQLAlchemyAsyncSession = fastapi.Depends(get_async_session),
) -> SessionFinished:
    return await SessionService(session).finish_session(current_user.id, session_id, payload)


@router.post(
    path="/{session_id}/attempts",
    name="sessions:submit-attempt",
    response_model=AttemptOut,
    status_code=fastapi.status.HTTP_201_CREATED,
    summary="Check a translation of one of the session's sentences",
)
async def submit_attempt(
    session_id: uuid.UUID,
    payload: AttemptCreate,
    current_user: User = fastapi.Depends(get_current_user),
    session: SQLAlchemyAsyncSession = fastapi.Depends(get_async_session),
) -> AttemptOut:
    return await SessionService(session).submit_attempt(current_user.id, session_id, payload)
