import uuid

from sqlalchemy.ext.asyncio import AsyncSession as SQLAlchemyAsyncSession

from smartwords.models.schemas.dashboard import Dashboard, DashboardActiveSession
from smartwords.repository.crud.exercise_session import ExerciseSessionCRUDRepository
from smartwords.repository.crud.vocabulary_set import VocabularySetCRUDRepository
from smartwords.services.usage import UsageService


class DashboardService:
    def __init__(self, async_session: SQLAlchemyAsyncSession):
        self._set_repo = VocabularySetCRUDRepository(async_session=async_session)
        self._exercise_session_repo = ExerciseSessionCRUDRepository(async_session=async_session)
        self._usage = UsageService(async_session=async_session)

    async def get_dashboard(self, user_id: uuid.UUID) -> Dashboard:
        sets_total = await self._set_repo.count_for_user(user_id=user_id)
        active = await self._exercise_session_repo.get_latest_active_for_user(user_id=user_id)
        usage = await self._usage.get_daily_usage(user_id)
        return Dashboard(
            sets_total=sets_total,
            active_session=DashboardActiveSession(
                session_id=active.id, set_id=active.set_id, started_at=active.started_at
            )
            if active
            else None,
            remaining_generations=usage.remaining,
        )
