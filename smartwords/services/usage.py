import datetime
import logging
import uuid

from sqlalchemy.ext.asyncio import AsyncSession as SQLAlchemyAsyncSession

from smartwords.config.manager import settings
from smartwords.models.schemas.usage import DailyUsage
from smartwords.repository.crud.generation_run import GenerationRunCRUDRepository
from smartwords.utilities.formatters.datetime_formatter import start_of_utc_day, utc_now

logger = logging.getLogger(__name__)


class UsageService:
    """Daily generation quota. Days are UTC calendar days."""

    def __init__(self, async_session: SQLAlchemyAsyncSession, limit: int | None = None):
        self._generation_repo = GenerationRunCRUDRepository(async_session=async_session)
        self.limit = settings.DAILY_GENERATION_LIMIT if limit is None else limit

    async def count_today(self, user_id: uuid.UUID, now: datetime.datetime | None = None) -> int:
        day_start = start_of_utc_day(now or utc_now())
        return await self._generation_repo.count_since(user_id=user_id, since=day_start)

    async def get_daily_usage(self, user_id: uuid.UUID, now: datetime.datetime | None = None) -> DailyUsage:
        now = now or utc_now()
        used = await self.count_today(user_id, now=now)
        next_reset_at = start_of_utc_day(now) + datetime.timedelta(days=1)
        logger.debug("Daily usage for user %s: %d/%d", user_id, used, self.limit)
        return DailyUsage(
            limit=self.limit,
            used=used,
            remaining=max(0, self.limit - used),
            next_reset_at=next_reset_at,
        )
