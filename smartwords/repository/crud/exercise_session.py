import uuid

import sqlalchemy

from smartwords.models.db.exercise_session import ExerciseSession
from smartwords.repository.crud.base import BaseCRUDRepository
from smartwords.utilities.formatters.datetime_formatter import utc_now


class ExerciseSessionCRUDRepository(BaseCRUDRepository):
    async def get_active_for_set(self, *, set_id: uuid.UUID, user_id: uuid.UUID | None = None) -> ExerciseSession | None:
        """Unfinished session of a set; scoped to one owner when `user_id` is given."""
        stmt = (
            sqlalchemy.select(ExerciseSession)
            .where(ExerciseSession.set_id == set_id)
            .where(ExerciseSession.finished_at.is_(None))
        )
        if user_id is not None:
            stmt = stmt.where(ExerciseSession.user_id == user_id)
        stmt = stmt.limit(1)
        query = await self.async_session.execute(statement=stmt)
        return query.scalar()  # type: ignore

    async def get_latest_active_for_user(self, *, user_id: uuid.UUID) -> ExerciseSession | None:
        stmt = (
            sqlalchemy.select(ExerciseSession)
            .where(ExerciseSession.user_id == user_id)
            .where(ExerciseSession.finished_at.is_(None))
            .order_by(ExerciseSession.started_at.desc())
            .limit(1)
        )
        query = await self.async_session.execute(statement=stmt)
        return query.scalar()  # type: ignore

    async def get_by_id_and_user(self, *, session_id: uuid.UUID, user_id: uuid.UUID) -> ExerciseSession | None:
        stmt = (
            sqlalchemy.select(ExerciseSession)
            .where(ExerciseSession.id == session_id)
            .where(ExerciseSession.user_id == user_id)
        )
        query = await self.async_session.execute(statement=stmt)
        return query.scalar()  # type: ignore

    async def create_session(self, *, user_id: uuid.UUID, set_id: uuid.UUID, generation_id: uuid.UUID) -> ExerciseSession:
        new_session = ExerciseSession(id=uuid.uuid4(), user_id=user_id, set_id=set_id, generation_id=generation_id)
        self.async_session.add(new_session)
        await self.async_session.commit()
        await self.async_session.refresh(new_session)
        return new_session

    async def finish_session(self, *, exercise_session: ExerciseSession, completed_reason: str) -> ExerciseSession:
        exercise_session.finished_at = utc_now()
        exercise_session.completed_reason = completed_reason
        await self.async_session.commit()
        await self.async_session.refresh(exercise_session)
        return exercise_session
