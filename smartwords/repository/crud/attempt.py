import uuid

import sqlalchemy

from smartwords.models.db.attempt import Attempt
from smartwords.repository.crud.base import BaseCRUDRepository


class AttemptCRUDRepository(BaseCRUDRepository):
    async def list_for_session(self, *, session_id: uuid.UUID) -> list[Attempt]:
        stmt = (
            sqlalchemy.select(Attempt)
            .where(Attempt.session_id == session_id)
            .order_by(Attempt.sentence_id, Attempt.attempt_no.asc())
        )
        query = await self.async_session.execute(statement=stmt)
        return list(query.scalars().all())

    async def latest_by_sentence(self, *, session_id: uuid.UUID) -> dict[uuid.UUID, Attempt]:
        """Per sentence, the attempt with the highest attempt_no."""
        latest: dict[uuid.UUID, Attempt] = {}
        for attempt in await self.list_for_session(session_id=session_id):
            current = latest.get(attempt.sentence_id)
            if current is None or attempt.attempt_no > current.attempt_no:
                latest[attempt.sentence_id] = attempt
        return latest

    async def max_attempt_no(self, *, session_id: uuid.UUID, sentence_id: uuid.UUID) -> int:
        stmt = (
            sqlalchemy.select(sqlalchemy.func.max(Attempt.attempt_no))
            .where(Attempt.session_id == session_id)
            .where(Attempt.sentence_id == sentence_id)
        )
        query = await self.async_session.execute(statement=stmt)
        return int(query.scalar() or 0)

    async def create_attempt(
        self,
        *,
        session_id: uuid.UUID,
        sentence_id: uuid.UUID,
        user_id: uuid.UUID,
        attempt_no: int,
        answer_raw: str,
        answer_norm: str,
        is_correct: bool,
    ) -> Attempt:
        new_attempt = Attempt(
            id=uuid.uuid4(),
            session_id=session_id,
            sentence_id=sentence_id,
            user_id=user_id,
            attempt_no=attempt_no,
            answer_raw=answer_raw,
            answer_norm=answer_norm,
            is_correct=is_correct,
        )
        self.async_session.add(new_attempt)
        await self.async_session.commit()
        await self.async_session.refresh(new_attempt)
        return new_attempt
