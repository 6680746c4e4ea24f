import datetime
import uuid

import sqlalchemy

from smartwords.models.db.generation_run import GenerationRun
from smartwords.models.db.sentence import Sentence
from smartwords.repository.crud.base import BaseCRUDRepository


class GenerationRunCRUDRepository(BaseCRUDRepository):
    async def count_since(self, *, user_id: uuid.UUID, since: datetime.datetime) -> int:
        stmt = (
            sqlalchemy.select(sqlalchemy.func.count(GenerationRun.id))
            .where(GenerationRun.user_id == user_id)
            .where(GenerationRun.occurred_at >= since)
        )
        query = await self.async_session.execute(statement=stmt)
        return int(query.scalar() or 0)

    async def get_by_idempotency_key(self, *, user_id: uuid.UUID, idempotency_key: str) -> GenerationRun | None:
        stmt = (
            sqlalchemy.select(GenerationRun)
            .where(GenerationRun.user_id == user_id)
            .where(GenerationRun.idempotency_key == idempotency_key)
        )
        query = await self.async_session.execute(statement=stmt)
        return query.scalar()  # type: ignore

    async def get_for_set(self, *, generation_id: uuid.UUID, set_id: uuid.UUID, user_id: uuid.UUID) -> GenerationRun | None:
        stmt = (
            sqlalchemy.select(GenerationRun)
            .where(GenerationRun.id == generation_id)
            .where(GenerationRun.set_id == set_id)
            .where(GenerationRun.user_id == user_id)
        )
        query = await self.async_session.execute(statement=stmt)
        return query.scalar()  # type: ignore

    async def get_latest_for_set(self, *, set_id: uuid.UUID, user_id: uuid.UUID) -> GenerationRun | None:
        stmt = (
            sqlalchemy.select(GenerationRun)
            .where(GenerationRun.set_id == set_id)
            .where(GenerationRun.user_id == user_id)
            .order_by(GenerationRun.occurred_at.desc(), GenerationRun.id.desc())
            .limit(1)
        )
        query = await self.async_session.execute(statement=stmt)
        return query.scalar()  # type: ignore

    async def list_for_set_with_counts(self, *, set_id: uuid.UUID, user_id: uuid.UUID) -> list[tuple[GenerationRun, int]]:
        """Runs of a set, newest first, each paired with the number of sentences it produced."""
        sentence_count = (
            sqlalchemy.select(sqlalchemy.func.count(Sentence.id))
            .where(Sentence.generation_id == GenerationRun.id)
            .correlate(GenerationRun)
            .scalar_subquery()
        )
        stmt = (
            sqlalchemy.select(GenerationRun, sentence_count)
            .where(GenerationRun.set_id == set_id)
            .where(GenerationRun.user_id == user_id)
            .order_by(GenerationRun.occurred_at.desc(), GenerationRun.id.desc())
        )
        query = await self.async_session.execute(statement=stmt)
        return [(run, int(count or 0)) for run, count in query.all()]

    async def create_run(
        self,
        *,
        user_id: uuid.UUID,
        set_id: uuid.UUID,
        model_id: str,
        temperature: float,
        prompt_version: str,
        idempotency_key: str,
        words_snapshot: list[dict[str, str]],
    ) -> GenerationRun:
        """Insert and commit a run with zeroed usage; the unique (user, key) pair claims the key."""
        new_run = GenerationRun(
            id=uuid.uuid4(),
            user_id=user_id,
            set_id=set_id,
            model_id=model_id,
            temperature=temperature,
            prompt_version=prompt_version,
            idempotency_key=idempotency_key,
            words_snapshot=words_snapshot,
            tokens_in=0,
            tokens_out=0,
            cost_usd=0,
        )
        self.async_session.add(new_run)
        await self.async_session.commit()
        await self.async_session.refresh(new_run)
        return new_run

    async def update_usage(self, *, run: GenerationRun, tokens_in: int, tokens_out: int, cost_usd: float) -> GenerationRun:
        run.tokens_in = tokens_in
        run.tokens_out = tokens_out
        run.cost_usd = cost_usd
        await self.async_session.commit()
        await self.async_session.refresh(run)
        return run

    async def delete_run(self, *, generation_id: uuid.UUID) -> bool:
        stmt = sqlalchemy.delete(GenerationRun).where(GenerationRun.id == generation_id)
        result = await self.async_session.execute(statement=stmt)
        await self.async_session.commit()
        return bool(result.rowcount)
