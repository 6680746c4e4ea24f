import uuid

import sqlalchemy

from smartwords.models.db.sentence import Sentence
from smartwords.repository.crud.base import BaseCRUDRepository


class SentenceCRUDRepository(BaseCRUDRepository):
    async def list_for_generation(self, *, generation_id: uuid.UUID) -> list[Sentence]:
        stmt = (
            sqlalchemy.select(Sentence)
            .where(Sentence.generation_id == generation_id)
            .order_by(Sentence.position.asc())
        )
        query = await self.async_session.execute(statement=stmt)
        return list(query.scalars().all())

    async def count_for_generation(self, *, generation_id: uuid.UUID) -> int:
        stmt = sqlalchemy.select(sqlalchemy.func.count(Sentence.id)).where(Sentence.generation_id == generation_id)
        query = await self.async_session.execute(statement=stmt)
        return int(query.scalar() or 0)

    async def get_in_generation(self, *, sentence_id: uuid.UUID, generation_id: uuid.UUID) -> Sentence | None:
        stmt = (
            sqlalchemy.select(Sentence)
            .where(Sentence.id == sentence_id)
            .where(Sentence.generation_id == generation_id)
        )
        query = await self.async_session.execute(statement=stmt)
        return query.scalar()  # type: ignore

    async def create_bulk(self, *, sentences: list[Sentence]) -> list[Sentence]:
        self.async_session.add_all(sentences)
        await self.async_session.commit()
        return sentences
