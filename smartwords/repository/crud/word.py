import uuid

import sqlalchemy

from smartwords.models.db.word import Word
from smartwords.repository.crud.base import BaseCRUDRepository


def normalize_english(text: str) -> str:
    """Collapse whitespace runs, trim and lower-case; the key for duplicate detection within a set."""
    return " ".join(text.split()).lower()


class WordCRUDRepository(BaseCRUDRepository):
    async def list_for_set(self, *, set_id: uuid.UUID) -> list[Word]:
        stmt = sqlalchemy.select(Word).where(Word.set_id == set_id).order_by(Word.position.asc(), Word.created_at.asc())
        query = await self.async_session.execute(statement=stmt)
        return list(query.scalars().all())

    async def get_by_id_and_set(self, *, word_id: uuid.UUID, set_id: uuid.UUID) -> Word | None:
        stmt = sqlalchemy.select(Word).where(Word.id == word_id).where(Word.set_id == set_id)
        query = await self.async_session.execute(statement=stmt)
        return query.scalar()  # type: ignore

    async def norm_exists(self, *, set_id: uuid.UUID, en_norm: str, exclude_word_id: uuid.UUID | None = None) -> bool:
        stmt = sqlalchemy.select(Word.id).where(Word.set_id == set_id).where(Word.en_norm == en_norm)
        if exclude_word_id is not None:
            stmt = stmt.where(Word.id != exclude_word_id)
        query = await self.async_session.execute(statement=stmt.limit(1))
        return query.scalar() is not None

    async def next_position(self, *, set_id: uuid.UUID) -> int:
        stmt = sqlalchemy.select(sqlalchemy.func.max(Word.position)).where(Word.set_id == set_id)
        query = await self.async_session.execute(statement=stmt)
        current = query.scalar()
        return 0 if current is None else int(current) + 1

    def add_word(self, *, set_id: uuid.UUID, user_id: uuid.UUID, pl: str, en: str, position: int) -> Word:
        """Stage a word in the current transaction; the caller commits."""
        word = Word(
            id=uuid.uuid4(),
            set_id=set_id,
            user_id=user_id,
            pl=pl,
            en=en,
            en_norm=normalize_english(en),
            position=position,
        )
        self.async_session.add(word)
        return word

    async def delete_words(self, *, word_ids: list[uuid.UUID]) -> None:
        if not word_ids:
            return
        for word_id in word_ids:
            word = await self.async_session.get(Word, word_id)
            if word is not None:
                await self.async_session.delete(word)
        await self.async_session.flush()
