import datetime
import uuid

import sqlalchemy

from smartwords.models.db.vocabulary_set import CEFRLevel, VocabularySet
from smartwords.models.db.word import Word
from smartwords.repository.crud.base import BaseCRUDRepository


class VocabularySetCRUDRepository(BaseCRUDRepository):
    async def get_by_id_and_user(self, *, set_id: uuid.UUID, user_id: uuid.UUID) -> VocabularySet | None:
        stmt = (
            sqlalchemy.select(VocabularySet)
            .where(VocabularySet.id == set_id)
            .where(VocabularySet.user_id == user_id)
        )
        query = await self.async_session.execute(statement=stmt)
        return query.scalar()  # type: ignore

    async def name_taken(self, *, user_id: uuid.UUID, name: str, exclude_set_id: uuid.UUID | None = None) -> bool:
        stmt = (
            sqlalchemy.select(VocabularySet.id)
            .where(VocabularySet.user_id == user_id)
            .where(VocabularySet.name == name)
        )
        if exclude_set_id is not None:
            stmt = stmt.where(VocabularySet.id != exclude_set_id)
        query = await self.async_session.execute(statement=stmt.limit(1))
        return query.scalar() is not None

    async def count_for_user(self, *, user_id: uuid.UUID) -> int:
        stmt = sqlalchemy.select(sqlalchemy.func.count(VocabularySet.id)).where(VocabularySet.user_id == user_id)
        query = await self.async_session.execute(statement=stmt)
        return int(query.scalar() or 0)

    async def list_by_user_cursor(
        self,
        *,
        user_id: uuid.UUID,
        limit: int,
        sort_by_name: bool,
        search: str | None = None,
        level: CEFRLevel | None = None,
        cursor_created_at: datetime.datetime | None = None,
        cursor_name: str | None = None,
        cursor_id: uuid.UUID | None = None,
    ) -> tuple[list[VocabularySet], bool]:
        """
        Keyset page of a user's sets.

        Newest first, or by name ascending; the id breaks ties so the order is total. Fetches one
        extra row to tell whether another page exists.
        """
        stmt = sqlalchemy.select(VocabularySet).where(VocabularySet.user_id == user_id)
        if search:
            stmt = stmt.where(VocabularySet.name.istartswith(search, autoescape=True))
        if level is not None:
            stmt = stmt.where(VocabularySet.level == level)

        if sort_by_name:
            if cursor_name is not None and cursor_id is not None:
                stmt = stmt.where(
                    sqlalchemy.or_(
                        VocabularySet.name > cursor_name,
                        sqlalchemy.and_(VocabularySet.name == cursor_name, VocabularySet.id > cursor_id),
                    )
                )
            stmt = stmt.order_by(VocabularySet.name.asc(), VocabularySet.id.asc())
        else:
            if cursor_created_at is not None and cursor_id is not None:
                stmt = stmt.where(
                    sqlalchemy.or_(
                        VocabularySet.created_at < cursor_created_at,
                        sqlalchemy.and_(VocabularySet.created_at == cursor_created_at, VocabularySet.id < cursor_id),
                    )
                )
            stmt = stmt.order_by(VocabularySet.created_at.desc(), VocabularySet.id.desc())

        query = await self.async_session.execute(statement=stmt.limit(limit + 1))
        sets = list(query.scalars().all())
        has_more = len(sets) > limit
        return sets[:limit], has_more

    def add_set(self, *, user_id: uuid.UUID, name: str, level: CEFRLevel) -> VocabularySet:
        """Stage a new set in the current transaction; the caller commits."""
        new_set = VocabularySet(id=uuid.uuid4(), user_id=user_id, name=name, level=level, words_count=0)
        self.async_session.add(new_set)
        return new_set

    async def sync_words_count(self, *, vocabulary_set: VocabularySet) -> int:
        """Recompute the denormalised counter from the words table (flushes pending changes first)."""
        await self.async_session.flush()
        stmt = sqlalchemy.select(sqlalchemy.func.count(Word.id)).where(Word.set_id == vocabulary_set.id)
        query = await self.async_session.execute(statement=stmt)
        vocabulary_set.words_count = int(query.scalar() or 0)
        vocabulary_set.updated_at = datetime.datetime.now(datetime.timezone.utc)
        await self.async_session.flush()
        return vocabulary_set.words_count

    async def delete_set(self, *, set_id: uuid.UUID, user_id: uuid.UUID) -> bool:
        stmt = (
            sqlalchemy.delete(VocabularySet)
            .where(VocabularySet.id == set_id)
            .where(VocabularySet.user_id == user_id)
        )
        result = await self.async_session.execute(statement=stmt)
        await self.async_session.commit()
        return bool(result.rowcount)
