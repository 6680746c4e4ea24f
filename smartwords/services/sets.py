import datetime
import logging
import uuid

from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession as SQLAlchemyAsyncSession

from smartwords.models.db.vocabulary_set import CEFRLevel, VocabularySet
from smartwords.models.schemas.sets import (
    GenerationMeta,
    Pagination,
    SetCreate,
    SetDetail,
    SetSortOrder,
    SetSummary,
    SetsListResponse,
    SetUpdate,
    WordCreate,
    WordDeleteResponse,
    WordOut,
    WordsAdd,
    WordsAddResponse,
    WordUpdate,
)
from smartwords.repository.crud.event_log import EventLogCRUDRepository
from smartwords.repository.crud.exercise_session import ExerciseSessionCRUDRepository
from smartwords.repository.crud.generation_run import GenerationRunCRUDRepository
from smartwords.repository.crud.vocabulary_set import VocabularySetCRUDRepository
from smartwords.repository.crud.word import WordCRUDRepository, normalize_english
from smartwords.utilities.exceptions.database import is_unique_violation
from smartwords.utilities.exceptions.domain import (
    BusinessRuleViolation,
    ConflictError,
    EntityNotFound,
    ValidationFailed,
)
from smartwords.utilities.formatters.datetime_formatter import ensure_utc, format_datetime_into_isoformat

logger = logging.getLogger(__name__)

SET_NAME_CONSTRAINT = "uq_sets_user_name"
WORD_NORM_CONSTRAINT = "uq_words_set_en_norm"


def encode_cursor(vocabulary_set: VocabularySet, sort: SetSortOrder) -> str:
    if sort is SetSortOrder.NAME_ASC:
        return f"{vocabulary_set.name}|{vocabulary_set.id}"
    return f"{format_datetime_into_isoformat(vocabulary_set.created_at)}|{vocabulary_set.id}"


def decode_cursor(cursor: str, sort: SetSortOrder) -> tuple[datetime.datetime | str, uuid.UUID]:
    """Split `"{sortKey}|{id}"`. The id is the last segment, so names may contain `|`."""
    sort_key, separator, raw_id = cursor.rpartition("|")
    if not separator or not sort_key:
        raise ValidationFailed("INVALID_CURSOR", "Invalid cursor format. Expected format: timestamp|uuid or name|uuid")
    try:
        cursor_id = uuid.UUID(raw_id)
        if sort is SetSortOrder.NAME_ASC:
            return sort_key, cursor_id
        return ensure_utc(datetime.datetime.fromisoformat(sort_key.replace("Z", "+00:00"))), cursor_id
    except ValueError as exc:
        raise ValidationFailed("INVALID_CURSOR", "Invalid cursor value") from exc


class SetsService:
    """Vocabulary sets and their word lists."""

    def __init__(self, async_session: SQLAlchemyAsyncSession):
        self._async_session = async_session
        self._set_repo = VocabularySetCRUDRepository(async_session=async_session)
        self._word_repo = WordCRUDRepository(async_session=async_session)
        self._generation_repo = GenerationRunCRUDRepository(async_session=async_session)
        self._exercise_session_repo = ExerciseSessionCRUDRepository(async_session=async_session)
        self._event_repo = EventLogCRUDRepository(async_session=async_session)

    # ------------------------------------------------------------------
    # Guards
    # ------------------------------------------------------------------
    async def check_active_session(self, set_id: uuid.UUID) -> bool:
        return await self._exercise_session_repo.get_active_for_set(set_id=set_id) is not None

    async def _get_owned_set(self, user_id: uuid.UUID, set_id: uuid.UUID) -> VocabularySet:
        vocabulary_set = await self._set_repo.get_by_id_and_user(set_id=set_id, user_id=user_id)
        if not vocabulary_set:
            raise EntityNotFound("SET_NOT_FOUND", "Set not found")
        return vocabulary_set

    @staticmethod
    def _ensure_unique_english(words: list[WordCreate], code: str) -> None:
        seen: set[str] = set()
        for word in words:
            norm = normalize_english(word.en)
            if norm in seen:
                raise _duplicate_error(code, f"English word '{word.en}' is duplicated")
            seen.add(norm)

    # ------------------------------------------------------------------
    # Sets
    # ------------------------------------------------------------------
    async def create_set(self, user_id: uuid.UUID, command: SetCreate) -> SetSummary:
        self._ensure_unique_english(command.words, "DUPLICATE_ENGLISH_WORD")
        if await self._set_repo.name_taken(user_id=user_id, name=command.name):
            raise ConflictError("DUPLICATE_NAME", "Set with this name already exists")

        try:
            vocabulary_set = self._set_repo.add_set(user_id=user_id, name=command.name, level=command.level)
            for position, word in enumerate(command.words):
                self._word_repo.add_word(
                    set_id=vocabulary_set.id,
                    user_id=user_id,
                    pl=word.pl.strip(),
                    en=word.en,
                    position=position,
                )
            await self._set_repo.sync_words_count(vocabulary_set=vocabulary_set)
            await self._async_session.commit()
        except IntegrityError as exc:
            await self._async_session.rollback()
            if is_unique_violation(exc, constraint=SET_NAME_CONSTRAINT, columns=("sets.user_id", "sets.name")):
                raise ConflictError("DUPLICATE_NAME", "Set with this name already exists") from exc
            if is_unique_violation(exc, constraint=WORD_NORM_CONSTRAINT, columns=("words.set_id", "words.en_norm")):
                raise BusinessRuleViolation("DUPLICATE_ENGLISH_WORD", "English word is duplicated in this set") from exc
            raise

        summary = SetSummary.model_validate(vocabulary_set)
        logger.info("Set %s created by user %s with %d words", summary.id, user_id, summary.words_count)
        await self._event_repo.log_event(user_id=user_id, event_type="set_created", entity_id=summary.id)
        return summary

    async def list_sets(
        self,
        user_id: uuid.UUID,
        *,
        search: str | None = None,
        level: CEFRLevel | None = None,
        cursor: str | None = None,
        limit: int = 10,
        sort: SetSortOrder = SetSortOrder.CREATED_AT_DESC,
    ) -> SetsListResponse:
        cursor_created_at: datetime.datetime | None = None
        cursor_name: str | None = None
        cursor_id: uuid.UUID | None = None
        if cursor:
            sort_key, cursor_id = decode_cursor(cursor, sort)
            if sort is SetSortOrder.NAME_ASC:
                cursor_name = sort_key  # type: ignore[assignment]
            else:
                cursor_created_at = sort_key  # type: ignore[assignment]

        sets, has_more = await self._set_repo.list_by_user_cursor(
            user_id=user_id,
            limit=limit,
            sort_by_name=sort is SetSortOrder.NAME_ASC,
            search=search,
            level=level,
            cursor_created_at=cursor_created_at,
            cursor_name=cursor_name,
            cursor_id=cursor_id,
        )
        next_cursor = encode_cursor(sets[-1], sort) if has_more and sets else None
        return SetsListResponse(
            data=[SetSummary.model_validate(item) for item in sets],
            pagination=Pagination(next_cursor=next_cursor, count=len(sets)),
        )

    async def get_set(self, user_id: uuid.UUID, set_id: uuid.UUID) -> SetDetail:
        vocabulary_set = await self._get_owned_set(user_id, set_id)
        words = await self._word_repo.list_for_set(set_id=set_id)
        latest = await self._generation_repo.get_latest_for_set(set_id=set_id, user_id=user_id)
        return SetDetail(
            id=vocabulary_set.id,
            name=vocabulary_set.name,
            level=vocabulary_set.level,
            words_count=vocabulary_set.words_count,
            created_at=vocabulary_set.created_at,
            updated_at=vocabulary_set.updated_at,
            user_id=vocabulary_set.user_id,
            words=[WordOut.model_validate(word) for word in words],
            latest_generation=GenerationMeta.model_validate(latest) if latest else None,
        )

    async def update_set(self, user_id: uuid.UUID, set_id: uuid.UUID, command: SetUpdate) -> SetDetail:
        vocabulary_set = await self._get_owned_set(user_id, set_id)

        if command.words is not None and await self.check_active_session(set_id):
            raise ConflictError("ACTIVE_SESSION", "Cannot update set with active exercise session")
        if command.name is not None and await self._set_repo.name_taken(
            user_id=user_id, name=command.name, exclude_set_id=set_id
        ):
            raise ConflictError("DUPLICATE_NAME", "Set with this name already exists")
        if command.words is not None:
            self._ensure_unique_english(command.words, "DUPLICATE_ENGLISH_WORD")

        try:
            if command.name is not None:
                vocabulary_set.name = command.name
            if command.level is not None:
                vocabulary_set.level = command.level
            vocabulary_set.updated_at = datetime.datetime.now(datetime.timezone.utc)

            if command.words is not None:
                await self._replace_words(vocabulary_set, command)
            await self._async_session.commit()
        except IntegrityError as exc:
            await self._async_session.rollback()
            if is_unique_violation(exc, constraint=SET_NAME_CONSTRAINT, columns=("sets.user_id", "sets.name")):
                raise ConflictError("DUPLICATE_NAME", "Set with this name already exists") from exc
            if is_unique_violation(exc, constraint=WORD_NORM_CONSTRAINT, columns=("words.set_id", "words.en_norm")):
                raise BusinessRuleViolation("DUPLICATE_ENGLISH_WORD", "English word is duplicated in this set") from exc
            raise
        except EntityNotFound:
            await self._async_session.rollback()
            raise

        detail = await self.get_set(user_id, set_id)
        logger.info("Set %s updated by user %s", set_id, user_id)
        await self._event_repo.log_event(user_id=user_id, event_type="set_updated", entity_id=set_id)
        return detail

    async def _replace_words(self, vocabulary_set: VocabularySet, command: SetUpdate) -> None:
        """
        Make the word list equal to `command.words`: listed ids are updated, entries without an id
        are inserted and everything else is deleted. Runs inside the caller's transaction.
        """
        existing = {word.id: word for word in await self._word_repo.list_for_set(set_id=vocabulary_set.id)}
        incoming = command.words or []

        for entry in incoming:
            if entry.id is not None and entry.id not in existing:
                raise EntityNotFound("WORD_NOT_FOUND", f"Word {entry.id} does not belong to this set")

        kept_ids = {entry.id for entry in incoming if entry.id is not None}
        await self._word_repo.delete_words(word_ids=[word_id for word_id in existing if word_id not in kept_ids])

        # Park the normalised keys of kept words first so swapped values never collide mid-update
        for entry in incoming:
            if entry.id is not None:
                existing[entry.id].en_norm = f"#{entry.id}"
        await self._async_session.flush()

        for position, entry in enumerate(incoming):
            if entry.id is not None:
                word = existing[entry.id]
                word.pl = entry.pl.strip()
                word.en = entry.en
                word.en_norm = normalize_english(entry.en)
                word.position = position
            else:
                self._word_repo.add_word(
                    set_id=vocabulary_set.id,
                    user_id=vocabulary_set.user_id,
                    pl=entry.pl.strip(),
                    en=entry.en,
                    position=position,
                )
        await self._set_repo.sync_words_count(vocabulary_set=vocabulary_set)

    async def delete_set(self, user_id: uuid.UUID, set_id: uuid.UUID) -> None:
        await self._get_owned_set(user_id, set_id)
        if await self.check_active_session(set_id):
            raise ConflictError("ACTIVE_SESSION", "Cannot delete set with active exercise session")

        await self._event_repo.log_event(user_id=user_id, event_type="set_deleted", entity_id=set_id)
        await self._set_repo.delete_set(set_id=set_id, user_id=user_id)
        logger.info("Set %s deleted by user %s", set_id, user_id)

    # ------------------------------------------------------------------
    # Words
    # ------------------------------------------------------------------
    async def add_words(self, user_id: uuid.UUID, set_id: uuid.UUID, command: WordsAdd) -> WordsAddResponse:
        vocabulary_set = await self._get_owned_set(user_id, set_id)
        self._ensure_unique_english(command.words, "WORD_DUPLICATE")
        for word in command.words:
            if await self._word_repo.norm_exists(set_id=set_id, en_norm=normalize_english(word.en)):
                raise ConflictError("WORD_DUPLICATE", "One or more English words already exist in this set")

        try:
            position = await self._word_repo.next_position(set_id=set_id)
            added = [
                self._word_repo.add_word(
                    set_id=set_id,
                    user_id=user_id,
                    pl=word.pl.strip(),
                    en=word.en,
                    position=position + offset,
                )
                for offset, word in enumerate(command.words)
            ]
            words_count = await self._set_repo.sync_words_count(vocabulary_set=vocabulary_set)
            await self._async_session.commit()
        except IntegrityError as exc:
            await self._async_session.rollback()
            if is_unique_violation(exc, constraint=WORD_NORM_CONSTRAINT, columns=("words.set_id", "words.en_norm")):
                raise ConflictError("WORD_DUPLICATE", "One or more English words already exist in this set") from exc
            raise

        response = WordsAddResponse(added=[WordOut.model_validate(word) for word in added], words_count=words_count)
        await self._event_repo.log_event(user_id=user_id, event_type="words_added", entity_id=set_id)
        return response

    async def update_word(
        self, user_id: uuid.UUID, set_id: uuid.UUID, word_id: uuid.UUID, command: WordUpdate
    ) -> WordOut:
        await self._get_owned_set(user_id, set_id)
        word = await self._word_repo.get_by_id_and_set(word_id=word_id, set_id=set_id)
        if not word or word.user_id != user_id:
            raise EntityNotFound("WORD_NOT_FOUND", "Word not found")

        if command.en is not None:
            en_norm = normalize_english(command.en)
            if await self._word_repo.norm_exists(set_id=set_id, en_norm=en_norm, exclude_word_id=word_id):
                raise ConflictError("WORD_DUPLICATE", "English word already exists in this set")

        try:
            if command.pl is not None:
                word.pl = command.pl
            if command.en is not None:
                word.en = command.en
                word.en_norm = normalize_english(command.en)
            await self._async_session.commit()
        except IntegrityError as exc:
            await self._async_session.rollback()
            if is_unique_violation(exc, constraint=WORD_NORM_CONSTRAINT, columns=("words.set_id", "words.en_norm")):
                raise ConflictError("WORD_DUPLICATE", "English word already exists in this set") from exc
            raise

        response = WordOut.model_validate(word)
        await self._event_repo.log_event(user_id=user_id, event_type="word_updated", entity_id=word_id)
        return response

    async def delete_word(self, user_id: uuid.UUID, set_id: uuid.UUID, word_id: uuid.UUID) -> WordDeleteResponse:
        vocabulary_set = await self._get_owned_set(user_id, set_id)
        word = await self._word_repo.get_by_id_and_set(word_id=word_id, set_id=set_id)
        if not word or word.user_id != user_id:
            raise EntityNotFound("WORD_NOT_FOUND", "Word not found")

        await self._word_repo.delete_words(word_ids=[word_id])
        words_count = await self._set_repo.sync_words_count(vocabulary_set=vocabulary_set)
        await self._async_session.commit()

        response = WordDeleteResponse(words_count=words_count)
        await self._event_repo.log_event(user_id=user_id, event_type="word_deleted", entity_id=word_id)
        return response


def _duplicate_error(code: str, message: str) -> Exception:
    if code == "WORD_DUPLICATE":
        return ConflictError(code, message)
    return BusinessRuleViolation(code, message)
