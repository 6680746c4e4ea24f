import logging
import uuid
from typing import Any

from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession as SQLAlchemyAsyncSession

from smartwords.models.db.generation_run import GenerationRun
from smartwords.models.db.sentence import Sentence
from smartwords.models.db.word import Word
from smartwords.models.schemas.generation import (
    GeneratedSentence,
    GenerationCreate,
    GenerationListItem,
    GenerationListResponse,
    GenerationResult,
    GenerationUsage,
)
from smartwords.models.schemas.sets import Pagination
from smartwords.repository.crud.event_log import EventLogCRUDRepository
from smartwords.repository.crud.generation_run import GenerationRunCRUDRepository
from smartwords.repository.crud.sentence import SentenceCRUDRepository
from smartwords.repository.crud.vocabulary_set import VocabularySetCRUDRepository
from smartwords.repository.crud.word import WordCRUDRepository, normalize_english
from smartwords.services.openrouter import OpenRouterError
from smartwords.services.usage import UsageService
from smartwords.utilities.exceptions.database import is_unique_violation
from smartwords.utilities.exceptions.domain import (
    BusinessRuleViolation,
    ConflictError,
    DailyLimitReached,
    EntityNotFound,
    UpstreamError,
)

logger = logging.getLogger(__name__)

IDEMPOTENCY_CONSTRAINT = "uq_generation_runs_user_key"


def match_sentence_word(target_en: str, position: int, words: list[Word]) -> tuple[Word, bool]:
    """
    Pick the word a generated sentence practises.

    Case and whitespace-insensitive match on the English text first; otherwise the word at the same
    position in the snapshot, otherwise the first word. The flag tells whether the match was exact.
    """
    target_norm = normalize_english(target_en)
    for word in words:
        if word.en_norm == target_norm:
            return word, True
    if position < len(words):
        return words[position], False
    return words[0], False


class GenerationService:
    """Quota-gated, idempotent sentence generation for a set."""

    def __init__(self, async_session: SQLAlchemyAsyncSession, provider: Any):
        self._async_session = async_session
        self._provider = provider
        self._set_repo = VocabularySetCRUDRepository(async_session=async_session)
        self._word_repo = WordCRUDRepository(async_session=async_session)
        self._generation_repo = GenerationRunCRUDRepository(async_session=async_session)
        self._sentence_repo = SentenceCRUDRepository(async_session=async_session)
        self._event_repo = EventLogCRUDRepository(async_session=async_session)
        self._usage = UsageService(async_session=async_session)

    async def trigger_generation(
        self,
        user_id: uuid.UUID,
        set_id: uuid.UUID,
        command: GenerationCreate,
        idempotency_key: str,
    ) -> GenerationResult:
        vocabulary_set = await self._set_repo.get_by_id_and_user(set_id=set_id, user_id=user_id)
        if not vocabulary_set:
            raise EntityNotFound("SET_NOT_FOUND", "Set not found or access denied")
        if vocabulary_set.words_count == 0:
            raise BusinessRuleViolation("SET_HAS_NO_WORDS", "Set has no words to generate sentences for")

        generations_today = await self._usage.count_today(user_id)
        if generations_today >= self._usage.limit:
            raise DailyLimitReached()
        remaining = self._usage.limit - (generations_today + 1)

        existing = await self._generation_repo.get_by_idempotency_key(user_id=user_id, idempotency_key=idempotency_key)
        if existing:
            logger.info("Replaying generation %s for idempotency key %r", existing.id, idempotency_key)
            return await self._replay(existing, remaining)

        words = await self._word_repo.list_for_set(set_id=set_id)
        if not words:
            raise BusinessRuleViolation("SET_HAS_NO_WORDS", "Set has no words to generate sentences for")
        words_snapshot = [{"pl": word.pl, "en": word.en} for word in words]
        level = vocabulary_set.level.value

        try:
            run = await self._generation_repo.create_run(
                user_id=user_id,
                set_id=set_id,
                model_id=command.model_id,
                temperature=command.temperature,
                prompt_version=command.prompt_version,
                idempotency_key=idempotency_key,
                words_snapshot=words_snapshot,
            )
        except IntegrityError as exc:
            await self._async_session.rollback()
            if is_unique_violation(
                exc,
                constraint=IDEMPOTENCY_CONSTRAINT,
                columns=("generation_runs.user_id", "generation_runs.idempotency_key"),
            ):
                raise ConflictError("DUPLICATE_IDEMPOTENCY_KEY", "Duplicate idempotency key") from exc
            raise
        run_id = run.id
        occurred_at = run.occurred_at

        try:
            generated = await self._provider.generate_sentences(
                words=words_snapshot,
                model_id=command.model_id,
                temperature=command.temperature,
                prompt_version=command.prompt_version,
                level=level,
            )
        except OpenRouterError as exc:
            logger.warning("Sentence generation for run %s failed with %s: %s", run_id, exc.code, exc.message)
            await self._discard_run(run_id)
            raise UpstreamError(exc.code, f"LLM generation failed: {exc.message}", upstream_status=exc.status_code) from exc

        try:
            await self._generation_repo.update_usage(
                run=run,
                tokens_in=generated.usage.tokens_in,
                tokens_out=generated.usage.tokens_out,
                cost_usd=generated.usage.cost_usd,
            )
        except SQLAlchemyError:
            logger.exception("Failed to backfill usage for generation run %s", run_id)
            await self._async_session.rollback()
            words = await self._word_repo.list_for_set(set_id=set_id)

        sentences: list[Sentence] = []
        for position, item in enumerate(generated.sentences):
            word, exact = match_sentence_word(item.target_en, position, words)
            if not exact:
                logger.warning(
                    "No word matches target_en %r in run %s; using word %s", item.target_en, run_id, word.id
                )
            sentences.append(
                Sentence(
                    id=uuid.uuid4(),
                    generation_id=run_id,
                    user_id=user_id,
                    word_id=word.id,
                    pl_text=item.pl_text,
                    target_en=item.target_en,
                    position=position,
                )
            )
        await self._sentence_repo.create_bulk(sentences=sentences)

        result = GenerationResult(
            generation_id=run_id,
            set_id=set_id,
            occurred_at=occurred_at,
            sentences=[self._to_sentence_dto(sentence) for sentence in sentences],
            usage=GenerationUsage(
                tokens_in=generated.usage.tokens_in,
                tokens_out=generated.usage.tokens_out,
                cost_usd=generated.usage.cost_usd,
                remaining_generations_today=remaining,
            ),
        )
        logger.info("Generation run %s stored %d sentences for set %s", run_id, len(sentences), set_id)
        await self._event_repo.log_event(user_id=user_id, event_type="generation_run_created", entity_id=run_id)
        return result

    async def list_generations(self, user_id: uuid.UUID, set_id: uuid.UUID) -> GenerationListResponse:
        vocabulary_set = await self._set_repo.get_by_id_and_user(set_id=set_id, user_id=user_id)
        if not vocabulary_set:
            raise EntityNotFound("SET_NOT_FOUND", "Set not found")
        rows = await self._generation_repo.list_for_set_with_counts(set_id=set_id, user_id=user_id)
        items = [
            GenerationListItem(
                id=run.id,
                occurred_at=run.occurred_at,
                model_id=run.model_id,
                tokens_in=run.tokens_in,
                tokens_out=run.tokens_out,
                sentences_generated=count,
            )
            for run, count in rows
        ]
        return GenerationListResponse(data=items, pagination=Pagination(next_cursor=None, count=len(items)))

    async def _replay(self, run: GenerationRun, remaining: int) -> GenerationResult:
        sentences = await self._sentence_repo.list_for_generation(generation_id=run.id)
        return GenerationResult(
            generation_id=run.id,
            set_id=run.set_id,
            occurred_at=run.occurred_at,
            sentences=[self._to_sentence_dto(sentence) for sentence in sentences],
            usage=GenerationUsage(
                tokens_in=run.tokens_in,
                tokens_out=run.tokens_out,
                cost_usd=run.cost_usd,
                remaining_generations_today=remaining,
            ),
        )

    async def _discard_run(self, run_id: uuid.UUID) -> None:
        try:
            await self._generation_repo.delete_run(generation_id=run_id)
        except SQLAlchemyError:
            logger.exception("Failed to remove generation run %s after provider failure", run_id)
            await self._async_session.rollback()

    @staticmethod
    def _to_sentence_dto(sentence: Sentence) -> GeneratedSentence:
        return GeneratedSentence(
            sentence_id=sentence.id,
            word_id=sentence.word_id,
            pl_text=sentence.pl_text,
            target_en=sentence.target_en,
        )
