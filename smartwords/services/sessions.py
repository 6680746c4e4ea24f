import logging
import re
import uuid

from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession as SQLAlchemyAsyncSession

from smartwords.models.db.attempt import ATTEMPT_NUMBER_CONSTRAINT
from smartwords.models.db.exercise_session import ACTIVE_SESSION_INDEX
from smartwords.models.schemas.sessions import (
    AttemptCreate,
    AttemptFeedback,
    AttemptOut,
    LatestAttempt,
    SessionCreate,
    SessionCreated,
    SessionDetail,
    SessionFinish,
    SessionFinished,
    SessionProgress,
    SessionSentence,
)
from smartwords.repository.crud.attempt import AttemptCRUDRepository
from smartwords.repository.crud.event_log import EventLogCRUDRepository
from smartwords.repository.crud.exercise_session import ExerciseSessionCRUDRepository
from smartwords.repository.crud.generation_run import GenerationRunCRUDRepository
from smartwords.repository.crud.sentence import SentenceCRUDRepository
from smartwords.repository.crud.vocabulary_set import VocabularySetCRUDRepository
from smartwords.utilities.exceptions.database import is_unique_violation
from smartwords.utilities.exceptions.domain import BusinessRuleViolation, ConflictError, EntityNotFound

logger = logging.getLogger(__name__)

_NON_WORD = re.compile(r"[^\w\s']+")
_WHITESPACE = re.compile(r"\s+")


def normalize_answer(text: str) -> str:
    """Lowercase, drop punctuation (apostrophes stay) and collapse whitespace."""
    return _WHITESPACE.sub(" ", _NON_WORD.sub(" ", text.lower())).strip()


def answer_contains_target(answer_norm: str, target_en: str) -> bool:
    target_norm = normalize_answer(target_en)
    if not target_norm:
        return False
    return re.search(rf"(?<![\w']){re.escape(target_norm)}(?![\w'])", answer_norm) is not None


class SessionService:
    """Exercise sessions: start, progress, attempts and finish."""

    def __init__(self, async_session: SQLAlchemyAsyncSession):
        self._async_session = async_session
        self._set_repo = VocabularySetCRUDRepository(async_session=async_session)
        self._generation_repo = GenerationRunCRUDRepository(async_session=async_session)
        self._sentence_repo = SentenceCRUDRepository(async_session=async_session)
        self._exercise_session_repo = ExerciseSessionCRUDRepository(async_session=async_session)
        self._attempt_repo = AttemptCRUDRepository(async_session=async_session)
        self._event_repo = EventLogCRUDRepository(async_session=async_session)

    async def start_session(self, user_id: uuid.UUID, command: SessionCreate) -> SessionCreated:
        if await self._exercise_session_repo.get_active_for_set(set_id=command.set_id, user_id=user_id):
            raise ConflictError("SESSION_ALREADY_RUNNING", "A session is already active for this set")

        vocabulary_set = await self._set_repo.get_by_id_and_user(set_id=command.set_id, user_id=user_id)
        if not vocabulary_set:
            raise EntityNotFound("SET_NOT_FOUND", "Set not found or access denied")

        if command.generation_id is None:
            generation = await self._generation_repo.get_latest_for_set(set_id=command.set_id, user_id=user_id)
            if not generation:
                raise BusinessRuleViolation("NO_GENERATION_FOUND", "No generation found for this set")
        else:
            generation = await self._generation_repo.get_for_set(
                generation_id=command.generation_id, set_id=command.set_id, user_id=user_id
            )
            if not generation:
                raise EntityNotFound("GENERATION_NOT_FOUND", "Generation not found or access denied")
        generation_id = generation.id

        try:
            exercise_session = await self._exercise_session_repo.create_session(
                user_id=user_id, set_id=command.set_id, generation_id=generation_id
            )
        except IntegrityError as exc:
            await self._async_session.rollback()
            if is_unique_violation(exc, constraint=ACTIVE_SESSION_INDEX, columns=("exercise_sessions.set_id",)):
                raise ConflictError("SESSION_ALREADY_RUNNING", "A session is already active for this set") from exc
            raise

        pending = await self._sentence_repo.count_for_generation(generation_id=generation_id)
        result = SessionCreated(
            id=exercise_session.id,
            set_id=exercise_session.set_id,
            generation_id=generation_id,
            started_at=exercise_session.started_at,
            pending_sentences=pending,
        )
        logger.info("Session %s started for set %s with %d sentences", result.id, command.set_id, pending)
        await self._event_repo.log_event(
            user_id=user_id,
            event_type="session_started",
            entity_id=result.id,
            metadata={"set_id": str(command.set_id), "generation_id": str(generation_id), "mode": command.mode},
        )
        return result

    async def get_session(self, user_id: uuid.UUID, session_id: uuid.UUID) -> SessionDetail:
        exercise_session = await self._exercise_session_repo.get_by_id_and_user(session_id=session_id, user_id=user_id)
        if not exercise_session:
            raise EntityNotFound("SESSION_NOT_FOUND", "Session not found or access denied")

        sentences = await self._sentence_repo.list_for_generation(generation_id=exercise_session.generation_id)
        latest = await self._attempt_repo.latest_by_sentence(session_id=exercise_session.id)

        items: list[SessionSentence] = []
        attempted = correct = 0
        for sentence in sentences:
            attempt = latest.get(sentence.id)
            if attempt:
                attempted += 1
                correct += int(attempt.is_correct)
            items.append(
                SessionSentence(
                    sentence_id=sentence.id,
                    pl_text=sentence.pl_text,
                    latest_attempt=LatestAttempt(attempt_no=attempt.attempt_no, is_correct=attempt.is_correct)
                    if attempt
                    else None,
                )
            )

        return SessionDetail(
            id=exercise_session.id,
            set_id=exercise_session.set_id,
            generation_id=exercise_session.generation_id,
            started_at=exercise_session.started_at,
            finished_at=exercise_session.finished_at,
            progress=SessionProgress(attempted=attempted, correct=correct, remaining=len(sentences) - attempted),
            sentences=items,
        )

    async def finish_session(self, user_id: uuid.UUID, session_id: uuid.UUID, command: SessionFinish) -> SessionFinished:
        exercise_session = await self._exercise_session_repo.get_by_id_and_user(session_id=session_id, user_id=user_id)
        if not exercise_session:
            raise EntityNotFound("SESSION_NOT_FOUND", "Session not found or access denied")
        if exercise_session.finished_at is not None:
            raise ConflictError("ALREADY_FINISHED", "Session is already finished")

        exercise_session = await self._exercise_session_repo.finish_session(
            exercise_session=exercise_session, completed_reason=command.completed_reason
        )
        result = SessionFinished(finished_at=exercise_session.finished_at)
        logger.info("Session %s finished (%s)", session_id, command.completed_reason)
        await self._event_repo.log_event(
            user_id=user_id,
            event_type="session_finished",
            entity_id=session_id,
            metadata={"completed_reason": command.completed_reason},
        )
        return result

    async def submit_attempt(self, user_id: uuid.UUID, session_id: uuid.UUID, command: AttemptCreate) -> AttemptOut:
        exercise_session = await self._exercise_session_repo.get_by_id_and_user(session_id=session_id, user_id=user_id)
        if not exercise_session:
            raise EntityNotFound("SESSION_NOT_FOUND", "Session not found or access denied")
        if exercise_session.finished_at is not None:
            raise ConflictError("SESSION_FINISHED", "Session is already finished")

        sentence = await self._sentence_repo.get_in_generation(
            sentence_id=command.sentence_id, generation_id=exercise_session.generation_id
        )
        if not sentence:
            raise EntityNotFound("SENTENCE_NOT_FOUND", "Sentence does not belong to this session")
        target_en = sentence.target_en

        answer_norm = normalize_answer(command.answer_raw)
        is_correct = answer_contains_target(answer_norm, target_en)
        previous = await self._attempt_repo.max_attempt_no(session_id=session_id, sentence_id=sentence.id)

        try:
            attempt = await self._attempt_repo.create_attempt(
                session_id=session_id,
                sentence_id=sentence.id,
                user_id=user_id,
                attempt_no=previous + 1,
                answer_raw=command.answer_raw,
                answer_norm=answer_norm,
                is_correct=is_correct,
            )
        except IntegrityError as exc:
            await self._async_session.rollback()
            if is_unique_violation(
                exc,
                constraint=ATTEMPT_NUMBER_CONSTRAINT,
                columns=("attempts.session_id", "attempts.sentence_id", "attempts.attempt_no"),
            ):
                raise ConflictError(
                    "ATTEMPT_CONFLICT", "Another attempt for this sentence was recorded at the same time"
                ) from exc
            raise
        if is_correct:
            feedback = AttemptFeedback()
        else:
            feedback = AttemptFeedback(
                highlight=[target_en],
                explanation=f"The translation should use the word '{target_en}'",
            )
        result = AttemptOut(
            attempt_id=attempt.id,
            attempt_no=attempt.attempt_no,
            is_correct=attempt.is_correct,
            answer_raw=attempt.answer_raw,
            answer_norm=attempt.answer_norm,
            checked_at=attempt.checked_at,
            feedback=feedback,
        )
        await self._event_repo.log_event(
            user_id=user_id,
            event_type="attempt_created",
            entity_id=result.attempt_id,
            metadata={"session_id": str(session_id), "is_correct": is_correct},
        )
        return result
