import datetime
import uuid

import pytest
import sqlalchemy
from sqlalchemy.exc import IntegrityError

from smartwords.models.db.attempt import Attempt
from smartwords.models.db.auth_session import AuthSession
from smartwords.models.db.exercise_session import ExerciseSession
from smartwords.models.db.generation_run import GenerationRun
from smartwords.models.db.sentence import Sentence
from smartwords.models.db.user import User
from smartwords.models.db.vocabulary_set import CEFRLevel, VocabularySet
from smartwords.models.db.word import Word


async def build_graph(session):
    user = User(email=f"{uuid.uuid4().hex[:8]}@example.com", password_hash="x")
    session.add(user)
    await session.flush()

    session.add(
        AuthSession(
            user_id=user.id,
            token=uuid.uuid4().hex,
            expiry=datetime.datetime.now(datetime.timezone.utc) + datetime.timedelta(hours=1),
        )
    )

    vocabulary_set = VocabularySet(user_id=user.id, name="Animals", level=CEFRLevel.A1, words_count=1)
    session.add(vocabulary_set)
    await session.flush()

    word = Word(set_id=vocabulary_set.id, user_id=user.id, pl="pies", en="dog", en_norm="dog", position=0)
    run = GenerationRun(
        user_id=user.id,
        set_id=vocabulary_set.id,
        model_id="openai/gpt-4o-mini",
        temperature=0.7,
        prompt_version="v1.0.0",
        idempotency_key="k1",
        words_snapshot=[{"pl": "pies", "en": "dog"}],
    )
    session.add_all([word, run])
    await session.flush()

    sentence = Sentence(generation_id=run.id, user_id=user.id, word_id=word.id, pl_text="Mam psa.", target_en="dog")
    exercise_session = ExerciseSession(user_id=user.id, set_id=vocabulary_set.id, generation_id=run.id)
    session.add_all([sentence, exercise_session])
    await session.flush()

    session.add(
        Attempt(
            session_id=exercise_session.id,
            sentence_id=sentence.id,
            user_id=user.id,
            attempt_no=1,
            answer_raw="I have a dog",
            answer_norm="i have a dog",
            is_correct=True,
        )
    )
    await session.commit()
    return user, vocabulary_set, word, run, sentence


@pytest.mark.asyncio
async def test_models_create_and_defaults(db_session) -> None:
    user, vocabulary_set, _, run, _ = await build_graph(db_session)

    assert user.timezone == "UTC"
    assert user.created_at.tzinfo is not None
    assert vocabulary_set.created_at.tzinfo == datetime.timezone.utc
    assert run.tokens_in == 0
    assert run.cost_usd == 0


@pytest.mark.asyncio
async def test_deleting_a_set_cascades_to_its_children(db_session) -> None:
    _, vocabulary_set, _, _, _ = await build_graph(db_session)

    await db_session.execute(sqlalchemy.delete(VocabularySet).where(VocabularySet.id == vocabulary_set.id))
    await db_session.commit()

    for model in (Word, GenerationRun, Sentence, ExerciseSession, Attempt):
        count = (await db_session.execute(sqlalchemy.select(sqlalchemy.func.count()).select_from(model))).scalar()
        assert count == 0, model.__tablename__


@pytest.mark.asyncio
async def test_deleting_a_word_keeps_its_sentences(db_session) -> None:
    _, _, word, _, sentence = await build_graph(db_session)

    await db_session.execute(sqlalchemy.delete(Word).where(Word.id == word.id))
    await db_session.commit()

    word_id = (await db_session.execute(sqlalchemy.select(Sentence.word_id).where(Sentence.id == sentence.id))).scalar_one()
    assert word_id is None


@pytest.mark.asyncio
async def test_second_active_session_violates_partial_index(db_session) -> None:
    user, vocabulary_set, _, run, _ = await build_graph(db_session)
    user_id, set_id, run_id = user.id, vocabulary_set.id, run.id

    db_session.add(ExerciseSession(user_id=user_id, set_id=set_id, generation_id=run_id))
    with pytest.raises(IntegrityError):
        await db_session.commit()
    await db_session.rollback()

    await db_session.execute(
        sqlalchemy.update(ExerciseSession)
        .where(ExerciseSession.set_id == set_id)
        .values(finished_at=datetime.datetime.now(datetime.timezone.utc))
        .execution_options(synchronize_session=False)
    )
    db_session.add(ExerciseSession(user_id=user_id, set_id=set_id, generation_id=run_id))
    await db_session.commit()
