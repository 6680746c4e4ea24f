import uuid
from types import SimpleNamespace

import pytest
import sqlalchemy

from conftest import FakeSentenceProvider, create_animals_set
from smartwords.models.db.generation_run import GenerationRun
from smartwords.models.db.sentence import Sentence
from smartwords.models.db.vocabulary_set import CEFRLevel
from smartwords.models.schemas.generation import GenerationCreate
from smartwords.models.schemas.sets import WordUpdate
from smartwords.services.generation import GenerationService, match_sentence_word
from smartwords.services.openrouter import OpenRouterError
from smartwords.services.sets import SetsService
from smartwords.utilities.exceptions.domain import (
    BusinessRuleViolation,
    DailyLimitReached,
    EntityNotFound,
    UpstreamError,
)

COMMAND = GenerationCreate(model_id="openai/gpt-4o-mini", temperature=0.7, prompt_version="v1.0.0")


async def count_rows(db_session, model) -> int:
    return (await db_session.execute(sqlalchemy.select(sqlalchemy.func.count(model.id)))).scalar()


@pytest.mark.asyncio
async def test_generation_stores_run_and_sentences(db_session, user, provider):
    created = await create_animals_set(db_session, user.id)
    service = GenerationService(db_session, provider=provider)

    result = await service.trigger_generation(user.id, created.id, COMMAND, "k1")

    assert result.set_id == created.id
    assert [sentence.target_en for sentence in result.sentences] == ["dog", "cat"]
    assert all(sentence.word_id is not None for sentence in result.sentences)
    assert result.usage.tokens_in == 120
    assert result.usage.tokens_out == 80
    assert result.usage.remaining_generations_today == 9
    assert provider.calls[0]["level"] == CEFRLevel.A1.value
    assert provider.calls[0]["words"] == [{"pl": "pies", "en": "dog"}, {"pl": "kot", "en": "cat"}]

    run = await db_session.get(GenerationRun, result.generation_id)
    assert run.cost_usd == pytest.approx(0.0084)
    assert run.words_snapshot == [{"pl": "pies", "en": "dog"}, {"pl": "kot", "en": "cat"}]


@pytest.mark.asyncio
async def test_same_idempotency_key_replays_without_calling_provider(db_session, user, provider):
    created = await create_animals_set(db_session, user.id)
    service = GenerationService(db_session, provider=provider)

    first = await service.trigger_generation(user.id, created.id, COMMAND, "k1")
    second = await service.trigger_generation(user.id, created.id, COMMAND, "k1")

    assert second.generation_id == first.generation_id
    assert [s.sentence_id for s in second.sentences] == [s.sentence_id for s in first.sentences]
    assert len(provider.calls) == 1
    assert await count_rows(db_session, GenerationRun) == 1
    # the replay sees one run today, so the figure is computed as if this request counted again
    assert second.usage.remaining_generations_today == 8


@pytest.mark.asyncio
async def test_daily_limit_blocks_new_generations(db_session, user, provider):
    created = await create_animals_set(db_session, user.id)
    service = GenerationService(db_session, provider=provider)
    service._usage.limit = 2

    await service.trigger_generation(user.id, created.id, COMMAND, "k1")
    await service.trigger_generation(user.id, created.id, COMMAND, "k2")
    with pytest.raises(DailyLimitReached) as exc_info:
        await service.trigger_generation(user.id, created.id, COMMAND, "k3")

    assert exc_info.value.code == "DAILY_LIMIT_REACHED"
    assert len(provider.calls) == 2
    assert await count_rows(db_session, GenerationRun) == 2


@pytest.mark.asyncio
async def test_generation_requires_owned_set_with_words(db_session, user, provider):
    created = await create_animals_set(db_session, user.id)
    service = GenerationService(db_session, provider=provider)

    with pytest.raises(EntityNotFound) as missing:
        await service.trigger_generation(user.id, uuid.uuid4(), COMMAND, "k1")
    assert missing.value.code == "SET_NOT_FOUND"

    sets_service = SetsService(db_session)
    for word in (await sets_service.get_set(user.id, created.id)).words:
        await sets_service.delete_word(user.id, created.id, word.id)

    with pytest.raises(BusinessRuleViolation) as empty:
        await service.trigger_generation(user.id, created.id, COMMAND, "k1")
    assert empty.value.code == "SET_HAS_NO_WORDS"
    assert provider.calls == []


@pytest.mark.asyncio
async def test_provider_failure_removes_the_run(db_session, user):
    created = await create_animals_set(db_session, user.id)
    provider = FakeSentenceProvider(error=OpenRouterError("OPENROUTER_RATE_LIMIT", "slow down", status_code=429))
    service = GenerationService(db_session, provider=provider)

    with pytest.raises(UpstreamError) as exc_info:
        await service.trigger_generation(user.id, created.id, COMMAND, "k1")

    assert exc_info.value.code == "OPENROUTER_RATE_LIMIT"
    assert exc_info.value.upstream_status == 429
    assert await count_rows(db_session, GenerationRun) == 0

    # the key is free again once the provider recovers
    provider.error = None
    result = await service.trigger_generation(user.id, created.id, COMMAND, "k1")
    assert len(result.sentences) == 2


@pytest.mark.asyncio
async def test_sentences_survive_word_edits(db_session, user, provider):
    user_id = user.id
    created = await create_animals_set(db_session, user_id)
    result = await GenerationService(db_session, provider=provider).trigger_generation(user_id, created.id, COMMAND, "k1")
    sets_service = SetsService(db_session)
    dog = (await sets_service.get_set(user_id, created.id)).words[0]

    await sets_service.update_word(user_id, created.id, dog.id, WordUpdate(en="puppy"))
    await sets_service.delete_word(user_id, created.id, dog.id)

    db_session.expire_all()
    assert await count_rows(db_session, Sentence) == len(result.sentences)
    word_ids = (await db_session.execute(sqlalchemy.select(Sentence.target_en, Sentence.word_id))).all()
    assert dict(word_ids)["dog"] is None
    assert dict(word_ids)["cat"] is not None
    listing = await GenerationService(db_session, provider=provider).list_generations(user_id, created.id)
    assert listing.data[0].sentences_generated == 2


@pytest.mark.asyncio
async def test_list_generations_newest_first(db_session, user, provider):
    created = await create_animals_set(db_session, user.id)
    service = GenerationService(db_session, provider=provider)
    first = await service.trigger_generation(user.id, created.id, COMMAND, "k1")
    second = await service.trigger_generation(user.id, created.id, COMMAND, "k2")

    listing = await service.list_generations(user.id, created.id)

    assert [item.id for item in listing.data] == [second.generation_id, first.generation_id]
    assert listing.pagination.count == 2
    detail = await SetsService(db_session).get_set(user.id, created.id)
    assert detail.latest_generation.id == second.generation_id


def test_match_sentence_word_falls_back_to_position_then_first_word():
    dog = SimpleNamespace(id=uuid.uuid4(), en_norm="dog")
    cat = SimpleNamespace(id=uuid.uuid4(), en_norm="cat")

    assert match_sentence_word(" Cat ", 0, [dog, cat]) == (cat, True)
    assert match_sentence_word("kitten", 1, [dog, cat]) == (cat, False)
    assert match_sentence_word("kitten", 5, [dog, cat]) == (dog, False)
