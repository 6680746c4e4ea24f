import datetime
import uuid

import pytest

from conftest import create_animals_set
from smartwords.models.db.generation_run import GenerationRun
from smartwords.services.dashboard import DashboardService
from smartwords.services.usage import UsageService


def make_run(user_id, set_id, occurred_at: datetime.datetime) -> GenerationRun:
    return GenerationRun(
        id=uuid.uuid4(),
        user_id=user_id,
        set_id=set_id,
        model_id="openai/gpt-4o-mini",
        temperature=0.7,
        prompt_version="v1.0.0",
        idempotency_key=uuid.uuid4().hex,
        words_snapshot=[{"pl": "pies", "en": "dog"}],
        occurred_at=occurred_at,
    )


@pytest.mark.asyncio
async def test_daily_usage_counts_only_runs_since_utc_midnight(db_session, user):
    created = await create_animals_set(db_session, user.id)
    now = datetime.datetime(2026, 10, 19, 15, 30, tzinfo=datetime.timezone.utc)
    db_session.add_all(
        [
            make_run(user.id, created.id, now - datetime.timedelta(hours=2)),
            make_run(user.id, created.id, now.replace(hour=0, minute=0)),
            make_run(user.id, created.id, now - datetime.timedelta(days=1)),
        ]
    )
    await db_session.commit()

    usage = await UsageService(db_session, limit=10).get_daily_usage(user.id, now=now)

    assert usage.limit == 10
    assert usage.used == 2
    assert usage.remaining == 8
    assert usage.next_reset_at == datetime.datetime(2026, 10, 20, tzinfo=datetime.timezone.utc)


@pytest.mark.asyncio
async def test_remaining_never_goes_negative(db_session, user):
    created = await create_animals_set(db_session, user.id)
    now = datetime.datetime(2026, 10, 19, 12, 0, tzinfo=datetime.timezone.utc)
    db_session.add_all([make_run(user.id, created.id, now) for _ in range(3)])
    await db_session.commit()

    usage = await UsageService(db_session, limit=2).get_daily_usage(user.id, now=now)

    assert usage.used == 3
    assert usage.remaining == 0


@pytest.mark.asyncio
async def test_dashboard_summarises_sets_and_quota(db_session, user):
    await create_animals_set(db_session, user.id)
    await create_animals_set(db_session, user.id, name="Food")

    dashboard = await DashboardService(db_session).get_dashboard(user.id)

    assert dashboard.sets_total == 2
    assert dashboard.active_session is None
    assert dashboard.remaining_generations == 10
