"""Shared fixtures: in-memory SQLite schema, a signed-in user, a scripted sentence provider and an API client."""

import os
import typing
import uuid

os.environ.setdefault("ENVIRONMENT", "DEV")
os.environ.setdefault("DATABASE_URL", "sqlite+aiosqlite://")
os.environ.setdefault("JWT_SECRET_KEY", "test-secret")
os.environ.setdefault("OPENROUTER_API_KEY", "test-openrouter-key")
os.environ.setdefault("DAILY_GENERATION_LIMIT", "10")

import httpx
import pytest
import pytest_asyncio
import sqlalchemy
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine
from sqlalchemy.pool import StaticPool

import smartwords.models.db  # noqa: F401
from smartwords.api.dependencies.provider import get_sentence_provider
from smartwords.api.dependencies.session import get_async_session
from smartwords.main import initialize_backend_application
from smartwords.models.db.user import User
from smartwords.models.db.vocabulary_set import CEFRLevel
from smartwords.models.schemas.sets import SetCreate, WordCreate
from smartwords.repository.table import Base
from smartwords.securities.authorizations.jwt import jwt_generator
from smartwords.services.openrouter import (
    GeneratedSentenceLLM,
    OpenRouterError,
    ProviderUsage,
    SentenceGenerationResult,
)
from smartwords.services.sets import SetsService


class FakeSentenceProvider:
    """Returns one sentence per word, or raises the configured error."""

    def __init__(self, error: OpenRouterError | None = None):
        self.error = error
        self.calls: list[dict[str, typing.Any]] = []

    async def generate_sentences(self, **kwargs: typing.Any) -> SentenceGenerationResult:
        self.calls.append(kwargs)
        if self.error is not None:
            raise self.error
        return SentenceGenerationResult(
            sentences=[
                GeneratedSentenceLLM(pl_text=f"To jest {word['pl']}.", target_en=word["en"])
                for word in kwargs["words"]
            ],
            usage=ProviderUsage(tokens_in=120, tokens_out=80, cost_usd=0.0084),
        )


@pytest_asyncio.fixture()
async def engine():
    engine = create_async_engine("sqlite+aiosqlite://", poolclass=StaticPool, connect_args={"check_same_thread": False})

    @sqlalchemy.event.listens_for(engine.sync_engine, "connect")
    def _enable_foreign_keys(dbapi_connection, connection_record):
        cursor = dbapi_connection.cursor()
        cursor.execute("PRAGMA foreign_keys=ON")
        cursor.close()

    async with engine.begin() as connection:
        await connection.run_sync(Base.metadata.create_all)
    try:
        yield engine
    finally:
        await engine.dispose()


@pytest.fixture()
def session_factory(engine) -> async_sessionmaker[AsyncSession]:
    return async_sessionmaker(bind=engine, expire_on_commit=False, class_=AsyncSession)


@pytest_asyncio.fixture()
async def db_session(session_factory) -> typing.AsyncGenerator[AsyncSession, None]:
    async with session_factory() as session:
        yield session


async def create_user(session: AsyncSession, email: str | None = None) -> User:
    user = User(id=uuid.uuid4(), email=email or f"{uuid.uuid4().hex[:8]}@example.com", password_hash="x")
    session.add(user)
    await session.commit()
    return user


@pytest_asyncio.fixture()
async def user(db_session) -> User:
    return await create_user(db_session)


async def create_animals_set(session: AsyncSession, user_id: uuid.UUID, name: str = "Animals"):
    return await SetsService(session).create_set(
        user_id,
        SetCreate(
            name=name,
            level=CEFRLevel.A1,
            words=[WordCreate(pl="pies", en="dog"), WordCreate(pl="kot", en="cat")],
        ),
    )


@pytest.fixture()
def provider() -> FakeSentenceProvider:
    return FakeSentenceProvider()


@pytest.fixture()
def app(session_factory, provider):
    backend_app = initialize_backend_application()

    async def _get_test_session() -> typing.AsyncGenerator[AsyncSession, None]:
        async with session_factory() as session:
            yield session

    backend_app.dependency_overrides[get_async_session] = _get_test_session
    backend_app.dependency_overrides[get_sentence_provider] = lambda: provider
    return backend_app


@pytest_asyncio.fixture()
async def client(app) -> typing.AsyncGenerator[httpx.AsyncClient, None]:
    transport = httpx.ASGITransport(app=app)
    async with httpx.AsyncClient(transport=transport, base_url="http://test") as async_client:
        yield async_client


@pytest.fixture()
def auth_headers(user) -> dict[str, str]:
    return {"Authorization": f"Bearer {jwt_generator.generate_access_token_for_user(user=user)}"}
