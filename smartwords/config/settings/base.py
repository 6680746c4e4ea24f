import logging
import pathlib

import decouple
import pydantic
from pydantic_settings import BaseSettings

ROOT_DIR: pathlib.Path = pathlib.Path(__file__).parent.parent.parent.parent.resolve()


class BackendBaseSettings(BaseSettings):
    TITLE: str = "SmartWords Backend API"
    VERSION: str = "0.1.0"
    TIMEZONE: str = "UTC"
    DESCRIPTION: str | None = None
    DEBUG: bool = False
    ENVIRONMENT: str = "DEV"  # Default environment, overridden by subclasses

    SERVER_HOST: str = decouple.config("BACKEND_SERVER_HOST", cast=str, default="127.0.0.1")  # type: ignore
    SERVER_PORT: int = decouple.config("BACKEND_SERVER_PORT", cast=int, default=8000)  # type: ignore
    SERVER_WORKERS: int = decouple.config("BACKEND_SERVER_WORKERS", cast=int, default=1)  # type: ignore
    API_PREFIX: str = "/api"
    DOCS_URL: str = "/docs"
    OPENAPI_URL: str = "/openapi.json"
    REDOC_URL: str = "/redoc"
    OPENAPI_PREFIX: str = ""

    # Full SQLAlchemy URL; when empty the URL is assembled from the POSTGRES_* parts below
    DATABASE_URL: str = decouple.config("DATABASE_URL", cast=str, default="")  # type: ignore
    DB_POSTGRES_HOST: str = decouple.config("POSTGRES_HOST", cast=str, default="localhost")  # type: ignore
    DB_MAX_POOL_CON: int = decouple.config("DB_MAX_POOL_CON", cast=int, default=80)  # type: ignore
    DB_POSTGRES_NAME: str = decouple.config("POSTGRES_DB", cast=str, default="postgres")  # type: ignore
    DB_POSTGRES_PASSWORD: str = decouple.config("POSTGRES_PASSWORD", cast=str, default="postgres")  # type: ignore
    DB_POOL_SIZE: int = decouple.config("DB_POOL_SIZE", cast=int, default=10)  # type: ignore
    DB_POOL_OVERFLOW: int = decouple.config("DB_POOL_OVERFLOW", cast=int, default=20)  # type: ignore
    DB_POSTGRES_PORT: int = decouple.config("POSTGRES_PORT", cast=int, default=5432)  # type: ignore
    DB_POSTGRES_SCHEMA: str = decouple.config("POSTGRES_SCHEMA", cast=str, default="postgresql")  # type: ignore
    DB_TIMEOUT: int = decouple.config("DB_TIMEOUT", cast=int, default=30)  # type: ignore
    DB_POSTGRES_USERNAME: str = decouple.config("POSTGRES_USERNAME", cast=str, default="postgres")  # type: ignore
    # Supabase poolers require TLS; set to False for a local PostgreSQL
    DB_REQUIRE_SSL: bool = decouple.config("DB_REQUIRE_SSL", cast=bool, default=True)  # type: ignore

    IS_DB_ECHO_LOG: bool = decouple.config("IS_DB_ECHO_LOG", cast=bool, default=False)  # type: ignore
    IS_DB_FORCE_ROLLBACK: bool = decouple.config("IS_DB_FORCE_ROLLBACK", cast=bool, default=False)  # type: ignore
    IS_DB_EXPIRE_ON_COMMIT: bool = decouple.config("IS_DB_EXPIRE_ON_COMMIT", cast=bool, default=False)  # type: ignore

    JWT_TOKEN_PREFIX: str = decouple.config("JWT_TOKEN_PREFIX", cast=str, default="Bearer")  # type: ignore
    JWT_SECRET_KEY: str = decouple.config("JWT_SECRET_KEY", cast=str, default="change-me-jwt-secret")  # type: ignore
    JWT_SUBJECT: str = decouple.config("JWT_SUBJECT", cast=str, default="access")  # type: ignore
    JWT_ALGORITHM: str = decouple.config("JWT_ALGORITHM", cast=str, default="HS256")  # type: ignore
    JWT_MIN: int = decouple.config("JWT_MIN", cast=int, default=60)  # type: ignore
    JWT_HOUR: int = decouple.config("JWT_HOUR", cast=int, default=24)  # type: ignore
    JWT_DAY: int = decouple.config("JWT_DAY", cast=int, default=1)  # type: ignore
    JWT_ACCESS_TOKEN_EXPIRATION_TIME: int = JWT_MIN * JWT_HOUR * JWT_DAY

    # Refresh token settings (in minutes). Default: 30 days
    REFRESH_TOKEN_EXPIRY_MINUTES: int = decouple.config("REFRESH_TOKEN_EXPIRY_MINUTES", cast=int, default=60 * 24 * 30)  # type: ignore
    # Recovery tokens handed out by /auth/recover (in minutes)
    RECOVERY_TOKEN_EXPIRY_MINUTES: int = decouple.config("RECOVERY_TOKEN_EXPIRY_MINUTES", cast=int, default=60)  # type: ignore

    IS_ALLOWED_CREDENTIALS: bool = decouple.config("IS_ALLOWED_CREDENTIALS", cast=bool, default=True)  # type: ignore
    ALLOWED_ORIGINS: list[str] = [
        "http://localhost:3000",
        "http://127.0.0.1:3000",
        "http://localhost:4321",  # Astro dev server
        "http://127.0.0.1:4321",
    ]
    ALLOWED_METHODS: list[str] = ["*"]
    ALLOWED_HEADERS: list[str] = ["*"]

    LOGGING_LEVEL: int = logging.INFO
    LOGGERS: tuple[str, str] = ("uvicorn.asgi", "uvicorn.access")

    # ------------------------------
    # Sentence generation (OpenRouter)
    # ------------------------------
    OPENROUTER_API_KEY: str = decouple.config("OPENROUTER_API_KEY", cast=str, default="")  # type: ignore
    OPENROUTER_BASE_URL: str = decouple.config("OPENROUTER_BASE_URL", cast=str, default="https://openrouter.ai/api/v1")  # type: ignore
    OPENROUTER_DEFAULT_MODEL: str = decouple.config("OPENROUTER_DEFAULT_MODEL", cast=str, default="openai/gpt-4o-mini")  # type: ignore
    # Request-level timeout in seconds for a single completion call
    OPENROUTER_TIMEOUT_SECONDS: float = decouple.config("OPENROUTER_TIMEOUT_SECONDS", cast=float, default=30.0)  # type: ignore
    # Total number of attempts, including the first one
    OPENROUTER_MAX_RETRIES: int = decouple.config("OPENROUTER_MAX_RETRIES", cast=int, default=3)  # type: ignore
    OPENROUTER_APP_URL: str = decouple.config("OPENROUTER_APP_URL", cast=str, default="https://smartwordsai.app")  # type: ignore
    OPENROUTER_APP_TITLE: str = decouple.config("OPENROUTER_APP_TITLE", cast=str, default="SmartWordsAI")  # type: ignore

    DAILY_GENERATION_LIMIT: int = decouple.config("DAILY_GENERATION_LIMIT", cast=int, default=10)  # type: ignore

    model_config = pydantic.ConfigDict(
        case_sensitive=True,
        env_file=f"{str(ROOT_DIR)}/.env",
        validate_assignment=True,
        extra='allow'
    )

    @property
    def set_backend_app_attributes(self) -> dict[str, str | bool | None]:
        """
        Set all `FastAPI` class' attributes with the custom values defined in `BackendBaseSettings`.
        """
        return {
            "title": self.TITLE,
            "version": self.VERSION,
            "debug": self.DEBUG,
            "description": self.DESCRIPTION,
            "docs_url": self.DOCS_URL,
            "openapi_url": self.OPENAPI_URL,
            "redoc_url": self.REDOC_URL,
            "openapi_prefix": self.OPENAPI_PREFIX,
            "api_prefix": self.API_PREFIX,
        }
