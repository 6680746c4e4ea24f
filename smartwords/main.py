import fastapi
import uvicorn
from dotenv import load_dotenv
from fastapi.middleware.cors import CORSMiddleware

from smartwords.api.endpoints import router as api_endpoint_router
from smartwords.config.events import backend_lifespan
from smartwords.config.manager import settings
from smartwords.utilities.exceptions.http.handlers import register_exception_handlers


def initialize_backend_application() -> fastapi.FastAPI:
    # Load environment variables from .env if present
    load_dotenv()
    app = fastapi.FastAPI(lifespan=backend_lifespan, **settings.set_backend_app_attributes)  # type: ignore

    # Tags metadata for Swagger grouping
    tags_metadata = [
        {"name": "auth", "description": "Signup, login, token exchange and password recovery."},
        {"name": "sets", "description": "Vocabulary sets, their words and sentence generation."},
        {"name": "sessions", "description": "Translation exercise sessions and attempts."},
        {"name": "usage", "description": "Daily generation quota and dashboard summary."},
        {"name": "health", "description": "Liveness probe."},
    ]
    app.openapi_tags = tags_metadata  # type: ignore[attr-defined]

    if not getattr(settings, "DESCRIPTION", None):
        app.description = "APIs for learning English vocabulary from Polish: sets, AI-generated sentences and practice sessions."

    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.ALLOWED_ORIGINS,
        allow_credentials=settings.IS_ALLOWED_CREDENTIALS,
        allow_methods=settings.ALLOWED_METHODS,
        allow_headers=settings.ALLOWED_HEADERS,
    )

    register_exception_handlers(app)

    app.include_router(router=api_endpoint_router, prefix=settings.API_PREFIX)

    @app.get("/", include_in_schema=False)
    async def root():
        return {
            "message": "Welcome to SmartWords Backend API",
            "version": settings.VERSION,
            "docs": settings.DOCS_URL,
            "health": f"{settings.API_PREFIX}/health",
        }

    return app


backend_app: fastapi.FastAPI = initialize_backend_application()

if __name__ == "__main__":
    uvicorn.run(
        app="smartwords.main:backend_app",
        host=settings.SERVER_HOST,
        port=settings.SERVER_PORT,
        reload=settings.DEBUG,
        workers=settings.SERVER_WORKERS,
        log_level=settings.LOGGING_LEVEL,
    )
