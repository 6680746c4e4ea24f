import logging

import fastapi
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse

from smartwords.utilities.exceptions.domain import DomainError, map_error_to_status

logger = logging.getLogger(__name__)


def error_response(status_code: int, code: str, message: str) -> JSONResponse:
    return JSONResponse(status_code=status_code, content={"error": {"code": code, "message": message}})


async def domain_error_handler(request: fastapi.Request, exc: DomainError) -> JSONResponse:
    status_code = map_error_to_status(exc)
    if status_code >= 500:
        logger.warning("%s %s failed with %s: %s", request.method, request.url.path, exc.code, exc.message)
    return error_response(status_code, exc.code, exc.message)


async def validation_error_handler(request: fastapi.Request, exc: RequestValidationError) -> JSONResponse:
    details = []
    for error in exc.errors():
        location = ".".join(str(part) for part in error.get("loc", ()))
        details.append(f"{location}: {error.get('msg')}")
    return error_response(fastapi.status.HTTP_400_BAD_REQUEST, "VALIDATION_ERROR", "; ".join(details) or "Invalid request")


async def unhandled_error_handler(request: fastapi.Request, exc: Exception) -> JSONResponse:
    logger.exception("Unhandled error on %s %s", request.method, request.url.path)
    return error_response(
        fastapi.status.HTTP_500_INTERNAL_SERVER_ERROR, "INTERNAL_SERVER_ERROR", "An unexpected error occurred"
    )


def register_exception_handlers(app: fastapi.FastAPI) -> None:
    app.add_exception_handler(DomainError, domain_error_handler)  # type: ignore[arg-type]
    app.add_exception_handler(RequestValidationError, validation_error_handler)  # type: ignore[arg-type]
    app.add_exception_handler(Exception, unhandled_error_handler)
