import fastapi

from smartwords.api.routes.auth import router as auth_router
from smartwords.api.routes.sessions import router as sessions_router
from smartwords.api.routes.sets import router as sets_router
from smartwords.api.routes.usage import router as usage_router
from smartwords.models.schemas.error import ErrorResponse

router = fastapi.APIRouter()

# Every domain error is rendered with the same envelope
error_responses: dict[int | str, dict] = {
    status_code: {"model": ErrorResponse} for status_code in (400, 401, 404, 409, 422, 429, 502)
}


@router.get("/health", status_code=200, tags=["health"])
async def health_check():
    return {"status": "healthy", "service": "smartwords-backend"}


router.include_router(router=auth_router, responses=error_responses)
router.include_router(router=sets_router, responses=error_responses)
router.include_router(router=sessions_router, responses=error_responses)
router.include_router(router=usage_router, responses=error_responses)
