import fastapi
from sqlalchemy.ext.asyncio import AsyncSession as SQLAlchemyAsyncSession

from smartwords.api.dependencies.auth import get_current_user
from smartwords.api.dependencies.session import get_async_session
from smartwords.models.db.user import User
from smartwords.models.schemas.dashboard import Dashboard
from smartwords.models.schemas.usage import DailyUsage
from smartwords.services.dashboard import DashboardService
from smartwords.services.usage import UsageService

router = fastapi.APIRouter(prefix="", tags=["usage"])


@router.get(
    path="/usage/daily",
    name="usage:daily",
    response_model=DailyUsage,
    status_code=fastapi.status.HTTP_200_OK,
    summary="Generations used today and when the counter resets (UTC midnight)",
)
async def get_daily_usage(
    current_user: User = fastapi.Depends(get_current_user),
    session: SQLAlchemyAsyncSession = fastapi.Depends(get_async_session),
) -> DailyUsage:
    return await UsageService(session).get_daily_usage(current_user.id)


@router.get(
    path="/dashboard",
    name="usage:dashboard",
    response_model=Dashboard,
    status_code=fastapi.status.HTTP_200_OK,
)
async def get_dashboard(
    current_user: User = fastapi.Depends(get_current_user),
    session: SQLAlchemyAsyncSession = fastapi.Depends(get_async_session),
) -> Dashboard:
    return await DashboardService(session).get_dashboard(current_user.id)
