import uuid

import fastapi
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer

from smartwords.api.dependencies.repository import get_repository
from smartwords.config.manager import settings
from smartwords.models.db.user import User
from smartwords.repository.crud.user import UserCRUDRepository
from smartwords.securities.authorizations.jwt import jwt_generator
from smartwords.utilities.exceptions.database import EntityDoesNotExist
from smartwords.utilities.exceptions.domain import NotAuthenticated

# auto_error is off so a missing header renders through the domain error handler
security = HTTPBearer(auto_error=False)


async def get_current_user(
    credentials: HTTPAuthorizationCredentials | None = fastapi.Depends(security),
    user_repo: UserCRUDRepository = fastapi.Depends(get_repository(repo_type=UserCRUDRepository)),
) -> User:
    if credentials is None or not credentials.credentials:
        raise NotAuthenticated("UNAUTHORIZED", "Missing bearer token")

    try:
        user_id, _ = jwt_generator.retrieve_details_from_token(
            token=credentials.credentials, secret_key=settings.JWT_SECRET_KEY
        )
        return await user_repo.get_user_by_id(user_id=uuid.UUID(user_id))
    except (ValueError, EntityDoesNotExist) as exc:
        raise NotAuthenticated("UNAUTHORIZED", "Invalid authentication credentials") from exc
