import logging

import fastapi

from smartwords.api.dependencies.auth import get_current_user
from smartwords.api.dependencies.repository import get_repository
from smartwords.config.manager import settings
from smartwords.models.db.auth_session import TokenPurpose
from smartwords.models.db.user import User
from smartwords.models.schemas.auth import (
    AuthExchange,
    AuthLogin,
    AuthLogout,
    AuthRecover,
    AuthResetPassword,
    AuthSignup,
    AuthTokens,
)
from smartwords.models.schemas.base import MessageResponse
from smartwords.repository.crud.auth_session import AuthSessionCRUDRepository
from smartwords.repository.crud.user import UserCRUDRepository
from smartwords.securities.authorizations.jwt import jwt_generator
from smartwords.utilities.exceptions.database import EntityAlreadyExists, EntityDoesNotExist
from smartwords.utilities.exceptions.domain import ConflictError, NotAuthenticated
from smartwords.utilities.exceptions.password import PasswordDoesNotMatch

logger = logging.getLogger(__name__)

router = fastapi.APIRouter(prefix="/auth", tags=["auth"])


async def _issue_tokens(user: User, session_repo: AuthSessionCRUDRepository) -> AuthTokens:
    access_token = jwt_generator.generate_access_token_for_user(user=user)
    refresh = await session_repo.create_session(
        user_id=user.id,
        expiry_minutes=settings.REFRESH_TOKEN_EXPIRY_MINUTES,
        purpose=TokenPurpose.REFRESH,
    )
    return AuthTokens(user_id=user.id, email=user.email, access_token=access_token, refresh_token=refresh.token)


@router.post(
    path="/signup",
    name="auth:signup",
    response_model=AuthTokens,
    status_code=fastapi.status.HTTP_201_CREATED,
    summary="Register a new account",
)
async def signup(
    payload: AuthSignup,
    user_repo: UserCRUDRepository = fastapi.Depends(get_repository(repo_type=UserCRUDRepository)),
    session_repo: AuthSessionCRUDRepository = fastapi.Depends(get_repository(repo_type=AuthSessionCRUDRepository)),
) -> AuthTokens:
    try:
        user = await user_repo.create_user(email=payload.email, password=payload.password, timezone=payload.data.timezone)
    except EntityAlreadyExists as exc:
        raise ConflictError("EMAIL_ALREADY_REGISTERED", "Email is already registered") from exc

    logger.info("User %s signed up", user.id)
    return await _issue_tokens(user, session_repo)


@router.post(
    path="/login",
    name="auth:login",
    response_model=AuthTokens,
    status_code=fastapi.status.HTTP_200_OK,
    summary="Sign in with email and password",
)
async def login(
    payload: AuthLogin,
    user_repo: UserCRUDRepository = fastapi.Depends(get_repository(repo_type=UserCRUDRepository)),
    session_repo: AuthSessionCRUDRepository = fastapi.Depends(get_repository(repo_type=AuthSessionCRUDRepository)),
) -> AuthTokens:
    try:
        user = await user_repo.verify_password(email=payload.email, password=payload.password)
    except (EntityDoesNotExist, PasswordDoesNotMatch) as exc:
        raise NotAuthenticated("INVALID_CREDENTIALS", "Invalid email or password") from exc

    return await _issue_tokens(user, session_repo)


@router.post(
    path="/logout",
    name="auth:logout",
    response_model=MessageResponse,
    status_code=fastapi.status.HTTP_200_OK,
    summary="Revoke the given refresh token",
)
async def logout(
    payload: AuthLogout,
    current_user: User = fastapi.Depends(get_current_user),
    session_repo: AuthSessionCRUDRepository = fastapi.Depends(get_repository(repo_type=AuthSessionCRUDRepository)),
) -> MessageResponse:
    if payload.refresh_token:
        token_row = await session_repo.get_session_by_token(token=payload.refresh_token)
        if token_row and token_row.user_id == current_user.id:
            await session_repo.delete_session_by_token(token=payload.refresh_token)
    return MessageResponse(message="LOGGED_OUT")


@router.post(
    path="/recover",
    name="auth:recover",
    response_model=MessageResponse,
    status_code=fastapi.status.HTTP_200_OK,
    summary="Start password recovery",
    description="Always answers the same way so the endpoint cannot be used to probe for accounts.",
)
async def recover(
    payload: AuthRecover,
    user_repo: UserCRUDRepository = fastapi.Depends(get_repository(repo_type=UserCRUDRepository)),
    session_repo: AuthSessionCRUDRepository = fastapi.Depends(get_repository(repo_type=AuthSessionCRUDRepository)),
) -> MessageResponse:
    try:
        user = await user_repo.get_user_by_email(email=payload.email)
    except EntityDoesNotExist:
        logger.info("Password recovery requested for unknown email")
        return MessageResponse(message="RESET_EMAIL_SENT")

    recovery = await session_repo.create_session(
        user_id=user.id,
        expiry_minutes=settings.RECOVERY_TOKEN_EXPIRY_MINUTES,
        purpose=TokenPurpose.RECOVERY,
    )
    logger.info("Recovery token issued for user %s (expires %s)", user.id, recovery.expiry)
    return MessageResponse(message="RESET_EMAIL_SENT")


@router.post(
    path="/exchange",
    name="auth:exchange",
    response_model=AuthTokens,
    status_code=fastapi.status.HTTP_200_OK,
    summary="Trade a refresh or recovery token for a fresh token pair",
)
async def exchange(
    payload: AuthExchange,
    user_repo: UserCRUDRepository = fastapi.Depends(get_repository(repo_type=UserCRUDRepository)),
    session_repo: AuthSessionCRUDRepository = fastapi.Depends(get_repository(repo_type=AuthSessionCRUDRepository)),
) -> AuthTokens:
    token_row = await session_repo.get_valid_session(token=payload.refresh_token)
    if not token_row:
        raise NotAuthenticated("RECOVERY_TOKEN_INVALID", "Token is invalid or expired")
    user_id = token_row.user_id

    try:
        user = await user_repo.get_user_by_id(user_id=user_id)
    except EntityDoesNotExist as exc:
        raise NotAuthenticated("RECOVERY_TOKEN_INVALID", "Token is invalid or expired") from exc

    # Exchanged tokens are single use
    await session_repo.delete_session_by_token(token=payload.refresh_token)
    return await _issue_tokens(user, session_repo)


@router.post(
    path="/reset-password",
    name="auth:reset-password",
    response_model=MessageResponse,
    status_code=fastapi.status.HTTP_200_OK,
    summary="Set a new password for the signed-in user",
)
async def reset_password(
    payload: AuthResetPassword,
    current_user: User = fastapi.Depends(get_current_user),
    user_repo: UserCRUDRepository = fastapi.Depends(get_repository(repo_type=UserCRUDRepository)),
    session_repo: AuthSessionCRUDRepository = fastapi.Depends(get_repository(repo_type=AuthSessionCRUDRepository)),
) -> MessageResponse:
    user_id = current_user.id
    await user_repo.update_password(user_id=user_id, new_password=payload.password)
    await session_repo.delete_sessions_for_user(user_id=user_id, purpose=TokenPurpose.RECOVERY)
    logger.info("Password updated for user %s", user_id)
    return MessageResponse(message="PASSWORD_UPDATED")
