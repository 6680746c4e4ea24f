import datetime
import secrets
import uuid

import sqlalchemy

from smartwords.models.db.auth_session import AuthSession, TokenPurpose
from smartwords.repository.crud.base import BaseCRUDRepository
from smartwords.utilities.formatters.datetime_formatter import utc_now


class AuthSessionCRUDRepository(BaseCRUDRepository):
    async def create_session(
        self,
        *,
        user_id: uuid.UUID,
        expiry_minutes: int = 60,
        purpose: TokenPurpose = TokenPurpose.REFRESH,
    ) -> AuthSession:
        token = secrets.token_urlsafe(48)
        expiry = utc_now() + datetime.timedelta(minutes=expiry_minutes)

        new_session = AuthSession(user_id=user_id, token=token, expiry=expiry, purpose=purpose.value)
        self.async_session.add(new_session)
        await self.async_session.commit()
        await self.async_session.refresh(new_session)
        return new_session

    async def get_session_by_token(self, *, token: str) -> AuthSession | None:
        stmt = sqlalchemy.select(AuthSession).where(AuthSession.token == token)
        query = await self.async_session.execute(statement=stmt)
        return query.scalar()  # type: ignore

    async def get_valid_session(self, *, token: str) -> AuthSession | None:
        """Token row that has not expired yet, whatever its purpose."""
        entity = await self.get_session_by_token(token=token)
        if not entity or entity.expiry <= utc_now():
            return None
        return entity

    async def delete_session_by_token(self, *, token: str) -> bool:
        """Delete a session row by its token. Returns True if a row was deleted."""
        stmt = sqlalchemy.select(AuthSession).where(AuthSession.token == token)
        query = await self.async_session.execute(statement=stmt)
        entity: AuthSession | None = query.scalar()  # type: ignore
        if not entity:
            return False
        await self.async_session.delete(entity)
        await self.async_session.commit()
        return True

    async def delete_sessions_for_user(self, *, user_id: uuid.UUID, purpose: TokenPurpose) -> int:
        stmt = sqlalchemy.delete(AuthSession).where(AuthSession.user_id == user_id).where(AuthSession.purpose == purpose.value)
        result = await self.async_session.execute(statement=stmt)
        await self.async_session.commit()
        return result.rowcount or 0
