import uuid

import pydantic

from smartwords.models.schemas.base import BaseSchemaModel

Password = pydantic.constr(min_length=8, max_length=255)


class SignupData(BaseSchemaModel):
    timezone: str = pydantic.Field(min_length=1, max_length=64)


class AuthSignup(BaseSchemaModel):
    email: pydantic.EmailStr
    password: Password  # type: ignore[valid-type]
    data: SignupData


class AuthLogin(BaseSchemaModel):
    email: pydantic.EmailStr
    password: Password  # type: ignore[valid-type]


class AuthLogout(BaseSchemaModel):
    refresh_token: str | None = None


class AuthRecover(BaseSchemaModel):
    email: pydantic.EmailStr


class AuthExchange(BaseSchemaModel):
    access_token: str = pydantic.Field(min_length=1)
    refresh_token: str = pydantic.Field(min_length=1)


class AuthResetPassword(BaseSchemaModel):
    password: Password  # type: ignore[valid-type]


class AuthTokens(BaseSchemaModel):
    user_id: uuid.UUID = pydantic.Field(description="Unique identifier for the user")
    email: pydantic.EmailStr
    access_token: str
    refresh_token: str
