import datetime

import pydantic
from jose import jwt as jose_jwt, JWTError as JoseJWTError

from smartwords.config.manager import settings
from smartwords.models.db.user import User
from smartwords.models.schemas.jwt import JWToken, JWTUser


class JWTGenerator:
    def __init__(self):
        pass

    def _generate_jwt_token(
        self,
        *,
        jwt_data: dict[str, str],
        expires_delta: datetime.timedelta | None = None,
    ) -> str:
        to_encode = jwt_data.copy()

        if expires_delta:
            expire = datetime.datetime.now(datetime.timezone.utc) + expires_delta
        else:
            expire = datetime.datetime.now(datetime.timezone.utc) + datetime.timedelta(minutes=settings.JWT_MIN)

        to_encode.update(JWToken(exp=expire, sub=settings.JWT_SUBJECT).model_dump())

        return jose_jwt.encode(to_encode, key=settings.JWT_SECRET_KEY, algorithm=settings.JWT_ALGORITHM)

    def generate_access_token_for_user(self, user: User) -> str:
        if not user:
            raise ValueError(f"{user} is not authorized!")

        return self._generate_jwt_token(
            jwt_data=JWTUser(user_id=str(user.id), email=user.email).model_dump(),
            expires_delta=datetime.timedelta(minutes=settings.JWT_ACCESS_TOKEN_EXPIRATION_TIME),
        )

    def retrieve_details_from_token(self, token: str, secret_key: str) -> tuple[str, str]:
        try:
            payload = jose_jwt.decode(token=token, key=secret_key, algorithms=[settings.JWT_ALGORITHM])
            jwt_user = JWTUser(user_id=payload["user_id"], email=payload["email"])

        except JoseJWTError as token_decode_error:
            raise ValueError("Unable to decode JWT Token") from token_decode_error

        except (KeyError, pydantic.ValidationError) as validation_error:
            raise ValueError("Invalid payload in token") from validation_error

        return jwt_user.user_id, jwt_user.email


def get_jwt_generator() -> JWTGenerator:
    return JWTGenerator()


jwt_generator: JWTGenerator = get_jwt_generator()
