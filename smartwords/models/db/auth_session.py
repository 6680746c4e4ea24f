import datetime
import enum
import uuid

import sqlalchemy
from sqlalchemy.orm import Mapped as SQLAlchemyMapped, mapped_column as sqlalchemy_mapped_column, relationship
from sqlalchemy.sql import functions as sqlalchemy_functions

from smartwords.repository.table import Base, UTCDateTime
from smartwords.utilities.formatters.datetime_formatter import utc_now


class TokenPurpose(str, enum.Enum):
    REFRESH = "refresh"
    RECOVERY = "recovery"


class AuthSession(Base):  # type: ignore
    __tablename__ = "auth_sessions"

    id: SQLAlchemyMapped[uuid.UUID] = sqlalchemy_mapped_column(sqlalchemy.Uuid, primary_key=True, default=uuid.uuid4)
    user_id: SQLAlchemyMapped[uuid.UUID] = sqlalchemy_mapped_column(
        sqlalchemy.ForeignKey("users.id", ondelete="CASCADE"), nullable=False, index=True
    )
    token: SQLAlchemyMapped[str] = sqlalchemy_mapped_column(sqlalchemy.String(length=512), nullable=False, unique=True)
    purpose: SQLAlchemyMapped[str] = sqlalchemy_mapped_column(
        sqlalchemy.String(length=16), nullable=False, default=TokenPurpose.REFRESH.value
    )
    expiry: SQLAlchemyMapped[datetime.datetime] = sqlalchemy_mapped_column(UTCDateTime, nullable=False)
    last_active: SQLAlchemyMapped[datetime.datetime] = sqlalchemy_mapped_column(
        UTCDateTime, nullable=False, default=utc_now, server_default=sqlalchemy_functions.now()
    )

    user = relationship("User", back_populates="auth_sessions")

    __mapper_args__ = {"eager_defaults": True}
