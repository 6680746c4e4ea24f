import datetime
import uuid

import sqlalchemy
from sqlalchemy.dialects.postgresql import JSONB
from sqlalchemy.orm import Mapped as SQLAlchemyMapped, mapped_column as sqlalchemy_mapped_column
from sqlalchemy.sql import functions as sqlalchemy_functions

from smartwords.repository.table import Base, UTCDateTime
from smartwords.utilities.formatters.datetime_formatter import utc_now


class EventLog(Base):  # type: ignore
    __tablename__ = "event_log"

    id: SQLAlchemyMapped[uuid.UUID] = sqlalchemy_mapped_column(sqlalchemy.Uuid, primary_key=True, default=uuid.uuid4)
    user_id: SQLAlchemyMapped[uuid.UUID] = sqlalchemy_mapped_column(
        sqlalchemy.ForeignKey("users.id", ondelete="CASCADE"), nullable=False, index=True
    )
    event_type: SQLAlchemyMapped[str] = sqlalchemy_mapped_column(sqlalchemy.String(length=64), nullable=False, index=True)
    # Not a foreign key: the entity may already be gone (set_deleted)
    entity_id: SQLAlchemyMapped[uuid.UUID | None] = sqlalchemy_mapped_column(sqlalchemy.Uuid, nullable=True)
    # `metadata` is reserved on declarative classes
    event_metadata: SQLAlchemyMapped[dict | None] = sqlalchemy_mapped_column(
        "metadata", sqlalchemy.JSON().with_variant(JSONB(), "postgresql"), nullable=True
    )
    occurred_at: SQLAlchemyMapped[datetime.datetime] = sqlalchemy_mapped_column(
        UTCDateTime, nullable=False, default=utc_now, server_default=sqlalchemy_functions.now()
    )

    __mapper_args__ = {"eager_defaults": True}
