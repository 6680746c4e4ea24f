import datetime
import uuid

import sqlalchemy
from sqlalchemy.orm import Mapped as SQLAlchemyMapped, mapped_column as sqlalchemy_mapped_column, relationship
from sqlalchemy.sql import functions as sqlalchemy_functions

from smartwords.repository.table import Base, UTCDateTime
from smartwords.utilities.formatters.datetime_formatter import utc_now

ACTIVE_SESSION_INDEX = "uq_exercise_sessions_active_set"


class ExerciseSession(Base):  # type: ignore
    __tablename__ = "exercise_sessions"
    __table_args__ = (
        # At most one unfinished session per set
        sqlalchemy.Index(
            ACTIVE_SESSION_INDEX,
            "set_id",
            unique=True,
            postgresql_where=sqlalchemy.text("finished_at IS NULL"),
            sqlite_where=sqlalchemy.text("finished_at IS NULL"),
        ),
    )

    id: SQLAlchemyMapped[uuid.UUID] = sqlalchemy_mapped_column(sqlalchemy.Uuid, primary_key=True, default=uuid.uuid4)
    user_id: SQLAlchemyMapped[uuid.UUID] = sqlalchemy_mapped_column(
        sqlalchemy.ForeignKey("users.id", ondelete="CASCADE"), nullable=False, index=True
    )
    set_id: SQLAlchemyMapped[uuid.UUID] = sqlalchemy_mapped_column(
        sqlalchemy.ForeignKey("sets.id", ondelete="CASCADE"), nullable=False
    )
    generation_id: SQLAlchemyMapped[uuid.UUID] = sqlalchemy_mapped_column(
        sqlalchemy.ForeignKey("generation_runs.id", ondelete="CASCADE"), nullable=False, index=True
    )
    started_at: SQLAlchemyMapped[datetime.datetime] = sqlalchemy_mapped_column(
        UTCDateTime, nullable=False, default=utc_now, server_default=sqlalchemy_functions.now()
    )
    finished_at: SQLAlchemyMapped[datetime.datetime | None] = sqlalchemy_mapped_column(UTCDateTime, nullable=True)
    completed_reason: SQLAlchemyMapped[str | None] = sqlalchemy_mapped_column(sqlalchemy.String(length=100), nullable=True)

    vocabulary_set = relationship("VocabularySet", back_populates="exercise_sessions")
    attempts = relationship(
        "Attempt", back_populates="exercise_session", cascade="all, delete-orphan", passive_deletes=True
    )

    __mapper_args__ = {"eager_defaults": True}
