import datetime
import uuid

import sqlalchemy
from sqlalchemy.orm import Mapped as SQLAlchemyMapped, mapped_column as sqlalchemy_mapped_column, relationship
from sqlalchemy.sql import functions as sqlalchemy_functions

from smartwords.repository.table import Base, UTCDateTime
from smartwords.utilities.formatters.datetime_formatter import utc_now

ATTEMPT_NUMBER_CONSTRAINT = "uq_attempts_session_sentence_no"


class Attempt(Base):  # type: ignore
    __tablename__ = "attempts"
    __table_args__ = (
        sqlalchemy.UniqueConstraint("session_id", "sentence_id", "attempt_no", name=ATTEMPT_NUMBER_CONSTRAINT),
    )

    id: SQLAlchemyMapped[uuid.UUID] = sqlalchemy_mapped_column(sqlalchemy.Uuid, primary_key=True, default=uuid.uuid4)
    session_id: SQLAlchemyMapped[uuid.UUID] = sqlalchemy_mapped_column(
        sqlalchemy.ForeignKey("exercise_sessions.id", ondelete="CASCADE"), nullable=False, index=True
    )
    sentence_id: SQLAlchemyMapped[uuid.UUID] = sqlalchemy_mapped_column(
        sqlalchemy.ForeignKey("sentences.id", ondelete="CASCADE"), nullable=False, index=True
    )
    user_id: SQLAlchemyMapped[uuid.UUID] = sqlalchemy_mapped_column(
        sqlalchemy.ForeignKey("users.id", ondelete="CASCADE"), nullable=False, index=True
    )
    attempt_no: SQLAlchemyMapped[int] = sqlalchemy_mapped_column(sqlalchemy.Integer, nullable=False)
    answer_raw: SQLAlchemyMapped[str] = sqlalchemy_mapped_column(sqlalchemy.Text, nullable=False)
    answer_norm: SQLAlchemyMapped[str] = sqlalchemy_mapped_column(sqlalchemy.Text, nullable=False)
    is_correct: SQLAlchemyMapped[bool] = sqlalchemy_mapped_column(sqlalchemy.Boolean, nullable=False)
    checked_at: SQLAlchemyMapped[datetime.datetime] = sqlalchemy_mapped_column(
        UTCDateTime, nullable=False, default=utc_now, server_default=sqlalchemy_functions.now()
    )

    exercise_session = relationship("ExerciseSession", back_populates="attempts")

    __mapper_args__ = {"eager_defaults": True}
