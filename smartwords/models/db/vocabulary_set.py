import datetime
import enum
import uuid

import sqlalchemy
from sqlalchemy.orm import Mapped as SQLAlchemyMapped, mapped_column as sqlalchemy_mapped_column, relationship
from sqlalchemy.sql import functions as sqlalchemy_functions

from smartwords.repository.table import Base, UTCDateTime
from smartwords.utilities.formatters.datetime_formatter import utc_now


class CEFRLevel(str, enum.Enum):
    A1 = "A1"
    A2 = "A2"
    B1 = "B1"
    B2 = "B2"
    C1 = "C1"
    C2 = "C2"


class VocabularySet(Base):  # type: ignore
    __tablename__ = "sets"
    __table_args__ = (sqlalchemy.UniqueConstraint("user_id", "name", name="uq_sets_user_name"),)

    id: SQLAlchemyMapped[uuid.UUID] = sqlalchemy_mapped_column(sqlalchemy.Uuid, primary_key=True, default=uuid.uuid4)
    user_id: SQLAlchemyMapped[uuid.UUID] = sqlalchemy_mapped_column(
        sqlalchemy.ForeignKey("users.id", ondelete="CASCADE"), nullable=False, index=True
    )
    name: SQLAlchemyMapped[str] = sqlalchemy_mapped_column(sqlalchemy.String(length=100), nullable=False)
    level: SQLAlchemyMapped[CEFRLevel] = sqlalchemy_mapped_column(
        sqlalchemy.Enum(CEFRLevel, name="cefr_level"), nullable=False
    )
    # Denormalised; recomputed by every path that touches the word list
    words_count: SQLAlchemyMapped[int] = sqlalchemy_mapped_column(
        sqlalchemy.Integer, nullable=False, default=0, server_default="0"
    )
    created_at: SQLAlchemyMapped[datetime.datetime] = sqlalchemy_mapped_column(
        UTCDateTime, nullable=False, default=utc_now, server_default=sqlalchemy_functions.now(), index=True
    )
    updated_at: SQLAlchemyMapped[datetime.datetime] = sqlalchemy_mapped_column(
        UTCDateTime, nullable=False, default=utc_now, onupdate=utc_now, server_default=sqlalchemy_functions.now()
    )

    user = relationship("User", back_populates="sets")
    words = relationship(
        "Word", back_populates="vocabulary_set", cascade="all, delete-orphan", passive_deletes=True
    )
    generation_runs = relationship(
        "GenerationRun", back_populates="vocabulary_set", cascade="all, delete-orphan", passive_deletes=True
    )
    exercise_sessions = relationship(
        "ExerciseSession", back_populates="vocabulary_set", cascade="all, delete-orphan", passive_deletes=True
    )

    __mapper_args__ = {"eager_defaults": True}
