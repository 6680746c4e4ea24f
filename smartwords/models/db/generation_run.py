import datetime
import uuid

import sqlalchemy
from sqlalchemy.dialects.postgresql import JSONB
from sqlalchemy.orm import Mapped as SQLAlchemyMapped, mapped_column as sqlalchemy_mapped_column, relationship
from sqlalchemy.sql import functions as sqlalchemy_functions

from smartwords.repository.table import Base, UTCDateTime
from smartwords.utilities.formatters.datetime_formatter import utc_now


class GenerationRun(Base):  # type: ignore
    __tablename__ = "generation_runs"
    __table_args__ = (
        sqlalchemy.UniqueConstraint("user_id", "idempotency_key", name="uq_generation_runs_user_key"),
    )

    id: SQLAlchemyMapped[uuid.UUID] = sqlalchemy_mapped_column(sqlalchemy.Uuid, primary_key=True, default=uuid.uuid4)
    user_id: SQLAlchemyMapped[uuid.UUID] = sqlalchemy_mapped_column(
        sqlalchemy.ForeignKey("users.id", ondelete="CASCADE"), nullable=False, index=True
    )
    set_id: SQLAlchemyMapped[uuid.UUID] = sqlalchemy_mapped_column(
        sqlalchemy.ForeignKey("sets.id", ondelete="CASCADE"), nullable=False, index=True
    )
    model_id: SQLAlchemyMapped[str] = sqlalchemy_mapped_column(sqlalchemy.String(length=100), nullable=False)
    temperature: SQLAlchemyMapped[float] = sqlalchemy_mapped_column(sqlalchemy.Float, nullable=False)
    prompt_version: SQLAlchemyMapped[str] = sqlalchemy_mapped_column(sqlalchemy.String(length=20), nullable=False)
    idempotency_key: SQLAlchemyMapped[str] = sqlalchemy_mapped_column(sqlalchemy.String(length=255), nullable=False)
    # [{"pl": ..., "en": ...}] as the set looked when the run was requested
    words_snapshot: SQLAlchemyMapped[list] = sqlalchemy_mapped_column(
        sqlalchemy.JSON().with_variant(JSONB(), "postgresql"), nullable=False
    )
    tokens_in: SQLAlchemyMapped[int] = sqlalchemy_mapped_column(
        sqlalchemy.Integer, nullable=False, default=0, server_default="0"
    )
    tokens_out: SQLAlchemyMapped[int] = sqlalchemy_mapped_column(
        sqlalchemy.Integer, nullable=False, default=0, server_default="0"
    )
    cost_usd: SQLAlchemyMapped[float] = sqlalchemy_mapped_column(
        sqlalchemy.Numeric(precision=12, scale=6, asdecimal=False), nullable=False, default=0, server_default="0"
    )
    occurred_at: SQLAlchemyMapped[datetime.datetime] = sqlalchemy_mapped_column(
        UTCDateTime, nullable=False, default=utc_now, server_default=sqlalchemy_functions.now(), index=True
    )

    vocabulary_set = relationship("VocabularySet", back_populates="generation_runs")
    sentences = relationship(
        "Sentence", back_populates="generation_run", cascade="all, delete-orphan", passive_deletes=True
    )

    __mapper_args__ = {"eager_defaults": True}
