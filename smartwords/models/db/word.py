import datetime
import uuid

import sqlalchemy
from sqlalchemy.orm import Mapped as SQLAlchemyMapped, mapped_column as sqlalchemy_mapped_column, relationship
from sqlalchemy.sql import functions as sqlalchemy_functions

from smartwords.repository.table import Base, UTCDateTime
from smartwords.utilities.formatters.datetime_formatter import utc_now


class Word(Base):  # type: ignore
    __tablename__ = "words"
    __table_args__ = (sqlalchemy.UniqueConstraint("set_id", "en_norm", name="uq_words_set_en_norm"),)

    id: SQLAlchemyMapped[uuid.UUID] = sqlalchemy_mapped_column(sqlalchemy.Uuid, primary_key=True, default=uuid.uuid4)
    set_id: SQLAlchemyMapped[uuid.UUID] = sqlalchemy_mapped_column(
        sqlalchemy.ForeignKey("sets.id", ondelete="CASCADE"), nullable=False, index=True
    )
    user_id: SQLAlchemyMapped[uuid.UUID] = sqlalchemy_mapped_column(
        sqlalchemy.ForeignKey("users.id", ondelete="CASCADE"), nullable=False, index=True
    )
    pl: SQLAlchemyMapped[str] = sqlalchemy_mapped_column(sqlalchemy.String(length=200), nullable=False)
    en: SQLAlchemyMapped[str] = sqlalchemy_mapped_column(sqlalchemy.String(length=200), nullable=False)
    en_norm: SQLAlchemyMapped[str] = sqlalchemy_mapped_column(sqlalchemy.String(length=200), nullable=False)
    position: SQLAlchemyMapped[int] = sqlalchemy_mapped_column(sqlalchemy.Integer, nullable=False, default=0)
    created_at: SQLAlchemyMapped[datetime.datetime] = sqlalchemy_mapped_column(
        UTCDateTime, nullable=False, default=utc_now, server_default=sqlalchemy_functions.now()
    )

    vocabulary_set = relationship("VocabularySet", back_populates="words")

    __mapper_args__ = {"eager_defaults": True}
