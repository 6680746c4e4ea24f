import uuid

import sqlalchemy
from sqlalchemy.orm import Mapped as SQLAlchemyMapped, mapped_column as sqlalchemy_mapped_column, relationship

from smartwords.repository.table import Base


class Sentence(Base):  # type: ignore
    __tablename__ = "sentences"

    id: SQLAlchemyMapped[uuid.UUID] = sqlalchemy_mapped_column(sqlalchemy.Uuid, primary_key=True, default=uuid.uuid4)
    generation_id: SQLAlchemyMapped[uuid.UUID] = sqlalchemy_mapped_column(
        sqlalchemy.ForeignKey("generation_runs.id", ondelete="CASCADE"), nullable=False, index=True
    )
    user_id: SQLAlchemyMapped[uuid.UUID] = sqlalchemy_mapped_column(
        sqlalchemy.ForeignKey("users.id", ondelete="CASCADE"), nullable=False, index=True
    )
    # Sentences outlive later edits of the word list, hence SET NULL
    word_id: SQLAlchemyMapped[uuid.UUID | None] = sqlalchemy_mapped_column(
        sqlalchemy.ForeignKey("words.id", ondelete="SET NULL"), nullable=True, index=True
    )
    pl_text: SQLAlchemyMapped[str] = sqlalchemy_mapped_column(sqlalchemy.Text, nullable=False)
    target_en: SQLAlchemyMapped[str] = sqlalchemy_mapped_column(sqlalchemy.String(length=200), nullable=False)
    position: SQLAlchemyMapped[int] = sqlalchemy_mapped_column(sqlalchemy.Integer, nullable=False, default=0)

    generation_run = relationship("GenerationRun", back_populates="sentences")

    __mapper_args__ = {"eager_defaults": True}
