import logging
import uuid
from typing import Any

from sqlalchemy.exc import SQLAlchemyError

from smartwords.models.db.event_log import EventLog
from smartwords.repository.crud.base import BaseCRUDRepository

logger = logging.getLogger(__name__)


class EventLogCRUDRepository(BaseCRUDRepository):
    async def log_event(
        self,
        *,
        user_id: uuid.UUID,
        event_type: str,
        entity_id: uuid.UUID | None = None,
        metadata: dict[str, Any] | None = None,
    ) -> bool:
        """Append an audit row. Never raises: a failed write is logged and rolled back."""
        try:
            self.async_session.add(
                EventLog(id=uuid.uuid4(), user_id=user_id, event_type=event_type, entity_id=entity_id, event_metadata=metadata)
            )
            await self.async_session.commit()
            return True
        except SQLAlchemyError:
            logger.exception("Failed to write %s event for entity %s", event_type, entity_id)
            await self.async_session.rollback()
            return False
