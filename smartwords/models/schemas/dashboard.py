import datetime
import uuid

from smartwords.models.schemas.base import BaseSchemaModel


class DashboardActiveSession(BaseSchemaModel):
    session_id: uuid.UUID
    set_id: uuid.UUID
    started_at: datetime.datetime


class Dashboard(BaseSchemaModel):
    sets_total: int
    active_session: DashboardActiveSession | None = None
    remaining_generations: int
