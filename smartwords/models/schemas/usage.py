import datetime

from smartwords.models.schemas.base import BaseSchemaModel


class DailyUsage(BaseSchemaModel):
    limit: int
    used: int
    remaining: int
    next_reset_at: datetime.datetime
