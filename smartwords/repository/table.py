import datetime
import typing

import sqlalchemy
from sqlalchemy.orm import DeclarativeBase

from smartwords.utilities.formatters.datetime_formatter import ensure_utc


class UTCDateTime(sqlalchemy.types.TypeDecorator):
    """
    Timezone-aware UTC timestamps on every backend.

    PostgreSQL keeps the offset itself; SQLite stores naive text, so values are normalised to UTC
    before binding and tagged as UTC when read back.
    """

    impl = sqlalchemy.DateTime(timezone=True)
    cache_ok = True

    def process_bind_param(self, value: datetime.datetime | None, dialect) -> datetime.datetime | None:
        if value is None:
            return None
        return ensure_utc(value)

    def process_result_value(self, value: datetime.datetime | None, dialect) -> datetime.datetime | None:
        if value is None:
            return None
        return ensure_utc(value)


class DBTable(DeclarativeBase):
    metadata: sqlalchemy.MetaData = sqlalchemy.MetaData()  # type: ignore


Base: typing.Type[DeclarativeBase] = DBTable
