class EntityDoesNotExist(Exception):
    """
    Throw an exception when the data does not exist in the database.
    """


class EntityAlreadyExists(Exception):
    """
    Throw an exception when the data already exist in the database.
    """


def is_unique_violation(error: Exception, *, constraint: str, columns: tuple[str, ...] = ()) -> bool:
    """
    Tell whether an `IntegrityError` came from the named unique constraint.

    PostgreSQL reports the constraint name; SQLite reports `table.column` pairs instead.
    """
    message = str(getattr(error, "orig", None) or error)
    if constraint in message:
        return True
    return bool(columns) and "UNIQUE constraint failed" in message and all(column in message for column in columns)
