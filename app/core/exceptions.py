from sqlalchemy.exc import DBAPIError, DisconnectionError, InterfaceError, SQLAlchemyError


class PlannerError(Exception):
    """Base class for errors raised by the planner services."""


class NotFoundError(PlannerError):
    def __init__(self, entity: str, entity_id=None):
        self.entity = entity
        self.entity_id = entity_id
        super().__init__(f"{entity} not found")


class ValidationError(PlannerError):
    pass


class ConflictError(PlannerError):
    pass


class StorageError(PlannerError):
    pass


class StorageConnectionError(StorageError):
    """The database connection itself failed, not a single statement."""


def translate_storage_error(exc: SQLAlchemyError) -> StorageError:
    if isinstance(exc, (InterfaceError, DisconnectionError)):
        return StorageConnectionError(str(exc))
    if isinstance(exc, DBAPIError) and exc.connection_invalidated:
        return StorageConnectionError(str(exc))
    return StorageError(str(exc))
