"""
Exception hierarchy for the CARVER matrix core.

Kinds surfaced to callers:
- InvalidArgumentException: missing inputs, item/matrix mismatch, bad search fields
- EntityNotFoundException: an id does not resolve (also an invalid argument)
- StorageException: the store rejected a write or is unavailable
"""


class CarverException(Exception):
    """Base exception for matrix operations."""

    def __init__(self, message: str):
        self.message = message
        super().__init__(message)


class InvalidArgumentException(CarverException):
    """A required input is missing or does not fit the target entity."""

    pass


class EntityNotFoundException(InvalidArgumentException):
    """Entity not found in database."""

    def __init__(self, entity_type: str, entity_id):
        self.entity_type = entity_type
        self.entity_id = entity_id
        super().__init__(f"{entity_type} not found with id {entity_id}")


class StorageException(CarverException):
    """The store rejected an operation."""

    def __init__(self, message: str = "Storage operation failed"):
        super().__init__(message)


class ConstraintViolationException(StorageException):
    """Unique, length or non-null constraint violated at the store boundary."""

    pass


class DatabaseConnectionException(StorageException):
    """Database connection failure."""

    def __init__(self, message: str = "Database connection failed"):
        super().__init__(message)
