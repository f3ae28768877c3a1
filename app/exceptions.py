from typing import Any, Mapping, Optional


class ProductDBError(Exception):
    """Base class for all errors raised by the product database.

    Attributes:
        message: human-readable message
        details: optional mapping with extra context
        code: optional machine-readable error code
    """

    default_message = "Product database error"
    default_code: Optional[str] = None

    def __init__(
        self,
        message: Optional[str] = None,
        details: Optional[Mapping[str, Any]] = None,
        code: Optional[str] = None,
    ):
        message = message or self.default_message
        super().__init__(message)
        self.message = message
        self.details = details
        self.code = code or self.default_code

    def to_dict(self) -> dict:
        payload: dict[str, Any] = {"message": self.message}
        if self.code:
            payload["code"] = self.code
        if self.details:
            payload["details"] = self.details
        return payload

    def __str__(self) -> str:
        return self.message


class ConfigError(ProductDBError):
    """Raised when configuration values are invalid."""

    default_message = "Invalid config"
    default_code = "config_error"


class ParsingConfigError(ProductDBError):
    """Raised when the configuration file cannot be read or parsed."""

    default_message = "Failed parsing the config"
    default_code = "parsing_config_error"


class SerializationError(ProductDBError):
    """Raised when an entity cannot be serialized to or deserialized from JSON."""

    default_message = "Serialization error"
    default_code = "serialization_error"


class InvalidSortingError(ProductDBError):
    """Raised when a sorting field is not applicable to a query.

    Attributes:
        field: the offending sorting field
    """

    default_code = "invalid_sorting"

    def __init__(self, field, details: Optional[Mapping[str, Any]] = None):
        self.field = field
        name = getattr(field, "value", field)
        super().__init__(f"Invalid sorting field: {name}", details=details)


class DBError(ProductDBError):
    """Wraps any error reported by the database driver or connection pool.

    The original driver exception is chained as __cause__.
    """

    default_message = "Postgres DB error"
    default_code = "db_error"


class InternalError(ProductDBError):
    """Raised when an internal invariant is violated, e.g. a malformed stored row."""

    default_message = "Internal error"
    default_code = "internal_error"


class NotFoundError(ProductDBError):
    """Raised by service operations that require an entity which does not exist."""

    default_message = "Not found"
    default_code = "not_found"
