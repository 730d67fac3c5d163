"""Exception classes for db-catalog.

Every error raised by the engine derives from ``CatalogEngineError`` so
callers can catch the whole family with one ``except`` clause.
"""

from typing import Any


class CatalogEngineError(Exception):
    """Base exception for all db-catalog errors."""

    def __init__(
        self,
        message: str,
        details: dict[str, Any] | None = None,
        cause: Exception | None = None,
    ) -> None:
        super().__init__(message)
        self.message = message
        self.details = details or {}
        self.cause = cause

    def __str__(self) -> str:
        result = self.message
        if self.details:
            details_str = ", ".join(f"{k}={v}" for k, v in self.details.items())
            result += f" [{details_str}]"
        if self.cause:
            result += f" (caused by: {self.cause})"
        return result


class ConfigurationError(CatalogEngineError):
    """Raised when the TOML configuration is malformed."""

    pass


class ProfileNotFoundError(CatalogEngineError):
    """Raised when no database profile is configured or the name is unknown."""

    pass


class CatalogError(CatalogEngineError):
    """Raised when a catalog query fails for a reason other than missing support."""

    pass


class FeatureNotSupportedError(CatalogError):
    """Raised by a catalog source when the backend cannot answer a metadata query.

    Loaders translate this into an empty result instead of a failure.
    """

    pass


class OperationCancelledError(CatalogEngineError):
    """Raised when the progress monitor reports cancellation."""

    pass


class DDLValidationError(CatalogEngineError):
    """Raised when an object cannot be rendered into DDL as it stands."""

    def __init__(
        self,
        message: str,
        object_name: str | None = None,
        details: dict[str, Any] | None = None,
    ) -> None:
        super().__init__(message, details)
        self.object_name = object_name


class MissingInitialValueError(DDLValidationError):
    """Raised when an auto-increment column has no initial value."""

    def __init__(self, table_name: str, column_name: str) -> None:
        super().__init__(
            f"Column '{column_name}' of table '{table_name}' is auto-increment "
            f"but has no initial value",
            object_name=f"{table_name}.{column_name}",
            details={"table": table_name, "column": column_name},
        )
        self.table_name = table_name
        self.column_name = column_name
