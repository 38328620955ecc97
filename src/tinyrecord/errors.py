"""
Structured error types for tinyrecord.

Every error raised by the builder, the connection registry and the
active-record layer derives from :class:`TinyRecordError`, which carries:

- **Category:** What kind of error (build, database, model, config)
- **Retryable:** Whether repeating the operation may succeed
- **Context:** Table, connection, operation and SQL involved
- **Cause:** Chained driver exception for root cause analysis

Manifesto:
    - **Typed Error Hierarchy:** Build errors, database errors and model
      errors are different things and are caught differently
    - **Loud build failures:** A condition with an unknown operator or a
      LIMIT on a dialect without a LIMIT form never degrades into partial SQL
    - **Expected absence is not an error:** "no row" is ``None``
    - **Error Chaining:** Driver exceptions are kept as ``cause``

Architecture:
    ::

        ┌─────────────────────────────────────────────────────────────────┐
        │                       TinyRecordError                            │
        │  (category, retryable, context, cause)                          │
        ├─────────────────────────────────────────────────────────────────┤
        │                                                                  │
        │  ConfigError         BuildError              ModelError          │
        │  (CONFIG)            (BUILD)                 (MODEL)             │
        │                          │                       │               │
        │                 MissingFromClauseError   UnknownMethodError      │
        │                 InvalidOperatorError     UnknownRelationError    │
        │                 UnsupportedDialectError  InvalidRelationError    │
        │                                          ReservedFieldError      │
        │                                                                  │
        │  DatabaseConnectionError   DatabaseError                         │
        │  (DATABASE, retryable)     (DATABASE)                            │
        │                                │                                 │
        │                          QueryError                              │
        │                          TransactionError                        │
        └─────────────────────────────────────────────────────────────────┘

Examples:
    >>> error = InvalidOperatorError("BETWEEN")
    >>> error.operator
    'BETWEEN'
    >>> error.category
    <ErrorCategory.BUILD: 'BUILD'>

    >>> error = QueryError("select failed").with_context(table="contact")
    >>> error.context.table
    'contact'

Guardrails:
    ❌ DON'T: Turn an unknown condition operator into an empty string
    ✅ DO: Raise InvalidOperatorError and let the build fail

    ❌ DON'T: Swallow the driver exception
    ✅ DO: Pass it as cause= for error chaining

Tags:
    error-handling, exception-hierarchy, error-context, tinyrecord
"""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import Any


class ErrorCategory(str, Enum):
    """Standard error categories for classification and logging."""

    BUILD = "BUILD"               # SQL could not be generated
    DATABASE = "DATABASE"         # Driver, connection, query execution
    MODEL = "MODEL"               # Active-record misuse
    CONFIG = "CONFIG"             # DSN, connection names, missing drivers
    INTERNAL = "INTERNAL"         # Bugs, unexpected state


@dataclass
class ErrorContext:
    """
    Structured metadata attached to an error.

    Only the fields that are set end up in :meth:`to_dict`, so the context
    can be passed straight to a structlog call.

    Attributes:
        connection: Name of the registered connection
        table: Table the statement targeted
        operation: Builder or model operation (``insert``, ``save``...)
        sql: SQL text that was being executed
        metadata: Additional key-value pairs
    """

    connection: str | None = None
    table: str | None = None
    operation: str | None = None
    sql: str | None = None

    metadata: dict[str, Any] = field(default_factory=dict)

    def to_dict(self) -> dict[str, Any]:
        """Convert to dictionary for logging."""
        result = {}
        for key in ["connection", "table", "operation", "sql"]:
            value = getattr(self, key)
            if value is not None:
                result[key] = value
        if self.metadata:
            result.update(self.metadata)
        return result


class TinyRecordError(Exception):
    """
    Base exception for all tinyrecord errors.

    Subclasses set ``default_category`` and ``default_retryable`` so that
    callers rarely pass them explicitly.

    Examples:
        >>> error = TinyRecordError("Something went wrong")
        >>> error.category
        <ErrorCategory.INTERNAL: 'INTERNAL'>
        >>> error.retryable
        False
    """

    default_category: ErrorCategory = ErrorCategory.INTERNAL
    default_retryable: bool = False

    def __init__(
        self,
        message: str,
        *,
        category: ErrorCategory | None = None,
        retryable: bool | None = None,
        context: ErrorContext | None = None,
        cause: Exception | None = None,
    ):
        super().__init__(message)
        self.message = message
        self.category = category or self.default_category
        self.retryable = retryable if retryable is not None else self.default_retryable
        self.context = context or ErrorContext()
        self.cause = cause

        if cause is not None:
            self.__cause__ = cause

    def with_context(self, **kwargs: Any) -> TinyRecordError:
        """
        Add context to this error (fluent API).

        Usage:
            raise QueryError("Failed").with_context(table="contact", sql=sql)
        """
        for key, value in kwargs.items():
            if hasattr(self.context, key) and key != "metadata":
                setattr(self.context, key, value)
            else:
                self.context.metadata[key] = value
        return self

    def to_dict(self) -> dict[str, Any]:
        """Convert error to dictionary for logging/serialization."""
        result = {
            "error_type": self.__class__.__name__,
            "message": self.message,
            "category": self.category.value,
            "retryable": self.retryable,
        }
        context_dict = self.context.to_dict()
        if context_dict:
            result["context"] = context_dict
        if self.cause is not None:
            result["cause"] = str(self.cause)
        return result

    def __repr__(self) -> str:
        return f"{self.__class__.__name__}({self.message!r}, category={self.category.value})"


# =============================================================================
# CONFIGURATION ERRORS
# =============================================================================


class ConfigError(TinyRecordError):
    """
    Configuration error.

    Never retryable - the DSN, connection name or installed drivers
    must be fixed.
    """

    default_category = ErrorCategory.CONFIG
    default_retryable = False


class UnknownConnectionError(ConfigError):
    """No connection is registered under the requested name."""

    def __init__(self, name: str):
        self.name = name
        super().__init__(f"Connection not registered: {name}")


# =============================================================================
# DATABASE ERRORS
# =============================================================================


class DatabaseConnectionError(TinyRecordError):
    """Driver failed to open a connection."""

    default_category = ErrorCategory.DATABASE
    default_retryable = True


class DatabaseError(TinyRecordError):
    """Database query or transaction error."""

    default_category = ErrorCategory.DATABASE
    default_retryable = False


class QueryError(DatabaseError):
    """SQL statement failed in the driver."""

    pass


class TransactionError(DatabaseError):
    """Transaction state does not allow the requested operation."""

    pass


# =============================================================================
# BUILD ERRORS
# =============================================================================


class BuildError(TinyRecordError):
    """SQL text could not be generated from the builder state."""

    default_category = ErrorCategory.BUILD
    default_retryable = False


class MissingFromClauseError(BuildError):
    """A SELECT was run without a FROM clause."""

    def __init__(self, message: str = "Cannot build SELECT without a FROM clause"):
        super().__init__(message)


class InvalidOperatorError(BuildError):
    """A condition expression used an operator the compiler does not know."""

    def __init__(self, operator: str):
        self.operator = operator
        super().__init__(f'Invalid operator "{operator}"')


class UnsupportedDialectError(BuildError):
    """LIMIT/OFFSET requested on a dialect without a defined clause form."""

    def __init__(self, dialect: str):
        self.dialect = dialect
        super().__init__(f"Limit/offset is not supported for dialect '{dialect}'")


# =============================================================================
# MODEL ERRORS
# =============================================================================


class ModelError(TinyRecordError):
    """Active-record misuse."""

    default_category = ErrorCategory.MODEL
    default_retryable = False


class UnknownMethodError(ModelError, AttributeError):
    """A dynamic factory call did not match any helper pattern.

    Also an ``AttributeError`` so that ``hasattr``/``getattr`` with a
    default keep working on factories.
    """

    def __init__(self, name: str):
        super().__init__(f'Helper method "{name}" does not exist')
        # AttributeError.__init__ resets ``name``
        self.name = name


class UnknownRelationError(ModelError):
    """No relation is declared under the requested name."""

    def __init__(self, name: str):
        self.name = name
        super().__init__(f'Relation "{name}" is not declared')


class InvalidRelationError(ModelError):
    """A relation declaration cannot be resolved."""

    pass


class ReservedFieldError(ModelError):
    """A field write used a name reserved for a declared relation."""

    def __init__(self, name: str):
        self.name = name
        super().__init__(f'"{name}" is a relation name and cannot be set as a field')


# =============================================================================
# UTILITY FUNCTIONS
# =============================================================================


def is_retryable(error: Exception) -> bool:
    """Check if an error is retryable."""
    if isinstance(error, TinyRecordError):
        return error.retryable
    return False


__all__ = [
    "ErrorCategory",
    "ErrorContext",
    "TinyRecordError",
    # Config
    "ConfigError",
    "UnknownConnectionError",
    # Database
    "DatabaseConnectionError",
    "DatabaseError",
    "QueryError",
    "TransactionError",
    # Build
    "BuildError",
    "MissingFromClauseError",
    "InvalidOperatorError",
    "UnsupportedDialectError",
    # Model
    "ModelError",
    "UnknownMethodError",
    "UnknownRelationError",
    "InvalidRelationError",
    "ReservedFieldError",
    # Utilities
    "is_retryable",
]
