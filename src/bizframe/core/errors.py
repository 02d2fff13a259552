"""
Structured error types for the bizframe request registry.

Every failure the registry surfaces is one of a small, fixed set of kinds.
None of them are retried and none of them are silently recovered from: the
registry fails fast and leaves rendering to the calling layer.

Manifesto:
    - **Typed hierarchy:** One class per failure kind, one common base
    - **Fail fast:** Errors propagate to the caller uncaught
    - **Rich context:** Errors carry the service, resource or database name
    - **Error chaining:** Driver and parser exceptions are kept as the cause

Architecture:
    ::

        ┌──────────────────────────────────────────────────────────────┐
        │                       BizFrameError                           │
        │              (category, context, cause)                       │
        ├──────────────────────────────────────────────────────────────┤
        │                                                               │
        │  ServiceNotFound     ResourceNotFound     ConfigurationError  │
        │  (SERVICE)           (RESOURCE)           (CONFIG)            │
        │                                                               │
        │  ConnectionError     LifecycleError                           │
        │  (DATABASE)          (LIFECYCLE)                              │
        └──────────────────────────────────────────────────────────────┘

Examples:
    >>> error = ServiceNotFound("service.accessService")
    >>> error.service_name
    'service.accessService'
    >>> error.to_dict()["category"]
    'SERVICE'

Tags:
    error-handling, exception-hierarchy, error-context, bizframe

Doc-Types:
    - API Reference
    - Error Handling Guide
"""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from pathlib import Path
from typing import Any


class ErrorCategory(str, Enum):
    """Standard error categories used for logging and routing."""

    SERVICE = "SERVICE"          # Name does not resolve to a service/object
    RESOURCE = "RESOURCE"        # No file for a logical name
    CONFIG = "CONFIG"            # Missing or malformed configuration
    DATABASE = "DATABASE"        # Connector failed
    LIFECYCLE = "LIFECYCLE"      # Registry/session used out of order
    INTERNAL = "INTERNAL"


@dataclass
class ErrorContext:
    """Structured metadata attached to an error."""

    service: str | None = None
    resource: str | None = None
    database: str | None = None
    session_id: str | None = None

    metadata: dict[str, Any] = field(default_factory=dict)

    def to_dict(self) -> dict[str, Any]:
        """Convert to dictionary for logging."""
        result = {}
        for key in ["service", "resource", "database", "session_id"]:
            value = getattr(self, key)
            if value is not None:
                result[key] = value
        if self.metadata:
            result.update(self.metadata)
        return result


class BizFrameError(Exception):
    """
    Base exception for all bizframe errors.

    Subclasses set ``default_category``; callers may attach context fluently
    with :meth:`with_context` and chain the underlying exception via
    ``cause=``.
    """

    default_category: ErrorCategory = ErrorCategory.INTERNAL

    def __init__(
        self,
        message: str,
        *,
        category: ErrorCategory | None = None,
        context: ErrorContext | None = None,
        cause: Exception | None = None,
    ):
        super().__init__(message)
        self.message = message
        self.category = category or self.default_category
        self.context = context or ErrorContext()
        self.cause = cause

        if cause is not None:
            self.__cause__ = cause

    def with_context(self, **kwargs: Any) -> BizFrameError:
        """
        Add context to this error (fluent API).

        Usage:
            raise ConfigurationError("bad port").with_context(database="Default")
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
        }
        context_dict = self.context.to_dict()
        if context_dict:
            result["context"] = context_dict
        if self.cause is not None:
            result["cause"] = str(self.cause)
        return result

    def __repr__(self) -> str:
        return f"{self.__class__.__name__}({self.message!r}, category={self.category.value})"


class ServiceNotFound(BizFrameError):
    """Name does not resolve to any registered or discoverable service."""

    default_category = ErrorCategory.SERVICE

    def __init__(self, name: str, message: str | None = None):
        self.service_name = name
        super().__init__(
            message or f"Service not found: {name}",
            context=ErrorContext(service=name),
        )


class ResourceNotFound(BizFrameError):
    """No file matches a logical name in any search root."""

    default_category = ErrorCategory.RESOURCE

    def __init__(
        self,
        name: str,
        searched: list[Path] | None = None,
        message: str | None = None,
    ):
        self.resource_name = name
        self.searched = list(searched or [])
        context = ErrorContext(resource=name)
        if self.searched:
            context.metadata["searched"] = [str(p) for p in self.searched]
        super().__init__(message or f"Resource not found: {name}", context=context)


class ConfigurationError(BizFrameError):
    """Missing or malformed database, driver or application configuration."""

    default_category = ErrorCategory.CONFIG


class ConnectionError(BizFrameError):  # noqa: A001
    """Underlying connector failed to establish a session."""

    default_category = ErrorCategory.DATABASE

    def __init__(self, database: str, message: str | None = None, *, cause: Exception | None = None):
        self.database = database
        super().__init__(
            message or f"Cannot connect to database '{database}'",
            context=ErrorContext(database=database),
            cause=cause,
        )


class LifecycleError(BizFrameError):
    """Registry or session store used outside its request lifecycle."""

    default_category = ErrorCategory.LIFECYCLE


__all__ = [
    "ErrorCategory",
    "ErrorContext",
    "BizFrameError",
    "ServiceNotFound",
    "ResourceNotFound",
    "ConfigurationError",
    "ConnectionError",
    "LifecycleError",
]
