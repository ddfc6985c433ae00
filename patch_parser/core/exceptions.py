"""
Exception hierarchy for the patch parser.

Absence of a field is never an exception; these types signal malformed
input or configuration and abort only the operation that raised them.
"""

import functools
import logging
from collections.abc import Awaitable, Callable
from typing import ParamSpec, TypeVar

from .logging import get_logger

logger = get_logger(__name__)

P = ParamSpec("P")
T = TypeVar("T")


class PatchParserError(Exception):
    """Base exception for all patch parser errors."""

    def __init__(self, message: str, cause: Exception | None = None) -> None:
        super().__init__(message)
        self.message = message
        self.cause = cause


class ConfigurationError(PatchParserError):
    """Exception raised for configuration-related errors."""

    pass


class ValidationError(PatchParserError):
    """Exception raised for validation errors."""

    pass


class DocumentError(PatchParserError):
    """Exception raised when a document cannot be parsed or traversed."""

    pass


class SelectorError(DocumentError):
    """Exception raised for a selector the query engine rejects."""

    def __init__(
        self, selector: str, message: str, cause: Exception | None = None
    ) -> None:
        super().__init__(message, cause)
        self.selector = selector


class UnknownTaskKindError(PatchParserError):
    """Exception raised when a task names a kind with no registered handler."""

    def __init__(self, kind: str) -> None:
        super().__init__(f"Unknown task type: {kind}")
        self.kind = kind


class StreamError(PatchParserError):
    """Exception raised for unusable stream input."""

    pass


def log_and_suppress_exceptions(
    logger_instance: logging.Logger | None = None,
    message: str = "Exception suppressed",
    log_level: int = logging.WARNING,
) -> Callable[[Callable[P, T]], Callable[P, T | None]]:
    """
    Decorator to log exceptions and suppress them (returns None).
    Useful for cleanup operations where exceptions should not propagate.

    Args:
        logger_instance: Optional specific logger to use
        message: Message to log with the exception
        log_level: Logging level for the message

    Returns:
        Decorated function that suppresses exceptions
    """

    def decorator(func: Callable[P, T]) -> Callable[P, T | None]:
        @functools.wraps(func)
        def wrapper(*args: P.args, **kwargs: P.kwargs) -> T | None:
            current_logger = logger_instance or logger

            try:
                return func(*args, **kwargs)
            except Exception as e:
                current_logger.log(log_level, f"{message}: {e}")
                return None

        return wrapper

    return decorator


def log_and_suppress_async_exceptions(
    logger_instance: logging.Logger | None = None,
    message: str = "Exception suppressed",
    log_level: int = logging.WARNING,
) -> Callable[[Callable[P, Awaitable[T]]], Callable[P, Awaitable[T | None]]]:
    """Async version of log_and_suppress_exceptions."""

    def decorator(
        func: Callable[P, Awaitable[T]],
    ) -> Callable[P, Awaitable[T | None]]:
        @functools.wraps(func)
        async def wrapper(*args: P.args, **kwargs: P.kwargs) -> T | None:
            current_logger = logger_instance or logger

            try:
                return await func(*args, **kwargs)
            except Exception as e:
                current_logger.log(log_level, f"{message}: {e}")
                return None

        return wrapper

    return decorator
