"""Error handling framework for SeriesLedger.

Provides custom exception types and decorators for standardized error handling
across the application.

Expected failure modes of the episode engine are not exceptions: an
unparseable title is ``None``, a rejected submission is a failed
``SubmitResult`` and a duplicate ledger insert returns ``False``. The types
below cover what is left over.
"""

import inspect
import logging
from functools import wraps

logger = logging.getLogger(__name__)


# Custom Exception Hierarchy
class SeriesLedgerError(Exception):
    """Base exception for all SeriesLedger-specific errors."""

    pass


class BackendError(SeriesLedgerError):
    """Download backend could not be reached or configured.

    Raised when a client row cannot be turned into a backend (unknown type,
    unusable connection settings).
    """

    pass


class LedgerError(SeriesLedgerError):
    """Episode ledger operation failed for a reason other than a duplicate key."""

    pass


class ConfigurationError(SeriesLedgerError):
    """Configuration validation failed.

    Raised when user configuration is invalid or incomplete.
    """

    pass


class DatabaseError(SeriesLedgerError):
    """Database operation failed.

    Raised when SQLite operations fail unexpectedly, e.g. a rollback of a
    pre-recorded download could not be written.
    """

    pass


class SubscriptionNotFoundError(SeriesLedgerError):
    """No series subscription exists with the requested id."""

    def __init__(self, subscription_id: int):
        super().__init__(f"Subscription {subscription_id} not found")
        self.subscription_id = subscription_id


def _report(
    error: Exception,
    default_message: str,
    log_level: str,
    wrap_as: type[SeriesLedgerError] | None,
) -> None:
    """Log ``error`` and, when asked, raise it again as ``wrap_as``."""
    message = f"{default_message}: {error}"
    getattr(logger, log_level)(message, exc_info=(log_level == "error"))
    if wrap_as:
        raise wrap_as(message) from error


# Error Handling Decorator
def handle_errors(
    *,
    error_types: tuple[type[Exception], ...],
    default_message: str,
    log_level: str = "error",
    reraise: bool = True,
    wrap_as: type[SeriesLedgerError] | None = None,
):
    """Decorator for standardized error handling.

    Works on both coroutines and plain functions.

    Args:
        error_types: Tuple of exception types to catch
        default_message: Prefix for the log line and the wrapped message
        log_level: Logging level (error, warning, info, debug)
        reraise: Whether to re-raise the exception after logging
        wrap_as: Optionally wrap the caught exception in a SeriesLedgerError subclass

    Example:
        @handle_errors(
            error_types=(SQLAlchemyError,),
            default_message="Ledger sync failed",
            wrap_as=LedgerError,
        )
        async def sync(subscription_id, backends):
            ...
    """

    def decorator(func):
        if inspect.iscoroutinefunction(func):

            @wraps(func)
            async def async_wrapper(*args, **kwargs):
                try:
                    return await func(*args, **kwargs)
                except error_types as e:
                    _report(e, default_message, log_level, wrap_as)
                    if reraise:
                        raise
                    return None

            return async_wrapper

        @wraps(func)
        def sync_wrapper(*args, **kwargs):
            try:
                return func(*args, **kwargs)
            except error_types as e:
                _report(e, default_message, log_level, wrap_as)
                if reraise:
                    raise
                return None

        return sync_wrapper

    return decorator


class error_context:
    """Context manager counterpart of :func:`handle_errors` for a single block.

    Listed errors are logged and optionally wrapped; anything else passes
    through untouched. Errors are never suppressed.

    Example:
        with error_context(
            error_types=(SQLAlchemyError,),
            default_message="Rollback failed",
            wrap_as=DatabaseError,
        ):
            ...
    """

    def __init__(
        self,
        *,
        error_types: tuple[type[Exception], ...],
        default_message: str,
        log_level: str = "error",
        wrap_as: type[SeriesLedgerError] | None = None,
    ):
        self.error_types = error_types
        self.default_message = default_message
        self.log_level = log_level
        self.wrap_as = wrap_as

    def __enter__(self):
        return self

    def __exit__(self, exc_type, exc_val, exc_tb):
        if exc_type is not None and issubclass(exc_type, self.error_types):
            _report(exc_val, self.default_message, self.log_level, self.wrap_as)
        return False
