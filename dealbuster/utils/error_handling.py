"""
Error handling utilities for the Dealbuster system.

This module defines the domain exception taxonomy surfaced to callers of
inbound operations, plus tracking helpers for failures that are swallowed
at the notification and scheduling boundaries.
"""

import functools
import inspect
import traceback
from collections import Counter, deque
from dataclasses import dataclass, field
from datetime import datetime, timedelta
from enum import Enum
from typing import Any, Callable, Deque, Dict, List, Optional

from .logging import get_logger


class DealbusterError(Exception):
    """Base class for errors returned by inbound operations."""

    status_code = 500


class ValidationError(DealbusterError, ValueError):
    """Missing or malformed input. No state was changed."""

    status_code = 400


class NotFoundError(DealbusterError):
    """A referenced deal, user or alert does not exist."""

    status_code = 404


class DuplicateError(DealbusterError):
    """The user already verified this deal, or the username is taken."""

    status_code = 409


class ConflictError(DealbusterError):
    """A deal cannot make the requested status transition."""

    status_code = 409


class ErrorSeverity(Enum):
    LOW = "low"
    MEDIUM = "medium"
    HIGH = "high"
    CRITICAL = "critical"


class ErrorCategory(Enum):
    """Where a swallowed failure happened."""

    CONFIGURATION = "configuration"
    EVENT_DELIVERY = "event_delivery"
    SCHEDULING = "scheduling"
    TRANSPORT = "transport"
    SYSTEM = "system"


@dataclass
class ErrorInfo:
    """One recorded failure."""

    timestamp: datetime
    component: str
    category: ErrorCategory
    severity: ErrorSeverity
    message: str
    exception_type: str = "Unknown"
    traceback: str = ""
    context: Dict[str, Any] = field(default_factory=dict)

    @property
    def key(self) -> str:
        return f"{self.component}.{self.category.value}.{self.severity.value}"


class ErrorTracker:
    """
    Keeps the most recent failures and running counts for the health endpoint.

    Args:
        max_errors: Recent failures kept overall
        max_component_errors: Recent failures kept per component
    """

    def __init__(self, max_errors: int = 1000, max_component_errors: int = 100):
        self.max_component_errors = max_component_errors
        self.errors: Deque[ErrorInfo] = deque(maxlen=max_errors)
        self.error_counts: Counter = Counter()
        self.component_errors: Dict[str, Deque[ErrorInfo]] = {}
        self.logger = get_logger("error_tracker")

    def record_error(
        self,
        component: str,
        category: ErrorCategory,
        severity: ErrorSeverity,
        message: str,
        exception: Optional[BaseException] = None,
        context: Optional[Dict[str, Any]] = None,
    ) -> ErrorInfo:
        """Store a failure, bump its counter and log it."""
        error_info = ErrorInfo(
            timestamp=datetime.now(),
            component=component,
            category=category,
            severity=severity,
            message=message,
            context=context or {},
        )
        if exception is not None:
            error_info.exception_type = type(exception).__name__
            error_info.traceback = "".join(
                traceback.format_exception(type(exception), exception, exception.__traceback__)
            )

        self.errors.append(error_info)
        self.error_counts[error_info.key] += 1
        self.component_errors.setdefault(
            component, deque(maxlen=self.max_component_errors)
        ).append(error_info)

        self.logger.error(
            f"Error recorded: {message}",
            extra={
                "component": component,
                "category": category.value,
                "severity": severity.value,
                "exception_type": error_info.exception_type,
                "context": error_info.context,
            },
            exc_info=exception is not None,
        )
        return error_info

    def get_error_stats(self) -> Dict[str, Any]:
        last_hour = datetime.now() - timedelta(hours=1)
        categories = Counter(e.category for e in self.errors)

        return {
            "total_errors": len(self.errors),
            "errors_last_hour": sum(1 for e in self.errors if e.timestamp >= last_hour),
            "error_counts": dict(self.error_counts),
            "component_error_counts": {
                component: len(errors) for component, errors in self.component_errors.items()
            },
            "category_breakdown": {c.value: categories[c] for c in ErrorCategory},
        }

    def get_component_errors(self, component: str, limit: int = 10) -> List[ErrorInfo]:
        """Most recent failures of one component, oldest first."""
        return list(self.component_errors.get(component, ()))[-limit:]


_error_tracker: Optional[ErrorTracker] = None


def get_error_tracker() -> ErrorTracker:
    """Process-wide tracker used by ``with_error_handling``."""
    global _error_tracker
    if _error_tracker is None:
        _error_tracker = ErrorTracker()
    return _error_tracker


def with_error_handling(
    component: str,
    category: ErrorCategory,
    severity: ErrorSeverity = ErrorSeverity.MEDIUM,
    fallback_value: Any = None,
    suppress_exceptions: bool = False,
):
    """
    Record failures of the wrapped function with the global tracker.

    Works on both plain and ``async`` functions.

    Args:
        component: Component name the failure is filed under
        category: Error category
        severity: Error severity
        fallback_value: Returned instead of raising when suppressing
        suppress_exceptions: Swallow the exception after recording it
    """

    def decorator(func: Callable) -> Callable:
        def _handle(e: Exception):
            get_error_tracker().record_error(
                component=component,
                category=category,
                severity=severity,
                message=f"Error in {func.__name__}: {e}",
                exception=e,
                context={"function": func.__name__},
            )
            if not suppress_exceptions:
                raise e
            get_logger(component).warning(f"Suppressing exception in {func.__name__}: {e}")
            return fallback_value

        if inspect.iscoroutinefunction(func):

            @functools.wraps(func)
            async def async_wrapper(*args, **kwargs):
                try:
                    return await func(*args, **kwargs)
                except Exception as e:
                    return _handle(e)

            return async_wrapper

        @functools.wraps(func)
        def sync_wrapper(*args, **kwargs):
            try:
                return func(*args, **kwargs)
            except Exception as e:
                return _handle(e)

        return sync_wrapper

    return decorator
