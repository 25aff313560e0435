# carebook/services/base.py
"""
Base Service Pattern for the CareBook scheduling core.

Provides common functionality for all service classes including:
- Transaction management (nestable, outermost scope commits)
- Bounded retry of lock contention
- Logging
- Performance monitoring
"""

from contextlib import contextmanager
from datetime import datetime
from functools import wraps
import logging
import time
from typing import Any, Callable, Dict, Iterator, Optional, TypeVar, cast

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from ..core.config import settings
from ..core.exceptions import (
    DomainException,
    LockContentionException,
    RepositoryException,
    ServiceException,
    is_lock_contention,
)

logger = logging.getLogger(__name__)

R = TypeVar("R")

Clock = Callable[[], datetime]

_TX_DEPTH_KEY = "carebook_tx_depth"


class BaseService:
    """
    Base class for all service layer components.

    Provides common patterns for:
    - Database session management
    - Logging
    - Transaction handling
    - Performance monitoring

    Services composed over the same session share one transaction: only the
    outermost ``transaction()`` block commits or rolls back.
    """

    # Class-level metrics storage
    _class_metrics: Dict[str, Dict[str, Dict[str, Any]]] = {}

    def __init__(self, db: Session, clock: Optional[Clock] = None):
        """
        Initialize base service.

        Args:
            db: Database session
            clock: Returns "now" in caregiver-local wall time; defaults to
                ``datetime.now``
        """
        self.db = db
        self.clock: Clock = clock or datetime.now
        self.logger = logging.getLogger(self.__class__.__name__)

    @property
    def in_transaction(self) -> bool:
        return self.db.info.get(_TX_DEPTH_KEY, 0) > 0

    @contextmanager
    def transaction(self) -> Iterator[Session]:
        """
        Context manager for database transactions.

        Usage:
            with self.transaction():
                # Do multiple operations
                self.repository.create(...)
                # Note: commit is handled automatically by the outermost block

        Raises:
            LockContentionException: the database was busy (retryable)
            ServiceException: any other data access failure
        """
        depth = self.db.info.get(_TX_DEPTH_KEY, 0)
        self.db.info[_TX_DEPTH_KEY] = depth + 1
        outermost = depth == 0
        try:
            yield self.db
            if outermost:
                self.db.commit()
                self.logger.debug("Transaction committed successfully")
        except (DomainException, LockContentionException):
            if outermost:
                self.db.rollback()
            raise
        except (SQLAlchemyError, RepositoryException) as e:
            if outermost:
                self.db.rollback()
            if is_lock_contention(e):
                raise LockContentionException(f"Database busy: {e}") from e
            self.logger.error(f"Transaction failed: {str(e)}")
            raise ServiceException(f"Database operation failed: {str(e)}") from e
        except Exception as e:
            self.logger.error(f"Unexpected error in transaction: {str(e)}")
            if outermost:
                self.db.rollback()
            raise
        finally:
            self.db.info[_TX_DEPTH_KEY] = depth

    def run_in_transaction(self, operation_name: str, func: Callable[[], R]) -> R:
        """
        Run ``func`` in a transaction, retrying only on lock contention.

        Business errors (``DomainException``) propagate on the first attempt.
        When called inside an enclosing transaction the retry belongs to the
        outer caller, so ``func`` runs once.
        """
        if self.in_transaction:
            with self.transaction():
                return func()

        attempts = settings.lock_retry_attempts
        for attempt in range(1, attempts + 1):
            try:
                with self.transaction():
                    return func()
            except LockContentionException as e:
                if attempt == attempts:
                    self.logger.error(
                        "Giving up on %s after %d attempts: %s", operation_name, attempt, e
                    )
                    raise ServiceException(
                        "The system is busy, please try again",
                        code="LOCK_CONTENTION",
                        details={"operation": operation_name, "attempts": attempt},
                    ) from e
                delay = settings.lock_retry_backoff_seconds * attempt
                self.logger.warning(
                    "Lock contention in %s (attempt %d/%d), retrying in %.2fs",
                    operation_name,
                    attempt,
                    attempts,
                    delay,
                )
                time.sleep(delay)

        # range() above always returns or raises
        raise ServiceException(f"{operation_name} did not run")

    @staticmethod
    def measure_operation(operation_name: str) -> Callable:
        """
        Decorator to measure operation performance.

        Usage:
            @BaseService.measure_operation("request_booking")
            def request_booking(self, data):
                # Method implementation

        Args:
            operation_name: Name of the operation for metrics

        Returns:
            Decorator function
        """

        F = TypeVar("F", bound=Callable[..., Any])

        def decorator(func: F) -> F:
            # Store the operation name on the function for later use
            func._operation_name = operation_name  # type: ignore[attr-defined]
            func._is_measured = True  # type: ignore[attr-defined]

            @wraps(func)
            def wrapper(self, *args, **kwargs):
                start_time = time.time()
                success = False

                try:
                    result = func(self, *args, **kwargs)
                    success = True
                    return result
                finally:
                    elapsed = time.time() - start_time

                    if hasattr(self, "_record_metric"):
                        self._record_metric(operation_name, elapsed, success)

                    # Only log if it's actually slow
                    if elapsed > settings.slow_operation_threshold_seconds:
                        if hasattr(self, "logger"):
                            self.logger.warning(
                                f"Slow operation detected: {operation_name} took {elapsed:.2f}s"
                            )

            return cast(F, wrapper)

        return decorator

    def log_operation(self, operation: str, **context: Any) -> None:
        """
        Log an operation with context.

        Args:
            operation: Operation name
            **context: Additional context to log
        """
        self.logger.info(f"Operation: {operation}", extra={"operation": operation, **context})

    def _record_metric(self, operation: str, elapsed: float, success: bool) -> None:
        """
        Record performance metrics.

        Args:
            operation: Operation name
            elapsed: Time taken in seconds
            success: Whether operation succeeded
        """
        class_name = self.__class__.__name__
        if class_name not in BaseService._class_metrics:
            BaseService._class_metrics[class_name] = {}

        metrics = BaseService._class_metrics[class_name]

        if operation not in metrics:
            metrics[operation] = {
                "count": 0,
                "total_time": 0.0,
                "success_count": 0,
                "failure_count": 0,
                "min_time": float("inf"),
                "max_time": 0.0,
            }

        metric_data = metrics[operation]
        metric_data["count"] += 1
        metric_data["total_time"] += elapsed
        metric_data["min_time"] = min(metric_data["min_time"], elapsed)
        metric_data["max_time"] = max(metric_data["max_time"], elapsed)

        if success:
            metric_data["success_count"] += 1
        else:
            metric_data["failure_count"] += 1

    def get_metrics(self) -> Dict[str, Any]:
        """
        Get performance metrics for this service.

        Returns:
            Dictionary with metrics for each measured operation
        """
        class_name = self.__class__.__name__
        if class_name not in BaseService._class_metrics:
            return {}

        result = {}
        metrics = BaseService._class_metrics[class_name]

        for operation, data in metrics.items():
            count = data["count"]
            if count == 0:
                continue

            result[operation] = {
                "count": count,
                "avg_time": data["total_time"] / count,
                "min_time": data["min_time"],
                "max_time": data["max_time"],
                "total_time": data["total_time"],
                "success_rate": data["success_count"] / count,
                "success_count": data["success_count"],
                "failure_count": data["failure_count"],
            }

        return result

    def reset_metrics(self) -> None:
        """Reset all metrics for this service."""
        class_name = self.__class__.__name__
        if class_name in BaseService._class_metrics:
            BaseService._class_metrics[class_name].clear()
        self.logger.info(f"Metrics reset for {class_name}")
