"""
Base service layer patterns for business logic encapsulation.

This module provides foundational patterns for the service layer:
- ServiceResult: Standard result wrapper for consistent success/failure handling
- BaseService: Base class with common service utilities

Pattern Comparison:
    - ServiceResult: Use for expected failures (validation, unknown records)
    - Exceptions: Use for unexpected failures (database errors, bugs)

Usage:
    from core.services import BaseService, ServiceResult

    class BroadcastService(BaseService):
        @classmethod
        def get_broadcast(cls, broadcast_id) -> ServiceResult[BroadcastRecord]:
            broadcast = BroadcastRecord.objects.filter(id=broadcast_id).first()
            if broadcast is None:
                return ServiceResult.failure(
                    "Broadcast not found",
                    error_code="BROADCAST_NOT_FOUND",
                )
            return ServiceResult.success(broadcast)

    result = BroadcastService.get_broadcast(broadcast_id)
    if result:
        print(result.data.success_count)

Related:
    - core.exceptions: For domain errors that carry an error code
"""

from __future__ import annotations

import logging
from contextlib import contextmanager
from dataclasses import dataclass
from typing import TYPE_CHECKING, Generic, TypeVar

from django.db import transaction

from core.exceptions import BaseApplicationError

if TYPE_CHECKING:
    from collections.abc import Generator

# Generic type for ServiceResult data
T = TypeVar("T")


@dataclass
class ServiceResult(Generic[T]):
    """
    Standard result wrapper for service operations.

    Provides consistent success/failure handling without exceptions.
    Use this for expected failures (validation errors, unknown records).

    Attributes:
        success: Whether the operation succeeded
        data: Result data if successful (None if failed)
        error: Error message if failed (None if successful)
        error_code: Machine-readable error code for client handling

    Usage:
        # Success case
        return ServiceResult.success(broadcast.id)

        # Failure case
        return ServiceResult.failure("Template not found", "TEMPLATE_NOT_FOUND")

        # Check result
        result = dispatcher.send_direct(...)
        if result.success:
            broadcast_id = result.data
        else:
            print(f"Error: {result.error} ({result.error_code})")
    """

    success: bool
    data: T | None = None
    error: str | None = None
    error_code: str | None = None

    @classmethod
    def success(cls, data: T) -> ServiceResult[T]:
        """
        Create a successful result.

        Args:
            data: The result data

        Returns:
            ServiceResult with success=True and data set
        """
        return cls(success=True, data=data)

    @classmethod
    def failure(
        cls,
        error: str,
        error_code: str | None = None,
    ) -> ServiceResult[T]:
        """
        Create a failed result.

        Args:
            error: Human-readable error message
            error_code: Machine-readable error code for client handling

        Returns:
            ServiceResult with success=False and error details
        """
        return cls(
            success=False,
            error=error,
            error_code=error_code,
        )

    @classmethod
    def from_exception(
        cls, exc: Exception, error_code: str | None = None
    ) -> ServiceResult[T]:
        """
        Create a failed result from an exception.

        Application errors keep their own message and error code; any other
        exception falls back to its class name.

        Args:
            exc: The caught exception
            error_code: Optional error code override

        Returns:
            ServiceResult with error details from exception

        Example:
            try:
                profile = directory.resolve(user_id)
            except RecipientNotFoundError as e:
                return ServiceResult.from_exception(e)
        """
        if isinstance(exc, BaseApplicationError):
            return cls(
                success=False,
                error=exc.message,
                error_code=error_code or exc.error_code,
            )
        return cls(
            success=False,
            error=str(exc),
            error_code=error_code or exc.__class__.__name__.upper(),
        )

    def __bool__(self) -> bool:
        """
        Allow using result in boolean context.

        Example:
            result = NotificationService.mark_read(notification_id, True)
            if result:  # Same as: if result.success
                print("Marked!")
        """
        return self.success


class BaseService:
    """
    Base class for service layer classes.

    Provides common utilities for services:
    - Logging setup per service
    - Database transaction management

    Usage:
        class NotificationService(BaseService):
            @classmethod
            def mark_read(cls, notification_id, is_read) -> ServiceResult:
                with cls.atomic():
                    ...
                cls.get_logger().info(f"Marked {notification_id}")
                return ServiceResult.success(notification)

    Design Notes:
        - Use ServiceResult for expected failures
        - Raise exceptions for unexpected failures
        - Collaborators are passed to __init__ where a service needs them
    """

    @classmethod
    def get_logger(cls) -> logging.Logger:
        """
        Get logger for this service.

        Returns a logger named after the service class for
        easy filtering in logs.

        Returns:
            Logger instance for this service
        """
        return logging.getLogger(f"{cls.__module__}.{cls.__name__}")

    @classmethod
    @contextmanager
    def atomic(cls) -> Generator[None, None, None]:
        """
        Execute operations in a database transaction.

        Nested use creates a savepoint, so an inner failure only rolls back
        the inner block.

        Yields:
            None

        Example:
            with cls.atomic():
                notification = Notification.objects.create(...)
                DeliveryOutbox.objects.create(notification=notification, ...)
                # If the outbox insert fails, the notification is rolled back
        """
        with transaction.atomic():
            yield

    @classmethod
    def handle_exception(
        cls,
        exc: Exception,
        context: str = "",
        log_level: int = logging.ERROR,
    ) -> ServiceResult:
        """
        Convert exception to ServiceResult with logging.

        Args:
            exc: The caught exception
            context: Additional context for logging
            log_level: Logging level (default ERROR)

        Returns:
            ServiceResult with error details
        """
        logger = cls.get_logger()
        message = f"{context}: {exc}" if context else str(exc)
        logger.log(
            log_level,
            message,
            exc_info=(
                log_level >= logging.ERROR
                or not isinstance(exc, BaseApplicationError)
            ),
        )
        return ServiceResult.from_exception(exc)
