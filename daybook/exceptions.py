"""
Standardized exception hierarchy for daybook
Every error carries a request id, the user and operation involved, and a message safe to show to API clients
"""

from datetime import datetime, timezone
from typing import Optional, Dict, Any
from uuid import uuid4
import logging

import psycopg

logger = logging.getLogger(__name__)


class DaybookError(Exception):
    """
    Base exception for all daybook errors

    Provides:
    - Automatic timestamping
    - Request ID for tracing
    - User-friendly messages
    - Structured context
    - Automatic logging

    Example:
        raise DaybookError(
            message="Failed to save snapshot",
            user_id="42",
            operation="save_snapshot",
            context={"date": "2024-01-05"}
        )
    """

    log_level = logging.ERROR

    def __init__(
        self,
        message: str,
        user_id: Optional[str] = None,
        request_id: Optional[str] = None,
        operation: Optional[str] = None,
        context: Optional[Dict[str, Any]] = None,
        cause: Optional[Exception] = None,
        user_message: Optional[str] = None
    ):
        super().__init__(message)
        self.message = message
        self.user_id = user_id
        self.request_id = request_id or str(uuid4())
        self.operation = operation
        self.context = context or {}
        self.cause = cause
        self.user_message = user_message or "Something went wrong while updating your journal."
        self.timestamp = datetime.now(timezone.utc)

        # Auto-log on creation
        self._log_error()

    def _log_error(self) -> None:
        """Log error with full context"""
        log_data = {
            "error_type": self.__class__.__name__,
            "error_message": self.message,  # 'message' is reserved by logging
            "request_id": self.request_id,
            "user_id": self.user_id,
            "operation": self.operation,
            "error_context": self.context,
            "timestamp": self.timestamp.isoformat()
        }

        if self.cause:
            log_data["cause"] = str(self.cause)
            logger.log(
                self.log_level,
                f"{self.__class__.__name__}: {self.message}",
                extra=log_data,
                exc_info=self.cause
            )
        else:
            logger.log(self.log_level, f"{self.__class__.__name__}: {self.message}", extra=log_data)

    def to_dict(self) -> Dict[str, Any]:
        """Serialize exception for API responses"""
        return {
            "error": self.__class__.__name__,
            "message": self.message,
            "user_message": self.user_message,
            "request_id": self.request_id,
            "timestamp": self.timestamp.isoformat()
        }


# ==========================================
# Client Errors
# ==========================================

class ValidationError(DaybookError):
    """
    Raised when input fails validation

    Examples:
    - Malformed date key
    - Unknown field type
    - End date before start date
    - Sub-task under a sub-task

    Example:
        raise ValidationError(
            message="must be YYYY-MM-DD",
            field="date",
            value="2024-13-01"
        )
    """

    log_level = logging.WARNING

    def __init__(
        self,
        message: str,
        field: Optional[str] = None,
        value: Optional[Any] = None,
        **kwargs
    ):
        self.field = field
        self.value = value
        super().__init__(
            message=message,
            user_message=f"Invalid {field}: {message}" if field else message,
            context={"field": field, "value": value},
            **kwargs
        )


class NotFoundError(DaybookError):
    """Requested record does not exist (template, counter, snapshot, ...)"""

    log_level = logging.WARNING

    def __init__(
        self,
        message: str,
        record_type: Optional[str] = None,
        record_id: Optional[Any] = None,
        **kwargs
    ):
        self.record_type = record_type
        self.record_id = record_id
        super().__init__(
            message=message,
            user_message=f"{record_type or 'Record'} not found.",
            context={"record_type": record_type, "record_id": record_id},
            **kwargs
        )


class ConflictError(DaybookError):
    """Write collides with an existing record (duplicate template key, counter name)"""

    log_level = logging.WARNING

    def __init__(
        self,
        message: str,
        record_type: Optional[str] = None,
        key: Optional[str] = None,
        **kwargs
    ):
        self.record_type = record_type
        self.key = key
        super().__init__(
            message=message,
            user_message=f"{record_type or 'Record'} '{key}' already exists." if key else message,
            context={"record_type": record_type, "key": key},
            **kwargs
        )


# ==========================================
# Database Errors
# ==========================================

class DatabaseError(DaybookError):
    """
    Base class for database-related errors
    """
    pass


class ConnectionError(DatabaseError):
    """Database connection failed"""

    def __init__(self, message: str = "Database connection failed", **kwargs):
        super().__init__(
            message=message,
            user_message="Your journal is temporarily unavailable. Please try again shortly.",
            **kwargs
        )


class QueryError(DatabaseError):
    """Database query execution failed"""

    def __init__(
        self,
        message: str,
        query: Optional[str] = None,
        **kwargs
    ):
        self.query = query
        super().__init__(
            message=message,
            user_message="Your journal could not be read or saved. Please try again.",
            context={"query": query},
            **kwargs
        )


# ==========================================
# Authentication
# ==========================================

class AuthenticationError(DaybookError):
    """Authentication failed"""

    log_level = logging.WARNING

    def __init__(
        self,
        message: str = "Authentication failed",
        **kwargs
    ):
        super().__init__(
            message=message,
            user_message="Invalid or missing API key.",
            **kwargs
        )


# ==========================================
# Configuration Errors
# ==========================================

class ConfigurationError(DaybookError):
    """System configuration is invalid or missing"""

    def __init__(
        self,
        message: str,
        config_key: Optional[str] = None,
        **kwargs
    ):
        self.config_key = config_key
        super().__init__(
            message=message,
            user_message="Daybook is not configured correctly.",
            context={"config_key": config_key},
            **kwargs
        )


# ==========================================
# Helper Functions
# ==========================================

def wrap_external_exception(
    error: Exception,
    operation: str,
    user_id: Optional[str] = None,
    context: Optional[Dict[str, Any]] = None
) -> DaybookError:
    """
    Wrap external exceptions (psycopg, ...) into our exception hierarchy

    Args:
        error: Original exception
        operation: What operation was being performed
        user_id: User ID if applicable
        context: Additional context

    Returns:
        Appropriate DaybookError subclass

    Example:
        try:
            await cur.execute(query, params)
        except psycopg.Error as e:
            raise wrap_external_exception(e, operation="save_snapshot", user_id="42")
    """
    if isinstance(error, DaybookError):
        return error

    if isinstance(error, psycopg.OperationalError):
        return ConnectionError(
            message=f"Database connection failed: {str(error)}",
            user_id=user_id,
            operation=operation,
            context=context,
            cause=error
        )
    elif isinstance(error, psycopg.errors.UniqueViolation):
        return ConflictError(
            message=f"Duplicate record: {str(error)}",
            user_id=user_id,
            operation=operation,
            cause=error
        )
    elif isinstance(error, psycopg.Error):
        return QueryError(
            message=f"Database query failed: {str(error)}",
            user_id=user_id,
            operation=operation,
            context=context,
            cause=error
        )

    # Generic fallback
    return DaybookError(
        message=f"{operation} failed: {str(error)}",
        user_id=user_id,
        operation=operation,
        context=context,
        cause=error
    )
