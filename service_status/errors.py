"""
Error types for the service status block.

Two kinds of failure reach callers: a service name that cannot be turned into
a bus object path (ValidationError) and any failure talking to the bus
(IPCError). Neither is retried inside this package.
"""

from enum import Enum
from typing import Any, Dict, Optional


class IPCOperation(Enum):
    """Bus operation that was in progress when an IPCError was raised."""

    CONNECT = "connect"
    PROXY = "proxy"
    SUBSCRIBE = "subscribe"
    READ_PROPERTY = "read_property"
    SUBSCRIPTION_CLOSED = "subscription_closed"


class ServiceStatusError(Exception):
    """Base exception for service status errors."""

    def __init__(self, message: str, context: Optional[Dict[str, Any]] = None):
        """
        Initialize service status error.

        Args:
            message: Human-readable error message
            context: Additional context for debugging
        """
        self.message = message
        self.context = context or {}
        super().__init__(message)

    def to_dict(self) -> Dict[str, Any]:
        """
        Convert error to dictionary for logging.

        Returns:
            Error dictionary with type, message and context
        """
        result: Dict[str, Any] = {
            "type": type(self).__name__,
            "message": self.message,
        }

        if self.context:
            result["context"] = self.context

        return result


class ValidationError(ServiceStatusError):
    """Service name rejected before any encoding or connection attempt."""


class ConfigError(ServiceStatusError):
    """Configuration file could not be read or validated."""


class IPCError(ServiceStatusError):
    """Failure talking to the init system over D-Bus. Always fatal to a monitor."""

    def __init__(
        self,
        operation: IPCOperation,
        message: str,
        context: Optional[Dict[str, Any]] = None
    ):
        """
        Initialize IPC error.

        Args:
            operation: Bus operation that failed
            message: Human-readable error message
            context: Additional context (service, object path, ...)
        """
        self.operation = operation
        super().__init__(message, context)

    def __str__(self) -> str:
        return f"{self.operation.value}: {self.message}"

    def to_dict(self) -> Dict[str, Any]:
        result = super().to_dict()
        result["operation"] = self.operation.value
        return result
