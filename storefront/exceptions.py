"""
Custom exceptions for the storefront core.

Exception Hierarchy:
--------------------
StorefrontException (base)
├── OrderException
│   ├── OrderValidationException
│   └── OrderSubmissionException
└── BackendException
    ├── BackendNotConfiguredException
    └── BackendRequestException

Services raise specific exceptions; the CLI catches them and shows str(e).
"""
from typing import Optional


class StorefrontException(Exception):
    """
    Base exception for all storefront errors.

    Attributes:
        message: Human-readable error message
        details: Optional dict with additional context
    """

    def __init__(self, message: str, details: Optional[dict] = None):
        super().__init__(message)
        self.message = message
        self.details = details or {}

    def __str__(self) -> str:
        return self.message

    def __repr__(self) -> str:
        if self.details:
            details_str = ", ".join(f"{k}={v}" for k, v in self.details.items())
            return f"{self.__class__.__name__}('{self.message}', {details_str})"
        return f"{self.__class__.__name__}('{self.message}')"


class OrderException(StorefrontException):
    pass


class OrderValidationException(OrderException):
    """Raised when a required customer field is missing."""

    def __init__(self, field: str, message: str):
        super().__init__(message, details={"field": field})
        self.field = field


class OrderSubmissionException(OrderException):
    """Raised when the backend refuses or fails to create an order."""

    def __init__(self, reason: str):
        super().__init__(f"Failed to create order: {reason}", details={"reason": reason})
        self.reason = reason


class BackendException(StorefrontException):
    pass


class BackendNotConfiguredException(BackendException):
    def __init__(self):
        super().__init__(
            "Backend is not configured. Set STOREFRONT_BACKEND_URL and "
            "STOREFRONT_BACKEND_KEY in .env first."
        )


class BackendRequestException(BackendException):
    """Raised when the backend answers with an error status or is unreachable."""

    def __init__(self, message: str, status_code: Optional[int] = None):
        super().__init__(message, details={"status_code": status_code} if status_code else None)
        self.status_code = status_code
