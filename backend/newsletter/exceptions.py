"""
Newsletter Backend: Custom Exception Hierarchy
==============================================

What:  Application-specific exceptions for the error scenarios of each workflow.
How:   Each exception carries a message and an optional context dict.
       Global exception handlers (registered in main.py) turn them into
       structured JSON error responses with the right HTTP status code.
Who:   Raised by domain parsing, services and routes; caught by global handlers.

Exception Hierarchy:
    NewsletterError (base)
    ├── ValidationError          → 400 Bad Request
    ├── AuthenticationError      → 401 Unauthorized
    ├── DatabaseError            → 500 Internal Server Error
    └── EmailDeliveryError       → 500 Internal Server Error
"""

from typing import Any, Dict, Optional


class NewsletterError(Exception):
    """
    Base exception for all application errors.

    Attributes:
        message:  User-facing error description (safe to return in API response)
        context:  Additional debug info (logged, not returned for server errors)
    """

    def __init__(
        self,
        message: str = "An unexpected error occurred",
        context: Optional[Dict[str, Any]] = None,
    ):
        self.message = message
        self.context = context or {}
        super().__init__(self.message)


class ValidationError(NewsletterError):
    """
    Raised when client input fails validation.

    When:    Empty or malformed subscriber name/email, malformed token.
    HTTP:    400 Bad Request
    """

    def __init__(
        self,
        message: str = "Validation failed",
        field: Optional[str] = None,
        context: Optional[Dict[str, Any]] = None,
    ):
        ctx = context or {}
        if field:
            ctx["field"] = field
        super().__init__(message=message, context=ctx)
        self.field = field


class AuthenticationError(NewsletterError):
    """
    Raised when the caller could not be identified.

    When:    Missing or wrong Basic credentials, unknown subscription token.
    HTTP:    401 Unauthorized. When `realm` is set the response carries a
             `WWW-Authenticate: Basic realm="<realm>"` challenge.
    """

    def __init__(
        self,
        message: str = "Authentication failed",
        realm: Optional[str] = None,
        context: Optional[Dict[str, Any]] = None,
    ):
        super().__init__(message=message, context=context)
        self.realm = realm


class DatabaseError(NewsletterError):
    """
    Raised when database operations fail unexpectedly.

    HTTP:    500 Internal Server Error. The client only ever sees a generic
             message; the context is logged server-side.
    """

    def __init__(
        self,
        message: str = "A database error occurred. Please try again later.",
        context: Optional[Dict[str, Any]] = None,
    ):
        super().__init__(message=message, context=context)


class EmailDeliveryError(NewsletterError):
    """
    Raised when the email API rejected a message or could not be reached.

    When:    Non-2xx response, or transport failures after all retries.
    HTTP:    500 Internal Server Error
    """

    def __init__(
        self,
        message: str = "The email could not be delivered. Please try again later.",
        status_code: Optional[int] = None,
        context: Optional[Dict[str, Any]] = None,
    ):
        ctx = context or {}
        if status_code is not None:
            ctx["status_code"] = status_code
        super().__init__(message=message, context=ctx)
        self.status_code = status_code
