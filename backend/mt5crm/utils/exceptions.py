"""
MT5 CRM Backend - Custom Exceptions
Application-specific exceptions and their HTTP status mapping
"""
from typing import Optional, Any, Dict, List
from fastapi import status


class CRMException(Exception):
    """Base exception for the MT5 CRM backend."""

    status_code: int = status.HTTP_500_INTERNAL_SERVER_ERROR

    def __init__(
        self,
        message: str = "An error occurred",
        code: Optional[str] = None,
        details: Optional[Dict[str, Any]] = None
    ):
        self.message = message
        self.code = code
        self.details = details or {}
        super().__init__(self.message)


# =========================
# Validation Exceptions
# =========================

class ValidationError(CRMException):
    """Malformed or missing input. Carries every violated field."""

    status_code = status.HTTP_400_BAD_REQUEST

    def __init__(
        self,
        errors: Optional[List[Dict[str, str]]] = None,
        message: str = "Validation failed"
    ):
        self.errors = errors or []
        super().__init__(
            message=message,
            code="VALIDATION_ERROR",
            details={"errors": self.errors}
        )

    @property
    def fields(self) -> List[str]:
        return [error["field"] for error in self.errors]

    @classmethod
    def from_pydantic(cls, exc) -> "ValidationError":
        """Build from a pydantic ValidationError (or FastAPI's RequestValidationError)."""
        errors = []
        for error in exc.errors():
            loc = [str(part) for part in error.get("loc", ()) if part not in ("body", "query", "path")]
            errors.append({
                "field": ".".join(loc) or "__root__",
                "message": error.get("msg", "Invalid value"),
            })
        return cls(errors=errors)


# =========================
# Authentication Exceptions
# =========================

class AuthenticationError(CRMException):
    """Authentication related errors."""

    status_code = status.HTTP_401_UNAUTHORIZED


class InvalidCredentialsError(AuthenticationError):
    """Unknown email or wrong password. Both cases share one message."""

    def __init__(self, message: str = "Invalid credentials"):
        super().__init__(message=message, code="INVALID_CREDENTIALS")


class InvalidTokenError(AuthenticationError):
    """Token is missing, malformed, badly signed, expired or revoked."""

    def __init__(self, message: str = "Invalid or expired token"):
        super().__init__(message=message, code="INVALID_TOKEN")


class InactiveUserError(CRMException):
    """User account is disabled."""

    status_code = status.HTTP_403_FORBIDDEN

    def __init__(self, message: str = "User account is disabled"):
        super().__init__(message=message, code="INACTIVE_USER")


class InsufficientPermissionsError(CRMException):
    """User doesn't have required permissions."""

    status_code = status.HTTP_403_FORBIDDEN

    def __init__(self, message: str = "Insufficient permissions"):
        super().__init__(message=message, code="INSUFFICIENT_PERMISSIONS")


# =========================
# Conflict Exceptions
# =========================

class DuplicateEmailError(CRMException):
    """Email already registered."""

    status_code = status.HTTP_400_BAD_REQUEST

    def __init__(self, message: str = "Email already exists"):
        super().__init__(message=message, code="DUPLICATE_EMAIL")


class DuplicateLoginError(CRMException):
    """MT5 login id already registered."""

    status_code = status.HTTP_400_BAD_REQUEST

    def __init__(self, login: Optional[int] = None):
        message = f"MT5 login {login} already exists" if login else "MT5 login already exists"
        super().__init__(message=message, code="DUPLICATE_LOGIN")


# =========================
# Not Found Exceptions
# =========================

class NotFoundError(CRMException):
    """Resource not found."""

    status_code = status.HTTP_404_NOT_FOUND

    def __init__(self, message: str = "Resource not found", code: str = "NOT_FOUND"):
        super().__init__(message=message, code=code)


class UserNotFoundError(NotFoundError):
    """User not found."""

    def __init__(self, message: str = "User not found"):
        super().__init__(message=message, code="USER_NOT_FOUND")


class AccountNotFoundError(NotFoundError):
    """Trading account not found."""

    def __init__(self, login: Optional[int] = None):
        message = f"MT5 account {login} not found" if login else "No MT5 account found"
        super().__init__(message=message, code="ACCOUNT_NOT_FOUND")


# =========================
# Balance Exceptions
# =========================

class InsufficientFundsError(CRMException):
    """Insufficient balance for a withdrawal."""

    status_code = status.HTTP_400_BAD_REQUEST

    def __init__(self, message: str = "Insufficient balance"):
        super().__init__(message=message, code="INSUFFICIENT_FUNDS")


# =========================
# Infrastructure Exceptions
# =========================

class ServiceUnavailableError(CRMException):
    """Underlying store or integration is unreachable."""

    status_code = status.HTTP_503_SERVICE_UNAVAILABLE

    def __init__(self, message: str = "Service temporarily unavailable"):
        super().__init__(message=message, code="SERVICE_UNAVAILABLE")


class IntegrationError(CRMException):
    """External integration (MT5 manager, payments) returned an error."""

    status_code = status.HTTP_400_BAD_REQUEST

    def __init__(self, provider: str = "", message: str = "Integration error"):
        super().__init__(
            message=f"{provider}: {message}" if provider else message,
            code="INTEGRATION_ERROR"
        )
