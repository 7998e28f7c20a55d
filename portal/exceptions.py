"""
Custom Exceptions for the Chapter Portal
========================================

The request layer raises these; the auth gate and the entity dashboard
convert them into result objects whose ``error`` string is what the user sees.

Usage:
    from portal.exceptions import BackendError, TransportError

    try:
        await api.get_profile()
    except (BackendError, TransportError) as e:
        logger.warning(f"Profile lookup failed: {e}")
"""

from typing import Optional, Any, Dict


class PortalError(Exception):
    """Base exception for all portal errors"""

    def __init__(
        self,
        message: str,
        code: str = "INTERNAL_ERROR",
        details: Optional[Dict[str, Any]] = None
    ):
        self.message = message
        self.code = code
        self.details = details or {}
        super().__init__(self.message)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "code": self.code,
            "message": self.message,
            "details": self.details
        }


# ============================================
# Validation Errors (caught before any request)
# ============================================

class ValidationError(PortalError):
    """Form input validation failed"""

    def __init__(self, message: str, field: Optional[str] = None):
        details = {"field": field} if field else {}
        super().__init__(message, code="VALIDATION_ERROR", details=details)


# ============================================
# Authentication Errors
# ============================================

class AuthenticationError(PortalError):
    """Authentication failed"""

    def __init__(self, message: str = "Authentication failed"):
        super().__init__(message, code="AUTH_FAILED")


class InvalidCredentialsError(AuthenticationError):
    """Email/password rejected by the backend"""

    def __init__(self, message: str = "Invalid credentials"):
        super().__init__(message)
        self.code = "INVALID_CREDENTIALS"


class InvalidTokenError(AuthenticationError):
    """Persisted token is expired or unknown to the backend"""

    def __init__(self):
        super().__init__("Invalid or expired token")
        self.code = "INVALID_TOKEN"


# ============================================
# Transport / Backend Errors
# ============================================

class TransportError(PortalError):
    """Backend could not be reached"""

    def __init__(self, message: str = "Cannot connect to server"):
        super().__init__(message, code="TRANSPORT_ERROR")


class BackendError(PortalError):
    """Backend answered with a non-2xx status"""

    def __init__(self, status_code: int, message: Optional[str] = None):
        super().__init__(
            message or f"HTTP error! status: {status_code}",
            code="BACKEND_ERROR",
            details={"status_code": status_code}
        )
        self.status_code = status_code


class MalformedResponseError(PortalError):
    """Backend answered 2xx but the body could not be understood"""

    def __init__(self, message: str = "Invalid JSON response from server"):
        super().__init__(message, code="MALFORMED_RESPONSE")


# ============================================
# Configuration Errors
# ============================================

class ConfigError(PortalError):
    """A setting has a value the client cannot use"""

    def __init__(self, message: str, setting: Optional[str] = None):
        details = {"setting": setting} if setting else {}
        super().__init__(message, code="CONFIG_ERROR", details=details)
