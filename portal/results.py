"""
Result objects returned across component boundaries

Callers check ``success`` and show ``error`` to the user; nothing here is
raised.
"""

from dataclasses import dataclass
from typing import Any, Optional

from portal.schemas import UserProfile


@dataclass
class OperationResult:
    """Outcome of a backend-backed operation"""
    success: bool
    data: Any = None
    error: Optional[str] = None

    @classmethod
    def ok(cls, data: Any = None) -> "OperationResult":
        return cls(success=True, data=data)

    @classmethod
    def fail(cls, error: str) -> "OperationResult":
        return cls(success=False, error=error)


@dataclass
class LoginResult:
    """Outcome of a login attempt"""
    success: bool
    user: Optional[UserProfile] = None
    redirect_to: Optional[str] = None
    error: Optional[str] = None
