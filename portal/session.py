"""
Session model for the authenticated admin

The AuthGate owns one Session and is the only thing that mutates it;
everything else receives the gate and reads ``gate.session``.
"""

from dataclasses import dataclass
from enum import Enum
from typing import Optional, Any


class EntityKind(str, Enum):
    """The two kinds of entity an admin can manage"""
    SOCIETY = "society"
    COUNCIL = "council"

    @property
    def admin_role(self) -> "Role":
        return Role.SOCIETY_ADMIN if self is EntityKind.SOCIETY else Role.COUNCIL_ADMIN

    @property
    def dashboard_prefix(self) -> str:
        """Backend path prefix for this kind's dashboard endpoints"""
        return f"/{self.value}-dashboard/{self.value}"

    @property
    def public_prefix(self) -> str:
        """Backend and portal path prefix for this kind's public pages"""
        return "/societies" if self is EntityKind.SOCIETY else "/councils"


class Role(str, Enum):
    """Admin roles known to the portal"""
    SOCIETY_ADMIN = "SOCIETY_ADMIN"
    COUNCIL_ADMIN = "COUNCIL_ADMIN"
    OTHER = "OTHER"  # authenticated, but no dashboard of its own
    UNAUTHENTICATED = "UNAUTHENTICATED"

    @classmethod
    def parse(cls, value: Optional[str]) -> "Role":
        if value in (cls.SOCIETY_ADMIN.value, cls.COUNCIL_ADMIN.value):
            return cls(value)
        return cls.OTHER


class SessionState(str, Enum):
    LOADING = "loading"
    UNAUTHENTICATED = "unauthenticated"
    AUTHENTICATED_NO_ENTITY = "authenticated_no_entity"
    AUTHENTICATED_ENTITY = "authenticated_entity"


@dataclass
class Session:
    """Current authenticated identity, if any"""
    token: Optional[str] = None
    role: Role = Role.UNAUTHENTICATED
    entity_id: Optional[str] = None
    name: str = ""
    email: str = ""
    raw_role: Optional[str] = None
    loading: bool = True

    @property
    def is_authenticated(self) -> bool:
        return self.role is not Role.UNAUTHENTICATED

    @property
    def state(self) -> SessionState:
        if self.loading:
            return SessionState.LOADING
        if not self.is_authenticated:
            return SessionState.UNAUTHENTICATED
        if self.entity_id:
            return SessionState.AUTHENTICATED_ENTITY
        return SessionState.AUTHENTICATED_NO_ENTITY

    def populate(self, token: str, role: Optional[str], entity_id: Any,
                 name: str = "", email: str = "") -> None:
        """Fill every field from a backend user profile"""
        self.token = token
        self.raw_role = role
        self.role = Role.parse(role)
        self.entity_id = str(entity_id) if entity_id not in (None, "") else None
        self.name = name or ""
        self.email = email or ""
        self.loading = False

    def clear(self) -> None:
        """Return to the unauthenticated state"""
        self.token = None
        self.role = Role.UNAUTHENTICATED
        self.entity_id = None
        self.name = ""
        self.email = ""
        self.raw_role = None
        self.loading = False
