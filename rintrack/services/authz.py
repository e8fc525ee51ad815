from __future__ import annotations

from enum import Enum
from typing import Optional, Protocol

from rintrack.core.roles import IdentityStatus, Role


class StoredIdentity(Protocol):
    role: Optional[str]
    status: Optional[str]


class AccessDecision(str, Enum):
    ALLOW = "allow"
    DENY_UNKNOWN = "deny_unknown"
    DENY_ROLE = "deny_role"
    DENY_SUSPENDED = "deny_suspended"

    @property
    def allowed(self) -> bool:
        return self is AccessDecision.ALLOW


def authorize(permitted: frozenset[Role], identity: Optional[StoredIdentity]) -> AccessDecision:
    """Decide access for a stored identity against a permitted role set.

    Only the stored role and status are consulted; anything the client claims
    about itself never reaches this function.
    """
    if identity is None:
        return AccessDecision.DENY_UNKNOWN
    role = Role.parse(identity.role)
    if role is None or role not in permitted:
        return AccessDecision.DENY_ROLE
    if identity.status != IdentityStatus.ACTIVE.value:
        return AccessDecision.DENY_SUSPENDED
    return AccessDecision.ALLOW
