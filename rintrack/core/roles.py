from enum import Enum
from typing import Iterable


class Role(str, Enum):
    ADMIN = "admin"
    MANAGER = "manager"
    BORROWER = "borrower"

    @classmethod
    def parse(cls, value: "str | Role | None") -> "Role | None":
        """Return the matching role, or None for unknown/blank values."""
        if value is None:
            return None
        if isinstance(value, Role):
            return value
        try:
            return cls(str(value).strip().lower())
        except ValueError:
            return None


class IdentityStatus(str, Enum):
    ACTIVE = "active"
    SUSPENDED = "suspended"


DEFAULT_ROLE = Role.BORROWER

ADMIN_ONLY = frozenset({Role.ADMIN})
MANAGER_ONLY = frozenset({Role.MANAGER})
BORROWER_ONLY = frozenset({Role.BORROWER})
STAFF = frozenset({Role.ADMIN, Role.MANAGER})


def role_set(roles: Iterable["Role | str"]) -> frozenset[Role]:
    parsed = {Role.parse(role) for role in roles}
    parsed.discard(None)
    if not parsed:
        raise ValueError("A role set needs at least one known role")
    return frozenset(parsed)


def describe_roles(roles: Iterable[Role]) -> str:
    ordered = [role.value for role in Role if role in set(roles)]
    return " or ".join(ordered)
