"""
Role definitions for RBAC.

Roles in hierarchy (lowest to highest):
- viewer: Read discovered hosts, managed hosts, rules and activity
- operator: Upload facts, provision, reboot and refresh hosts
- manager: Manage discovery rules, host groups and taxonomies
- admin: Full access including deletions and API key management
"""
from enum import Enum
from typing import Dict, Set


class Role(str, Enum):
    """User roles with hierarchy."""
    VIEWER = "viewer"
    OPERATOR = "operator"
    MANAGER = "manager"
    ADMIN = "admin"


ROLE_HIERARCHY: Dict[str, int] = {
    Role.VIEWER.value: 1,
    Role.OPERATOR.value: 2,
    Role.MANAGER.value: 3,
    Role.ADMIN.value: 4,
}

VALID_ROLES: Set[str] = {r.value for r in Role}


def normalize_role(role: str) -> str:
    """
    Normalize a role string. Unknown roles fall back to viewer.
    """
    role_lower = (role or "").lower().strip()

    if role_lower in VALID_ROLES:
        return role_lower
    return Role.VIEWER.value


def has_permission(user_role: str, required_role: str) -> bool:
    """Check if user role is at or above the required role."""
    user_level = ROLE_HIERARCHY.get(normalize_role(user_role), 0)
    required_level = ROLE_HIERARCHY.get(normalize_role(required_role), 0)
    return user_level >= required_level
