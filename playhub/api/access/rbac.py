"""
PLAYHUB - Role Model
====================

The fixed, totally ordered set of roles and the role sets each
protected operation is gated on. This is the authoritative source for
who may do what; routes reference the named sets below instead of
spelling out roles inline.
"""

from enum import IntEnum
from typing import AbstractSet, FrozenSet, Optional


# ============================================================
# Roles
# ============================================================


class Role(IntEnum):
    """System roles; the numeric value is the persisted ``role_id``."""

    ADMINISTRATOR = 0
    MANAGEMENT = 1
    REGULAR_USER = 2
    UNREGISTERED = 3

    @property
    def label(self) -> str:
        return ROLE_NAMES[self]


ROLE_NAMES: dict[Role, str] = {
    Role.ADMINISTRATOR: "Administrator",
    Role.MANAGEMENT: "Management",
    Role.REGULAR_USER: "Regular User",
    Role.UNREGISTERED: "Unregistered",
}


def parse_role(value: object) -> Optional[Role]:
    """Return the Role for a raw role id, or None if it is not one of the four."""
    if isinstance(value, bool) or not isinstance(value, int):
        return None
    try:
        return Role(value)
    except ValueError:
        return None


def role_in_set(role: Role, allowed_roles: AbstractSet[Role]) -> bool:
    """Membership test used by every gate check."""
    return role in allowed_roles


# ============================================================
# Role sets per operation
# ============================================================


ADMIN_ONLY: FrozenSet[Role] = frozenset({Role.ADMINISTRATOR})

# Genre moderation
GENRE_MODERATORS: FrozenSet[Role] = frozenset({Role.ADMINISTRATOR, Role.MANAGEMENT})

# Analytics dashboard
ANALYTICS_READERS: FrozenSet[Role] = frozenset({Role.ADMINISTRATOR, Role.MANAGEMENT})

# Playlist creation
PLAYLIST_AUTHORS: FrozenSet[Role] = frozenset({Role.REGULAR_USER, Role.ADMINISTRATOR})

# Likes and favorites
SOCIAL_ROLES: FrozenSet[Role] = frozenset(
    {Role.REGULAR_USER, Role.ADMINISTRATOR, Role.MANAGEMENT}
)

# Roles that bypass ownership on owner-scoped resources
OWNER_OVERRIDE: FrozenSet[Role] = ADMIN_ONLY

# Roles restricted to public content, same as an anonymous visitor
PUBLIC_ONLY: FrozenSet[Role] = frozenset({Role.UNREGISTERED})
