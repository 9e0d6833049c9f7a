"""
PLAYHUB - Authorization Gate
============================

Pure, side-effect-free checks evaluated before a protected operation.
Every check runs in the same order:

    1. Is a principal present?          -> AUTHENTICATION_REQUIRED
    2. Role / ownership / self rules    -> FORBIDDEN

Checks return a ``GateDecision`` (allowed with the principal, or denied
with an ``AccessFailure``) so callers can branch on the outcome; the
FastAPI dependencies in ``playhub.api.dependencies`` call ``unwrap()``
to turn a denial into an ``AccessError``.
"""

from dataclasses import dataclass
from datetime import datetime
from typing import AbstractSet, Optional

from playhub.api.access.rbac import OWNER_OVERRIDE, PUBLIC_ONLY, Role, role_in_set
from playhub.api.errors import AccessError, AccessFailure


@dataclass(frozen=True)
class Principal:
    """Snapshot of the acting user, as loaded from the principal cache."""

    id: int
    username: str
    email: str
    role: Role
    created_at: Optional[datetime] = None

    @property
    def is_admin(self) -> bool:
        return self.role == Role.ADMINISTRATOR


@dataclass(frozen=True)
class GateDecision:
    """Outcome of a gate check: ``principal`` on success, ``failure`` otherwise."""

    principal: Optional[Principal] = None
    failure: Optional[AccessFailure] = None
    message: Optional[str] = None

    @property
    def allowed(self) -> bool:
        return self.failure is None

    def unwrap(self) -> Principal:
        """Return the principal or raise the typed failure."""
        if self.failure is not None:
            raise AccessError(self.failure, self.message)
        return self.principal

    @classmethod
    def allow(cls, principal: Principal) -> "GateDecision":
        return cls(principal=principal)

    @classmethod
    def deny(cls, failure: AccessFailure, message: Optional[str] = None) -> "GateDecision":
        return cls(failure=failure, message=message)


def check_authenticated(principal: Optional[Principal]) -> GateDecision:
    if principal is None:
        return GateDecision.deny(AccessFailure.AUTHENTICATION_REQUIRED)
    return GateDecision.allow(principal)


def check_role(
    principal: Optional[Principal],
    allowed_roles: AbstractSet[Role],
) -> GateDecision:
    """Allow iff a principal is present and its role is in ``allowed_roles``."""
    decision = check_authenticated(principal)
    if not decision.allowed:
        return decision

    if not role_in_set(principal.role, allowed_roles):
        return GateDecision.deny(AccessFailure.FORBIDDEN)

    return decision


def check_owner_or_role(
    principal: Optional[Principal],
    owner_id: Optional[int],
    allowed_roles: AbstractSet[Role] = OWNER_OVERRIDE,
    message: Optional[str] = None,
) -> GateDecision:
    """
    Allow the entity's owner, or any principal whose role is in ``allowed_roles``.

    Args:
        principal: Acting principal (None when anonymous)
        owner_id: Id of the user the target entity belongs to
        allowed_roles: Roles that may act regardless of ownership
        message: Optional message for the FORBIDDEN outcome
    """
    decision = check_authenticated(principal)
    if not decision.allowed:
        return decision

    if owner_id is not None and principal.id == owner_id:
        return decision

    if role_in_set(principal.role, allowed_roles):
        return decision

    return GateDecision.deny(AccessFailure.FORBIDDEN, message)


def check_not_self(
    principal: Optional[Principal],
    target_user_id: int,
    message: str = "You cannot perform this action on your own account",
) -> GateDecision:
    """
    Self-protection rule for destructive account changes.

    Rejects a principal acting on its own account (delete, role change)
    regardless of role, so the last administrator cannot lock itself out.
    """
    decision = check_authenticated(principal)
    if not decision.allowed:
        return decision

    if principal.id == target_user_id:
        return GateDecision.deny(AccessFailure.FORBIDDEN, message)

    return decision


def is_public_only(principal: Optional[Principal]) -> bool:
    """True for visitors restricted to public content (anonymous or Unregistered)."""
    return principal is None or role_in_set(principal.role, PUBLIC_ONLY)
