from __future__ import annotations
"""Role evaluation: rank lookups, permission checks and the per-request session.

The evaluation helpers are pure functions of role names. AuthSession is the
explicit carrier of "who is calling" that routes hand down to services.
"""
from dataclasses import dataclass
from typing import Optional
from flask import abort
from sqlalchemy import select
from invoice_tracker.constants.roles import ROLE_RANKS, ACTION_POLICY, RULE_EXACT, RULE_MIN, ROLE_SUPER_ADMIN
from invoice_tracker.models.authz import User, UserRole


def role_rank(role: Optional[str]) -> int:
    """Rank of a role name; unknown or missing roles rank 0."""
    if not role:
        return 0
    return ROLE_RANKS.get(role, 0)


def has_permission(user_role: Optional[str], required_role: Optional[str]) -> bool:
    return role_rank(user_role) >= role_rank(required_role)


def has_exact_role(user_role: Optional[str], role: str) -> bool:
    return bool(user_role) and user_role == role


def can(user_role: Optional[str], action: str) -> bool:
    """Evaluate the action policy table. Unknown actions are denied."""
    rule = ACTION_POLICY.get(action)
    if rule is None:
        return False
    kind, role = rule
    if kind == RULE_EXACT:
        return has_exact_role(user_role, role)
    if kind == RULE_MIN:
        return has_permission(user_role, role)
    return False


@dataclass(frozen=True)
class AuthSession:
    user_id: int
    role: Optional[str]
    email: Optional[str] = None

    @property
    def rank(self) -> int:
        return role_rank(self.role)

    @property
    def is_super_admin(self) -> bool:
        return has_exact_role(self.role, ROLE_SUPER_ADMIN)

    def can(self, action: str) -> bool:
        return can(self.role, action)


def resolve_role(session, user_id: int) -> Optional[str]:
    row = session.execute(select(UserRole.role).where(UserRole.user_id == user_id)).scalar_one_or_none()
    return row


def load_auth_session(session, user_id: int) -> AuthSession:
    """Build the caller's AuthSession from the stored user and role.

    Inactive or deleted accounts are rejected even with a still-valid token.
    """
    user = session.execute(select(User).where(User.id == user_id)).scalar_one_or_none()
    if not user or not user.is_active:
        abort(401, description='account not found or inactive')
    return AuthSession(user_id=user.id, role=resolve_role(session, user.id), email=user.email)


__all__ = ['role_rank', 'has_permission', 'has_exact_role', 'can', 'AuthSession', 'resolve_role', 'load_auth_session']
