"""Role hierarchy and action policy table.

Single source of truth for every role-gated action in the API. Rules are
either a minimum rank ("at least this role") or an exact role match; routes and
services never compare role strings themselves.
"""
from __future__ import annotations
from typing import Dict, List, Tuple

ROLE_VIEWER = 'viewer'
ROLE_UPLOADER = 'uploader'
ROLE_EDITOR = 'editor'
ROLE_LITE_ADMIN = 'lite_admin'
ROLE_ADMIN = 'admin'
ROLE_SUPER_ADMIN = 'super_admin'

# Ordered lowest -> highest; list index is the rank
ROLE_ORDER: List[str] = [
    ROLE_VIEWER,
    ROLE_UPLOADER,
    ROLE_EDITOR,
    ROLE_LITE_ADMIN,
    ROLE_ADMIN,
    ROLE_SUPER_ADMIN,
]

ROLE_RANKS: Dict[str, int] = {name: rank for rank, name in enumerate(ROLE_ORDER)}

ALL_ROLES = tuple(ROLE_ORDER)

# Placeholder shown in user listings for accounts without a role row
NO_ROLE = 'no_role'

RULE_MIN = 'min'
RULE_EXACT = 'exact'

# action code -> (rule kind, role)
ACTION_POLICY: Dict[str, Tuple[str, str]] = {
    'invoice.read': (RULE_MIN, ROLE_VIEWER),
    'invoice.create': (RULE_MIN, ROLE_UPLOADER),
    'invoice.extract': (RULE_MIN, ROLE_UPLOADER),
    'invoice.update': (RULE_MIN, ROLE_EDITOR),
    'invoice.assign': (RULE_MIN, ROLE_EDITOR),
    'invoice.send_to_finance': (RULE_MIN, ROLE_EDITOR),
    'invoice.mark_paid': (RULE_MIN, ROLE_EDITOR),
    'invoice.approve': (RULE_MIN, ROLE_LITE_ADMIN),
    'invoice.reject': (RULE_MIN, ROLE_LITE_ADMIN),
    'invoice.delete': (RULE_MIN, ROLE_ADMIN),
    'report.read': (RULE_MIN, ROLE_VIEWER),
    'report.email': (RULE_MIN, ROLE_ADMIN),
    'report.overdue_notices': (RULE_MIN, ROLE_ADMIN),
    'admin.view': (RULE_MIN, ROLE_ADMIN),
    'user.create': (RULE_EXACT, ROLE_SUPER_ADMIN),
    'user.role.set': (RULE_EXACT, ROLE_SUPER_ADMIN),
    'user.profile.update': (RULE_EXACT, ROLE_SUPER_ADMIN),
    'user.password.reset': (RULE_EXACT, ROLE_SUPER_ADMIN),
    'user.delete': (RULE_EXACT, ROLE_SUPER_ADMIN),
}

# Role templates offered by the admin screens (label -> role)
ROLE_TEMPLATES: Dict[str, str] = {
    'Finance Team Member': ROLE_EDITOR,
    'Data Entry Staff': ROLE_UPLOADER,
    'Viewer Only': ROLE_VIEWER,
    'Department Admin': ROLE_ADMIN,
}

__all__ = [
    'ROLE_VIEWER', 'ROLE_UPLOADER', 'ROLE_EDITOR', 'ROLE_LITE_ADMIN', 'ROLE_ADMIN', 'ROLE_SUPER_ADMIN',
    'ROLE_ORDER', 'ROLE_RANKS', 'ALL_ROLES', 'NO_ROLE', 'RULE_MIN', 'RULE_EXACT', 'ACTION_POLICY',
    'ROLE_TEMPLATES',
]
