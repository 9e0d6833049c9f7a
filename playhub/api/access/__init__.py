"""
PLAYHUB - Access & Accountability Module

Role model, authorization gate, audit trail and audit report.

Components:
- rbac.py: Roles and the role sets protected operations require
- gate.py: Principal, GateDecision and the pure gate checks
- audit.py: Audit actions, recorder (write side) and query (read side)
- report.py: PDF rendering of the audit log

Usage:
    from playhub.api.access.gate import check_role, Principal
    from playhub.api.access.rbac import Role, ADMIN_ONLY

    from playhub.api.access.audit import AuditAction, AuditRecorder
"""

from playhub.api.access.rbac import (
    Role,
    ROLE_NAMES,
    ADMIN_ONLY,
    GENRE_MODERATORS,
    ANALYTICS_READERS,
    PLAYLIST_AUTHORS,
    SOCIAL_ROLES,
    OWNER_OVERRIDE,
    PUBLIC_ONLY,
    parse_role,
    role_in_set,
)

from playhub.api.access.gate import (
    Principal,
    GateDecision,
    check_authenticated,
    check_role,
    check_owner_or_role,
    check_not_self,
    is_public_only,
)

from playhub.api.access.audit import (
    AuditAction,
    AuditRecorder,
    AuditQuery,
    AuditLogView,
    AUDIT_SCHEMA_VERSION,
    format_audit_message,
    parse_action,
)

from playhub.api.access.report import AuditReportRenderer, render_audit_report

__all__ = [
    # Roles
    "Role",
    "ROLE_NAMES",
    "ADMIN_ONLY",
    "GENRE_MODERATORS",
    "ANALYTICS_READERS",
    "PLAYLIST_AUTHORS",
    "SOCIAL_ROLES",
    "OWNER_OVERRIDE",
    "PUBLIC_ONLY",
    "parse_role",
    "role_in_set",

    # Gate
    "Principal",
    "GateDecision",
    "check_authenticated",
    "check_role",
    "check_owner_or_role",
    "check_not_self",
    "is_public_only",

    # Audit
    "AuditAction",
    "AuditRecorder",
    "AuditQuery",
    "AuditLogView",
    "AUDIT_SCHEMA_VERSION",
    "format_audit_message",
    "parse_action",
    "AuditReportRenderer",
    "render_audit_report",
]
