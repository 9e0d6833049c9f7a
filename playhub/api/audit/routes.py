"""
Audit Log Routes

Administrator-only read access to the audit trail: paginated listing,
per-action counts, single entries and a PDF export.
"""

import logging
import math
from datetime import datetime, timezone
from typing import List, Optional

from fastapi import APIRouter, Depends, Query, Response
from sqlalchemy.ext.asyncio import AsyncSession

from playhub.api.access.audit import AuditQuery, clamp_page_size, parse_action
from playhub.api.access.gate import Principal
from playhub.api.access.rbac import ADMIN_ONLY
from playhub.api.access.report import AuditReportRenderer
from playhub.api.audit.schemas import (
    ActionCount,
    AuditLogEntry,
    AuditLogListResponse,
    AuditPagination,
)
from playhub.api.config import settings
from playhub.api.db.session import get_db
from playhub.api.dependencies import require_roles
from playhub.api.errors import BadRequestError, NotFoundError


logger = logging.getLogger(__name__)

router = APIRouter()


def get_audit_query(db: AsyncSession = Depends(get_db)) -> AuditQuery:
    """Dependency to get the audit log reader."""
    return AuditQuery(db)


@router.get(
    "",
    response_model=AuditLogListResponse,
    summary="List audit log entries",
)
async def list_audit_log(
    page: int = Query(1, ge=1),
    limit: int = Query(settings.AUDIT_PAGE_SIZE),
    action: Optional[str] = None,
    user_id: Optional[int] = None,
    admin: Principal = Depends(require_roles(ADMIN_ONLY)),
    query: AuditQuery = Depends(get_audit_query),
) -> AuditLogListResponse:
    """
    Newest entries first; ``limit`` is clamped to 1..100.

    - **action**: only entries with this action code
    - **user_id**: only entries by this actor
    """
    action_filter = None
    if action:
        action_filter = parse_action(action)
        if action_filter is None:
            raise BadRequestError(f"Unknown audit action: {action}")

    limit = clamp_page_size(limit)
    views, total = await query.list_entries(
        action=action_filter, actor_id=user_id, page=page, page_size=limit
    )

    return AuditLogListResponse(
        logs=[AuditLogEntry.from_view(v) for v in views],
        pagination=AuditPagination(
            page=page,
            limit=limit,
            total=total,
            total_pages=math.ceil(total / limit),
        ),
    )


@router.get(
    "/actions",
    response_model=List[ActionCount],
    summary="Count entries per action",
)
async def action_summary(
    admin: Principal = Depends(require_roles(ADMIN_ONLY)),
    query: AuditQuery = Depends(get_audit_query),
) -> List[ActionCount]:
    return [ActionCount(action=a, count=c) for a, c in await query.action_summary()]


@router.get(
    "/export/pdf",
    response_class=Response,
    summary="Export the audit log as PDF",
    responses={200: {"content": {"application/pdf": {}}}},
)
async def export_pdf(
    admin: Principal = Depends(require_roles(ADMIN_ONLY)),
    query: AuditQuery = Depends(get_audit_query),
) -> Response:
    """Most recent entries, in the same order as the listing."""
    now = datetime.now(timezone.utc)
    entries = await query.recent(settings.AUDIT_EXPORT_LIMIT)

    renderer = AuditReportRenderer()
    pdf = renderer.render(entries, generated_at=now)
    logger.info(
        "Audit log exported by user %s: %d entries, %d pages",
        admin.id, len(entries), renderer.page_count,
    )

    filename = f"audit-log-{now.strftime('%Y-%m-%d')}.pdf"
    return Response(
        content=pdf,
        media_type="application/pdf",
        headers={"Content-Disposition": f'attachment; filename="{filename}"'},
    )


@router.get(
    "/{entry_id}",
    response_model=AuditLogEntry,
    summary="Get an audit log entry",
)
async def get_audit_entry(
    entry_id: int,
    admin: Principal = Depends(require_roles(ADMIN_ONLY)),
    query: AuditQuery = Depends(get_audit_query),
) -> AuditLogEntry:
    view = await query.get_entry(entry_id)
    if view is None:
        raise NotFoundError("Audit log entry not found")
    return AuditLogEntry.from_view(view)
