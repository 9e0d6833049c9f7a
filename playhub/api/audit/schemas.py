"""
Audit Log Schemas
"""

from datetime import datetime
from typing import List, Optional

from pydantic import BaseModel

from playhub.api.access.audit import AuditLogView


class AuditLogEntry(BaseModel):
    id: int
    action: str
    message: str
    target_id: Optional[int]
    timestamp: datetime
    user_id: Optional[int]
    username: Optional[str]

    @classmethod
    def from_view(cls, view: AuditLogView) -> "AuditLogEntry":
        return cls(
            id=view.id,
            action=view.action,
            message=view.message,
            target_id=view.target_id,
            timestamp=view.timestamp,
            user_id=view.user_id,
            username=view.username,
        )


class AuditPagination(BaseModel):
    page: int
    limit: int
    total: int
    total_pages: int


class AuditLogListResponse(BaseModel):
    logs: List[AuditLogEntry]
    pagination: AuditPagination


class ActionCount(BaseModel):
    action: str
    count: int
