"""
Analytics Routes

Dashboard statistics for Administrators and Management.
"""

from fastapi import APIRouter, Depends
from sqlalchemy.ext.asyncio import AsyncSession

from playhub.api.access.gate import Principal
from playhub.api.access.rbac import ANALYTICS_READERS
from playhub.api.analytics.schemas import AnalyticsResponse
from playhub.api.analytics.service import AnalyticsService
from playhub.api.db.session import get_db
from playhub.api.dependencies import require_roles


router = APIRouter()


@router.get(
    "",
    response_model=AnalyticsResponse,
    summary="Get platform statistics",
)
async def get_analytics(
    principal: Principal = Depends(require_roles(ANALYTICS_READERS)),
    db: AsyncSession = Depends(get_db),
) -> AnalyticsResponse:
    return await AnalyticsService(db).overview()
