"""
Admin read-only views.

Endpoints:
    GET /api/logs           — audit trail, newest first (paginated)
    GET /api/transactions   — verified payment events, newest first (paginated)
"""
from fastapi import APIRouter, Depends
from sqlalchemy.ext.asyncio import AsyncSession

from database import get_db
from deps import Pagination, pagination_params
from domain.responses import paginated_response
from middleware.auth import require_admin
from services import audit_service, payment_service

router = APIRouter(prefix="/api", tags=["admin"], dependencies=[Depends(require_admin)])


@router.get("/logs")
async def list_logs(
    page: Pagination = Depends(pagination_params),
    db: AsyncSession = Depends(get_db),
):
    events, total = await audit_service.list_events(db, page["limit"], page["offset"])
    return paginated_response(events, limit=page["limit"], offset=page["offset"], total=total)


@router.get("/transactions")
async def list_transactions(
    page: Pagination = Depends(pagination_params),
    db: AsyncSession = Depends(get_db),
):
    rows, total = await payment_service.list_transactions(db, page["limit"], page["offset"])
    return paginated_response(rows, limit=page["limit"], offset=page["offset"], total=total)
