"""
Table catalog endpoint.
"""

from typing import Optional

from fastapi import APIRouter, Depends
from sqlalchemy.ext.asyncio import AsyncSession

from tablebook.api.deps import get_request_id
from tablebook.core.security import get_current_tenant_id
from tablebook.db.session import get_db
from tablebook.schemas import DataEnvelope, ListTablesRequest, TableWithStatus
from tablebook.services.table_service import list_tables

router = APIRouter(prefix="/tables", tags=["Tables"])


@router.post("", response_model=DataEnvelope[list[TableWithStatus]])
async def list_tables_endpoint(
    body: Optional[ListTablesRequest] = None,
    tenant_id: str = Depends(get_current_tenant_id),
    db: AsyncSession = Depends(get_db),
    request_id: Optional[str] = Depends(get_request_id),
):
    """
    List the tenant's tables with their live status.
    Table rows are cached in Redis; statuses are always computed fresh.
    """
    include_inactive = body.include_inactive if body is not None else False
    tables = await list_tables(db, tenant_id, include_inactive=include_inactive)
    return DataEnvelope(data=tables, request_id=request_id)
