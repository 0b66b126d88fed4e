from typing import Optional
import uuid

from fastapi import APIRouter, status, Query

from app.api.deps import Page, Statements
from app.schemas.settlement import (
    StatementGenerate,
    StatementResponse,
    StatementListResponse,
)

router = APIRouter(tags=["Statements"])


@router.post(
    "/vendors/{vendor_id}/statements",
    response_model=StatementResponse,
    status_code=status.HTTP_201_CREATED,
)
async def generate_statement(vendor_id: uuid.UUID, data: StatementGenerate, service: Statements):
    """Create a DRAFT statement for [period_start, period_end)."""
    return await service.generate_statement(vendor_id, data.period_start, data.period_end)


@router.get("/vendors/{vendor_id}/statements", response_model=StatementListResponse)
async def list_statements(
    vendor_id: uuid.UUID,
    service: Statements,
    pagination: Page,
    status: Optional[str] = Query(None, description="DRAFT or FINALIZED"),
):
    statements, total = await service.list_statements(
        vendor_id,
        status=status.upper() if status else None,
        skip=pagination.skip,
        limit=pagination.size,
    )
    return StatementListResponse(
        **pagination.envelope([StatementResponse.model_validate(s) for s in statements], total)
    )


@router.get("/statements/{statement_id}", response_model=StatementResponse)
async def get_statement(statement_id: uuid.UUID, service: Statements):
    return await service.get_statement(statement_id)


@router.post("/statements/{statement_id}/finalize", response_model=StatementResponse)
async def finalize_statement(statement_id: uuid.UUID, service: Statements):
    """DRAFT -> FINALIZED. Repeating the call on a FINALIZED statement is a no-op."""
    return await service.finalize_statement(statement_id)
