"""Read-only escrow endpoints."""

from fastapi import APIRouter, Depends, Path, Query
from sqlalchemy.ext.asyncio import AsyncSession

from quorum_escrow.api.schemas import (
    U32_MAX,
    U64_MAX,
    EscrowActionsResponse,
    EscrowListResponse,
    EscrowResponse,
)
from quorum_escrow.core.addresses import validate_address
from quorum_escrow.core.config import settings
from quorum_escrow.core.deps import get_db
from quorum_escrow.services.escrow_query import EscrowQuery
from quorum_escrow.services.escrow_state_machine import get_available_actions
from quorum_escrow.services.escrow_store import EscrowStore

router = APIRouter(tags=["escrows"])


@router.get("/escrows", response_model=EscrowListResponse)
async def list_escrows(
    start_after: int | None = Query(default=None, ge=0, le=U64_MAX),
    limit: int | None = Query(default=None, ge=0, le=U32_MAX),
    db: AsyncSession = Depends(get_db),
) -> EscrowListResponse:
    """All escrows in ascending id order, paginated by ``start_after``."""
    return await EscrowQuery(db).get_all_escrows(start_after, limit)


@router.get("/escrows/{escrow_id}", response_model=EscrowResponse)
async def get_escrow(
    escrow_id: int = Path(ge=0, le=U64_MAX),
    db: AsyncSession = Depends(get_db),
) -> EscrowResponse:
    return await EscrowQuery(db).get_escrow(escrow_id)


@router.get("/escrows/{escrow_id}/actions", response_model=EscrowActionsResponse)
async def get_escrow_actions(
    escrow_id: int = Path(ge=0, le=U64_MAX),
    address: str = Query(),
    db: AsyncSession = Depends(get_db),
) -> EscrowActionsResponse:
    """Transitions ``address`` may currently attempt on the escrow."""
    addr = validate_address(address)
    escrow = await EscrowStore(db).get(escrow_id)

    is_creator = escrow.creator == addr
    is_approver = escrow.is_approver(addr)
    if settings.forbid_creator_approval and is_creator:
        is_approver = False

    return EscrowActionsResponse(
        escrow_id=escrow.id,
        address=addr,
        status=escrow.status.value,
        required_approvals=escrow.required_approvals(),
        total_approvers=escrow.total_approvers(),
        available_actions=get_available_actions(
            escrow.status,
            is_creator=is_creator,
            is_approver=is_approver,
            has_approved=escrow.has_approved(addr),
            approval_count=len(escrow.approvals),
        ),
    )


@router.get("/addresses/{address}/escrows", response_model=EscrowListResponse)
async def list_escrows_by_address(
    address: str,
    start_after: int | None = Query(default=None, ge=0, le=U64_MAX),
    limit: int | None = Query(default=None, ge=0, le=U32_MAX),
    db: AsyncSession = Depends(get_db),
) -> EscrowListResponse:
    """Escrows where ``address`` is creator, beneficiary or approver."""
    return await EscrowQuery(db).get_escrows_by_address(address, start_after, limit)
