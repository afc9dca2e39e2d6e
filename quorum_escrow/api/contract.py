"""Host dispatch endpoints: instantiate, execute, migrate and raw query.

These stand in for the chain host: the caller is trusted to report the
message sender, attached funds and block time.
"""

import time

from fastapi import APIRouter, Depends, HTTPException, status
from sqlalchemy.ext.asyncio import AsyncSession

from quorum_escrow.api.schemas import (
    ContractInfoResponse,
    ContractResponse,
    Env,
    ErrorResponse,
    EscrowListResponse,
    EscrowResponse,
    ExecuteRequest,
    InstantiateRequest,
    MessageInfo,
    MigrateRequest,
    QueryRequest,
)
from quorum_escrow.core.deps import get_db, require_host
from quorum_escrow.services import contract as contract_svc

router = APIRouter(prefix="/contract", tags=["contract"])

CONTRACT_ERRORS = {
    status_code: {"model": ErrorResponse} for status_code in (400, 403, 404, 409, 500)
}


def _env(block_time: int | None) -> Env:
    return Env(block_time=int(time.time()) if block_time is None else block_time)


@router.post(
    "/instantiate",
    response_model=ContractResponse,
    dependencies=[Depends(require_host)],
    responses=CONTRACT_ERRORS,
)
async def instantiate(
    body: InstantiateRequest,
    db: AsyncSession = Depends(get_db),
) -> ContractResponse:
    """Zero the escrow counter and stamp the contract version."""
    info = MessageInfo(sender=body.sender, funds=body.funds)
    return await contract_svc.instantiate(db, _env(body.block_time), info, body.msg)


@router.post(
    "/execute",
    response_model=ContractResponse,
    dependencies=[Depends(require_host)],
    responses=CONTRACT_ERRORS,
)
async def execute(
    body: ExecuteRequest,
    db: AsyncSession = Depends(get_db),
) -> ContractResponse:
    """Run one escrow command (create_escrow, approve_release, cancel_escrow)."""
    info = MessageInfo(sender=body.sender, funds=body.funds)
    return await contract_svc.execute(db, _env(body.block_time), info, body.msg)


@router.post(
    "/migrate",
    response_model=ContractResponse,
    dependencies=[Depends(require_host)],
    responses=CONTRACT_ERRORS,
)
async def migrate(
    body: MigrateRequest,
    db: AsyncSession = Depends(get_db),
) -> ContractResponse:
    return await contract_svc.migrate(db, _env(body.block_time), body.msg)


@router.post(
    "/query",
    response_model=EscrowResponse | EscrowListResponse,
    responses=CONTRACT_ERRORS,
)
async def query(
    body: QueryRequest,
    db: AsyncSession = Depends(get_db),
):
    return await contract_svc.query(db, _env(None), body.msg)


@router.get("/info", response_model=ContractInfoResponse)
async def contract_info(db: AsyncSession = Depends(get_db)) -> ContractInfoResponse:
    info = await contract_svc.contract_info(db)
    if info is None:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail="Contract not instantiated",
        )
    return info
