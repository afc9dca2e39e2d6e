"""Escrow lifecycle engine: create, approve and cancel transitions.

The engine is the only component that mutates escrow records and the address
index together. It never commits; callers run it inside a unit of work
(see ``quorum_escrow.services.contract``) so a failed precondition leaves no
trace in storage.
"""

import logging
from typing import assert_never

from sqlalchemy.ext.asyncio import AsyncSession

from quorum_escrow.api.schemas import (
    ApproveRelease,
    BankSend,
    CancelEscrow,
    Coin,
    ContractResponse,
    CreateEscrow,
    Env,
    ExecuteMsg,
    MessageInfo,
)
from quorum_escrow.core.addresses import validate_address
from quorum_escrow.core.config import settings
from quorum_escrow.core.errors import (
    AlreadyApproved,
    CannotSelfApprove,
    EscrowCompleted,
    InsufficientFunds,
    InvalidApprover,
    InvalidBeneficiary,
    Unauthorized,
)
from quorum_escrow.models.escrow import Escrow
from quorum_escrow.services.address_index import AddressIndex
from quorum_escrow.services.escrow_state_machine import EscrowAction
from quorum_escrow.services.escrow_store import EscrowStore

logger = logging.getLogger(__name__)


class EscrowEngine:
    def __init__(self, db: AsyncSession, *, forbid_creator_approval: bool | None = None):
        self.store = EscrowStore(db)
        self.index = AddressIndex(db)
        if forbid_creator_approval is None:
            forbid_creator_approval = settings.forbid_creator_approval
        self.forbid_creator_approval = forbid_creator_approval

    async def execute(self, env: Env, info: MessageInfo, msg: ExecuteMsg) -> ContractResponse:
        match msg:
            case CreateEscrow():
                return await self.create_escrow(env, info, msg)
            case ApproveRelease(escrow_id=escrow_id):
                return await self.approve_release(env, info, escrow_id)
            case CancelEscrow(escrow_id=escrow_id):
                return await self.cancel_escrow(env, info, escrow_id)
            case _:
                assert_never(msg)

    async def create_escrow(
        self, env: Env, info: MessageInfo, msg: CreateEscrow
    ) -> ContractResponse:
        # Exactly one denomination, non-zero
        if len(info.funds) != 1:
            raise InsufficientFunds()
        funds = info.funds[0]
        if funds.amount == 0:
            raise InsufficientFunds()

        beneficiary = validate_address(msg.beneficiary, InvalidBeneficiary)
        approver1 = validate_address(msg.approver1, InvalidApprover)
        approver2 = validate_address(msg.approver2, InvalidApprover)
        approver3 = (
            validate_address(msg.approver3, InvalidApprover)
            if msg.approver3 is not None
            else None
        )
        # Beneficiary may also be an approver, and approver slots may repeat.

        escrow_id = await self.store.next_id()
        escrow = Escrow(
            id=escrow_id,
            creator=info.sender,
            beneficiary=beneficiary,
            denom=funds.denom,
            amount=str(funds.amount),
            approver1=approver1,
            approver2=approver2,
            approver3=approver3,
            description=msg.description,
            approvals=[],
            is_completed=False,
            created_at=env.block_time,
            completed_at=None,
        )
        escrow = await self.store.put(escrow)
        await self.index.index_escrow(escrow)

        logger.info(
            "Escrow %s created by %s for %s (%s, %d of %d approvals required)",
            escrow_id,
            info.sender,
            beneficiary,
            funds,
            escrow.required_approvals(),
            escrow.total_approvers(),
        )

        return (
            ContractResponse()
            .add_attribute("method", EscrowAction.CREATE.value)
            .add_attribute("escrow_id", escrow_id)
            .add_attribute("creator", info.sender)
            .add_attribute("beneficiary", beneficiary)
            .add_attribute("amount", funds)
            .add_attribute("description", msg.description)
        )

    async def approve_release(
        self, env: Env, info: MessageInfo, escrow_id: int
    ) -> ContractResponse:
        escrow = await self.store.get(escrow_id, for_update=True)

        if escrow.is_completed:
            raise EscrowCompleted()
        if not escrow.is_approver(info.sender):
            raise Unauthorized()
        if self.forbid_creator_approval and info.sender == escrow.creator:
            raise CannotSelfApprove()
        if escrow.has_approved(info.sender):
            raise AlreadyApproved()

        # Reassign so the JSON column is flagged dirty
        escrow.approvals = [*escrow.approvals, info.sender]

        response = (
            ContractResponse()
            .add_attribute("method", EscrowAction.APPROVE.value)
            .add_attribute("escrow_id", escrow_id)
            .add_attribute("approver", info.sender)
            .add_attribute("total_approvals", len(escrow.approvals))
        )

        if escrow.can_be_released():
            escrow.is_completed = True
            escrow.completed_at = env.block_time
            amount = Coin(denom=escrow.denom, amount=int(escrow.amount))

            response = (
                response.add_message(BankSend(to_address=escrow.beneficiary, amount=[amount]))
                .add_attribute("released", "true")
                .add_attribute("released_to", escrow.beneficiary)
                .add_attribute("amount_released", amount)
            )
            logger.info(
                "Escrow %s released to %s (%s) after %d approvals",
                escrow_id,
                escrow.beneficiary,
                amount,
                len(escrow.approvals),
            )
        else:
            logger.info(
                "Escrow %s approved by %s (%d/%d)",
                escrow_id,
                info.sender,
                len(escrow.approvals),
                escrow.required_approvals(),
            )

        await self.store.put(escrow)
        return response

    async def cancel_escrow(
        self, env: Env, info: MessageInfo, escrow_id: int
    ) -> ContractResponse:
        escrow = await self.store.get(escrow_id, for_update=True)

        if escrow.creator != info.sender:
            raise Unauthorized()
        if escrow.is_completed:
            raise EscrowCompleted()
        # Any recorded approval forecloses cancellation
        if escrow.approvals:
            raise Unauthorized("Unauthorized: escrow already has approvals")

        escrow.is_completed = True
        refund = BankSend(
            to_address=escrow.creator,
            amount=[Coin(denom=escrow.denom, amount=int(escrow.amount))],
        )

        await self.index.unindex_escrow(escrow)
        await self.store.put(escrow)

        logger.info("Escrow %s cancelled, refunding %s", escrow_id, escrow.creator)

        return (
            ContractResponse()
            .add_message(refund)
            .add_attribute("method", EscrowAction.CANCEL.value)
            .add_attribute("escrow_id", escrow_id)
            .add_attribute("refunded_to", escrow.creator)
        )
