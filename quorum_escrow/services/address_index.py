"""Secondary indexes: address -> escrow ids, one table per participant role."""

from enum import StrEnum

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from quorum_escrow.models.escrow import (
    Escrow,
    EscrowByApprover,
    EscrowByBeneficiary,
    EscrowByCreator,
)
from quorum_escrow.services.escrow_state_machine import distinct_approvers


class IndexRole(StrEnum):
    CREATOR = "creator"
    BENEFICIARY = "beneficiary"
    APPROVER = "approver"


INDEX_TABLES = {
    IndexRole.CREATOR: EscrowByCreator,
    IndexRole.BENEFICIARY: EscrowByBeneficiary,
    IndexRole.APPROVER: EscrowByApprover,
}


class AddressIndex:
    def __init__(self, db: AsyncSession):
        self.db = db

    async def get(self, role: IndexRole, address: str) -> set[int]:
        table = INDEX_TABLES[role]
        result = await self.db.execute(select(table.escrow_id).where(table.address == address))
        return set(result.scalars().all())

    async def add(self, role: IndexRole, address: str, escrow_id: int) -> None:
        """Idempotent: adding an id already present is a no-op."""
        table = INDEX_TABLES[role]
        if await self.db.get(table, {"address": address, "escrow_id": escrow_id}) is None:
            self.db.add(table(address=address, escrow_id=escrow_id))
            await self.db.flush()

    async def remove(self, role: IndexRole, address: str, escrow_id: int) -> None:
        """Idempotent: removing an absent id is a no-op."""
        table = INDEX_TABLES[role]
        row = await self.db.get(table, {"address": address, "escrow_id": escrow_id})
        if row is not None:
            await self.db.delete(row)
            await self.db.flush()

    @staticmethod
    def _entries(escrow: Escrow) -> list[tuple[IndexRole, str]]:
        entries = [
            (IndexRole.CREATOR, escrow.creator),
            (IndexRole.BENEFICIARY, escrow.beneficiary),
        ]
        entries += [
            (IndexRole.APPROVER, approver)
            for approver in distinct_approvers(escrow.approver_slots)
        ]
        return entries

    async def index_escrow(self, escrow: Escrow) -> None:
        for role, address in self._entries(escrow):
            await self.add(role, address, escrow.id)

    async def unindex_escrow(self, escrow: Escrow) -> None:
        for role, address in self._entries(escrow):
            await self.remove(role, address, escrow.id)
