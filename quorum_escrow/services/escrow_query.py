"""Read-only escrow projections and pagination."""

from typing import assert_never

from sqlalchemy.ext.asyncio import AsyncSession

from quorum_escrow.api.schemas import (
    EscrowListResponse,
    EscrowResponse,
    GetAllEscrows,
    GetEscrow,
    GetEscrowsByAddress,
    QueryMsg,
)
from quorum_escrow.core.addresses import validate_address
from quorum_escrow.core.config import settings
from quorum_escrow.services.address_index import AddressIndex, IndexRole
from quorum_escrow.services.escrow_store import EscrowStore


class EscrowQuery:
    def __init__(self, db: AsyncSession):
        self.store = EscrowStore(db)
        self.index = AddressIndex(db)

    async def query(self, msg: QueryMsg) -> EscrowResponse | EscrowListResponse:
        match msg:
            case GetEscrow(escrow_id=escrow_id):
                return await self.get_escrow(escrow_id)
            case GetEscrowsByAddress():
                return await self.get_escrows_by_address(msg.address, msg.start_after, msg.limit)
            case GetAllEscrows():
                return await self.get_all_escrows(msg.start_after, msg.limit)
            case _:
                assert_never(msg)

    async def get_escrow(self, escrow_id: int) -> EscrowResponse:
        return EscrowResponse.from_escrow(await self.store.get(escrow_id))

    async def escrow_ids_for_address(self, address: str) -> list[int]:
        """Sorted, deduplicated ids the address takes part in, across all roles."""
        ids: set[int] = set()
        for role in IndexRole:
            ids |= await self.index.get(role, address)
        return sorted(ids)

    async def get_escrows_by_address(
        self,
        address: str,
        start_after: int | None = None,
        limit: int | None = None,
    ) -> EscrowListResponse:
        addr = validate_address(address)
        limit = settings.default_page_limit if limit is None else limit
        start = start_after or 0

        ids = await self.escrow_ids_for_address(addr)
        page = [escrow_id for escrow_id in ids if escrow_id > start][:limit]

        escrows = await self.store.get_many(page)
        return EscrowListResponse(escrows=[EscrowResponse.from_escrow(e) for e in escrows])

    async def get_all_escrows(
        self,
        start_after: int | None = None,
        limit: int | None = None,
    ) -> EscrowListResponse:
        limit = settings.default_page_limit if limit is None else limit
        escrows = await self.store.scan(start_after=start_after, limit=limit)
        return EscrowListResponse(escrows=[EscrowResponse.from_escrow(e) for e in escrows])
