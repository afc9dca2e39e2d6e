"""Escrow record store: primary table, identifier counter and version marker.

All reads and writes go through the caller's ``AsyncSession``; nothing is
committed here. The session is the unit of work, so a counter increment and
the record it backs land in the same transaction.

Mutating callers load the counter and the escrow row with ``for_update`` so
concurrent invocations on the same row run one after the other: the second
waits for the first to commit and then sees its writes.
"""

import json
import logging
from collections.abc import Iterable

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from quorum_escrow.core.errors import EscrowNotFound, StorageError
from quorum_escrow.models.escrow import ContractItem, Escrow

logger = logging.getLogger(__name__)

ESCROW_COUNTER_KEY = "escrow_counter"
CONTRACT_INFO_KEY = "contract_info"

# Largest id the BIGINT column can hold; the counter never gets past it.
MAX_STORED_ID = 2**63 - 1


class EscrowStore:
    def __init__(self, db: AsyncSession):
        self.db = db

    async def _get_row(self, model, key, *, for_update: bool = False):
        if for_update:
            # Re-read under the lock, overwriting any stale copy in the session
            return await self.db.get(model, key, with_for_update=True, populate_existing=True)
        return await self.db.get(model, key)

    # -- contract items -----------------------------------------------------

    async def _load_item(self, key: str, *, for_update: bool = False):
        item = await self._get_row(ContractItem, key, for_update=for_update)
        if item is None:
            return None
        return json.loads(item.value)

    async def _save_item(self, key: str, value) -> None:
        encoded = json.dumps(value, sort_keys=True)
        item = await self.db.get(ContractItem, key)
        if item is None:
            self.db.add(ContractItem(key=key, value=encoded))
        else:
            item.value = encoded
        await self.db.flush()

    async def init_counter(self) -> None:
        await self._save_item(ESCROW_COUNTER_KEY, 0)

    async def current_id(self, *, for_update: bool = False) -> int:
        """Last identifier handed out (0 before the first escrow)."""
        value = await self._load_item(ESCROW_COUNTER_KEY, for_update=for_update)
        if value is None:
            raise StorageError(f"{ESCROW_COUNTER_KEY} not found; contract not instantiated")
        return int(value)

    async def next_id(self) -> int:
        """Advance the counter and return the new identifier (first is 1)."""
        escrow_id = await self.current_id(for_update=True) + 1
        if escrow_id > MAX_STORED_ID:
            raise StorageError(f"{ESCROW_COUNTER_KEY} exhausted")
        await self._save_item(ESCROW_COUNTER_KEY, escrow_id)
        return escrow_id

    async def set_contract_info(self, contract: str, version: str) -> None:
        await self._save_item(CONTRACT_INFO_KEY, {"contract": contract, "version": version})

    async def get_contract_info(self) -> dict | None:
        return await self._load_item(CONTRACT_INFO_KEY)

    # -- escrow records -------------------------------------------------------

    async def may_get(self, escrow_id: int, *, for_update: bool = False) -> Escrow | None:
        if escrow_id > MAX_STORED_ID:
            return None
        return await self._get_row(Escrow, escrow_id, for_update=for_update)

    async def get(self, escrow_id: int, *, for_update: bool = False) -> Escrow:
        escrow = await self.may_get(escrow_id, for_update=for_update)
        if escrow is None:
            raise EscrowNotFound(escrow_id)
        return escrow

    async def put(self, escrow: Escrow) -> Escrow:
        """Store ``escrow`` under its id, overwriting any existing record."""
        if escrow.id is None:
            raise StorageError("escrow id must be assigned before storing")
        stored = await self.db.merge(escrow)
        await self.db.flush()
        return stored

    async def scan(self, start_after: int | None = None, limit: int | None = None) -> list[Escrow]:
        """Records in ascending id order, strictly after ``start_after``."""
        if start_after is not None and start_after >= MAX_STORED_ID:
            return []
        stmt = select(Escrow).order_by(Escrow.id)
        if start_after is not None:
            stmt = stmt.where(Escrow.id > start_after)
        if limit is not None:
            stmt = stmt.limit(limit)
        result = await self.db.execute(stmt)
        return list(result.scalars().all())

    async def get_many(self, escrow_ids: Iterable[int]) -> list[Escrow]:
        """Resolve ids in the given order; ids without a record are skipped."""
        ids = [escrow_id for escrow_id in escrow_ids if escrow_id <= MAX_STORED_ID]
        if not ids:
            return []
        result = await self.db.execute(select(Escrow).where(Escrow.id.in_(ids)))
        by_id = {escrow.id: escrow for escrow in result.scalars().all()}
        missing = [escrow_id for escrow_id in ids if escrow_id not in by_id]
        if missing:
            logger.warning("Indexed escrow ids without a record: %s", missing)
        return [by_id[escrow_id] for escrow_id in ids if escrow_id in by_id]
