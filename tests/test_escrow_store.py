"""Tests for the escrow record store and the address index."""

import pytest

from quorum_escrow.core.errors import EscrowNotFound, StorageError
from quorum_escrow.models.escrow import Escrow
from quorum_escrow.services.address_index import AddressIndex, IndexRole
from quorum_escrow.services.escrow_store import EscrowStore


def _escrow(escrow_id: int, **overrides) -> Escrow:
    fields = dict(
        id=escrow_id,
        creator="creator",
        beneficiary="bene",
        denom="ujuno",
        amount="1000",
        approver1="alice",
        approver2="bob",
        approver3=None,
        description="",
        approvals=[],
        is_completed=False,
        created_at=100,
        completed_at=None,
    )
    fields.update(overrides)
    return Escrow(**fields)


class TestCounter:
    @pytest.mark.asyncio
    async def test_missing_counter_is_storage_error(self, db):
        with pytest.raises(StorageError):
            await EscrowStore(db).next_id()

    @pytest.mark.asyncio
    async def test_ids_start_at_one_and_increase(self, db):
        store = EscrowStore(db)
        await store.init_counter()
        assert await store.current_id() == 0
        assert await store.next_id() == 1
        assert await store.next_id() == 2
        assert await store.current_id() == 2

    @pytest.mark.asyncio
    async def test_contract_info(self, db):
        store = EscrowStore(db)
        assert await store.get_contract_info() is None
        await store.set_contract_info("quorum-escrow", "0.1.0")
        await store.set_contract_info("quorum-escrow", "0.2.0")
        assert await store.get_contract_info() == {"contract": "quorum-escrow", "version": "0.2.0"}


class TestRecords:
    @pytest.mark.asyncio
    async def test_get_missing(self, db):
        with pytest.raises(EscrowNotFound) as exc_info:
            await EscrowStore(db).get(42)
        assert exc_info.value.escrow_id == 42
        assert exc_info.value.status_code == 404

    @pytest.mark.asyncio
    async def test_may_get_missing(self, db):
        assert await EscrowStore(db).may_get(42) is None

    @pytest.mark.asyncio
    async def test_put_requires_id(self, db):
        with pytest.raises(StorageError):
            await EscrowStore(db).put(_escrow(None))

    @pytest.mark.asyncio
    async def test_put_overwrites(self, db):
        store = EscrowStore(db)
        await store.put(_escrow(1))
        await store.put(_escrow(1, description="updated"))
        assert (await store.get(1)).description == "updated"

    @pytest.mark.asyncio
    async def test_scan_is_ordered_and_exclusive(self, db):
        store = EscrowStore(db)
        for escrow_id in (3, 1, 5, 2, 4):
            await store.put(_escrow(escrow_id))

        assert [e.id for e in await store.scan()] == [1, 2, 3, 4, 5]
        assert [e.id for e in await store.scan(start_after=2)] == [3, 4, 5]
        assert [e.id for e in await store.scan(start_after=2, limit=2)] == [3, 4]
        assert await store.scan(start_after=5) == []
        assert await store.scan(limit=0) == []

    @pytest.mark.asyncio
    async def test_get_many_keeps_order_and_skips_missing(self, db):
        store = EscrowStore(db)
        for escrow_id in (1, 2, 3):
            await store.put(_escrow(escrow_id))

        escrows = await store.get_many([3, 9, 1])
        assert [e.id for e in escrows] == [3, 1]
        assert await store.get_many([]) == []


class TestAddressIndex:
    @pytest.mark.asyncio
    async def test_add_is_idempotent(self, db):
        await EscrowStore(db).put(_escrow(1))
        index = AddressIndex(db)
        await index.add(IndexRole.APPROVER, "alice", 1)
        await index.add(IndexRole.APPROVER, "alice", 1)
        assert await index.get(IndexRole.APPROVER, "alice") == {1}

    @pytest.mark.asyncio
    async def test_remove_absent_is_noop(self, db):
        index = AddressIndex(db)
        await index.remove(IndexRole.CREATOR, "nobody", 7)
        assert await index.get(IndexRole.CREATOR, "nobody") == set()

    @pytest.mark.asyncio
    async def test_roles_are_separate(self, db):
        store = EscrowStore(db)
        index = AddressIndex(db)
        for escrow_id in (1, 2):
            await store.put(_escrow(escrow_id))
        await index.add(IndexRole.CREATOR, "alice", 1)
        await index.add(IndexRole.APPROVER, "alice", 2)

        assert await index.get(IndexRole.CREATOR, "alice") == {1}
        assert await index.get(IndexRole.APPROVER, "alice") == {2}
        assert await index.get(IndexRole.BENEFICIARY, "alice") == set()

    @pytest.mark.asyncio
    async def test_index_escrow_deduplicates_approvers(self, db):
        escrow = await EscrowStore(db).put(
            _escrow(1, approver1="alice", approver2="bob", approver3="alice")
        )
        index = AddressIndex(db)
        await index.index_escrow(escrow)

        assert await index.get(IndexRole.CREATOR, "creator") == {1}
        assert await index.get(IndexRole.BENEFICIARY, "bene") == {1}
        assert await index.get(IndexRole.APPROVER, "alice") == {1}
        assert await index.get(IndexRole.APPROVER, "bob") == {1}

    @pytest.mark.asyncio
    async def test_unindex_escrow(self, db):
        escrow = await EscrowStore(db).put(_escrow(1))
        index = AddressIndex(db)
        await index.index_escrow(escrow)
        await index.unindex_escrow(escrow)

        for role, address in (
            (IndexRole.CREATOR, "creator"),
            (IndexRole.BENEFICIARY, "bene"),
            (IndexRole.APPROVER, "alice"),
            (IndexRole.APPROVER, "bob"),
        ):
            assert await index.get(role, address) == set()
