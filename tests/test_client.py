"""Tests for the host client, run against the app in-process."""

import pytest
from httpx import ASGITransport, AsyncClient

from quorum_escrow.api.schemas import (
    ApproveRelease,
    Coin,
    CreateEscrow,
    EscrowListResponse,
)
from quorum_escrow.client import EscrowClient
from quorum_escrow.core.errors import (
    AlreadyApproved,
    ContractError,
    EscrowNotFound,
    InsufficientFunds,
    InvalidAddress,
    InvalidBeneficiary,
)
from quorum_escrow.main import app

FUNDS = [Coin(denom="ujuno", amount=500)]


@pytest.fixture
async def escrow_client(client: AsyncClient) -> EscrowClient:
    """Client sharing the overridden database with the ``client`` fixture."""
    host = EscrowClient("http://testserver", transport=ASGITransport(app=app))
    await host.instantiate("admin", block_time=10)
    return host


class TestEscrowClient:
    @pytest.mark.asyncio
    async def test_full_flow(self, escrow_client):
        created = await escrow_client.execute(
            "creator",
            CreateEscrow(beneficiary="bene", approver1="alice", approver2="bob", approver3="carol"),
            funds=FUNDS,
            block_time=20,
        )
        escrow_id = int(created.attribute("escrow_id"))

        await escrow_client.execute("alice", ApproveRelease(escrow_id=escrow_id), block_time=30)
        released = await escrow_client.execute(
            "carol", ApproveRelease(escrow_id=escrow_id), block_time=40
        )
        assert released.attribute("released") == "true"
        assert released.messages[0].amount == FUNDS

        escrow = await escrow_client.get_escrow(escrow_id)
        assert escrow.is_completed is True
        assert escrow.approvals == ["alice", "carol"]
        assert escrow.completed_at == 40

    @pytest.mark.asyncio
    async def test_raw_tagged_dict(self, escrow_client):
        resp = await escrow_client.execute(
            "creator",
            {"create_escrow": {"beneficiary": "bene", "approver1": "alice", "approver2": "bob"}},
            funds=FUNDS,
        )
        assert resp.attribute("escrow_id") == "1"

    @pytest.mark.asyncio
    async def test_listing(self, escrow_client):
        for _ in range(3):
            await escrow_client.execute(
                "creator",
                CreateEscrow(beneficiary="bene", approver1="alice", approver2="bob"),
                funds=FUNDS,
            )

        page = await escrow_client.list_escrows(start_after=1)
        assert isinstance(page, EscrowListResponse)
        assert [e.id for e in page.escrows] == [2, 3]

        page = await escrow_client.escrows_by_address("alice", limit=1)
        assert [e.id for e in page.escrows] == [1]

    @pytest.mark.asyncio
    async def test_errors_are_rebuilt(self, escrow_client):
        with pytest.raises(EscrowNotFound, match="Escrow not found: 9"):
            await escrow_client.get_escrow(9)

        with pytest.raises(InsufficientFunds) as exc_info:
            await escrow_client.execute(
                "creator",
                CreateEscrow(beneficiary="bene", approver1="alice", approver2="bob"),
                funds=[],
            )
        assert exc_info.value.status_code == 400

    @pytest.mark.asyncio
    async def test_already_approved(self, escrow_client):
        await escrow_client.execute(
            "creator",
            CreateEscrow(beneficiary="bene", approver1="alice", approver2="bob"),
            funds=FUNDS,
        )
        await escrow_client.execute("alice", ApproveRelease(escrow_id=1))
        with pytest.raises(AlreadyApproved) as exc_info:
            await escrow_client.execute("alice", ApproveRelease(escrow_id=1))
        assert isinstance(exc_info.value, ContractError)
        assert exc_info.value.code == "already_approved"

    @pytest.mark.asyncio
    async def test_contract_info_and_migrate(self, escrow_client):
        info = await escrow_client.contract_info()
        assert info.contract == "quorum-escrow"

        resp = await escrow_client.migrate()
        assert resp.attribute("method") == "migrate"

    @pytest.mark.asyncio
    async def test_error_context_survives_the_wire(self, escrow_client):
        with pytest.raises(EscrowNotFound) as exc_info:
            await escrow_client.get_escrow(9)
        assert exc_info.value.escrow_id == 9

        with pytest.raises(InvalidAddress) as exc_info:
            await escrow_client.escrows_by_address("Alice")
        assert exc_info.value.address == "Alice"
        assert exc_info.value.reason == "not normalized"

        with pytest.raises(InvalidBeneficiary) as exc_info:
            await escrow_client.execute(
                "creator",
                CreateEscrow(beneficiary="BENE", approver1="alice", approver2="bob"),
                funds=FUNDS,
            )
        assert exc_info.value.address == "BENE"
