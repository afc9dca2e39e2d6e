from collections.abc import AsyncGenerator

import pytest
from httpx import ASGITransport, AsyncClient
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine
from sqlalchemy.pool import StaticPool

import quorum_escrow.models  # noqa: F401  registers every table
from quorum_escrow.api.schemas import (
    ApproveRelease,
    CancelEscrow,
    Coin,
    ContractResponse,
    CreateEscrow,
    Env,
    InstantiateMsg,
    MessageInfo,
)
from quorum_escrow.core.deps import get_db
from quorum_escrow.db.base import Base
from quorum_escrow.main import app
from quorum_escrow.services import contract

CREATOR = "creator"
BENEFICIARY = "bene"
ALICE = "alice"
BOB = "bob"
CAROL = "carol"
MALLORY = "mallory"


def ujuno(amount: int = 1000) -> list[Coin]:
    return [Coin(denom="ujuno", amount=amount)]


class ContractDriver:
    """Runs entry points against one session, the way the host would."""

    def __init__(self, db: AsyncSession):
        self.db = db
        self.block_time = 1_700_000_000

    def tick(self, seconds: int = 6) -> Env:
        self.block_time += seconds
        return Env(block_time=self.block_time)

    async def create(
        self,
        approver1: str = ALICE,
        approver2: str = BOB,
        approver3: str | None = None,
        *,
        sender: str = CREATOR,
        beneficiary: str = BENEFICIARY,
        funds: list[Coin] | None = None,
        description: str = "",
    ) -> ContractResponse:
        msg = CreateEscrow(
            beneficiary=beneficiary,
            approver1=approver1,
            approver2=approver2,
            approver3=approver3,
            description=description,
        )
        info = MessageInfo(sender=sender, funds=ujuno() if funds is None else funds)
        return await contract.execute(self.db, self.tick(), info, msg)

    async def create_id(self, *args, **kwargs) -> int:
        resp = await self.create(*args, **kwargs)
        return int(resp.attribute("escrow_id"))

    async def approve(self, escrow_id: int, sender: str) -> ContractResponse:
        return await contract.execute(
            self.db,
            self.tick(),
            MessageInfo(sender=sender),
            ApproveRelease(escrow_id=escrow_id),
        )

    async def cancel(self, escrow_id: int, sender: str = CREATOR) -> ContractResponse:
        return await contract.execute(
            self.db,
            self.tick(),
            MessageInfo(sender=sender),
            CancelEscrow(escrow_id=escrow_id),
        )


@pytest.fixture
async def engine():
    engine = create_async_engine(
        "sqlite+aiosqlite://",
        poolclass=StaticPool,
        connect_args={"check_same_thread": False},
    )
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    yield engine
    await engine.dispose()


@pytest.fixture
def session_factory(engine) -> async_sessionmaker[AsyncSession]:
    return async_sessionmaker(engine, class_=AsyncSession, expire_on_commit=False)


@pytest.fixture
async def db(session_factory) -> AsyncGenerator[AsyncSession, None]:
    async with session_factory() as session:
        yield session


@pytest.fixture
async def driver(db: AsyncSession) -> ContractDriver:
    """A freshly instantiated contract."""
    await contract.instantiate(db, Env(block_time=0), MessageInfo(sender="admin"), InstantiateMsg())
    return ContractDriver(db)


@pytest.fixture
async def client(session_factory) -> AsyncGenerator[AsyncClient, None]:
    """Provide an async HTTP client wired to the FastAPI app (no real server)."""

    async def _get_test_db() -> AsyncGenerator[AsyncSession, None]:
        async with session_factory() as session:
            yield session

    app.dependency_overrides[get_db] = _get_test_db
    transport = ASGITransport(app=app)
    async with AsyncClient(transport=transport, base_url="http://testserver") as ac:
        yield ac
    app.dependency_overrides.clear()
