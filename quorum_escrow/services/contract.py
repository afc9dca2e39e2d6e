"""Contract entry points: instantiate, execute, query, migrate.

Each mutating entry point is one atomic unit of work: every write made while
handling the message is committed together at the end, or discarded if any
step raises. Nothing is retried here; resubmission is the caller's decision.
"""

import logging
from collections.abc import AsyncIterator
from contextlib import asynccontextmanager

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from quorum_escrow.api.schemas import (
    ContractInfoResponse,
    ContractResponse,
    Env,
    EscrowListResponse,
    EscrowResponse,
    ExecuteMsg,
    InstantiateMsg,
    MessageInfo,
    MigrateMsg,
    QueryMsg,
)
from quorum_escrow.core.config import settings
from quorum_escrow.core.errors import ContractError, StorageError
from quorum_escrow.services.escrow_engine import EscrowEngine
from quorum_escrow.services.escrow_query import EscrowQuery
from quorum_escrow.services.escrow_store import EscrowStore

logger = logging.getLogger(__name__)


@asynccontextmanager
async def unit_of_work(db: AsyncSession, operation: str) -> AsyncIterator[AsyncSession]:
    """Commit on success, roll back on any error.

    Persistence failures are surfaced as ``StorageError`` so callers only ever
    see contract errors.
    """
    try:
        yield db
        await db.commit()
    except ContractError as exc:
        await db.rollback()
        logger.info("%s rejected: %s (%s)", operation, exc.code, exc)
        raise
    except SQLAlchemyError as exc:
        await db.rollback()
        logger.exception("%s failed in storage", operation)
        raise StorageError(str(exc)) from exc
    except Exception:
        await db.rollback()
        raise


async def instantiate(
    db: AsyncSession, env: Env, info: MessageInfo, msg: InstantiateMsg
) -> ContractResponse:
    async with unit_of_work(db, "instantiate"):
        store = EscrowStore(db)
        await store.set_contract_info(settings.contract_name, settings.contract_version)
        await store.init_counter()

    logger.info(
        "Contract %s %s instantiated by %s",
        settings.contract_name,
        settings.contract_version,
        info.sender,
    )
    return (
        ContractResponse()
        .add_attribute("method", "instantiate")
        .add_attribute("contract_name", settings.contract_name)
        .add_attribute("contract_version", settings.contract_version)
    )


async def execute(
    db: AsyncSession, env: Env, info: MessageInfo, msg: ExecuteMsg
) -> ContractResponse:
    async with unit_of_work(db, msg.kind):
        return await EscrowEngine(db).execute(env, info, msg)


async def query(
    db: AsyncSession, env: Env, msg: QueryMsg
) -> EscrowResponse | EscrowListResponse:
    try:
        return await EscrowQuery(db).query(msg)
    except SQLAlchemyError as exc:
        logger.exception("%s failed in storage", msg.kind)
        raise StorageError(str(exc)) from exc


async def migrate(db: AsyncSession, env: Env, msg: MigrateMsg) -> ContractResponse:
    """Re-stamp the stored version marker; no data is migrated."""
    async with unit_of_work(db, "migrate"):
        await EscrowStore(db).set_contract_info(settings.contract_name, settings.contract_version)

    logger.info("Contract migrated to %s %s", settings.contract_name, settings.contract_version)
    return (
        ContractResponse()
        .add_attribute("method", "migrate")
        .add_attribute("contract_name", settings.contract_name)
        .add_attribute("contract_version", settings.contract_version)
    )


async def contract_info(db: AsyncSession) -> ContractInfoResponse | None:
    info = await EscrowStore(db).get_contract_info()
    if info is None:
        return None
    return ContractInfoResponse(**info)
