"""Thin httpx wrapper for driving the escrow API as a host."""

import logging
from typing import Any

import httpx

from quorum_escrow.api.schemas import (
    Coin,
    ContractInfoResponse,
    ContractResponse,
    EscrowListResponse,
    EscrowResponse,
    GetAllEscrows,
    GetEscrow,
    GetEscrowsByAddress,
)
from quorum_escrow.core.errors import error_from_wire

logger = logging.getLogger(__name__)


def _wire(msg: Any) -> Any:
    """Messages go out externally tagged; raw dicts are passed through."""
    return msg.wire() if hasattr(msg, "wire") else msg


def _funds(funds: list[Coin] | None) -> list[dict]:
    return [c.model_dump(mode="json") for c in funds or []]


class EscrowClient:
    """Async client for the ``/api`` surface.

    Contract errors answered by the server are re-raised as the matching
    ``ContractError`` subclass; other HTTP failures raise
    ``httpx.HTTPStatusError``.
    """

    def __init__(
        self,
        base_url: str,
        host_key: str | None = None,
        *,
        transport: httpx.AsyncBaseTransport | None = None,
        timeout: float = 10,
    ):
        self.base_url = f"{base_url.rstrip('/')}/api"
        self.headers = {"X-Host-Key": host_key} if host_key else {}
        self.transport = transport
        self.timeout = timeout

    async def _request(self, method: str, path: str, **kwargs: Any) -> Any:
        async with httpx.AsyncClient(
            base_url=self.base_url,
            headers=self.headers,
            transport=self.transport,
            timeout=self.timeout,
        ) as client:
            resp = await client.request(method, path, **kwargs)

        if resp.status_code < 400:
            return resp.json()

        logger.warning("%s %s failed: %s %s", method, path, resp.status_code, resp.text)
        try:
            body = resp.json()
        except ValueError:
            body = None
        if isinstance(body, dict) and "error" in body:
            raise error_from_wire(body["error"], body.get("detail", ""), body)
        resp.raise_for_status()

    # -- host entry points -------------------------------------------------

    async def instantiate(self, sender: str, block_time: int | None = None) -> ContractResponse:
        data = await self._request(
            "POST",
            "/contract/instantiate",
            json={"sender": sender, "block_time": block_time, "msg": {}},
        )
        return ContractResponse.model_validate(data)

    async def execute(
        self,
        sender: str,
        msg: Any,
        funds: list[Coin] | None = None,
        block_time: int | None = None,
    ) -> ContractResponse:
        data = await self._request(
            "POST",
            "/contract/execute",
            json={
                "sender": sender,
                "funds": _funds(funds),
                "block_time": block_time,
                "msg": _wire(msg),
            },
        )
        return ContractResponse.model_validate(data)

    async def migrate(self, block_time: int | None = None) -> ContractResponse:
        data = await self._request(
            "POST", "/contract/migrate", json={"block_time": block_time, "msg": {}}
        )
        return ContractResponse.model_validate(data)

    async def query(self, msg: Any) -> EscrowResponse | EscrowListResponse:
        data = await self._request("POST", "/contract/query", json={"msg": _wire(msg)})
        if "escrows" in data:
            return EscrowListResponse.model_validate(data)
        return EscrowResponse.model_validate(data)

    async def contract_info(self) -> ContractInfoResponse:
        return ContractInfoResponse.model_validate(await self._request("GET", "/contract/info"))

    # -- read shortcuts ----------------------------------------------------

    async def get_escrow(self, escrow_id: int) -> EscrowResponse:
        return await self.query(GetEscrow(escrow_id=escrow_id))

    async def list_escrows(
        self, start_after: int | None = None, limit: int | None = None
    ) -> EscrowListResponse:
        return await self.query(GetAllEscrows(start_after=start_after, limit=limit))

    async def escrows_by_address(
        self, address: str, start_after: int | None = None, limit: int | None = None
    ) -> EscrowListResponse:
        return await self.query(
            GetEscrowsByAddress(address=address, start_after=start_after, limit=limit)
        )
