"""Solana JSON-RPC client for fetching program accounts and token data."""

import asyncio
import base64
from collections.abc import Sequence
from typing import Any

import httpx
import structlog

from config import get_settings
from vestake.services.errors import AccountNotFoundError, ChainConnectionError, RPCError
from vestake.services.schemas.chain import AccountData

logger = structlog.get_logger(__name__)


def _decode_data(account: dict[str, Any]) -> bytes:
    data, encoding = account["data"]
    if encoding != "base64":
        raise RPCError(f"unexpected account encoding {encoding}")
    return base64.b64decode(data)


class ChainClient:
    """Async client over one RPC endpoint. Use as an async context manager or call aclose()."""

    def __init__(
        self,
        rpc_url: str | None = None,
        timeout: float | None = None,
        retry_attempts: int | None = None,
        retry_delay: float | None = None,
        batch_size: int | None = None,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        settings = get_settings().chain
        self.rpc_url: str = rpc_url or settings.rpc_url
        self.timeout: float = timeout or settings.rpc_timeout
        self.retry_attempts: int = retry_attempts or settings.retry_attempts
        self.retry_delay: float = settings.retry_delay if retry_delay is None else retry_delay
        self.batch_size: int = batch_size or settings.batch_size
        self._client: httpx.AsyncClient = httpx.AsyncClient(timeout=self.timeout, transport=transport)
        self._request_id: int = 0

    async def __aenter__(self) -> "ChainClient":
        return self

    async def __aexit__(self, *exc_info: object) -> None:
        await self.aclose()

    async def aclose(self) -> None:
        await self._client.aclose()

    # ------------------------------------------------------------------
    # Transport
    # ------------------------------------------------------------------

    def _next_id(self) -> int:
        self._request_id += 1
        return self._request_id

    async def _call_once(self, method: str, params: list[Any]) -> Any:
        payload: dict[str, Any] = {
            "jsonrpc": "2.0",
            "id": self._next_id(),
            "method": method,
            "params": params,
        }
        response: httpx.Response = await self._client.post(self.rpc_url, json=payload)
        response.raise_for_status()
        body: dict[str, Any] = response.json()
        if "error" in body:
            error: dict[str, Any] = body["error"]
            raise RPCError(f"{method} failed: {error.get('code')} {error.get('message')}")
        return body.get("result")

    async def _retry_call(self, method: str, params: list[Any]) -> Any:
        last_error: Exception | None = None
        for attempt in range(self.retry_attempts):
            try:
                return await self._call_once(method, params)
            except (httpx.HTTPError, RPCError, ValueError) as e:
                last_error = e
                logger.warning(
                    "RPC call failed, retrying",
                    method=method,
                    attempt=attempt + 1,
                    error=str(e)[:100],
                )
                if attempt < self.retry_attempts - 1:
                    await asyncio.sleep(self.retry_delay * (attempt + 1))
        if isinstance(last_error, httpx.ConnectError):
            raise ChainConnectionError(f"Failed to connect to {self.rpc_url}: {last_error}")
        raise RPCError(f"{method} failed after {self.retry_attempts} attempts: {last_error}")

    # ------------------------------------------------------------------
    # Accounts
    # ------------------------------------------------------------------

    async def get_account(self, key: str) -> bytes:
        result: dict[str, Any] = await self._retry_call(
            "getAccountInfo", [key, {"encoding": "base64"}]
        )
        value: dict[str, Any] | None = result.get("value") if result else None
        if value is None:
            raise AccountNotFoundError(f"Account {key} not found")
        return _decode_data(value)

    async def get_accounts_by_filter(
        self,
        program_id: str,
        size: int | None = None,
        prefix: bytes | None = None,
    ) -> list[AccountData]:
        """Program accounts matching an optional data size and a leading byte prefix."""
        filters: list[dict[str, Any]] = []
        if size is not None:
            filters.append({"dataSize": size})
        if prefix:
            filters.append(
                {
                    "memcmp": {
                        "offset": 0,
                        "bytes": base64.b64encode(prefix).decode(),
                        "encoding": "base64",
                    }
                }
            )
        result: list[dict[str, Any]] = await self._retry_call(
            "getProgramAccounts",
            [program_id, {"encoding": "base64", "filters": filters}],
        )
        accounts: list[AccountData] = [
            AccountData(key=entry["pubkey"], data=_decode_data(entry["account"]))
            for entry in result or []
        ]
        logger.info("Fetched program accounts", program=program_id, count=len(accounts))
        return accounts

    async def get_multiple_accounts(self, keys: Sequence[str]) -> list[bytes | None]:
        """Account data in key order, None for missing accounts. Batched by batch_size."""
        found: list[bytes | None] = []
        for offset in range(0, len(keys), self.batch_size):
            batch: list[str] = list(keys[offset : offset + self.batch_size])
            result: dict[str, Any] = await self._retry_call(
                "getMultipleAccounts", [batch, {"encoding": "base64"}]
            )
            values: list[dict[str, Any] | None] = result.get("value") or []
            if len(values) != len(batch):
                raise RPCError(f"getMultipleAccounts returned {len(values)} of {len(batch)} accounts")
            found.extend(_decode_data(v) if v is not None else None for v in values)
        return found

    # ------------------------------------------------------------------
    # Tokens
    # ------------------------------------------------------------------

    async def get_token_supply(self, mint: str) -> int:
        result: dict[str, Any] = await self._retry_call("getTokenSupply", [mint])
        return int(result["value"]["amount"])

    async def get_token_largest_account(self, mint: str) -> str:
        """Token account holding the (single) NFT of *mint*."""
        result: dict[str, Any] = await self._retry_call("getTokenLargestAccounts", [mint])
        holders: list[dict[str, Any]] = result.get("value") or []
        if not holders:
            raise AccountNotFoundError(f"No token account holds mint {mint}")
        return holders[0]["address"]
