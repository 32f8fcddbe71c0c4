"""
JSON-RPC clients for node endpoints.

RpcClient is the asyncio client (aiohttp) used by liveness checks and funding.
SyncRpcClient (requests) serves one-off queries from synchronous code
such as balance lookups.
"""

import asyncio
import itertools
import logging
from typing import Any, Optional

import aiohttp
import requests

from besubox.commands.constants import DEFAULT_READ_TIMEOUT
from besubox.commands.errors import ClientError, TimeoutError
from besubox.commands.retry import NETWORK_RETRY_CONFIG, RetryConfig, retry_async_call

logger = logging.getLogger(__name__)

_ids = itertools.count(1)


def hex_to_int(value: Any) -> int:
    """Decode a quantity returned by a node ("0x1a" or an int)."""
    if isinstance(value, int):
        return value
    if not isinstance(value, str):
        raise ClientError(f"Expected hex quantity, got {value!r}")
    return int(value, 16)


def _payload(method: str, params: Optional[list]) -> dict[str, Any]:
    return {"jsonrpc": "2.0", "id": next(_ids), "method": method, "params": params or []}


def _unwrap(url: str, method: str, body: Any) -> Any:
    if not isinstance(body, dict):
        raise ClientError(f"{method}: malformed response", url=url)
    if body.get("error"):
        error = body["error"]
        message = error.get("message", str(error)) if isinstance(error, dict) else str(error)
        raise ClientError(
            f"{method}: {message}",
            url=url,
            code="RPC_ERROR",
            details={"rpc_error": error},
        )
    return body.get("result")


class RpcClient:
    """Async JSON-RPC client bound to one node URL."""

    def __init__(
        self,
        url: str,
        config: Optional[RetryConfig] = None,
        session: Optional[aiohttp.ClientSession] = None,
    ):
        self.url = url
        self.config = config or NETWORK_RETRY_CONFIG
        self._session = session
        self._owns_session = session is None

    async def __aenter__(self) -> "RpcClient":
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb) -> None:
        await self.close()

    async def close(self) -> None:
        if self._owns_session and self._session is not None and not self._session.closed:
            await self._session.close()
        self._session = None

    def _get_session(self) -> aiohttp.ClientSession:
        if self._session is None or self._session.closed:
            self._session = aiohttp.ClientSession(timeout=self.config.client_timeout())
            self._owns_session = True
        return self._session

    async def _post(self, payload: dict[str, Any]) -> Any:
        session = self._get_session()
        async with session.post(self.url, json=payload) as response:
            if response.status != 200:
                raise ClientError(
                    f"{payload['method']}: HTTP {response.status}",
                    url=self.url,
                    status_code=response.status,
                )
            try:
                return await response.json(content_type=None)
            except ValueError as e:
                raise ClientError(
                    f"{payload['method']}: invalid JSON response", url=self.url
                ) from e

    async def call(self, method: str, params: Optional[list] = None) -> Any:
        """Issue one JSON-RPC call and return its ``result``.

        Raises:
            TimeoutError: If the node does not answer in time.
            ClientError: On transport failures or JSON-RPC error objects.
        """
        payload = _payload(method, params)
        try:
            body = await retry_async_call(self._post, payload, config=self.config)
        except asyncio.TimeoutError as e:
            raise TimeoutError(
                f"{method} timed out", url=self.url, timeout_seconds=self.config.read_timeout
            ) from e
        except aiohttp.ClientError as e:
            raise ClientError(f"{method} failed: {e}", url=self.url) from e
        return _unwrap(self.url, method, body)

    async def block_number(self) -> int:
        return hex_to_int(await self.call("eth_blockNumber"))

    async def peer_count(self) -> int:
        return hex_to_int(await self.call("net_peerCount"))

    async def admin_peers(self) -> list[dict[str, Any]]:
        return await self.call("admin_peers") or []

    async def chain_id(self) -> int:
        return hex_to_int(await self.call("eth_chainId"))

    async def get_balance(self, address: str, block: str = "latest") -> int:
        return hex_to_int(await self.call("eth_getBalance", [address, block]))

    async def gas_price(self) -> int:
        return hex_to_int(await self.call("eth_gasPrice"))

    async def transaction_count(self, address: str, block: str = "pending") -> int:
        return hex_to_int(await self.call("eth_getTransactionCount", [address, block]))

    async def send_raw_transaction(self, raw_transaction: str) -> str:
        return await self.call("eth_sendRawTransaction", [raw_transaction])

    async def get_transaction_receipt(self, tx_hash: str) -> Optional[dict[str, Any]]:
        return await self.call("eth_getTransactionReceipt", [tx_hash])


class SyncRpcClient:
    """Blocking JSON-RPC client for one-off queries."""

    def __init__(self, url: str, timeout: float = DEFAULT_READ_TIMEOUT):
        self.url = url
        self.timeout = timeout
        self.session = requests.Session()

    def call(self, method: str, params: Optional[list] = None) -> Any:
        try:
            response = self.session.post(
                self.url, json=_payload(method, params), timeout=self.timeout
            )
        except requests.Timeout as e:
            raise TimeoutError(
                f"{method} timed out", url=self.url, timeout_seconds=self.timeout
            ) from e
        except requests.RequestException as e:
            raise ClientError(f"{method} failed: {e}", url=self.url) from e

        if response.status_code != 200:
            raise ClientError(
                f"{method}: HTTP {response.status_code}",
                url=self.url,
                status_code=response.status_code,
            )
        try:
            body = response.json()
        except ValueError as e:
            raise ClientError(f"{method}: invalid JSON response", url=self.url) from e
        return _unwrap(self.url, method, body)

    def get_balance(self, address: str, block: str = "latest") -> int:
        return hex_to_int(self.call("eth_getBalance", [address, block]))

    def block_number(self) -> int:
        return hex_to_int(self.call("eth_blockNumber"))

    def chain_id(self) -> int:
        return hex_to_int(self.call("eth_chainId"))

    def close(self) -> None:
        self.session.close()
