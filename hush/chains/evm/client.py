"""EVM JSON-RPC client with endpoint fallback."""
import asyncio
import logging
import ssl
from typing import Any

import aiohttp
import certifi

from ...config import ChainConfig
from ...errors import ChainReadError, ConfigurationError

logger = logging.getLogger(__name__)


class EvmClient:
    """Read-only EVM RPC client with automatic endpoint fallback."""

    def __init__(self, config: ChainConfig) -> None:
        self.endpoints = list(config.rpc_endpoints)
        self.timeout = config.rpc_timeout
        self.current_rpc_index = 0
        self._request_id = 0

    async def rpc_call(self, method: str, params: list[Any]) -> Any:
        """Make RPC call with fallback to alternative endpoints.

        Transport failures move on to the next endpoint. A JSON-RPC ``error``
        object is a definitive answer from the node and is raised at once.
        """
        if not self.endpoints:
            raise ConfigurationError("Missing config key: chain.rpc_endpoints (set HUSH_RPC_URL)")

        self._request_id += 1
        payload = {
            "jsonrpc": "2.0",
            "id": self._request_id,
            "method": method,
            "params": params,
        }

        ssl_context = ssl.create_default_context(cafile=certifi.where())

        last_error: Exception | None = None
        for attempt in range(len(self.endpoints)):
            rpc_index = (self.current_rpc_index + attempt) % len(self.endpoints)
            rpc_url = self.endpoints[rpc_index]

            try:
                connector = aiohttp.TCPConnector(ssl=ssl_context)
                async with aiohttp.ClientSession(connector=connector) as session:
                    async with session.post(
                        rpc_url,
                        json=payload,
                        timeout=aiohttp.ClientTimeout(total=self.timeout),
                    ) as response:
                        result = await response.json(content_type=None)
            except (aiohttp.ClientError, asyncio.TimeoutError, OSError, ValueError) as e:
                last_error = e
                logger.warning("RPC endpoint %s failed: %s", rpc_url, e)
                if attempt < len(self.endpoints) - 1:
                    logger.info("Trying next endpoint...")
                continue

            if not isinstance(result, dict):
                last_error = ValueError(f"unexpected RPC response: {result!r}")
                logger.warning("RPC endpoint %s returned garbage", rpc_url)
                continue

            if "error" in result:
                raise ChainReadError(f"RPC error from {method}: {result['error']}")

            if rpc_index != self.current_rpc_index:
                logger.info("Switched to RPC endpoint: %s", rpc_url)
                self.current_rpc_index = rpc_index

            return result.get("result")

        raise ChainReadError(f"All RPC endpoints failed. Last error: {last_error}")

    async def get_chain_id(self) -> int:
        result = await self.rpc_call("eth_chainId", [])
        return int(result, 16)

    async def eth_call(self, to: str, data: str) -> str:
        """Execute a read-only contract call at the latest block."""
        result = await self.rpc_call("eth_call", [{"to": to, "data": data}, "latest"])
        if not isinstance(result, str):
            raise ChainReadError(f"eth_call to {to} returned {result!r}")
        return result
