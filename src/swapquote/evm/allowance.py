"""ERC-20 allowance lookups deciding whether an approval is needed."""

import logging
from abc import ABC, abstractmethod

from swapquote.errors import MalformedProviderResponse, ProviderHttpError
from swapquote.evm.calldata import encode_function_call
from swapquote.evm.routers import ERC20_ABI
from swapquote.fetch import WaterfallFetcher

logger = logging.getLogger(__name__)


class AllowanceReader(ABC):
    """Reads how much of a token a spender may already move for an owner."""

    @abstractmethod
    async def allowance(
        self, plugin_id: str, token_address: str, owner: str, spender: str
    ) -> int:
        """Current allowance in token base units."""
        pass


class RpcAllowanceReader(AllowanceReader):
    """Allowance via JSON-RPC ``eth_call`` against per-chain RPC servers."""

    def __init__(self, fetcher: WaterfallFetcher, rpc_urls: dict[str, list[str]]):
        """Initialize reader.

        Args:
            fetcher: Waterfall fetcher for RPC calls
            rpc_urls: Wallet chain plugin id -> RPC server URLs
        """
        self.fetcher = fetcher
        self.rpc_urls = rpc_urls

    async def allowance(
        self, plugin_id: str, token_address: str, owner: str, spender: str
    ) -> int:
        servers = self.rpc_urls.get(plugin_id)
        if not servers:
            logger.warning(f"No RPC server for {plugin_id}; assuming zero allowance")
            return 0

        data = encode_function_call(ERC20_ABI, token_address, "allowance", [owner, spender])
        payload = {
            "jsonrpc": "2.0",
            "id": 1,
            "method": "eth_call",
            "params": [{"to": token_address, "data": data}, "latest"],
        }
        response = await self.fetcher.fetch(servers, "", method="POST", json=payload)
        if not response.is_success:
            raise ProviderHttpError(
                f"{plugin_id} RPC returned {response.status_code} for allowance",
                status_code=response.status_code,
                body=response.text,
            )

        try:
            result = response.json().get("result")
            return int(result, 16)
        except (ValueError, TypeError, AttributeError) as e:
            raise MalformedProviderResponse(f"Unexpected eth_call result from {plugin_id} RPC: {e}")
