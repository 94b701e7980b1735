"""EVM call-data construction for router and token contracts."""

from swapquote.evm.allowance import AllowanceReader, RpcAllowanceReader
from swapquote.evm.calldata import (
    aggregator_calldata,
    approval_data,
    encode_function_call,
    memo_to_hex,
    thorchain_deposit_data,
)
from swapquote.evm.routers import (
    ROUTER_CONTRACTS,
    TOKEN_PROXY_MAP,
    RouterTemplate,
    RouterType,
    lookup_router,
    router_template,
)

__all__ = [
    "AllowanceReader",
    "RpcAllowanceReader",
    "aggregator_calldata",
    "approval_data",
    "encode_function_call",
    "memo_to_hex",
    "thorchain_deposit_data",
    "ROUTER_CONTRACTS",
    "TOKEN_PROXY_MAP",
    "RouterTemplate",
    "RouterType",
    "lookup_router",
    "router_template",
]
