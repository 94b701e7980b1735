"""Encode contract calls for router deposits, aggregator swaps and approvals.

Nothing here signs or sends anything: the output is the hex ``data`` field
of a transaction for an external signer.
"""

import logging
from typing import Any, Optional, Sequence

from eth_utils import to_bytes, to_checksum_address
from web3 import Web3

from swapquote.errors import MalformedProviderResponse, MissingAbiForContract
from swapquote.evm.routers import ERC20_ABI, THORCHAIN_ROUTER_ABI, lookup_router

logger = logging.getLogger(__name__)

# Encoding only; never connected to a node
_w3 = Web3()


def _to_int(value: Any) -> int:
    if isinstance(value, str) and value.lower().startswith("0x"):
        return int(value, 16)
    return int(value)


def coerce_argument(abi_type: str, value: Any) -> Any:
    """Convert a JSON value to what the ABI encoder expects for ``abi_type``."""
    if abi_type.endswith("[]"):
        return [coerce_argument(abi_type[:-2], v) for v in value]
    if abi_type == "address":
        return to_checksum_address(value)
    if abi_type.startswith(("uint", "int")):
        return _to_int(value)
    if abi_type.startswith("bytes"):
        return to_bytes(hexstr=value) if isinstance(value, str) else bytes(value)
    if abi_type == "bool":
        return bool(value)
    if abi_type == "string":
        return str(value)
    return value


def _find_function(abi: Sequence[dict], method: str, arg_count: int) -> Optional[dict]:
    for entry in abi:
        if (
            entry.get("type") == "function"
            and entry.get("name") == method
            and len(entry.get("inputs", [])) == arg_count
        ):
            return entry
    return None


def encode_function_call(
    abi: Sequence[dict],
    contract_address: str,
    method: str,
    args: Sequence[Any],
) -> str:
    """ABI-encode ``method(*args)`` for a contract.

    Raises:
        MissingAbiForContract: The interface has no matching method
    """
    fn_abi = _find_function(abi, method, len(args))
    if fn_abi is None:
        raise MissingAbiForContract(
            f"Contract {contract_address} has no method {method} taking {len(args)} argument(s)"
        )
    coerced = [coerce_argument(i["type"], v) for i, v in zip(fn_abi["inputs"], args)]
    contract = _w3.eth.contract(address=to_checksum_address(contract_address), abi=list(abi))
    return contract.encode_abi(method, args=coerced)


def memo_to_hex(memo: str) -> str:
    """Memo as 0x-prefixed UTF-8 hex, the data field of a native EVM deposit."""
    return "0x" + memo.encode("utf-8").hex()


def thorchain_deposit_data(
    router_address: str,
    vault_address: str,
    asset_address: str,
    amount: str,
    memo: str,
) -> str:
    """Call data for ``deposit(vault, asset, amount, memo)`` on the THORChain router."""
    return encode_function_call(
        THORCHAIN_ROUTER_ABI,
        router_address,
        "deposit",
        [vault_address, asset_address, amount, memo],
    )


def aggregator_calldata(
    plugin_id: str,
    contract_address: str,
    contract_method: str,
    calldata: dict,
    registry: Optional[dict[str, dict[str, str]]] = None,
) -> str:
    """Call data for a THORSwap aggregator route.

    Picks the router's template fields out of the route's raw call data, in
    template order, and encodes ``contract_method`` with them.

    Raises:
        MissingAbiForContract: Contract not registered for the chain
        UnknownRouterType: Registered with an unknown router type
        MalformedProviderResponse: Call data lacks a template field
    """
    router_type, template = lookup_router(plugin_id, contract_address, registry)

    missing = [key for key in template.params if key not in calldata]
    if missing:
        raise MalformedProviderResponse(
            f"Route call data for {router_type.value} is missing {', '.join(missing)}"
        )
    params = [calldata[key] for key in template.params]

    logger.debug(f"Encoding {contract_method} on {router_type.value} router {contract_address}")
    return encode_function_call(template.abi, contract_address, contract_method, params)


def approval_data(token_address: str, spender: str, amount: str) -> str:
    """Call data for ERC-20 ``approve(spender, amount)``."""
    return encode_function_call(ERC20_ABI, token_address, "approve", [spender, amount])
