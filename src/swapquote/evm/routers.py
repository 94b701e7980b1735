"""Router contract interfaces and their call-data templates.

Router types form a closed set. Each type has exactly one ordered list of
call-data fields and one ABI; the mapping is checked for completeness at
import time, so adding a type without a template fails immediately.
"""

from dataclasses import dataclass
from enum import Enum
from typing import Optional

from swapquote.errors import MissingAbiForContract, UnknownRouterType


class RouterType(str, Enum):
    """THORSwap aggregator contract families."""
    TC_ROUTER_GENERIC = "TC_ROUTER_GENERIC"
    TC_ROUTER_UNISWAP = "TC_ROUTER_UNISWAP"
    TC_ROUTER_PANGOLIN = "TC_ROUTER_PANGOLIN"


@dataclass(frozen=True)
class RouterTemplate:
    """Call-data field order and contract interface of a router type."""

    params: tuple[str, ...]
    abi: tuple[dict, ...]


def _fn(name: str, inputs: list[tuple[str, str]], mutability: str = "nonpayable",
        outputs: Optional[list[tuple[str, str]]] = None) -> dict:
    return {
        "type": "function",
        "name": name,
        "stateMutability": mutability,
        "inputs": [{"name": n, "type": t} for n, t in inputs],
        "outputs": [{"name": n, "type": t} for n, t in (outputs or [])],
    }


ERC20_ABI = (
    _fn("approve", [("spender", "address"), ("amount", "uint256")],
        outputs=[("", "bool")]),
    _fn("allowance", [("owner", "address"), ("spender", "address")],
        mutability="view", outputs=[("", "uint256")]),
)

# THORChain vault router: deposit(vault, asset, amount, memo)
THORCHAIN_ROUTER_ABI = (
    _fn("deposit", [
        ("vault", "address"),
        ("asset", "address"),
        ("amount", "uint256"),
        ("memo", "string"),
    ], mutability="payable"),
)

_GENERIC_PARAMS = (
    "tcRouter", "tcVault", "tcMemo", "token", "amount", "router", "data", "deadline",
)
_AMM_PARAMS = (
    "tcRouter", "tcVault", "tcMemo", "token", "amount", "amountOutMin", "deadline",
)

_TYPES = {
    "tcRouter": "address",
    "tcVault": "address",
    "tcMemo": "string",
    "token": "address",
    "amount": "uint256",
    "router": "address",
    "data": "bytes",
    "deadline": "uint256",
    "amountOutMin": "uint256",
}


def _swap_in_abi(params: tuple[str, ...]) -> tuple[dict, ...]:
    return (_fn("swapIn", [(p, _TYPES[p]) for p in params]),)


ROUTER_TEMPLATES: dict[RouterType, RouterTemplate] = {
    RouterType.TC_ROUTER_GENERIC: RouterTemplate(_GENERIC_PARAMS, _swap_in_abi(_GENERIC_PARAMS)),
    RouterType.TC_ROUTER_UNISWAP: RouterTemplate(_AMM_PARAMS, _swap_in_abi(_AMM_PARAMS)),
    RouterType.TC_ROUTER_PANGOLIN: RouterTemplate(_AMM_PARAMS, _swap_in_abi(_AMM_PARAMS)),
}

_untemplated = set(RouterType) - set(ROUTER_TEMPLATES)
if _untemplated:
    raise RuntimeError(f"Router types without a template: {sorted(t.value for t in _untemplated)}")

# Aggregator contracts by wallet chain, lowercase address -> router type tag
ROUTER_CONTRACTS: dict[str, dict[str, str]] = {
    "ethereum": {
        "0xd31f7e39afecec4855fecc51b693f9a0cec49fd2": "TC_ROUTER_GENERIC",
        "0x7c38b8b2eff28511ecc14a621e263857fb5771d3": "TC_ROUTER_UNISWAP",
        "0x0f2cd5df82959e00be7afeef8245900fc4414199": "TC_ROUTER_UNISWAP",
    },
    "avalanche": {
        "0x7c38b8b2eff28511ecc14a621e263857fb5771d3": "TC_ROUTER_GENERIC",
        "0x942c6da485fd6cef255853ef83a149d43a73f18a": "TC_ROUTER_PANGOLIN",
    },
}

# Spender that must be approved before an aggregator can pull tokens
TOKEN_PROXY_MAP: dict[str, str] = {
    "ethereum": "0xf892fef9da200d9e84c9b0647ecff0f34633abe8",
    "avalanche": "0x69ba883af416ff5501d54d5e27a1f497fbd97156",
}


def router_template(router_type: RouterType) -> RouterTemplate:
    """Template for a router type (total over ``RouterType``)."""
    return ROUTER_TEMPLATES[router_type]


def lookup_router(
    plugin_id: str,
    contract_address: str,
    registry: Optional[dict[str, dict[str, str]]] = None,
) -> tuple[RouterType, RouterTemplate]:
    """Resolve a (chain, contract) pair to its router type and template.

    Raises:
        MissingAbiForContract: No entry for the pair
        UnknownRouterType: Entry tag is not a known router type
    """
    registry = ROUTER_CONTRACTS if registry is None else registry
    tag = registry.get(plugin_id, {}).get(contract_address.lower())
    if tag is None:
        raise MissingAbiForContract(
            f"Could not find ABI for contract {plugin_id}-{contract_address}"
        )
    try:
        router_type = RouterType(tag)
    except ValueError:
        raise UnknownRouterType(
            f"Unsupported router type {tag!r} for contract {plugin_id}-{contract_address}"
        )
    return router_type, router_template(router_type)
