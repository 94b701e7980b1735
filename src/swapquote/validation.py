"""Request checks that run before any network call."""

import logging
from dataclasses import dataclass, field
from typing import Union

from swapquote.errors import DisallowedPair, SameAssetSwap
from swapquote.models import SwapRequest
from swapquote.wallet import SwapWallet

logger = logging.getLogger(__name__)

ALL_CODES = "allCodes"    # every asset on the chain
ALL_TOKENS = "allTokens"  # every asset except the chain's native coin

CodeRule = Union[list[str], str]


@dataclass(frozen=True)
class InvalidCurrencyCodes:
    """Per-provider denylist keyed by direction, then chain plugin id."""

    from_codes: dict[str, CodeRule] = field(default_factory=dict)
    to_codes: dict[str, CodeRule] = field(default_factory=dict)


def _is_listed(rules: dict[str, CodeRule], wallet: SwapWallet, currency_code: str) -> bool:
    rule = rules.get(wallet.plugin_id)
    if rule is None:
        return False
    if rule == ALL_CODES:
        return True
    if rule == ALL_TOKENS:
        return currency_code != wallet.currency_code
    return currency_code in rule


def validate_request(
    request: SwapRequest,
    invalid_codes: InvalidCurrencyCodes,
    plugin_id: str = "",
) -> None:
    """Reject requests that no provider round trip could satisfy.

    Raises:
        SameAssetSwap: Source and destination are the same chain and asset
        DisallowedPair: Either side is on the provider's denylist
    """
    from_code = request.from_currency_code
    to_code = request.to_currency_code

    if request.from_chain == request.to_chain and from_code == to_code:
        raise SameAssetSwap(
            f"Cannot swap {from_code} on {request.from_chain} to itself",
            plugin_id=plugin_id, from_code=from_code, to_code=to_code,
        )

    if _is_listed(invalid_codes.from_codes, request.from_wallet, from_code):
        logger.debug(f"{plugin_id} does not accept {from_code} on {request.from_chain} as source")
        raise DisallowedPair(
            f"{from_code} on {request.from_chain} is not supported as a source",
            plugin_id=plugin_id, from_code=from_code, to_code=to_code,
        )

    if _is_listed(invalid_codes.to_codes, request.to_wallet, to_code):
        logger.debug(f"{plugin_id} does not accept {to_code} on {request.to_chain} as destination")
        raise DisallowedPair(
            f"{to_code} on {request.to_chain} is not supported as a destination",
            plugin_id=plugin_id, from_code=from_code, to_code=to_code,
        )
