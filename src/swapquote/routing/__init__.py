"""Swap providers and quote aggregation.

Providers:
- THORChain DEX Aggregator: cross-chain swaps, EVM tokens via THORSwap contracts
- Swapuz: centralized exchange with fixed and floating rate orders
"""

from swapquote.routing.base import QuoteAggregator, SwapProvider
from swapquote.routing.factory import (
    create_aggregator,
    create_swapuz_provider,
    create_thorchain_da_provider,
)
from swapquote.routing.swapuz import SwapuzProvider, SwapuzQuote
from swapquote.routing.thorchain_da import ThorchainDaProvider, ThorchainDaQuote

__all__ = [
    # Base classes
    "SwapProvider",
    "QuoteAggregator",
    # Providers
    "ThorchainDaProvider",
    "ThorchainDaQuote",
    "SwapuzProvider",
    "SwapuzQuote",
    # Factory functions
    "create_aggregator",
    "create_thorchain_da_provider",
    "create_swapuz_provider",
]
