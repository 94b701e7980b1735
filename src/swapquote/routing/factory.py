"""Factory for creating swap providers and the quote aggregator.

Providers are configured from ``Settings``. Swapuz is only added when an
API key is configured.
"""

import logging
from typing import Optional

from swapquote.config import Settings, get_settings
from swapquote.evm import AllowanceReader, RpcAllowanceReader
from swapquote.fetch import WaterfallFetcher
from swapquote.info_cache import RemoteInfoCache
from swapquote.routing.base import QuoteAggregator
from swapquote.routing.swapuz import SwapuzProvider
from swapquote.routing.thorchain_da import ThorchainDaProvider
from swapquote.schemas import ExchangeInfo, SwapInfo, SwapPluginsInfo, ThorchainTuning
from swapquote.solver import ConvergenceSolver

logger = logging.getLogger(__name__)


def create_fetcher(settings: Optional[Settings] = None) -> WaterfallFetcher:
    """Create a waterfall fetcher with configured timeouts."""
    settings = settings or get_settings()
    return WaterfallFetcher(
        request_timeout=settings.http_request_timeout,
        default_timeout=settings.fetch_timeout,
    )


def create_solver(plugin_id: str, settings: Optional[Settings] = None) -> ConvergenceSolver:
    settings = settings or get_settings()
    return ConvergenceSolver(
        max_attempts=settings.convergence_max_attempts,
        pad=settings.convergence_pad,
        plugin_id=plugin_id,
    )


def default_exchange_info(settings: Optional[Settings] = None) -> ExchangeInfo:
    """Tuning served until the info server answers."""
    settings = settings or get_settings()
    return ExchangeInfo(
        swap=SwapInfo(
            plugins=SwapPluginsInfo(
                thorchain=ThorchainTuning(
                    da_volatility_spread=settings.da_volatility_spread,
                    thorswap_servers=settings.thorswap_servers,
                    thornode_servers=settings.thornode_servers,
                )
            )
        )
    )


def create_allowance_reader(
    fetcher: WaterfallFetcher,
    settings: Optional[Settings] = None,
) -> Optional[AllowanceReader]:
    """Create an RPC allowance reader, or None when checks are disabled."""
    settings = settings or get_settings()
    if not settings.check_allowance:
        return None

    rpc_urls = {}
    for plugin_id in ("ethereum", "avalanche", "binancesmartchain"):
        url = settings.get_rpc_url(plugin_id)
        if url:
            rpc_urls[plugin_id] = [url]
    return RpcAllowanceReader(fetcher, rpc_urls)


def create_thorchain_da_provider(
    fetcher: Optional[WaterfallFetcher] = None,
    settings: Optional[Settings] = None,
) -> ThorchainDaProvider:
    """Create THORChain DEX aggregator provider.

    THORChain needs no API key, so this always succeeds.
    """
    settings = settings or get_settings()
    fetcher = fetcher or create_fetcher(settings)

    info_cache = RemoteInfoCache(
        fetcher,
        servers=settings.info_servers,
        app_id=settings.app_id,
        defaults=default_exchange_info(settings),
        ttl_ms=settings.exchange_info_ttl_ms,
        timeout=settings.exchange_info_timeout,
    )
    return ThorchainDaProvider(
        fetcher,
        info_cache,
        thorname=settings.thorname,
        affiliate_fee_basis=settings.affiliate_fee_basis,
        client_id=settings.ninerealms_client_id,
        allowance_reader=create_allowance_reader(fetcher, settings),
        solver=create_solver(ThorchainDaProvider.plugin_id, settings),
        expiration_ms=settings.quote_expiration_ms,
    )


def create_swapuz_provider(
    fetcher: Optional[WaterfallFetcher] = None,
    api_key: Optional[str] = None,
    settings: Optional[Settings] = None,
) -> SwapuzProvider:
    """Create Swapuz provider.

    Args:
        fetcher: Shared fetcher (created if omitted)
        api_key: Swapuz API key (uses SWAPUZ_API_KEY if not provided)
        settings: Settings override

    Raises:
        ValueError: No API key configured
    """
    settings = settings or get_settings()
    fetcher = fetcher or create_fetcher(settings)
    return SwapuzProvider(
        fetcher,
        api_key=api_key or settings.swapuz_api_key,
        servers=settings.swapuz_servers,
        solver=create_solver(SwapuzProvider.plugin_id, settings),
        expiration_ms=settings.quote_expiration_ms,
    )


def create_aggregator(
    include_thorchain_da: bool = True,
    include_swapuz: bool = True,
    fetcher: Optional[WaterfallFetcher] = None,
    settings: Optional[Settings] = None,
) -> QuoteAggregator:
    """Create a quote aggregator with configured providers.

    Args:
        include_thorchain_da: Include THORChain DEX aggregator provider
        include_swapuz: Include Swapuz provider (skipped without an API key)
        fetcher: Fetcher shared by all providers
        settings: Settings override

    Returns:
        Configured QuoteAggregator; its ``aclose`` closes the shared fetcher
    """
    settings = settings or get_settings()
    fetcher = fetcher or create_fetcher(settings)
    aggregator = QuoteAggregator()

    if include_thorchain_da:
        provider = create_thorchain_da_provider(fetcher, settings)
        aggregator.add_provider(provider)
        logger.info(f"Added {provider.display_name} provider")

    if include_swapuz:
        if settings.swapuz_api_key:
            provider = create_swapuz_provider(fetcher, settings=settings)
            aggregator.add_provider(provider)
            logger.info(f"Added {provider.display_name} provider")
        else:
            logger.warning("SWAPUZ_API_KEY not set, skipping Swapuz provider")

    return aggregator
