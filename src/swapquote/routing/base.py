"""Abstract swap provider interface and multi-provider aggregation."""

import logging
from abc import ABC, abstractmethod
from datetime import datetime
from decimal import Decimal
from typing import Any, Optional

from swapquote.errors import SwapError
from swapquote.models import QuoteDirection, SwapOrder, SwapRequest, expiration_from_now
from swapquote.schemas import ExchangeInfo
from swapquote.solver import ConvergenceSolver
from swapquote.transcription import MainnetTranscriber, TranscribedCodes
from swapquote.validation import InvalidCurrencyCodes, validate_request

logger = logging.getLogger(__name__)

DEFAULT_EXPIRATION_MS = 60_000


class SwapProvider(ABC):
    """Abstract base class for swap providers.

    Runs the shared pipeline: validate, transcribe, refresh tuning, quote
    (directly or through the convergence solver), then build the order.
    Subclasses supply the wire exchange and the order assembly.
    """

    plugin_id: str = ""
    display_name: str = ""
    invalid_codes: InvalidCurrencyCodes = InvalidCurrencyCodes()

    def __init__(
        self,
        transcriber: MainnetTranscriber,
        solver: Optional[ConvergenceSolver] = None,
        expiration_ms: int = DEFAULT_EXPIRATION_MS,
    ):
        self.transcriber = transcriber
        self.solver = solver or ConvergenceSolver(plugin_id=self.plugin_id)
        self.expiration_ms = expiration_ms

    async def get_tuning(self) -> Optional[ExchangeInfo]:
        """Remote tuning for this provider (None when it has none)."""
        return None

    async def fetch_swap_quote(self, request: SwapRequest) -> SwapOrder:
        """Quote a swap and build the ready-to-sign order.

        Raises:
            SwapError: Any classified failure along the pipeline
        """
        logger.info(
            f"{self.display_name}: quoting {request.native_amount} "
            f"{request.from_currency_code} -> {request.to_currency_code} "
            f"(quote for {request.quote_for.value})"
        )
        validate_request(request, self.invalid_codes, self.plugin_id)
        codes = self.transcriber.codes(request)
        tuning = await self.get_tuning()

        async def quote_for_input(req: SwapRequest) -> Any:
            return await self.quote(req, codes, tuning)

        if request.quote_for == QuoteDirection.TO:
            request, raw_quote = await self.solver.solve(
                request, quote_for_input, self.realized_output
            )
        else:
            raw_quote = await quote_for_input(request)

        order = await self.build_order(request, codes, raw_quote)
        logger.info(
            f"{self.display_name}: {order.from_native_amount} {request.from_currency_code} -> "
            f"{order.payout.native_amount} {order.payout.currency_code} "
            f"(expires {order.expires_at.isoformat()})"
        )
        return order

    @abstractmethod
    async def quote(
        self,
        request: SwapRequest,
        codes: TranscribedCodes,
        tuning: Optional[ExchangeInfo],
    ) -> Any:
        """Run the provider wire exchange for an input-amount request.

        Returns:
            A provider quote exposing ``to_native_amount``
        """
        pass

    def realized_output(self, quote: Any) -> str:
        """Output native amount of a provider quote."""
        return quote.to_native_amount

    @abstractmethod
    async def build_order(
        self,
        request: SwapRequest,
        codes: TranscribedCodes,
        quote: Any,
    ) -> SwapOrder:
        """Turn a provider quote into spend instructions and an order."""
        pass

    def expiration(self) -> datetime:
        """Expiry of an order built now."""
        return expiration_from_now(self.expiration_ms)

    async def aclose(self) -> None:
        """Release HTTP resources held by this provider."""
        pass


class QuoteAggregator:
    """Aggregates orders from multiple providers to find the best one."""

    def __init__(self, providers: Optional[list[SwapProvider]] = None):
        self.providers: list[SwapProvider] = providers or []

    def add_provider(self, provider: SwapProvider) -> None:
        """Add a swap provider."""
        self.providers.append(provider)

    async def aclose(self) -> None:
        """Close every provider. Providers may share one fetcher."""
        for provider in self.providers:
            await provider.aclose()

    async def get_all_orders(
        self, request: SwapRequest
    ) -> tuple[list[SwapOrder], list[SwapError]]:
        """Ask every provider in turn; collect orders and typed failures."""
        orders: list[SwapOrder] = []
        errors: list[SwapError] = []

        for provider in self.providers:
            try:
                logger.debug(f"Requesting quote from {provider.display_name}...")
                orders.append(await provider.fetch_swap_quote(request))
            except SwapError as e:
                logger.warning(f"{provider.display_name} quote failed: {type(e).__name__}: {e}")
                errors.append(e)

        if not orders and errors:
            logger.error(
                f"No quotes available for {request.from_currency_code}->{request.to_currency_code}. "
                f"Errors: {'; '.join(str(e) for e in errors)}"
            )
        return orders, errors

    async def get_best_order(self, request: SwapRequest) -> SwapOrder:
        """Best order across providers.

        Highest payout for input-amount requests, lowest input for
        output-amount requests.

        Raises:
            SwapError: The first provider's failure when none succeeded
        """
        if not self.providers:
            raise ValueError("QuoteAggregator has no providers")

        orders, errors = await self.get_all_orders(request)
        if not orders:
            raise errors[0]

        if request.quote_for == QuoteDirection.TO:
            best = min(orders, key=lambda o: Decimal(o.from_native_amount))
        else:
            best = max(orders, key=lambda o: Decimal(o.payout.native_amount))
        logger.info(
            f"Got {len(orders)} quote(s) for {request.from_currency_code}->{request.to_currency_code}. "
            f"Best: {best.plugin_id} ({best.payout.native_amount} {best.payout.currency_code})"
        )
        return best
