"""Swapuz centralized exchange integration.

Swapuz offers fixed-rate and floating-rate orders. A fixed-rate order is
tried first; floating rate is the fallback.

API docs: https://swapuz.com/api
"""

import asyncio
import json
import logging
from dataclasses import dataclass
from decimal import Decimal
from typing import Any, Optional

import httpx

from swapquote.amounts import to_integer
from swapquote.errors import (
    BelowMinimumAmount,
    MalformedProviderResponse,
    NoViableRoute,
    ProviderHttpError,
)
from swapquote.fetch import WaterfallFetcher
from swapquote.models import (
    SpendInstruction,
    SpendTarget,
    SwapOrder,
    SwapPayout,
    SwapRequest,
    ensure_in_future,
)
from swapquote.routing.base import SwapProvider
from swapquote.schemas import ExchangeInfo, SwapuzOrder, SwapuzRate, parse_swapuz_result
from swapquote.solver import ConvergenceSolver
from swapquote.strategies import Strategy, first_success
from swapquote.transcription import MainnetTranscriber, TranscribedCodes
from swapquote.validation import InvalidCurrencyCodes
from swapquote.wallet import SwapWallet

logger = logging.getLogger(__name__)

PLUGIN_ID = "swapuz"
ORDER_URI = "https://swapuz.com/order/"
SWAPUZ_DEFAULT_SERVERS = ["https://api.swapuz.com/api/home/v1"]

# Wallet chain plugin id -> Swapuz network name
MAINNET_CODE_TRANSCRIPTION = {
    "avalanche": "AVAX",
    "binancechain": "BNB",
    "binancesmartchain": "BSC",
    "bitcoin": "BTC",
    "bitcoincash": "BCH",
    "bitcoinsv": "BSV",
    "dash": "DASH",
    "digibyte": "DGB",
    "dogecoin": "DOGE",
    "ethereum": "ETH",
    "ethereumclassic": "ETC",
    "litecoin": "LTC",
    "monero": "XMR",
    "polygon": "MATIC",
    "qtum": "QTUM",
    "ravencoin": "RVN",
    "ripple": "XRP",
    "solana": "SOL",
    "stellar": "XLM",
    "tezos": "XTZ",
    "tron": "TRX",
    "zcash": "ZEC",
}

# Currencies whose legacy address format Swapuz does not accept
NO_LEGACY_ADDRESS = {"DGB"}

FIX = "fix"
FLOAT = "float"


@dataclass(frozen=True)
class SwapuzQuote:
    """A created Swapuz order and the addresses it was created for."""

    mode: str
    order: SwapuzOrder
    from_address: str
    to_address: str
    to_native_amount: str

    @property
    def is_estimate(self) -> bool:
        return self.mode == FLOAT


async def _get_address(wallet: SwapWallet, currency_code: str) -> str:
    info = await wallet.get_receive_address(currency_code)
    if info.legacy_address is not None and currency_code not in NO_LEGACY_ADDRESS:
        return info.legacy_address
    return info.public_address


def _decimal_json(response: httpx.Response, what: str) -> Any:
    # Amounts arrive as JSON numbers; keep them exact
    try:
        return json.loads(response.text, parse_float=Decimal)
    except ValueError:
        raise MalformedProviderResponse(f"Swapuz {what} response is not JSON", plugin_id=PLUGIN_ID)


class SwapuzProvider(SwapProvider):
    """Swapuz exchange provider."""

    plugin_id = PLUGIN_ID
    display_name = "Swapuz"
    invalid_codes = InvalidCurrencyCodes(to_codes={"zcash": ["ZEC"]})

    def __init__(
        self,
        fetcher: WaterfallFetcher,
        api_key: str,
        servers: Optional[list[str]] = None,
        solver: Optional[ConvergenceSolver] = None,
        expiration_ms: int = 60_000,
    ):
        """Initialize Swapuz provider.

        Args:
            fetcher: Waterfall fetcher for API calls
            api_key: Swapuz API key (required)
            servers: API base URLs (defaults to the public API)
            solver: Convergence solver for exact-output requests
            expiration_ms: Fallback order validity window
        """
        if not api_key:
            raise ValueError("No Swapuz apiKey provided.")
        super().__init__(
            MainnetTranscriber(MAINNET_CODE_TRANSCRIPTION, PLUGIN_ID),
            solver=solver,
            expiration_ms=expiration_ms,
        )
        self.fetcher = fetcher
        self.servers = servers or SWAPUZ_DEFAULT_SERVERS
        self.headers = {
            "Content-Type": "application/json",
            "api-key": api_key,
        }

    async def aclose(self) -> None:
        await self.fetcher.aclose()

    async def quote(
        self,
        request: SwapRequest,
        codes: TranscribedCodes,
        tuning: Optional[ExchangeInfo],
    ) -> SwapuzQuote:
        from_address, to_address = await asyncio.gather(
            _get_address(request.from_wallet, codes.from_currency_code),
            _get_address(request.to_wallet, codes.to_currency_code),
        )
        amount = await request.from_wallet.native_to_denomination(
            request.native_amount, codes.from_currency_code
        )

        def strategy(mode: str) -> Strategy[SwapuzQuote]:
            async def run() -> SwapuzQuote:
                return await self._quote_mode(
                    mode, request, codes, amount, from_address, to_address
                )
            return Strategy(name=mode, run=run)

        return await first_success([strategy(FIX), strategy(FLOAT)])

    async def _quote_mode(
        self,
        mode: str,
        request: SwapRequest,
        codes: TranscribedCodes,
        amount: str,
        from_address: str,
        to_address: str,
    ) -> SwapuzQuote:
        """Check the rate for one pricing mode, then create the order."""
        from_code, to_code = codes.from_currency_code, codes.to_currency_code
        errors = {"plugin_id": PLUGIN_ID, "from_code": from_code, "to_code": to_code}

        params = {
            "mode": mode,
            "amount": amount,
            "from": from_code,
            "to": to_code,
            "fromNetwork": codes.from_mainnet_code,
            "toNetwork": codes.to_mainnet_code,
        }
        response = await self.fetcher.fetch(self.servers, "rate/", params=params, headers=self.headers)
        self._check_status(response, "rate", errors)

        rate = parse_swapuz_result(SwapuzRate, _decimal_json(response, "rate"), "Swapuz rate", PLUGIN_ID).unwrap()
        if rate is None:
            raise NoViableRoute(f"Swapuz has no {mode} rate for {from_code}->{to_code}", **errors)

        if rate.min_amount > Decimal(amount):
            minimum_native = await request.from_wallet.denomination_to_native(
                format(rate.min_amount, "f"), from_code
            )
            raise BelowMinimumAmount(
                f"Swapuz {mode} minimum is {rate.min_amount} {from_code}",
                minimum_native=minimum_native, **errors,
            )

        body = {
            "from": from_code,
            "fromNetwork": codes.from_mainnet_code,
            "to": to_code,
            "toNetwork": codes.to_mainnet_code,
            "address": to_address,
            # Wire format takes a JSON number, not a decimal string
            "amount": float(amount),
            "mode": mode,
            "addressUserFrom": from_address,
            "addressRefound": from_address,
        }
        response = await self.fetcher.fetch(
            self.servers, "order", method="POST", json=body, headers=self.headers, idempotent=False
        )
        self._check_status(response, "order", errors)

        order = parse_swapuz_result(SwapuzOrder, _decimal_json(response, "order"), "Swapuz order", PLUGIN_ID).unwrap()
        if order is None:
            raise NoViableRoute(f"Swapuz did not create a {mode} order for {from_code}->{to_code}", **errors)

        logger.debug(f"Swapuz {mode} order {order.uid}: {order.amount} {from_code} -> {order.amount_result} {to_code}")
        to_native_amount = await request.to_wallet.denomination_to_native(
            format(order.amount_result, "f"), to_code
        )
        return SwapuzQuote(
            mode=mode,
            order=order,
            from_address=from_address,
            to_address=to_address,
            to_native_amount=to_integer(to_native_amount),
        )

    @staticmethod
    def _check_status(response: httpx.Response, what: str, errors: dict) -> None:
        if not response.is_success:
            raise ProviderHttpError(
                f"Swapuz {what} call returned error code {response.status_code}",
                status_code=response.status_code, body=response.text, **errors,
            )

    async def build_order(
        self,
        request: SwapRequest,
        codes: TranscribedCodes,
        quote: SwapuzQuote,
    ) -> SwapOrder:
        from_code = codes.from_currency_code
        order = quote.order

        spend = SpendInstruction(
            currency_code=from_code,
            targets=(
                SpendTarget(
                    public_address=order.address_from,
                    native_amount=request.native_amount,
                    unique_identifier=order.memo_from,
                ),
            ),
            network_fee_option="high" if from_code == "BTC" else "standard",
        )
        payout = SwapPayout(
            address=quote.to_address,
            currency_code=codes.to_currency_code,
            native_amount=quote.to_native_amount,
            wallet_id=request.to_wallet.id,
            is_estimate=quote.is_estimate,
            order_id=order.uid,
            order_uri=ORDER_URI + order.uid,
            refund_address=quote.from_address,
        )
        return SwapOrder(
            plugin_id=PLUGIN_ID,
            request=request,
            spend=spend,
            payout=payout,
            from_native_amount=request.native_amount,
            expires_at=ensure_in_future(order.finish_payment, self.expiration_ms),
        )
