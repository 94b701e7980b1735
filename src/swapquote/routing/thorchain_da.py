"""THORChain DEX aggregator integration.

Quotes come from the THORSwap aggregator, deposits go to THORChain vaults.
Routes through two or more providers may start with an on-chain DEX hop
(e.g. UNISWAP -> THORCHAIN), in which case the swap calls a THORSwap
aggregator contract instead of sending to the vault directly.

API docs: https://dev.thorchain.org/
"""

import asyncio
import logging
from dataclasses import dataclass
from typing import Any, Optional

import httpx

from swapquote.amounts import to_integer
from swapquote.errors import (
    MalformedProviderResponse,
    MissingRouterAddress,
    NoViableRoute,
    ProviderHttpError,
    UnsupportedTokenChain,
)
from swapquote.evm import (
    TOKEN_PROXY_MAP,
    AllowanceReader,
    aggregator_calldata,
    approval_data,
    memo_to_hex,
    thorchain_deposit_data,
)
from swapquote.fetch import WaterfallFetcher
from swapquote.info_cache import RemoteInfoCache
from swapquote.models import (
    SpendInstruction,
    SpendTarget,
    SwapOrder,
    SwapPayout,
    SwapRequest,
)
from swapquote.routing.base import SwapProvider
from swapquote.schemas import (
    ExchangeInfo,
    InboundAddress,
    ThorSwapCalldata,
    ThorSwapQuoteResponse,
    ThorSwapRoute,
    parse_payload,
)
from swapquote.solver import ConvergenceSolver
from swapquote.transcription import (
    MainnetTranscriber,
    TranscribedCodes,
    is_token,
    provider_asset,
    token_identifier,
)
from swapquote.wallet import SwapWallet

logger = logging.getLogger(__name__)

PLUGIN_ID = "thorchainda"

# Wallet chain plugin id -> THORChain chain name
MAINNET_CODE_TRANSCRIPTION = {
    "avalanche": "AVAX",
    "binancechain": "BNB",
    "binancesmartchain": "BSC",
    "bitcoin": "BTC",
    "bitcoincash": "BCH",
    "cosmoshub": "GAIA",
    "dogecoin": "DOGE",
    "ethereum": "ETH",
    "litecoin": "LTC",
    "thorchainrune": "THOR",
}

EVM_CURRENCY_CODES = {"ETH", "AVAX", "BSC"}

# Native EVM deposits carry a memo in their data field, which generic fee
# estimation does not account for
EVM_SEND_GAS = "80000"

THORSWAP_DEFAULT_SERVERS = ["https://aggregator-prod-aulilvmdlq-uc.a.run.app"]
THORNODE_DEFAULT_SERVERS = ["https://thornode.ninerealms.com"]


@dataclass(frozen=True)
class ThorchainDaQuote:
    """Validated aggregator quote plus the context needed to spend it."""

    route: ThorSwapRoute
    calldata: dict
    memo: str
    inbound: InboundAddress
    from_address: str
    to_address: str
    to_native_amount: str
    source_token_address: Optional[str] = None

    @property
    def tc_direct(self) -> bool:
        """Route starts with THORChain itself rather than an EVM DEX hop."""
        return self.route.providers[0] == "THORCHAIN"


async def _get_address(wallet: SwapWallet, currency_code: str) -> str:
    info = await wallet.get_receive_address(currency_code)
    return info.segwit_address or info.public_address


def _json(response: httpx.Response, what: str) -> Any:
    try:
        return response.json()
    except ValueError:
        raise MalformedProviderResponse(f"{what} response is not JSON", plugin_id=PLUGIN_ID)


class ThorchainDaProvider(SwapProvider):
    """THORChain DEX aggregator provider.

    Swaps between THORChain-supported chains, with EVM token sources routed
    through THORSwap aggregator contracts.
    """

    plugin_id = PLUGIN_ID
    display_name = "Thorchain DEX Aggregator"

    def __init__(
        self,
        fetcher: WaterfallFetcher,
        info_cache: RemoteInfoCache,
        thorname: str = "",
        affiliate_fee_basis: str = "50",
        client_id: str = "",
        allowance_reader: Optional[AllowanceReader] = None,
        router_registry: Optional[dict[str, dict[str, str]]] = None,
        solver: Optional[ConvergenceSolver] = None,
        expiration_ms: int = 60_000,
    ):
        """Initialize THORChain DEX aggregator provider.

        Args:
            fetcher: Waterfall fetcher for THORNode and THORSwap calls
            info_cache: Remote tuning (spread and server lists)
            thorname: THORName receiving affiliate fees
            affiliate_fee_basis: Affiliate fee in basis points
            client_id: Nine Realms x-client-id
            allowance_reader: Skips approvals already granted (None = always approve)
            router_registry: Aggregator contracts by chain (defaults to built-in)
            solver: Convergence solver for exact-output requests
            expiration_ms: Order validity window
        """
        super().__init__(
            MainnetTranscriber(MAINNET_CODE_TRANSCRIPTION, PLUGIN_ID),
            solver=solver,
            expiration_ms=expiration_ms,
        )
        self.fetcher = fetcher
        self.info_cache = info_cache
        self.thorname = thorname
        self.affiliate_fee_basis = affiliate_fee_basis
        self.allowance_reader = allowance_reader
        self.router_registry = router_registry
        self.headers = {
            "Content-Type": "application/json",
            "x-client-id": client_id,
        }

    async def aclose(self) -> None:
        await self.fetcher.aclose()

    async def get_tuning(self) -> ExchangeInfo:
        return await self.info_cache.get_tuning()

    def _check_source(self, request: SwapRequest, codes: TranscribedCodes) -> bool:
        """Whether the source is an EVM chain; rejects non-EVM tokens."""
        from_is_token = is_token(
            request.from_wallet, codes.from_mainnet_code, codes.from_currency_code
        )
        if codes.from_mainnet_code in EVM_CURRENCY_CODES:
            return True
        if from_is_token:
            # Cannot yet do tokens on non-EVM chains
            raise UnsupportedTokenChain(
                f"Tokens on {codes.from_mainnet_code} are not supported as a source",
                plugin_id=PLUGIN_ID,
                from_code=codes.from_currency_code,
                to_code=codes.to_currency_code,
            )
        return False

    async def quote(
        self,
        request: SwapRequest,
        codes: TranscribedCodes,
        tuning: Optional[ExchangeInfo],
    ) -> ThorchainDaQuote:
        from_wallet, to_wallet = request.from_wallet, request.to_wallet
        from_code, to_code = codes.from_currency_code, codes.to_currency_code
        from_mainnet, to_mainnet = codes.from_mainnet_code, codes.to_mainnet_code
        errors = {"plugin_id": PLUGIN_ID, "from_code": from_code, "to_code": to_code}

        self._check_source(request, codes)

        tuning = tuning or self.info_cache.defaults
        thorchain = tuning.swap.plugins.thorchain
        thorswap_servers = thorchain.thorswap_servers or THORSWAP_DEFAULT_SERVERS
        thornode_servers = thorchain.thornode_servers or THORNODE_DEFAULT_SERVERS
        slippage = (thorchain.da_volatility_spread * 100).normalize()

        from_address, to_address = await asyncio.gather(
            _get_address(from_wallet, from_code),
            _get_address(to_wallet, to_code),
        )
        sell_amount = await from_wallet.native_to_denomination(request.native_amount, from_code)

        from_suffix = (
            token_identifier(from_wallet, from_code, PLUGIN_ID)
            if is_token(from_wallet, from_mainnet, from_code) else ""
        )
        to_suffix = (
            token_identifier(to_wallet, to_code, PLUGIN_ID)
            if is_token(to_wallet, to_mainnet, to_code) else ""
        )

        params = {
            "sellAsset": provider_asset(from_mainnet, from_code, from_suffix),
            "buyAsset": provider_asset(to_mainnet, to_code, to_suffix),
            "sellAmount": sell_amount,
            "slippage": format(slippage, "f"),
            "recipientAddress": to_address,
            "senderAddress": from_address,
            "affiliateAddress": self.thorname,
            "affiliateBasisPoints": self.affiliate_fee_basis,
        }
        logger.debug(f"THORSwap quote params: {params}")

        ia_task = asyncio.create_task(
            self.fetcher.fetch(thornode_servers, "thorchain/inbound_addresses", headers=self.headers)
        )
        quote_task = asyncio.create_task(
            self.fetcher.fetch(thorswap_servers, "tokens/quote", params=params, headers=self.headers)
        )
        try:
            ia_response, quote_response = await asyncio.gather(ia_task, quote_task)
        except BaseException:
            # Either lookup failing fails the quote; stop the other one
            for task in (ia_task, quote_task):
                task.cancel()
            raise

        if not ia_response.is_success:
            raise ProviderHttpError(
                f"Thorchain could not fetch inbound_addresses: {ia_response.text}",
                status_code=ia_response.status_code, body=ia_response.text, **errors,
            )
        if not quote_response.is_success:
            raise ProviderHttpError(
                f"Thorchain could not get thorswap quote: {quote_response.text}",
                status_code=quote_response.status_code, body=quote_response.text, **errors,
            )

        inbound_addresses = parse_payload(
            list[InboundAddress], _json(ia_response, "inbound_addresses"),
            "inbound_addresses", PLUGIN_ID,
        ).unwrap()
        thorswap_quote = parse_payload(
            ThorSwapQuoteResponse, _json(quote_response, "thorswap quote"),
            "thorswap quote", PLUGIN_ID,
        ).unwrap()

        inbound = next(
            (a for a in inbound_addresses if not a.halted and a.chain == from_mainnet), None
        )
        if inbound is None:
            raise NoViableRoute(f"No active THORChain vault for {from_mainnet}", **errors)

        if not thorswap_quote.routes:
            raise NoViableRoute(f"THORSwap returned no routes for {from_code}->{to_code}", **errors)
        route = thorswap_quote.routes[0]

        # A single provider is not an aggregated route
        if len(route.providers) <= 1:
            raise NoViableRoute(
                f"Best route uses {len(route.providers)} provider(s): {route.providers}", **errors
            )

        if not isinstance(route.calldata, dict):
            raise MalformedProviderResponse("Route call data is not an object", **errors)
        memo_fields = parse_payload(ThorSwapCalldata, route.calldata, "route calldata", PLUGIN_ID).unwrap()

        to_native_amount = to_integer(
            await to_wallet.denomination_to_native(route.expected_output_max_slippage, to_code)
        )

        return ThorchainDaQuote(
            route=route,
            calldata=route.calldata,
            memo=memo_fields.tc_memo or memo_fields.memo or "",
            inbound=inbound,
            from_address=from_address,
            to_address=to_address,
            to_native_amount=to_native_amount,
            source_token_address=from_suffix.replace("-0x", "0x") or None,
        )

    async def build_order(
        self,
        request: SwapRequest,
        codes: TranscribedCodes,
        quote: ThorchainDaQuote,
    ) -> SwapOrder:
        from_code = codes.from_currency_code
        from_mainnet = codes.from_mainnet_code
        errors = {"plugin_id": PLUGIN_ID, "from_code": from_code, "to_code": codes.to_currency_code}

        is_evm = self._check_source(request, codes)
        from_is_token = quote.source_token_address is not None

        memo = quote.memo
        send_amount = request.native_amount
        public_address = quote.inbound.address
        gas_limit = None
        approval = None

        if is_evm and from_is_token:
            token_address = quote.source_token_address
            if quote.tc_direct:
                contract = quote.inbound.router
                if contract is None:
                    raise MissingRouterAddress(f"Missing router address for {from_mainnet}", **errors)
                memo = thorchain_deposit_data(
                    contract, quote.inbound.address, token_address, request.native_amount, memo
                )
                spender = contract
            else:
                contract = quote.route.contract
                method = quote.route.contract_method
                if contract is None or method is None:
                    raise MissingRouterAddress(
                        f"Route via {quote.route.providers} has no contract or method", **errors
                    )
                memo = aggregator_calldata(
                    request.from_chain, contract, method, quote.calldata, self.router_registry
                )
                spender = TOKEN_PROXY_MAP.get(request.from_chain)
                if spender is None:
                    raise MissingRouterAddress(
                        f"No token proxy known for {request.from_chain}", **errors
                    )

            # Token swaps send no native coin
            send_amount = "0"
            public_address = contract
            approval = await self._approval(request, token_address, quote.from_address, spender)
        elif is_evm:
            memo = memo_to_hex(memo)
            gas_limit = EVM_SEND_GAS

        spend = SpendInstruction(
            currency_code=from_code,
            targets=(SpendTarget(public_address=public_address, native_amount=send_amount, memo=memo),),
            gas_limit=gas_limit,
        )
        payout = SwapPayout(
            address=quote.to_address,
            currency_code=codes.to_currency_code,
            native_amount=quote.to_native_amount,
            wallet_id=request.to_wallet.id,
        )
        notes = f"DEX Providers: {' -> '.join(quote.route.providers)}\nPath: {quote.route.path}"

        return SwapOrder(
            plugin_id=PLUGIN_ID,
            request=request,
            spend=spend,
            payout=payout,
            from_native_amount=request.native_amount,
            expires_at=self.expiration(),
            notes=notes,
            approval=approval,
        )

    async def _approval(
        self,
        request: SwapRequest,
        token_address: str,
        owner: str,
        spender: str,
    ) -> Optional[SpendInstruction]:
        """Approval spend letting ``spender`` pull the swap amount, if needed."""
        if self.allowance_reader is not None:
            current = await self.allowance_reader.allowance(
                request.from_chain, token_address, owner, spender
            )
            if current >= int(request.native_amount):
                logger.debug(f"Allowance {current} for {spender} covers the swap, no approval")
                return None

        data = approval_data(token_address, spender, request.native_amount)
        return SpendInstruction(
            currency_code=request.from_wallet.currency_code,
            targets=(SpendTarget(public_address=token_address, native_amount="0", memo=data),),
            metadata_name=self.display_name,
            metadata_category="expense:Token Approval",
        )
