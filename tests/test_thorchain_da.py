"""Tests for the THORChain DEX aggregator provider."""

import asyncio
from decimal import Decimal
from unittest.mock import AsyncMock

import httpx
import pytest

from swapquote.errors import (
    AllServersUnreachable,
    MalformedProviderResponse,
    MissingRouterAddress,
    NoViableRoute,
    ProviderHttpError,
    UnsupportedChain,
    UnsupportedTokenChain,
)
from swapquote.evm import TOKEN_PROXY_MAP, aggregator_calldata, approval_data, memo_to_hex
from swapquote.info_cache import RemoteInfoCache
from swapquote.models import QuoteDirection, SwapRequest
from swapquote.routing.thorchain_da import EVM_SEND_GAS, ThorchainDaProvider
from swapquote.schemas import ExchangeInfo, SwapInfo, SwapPluginsInfo, ThorchainTuning

from conftest import BTC_SEGWIT_ADDRESS, ETH_ADDRESS, USDC_CONTRACT, FakeWallet, make_fetcher

THORNODE = "https://thornode.example"
THORSWAP = "https://thorswap.example"
INFO = "https://info.example"

ETH_VAULT = "0x" + "22" * 20
ETH_ROUTER = "0xd37bbe5744d730a1d98d8dc97c42f0ca46ad7146"
GENERIC_ROUTER = "0xd31f7e39afecec4855fecc51b693f9a0cec49fd2"
BTC_VAULT = "bc1qvaultxxxxxxxxxxxxxxxxxxxxxxxxxxxxxxxx"

INBOUND_ADDRESSES = [
    {"chain": "BTC", "address": BTC_VAULT, "halted": False},
    {"chain": "ETH", "address": ETH_VAULT, "halted": False, "router": ETH_ROUTER},
]


def make_route(providers, **overrides) -> dict:
    route = {
        "contract": None,
        "contractMethod": None,
        "complete": True,
        "path": "BTC -> ETH",
        "providers": providers,
        "calldata": {"memo": "=:ETH.ETH:0x1111:0/1/0:t:50"},
        "expectedOutput": "1.02",
        "expectedOutputMaxSlippage": "0.990000000000000000123",
        "expectedOutputUSD": "3500",
        "expectedOutputMaxSlippageUSD": "3400",
    }
    route.update(overrides)
    return route


def token_route(tc_direct: bool = False) -> dict:
    """USDC -> BTC route, via an aggregator contract unless ``tc_direct``."""
    calldata = {
        "tcRouter": ETH_ROUTER,
        "tcVault": ETH_VAULT,
        "tcMemo": "=:BTC.BTC:" + BTC_SEGWIT_ADDRESS,
        "token": "0x" + USDC_CONTRACT,
        "amount": "100000000",
        "router": "0x" + "44" * 20,
        "data": "0xdeadbeef",
        "deadline": "1700000000",
    }
    if tc_direct:
        return make_route(
            ["THORCHAIN", "UNISWAP"], path="USDC -> BTC", calldata=calldata,
            expectedOutputMaxSlippage="0.0123",
        )
    return make_route(
        ["UNISWAP", "THORCHAIN"],
        path="USDC -> ETH -> BTC",
        contract=GENERIC_ROUTER,
        contractMethod="swapIn",
        calldata=calldata,
        expectedOutputMaxSlippage="0.0123",
    )


class FakeApi:
    """THORNode, THORSwap and info server stubs."""

    def __init__(self, routes, inbound=None, quote_status=200, inbound_status=200):
        self.routes = routes
        self.inbound = INBOUND_ADDRESSES if inbound is None else inbound
        self.quote_status = quote_status
        self.inbound_status = inbound_status
        self.quote_params = None
        self.quote_headers = None

    def __call__(self, request: httpx.Request) -> httpx.Response:
        if request.url.host == "info.example":
            return httpx.Response(404)
        if request.url.path == "/thorchain/inbound_addresses":
            if self.inbound_status != 200:
                return httpx.Response(self.inbound_status, text="unavailable")
            return httpx.Response(200, json=self.inbound)
        if request.url.path == "/tokens/quote":
            self.quote_params = dict(request.url.params)
            self.quote_headers = request.headers
            if self.quote_status != 200:
                return httpx.Response(self.quote_status, text="no quote")
            return httpx.Response(200, json={"routes": self.routes})
        return httpx.Response(404)


def make_provider(api: FakeApi, allowance_reader=None) -> ThorchainDaProvider:
    fetcher = make_fetcher(api)
    defaults = ExchangeInfo(
        swap=SwapInfo(
            plugins=SwapPluginsInfo(
                thorchain=ThorchainTuning(
                    da_volatility_spread=Decimal("0.03"),
                    thorswap_servers=[THORSWAP],
                    thornode_servers=[THORNODE],
                )
            )
        )
    )
    cache = RemoteInfoCache(fetcher, [INFO], "testapp", defaults)
    return ThorchainDaProvider(
        fetcher,
        cache,
        thorname="ej",
        affiliate_fee_basis="50",
        client_id="test-client",
        allowance_reader=allowance_reader,
    )


class TestThorchainDaQuote:
    """Tests for route selection and quote validation."""

    @pytest.mark.asyncio
    async def test_single_hop_rejected(self, btc_wallet, eth_wallet):
        """Test a THORChain-only route is not an aggregated route."""
        provider = make_provider(FakeApi([make_route(["THORCHAIN"])]))
        request = SwapRequest(btc_wallet, eth_wallet, "BTC", "ETH", "10000000")

        with pytest.raises(NoViableRoute):
            await provider.fetch_swap_quote(request)

    @pytest.mark.asyncio
    async def test_no_routes(self, btc_wallet, eth_wallet):
        provider = make_provider(FakeApi([]))
        with pytest.raises(NoViableRoute):
            await provider.fetch_swap_quote(SwapRequest(btc_wallet, eth_wallet, "BTC", "ETH", "1000"))

    @pytest.mark.asyncio
    async def test_halted_vault(self, btc_wallet, eth_wallet):
        """Test a halted inbound address is never used."""
        inbound = [{"chain": "BTC", "address": BTC_VAULT, "halted": True}]
        provider = make_provider(FakeApi([make_route(["THORCHAIN", "UNISWAP"])], inbound=inbound))

        with pytest.raises(NoViableRoute):
            await provider.fetch_swap_quote(SwapRequest(btc_wallet, eth_wallet, "BTC", "ETH", "1000"))

    @pytest.mark.asyncio
    async def test_quote_http_error(self, btc_wallet, eth_wallet):
        provider = make_provider(FakeApi([], quote_status=400))
        with pytest.raises(ProviderHttpError) as exc_info:
            await provider.fetch_swap_quote(SwapRequest(btc_wallet, eth_wallet, "BTC", "ETH", "1000"))
        assert exc_info.value.status_code == 400

    @pytest.mark.asyncio
    async def test_inbound_addresses_http_error(self, btc_wallet, eth_wallet):
        """Test a failed inbound address lookup fails the whole quote."""
        provider = make_provider(FakeApi([make_route(["THORCHAIN", "UNISWAP"])], inbound_status=503))
        with pytest.raises(ProviderHttpError) as exc_info:
            await provider.fetch_swap_quote(SwapRequest(btc_wallet, eth_wallet, "BTC", "ETH", "1000"))
        assert exc_info.value.status_code == 503

    @pytest.mark.asyncio
    async def test_failed_lookup_cancels_the_other(self, btc_wallet, eth_wallet):
        """Test the pending quote lookup is cancelled when inbound addresses fail."""
        cancelled = []

        async def handler(request: httpx.Request) -> httpx.Response:
            if request.url.host == "info.example":
                return httpx.Response(404)
            if request.url.path == "/thorchain/inbound_addresses":
                await asyncio.sleep(0.01)
                raise httpx.ConnectError("down", request=request)
            try:
                await asyncio.sleep(5)
            except asyncio.CancelledError:
                cancelled.append(request.url.path)
                raise
            return httpx.Response(200, json={"routes": []})

        provider = make_provider(handler)
        with pytest.raises(AllServersUnreachable):
            await provider.fetch_swap_quote(SwapRequest(btc_wallet, eth_wallet, "BTC", "ETH", "1000"))

        await asyncio.sleep(0.01)
        assert cancelled == ["/tokens/quote"]

    @pytest.mark.asyncio
    async def test_malformed_route(self, btc_wallet, eth_wallet):
        """Test a route missing its contract key fails validation."""
        route = make_route(["THORCHAIN", "UNISWAP"])
        del route["contract"]
        provider = make_provider(FakeApi([route]))

        with pytest.raises(MalformedProviderResponse):
            await provider.fetch_swap_quote(SwapRequest(btc_wallet, eth_wallet, "BTC", "ETH", "1000"))

    @pytest.mark.asyncio
    async def test_query_parameters(self, btc_wallet, eth_wallet):
        """Test the aggregator quote request."""
        api = FakeApi([make_route(["THORCHAIN", "UNISWAP"])])
        provider = make_provider(api)

        await provider.fetch_swap_quote(SwapRequest(btc_wallet, eth_wallet, "BTC", "ETH", "150000000"))

        assert api.quote_params == {
            "sellAsset": "BTC.BTC",
            "buyAsset": "ETH.ETH",
            "sellAmount": "1.5",
            "slippage": "3",
            "recipientAddress": ETH_ADDRESS,
            "senderAddress": BTC_SEGWIT_ADDRESS,
            "affiliateAddress": "ej",
            "affiliateBasisPoints": "50",
        }
        assert api.quote_headers["x-client-id"] == "test-client"

    @pytest.mark.asyncio
    async def test_token_asset_names(self, eth_wallet, btc_wallet):
        """Test tokens carry their contract suffix."""
        api = FakeApi([token_route()])
        provider = make_provider(api)

        await provider.fetch_swap_quote(SwapRequest(eth_wallet, btc_wallet, "USDC", "BTC", "100000000"))

        assert api.quote_params["sellAsset"] == f"ETH.USDC-0x{USDC_CONTRACT}"
        assert api.quote_params["sellAmount"] == "100"

    @pytest.mark.asyncio
    async def test_unsupported_chain(self, btc_wallet):
        fantom = FakeWallet("fantom", "FTM", {"FTM": "1"}, address="0x")
        provider = make_provider(FakeApi([]))
        with pytest.raises(UnsupportedChain):
            await provider.fetch_swap_quote(SwapRequest(btc_wallet, fantom, "BTC", "FTM", "1000"))


class TestThorchainDaOrder:
    """Tests for spend assembly per source kind."""

    @pytest.mark.asyncio
    async def test_non_evm_native(self, btc_wallet, eth_wallet):
        """Test BTC source sends the plain memo to the vault."""
        provider = make_provider(FakeApi([make_route(["THORCHAIN", "UNISWAP"])]))
        request = SwapRequest(btc_wallet, eth_wallet, "BTC", "ETH", "10000000")

        order = await provider.fetch_swap_quote(request)

        target = order.spend.targets[0]
        assert target.public_address == BTC_VAULT
        assert target.native_amount == "10000000"
        assert target.memo == "=:ETH.ETH:0x1111:0/1/0:t:50"
        assert order.spend.gas_limit is None
        assert order.approval is None
        # 0.990000000000000000123 ETH truncated to whole wei
        assert order.payout.native_amount == "990000000000000000"
        assert order.payout.address == ETH_ADDRESS
        assert order.notes == "DEX Providers: THORCHAIN -> UNISWAP\nPath: BTC -> ETH"
        assert order.plugin_id == "thorchainda"

    @pytest.mark.asyncio
    async def test_evm_native(self, eth_wallet, btc_wallet):
        """Test ETH source hex-encodes the memo with a gas limit override."""
        route = make_route(
            ["THORCHAIN", "UNISWAP"], path="ETH -> BTC",
            calldata={"tcMemo": "=:BTC.BTC:bc1q"}, expectedOutputMaxSlippage="0.0123",
        )
        provider = make_provider(FakeApi([route]))
        request = SwapRequest(eth_wallet, btc_wallet, "ETH", "BTC", "1000000000000000000")

        order = await provider.fetch_swap_quote(request)

        target = order.spend.targets[0]
        assert target.public_address == ETH_VAULT
        assert target.native_amount == "1000000000000000000"
        assert target.memo == memo_to_hex("=:BTC.BTC:bc1q")
        assert order.spend.gas_limit == EVM_SEND_GAS
        assert order.payout.native_amount == "1230000"

    @pytest.mark.asyncio
    async def test_evm_token_via_aggregator(self, eth_wallet, btc_wallet):
        """Test token source calls the aggregator contract after an approval."""
        route = token_route()
        provider = make_provider(FakeApi([route]))
        request = SwapRequest(eth_wallet, btc_wallet, "USDC", "BTC", "100000000")

        order = await provider.fetch_swap_quote(request)

        target = order.spend.targets[0]
        assert target.public_address == GENERIC_ROUTER
        assert target.native_amount == "0"
        assert target.memo == aggregator_calldata("ethereum", GENERIC_ROUTER, "swapIn", route["calldata"])

        approval = order.approval
        assert approval is not None
        assert approval.currency_code == "ETH"
        assert approval.metadata_category == "expense:Token Approval"
        assert approval.targets[0].public_address == "0x" + USDC_CONTRACT
        assert approval.targets[0].native_amount == "0"
        assert approval.targets[0].memo == approval_data(
            "0x" + USDC_CONTRACT, TOKEN_PROXY_MAP["ethereum"], "100000000"
        )
        assert order.spend_instructions == [approval, order.spend]

    @pytest.mark.asyncio
    async def test_evm_token_direct_deposit(self, eth_wallet, btc_wallet):
        """Test a THORCHAIN-first token route deposits through the inbound router."""
        provider = make_provider(FakeApi([token_route(tc_direct=True)]))
        request = SwapRequest(eth_wallet, btc_wallet, "USDC", "BTC", "100000000")

        order = await provider.fetch_swap_quote(request)

        assert order.spend.targets[0].public_address == ETH_ROUTER
        assert order.spend.targets[0].native_amount == "0"
        assert order.approval.targets[0].memo == approval_data(
            "0x" + USDC_CONTRACT, ETH_ROUTER, "100000000"
        )

    @pytest.mark.asyncio
    async def test_direct_deposit_without_router(self, eth_wallet, btc_wallet):
        """Test a vault with no router address cannot take a token deposit."""
        inbound = [{"chain": "ETH", "address": ETH_VAULT, "halted": False}]
        provider = make_provider(FakeApi([token_route(tc_direct=True)], inbound=inbound))

        with pytest.raises(MissingRouterAddress):
            await provider.fetch_swap_quote(
                SwapRequest(eth_wallet, btc_wallet, "USDC", "BTC", "100000000")
            )

    @pytest.mark.asyncio
    async def test_aggregator_route_without_contract(self, eth_wallet, btc_wallet):
        route = token_route()
        route["contract"] = None
        provider = make_provider(FakeApi([route]))

        with pytest.raises(MissingRouterAddress):
            await provider.fetch_swap_quote(
                SwapRequest(eth_wallet, btc_wallet, "USDC", "BTC", "100000000")
            )

    @pytest.mark.asyncio
    async def test_sufficient_allowance_skips_approval(self, eth_wallet, btc_wallet):
        """Test no approval when the allowance already covers the amount."""
        reader = AsyncMock()
        reader.allowance.return_value = 10**30
        provider = make_provider(FakeApi([token_route()]), allowance_reader=reader)

        order = await provider.fetch_swap_quote(
            SwapRequest(eth_wallet, btc_wallet, "USDC", "BTC", "100000000")
        )

        assert order.approval is None
        reader.allowance.assert_awaited_once_with(
            "ethereum", "0x" + USDC_CONTRACT, ETH_ADDRESS, TOKEN_PROXY_MAP["ethereum"]
        )

    @pytest.mark.asyncio
    async def test_insufficient_allowance_approves(self, eth_wallet, btc_wallet):
        reader = AsyncMock()
        reader.allowance.return_value = 1
        provider = make_provider(FakeApi([token_route()]), allowance_reader=reader)

        order = await provider.fetch_swap_quote(
            SwapRequest(eth_wallet, btc_wallet, "USDC", "BTC", "100000000")
        )

        assert order.approval is not None

    @pytest.mark.asyncio
    async def test_non_evm_token_rejected(self, eth_wallet):
        """Test tokens on non-EVM chains fail before any network call."""
        api = FakeApi([])
        provider = make_provider(api)
        ltc_wallet = FakeWallet(
            "litecoin", "LTC", {"LTC": "100000000", "FOO": "100000000"}, address="ltc1q"
        )

        with pytest.raises(UnsupportedTokenChain):
            await provider.fetch_swap_quote(SwapRequest(ltc_wallet, eth_wallet, "FOO", "ETH", "1000"))
        assert api.quote_params is None

    @pytest.mark.asyncio
    async def test_quote_for_output(self, btc_wallet, eth_wallet):
        """Test exact-output requests are solved by input amount."""
        provider = make_provider(FakeApi([make_route(["THORCHAIN", "UNISWAP"])]))
        request = SwapRequest(
            btc_wallet, eth_wallet, "BTC", "ETH", "500000000000000000", quote_for=QuoteDirection.TO
        )

        order = await provider.fetch_swap_quote(request)

        # The stub pays 0.99 ETH for any input, so the first attempt converges
        assert order.request.quote_for == QuoteDirection.FROM
        assert order.payout.native_amount == "990000000000000000"
