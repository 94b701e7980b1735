"""Pytest configuration and fixtures."""

import os
from typing import Callable, Optional

import httpx
import pytest

# Set test environment
os.environ["ENVIRONMENT"] = "test"
os.environ["SWAPUZ_API_KEY"] = ""

from swapquote.amounts import denomination_to_native, native_to_denomination
from swapquote.fetch import WaterfallFetcher
from swapquote.wallet import AddressInfo, SwapWallet

USDC_CONTRACT = "a0b86991c6218b36c1d19d4a2e9eb0ce3606eb48"
ETH_ADDRESS = "0x" + "11" * 20
BTC_SEGWIT_ADDRESS = "bc1qsenderxxxxxxxxxxxxxxxxxxxxxxxxxxxxxx"
BTC_LEGACY_ADDRESS = "1LegacySenderxxxxxxxxxxxxxxxxxxxx"


class FakeWallet(SwapWallet):
    """In-memory wallet with fixed addresses and denomination tables."""

    def __init__(
        self,
        plugin_id: str,
        currency_code: str,
        multipliers: dict[str, str],
        address: str,
        legacy_address: Optional[str] = None,
        segwit_address: Optional[str] = None,
        tokens: Optional[dict[str, str]] = None,
        wallet_id: Optional[str] = None,
    ):
        self.id = wallet_id or f"{plugin_id}-wallet"
        self.plugin_id = plugin_id
        self.currency_code = currency_code
        self.multipliers = multipliers
        self.address = address
        self.legacy_address = legacy_address
        self.segwit_address = segwit_address
        self.tokens = tokens or {}

    async def get_receive_address(self, currency_code: str) -> AddressInfo:
        return AddressInfo(
            public_address=self.address,
            legacy_address=self.legacy_address,
            segwit_address=self.segwit_address,
        )

    async def native_to_denomination(self, native_amount: str, currency_code: str) -> str:
        return native_to_denomination(native_amount, self.multipliers[currency_code])

    async def denomination_to_native(self, amount: str, currency_code: str) -> str:
        return denomination_to_native(amount, self.multipliers[currency_code])

    def get_token_id(self, currency_code: str) -> Optional[str]:
        return self.tokens.get(currency_code)


def make_fetcher(handler: Callable, timeout: Optional[float] = 5.0) -> WaterfallFetcher:
    """Fetcher whose HTTP client is served by ``handler``."""
    client = httpx.AsyncClient(transport=httpx.MockTransport(handler))
    return WaterfallFetcher(client=client, default_timeout=timeout)


@pytest.fixture
def eth_wallet() -> FakeWallet:
    """Ethereum wallet holding ETH and USDC."""
    return FakeWallet(
        "ethereum",
        "ETH",
        {"ETH": "1000000000000000000", "USDC": "1000000"},
        address=ETH_ADDRESS,
        tokens={"USDC": USDC_CONTRACT},
    )


@pytest.fixture
def btc_wallet() -> FakeWallet:
    """Bitcoin wallet with segwit and legacy addresses."""
    return FakeWallet(
        "bitcoin",
        "BTC",
        {"BTC": "100000000"},
        address=BTC_SEGWIT_ADDRESS,
        legacy_address=BTC_LEGACY_ADDRESS,
        segwit_address=BTC_SEGWIT_ADDRESS,
    )


@pytest.fixture
def zec_wallet() -> FakeWallet:
    return FakeWallet("zcash", "ZEC", {"ZEC": "100000000"}, address="t1zcashaddress")
