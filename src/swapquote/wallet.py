"""Wallet interface consumed by the quote pipeline.

The host application owns wallets, keys and currency tables. Providers
only need addresses, denomination conversion and token contract lookups,
so that is all this interface exposes.
"""

from abc import ABC, abstractmethod
from dataclasses import dataclass
from typing import Optional


@dataclass(frozen=True)
class AddressInfo:
    """A wallet receive address."""

    public_address: str
    legacy_address: Optional[str] = None
    segwit_address: Optional[str] = None


class SwapWallet(ABC):
    """Abstract wallet as seen by swap providers.

    Attributes:
        id: Host wallet identifier, echoed in payout metadata
        plugin_id: Chain identifier (e.g. "ethereum", "bitcoin")
        currency_code: The chain's native currency code (e.g. "ETH")
    """

    id: str
    plugin_id: str
    currency_code: str

    @abstractmethod
    async def get_receive_address(self, currency_code: str) -> AddressInfo:
        """Return a receive address for the given currency."""
        pass

    @abstractmethod
    async def native_to_denomination(self, native_amount: str, currency_code: str) -> str:
        """Convert base units to the currency's display denomination."""
        pass

    @abstractmethod
    async def denomination_to_native(self, amount: str, currency_code: str) -> str:
        """Convert a display-denomination amount to base units."""
        pass

    @abstractmethod
    def get_token_id(self, currency_code: str) -> Optional[str]:
        """Contract address of a token (lowercase hex, no 0x), or None."""
        pass
