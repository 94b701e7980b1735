"""Map wallet chains and assets to a provider's vocabulary."""

from dataclasses import dataclass
from typing import Optional

from swapquote.errors import UnknownToken, UnsupportedChain
from swapquote.models import SwapRequest
from swapquote.wallet import SwapWallet


@dataclass(frozen=True)
class TranscribedCodes:
    """Currency codes of a request plus the provider's chain names."""

    from_currency_code: str
    to_currency_code: str
    from_mainnet_code: str
    to_mainnet_code: str


class MainnetTranscriber:
    """Translate wallet chain plugin ids into provider chain names.

    The table lists every chain the provider knows; anything else is an
    error rather than a guess.
    """

    def __init__(self, table: dict[str, str], plugin_id: str = ""):
        self.table = dict(table)
        self.plugin_id = plugin_id

    def transcribe(self, chain_id: str, from_code: Optional[str] = None,
                   to_code: Optional[str] = None) -> str:
        """Provider chain name for a wallet chain.

        Raises:
            UnsupportedChain: Chain is not in the table
        """
        mainnet_code = self.table.get(chain_id)
        if mainnet_code is None:
            raise UnsupportedChain(
                f"{self.plugin_id or 'Provider'} does not support chain {chain_id}",
                plugin_id=self.plugin_id, from_code=from_code, to_code=to_code,
            )
        return mainnet_code

    def codes(self, request: SwapRequest) -> TranscribedCodes:
        """Transcribe both sides of a request."""
        from_code = request.from_currency_code
        to_code = request.to_currency_code
        return TranscribedCodes(
            from_currency_code=from_code,
            to_currency_code=to_code,
            from_mainnet_code=self.transcribe(request.from_chain, from_code, to_code),
            to_mainnet_code=self.transcribe(request.to_chain, from_code, to_code),
        )


def is_token(wallet: SwapWallet, mainnet_code: str, currency_code: str) -> bool:
    """Whether an asset is a token rather than its chain's native coin."""
    if currency_code == wallet.currency_code:
        return False
    return mainnet_code != currency_code


def token_identifier(wallet: SwapWallet, currency_code: str, plugin_id: str = "") -> str:
    """Provider token suffix, e.g. ``-0xa0b8...``, from the wallet's registry.

    Raises:
        UnknownToken: Wallet has no contract address for the code
    """
    token_id = wallet.get_token_id(currency_code)
    if not token_id:
        raise UnknownToken(
            f"No contract address for {currency_code} on {wallet.plugin_id}",
            plugin_id=plugin_id, from_code=currency_code,
        )
    return f"-0x{token_id.lower().removeprefix('0x')}"


def provider_asset(mainnet_code: str, currency_code: str, token_suffix: str = "") -> str:
    """Provider asset name, e.g. ``ETH.ETH`` or ``ETH.USDC-0xa0b8...``."""
    return f"{mainnet_code}.{currency_code}{token_suffix}"
