"""Typed failures raised while quoting and assembling swaps.

Every failure is a ``SwapError`` subclass so callers can branch on the kind
of failure instead of parsing messages.
"""

from typing import Optional


class SwapError(Exception):
    """Base class for all quote pipeline failures."""

    def __init__(
        self,
        message: str,
        plugin_id: Optional[str] = None,
        from_code: Optional[str] = None,
        to_code: Optional[str] = None,
    ):
        super().__init__(message)
        self.plugin_id = plugin_id
        self.from_code = from_code
        self.to_code = to_code


class UnsupportedChain(SwapError):
    """Wallet chain is missing from the provider's transcription table."""


class UnknownToken(SwapError):
    """Wallet has no contract address registered for a token code."""


class SameAssetSwap(SwapError):
    """Source and destination are the same chain and asset."""


class DisallowedPair(SwapError):
    """Asset is explicitly excluded by the provider in this direction."""


class BelowMinimumAmount(SwapError):
    """Requested amount is below the provider minimum.

    Attributes:
        minimum_native: Provider minimum in the request's native units
    """

    def __init__(self, message: str, minimum_native: str, **kwargs):
        super().__init__(message, **kwargs)
        self.minimum_native = minimum_native


class NoViableRoute(SwapError):
    """Provider returned no usable route for the pair."""


class MalformedProviderResponse(SwapError):
    """Provider response did not match the expected shape."""


class ProviderHttpError(SwapError):
    """Provider answered with a non-success HTTP status."""

    def __init__(self, message: str, status_code: int, body: str = "", **kwargs):
        super().__init__(message, **kwargs)
        self.status_code = status_code
        self.body = body


class AllServersUnreachable(SwapError):
    """Every candidate server failed with a request error."""

    def __init__(self, message: str, errors: Optional[list[str]] = None, **kwargs):
        super().__init__(message, **kwargs)
        self.errors = errors or []


class FetchTimeout(SwapError):
    """No candidate server answered before the deadline."""


class ConvergenceFailed(SwapError):
    """Input amount search did not reach the target output."""


class UnsupportedTokenChain(SwapError):
    """Tokens are not supported as a source on this chain."""


class UnknownRouterType(SwapError):
    """Router registry entry carries a type tag with no calldata template."""


class MissingAbiForContract(SwapError):
    """No router interface is registered for a (chain, contract) pair."""


class MissingRouterAddress(SwapError):
    """Route needs a router contract or method the provider did not supply."""
