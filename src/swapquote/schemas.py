"""Provider wire formats and the validators that read them.

Validators never raise: they return a ``ParseResult`` holding either the
typed value or a ``MalformedProviderResponse``, so every provider treats
bad payloads the same way.
"""

from dataclasses import dataclass
from datetime import datetime
from decimal import Decimal
from typing import Any, Generic, Optional, TypeVar

from pydantic import BaseModel, ConfigDict, Field, TypeAdapter, ValidationError

from swapquote.errors import MalformedProviderResponse

T = TypeVar("T")


@dataclass(frozen=True)
class ParseResult(Generic[T]):
    """Outcome of validating a payload."""

    value: Optional[T] = None
    error: Optional[MalformedProviderResponse] = None

    @property
    def ok(self) -> bool:
        return self.error is None

    def unwrap(self) -> T:
        """Return the value or raise the validation error."""
        if self.error is not None:
            raise self.error
        return self.value


def parse_payload(schema: Any, data: Any, what: str, plugin_id: str = "") -> ParseResult:
    """Validate ``data`` against a pydantic model or type.

    Args:
        schema: Model class or type understood by ``TypeAdapter``
        data: Decoded JSON
        what: Short description used in the error message
        plugin_id: Provider reporting the payload
    """
    try:
        return ParseResult(value=TypeAdapter(schema).validate_python(data))
    except ValidationError as e:
        return ParseResult(
            error=MalformedProviderResponse(
                f"Unexpected {what} response: {e.error_count()} error(s): {e.errors()[0]['msg']}",
                plugin_id=plugin_id,
            )
        )


class WireModel(BaseModel):
    """Base for provider payloads: camelCase aliases, unknown keys ignored."""

    model_config = ConfigDict(populate_by_name=True, extra="ignore", frozen=True)


# ======================
# Info server
# ======================

class ThorchainTuning(WireModel):
    """THORChain section of the info server's exchange info."""

    da_volatility_spread: Decimal = Field(alias="daVolatilitySpread")
    thorswap_servers: Optional[list[str]] = Field(default=None, alias="thorSwapServers")
    thornode_servers: Optional[list[str]] = Field(default=None, alias="thornodeServers")


class SwapPluginsInfo(WireModel):
    thorchain: ThorchainTuning


class SwapInfo(WireModel):
    plugins: SwapPluginsInfo


class ExchangeInfo(WireModel):
    """Remote tuning published by the info server."""

    swap: SwapInfo


# ======================
# THORNode / THORSwap
# ======================

class InboundAddress(WireModel):
    """A THORChain vault accepting deposits for one chain."""

    chain: str
    address: str
    halted: bool
    router: Optional[str] = None
    outbound_fee: Optional[str] = None
    pub_key: Optional[str] = None


class ThorSwapCalldata(WireModel):
    """Memo fields of a route's call data (other fields stay in the raw dict)."""

    tc_memo: Optional[str] = Field(default=None, alias="tcMemo")
    memo: Optional[str] = None


class ThorSwapRoute(WireModel):
    """One THORSwap aggregator route.

    ``contract`` and ``contractMethod`` must be present but may be null.
    """

    contract: Optional[str]
    contract_method: Optional[str] = Field(alias="contractMethod")
    contract_info: Optional[str] = Field(default=None, alias="contractInfo")
    complete: bool
    path: str
    providers: list[str]
    calldata: Any = None
    expected_output: str = Field(alias="expectedOutput")
    expected_output_max_slippage: str = Field(alias="expectedOutputMaxSlippage")
    expected_output_usd: str = Field(alias="expectedOutputUSD")
    expected_output_max_slippage_usd: str = Field(alias="expectedOutputMaxSlippageUSD")
    deadline: Optional[str] = None


class ThorSwapQuoteResponse(WireModel):
    routes: list[ThorSwapRoute]


# ======================
# Swapuz
# ======================

class SwapuzEnvelope(WireModel):
    """Swapuz response wrapper; ``result`` is checked separately."""

    result: Any = None
    status: int


class SwapuzRate(WireModel):
    min_amount: Decimal = Field(alias="minAmount")


class SwapuzOrder(WireModel):
    uid: str
    amount: Decimal
    amount_result: Decimal = Field(alias="amountResult")
    address_from: str = Field(alias="addressFrom")
    address_to: str = Field(alias="addressTo")
    memo_from: Optional[str] = Field(default=None, alias="memoFrom")
    finish_payment: datetime = Field(alias="finishPayment")


def parse_swapuz_result(schema: Any, data: Any, what: str, plugin_id: str = "") -> ParseResult:
    """Validate a Swapuz envelope, reading an unparseable ``result`` as absent.

    The envelope itself must be well formed; a malformed ``result`` yields
    a successful ``ParseResult`` whose value is None.
    """
    envelope = parse_payload(SwapuzEnvelope, data, what, plugin_id)
    if not envelope.ok:
        return envelope
    result = envelope.value.result
    if result is None:
        return ParseResult(value=None)
    inner = parse_payload(schema, result, what, plugin_id)
    return inner if inner.ok else ParseResult(value=None)
