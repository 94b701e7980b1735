"""Swap request and swap order types."""

from dataclasses import dataclass
from datetime import datetime, timedelta, timezone
from enum import Enum
from typing import Optional

from swapquote.amounts import is_native_amount
from swapquote.wallet import SwapWallet


class QuoteDirection(str, Enum):
    """Which side of the swap the requested amount refers to."""
    FROM = "from"  # quote for an exact input amount
    TO = "to"      # quote the input needed to receive an exact output


@dataclass(frozen=True)
class SwapRequest:
    """A caller's request to exchange one asset for another."""

    from_wallet: SwapWallet
    to_wallet: SwapWallet
    from_currency_code: str
    to_currency_code: str
    native_amount: str
    quote_for: QuoteDirection = QuoteDirection.FROM

    def __post_init__(self):
        if not is_native_amount(self.native_amount):
            raise ValueError(f"Invalid native amount: {self.native_amount!r}")

    @property
    def from_chain(self) -> str:
        return self.from_wallet.plugin_id

    @property
    def to_chain(self) -> str:
        return self.to_wallet.plugin_id


@dataclass(frozen=True)
class SpendTarget:
    """One output of a spend."""

    public_address: str
    native_amount: str
    memo: Optional[str] = None  # plain memo or 0x-prefixed call data
    unique_identifier: Optional[str] = None  # destination tag / memo id


@dataclass(frozen=True)
class SpendInstruction:
    """Everything an external signer needs to build one transaction."""

    currency_code: str
    targets: tuple[SpendTarget, ...]
    gas_limit: Optional[str] = None
    network_fee_option: Optional[str] = None
    metadata_name: Optional[str] = None
    metadata_category: Optional[str] = None

    def to_dict(self) -> dict:
        return {
            "currency_code": self.currency_code,
            "targets": [
                {
                    "public_address": t.public_address,
                    "native_amount": t.native_amount,
                    "memo": t.memo,
                    "unique_identifier": t.unique_identifier,
                }
                for t in self.targets
            ],
            "gas_limit": self.gas_limit,
            "network_fee_option": self.network_fee_option,
            "metadata_name": self.metadata_name,
            "metadata_category": self.metadata_category,
        }


@dataclass(frozen=True)
class SwapPayout:
    """What the user receives, and where."""

    address: str
    currency_code: str
    native_amount: str
    wallet_id: str
    is_estimate: bool = False
    order_id: Optional[str] = None
    order_uri: Optional[str] = None
    refund_address: Optional[str] = None


def expiration_from_now(validity_ms: int) -> datetime:
    """Timestamp ``validity_ms`` milliseconds in the future (UTC)."""
    return datetime.now(timezone.utc) + timedelta(milliseconds=validity_ms)


def ensure_in_future(when: Optional[datetime], validity_ms: int) -> datetime:
    """Use a provider deadline if it has not passed, else a fresh window."""
    now = datetime.now(timezone.utc)
    if when is not None:
        if when.tzinfo is None:
            when = when.replace(tzinfo=timezone.utc)
        if when > now:
            return when
    return now + timedelta(milliseconds=validity_ms)


@dataclass(frozen=True)
class SwapOrder:
    """A ready-to-sign swap, built once per request and never mutated."""

    plugin_id: str
    request: SwapRequest
    spend: SpendInstruction
    payout: SwapPayout
    from_native_amount: str
    expires_at: datetime
    notes: str = ""
    approval: Optional[SpendInstruction] = None

    @property
    def spend_instructions(self) -> list[SpendInstruction]:
        """Spends in signing order: approval (if any) before the swap."""
        if self.approval is not None:
            return [self.approval, self.spend]
        return [self.spend]

    @property
    def is_expired(self) -> bool:
        return datetime.now(timezone.utc) > self.expires_at

    def to_dict(self) -> dict:
        """Convert to a JSON-friendly dictionary."""
        return {
            "plugin_id": self.plugin_id,
            "from_currency_code": self.request.from_currency_code,
            "to_currency_code": self.request.to_currency_code,
            "from_native_amount": self.from_native_amount,
            "spend_instructions": [s.to_dict() for s in self.spend_instructions],
            "payout": {
                "address": self.payout.address,
                "currency_code": self.payout.currency_code,
                "native_amount": self.payout.native_amount,
                "wallet_id": self.payout.wallet_id,
                "is_estimate": self.payout.is_estimate,
                "order_id": self.payout.order_id,
                "order_uri": self.payout.order_uri,
                "refund_address": self.payout.refund_address,
            },
            "expires_at": int(self.expires_at.timestamp()),
            "notes": self.notes,
        }
