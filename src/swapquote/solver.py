"""Find the input amount that yields at least a target output.

Used for "receive exactly X" requests against backends that only quote by
input amount. Each step scales the input up by the relative shortfall plus
a small pad and quotes again:

    next_input = input * (1 + (target - realized) / target + pad)

This is a damped fixed-point iteration, not a bisection. It assumes the
rate is locally monotonic and close to linear over the adjustment range,
which holds for small slippage; highly nonlinear route pricing may fail to
converge within the attempt bound. The attempt bound and pad are empirical
and configurable.
"""

import logging
from dataclasses import replace
from decimal import Decimal, localcontext
from typing import Awaitable, Callable, TypeVar

from swapquote.amounts import (
    DECIMAL_CONTEXT,
    relative_shortfall,
    scale,
    to_decimal,
    to_integer,
)
from swapquote.errors import ConvergenceFailed
from swapquote.models import QuoteDirection, SwapRequest

logger = logging.getLogger(__name__)

Q = TypeVar("Q")

DEFAULT_MAX_ATTEMPTS = 5
DEFAULT_PAD = Decimal("0.001")


def _to_native_amount(quote) -> str:
    return quote.to_native_amount


class ConvergenceSolver:
    """Sequential search for an input amount meeting an output target."""

    def __init__(
        self,
        max_attempts: int = DEFAULT_MAX_ATTEMPTS,
        pad: Decimal = DEFAULT_PAD,
        plugin_id: str = "",
    ):
        if max_attempts < 1:
            raise ValueError("max_attempts must be at least 1")
        self.max_attempts = max_attempts
        self.pad = to_decimal(pad)
        self.plugin_id = plugin_id

    async def solve(
        self,
        request: SwapRequest,
        quote_fn: Callable[[SwapRequest], Awaitable[Q]],
        realized_output: Callable[[Q], str] = _to_native_amount,
    ) -> tuple[SwapRequest, Q]:
        """Quote repeatedly until the output meets the request's amount.

        Args:
            request: Request whose ``native_amount`` is the desired output
            quote_fn: Quotes a request by input amount
            realized_output: Output native amount of a quote

        Returns:
            The input-denominated request that converged, and its quote

        Raises:
            ConvergenceFailed: Target not met within ``max_attempts`` quotes
        """
        to_wallet = request.to_wallet
        to_code = request.to_currency_code
        from_code = request.from_currency_code

        target = to_decimal(
            await to_wallet.native_to_denomination(request.native_amount, to_code)
        )
        candidate = request.native_amount

        for attempt in range(1, self.max_attempts + 1):
            attempt_request = replace(
                request, native_amount=candidate, quote_for=QuoteDirection.FROM
            )
            quote = await quote_fn(attempt_request)

            realized = to_decimal(
                await to_wallet.native_to_denomination(realized_output(quote), to_code)
            )
            if realized >= target:
                logger.info(
                    f"Converged on {candidate} {from_code} for {target} {to_code} "
                    f"after {attempt} attempt(s)"
                )
                return attempt_request, quote

            shortfall = relative_shortfall(target, realized)
            with localcontext(DECIMAL_CONTEXT):
                multiplier = 1 + shortfall + self.pad
            logger.debug(
                f"Attempt {attempt}: {candidate} {from_code} -> {realized} {to_code} "
                f"(target {target}, scaling by {multiplier})"
            )
            candidate = to_integer(scale(candidate, multiplier), round_up=True)

        raise ConvergenceFailed(
            f"Could not find an input amount for {target} {to_code} from {from_code} "
            f"in {self.max_attempts} attempts",
            plugin_id=self.plugin_id, from_code=from_code, to_code=to_code,
        )
