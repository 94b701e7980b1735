"""Ordered fallback between alternative quoting strategies."""

import logging
from dataclasses import dataclass
from typing import Awaitable, Callable, Generic, Optional, Sequence, TypeVar

from swapquote.errors import SwapError

logger = logging.getLogger(__name__)

T = TypeVar("T")


@dataclass(frozen=True)
class Outcome(Generic[T]):
    """Result of one strategy: a value or the error it failed with."""

    name: str
    value: Optional[T] = None
    error: Optional[SwapError] = None

    @property
    def ok(self) -> bool:
        return self.error is None


@dataclass(frozen=True)
class Strategy(Generic[T]):
    name: str
    run: Callable[[], Awaitable[T]]


async def run_strategy(strategy: Strategy[T]) -> Outcome[T]:
    """Run a strategy, capturing a ``SwapError`` as its outcome."""
    try:
        return Outcome(name=strategy.name, value=await strategy.run())
    except SwapError as e:
        return Outcome(name=strategy.name, error=e)


async def first_success(strategies: Sequence[Strategy[T]]) -> T:
    """Evaluate strategies in order and return the first success.

    When every strategy fails, the first strategy's error is raised: it is
    the canonical reason (e.g. fixed-rate before floating-rate).
    """
    if not strategies:
        raise ValueError("first_success requires at least one strategy")

    outcomes: list[Outcome[T]] = []
    for strategy in strategies:
        outcome = await run_strategy(strategy)
        if outcome.ok:
            return outcome.value
        logger.info(f"Strategy '{strategy.name}' failed: {type(outcome.error).__name__}: {outcome.error}")
        outcomes.append(outcome)

    raise outcomes[0].error
