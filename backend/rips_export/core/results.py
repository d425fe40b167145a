"""Partial-failure batch helpers: per-item outcomes folded into successes and errors."""
from __future__ import annotations

from dataclasses import dataclass
from functools import reduce
from typing import Callable, Generic, Iterable, TypeVar

ItemT = TypeVar("ItemT")
ValueT = TypeVar("ValueT")


@dataclass(frozen=True)
class ItemOutcome(Generic[ValueT]):
    """Result of processing one batch item: a value or an error message."""

    value: ValueT | None = None
    error: str | None = None

    @property
    def ok(self) -> bool:
        return self.error is None


@dataclass(frozen=True)
class FoldResult(Generic[ValueT]):
    successes: tuple[ValueT, ...] = ()
    errors: tuple[str, ...] = ()


def attempt(
    transform: Callable[[ItemT], ValueT],
    item: ItemT,
    describe: Callable[[ItemT], str],
) -> ItemOutcome[ValueT]:
    """Run ``transform`` on one item, turning a raised exception into an error outcome."""
    try:
        return ItemOutcome(value=transform(item))
    except Exception as err:
        return ItemOutcome(error=f"{describe(item)}: {err}")


def _step(acc: FoldResult[ValueT], outcome: ItemOutcome[ValueT]) -> FoldResult[ValueT]:
    if outcome.ok:
        return FoldResult(successes=(*acc.successes, outcome.value), errors=acc.errors)  # type: ignore[arg-type]
    return FoldResult(successes=acc.successes, errors=(*acc.errors, outcome.error))  # type: ignore[arg-type]


def fold_outcomes(outcomes: Iterable[ItemOutcome[ValueT]]) -> FoldResult[ValueT]:
    """Accumulate outcomes in order; successes and errors keep their batch order."""
    return reduce(_step, outcomes, FoldResult())


def fold_batch(
    items: Iterable[ItemT],
    transform: Callable[[ItemT], ValueT],
    describe: Callable[[ItemT], str],
) -> FoldResult[ValueT]:
    return fold_outcomes(attempt(transform, item, describe) for item in items)

