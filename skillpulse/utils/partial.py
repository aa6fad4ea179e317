"""
Partial-failure combinator.

Scraping a profession fans out into many independent requests (one per result
page, one per vacancy). Losing some of them is acceptable; the run keeps
whatever was gathered. gather_partial() applies a function to every item and
keeps successes and failures apart so callers can log, count or test them.
"""

from dataclasses import dataclass, field
from typing import Any, Callable, Iterable, List, Tuple, Type

from skillpulse.utils.context import Cancelled


@dataclass
class Gathered:
    """Successful results alongside the (item, exception) pairs that failed."""

    values: List[Any] = field(default_factory=list)
    errors: List[Tuple[Any, Exception]] = field(default_factory=list)

    @property
    def attempted(self) -> int:
        return len(self.values) + len(self.errors)


def gather_partial(
    items: Iterable[Any],
    fn: Callable[[Any], Any],
    stop_on: Tuple[Type[BaseException], ...] = (Cancelled,),
) -> Gathered:
    """
    Call fn(item) for every item, collecting errors instead of stopping.

    Args:
        items: Inputs to process, in order
        fn: Callable applied to each item
        stop_on: Exception types that are re-raised instead of collected
                 (cancellation must abort the caller, not be skipped over)

    Returns:
        Gathered with values in input order and the failed items with their errors
    """
    gathered = Gathered()
    for item in items:
        try:
            gathered.values.append(fn(item))
        except stop_on:
            raise
        except Exception as e:
            gathered.errors.append((item, e))
    return gathered
