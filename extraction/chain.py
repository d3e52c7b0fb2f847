from __future__ import annotations

import logging
from typing import Callable, TypeVar

logger = logging.getLogger(__name__)

T = TypeVar("T")


def first_match(strategies: list[Callable[[str], T | None]], markup: str) -> T | None:
    """Run strategies in order and return the first non-None result."""
    for strategy in strategies:
        value = strategy(markup)
        if value is not None:
            logger.debug(f"Strategy {strategy.__name__} matched", extra={"strategy": strategy.__name__})
            return value
    return None
