"""
cache.py – Fetch-once cell for venue metadata.

Market lists, asset lists and the signing config never change for the
lifetime of a client, so each is fetched on first use and kept.  There
is no lock: coroutines racing on an empty cell may each fetch, and the
first result to land is the one every caller sees afterwards.  A fetch
that fails, or returns a value the cell treats as empty, leaves the cell
empty so the next call fetches again.
"""

from __future__ import annotations

import logging
from collections.abc import Awaitable, Sized
from typing import Callable, Generic, Optional, TypeVar

logger = logging.getLogger(__name__)

T = TypeVar("T")


def no_items(value: Sized) -> bool:
    """Emptiness predicate for list-valued cells."""
    return len(value) == 0


class FetchOnce(Generic[T]):
    """
    Holds the result of the first completed fetch.

    Parameters
    ----------
    fetch    : coroutine function producing the value
    name     : label used in log messages
    is_empty : predicate marking a fetched value as not worth keeping
               (default: every value is kept)
    """

    def __init__(
        self,
        fetch: Callable[[], Awaitable[T]],
        name: str = "value",
        is_empty: Optional[Callable[[T], bool]] = None,
    ) -> None:
        self._fetch    = fetch
        self._name     = name
        self._is_empty = is_empty
        self._value: Optional[T] = None
        self._populated = False

    @property
    def populated(self) -> bool:
        return self._populated

    def peek(self) -> Optional[T]:
        """Current value without fetching (None while empty)."""
        return self._value

    async def get(self) -> T:
        if self._populated:
            return self._value  # type: ignore[return-value]

        value = await self._fetch()
        # Another coroutine may have finished first; keep its result.
        if self._populated:
            return self._value  # type: ignore[return-value]
        if self._is_empty is not None and self._is_empty(value):
            logger.warning("Fetched %s is empty; not caching", self._name)
            return value

        self._value     = value
        self._populated = True
        logger.info("Cached %s", self._name)
        return value
