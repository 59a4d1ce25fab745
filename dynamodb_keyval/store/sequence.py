"""
Lazy Result Sequence

A one-shot, forward-only traversal over the pages of a prefix query. The
sequence owns its cursor: the buffered page, the position in it, and the
continuation key of the next page. Pages after the first are fetched only
when traversal moves past the end of the buffered page.

    seq = store.match(Person(org="test:"))
    people = []
    seq.fmap(people.append)

Not restartable and not safe for concurrent consumption.
"""

import logging
from typing import Any, Callable, Dict, Generic, Iterator, List, Optional, TypeVar

from ..codec.attributes import AttributeMap
from ..core.backend import QueryPage

T = TypeVar('T')

logger = logging.getLogger(__name__)


class ResultSequence(Generic[T]):
    """Iterator over query results, decoding each item into a fresh record."""

    def __init__(
        self,
        first_page: QueryPage,
        fetch_page: Callable[[Dict[str, Any]], QueryPage],
        decode: Callable[[AttributeMap], T]
    ):
        """Initialize sequence from an already fetched first page.

        Args:
            first_page: Result of the initial query request
            fetch_page: Fetches the page following a continuation key
            decode: Builds a fresh record from an attribute map
        """
        self._fetch_page = fetch_page
        self._decode = decode
        self._buffer: List[AttributeMap] = []
        self._position = 0
        self._last_key: Optional[Dict[str, Any]] = None
        self.pages_fetched = 0
        self._load(first_page)

    def _load(self, page: QueryPage) -> None:
        self._buffer = list(page.items)
        self._position = 0
        self._last_key = page.last_key
        self.pages_fetched += 1

    def __iter__(self) -> Iterator[T]:
        return self

    def __next__(self) -> T:
        """Return the next record, or raise StopIteration at the end of the results."""
        while self._position >= len(self._buffer):
            if self._last_key is None:
                raise StopIteration
            logger.debug(f"Fetching result page {self.pages_fetched + 1}")
            self._load(self._fetch_page(self._last_key))

        item = self._buffer[self._position]
        self._position += 1
        return self._decode(item)

    def fmap(self, visit: Callable[[T], Any]) -> int:
        """Apply visit to every remaining record in backend order.

        Traversal stops at the first exception raised by ``visit``, by
        decoding or by a page fetch; that exception propagates unchanged.

        Returns:
            Number of records visited
        """
        visited = 0
        for record in self:
            visit(record)
            visited += 1
        return visited
