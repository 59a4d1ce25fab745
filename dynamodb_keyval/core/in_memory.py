"""In-memory backend implementation."""

import logging
import threading
from typing import Any, Dict, Optional, Tuple

from ..codec.attributes import AttributeMap
from ..codec.keys import DEFAULT_PARTITION_ATTRIBUTE, DEFAULT_SORT_ATTRIBUTE
from ..exceptions import NotFoundError
from .backend import Backend, Key, QueryPage

logger = logging.getLogger(__name__)


class InMemoryBackend(Backend):
    """Dict-backed backend for local development and tests.

    Items are ordered by sort key within a partition, like a DynamoDB table
    with a string range key. Queries return pages of ``page_size`` items.
    """

    def __init__(
        self,
        table_name: str = "in-memory",
        partition_attribute: str = DEFAULT_PARTITION_ATTRIBUTE,
        sort_attribute: str = DEFAULT_SORT_ATTRIBUTE,
        page_size: Optional[int] = None
    ) -> None:
        if page_size is not None and page_size <= 0:
            raise ValueError("page_size must be a positive integer")
        self.table_name = table_name
        self.partition_attribute = partition_attribute
        self.sort_attribute = sort_attribute
        self.page_size = page_size
        self._store: Dict[Tuple[str, str], AttributeMap] = {}
        self._lock = threading.Lock()

    def _slot(self, key: Key) -> Tuple[str, str]:
        return key[self.partition_attribute], key[self.sort_attribute]

    def put_item(self, key: Key, attributes: AttributeMap) -> None:
        with self._lock:
            self._store[self._slot(key)] = {n: av for n, av in attributes.items() if not av.is_absent}

    def get_item(self, key: Key) -> Optional[AttributeMap]:
        with self._lock:
            item = self._store.get(self._slot(key))
            return dict(item) if item is not None else None

    def update_item(self, key: Key, attributes: AttributeMap, must_exist: bool = False) -> None:
        slot = self._slot(key)
        with self._lock:
            if slot not in self._store:
                if must_exist:
                    raise NotFoundError(self.table_name, key)
                self._store[slot] = {}
            self._store[slot].update((n, av) for n, av in attributes.items() if not av.is_absent)

    def delete_item(self, key: Key) -> None:
        with self._lock:
            _ = self._store.pop(self._slot(key), None)

    def query_page(
        self,
        partition: str,
        sort_prefix: Optional[str] = None,
        exclusive_start_key: Optional[Dict[str, Any]] = None
    ) -> QueryPage:
        after = exclusive_start_key[self.sort_attribute] if exclusive_start_key else None
        with self._lock:
            matching = sorted(
                (sort, dict(item)) for (part, sort), item in self._store.items()
                if part == partition
                and (not sort_prefix or sort.startswith(sort_prefix))
                and (after is None or sort > after)
            )

        if self.page_size is None or len(matching) <= self.page_size:
            return QueryPage([item for _, item in matching], None)

        page = matching[:self.page_size]
        last_sort = page[-1][0]
        logger.debug(f"Query page on {self.table_name} ends at {last_sort!r}")
        return QueryPage(
            [item for _, item in page],
            {self.partition_attribute: partition, self.sort_attribute: last_sort}
        )
