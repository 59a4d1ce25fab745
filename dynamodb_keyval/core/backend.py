"""Backend interface definitions."""

from abc import ABC, abstractmethod
from typing import Any, Dict, List, NamedTuple, Optional

from ..codec.attributes import AttributeMap

Key = Dict[str, str]


class QueryPage(NamedTuple):
    """One page of a prefix query, in backend order.

    ``last_key`` is the continuation token for the next page, or None when the
    query is complete.
    """

    items: List[AttributeMap]
    last_key: Optional[Dict[str, Any]] = None


class Backend(ABC):
    """Storage primitives the key-value client requires.

    Every method raises ``IOFailureError`` when the backend or its transport
    reports a failure. No method retries.
    """

    table_name: str
    partition_attribute: str
    sort_attribute: str

    @abstractmethod
    def put_item(self, key: Key, attributes: AttributeMap) -> None:
        """Create or overwrite the item stored under key."""

    @abstractmethod
    def get_item(self, key: Key) -> Optional[AttributeMap]:
        """Return the attributes stored under key, or None when absent."""

    @abstractmethod
    def update_item(self, key: Key, attributes: AttributeMap, must_exist: bool = False) -> None:
        """Merge attributes into the item stored under key.

        Attributes not given are left untouched. When ``must_exist`` is set
        and no item is stored under key, raise ``NotFoundError``; otherwise
        the item is created.
        """

    @abstractmethod
    def delete_item(self, key: Key) -> None:
        """Delete the item stored under key; absence is not an error."""

    @abstractmethod
    def query_page(
        self,
        partition: str,
        sort_prefix: Optional[str] = None,
        exclusive_start_key: Optional[Dict[str, Any]] = None
    ) -> QueryPage:
        """Return one page of items sharing partition, ordered by sort key.

        Args:
            partition: Partition key value
            sort_prefix: Only items whose sort key begins with this value
            exclusive_start_key: Continuation token from the previous page
        """
