"""
Generic Key-Value Store Client

Put, Get, Update, Remove and Match over any record type that satisfies the
identity contract and has a record codec with a key declaration.

    codec = RecordCodec(Person).with_key("org", "id")
    store = create_keyval(DynamoDBConfig.from_env(), "people", codec)

    store.put(Person(org="test:", id="person:1", name="Verner Pleishner"))
    person = store.get(Person(org="test:", id="person:1"))
    store.update(Person(org="test:", id="person:1", address="Viktoriastrasse 37"))
    store.match(Person(org="test:")).fmap(print)
    store.remove(Person(org="test:", id="person:1"))

Each call is a single request against the backend. The client holds no
mutable state beyond the read-only codec, so one instance may serve
concurrent callers.
"""

import logging
from typing import Any, Dict, Generic, Optional, TypeVar

from pydantic import BaseModel

from ..codec.attributes import AttributeMap, AttributeValue
from ..codec.record import RecordCodec
from ..config import DynamoDBConfig
from ..core.backend import Backend, Key, QueryPage
from ..core.table_gateway import create_table_gateway
from ..exceptions import NotFoundError, ValidationError
from ..models.base import Identity
from .sequence import ResultSequence

T = TypeVar('T', bound=BaseModel)

logger = logging.getLogger(__name__)


class KeyVal(Generic[T]):
    """
    Typed key-value client for one record type over one backend.

    Errors:
        NotFoundError: get() on a key with no stored item; update() on a
            missing key when strict_update is enabled
        IOFailureError: any backend or transport failure, never retried here
        SchemaMismatchError: stored attributes incompatible with the record type
        ValidationError: record without identity or with an empty partition key
    """

    def __init__(self, backend: Backend, codec: RecordCodec[T], strict_update: bool = False):
        """Initialize the client.

        Args:
            backend: Storage backend
            codec: Record codec with an installed key codec
            strict_update: Fail update() on missing keys instead of creating them
        """
        if codec.key_codec is None:
            raise ValidationError(
                f"Codec for {codec.model.__name__} declares no key fields; build it with RecordCodec.with_key()"
            )
        key_codec = codec.key_codec
        if (backend.partition_attribute, backend.sort_attribute) != (key_codec.partition_attribute, key_codec.sort_attribute):
            raise ValidationError(
                f"Backend {backend.table_name} keys on ({backend.partition_attribute}, {backend.sort_attribute}) "
                f"but {codec.model.__name__} declares ({key_codec.partition_attribute}, {key_codec.sort_attribute})"
            )
        self.backend = backend
        self.codec = codec
        self.key_codec = key_codec
        self.strict_update = strict_update

    def _identity(self, record: Any):
        if not isinstance(record, Identity):
            raise ValidationError(f"{type(record).__name__} does not implement identity()")
        partition, sort = record.identity()
        if not partition:
            raise ValidationError(f"{type(record).__name__} has an empty partition key")
        return partition, sort

    def _prefix(self, record: Any):
        if not isinstance(record, self.codec.model):
            raise ValidationError(f"Expected {self.codec.model.__name__}, got {type(record).__name__}")
        partition, sort_prefix = self.key_codec.encode_prefix(record)
        if not partition:
            raise ValidationError(f"{type(record).__name__} has an empty partition key")
        return partition, sort_prefix

    def _key(self, record: T) -> Key:
        partition, sort = self._identity(record)
        return self.key_codec.key_attributes(partition, sort)

    def put(self, record: T) -> None:
        """Create or overwrite the stored record under its key."""
        key = self._key(record)
        attributes = self.codec.encode(record)
        attributes.update({name: AttributeValue.string(value) for name, value in key.items()})
        self.backend.put_item(key, attributes)

    def get(self, record: T) -> T:
        """Read the record stored under the key of ``record``.

        The given record is populated in place and returned.

        Raises:
            NotFoundError: If nothing is stored under the key
        """
        key = self._key(record)
        attributes = self.backend.get_item(key)
        if attributes is None:
            raise NotFoundError(self.backend.table_name, key)
        return self.codec.decode(attributes, record)

    def update(self, record: T) -> None:
        """Merge the populated (non-zero) fields of ``record`` into the stored record.

        Unset fields are never overwritten. The record itself is left as
        given; the merge happens at the backend. A missing key creates the
        item unless strict_update is enabled.
        """
        key = self._key(record)
        attributes = self._without_key(self.codec.encode(record), key)
        self.backend.update_item(key, attributes, must_exist=self.strict_update)

    def remove(self, record: T) -> None:
        """Delete the record stored under the key of ``record``; absence is not an error."""
        self.backend.delete_item(self._key(record))

    def match(self, prefix: T) -> ResultSequence[T]:
        """Query all records sharing the partition key of ``prefix``.

        The query prefix is folded from the declared key fields of ``prefix``:
        the full partition key, and the leading sort fields that are set.
        When that sort prefix is non-empty, only records whose sort key begins
        with it are matched. The first page is requested immediately, so a
        failing query raises from here.

        Returns:
            Lazy sequence of fresh records in backend order
        """
        partition, sort = self._prefix(prefix)
        sort_prefix = sort or None

        def fetch_page(last_key: Optional[Dict[str, Any]]) -> QueryPage:
            return self.backend.query_page(partition, sort_prefix, last_key)

        first_page = fetch_page(None)
        logger.debug(f"Match on {self.backend.table_name} for ({partition!r}, {sort_prefix!r})")
        return ResultSequence(first_page, fetch_page, self.codec.decode_new)

    @staticmethod
    def _without_key(attributes: AttributeMap, key: Key) -> AttributeMap:
        return {name: av for name, av in attributes.items() if name not in key}


def create_keyval(config: DynamoDBConfig, table_name: str, codec: RecordCodec[T]) -> KeyVal[T]:
    """
    Factory function to create a DynamoDB backed KeyVal client.

    Args:
        config: DynamoDB configuration
        table_name: Base table name (prefixed by config.get_table_name())
        codec: Record codec with an installed key codec

    Returns:
        Configured KeyVal client
    """
    if codec.key_codec is None:
        raise ValidationError(
            f"Codec for {codec.model.__name__} declares no key fields; build it with RecordCodec.with_key()"
        )
    gateway = create_table_gateway(
        config,
        table_name,
        codec.key_codec.partition_attribute,
        codec.key_codec.sort_attribute
    )
    return KeyVal(gateway, codec, strict_update=config.strict_update)
