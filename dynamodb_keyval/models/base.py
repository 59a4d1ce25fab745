"""
Identity Contract and Record Base

Every storable record type exposes ``identity()``, returning the
(partition, sort) key strings derived from its own field values. This is the
only coupling point between a domain type and the storage layer's notion of
key: it must be stable (same field values, same key strings) and total for a
fully-populated record.

Two ways to satisfy the contract:

1. Implement it on any pydantic model (structural typing):

   ```python
   class Person(BaseModel):
       org: str = ""
       id: str = ""

       def identity(self):
           return self.org, self.id

   codec = RecordCodec(Person).with_key("org", "id")
   ```

2. Subclass ``KeyValModel`` and declare the key fields in a ``Meta`` class.
   The record codec is built from ``Meta`` on first use and ``identity()``
   follows it:

   ```python
   class Run(KeyValModel):
       pipeline_id: str = ""
       day: str = ""
       run_id: str = ""

       class Meta:
           partition_key = "pipeline_id"
           sort_key = ("day", "run_id")
           partition_attribute = "pk"   # optional, default "prefix"
           sort_attribute = "sk"        # optional, default "suffix"
           separator = "#"              # optional

   codec = Run.record_codec()
   ```
"""

import threading
from typing import Any, Dict, Protocol, Tuple, runtime_checkable

from pydantic import BaseModel, ConfigDict

from ..codec.record import RecordCodec
from ..exceptions import ValidationError

_META_KEY_OPTIONS = ("partition_attribute", "sort_attribute", "separator")

_codecs: Dict[type, RecordCodec] = {}
_codecs_lock = threading.Lock()


@runtime_checkable
class Identity(Protocol):
    """Capability of producing a (partition, sort) key from field values."""

    def identity(self) -> Tuple[str, str]:
        ...


def extract_key_metadata(model_class: type) -> Dict[str, Any]:
    """Read the key declaration from a model's Meta class.

    Raises:
        ValidationError: If Meta is missing or does not name both key parts
    """
    meta = getattr(model_class, 'Meta', None)
    if meta is None:
        raise ValidationError(f"Model {model_class.__name__} must have a Meta class with partition_key and sort_key")

    partition_key = getattr(meta, 'partition_key', None)
    sort_key = getattr(meta, 'sort_key', None)
    if not partition_key or not sort_key:
        raise ValidationError(f"Model {model_class.__name__}.Meta must define partition_key and sort_key")

    options = {name: getattr(meta, name) for name in _META_KEY_OPTIONS if hasattr(meta, name)}
    return {'partition_key': partition_key, 'sort_key': sort_key, 'options': options}


class KeyValModel(BaseModel):
    """
    Base model for records whose key is declared in their Meta class.

    Key fields are plain model fields; the key codec built from ``Meta`` folds
    them into the (partition, sort) strings. Fields are looked up by name,
    aliases are accepted on construction.
    """

    model_config = ConfigDict(populate_by_name=True)

    @classmethod
    def record_codec(cls) -> RecordCodec:
        """Return the record codec of this type, built once from Meta."""
        codec = _codecs.get(cls)
        if codec is None:
            metadata = extract_key_metadata(cls)
            with _codecs_lock:
                codec = _codecs.get(cls)
                if codec is None:
                    codec = RecordCodec(cls).with_key(
                        metadata['partition_key'], metadata['sort_key'], **metadata['options']
                    )
                    _codecs[cls] = codec
        return codec

    def identity(self) -> Tuple[str, str]:
        return type(self).record_codec().key_codec.encode_key(self)
