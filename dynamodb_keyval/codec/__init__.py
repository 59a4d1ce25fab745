"""
Codecs between typed records and generic attribute maps.

- attributes: tagged attribute values and native item conversion
- record: per-type attribute codec with custom field encoders
- keys: composite-key codec folding key fields into the physical key
"""

from .attributes import ABSENT, AttributeKind, AttributeMap, AttributeValue, from_item, to_item
from .keys import KeyCodec, key_text
from .record import FieldEncoder, RecordCodec, is_zero, kind_for_annotation

__all__ = [
    "ABSENT",
    "AttributeKind",
    "AttributeMap",
    "AttributeValue",
    "FieldEncoder",
    "KeyCodec",
    "RecordCodec",
    "from_item",
    "is_zero",
    "key_text",
    "kind_for_annotation",
    "to_item",
]
