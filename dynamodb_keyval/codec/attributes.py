"""
Generic Attribute Values

The wire-agnostic intermediate representation between a record and a backend.
An attribute value is a tagged variant: the ``kind`` tells which shape the
``value`` holds, and every conversion matches on the kind exhaustively.

    STRING  -> str
    NUMBER  -> Decimal (DynamoDB numbers never travel as float)
    BINARY  -> bytes
    BOOLEAN -> bool
    ABSENT  -> no value, the attribute is not written

An ``AttributeMap`` is a sparse ``Dict[str, AttributeValue]`` keyed by
attribute name. ``to_item``/``from_item`` convert it to and from the native
values used by the boto3 DynamoDB resource layer.
"""

import math
from decimal import Decimal
from enum import Enum
from typing import Any, Dict, Mapping, NamedTuple, Optional

from boto3.dynamodb.types import Binary

from ..exceptions import SchemaMismatchError, ValidationError


class AttributeKind(str, Enum):
    """Shape of a generic attribute value."""

    STRING = "S"
    NUMBER = "N"
    BINARY = "B"
    BOOLEAN = "BOOL"
    ABSENT = "ABSENT"


class AttributeValue(NamedTuple):
    """Immutable tagged attribute value."""

    kind: AttributeKind
    value: Any = None

    @classmethod
    def string(cls, value: str) -> 'AttributeValue':
        return cls(AttributeKind.STRING, str(value))

    @classmethod
    def number(cls, value: Any) -> 'AttributeValue':
        """Build a NUMBER value from int, float or Decimal.

        Floats go through their shortest repr so 0.1 stays Decimal('0.1').
        """
        if isinstance(value, bool):
            raise ValidationError(f"Boolean {value!r} is not a number attribute")
        if isinstance(value, float):
            if not math.isfinite(value):
                raise ValidationError(f"Non-finite number {value!r} cannot be stored")
            return cls(AttributeKind.NUMBER, Decimal(repr(value)))
        if isinstance(value, Decimal):
            if not value.is_finite():
                raise ValidationError(f"Non-finite number {value!r} cannot be stored")
            return cls(AttributeKind.NUMBER, value)
        return cls(AttributeKind.NUMBER, Decimal(value))

    @classmethod
    def binary(cls, value: Any) -> 'AttributeValue':
        return cls(AttributeKind.BINARY, bytes(value))

    @classmethod
    def boolean(cls, value: bool) -> 'AttributeValue':
        return cls(AttributeKind.BOOLEAN, bool(value))

    @property
    def is_absent(self) -> bool:
        return self.kind is AttributeKind.ABSENT

    def to_native(self) -> Any:
        """Convert to the value the boto3 resource layer expects."""
        if self.kind is AttributeKind.STRING:
            return self.value
        if self.kind is AttributeKind.NUMBER:
            return self.value
        if self.kind is AttributeKind.BINARY:
            return Binary(self.value)
        if self.kind is AttributeKind.BOOLEAN:
            return self.value
        raise ValidationError("Absent attribute has no native value")

    @classmethod
    def from_native(cls, value: Any, name: Optional[str] = None) -> 'AttributeValue':
        """Convert a value returned by the boto3 resource layer.

        Raises:
            SchemaMismatchError: If the stored shape is not a supported scalar or blob
        """
        if isinstance(value, bool):
            return cls.boolean(value)
        if isinstance(value, str):
            return cls(AttributeKind.STRING, value)
        if isinstance(value, (int, Decimal)):
            return cls.number(value)
        if isinstance(value, Binary):
            return cls(AttributeKind.BINARY, bytes(value.value))
        if isinstance(value, (bytes, bytearray)):
            return cls(AttributeKind.BINARY, bytes(value))
        raise SchemaMismatchError(
            f"Unsupported stored attribute shape for '{name}': {type(value).__name__}",
            field=name,
            expected="string, number, binary or boolean",
            actual=type(value).__name__,
        )


ABSENT = AttributeValue(AttributeKind.ABSENT)

AttributeMap = Dict[str, AttributeValue]


def to_item(attributes: Mapping[str, AttributeValue]) -> Dict[str, Any]:
    """Convert an attribute map to a native DynamoDB item, dropping absent entries."""
    return {name: av.to_native() for name, av in attributes.items() if not av.is_absent}


def from_item(item: Mapping[str, Any]) -> AttributeMap:
    """Convert a native DynamoDB item to an attribute map."""
    return {name: AttributeValue.from_native(value, name) for name, value in item.items()}
