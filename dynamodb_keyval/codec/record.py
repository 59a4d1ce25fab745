"""
Record Codec

Converts between a pydantic record and a sparse attribute map.

Default mapping, per field:
- the attribute name is the field's alias, or its name
- the expected attribute kind is derived from the annotation
  (str/datetime/date -> STRING, int/float/Decimal -> NUMBER, bytes -> BINARY,
  bool -> BOOLEAN, Enum -> kind of its values, Optional[X] -> kind of X)
- a field holding its zero value (None, "", b"", 0, False) is omitted on
  encode; on decode a missing attribute resets the field to the zero value
  of its type (None when optional; the declared default for enums and
  datetimes, which have no zero)

Custom field encoders override the default mapping in both directions. They
are registered once per record type, either for a single field or for a group
of fields folded into one attribute (see ``KeyCodec``).

Example:
    codec = RecordCodec(Person).with_key("org", "id")
    attributes = codec.encode(person)
    person = codec.decode_new(attributes)
"""

import logging
import types
from datetime import date, datetime
from decimal import Decimal
from enum import Enum
from typing import Any, Callable, Dict, Generic, Mapping, NamedTuple, Optional, Sequence, Tuple, Type, TypeVar, Union, get_args, get_origin

from pydantic import BaseModel, TypeAdapter
from pydantic import ValidationError as PydanticValidationError

from ..exceptions import SchemaMismatchError, ValidationError
from .attributes import ABSENT, AttributeKind, AttributeMap, AttributeValue

T = TypeVar('T', bound=BaseModel)

logger = logging.getLogger(__name__)


class FieldEncoder(NamedTuple):
    """Encode/decode function pair for a custom-encoded field.

    For a single field, ``encode`` receives the field value and ``decode``
    returns it. For a field group, ``encode`` receives a tuple of values in
    group order and ``decode`` returns a tuple of the same length.
    Returning ``ABSENT`` from ``encode`` omits the attribute.
    """

    encode: Callable[[Any], AttributeValue]
    decode: Callable[[AttributeValue], Any]


class _Binding(NamedTuple):
    attribute: str
    fields: Tuple[str, ...]
    encoder: FieldEncoder
    grouped: bool


def kind_for_annotation(annotation: Any) -> Optional[AttributeKind]:
    """Return the attribute kind a field annotation maps to, or None if unsupported."""
    origin = get_origin(annotation)
    if origin is Union or origin is types.UnionType:
        args = [arg for arg in get_args(annotation) if arg is not type(None)]
        if len(args) != 1:
            return None
        return kind_for_annotation(args[0])

    if not isinstance(annotation, type):
        return None
    if issubclass(annotation, Enum):
        members = list(annotation)
        return kind_for_annotation(type(members[0].value)) if members else None
    if issubclass(annotation, bool):
        return AttributeKind.BOOLEAN
    if issubclass(annotation, (int, float, Decimal)):
        return AttributeKind.NUMBER
    if issubclass(annotation, (bytes, bytearray)):
        return AttributeKind.BINARY
    if issubclass(annotation, (str, datetime, date)):
        return AttributeKind.STRING
    return None


def _unwrap_optional(annotation: Any) -> Tuple[Any, bool]:
    """Split Optional[X] into (X, True); any other annotation into (itself, False)."""
    origin = get_origin(annotation)
    if origin is Union or origin is types.UnionType:
        args = get_args(annotation)
        if type(None) in args:
            rest = [arg for arg in args if arg is not type(None)]
            return (rest[0] if len(rest) == 1 else annotation), True
    return annotation, False


def is_zero(value: Any) -> bool:
    """Return True when a value is the empty value of its type."""
    if value is None or value is False:
        return True
    if isinstance(value, (int, float, Decimal)) and not isinstance(value, bool):
        return value == 0
    if isinstance(value, (str, bytes, bytearray)):
        return len(value) == 0
    return False


class _FieldSpec:
    """Default mapping of one model field."""

    def __init__(self, name: str, field_info):
        self.name = name
        self.attribute = field_info.alias or name
        self.annotation = field_info.annotation
        self.kind = kind_for_annotation(self.annotation)
        self._field_info = field_info
        self._adapter = None

    @property
    def adapter(self) -> TypeAdapter:
        if self._adapter is None:
            self._adapter = TypeAdapter(self.annotation)
        return self._adapter

    def zero_value(self) -> Any:
        """Value a field takes when its attribute is missing.

        The zero of its kind when the type accepts one (None for optional
        fields), else the declared default (enums, datetimes, custom types).
        """
        if self.kind is not None:
            base, nullable = _unwrap_optional(self.annotation)
            if nullable:
                return None
            if not issubclass(base, (Enum, datetime, date)):
                return base()
        if not self._field_info.is_required():
            return self._field_info.get_default(call_default_factory=True)
        return None

    def is_omitted(self, value: Any) -> bool:
        return is_zero(value)

    def require_kind(self) -> AttributeKind:
        if self.kind is None:
            raise ValidationError(
                f"Field '{self.name}' has unsupported annotation {self.annotation!r}; register a custom FieldEncoder",
                {self.name: repr(self.annotation)}
            )
        return self.kind

    def encode(self, value: Any) -> AttributeValue:
        kind = self.require_kind()
        if isinstance(value, Enum):
            value = value.value
        if kind is AttributeKind.STRING:
            if isinstance(value, (datetime, date)):
                return AttributeValue.string(value.isoformat())
            return AttributeValue.string(value)
        if kind is AttributeKind.NUMBER:
            return AttributeValue.number(value)
        if kind is AttributeKind.BINARY:
            return AttributeValue.binary(value)
        return AttributeValue.boolean(value)

    def decode(self, av: AttributeValue) -> Any:
        kind = self.require_kind()
        if av.kind is not kind:
            raise SchemaMismatchError(
                f"Attribute '{self.attribute}' holds {av.kind.name}, field '{self.name}' expects {kind.name}",
                field=self.name,
                expected=kind.name,
                actual=av.kind.name,
            )
        try:
            return self.adapter.validate_python(av.value)
        except PydanticValidationError as e:
            raise SchemaMismatchError(
                f"Attribute '{self.attribute}' cannot be decoded into field '{self.name}': {e}",
                field=self.name,
                expected=repr(self.annotation),
                actual=av.kind.name,
                original_error=e,
            ) from e


class RecordCodec(Generic[T]):
    """Attribute codec for one pydantic record type.

    Built once per type at startup and read-only afterwards; safe to share
    between threads once registration is complete.
    """

    def __init__(self, model: Type[T]):
        """Initialize codec for a record type.

        Args:
            model: Pydantic model class of the record

        Raises:
            ValidationError: If model is not a pydantic model class
        """
        if not (isinstance(model, type) and issubclass(model, BaseModel)):
            raise ValidationError(f"Record type must be a pydantic BaseModel subclass, got {model!r}")

        self.model = model
        self.key_codec = None
        self._specs: Dict[str, _FieldSpec] = {
            name: _FieldSpec(name, info) for name, info in model.model_fields.items()
        }
        self._bindings: Dict[str, _Binding] = {}
        self._bound_fields: Dict[str, str] = {}

    @property
    def fields(self) -> Tuple[str, ...]:
        return tuple(self._specs)

    def attribute_name(self, field: str) -> str:
        """Return the attribute name a field is stored under."""
        if field in self._bound_fields:
            return self._bound_fields[field]
        return self._spec(field).attribute

    def _spec(self, field: str) -> _FieldSpec:
        try:
            return self._specs[field]
        except KeyError:
            raise ValidationError(
                f"Unknown field '{field}' for {self.model.__name__}. Available fields: {list(self._specs)}"
            ) from None

    def register(self, field: str, encoder: FieldEncoder, attribute: Optional[str] = None) -> 'RecordCodec[T]':
        """Register a custom encoder for a single field.

        Args:
            field: Field name
            encoder: Encode/decode function pair
            attribute: Attribute name (defaults to the field's alias or name)

        Returns:
            This codec, for chaining
        """
        spec = self._spec(field)
        return self._bind(_Binding(attribute or spec.attribute, (field,), encoder, grouped=False))

    def register_group(self, attribute: str, fields: Sequence[str], encoder: FieldEncoder) -> 'RecordCodec[T]':
        """Register a custom encoder folding several fields into one attribute."""
        fields = tuple(fields)
        if not fields:
            raise ValidationError(f"Attribute '{attribute}' must be bound to at least one field")
        for field in fields:
            self._spec(field)
        return self._bind(_Binding(attribute, fields, encoder, grouped=True))

    def _bind(self, binding: _Binding) -> 'RecordCodec[T]':
        taken = [f for f in binding.fields if f in self._bound_fields]
        if taken:
            raise ValidationError(f"Fields already bound to a custom encoder: {taken}")
        if binding.attribute in self._bindings:
            raise ValidationError(f"Attribute '{binding.attribute}' already bound to a custom encoder")

        self._bindings[binding.attribute] = binding
        for field in binding.fields:
            self._bound_fields[field] = binding.attribute
        logger.debug(f"Bound {self.model.__name__}{list(binding.fields)} to attribute '{binding.attribute}'")
        return self

    def with_key(self, partition: Union[str, Sequence[str]], sort: Union[str, Sequence[str]], **kwargs: Any) -> 'RecordCodec[T]':
        """Declare the composite key fields and install their encoders.

        Args:
            partition: Field name, or field names, forming the partition key
            sort: Field name, or field names, forming the sort key
            **kwargs: partition_attribute, sort_attribute, separator

        Returns:
            This codec, for chaining
        """
        # Imported here to avoid a circular import (keys -> record)
        from .keys import KeyCodec
        KeyCodec(self.model, partition, sort, **kwargs).install(self)
        return self

    def encode(self, record: T) -> AttributeMap:
        """Encode a record into a sparse attribute map."""
        if not isinstance(record, self.model):
            raise ValidationError(f"Expected {self.model.__name__}, got {type(record).__name__}")

        attributes: AttributeMap = {}
        for binding in self._bindings.values():
            values = tuple(getattr(record, f) for f in binding.fields)
            av = binding.encoder.encode(values if binding.grouped else values[0])
            if not av.is_absent:
                attributes[binding.attribute] = av

        for name, spec in self._specs.items():
            if name in self._bound_fields:
                continue
            value = getattr(record, name, None)
            if spec.is_omitted(value):
                continue
            attributes[spec.attribute] = spec.encode(value)

        return attributes

    def decode(self, attributes: Mapping[str, AttributeValue], record: T) -> T:
        """Decode an attribute map into an existing record, in place.

        Fields without a matching attribute are reset to their zero value.
        Attributes unknown to the record type are ignored.

        Raises:
            SchemaMismatchError: If a stored shape conflicts with a field's type
        """
        values: Dict[str, Any] = {}

        for binding in self._bindings.values():
            av = attributes.get(binding.attribute, ABSENT)
            if av.is_absent:
                continue
            try:
                decoded = binding.encoder.decode(av)
            except (TypeError, ValueError) as e:
                raise SchemaMismatchError(
                    f"Custom decoder for attribute '{binding.attribute}' failed: {e}",
                    field=",".join(binding.fields),
                    actual=av.kind.name,
                    original_error=e,
                ) from e
            if not binding.grouped:
                decoded = (decoded,)
            if len(decoded) != len(binding.fields):
                raise SchemaMismatchError(
                    f"Attribute '{binding.attribute}' decoded into {len(decoded)} values, expected {len(binding.fields)}",
                    field=",".join(binding.fields),
                    expected=str(len(binding.fields)),
                    actual=str(len(decoded)),
                )
            values.update(zip(binding.fields, decoded))

        for name, spec in self._specs.items():
            if name in self._bound_fields:
                continue
            av = attributes.get(spec.attribute, ABSENT)
            if not av.is_absent:
                values[name] = spec.decode(av)

        for name, spec in self._specs.items():
            setattr(record, name, values[name] if name in values else spec.zero_value())
        return record

    def decode_new(self, attributes: Mapping[str, AttributeValue]) -> T:
        """Decode an attribute map into a fresh record."""
        return self.decode(attributes, self.model.model_construct())
