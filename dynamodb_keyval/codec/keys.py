"""
Composite-Key Codec

Declares which record fields form the partition and sort components of the
physical key, and installs custom field encoders for them into a
``RecordCodec``. Key fields are never omitted by zero-value omission: a
key field holding "" or 0 is still written in its external string form.

Each key component may be folded from several fields. Grouped values are
joined with the separator and unfolded by splitting on it, so every
component except the last must not contain the separator. Prefix queries fold
only the leading sort fields that are set (see ``encode_prefix``).

Example:
    codec = RecordCodec(Person)
    KeyCodec(Person, partition="org", sort="id").install(codec)

    # sort key folded from two fields: "2024-06-01#run-42"
    KeyCodec(Run, partition="pipeline_id", sort=("day", "run_id")).install(codec)
"""

import logging
from datetime import date, datetime
from enum import Enum
from typing import Any, Dict, Generic, Sequence, Tuple, Type, TypeVar, Union

from pydantic import BaseModel, TypeAdapter
from pydantic import ValidationError as PydanticValidationError

from ..exceptions import SchemaMismatchError, ValidationError
from .attributes import AttributeKind, AttributeValue
from .record import FieldEncoder, RecordCodec, is_zero

T = TypeVar('T', bound=BaseModel)

logger = logging.getLogger(__name__)

DEFAULT_PARTITION_ATTRIBUTE = "prefix"
DEFAULT_SORT_ATTRIBUTE = "suffix"
DEFAULT_SEPARATOR = "#"


def _as_fields(fields: Union[str, Sequence[str]]) -> Tuple[str, ...]:
    if isinstance(fields, str):
        return (fields,)
    return tuple(fields)


def key_text(value: Any) -> str:
    """Return the external string form of a key field value."""
    if value is None:
        return ""
    if isinstance(value, Enum):
        value = value.value
    if isinstance(value, bool):
        return str(value).lower()
    if isinstance(value, (datetime, date)):
        return value.isoformat()
    if isinstance(value, (bytes, bytearray)):
        raise ValidationError(f"Binary values cannot be used as key components: {value!r}")
    return str(value)


class KeyCodec(Generic[T]):
    """Maps declared key fields to the two physical key attributes."""

    def __init__(
        self,
        model: Type[T],
        partition: Union[str, Sequence[str]],
        sort: Union[str, Sequence[str]],
        partition_attribute: str = DEFAULT_PARTITION_ATTRIBUTE,
        sort_attribute: str = DEFAULT_SORT_ATTRIBUTE,
        separator: str = DEFAULT_SEPARATOR
    ):
        """Initialize key codec.

        Args:
            model: Pydantic model class of the record
            partition: Field name, or field names in order, of the partition key
            sort: Field name, or field names in order, of the sort key
            partition_attribute: Physical partition key attribute name
            sort_attribute: Physical sort key attribute name
            separator: Joins grouped field values within one component

        Raises:
            ValidationError: If the declaration is inconsistent with the model
        """
        self.model = model
        self.partition_fields = _as_fields(partition)
        self.sort_fields = _as_fields(sort)
        self.partition_attribute = partition_attribute
        self.sort_attribute = sort_attribute
        self.separator = separator

        if not self.partition_fields or not self.sort_fields:
            raise ValidationError("Both partition and sort key must name at least one field")
        if not separator:
            raise ValidationError("Key separator must not be empty")
        if partition_attribute == sort_attribute:
            raise ValidationError(f"Partition and sort attribute must differ, both are '{partition_attribute}'")

        declared = self.partition_fields + self.sort_fields
        unknown = [f for f in declared if f not in model.model_fields]
        if unknown:
            raise ValidationError(
                f"Unknown key fields for {model.__name__}: {unknown}. Available fields: {list(model.model_fields)}"
            )
        duplicated = sorted({f for f in declared if declared.count(f) > 1})
        if duplicated:
            raise ValidationError(f"Key fields declared more than once: {duplicated}")

        self._adapters: Dict[str, TypeAdapter] = {
            name: TypeAdapter(model.model_fields[name].annotation) for name in declared
        }

    @property
    def key_fields(self) -> Tuple[str, ...]:
        return self.partition_fields + self.sort_fields

    def install(self, codec: RecordCodec[T]) -> RecordCodec[T]:
        """Register the key field encoders into a record codec.

        Returns:
            The given codec, now carrying this key codec
        """
        if codec.model is not self.model:
            raise ValidationError(
                f"Key codec for {self.model.__name__} cannot be installed into codec for {codec.model.__name__}"
            )
        codec.register_group(self.partition_attribute, self.partition_fields, self._field_encoder(self.partition_fields))
        codec.register_group(self.sort_attribute, self.sort_fields, self._field_encoder(self.sort_fields))
        codec.key_codec = self
        logger.debug(
            f"Installed key codec for {self.model.__name__}: "
            f"{self.partition_attribute}={list(self.partition_fields)}, {self.sort_attribute}={list(self.sort_fields)}"
        )
        return codec

    def _field_encoder(self, fields: Tuple[str, ...]) -> FieldEncoder:
        def encode(values: Tuple[Any, ...]) -> AttributeValue:
            return AttributeValue.string(self.fold(fields, values))

        def decode(av: AttributeValue) -> Tuple[Any, ...]:
            if av.kind is not AttributeKind.STRING:
                raise SchemaMismatchError(
                    f"Key attribute for {list(fields)} holds {av.kind.name}, expected STRING",
                    field=",".join(fields),
                    expected=AttributeKind.STRING.name,
                    actual=av.kind.name,
                )
            return self.unfold(fields, av.value)

        return FieldEncoder(encode, decode)

    def fold(self, fields: Tuple[str, ...], values: Sequence[Any], complete: bool = True) -> str:
        """Join field values into one key component.

        With ``complete=False`` the values are the leading part of a group,
        so the last of them must not contain the separator either.
        """
        parts = [key_text(v) for v in values]
        checked = parts[:-1] if complete else parts
        for field, part in zip(fields, checked):
            if self.separator in part:
                raise ValidationError(
                    f"Key field '{field}' must not contain separator '{self.separator}': {part!r}",
                    {field: part}
                )
        return self.separator.join(parts)

    def unfold(self, fields: Tuple[str, ...], text: str) -> Tuple[Any, ...]:
        """Split a key component back into typed field values."""
        parts = text.split(self.separator, len(fields) - 1) if len(fields) > 1 else [text]
        if len(parts) != len(fields):
            raise SchemaMismatchError(
                f"Key component {text!r} has {len(parts)} parts, expected {len(fields)} for {list(fields)}",
                field=",".join(fields),
                expected=str(len(fields)),
                actual=str(len(parts)),
            )
        return tuple(self._parse(field, part) for field, part in zip(fields, parts))

    def _parse(self, field: str, text: str) -> Any:
        try:
            return self._adapters[field].validate_python(text)
        except PydanticValidationError as e:
            raise SchemaMismatchError(
                f"Key component {text!r} cannot be decoded into field '{field}': {e}",
                field=field,
                expected=repr(self.model.model_fields[field].annotation),
                actual=AttributeKind.STRING.name,
                original_error=e,
            ) from e

    def encode_key(self, record: T) -> Tuple[str, str]:
        """Return the (partition, sort) strings of a record."""
        partition = self.fold(self.partition_fields, [getattr(record, f) for f in self.partition_fields])
        sort = self.fold(self.sort_fields, [getattr(record, f) for f in self.sort_fields])
        return partition, sort

    def encode_prefix(self, record: T) -> Tuple[str, str]:
        """Return the (partition, sort prefix) strings of a partially populated record.

        The sort prefix folds the leading sort fields up to the first one
        holding its zero value, without a trailing separator. A record with
        no sort field set yields an empty prefix.
        """
        partition = self.fold(self.partition_fields, [getattr(record, f) for f in self.partition_fields])
        values = []
        for field in self.sort_fields:
            value = getattr(record, field)
            if is_zero(value):
                break
            values.append(value)
        if not values:
            return partition, ""
        fields = self.sort_fields[:len(values)]
        return partition, self.fold(fields, values, complete=len(fields) == len(self.sort_fields))

    def decode_key(self, partition: str, sort: str, record: T) -> T:
        """Set the key fields of a record from (partition, sort) strings, in place."""
        values = dict(zip(self.partition_fields, self.unfold(self.partition_fields, partition)))
        values.update(zip(self.sort_fields, self.unfold(self.sort_fields, sort)))
        for name, value in values.items():
            setattr(record, name, value)
        return record

    def key_attributes(self, partition: str, sort: str) -> Dict[str, str]:
        """Build the backend key from identity strings."""
        return {self.partition_attribute: partition, self.sort_attribute: sort}
