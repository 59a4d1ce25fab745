"""Tests for composite key declaration, folding and identity derivation."""

from datetime import date
from enum import Enum

import pytest
from pydantic import BaseModel

from dynamodb_keyval import KeyValModel
from dynamodb_keyval.models import extract_key_metadata
from dynamodb_keyval.codec.attributes import AttributeValue
from dynamodb_keyval.codec.keys import KeyCodec, key_text
from dynamodb_keyval.codec.record import RecordCodec
from dynamodb_keyval.exceptions import SchemaMismatchError, ValidationError
from tests.helpers import PERSON_CODEC, RUN_CODEC, SAMPLE_CODEC, Person, Run, Sample


class Color(Enum):
    RED = "red"


class Event(BaseModel):
    tenant: str = ""
    day: date = date(2024, 1, 1)
    seq: int = 0
    blob: bytes = b""


class TestKeyText:
    """Test the external string form of key values."""

    @pytest.mark.parametrize("value,text", [
        (None, ""),
        ("abc", "abc"),
        (42, "42"),
        (True, "true"),
        (Color.RED, "red"),
        (date(2024, 6, 1), "2024-06-01"),
    ])
    def test_values(self, value, text):
        assert key_text(value) == text

    def test_binary_rejected(self):
        with pytest.raises(ValidationError):
            key_text(b"\x00")


class TestKeyFields:
    """Test key attributes written by the record codec."""

    def test_key_fields_are_never_omitted(self):
        attributes = SAMPLE_CODEC.encode(Sample(retries=0))

        assert attributes == {
            "prefix": AttributeValue.string(""),
            "suffix": AttributeValue.string("0"),
        }

    def test_typed_key_field_decodes(self):
        decoded = SAMPLE_CODEC.decode_new({
            "prefix": AttributeValue.string("b"),
            "suffix": AttributeValue.string("42"),
        })

        assert decoded.bucket == "b"
        assert decoded.seq == 42

    def test_key_attribute_must_be_string(self):
        with pytest.raises(SchemaMismatchError):
            PERSON_CODEC.decode_new({"prefix": AttributeValue.number(1)})

    def test_unparseable_key_component(self):
        with pytest.raises(SchemaMismatchError) as exc_info:
            SAMPLE_CODEC.decode_new({"suffix": AttributeValue.string("not-a-number")})
        assert exc_info.value.field == "seq"

    def test_identity_matches_encoded_key(self):
        person = Person(org="test:", id="person:1")
        attributes = PERSON_CODEC.encode(person)

        assert (attributes["prefix"].value, attributes["suffix"].value) == person.identity()


class TestGroupedKeys:
    """Test key components folded from several fields."""

    def test_fold_and_unfold(self):
        run = Run(pipeline_id="etl", day="2024-06-01", run_id="run-42", status="done")

        attributes = RUN_CODEC.encode(run)

        assert attributes["pk"] == AttributeValue.string("etl")
        assert attributes["sk"] == AttributeValue.string("2024-06-01#run-42")
        assert RUN_CODEC.decode_new(attributes) == run

    def test_last_component_may_contain_separator(self):
        run = Run(pipeline_id="etl", day="2024-06-01", run_id="a#b")

        decoded = RUN_CODEC.decode_new(RUN_CODEC.encode(run))

        assert decoded.run_id == "a#b"

    def test_separator_in_leading_component(self):
        with pytest.raises(ValidationError) as exc_info:
            RUN_CODEC.encode(Run(pipeline_id="etl", day="2024#06", run_id="r"))
        assert "day" in exc_info.value.errors

    def test_too_few_parts(self):
        with pytest.raises(SchemaMismatchError):
            RUN_CODEC.decode_new({"sk": AttributeValue.string("2024-06-01")})

    def test_typed_group(self):
        codec = RecordCodec(Event).with_key("tenant", ("day", "seq"), separator="/")
        event = Event(tenant="acme", day=date(2024, 6, 1), seq=3)

        attributes = codec.encode(event)

        assert attributes["suffix"] == AttributeValue.string("2024-06-01/3")
        assert codec.decode_new(attributes) == event

    def test_custom_separator_and_attributes(self):
        key_codec = RUN_CODEC.key_codec

        assert key_codec.partition_attribute == "pk"
        assert key_codec.sort_attribute == "sk"
        assert key_codec.key_fields == ("pipeline_id", "day", "run_id")
        assert key_codec.key_attributes("etl", "x") == {"pk": "etl", "sk": "x"}


class TestKeyDeclaration:
    """Test rejection of inconsistent key declarations."""

    def test_unknown_field(self):
        with pytest.raises(ValidationError):
            KeyCodec(Person, "org", "missing")

    def test_duplicate_field(self):
        with pytest.raises(ValidationError):
            KeyCodec(Person, "org", ("id", "org"))

    def test_empty_group(self):
        with pytest.raises(ValidationError):
            KeyCodec(Person, "org", ())

    def test_same_attribute_names(self):
        with pytest.raises(ValidationError):
            KeyCodec(Person, "org", "id", partition_attribute="k", sort_attribute="k")

    def test_empty_separator(self):
        with pytest.raises(ValidationError):
            KeyCodec(Person, "org", "id", separator="")

    def test_install_into_other_model(self):
        with pytest.raises(ValidationError):
            KeyCodec(Person, "org", "id").install(RecordCodec(Sample))

    def test_binary_key_field(self):
        codec = RecordCodec(Event).with_key("tenant", "blob")

        with pytest.raises(ValidationError):
            codec.encode(Event(tenant="acme", blob=b"\x01"))


class TestKeyValModel:
    """Test key declarations read from a model's Meta class."""

    def test_identity(self):
        run = Run(pipeline_id="etl", day="2024-06-01", run_id="run-42")

        assert run.identity() == ("etl", "2024-06-01#run-42")

    def test_codec_built_once_from_meta(self):
        codec = Run.record_codec()

        assert codec is Run.record_codec()
        assert codec.key_codec.partition_fields == ("pipeline_id",)
        assert codec.key_codec.sort_fields == ("day", "run_id")
        assert (codec.key_codec.partition_attribute, codec.key_codec.sort_attribute) == ("pk", "sk")

    def test_meta_defaults(self):
        class Ticket(KeyValModel):
            queue: str = ""
            number: int = 0

            class Meta:
                partition_key = "queue"
                sort_key = "number"

        assert extract_key_metadata(Ticket)["options"] == {}
        assert Ticket(queue="ops", number=7).identity() == ("ops", "7")
        assert Ticket.record_codec().key_codec.sort_attribute == "suffix"

    def test_missing_meta(self):
        class Unkeyed(KeyValModel):
            name: str = ""

        with pytest.raises(ValidationError):
            Unkeyed(name="x").identity()

    def test_incomplete_meta(self):
        class HalfKeyed(KeyValModel):
            name: str = ""

            class Meta:
                partition_key = "name"

        with pytest.raises(ValidationError):
            HalfKeyed.record_codec()

    def test_meta_naming_unknown_field(self):
        class Misnamed(KeyValModel):
            name: str = ""

            class Meta:
                partition_key = "name"
                sort_key = "missing"

        with pytest.raises(ValidationError):
            Misnamed.record_codec()


class TestKeyStrings:
    """Test conversion between key fields and identity strings."""

    def test_encode_key(self):
        run = Run(pipeline_id="etl", day="2024-06-01", run_id="r1")

        assert RUN_CODEC.key_codec.encode_key(run) == ("etl", "2024-06-01#r1")

    def test_decode_key_in_place(self):
        sample = Sample(bucket="old", seq=1, lbl="kept")

        result = SAMPLE_CODEC.key_codec.decode_key("new", "12", sample)

        assert result is sample
        assert (sample.bucket, sample.seq, sample.label) == ("new", 12, "kept")


class TestKeyPrefix:
    """Test query prefixes folded from partially populated records."""

    def test_partition_only(self):
        assert RUN_CODEC.key_codec.encode_prefix(Run(pipeline_id="etl")) == ("etl", "")

    def test_partial_group_has_no_trailing_separator(self):
        prefix = RUN_CODEC.key_codec.encode_prefix(Run(pipeline_id="etl", day="2024-06"))

        assert prefix == ("etl", "2024-06")

    def test_full_group(self):
        run = Run(pipeline_id="etl", day="2024-06-01", run_id="r")

        assert RUN_CODEC.key_codec.encode_prefix(run) == ("etl", "2024-06-01#r")

    def test_stops_at_first_unset_field(self):
        run = Run(pipeline_id="etl", run_id="r1")

        assert RUN_CODEC.key_codec.encode_prefix(run) == ("etl", "")

    def test_zero_typed_field_is_unset(self):
        assert SAMPLE_CODEC.key_codec.encode_prefix(Sample(bucket="b")) == ("b", "")
        assert SAMPLE_CODEC.key_codec.encode_prefix(Sample(bucket="b", seq=4)) == ("b", "4")

    def test_separator_in_partial_prefix(self):
        with pytest.raises(ValidationError):
            RUN_CODEC.key_codec.encode_prefix(Run(pipeline_id="etl", day="2024#06"))
