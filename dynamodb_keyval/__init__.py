"""
DynamoDB Key-Value Client

A generic typed key-value abstraction over DynamoDB. Record types are
pydantic models with a composite identity (partition + sort); the library
encodes them to sparse attribute maps and offers Put, Get, Update, Remove
and prefix Match without per-type encode/decode code.
"""

from .codec import (
    ABSENT,
    AttributeKind,
    AttributeMap,
    AttributeValue,
    FieldEncoder,
    KeyCodec,
    RecordCodec,
)
from .config import DynamoDBConfig
from .core import (
    Backend,
    InMemoryBackend,
    QueryPage,
    TableGateway,
    create_table_gateway,
)
from .exceptions import (
    ErrorKind,
    IOFailureError,
    KeyValError,
    NotFoundError,
    SchemaMismatchError,
    ValidationError,
)
from .models import Identity, KeyValModel
from .store import KeyVal, ResultSequence, create_keyval

__version__ = "1.0.0"
__all__ = [
    # Configuration
    "DynamoDBConfig",

    # Exceptions
    "ErrorKind",
    "IOFailureError",
    "KeyValError",
    "NotFoundError",
    "SchemaMismatchError",
    "ValidationError",

    # Identity contract
    "Identity",
    "KeyValModel",

    # Codecs
    "ABSENT",
    "AttributeKind",
    "AttributeMap",
    "AttributeValue",
    "FieldEncoder",
    "KeyCodec",
    "RecordCodec",

    # Backends
    "Backend",
    "InMemoryBackend",
    "QueryPage",
    "TableGateway",
    "create_table_gateway",

    # Client
    "KeyVal",
    "ResultSequence",
    "create_keyval",
]
