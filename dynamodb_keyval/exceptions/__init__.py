# Base exception and error kinds
from .base import ErrorKind, KeyValError

# Domain-specific exceptions
from .domain_exceptions import (
    IOFailureError,
    NotFoundError,
    SchemaMismatchError,
    ValidationError,
)

__all__ = [
    # Base exception
    "ErrorKind",
    "KeyValError",

    # Domain exceptions (alphabetically ordered)
    "IOFailureError",
    "NotFoundError",
    "SchemaMismatchError",
    "ValidationError",
]
