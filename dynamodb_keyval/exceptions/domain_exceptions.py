"""
Domain-Specific Exceptions for the Key-Value Client

Every operation reports its outcome explicitly: success, or one of the
exceptions below. Each exception carries an ``ErrorKind`` so callers may
branch on ``error.kind`` instead of the class hierarchy.

Organized by category:
1. Read Misses
2. Backend Failures
3. Decode Conflicts
4. Caller Misuse
"""

from typing import Any, Dict, Optional

from .base import ErrorKind, KeyValError


# =============================================================================
# Read Misses
# =============================================================================

class NotFoundError(KeyValError):
    """Raised when a read targets a key with no stored value.

    Expected rather than exceptional: callers branch on it. Raised by
    ``KeyVal.get`` and by ``KeyVal.update`` when strict updates are enabled.
    """

    kind = ErrorKind.NOT_FOUND

    def __init__(self, table_name: str, key: Dict[str, Any], original_error: Optional[Exception] = None):
        """Initialize not found error.

        Args:
            table_name: Name of the table (or backend) that was read
            key: The key that was not found
            original_error: The original exception that caused this error
        """
        self.table_name = table_name
        self.key = key
        message = f"Item not found in table '{table_name}' with key: {key}"
        context = {
            'table_name': table_name,
            'key': key
        }
        super().__init__(message, original_error, context)


# =============================================================================
# Backend Failures
# =============================================================================

class IOFailureError(KeyValError):
    """Raised when the backend or its transport reports a failure.

    The backend's native error is kept in ``original_error``. This layer
    never retries; retry policy belongs to the transport configuration.
    """

    kind = ErrorKind.IO_FAILURE

    def __init__(self, message: str, original_error: Optional[Exception] = None, context: Optional[Dict[str, Any]] = None):
        super().__init__(message, original_error, context)


# =============================================================================
# Decode Conflicts
# =============================================================================

class SchemaMismatchError(KeyValError):
    """Raised when stored attributes are structurally incompatible with the target type.

    Indicates either a codec bug or a type change that is incompatible with
    already-persisted data. Never recovered.
    """

    kind = ErrorKind.SCHEMA_MISMATCH

    def __init__(
        self,
        message: str,
        field: Optional[str] = None,
        expected: Optional[str] = None,
        actual: Optional[str] = None,
        original_error: Optional[Exception] = None
    ):
        """Initialize schema mismatch error.

        Args:
            message: Human-readable error message
            field: Name of the record field being decoded
            expected: Expected attribute shape
            actual: Stored attribute shape
            original_error: The original exception that caused this error
        """
        self.field = field
        self.expected = expected
        self.actual = actual
        context = {}
        if field:
            context['field'] = field
        if expected:
            context['expected'] = expected
        if actual:
            context['actual'] = actual
        super().__init__(message, original_error, context)


# =============================================================================
# Caller Misuse
# =============================================================================

class ValidationError(KeyValError):
    """Raised when a request or a codec declaration is invalid.

    Used for:
    - Empty partition key returned by a record's identity
    - Composite key components containing the key separator
    - Codec declarations naming unknown fields or unsupported annotations
    """

    kind = ErrorKind.VALIDATION

    def __init__(self, message: str, errors: Optional[Dict[str, Any]] = None, original_error: Optional[Exception] = None):
        """Initialize validation error.

        Args:
            message: Human-readable error message
            errors: Dictionary of field-level validation errors
            original_error: The original exception that caused this error
        """
        self.errors = errors or {}
        context = {}
        if self.errors:
            context['validation_errors'] = self.errors
        super().__init__(message, original_error, context)
