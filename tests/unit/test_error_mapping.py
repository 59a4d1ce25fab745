"""
Tests for DynamoDB error mapping.

Every botocore failure surfaces as IOFailureError with the original error
and the failing operation preserved.
"""

import pytest
from botocore.exceptions import ClientError, EndpointConnectionError, ReadTimeoutError

from dynamodb_keyval.core.table_gateway import map_dynamodb_error
from dynamodb_keyval.exceptions import ErrorKind, IOFailureError, KeyValError


def create_client_error(error_code: str, message: str = "Test error") -> ClientError:
    """Helper to create ClientError for testing."""
    return ClientError(
        error_response={
            'Error': {
                'Code': error_code,
                'Message': message
            }
        },
        operation_name='TestOperation'
    )


class TestClientErrors:
    """Test mapping of service-side error codes."""

    def test_context_is_preserved(self):
        error = create_client_error('ResourceNotFoundException', 'Requested resource not found')
        key = {"prefix": "test:", "suffix": "person:1"}

        result = map_dynamodb_error(error, 'GetItem', 'test_people', key)

        assert isinstance(result, IOFailureError)
        assert result.kind is ErrorKind.IO_FAILURE
        assert result.original_error is error
        assert result.context['operation'] == 'GetItem'
        assert result.context['table_name'] == 'test_people'
        assert result.context['key'] == key
        assert result.context['error_code'] == 'ResourceNotFoundException'
        assert 'Table not found' in str(result)
        assert 'Requested resource not found' in str(result)

    @pytest.mark.parametrize("error_code", [
        'ProvisionedThroughputExceededException',
        'ThrottlingException',
        'RequestLimitExceeded',
        'InternalServerError',
        'ServiceUnavailable',
        'TransactionConflictException',
    ])
    def test_retryable_codes(self, error_code):
        result = map_dynamodb_error(create_client_error(error_code), 'PutItem', 'test_people')

        assert result.context['retryable'] is True

    @pytest.mark.parametrize("error_code", [
        'ValidationException',
        'AccessDeniedException',
        'UnrecognizedClientException',
        'ConditionalCheckFailedException',
    ])
    def test_non_retryable_codes(self, error_code):
        result = map_dynamodb_error(create_client_error(error_code), 'PutItem', 'test_people')

        assert result.context['retryable'] is False

    def test_unknown_code(self, caplog):
        result = map_dynamodb_error(create_client_error('SomethingNewException'), 'Query', 'test_people')

        assert isinstance(result, IOFailureError)
        assert result.context['error_code'] == 'SomethingNewException'
        assert 'SomethingNewException' in caplog.text

    def test_key_omitted_when_not_given(self):
        result = map_dynamodb_error(create_client_error('ValidationException'), 'Query', 'test_people')

        assert 'key' not in result.context


class TestTransportErrors:
    """Test mapping of client-side botocore failures."""

    def test_endpoint_connection_error(self):
        error = EndpointConnectionError(endpoint_url="http://localhost:8000")

        result = map_dynamodb_error(error, 'PutItem', 'test_people')

        assert isinstance(result, IOFailureError)
        assert result.context['error_code'] == 'EndpointConnectionError'
        assert result.context['retryable'] is True
        assert 'Transport failure' in str(result)

    def test_read_timeout(self):
        error = ReadTimeoutError(endpoint_url="http://localhost:8000")

        result = map_dynamodb_error(error, 'Query', 'test_people')

        assert result.original_error is error


class TestExceptionFormatting:
    """Test string forms of client errors."""

    def test_str_includes_context(self):
        error = KeyValError("boom", context={"table_name": "t"})

        assert str(error) == "boom (Context: table_name=t)"
        assert "kind='io_failure'" in repr(error)

    def test_str_without_context(self):
        assert str(IOFailureError("boom")) == "boom"
