"""
Test configuration and fixtures for the key-value client.

Provides DynamoDB fixtures backed by moto and in-memory stores for the
record types defined in tests.helpers.
"""

import sys
from pathlib import Path

# Add parent directory to path so we can import dynamodb_keyval
sys.path.insert(0, str(Path(__file__).parent.parent))

import boto3
import pytest
from moto import mock_aws

from dynamodb_keyval import DynamoDBConfig, InMemoryBackend, KeyVal, create_keyval
from tests.helpers import PERSON_CODEC, Person


@pytest.fixture
def mock_dynamodb_config():
    """DynamoDB configuration for mocked testing."""
    return DynamoDBConfig(
        aws_access_key_id="test_key",
        aws_secret_access_key="test_secret",
        region_name="us-east-1",
        endpoint_url=None,  # Use default AWS endpoint for moto
        environment="test",
        table_prefix="",
        query_page_size=None,
        strict_update=False
    )


@pytest.fixture
def mock_dynamodb_resource():
    """Mock DynamoDB resource."""
    with mock_aws():
        yield boto3.resource('dynamodb', region_name='us-east-1')


def create_keyval_table(resource, table_name, partition_attribute="prefix", sort_attribute="suffix"):
    """Create a table with a string partition key and string sort key."""
    return resource.create_table(
        TableName=table_name,
        KeySchema=[
            {'AttributeName': partition_attribute, 'KeyType': 'HASH'},
            {'AttributeName': sort_attribute, 'KeyType': 'RANGE'}
        ],
        AttributeDefinitions=[
            {'AttributeName': partition_attribute, 'AttributeType': 'S'},
            {'AttributeName': sort_attribute, 'AttributeType': 'S'}
        ],
        BillingMode='PAY_PER_REQUEST'
    )


@pytest.fixture
def people_table(mock_dynamodb_resource):
    """Create the people table for testing."""
    return create_keyval_table(mock_dynamodb_resource, 'test_people')


@pytest.fixture
def people_store(mock_dynamodb_config, people_table):
    """Person store over the mocked people table."""
    return create_keyval(mock_dynamodb_config, "people", PERSON_CODEC)


@pytest.fixture
def memory_backend():
    """In-memory backend with small pages."""
    return InMemoryBackend(page_size=2)


@pytest.fixture
def memory_store(memory_backend):
    """Person store over the in-memory backend."""
    return KeyVal(memory_backend, PERSON_CODEC)


@pytest.fixture
def sample_people():
    """Five people sharing one organisation."""
    return [
        Person(
            org="test:",
            id=f"person:{i}",
            name="Verner Pleishner",
            age=64,
            address="Blumenstrasse 14, Berne, 3013"
        )
        for i in range(5)
    ]
