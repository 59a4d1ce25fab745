"""
Storage backends for the key-value client.

- Backend: the primitives the client requires (put/get/update/delete/query_page)
- TableGateway: DynamoDB backend over a boto3 Table resource
- InMemoryBackend: dict-backed backend for local development and tests
"""

from .backend import Backend, Key, QueryPage
from .in_memory import InMemoryBackend
from .table_gateway import TableGateway, create_table_gateway, map_dynamodb_error

__all__ = [
    "Backend",
    "InMemoryBackend",
    "Key",
    "QueryPage",
    "TableGateway",
    "create_table_gateway",
    "map_dynamodb_error",
]
