"""
DynamoDB Table Gateway

This module provides the DynamoDB backend of the key-value client: a thin
wrapper around a boto3 Table resource exposing exactly the storage primitives
the client needs.

1. put_item    - unconditional create/overwrite
2. get_item    - point read, None on miss
3. update_item - attribute-level merge with SET, never REMOVE
4. delete_item - unconditional, idempotent delete
5. query_page  - one page of a partition query, optionally begins_with on the sort key

The gateway focuses on:
- Creating boto3 Session/Table handles lazily from configuration
- Converting attribute maps to and from native DynamoDB items
- Mapping botocore failures to IOFailureError

Retries are configured on the botocore client (``DynamoDBConfig.retries``);
the gateway itself never retries.
"""

import logging
import threading
from typing import Any, Dict, Optional

import boto3
from boto3.dynamodb.conditions import Attr, Key as KeyCondition
from botocore.config import Config
from botocore.exceptions import BotoCoreError, ClientError

from ..codec.attributes import AttributeMap, from_item, to_item
from ..codec.keys import DEFAULT_PARTITION_ATTRIBUTE, DEFAULT_SORT_ATTRIBUTE
from ..config import DynamoDBConfig
from ..exceptions import IOFailureError, NotFoundError
from .backend import Backend, Key, QueryPage

logger = logging.getLogger(__name__)


_ERROR_CATEGORIES = {
    'ConditionalCheckFailedException': ("Conditional check failed", False),
    'ResourceNotFoundException': ("Table not found", False),
    'ValidationException': ("Validation failed", False),
    'ItemCollectionSizeLimitExceededException': ("Item collection size limit exceeded", False),
    'LimitExceededException': ("DynamoDB limit exceeded", False),
    'ResourceInUseException': ("Resource in use", False),
    'TransactionConflictException': ("Transaction conflict", True),
    'ProvisionedThroughputExceededException': ("Throttling", True),
    'RequestLimitExceeded': ("Throttling", True),
    'ThrottlingException': ("Throttling/rate limiting", True),
    'InternalServerError': ("Service unavailable", True),
    'ServiceUnavailable': ("Service unavailable", True),
    'UnrecognizedClientException': ("Authentication/authorization failed", False),
    'AccessDeniedException': ("Authentication/authorization failed", False),
    'InvalidSignatureException': ("Invalid endpoint or signature", False),
    'IncompleteSignatureException': ("Invalid endpoint or signature", False),
    'ExpiredTokenException': ("Token expired", False),
    'RequestTimeoutException': ("Request timeout", True),
}


def map_dynamodb_error(
    error: Exception,
    operation: str,
    table_name: str,
    key: Optional[Dict[str, Any]] = None
) -> IOFailureError:
    """Map a botocore failure to IOFailureError.

    The original error is preserved in ``original_error``. The context tells
    the operation, table, DynamoDB error code, and whether the code is one
    callers usually retry; the client itself never does.

    Args:
        error: The botocore ClientError or BotoCoreError
        operation: The operation that failed (e.g., "GetItem", "PutItem")
        table_name: The DynamoDB table name
        key: Optional item key for context

    Returns:
        IOFailureError wrapping the original error
    """
    context: Dict[str, Any] = {'operation': operation, 'table_name': table_name}
    if key:
        context['key'] = key

    if not isinstance(error, ClientError):
        context['error_code'] = type(error).__name__
        context['retryable'] = True
        return IOFailureError(f"Transport failure - {operation} on {table_name}: {error}", error, context)

    error_code = error.response.get('Error', {}).get('Code', 'Unknown')
    error_message = error.response.get('Error', {}).get('Message', str(error))
    context['error_code'] = error_code

    if error_code in _ERROR_CATEGORIES:
        category, retryable = _ERROR_CATEGORIES[error_code]
    else:
        logger.warning(f"Unknown DynamoDB error code '{error_code}' mapped to IOFailureError")
        category, retryable = "DynamoDB operation failed", False
    context['retryable'] = retryable

    return IOFailureError(f"{category} - {operation} on {table_name}: {error_message}", error, context)


class TableGateway(Backend):
    """
    DynamoDB backend over one table with a string partition and sort key.

    Stateless between calls apart from the lazily created boto3 handles.
    boto3 resources must not be shared across threads, so each thread gets
    its own Session/Table pair.
    """

    def __init__(
        self,
        config: DynamoDBConfig,
        table_name: str,
        partition_attribute: str = DEFAULT_PARTITION_ATTRIBUTE,
        sort_attribute: str = DEFAULT_SORT_ATTRIBUTE
    ):
        """Initialize table gateway.

        Args:
            config: DynamoDB configuration
            table_name: Name of the DynamoDB table
            partition_attribute: Partition (HASH) key attribute name
            sort_attribute: Sort (RANGE) key attribute name
        """
        self.config = config
        self.table_name = table_name
        self.partition_attribute = partition_attribute
        self.sort_attribute = sort_attribute
        self._local = threading.local()

    @property
    def dynamodb(self):
        """Lazy, per-thread initialization of DynamoDB resource."""
        dynamodb = getattr(self._local, 'dynamodb', None)
        if dynamodb is None:
            try:
                session = boto3.Session(
                    aws_access_key_id=self.config.aws_access_key_id,
                    aws_secret_access_key=self.config.aws_secret_access_key,
                    region_name=self.config.region_name
                )

                dynamodb_config = {
                    'region_name': self.config.region_name
                }

                if self.config.endpoint_url:
                    dynamodb_config['endpoint_url'] = self.config.endpoint_url

                # Retry and timeout policy belongs to the transport
                dynamodb_config['config'] = Config(
                    retries={'max_attempts': self.config.retries},
                    max_pool_connections=self.config.max_pool_connections,
                    read_timeout=self.config.timeout_seconds,
                    connect_timeout=self.config.timeout_seconds
                )

                dynamodb = session.resource('dynamodb', **dynamodb_config)
            except Exception as e:
                logger.error(f"Failed to create DynamoDB resource: {e}")
                raise IOFailureError(f"Failed to connect to DynamoDB: {e}", e) from e
            self._local.dynamodb = dynamodb
        return dynamodb

    @property
    def table(self):
        """Get this thread's boto3 DynamoDB Table resource."""
        table = getattr(self._local, 'table', None)
        if table is None:
            dynamodb = self.dynamodb
            try:
                table = dynamodb.Table(self.table_name)
            except Exception as e:
                logger.error(f"Failed to access table '{self.table_name}': {e}")
                raise IOFailureError(f"Failed to access table '{self.table_name}': {e}", e) from e
            self._local.table = table
        return table

    def put_item(self, key: Key, attributes: AttributeMap) -> None:
        item = to_item(attributes)
        item.update(key)
        try:
            self.table.put_item(Item=item)
            logger.info(f"Put item in {self.table_name}: {key}")
        except (ClientError, BotoCoreError) as e:
            raise map_dynamodb_error(e, "PutItem", self.table_name, key) from e

    def get_item(self, key: Key) -> Optional[AttributeMap]:
        try:
            response = self.table.get_item(Key=key)
        except (ClientError, BotoCoreError) as e:
            raise map_dynamodb_error(e, "GetItem", self.table_name, key) from e

        if 'Item' not in response:
            logger.debug(f"Get miss in {self.table_name}: {key}")
            return None
        return from_item(response['Item'])

    def update_item(self, key: Key, attributes: AttributeMap, must_exist: bool = False) -> None:
        """
        Merge attributes into an item with a single UpdateItem call.

        Only ``SET`` actions are issued, so attributes missing from the map
        keep their stored values. Key attributes are never part of the
        update expression.
        """
        update_parts = []
        expression_names = {}
        expression_values = {}

        for i, (name, value) in enumerate(to_item(attributes).items()):
            if name in key:
                continue
            update_parts.append(f"#a{i} = :v{i}")
            expression_names[f"#a{i}"] = name
            expression_values[f":v{i}"] = value

        update_kwargs: Dict[str, Any] = {'Key': key}
        if update_parts:
            update_kwargs['UpdateExpression'] = "SET " + ", ".join(update_parts)
            update_kwargs['ExpressionAttributeNames'] = expression_names
            update_kwargs['ExpressionAttributeValues'] = expression_values
        if must_exist:
            update_kwargs['ConditionExpression'] = Attr(self.partition_attribute).exists()

        try:
            self.table.update_item(**update_kwargs)
            logger.info(f"Updated item in {self.table_name}: {key} {sorted(expression_names.values())}")
        except ClientError as e:
            if must_exist and e.response.get('Error', {}).get('Code') == 'ConditionalCheckFailedException':
                raise NotFoundError(self.table_name, key, original_error=e) from e
            raise map_dynamodb_error(e, "UpdateItem", self.table_name, key) from e
        except BotoCoreError as e:
            raise map_dynamodb_error(e, "UpdateItem", self.table_name, key) from e

    def delete_item(self, key: Key) -> None:
        try:
            self.table.delete_item(Key=key)
            logger.info(f"Deleted item from {self.table_name}: {key}")
        except (ClientError, BotoCoreError) as e:
            raise map_dynamodb_error(e, "DeleteItem", self.table_name, key) from e

    def query_page(
        self,
        partition: str,
        sort_prefix: Optional[str] = None,
        exclusive_start_key: Optional[Dict[str, Any]] = None
    ) -> QueryPage:
        """
        Execute one DynamoDB Query request.

        Example:
            page = gateway.query_page('test:', sort_prefix='person:')
            while page.last_key:
                page = gateway.query_page('test:', 'person:', page.last_key)
        """
        condition = KeyCondition(self.partition_attribute).eq(partition)
        if sort_prefix:
            condition = condition & KeyCondition(self.sort_attribute).begins_with(sort_prefix)

        query_kwargs: Dict[str, Any] = {'KeyConditionExpression': condition}
        if self.config.query_page_size:
            query_kwargs['Limit'] = self.config.query_page_size
        if exclusive_start_key:
            query_kwargs['ExclusiveStartKey'] = exclusive_start_key

        try:
            response = self.table.query(**query_kwargs)
        except (ClientError, BotoCoreError) as e:
            raise map_dynamodb_error(e, "Query", self.table_name, {self.partition_attribute: partition}) from e

        items = [from_item(item) for item in response.get('Items', [])]
        logger.debug(f"Query on {self.table_name} returned {len(items)} items for partition {partition!r}")
        return QueryPage(items, response.get('LastEvaluatedKey'))


def create_table_gateway(
    config: DynamoDBConfig,
    table_name: str,
    partition_attribute: str = DEFAULT_PARTITION_ATTRIBUTE,
    sort_attribute: str = DEFAULT_SORT_ATTRIBUTE
) -> TableGateway:
    """
    Factory function to create a TableGateway instance.

    Args:
        config: DynamoDB configuration
        table_name: Base table name (prefixed by config.get_table_name())
        partition_attribute: Partition key attribute name
        sort_attribute: Sort key attribute name

    Returns:
        Configured TableGateway instance
    """
    if config.enable_debug_logging:
        logging.getLogger(__name__.split('.')[0]).setLevel(logging.DEBUG)

    full_table_name = config.get_table_name(table_name)
    return TableGateway(config, full_table_name, partition_attribute, sort_attribute)
