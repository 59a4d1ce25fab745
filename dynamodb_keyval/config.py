import os
from typing import Optional

from dotenv import load_dotenv
from pydantic import BaseModel, ConfigDict, Field, field_validator

# Load environment variables from .env file if it exists
load_dotenv()


def _env_flag(name: str) -> bool:
    return os.getenv(name, "false").lower() == "true"


def _env_int(name: str) -> Optional[int]:
    value = os.getenv(name)
    return int(value) if value else None


class DynamoDBConfig(BaseModel):
    """Configuration for DynamoDB connection and key-value operations."""

    aws_access_key_id: Optional[str] = Field(
        default_factory=lambda: os.getenv("AWS_ACCESS_KEY_ID"),
        description="AWS access key ID"
    )

    aws_secret_access_key: Optional[str] = Field(
        default_factory=lambda: os.getenv("AWS_SECRET_ACCESS_KEY"),
        description="AWS secret access key"
    )

    region_name: str = Field(
        default_factory=lambda: os.getenv("AWS_REGION", "us-east-1"),
        description="AWS region name"
    )

    # DynamoDB specific settings
    endpoint_url: Optional[str] = Field(
        default_factory=lambda: os.getenv("DYNAMODB_ENDPOINT_URL"),
        description="DynamoDB endpoint URL (for local development)"
    )

    # Table configuration
    table_prefix: str = Field(
        default_factory=lambda: os.getenv("DYNAMODB_TABLE_PREFIX", ""),
        description="Prefix to add to all table names"
    )

    # Connection settings, handed to botocore unchanged
    max_pool_connections: int = Field(
        default=50,
        description="Maximum number of connections in the connection pool"
    )

    retries: int = Field(
        default=3,
        description="Number of retry attempts performed by the transport"
    )

    timeout_seconds: float = Field(
        default=30.0,
        description="Request timeout in seconds"
    )

    # Key-value semantics
    query_page_size: Optional[int] = Field(
        default_factory=lambda: _env_int("DYNAMODB_QUERY_PAGE_SIZE"),
        description="Items per query page (None lets DynamoDB decide)"
    )

    strict_update: bool = Field(
        default_factory=lambda: _env_flag("DYNAMODB_STRICT_UPDATE"),
        description="Fail updates on keys that do not exist instead of creating them"
    )

    # Environment settings
    environment: str = Field(
        default_factory=lambda: os.getenv("ENVIRONMENT", "dev"),
        description="Current environment (dev, test, staging, prod)"
    )

    # Logging settings
    enable_debug_logging: bool = Field(
        default_factory=lambda: _env_flag("DYNAMODB_DEBUG_LOGGING"),
        description="Enable debug logging for DynamoDB operations"
    )

    @field_validator('region_name')
    @classmethod
    def validate_region(cls, v):
        """Validate AWS region name."""
        if not v:
            raise ValueError("AWS region name is required")
        return v

    @field_validator('environment')
    @classmethod
    def validate_environment(cls, v):
        """Validate environment value."""
        valid_environments = ['dev', 'test', 'staging', 'prod']
        if v not in valid_environments:
            raise ValueError(f"Environment must be one of: {valid_environments}")
        return v

    @field_validator('query_page_size')
    @classmethod
    def validate_query_page_size(cls, v):
        """Validate query page size."""
        if v is not None and v <= 0:
            raise ValueError("query_page_size must be a positive integer")
        return v

    def get_table_name(self, base_name: str) -> str:
        """Get the full table name with prefix and environment.

        Args:
            base_name: Base table name

        Returns:
            Full table name with prefix and environment
        """
        parts = []

        if self.table_prefix:
            parts.append(self.table_prefix)

        if self.environment != "prod":
            parts.append(self.environment)

        parts.append(base_name)

        return "_".join(parts)

    @classmethod
    def from_env(cls) -> 'DynamoDBConfig':
        """Create configuration from environment variables.

        Returns:
            DynamoDBConfig instance
        """
        return cls()

    @classmethod
    def for_local_development(cls) -> 'DynamoDBConfig':
        """Create configuration for local DynamoDB development.

        Returns:
            DynamoDBConfig instance configured for local development
        """
        return cls(
            aws_access_key_id="local",
            aws_secret_access_key="local",
            region_name="us-east-1",
            endpoint_url="http://localhost:8000",
            environment="dev",
            enable_debug_logging=True
        )

    model_config = ConfigDict(
        validate_assignment=True,
        use_enum_values=True
    )
