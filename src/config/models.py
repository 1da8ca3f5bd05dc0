"""Pydantic configuration models for the metrics publisher."""

from pydantic import BaseModel, Field, field_validator
from typing import Any, Dict


class RedisConfig(BaseModel):
    """Connection to the Redis instance backing the job queue."""
    url: str = "redis://localhost:6379/0"

    @field_validator('url')
    @classmethod
    def validate_url(cls, v: str) -> str:
        """Validate Redis URL scheme."""
        if not v.startswith(('redis://', 'rediss://', 'unix://')):
            raise ValueError('URL must start with redis://, rediss:// or unix://')
        return v


class CloudWatchConfig(BaseModel):
    """CloudWatch publishing configuration."""
    namespace: str = Field(default="Sidekiq", min_length=1, max_length=255)
    region: str = "us-east-1"
    interval: float = Field(default=60, gt=0)  # Seconds between publishes
    max_attempts: int = Field(default=3, ge=1, le=10)  # botocore retry attempts


class MetricsConfig(BaseModel):
    """Which metric families to collect."""
    default_metrics: bool = True
    utilization_metrics: bool = True
    process_metrics: bool = True  # Ignored when utilization_metrics is false
    queue_metrics: bool = True
    additional_dimensions: Dict[str, str] = Field(default_factory=dict)

    @field_validator('additional_dimensions', mode='before')
    @classmethod
    def stringify_dimensions(cls, v: Any) -> Any:
        """Coerce dimension names and values to strings."""
        if v is None:
            return {}
        if isinstance(v, dict):
            return {str(k): str(val) for k, val in v.items()}
        return v


class PublisherSystemConfig(BaseModel):
    """Root configuration model."""
    redis: RedisConfig = Field(default_factory=RedisConfig)
    cloudwatch: CloudWatchConfig = Field(default_factory=CloudWatchConfig)
    metrics: MetricsConfig = Field(default_factory=MetricsConfig)
