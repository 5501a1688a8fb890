"""
Configuration models for the generation worker pool client.
"""

import os
from typing import Any, Dict, List, Optional

import yaml
from pydantic import BaseModel, Field, ValidationError, field_validator

from .errors import ConfigError


class EndpointConfig(BaseModel):
    """Remote worker pool endpoint and credentials."""
    endpoint_id: str = Field(..., description="Serverless endpoint identifier")
    base_url: str = Field("https://api.runpod.ai/v2", description="API base URL")
    api_key_env: str = Field("RUNPOD_API_KEY", description="Environment variable holding the API key")
    api_key: Optional[str] = Field(None, description="Explicit API key (overrides api_key_env)")
    request_timeout: float = Field(30.0, gt=0, description="Per-call timeout for submissions in seconds")
    status_timeout: float = Field(15.0, gt=0, description="Per-call timeout for status queries in seconds")
    health_timeout: float = Field(10.0, gt=0, description="Per-call timeout for health checks in seconds")

    @field_validator("endpoint_id", "api_key", mode="before")
    @classmethod
    def strip_secrets(cls, v):
        """Strip whitespace and newlines from values loaded from secrets."""
        if isinstance(v, str):
            return v.strip()
        return v

    @field_validator("endpoint_id")
    @classmethod
    def endpoint_id_not_empty(cls, v):
        if not v:
            raise ValueError("endpoint_id must not be empty")
        return v

    def resolve_api_key(self) -> str:
        """Return the API key, reading the environment when not set explicitly."""
        if self.api_key:
            return self.api_key
        api_key = os.getenv(self.api_key_env, "").strip()
        if not api_key:
            raise ConfigError(f"API key not found in environment variable: {self.api_key_env}")
        return api_key

    @property
    def endpoint_url(self) -> str:
        return f"{self.base_url.rstrip('/')}/{self.endpoint_id}"


class PollConfig(BaseModel):
    """Status polling budget."""
    interval_ms: int = Field(2000, ge=0, description="Wait before each status query in milliseconds")
    max_attempts: int = Field(30, gt=0, description="Maximum number of status queries")
    max_transport_errors: int = Field(3, gt=0, description="Consecutive transport failures tolerated while polling")

    @property
    def budget_seconds(self) -> float:
        return self.interval_ms * self.max_attempts / 1000.0


class NegotiationConfig(BaseModel):
    """Schema negotiation settings."""
    variants: Optional[List[str]] = Field(None, description="Variant names to try, in order (default: full catalog)")
    checkpoint_name: str = Field("v1-5-pruned-emaonly-fp16.safetensors", description="Checkpoint used by the workflow variant")
    resolve_random_seed: bool = Field(True, description="Replace seed -1 with a concrete seed before submission")


class HealthConfig(BaseModel):
    """Health gate settings."""
    check_before_submit: bool = Field(False, description="Query endpoint health before submitting")
    abort_if_no_workers: bool = Field(False, description="Stop before submission when no worker is ready or idle")


class AdminConfig(BaseModel):
    """Administrative GraphQL API settings."""
    graphql_url: str = Field("https://api.runpod.io/graphql", description="GraphQL API URL")
    timeout: float = Field(30.0, gt=0, description="Request timeout in seconds")


class LoggingConfig(BaseModel):
    """Logging configuration for the command line services."""
    level: str = Field("INFO", description="Root log level")
    log_dir: Optional[str] = Field("logs", description="Directory for dated log files (None disables file logging)")


class OutputConfig(BaseModel):
    """Where the command line writes generated images."""
    image_dir: str = Field("out/images", description="Directory to save generated images")


class GenPoolConfig(BaseModel):
    """Main configuration for the worker pool client."""
    endpoint: EndpointConfig
    polling: PollConfig = Field(default_factory=PollConfig)
    negotiation: NegotiationConfig = Field(default_factory=NegotiationConfig)
    health: HealthConfig = Field(default_factory=HealthConfig)
    admin: AdminConfig = Field(default_factory=AdminConfig)
    logging: LoggingConfig = Field(default_factory=LoggingConfig)
    output: OutputConfig = Field(default_factory=OutputConfig)


def create_config(config_data: Dict[str, Any]) -> GenPoolConfig:
    """Create configuration object from data."""
    try:
        return GenPoolConfig(**(config_data or {}))
    except ValidationError as e:
        raise ConfigError(f"Invalid configuration: {e}") from e


def load_config(config_path: str) -> GenPoolConfig:
    """Load configuration from YAML file."""
    if not os.path.exists(config_path):
        raise FileNotFoundError(f"Config file not found: {config_path}")

    with open(config_path, 'r') as f:
        try:
            config_data = yaml.safe_load(f)
        except yaml.YAMLError as e:
            raise ConfigError(f"Config file is not valid YAML: {config_path}: {e}") from e

    if config_data is not None and not isinstance(config_data, dict):
        raise ConfigError(f"Config file must contain a mapping: {config_path}")

    return create_config(config_data)
