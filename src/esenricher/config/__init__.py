"""Application configuration helpers."""

from __future__ import annotations

from .elasticsearch import (
    DEFAULT_DOCUMENT_TYPE,
    DEFAULT_ID_FIELD,
    DEFAULT_PORT,
    ElasticsearchConfig,
    default_host,
    default_index_name,
    get_elasticsearch_config,
)
from .enrichment import EnrichmentSettings
from .env import env_value, read_env_credentials
from .errors import (
    ConfigurationError,
    InvalidPayloadError,
    InvalidSettingError,
    MissingConfigurationError,
)
from .http_resilience import RateLimit, ResilienceConfig, RetryPolicy
from .logging import configure_logging
from .payload import parse_payload

__all__ = [
    "DEFAULT_DOCUMENT_TYPE",
    "DEFAULT_ID_FIELD",
    "DEFAULT_PORT",
    "ConfigurationError",
    "ElasticsearchConfig",
    "EnrichmentSettings",
    "InvalidPayloadError",
    "InvalidSettingError",
    "MissingConfigurationError",
    "RateLimit",
    "ResilienceConfig",
    "RetryPolicy",
    "configure_logging",
    "default_host",
    "default_index_name",
    "env_value",
    "get_elasticsearch_config",
    "parse_payload",
    "read_env_credentials",
]
