"""Elasticsearch connection configuration values."""

from __future__ import annotations

import socket
from dataclasses import dataclass
from datetime import UTC, datetime
from typing import Final

from .env import read_env_credentials
from .errors import InvalidSettingError
from .http_resilience import RateLimit, ResilienceConfig, RetryPolicy

DEFAULT_PORT: Final[int] = 9200
DEFAULT_SCHEME: Final[str] = "http"
DEFAULT_DOCUMENT_TYPE: Final[str] = "audit_log"
DEFAULT_ID_FIELD: Final[str] = "correlation.id"
ELASTICSEARCH_TIMEOUT_SECONDS: Final[float] = 30.0
USERNAME_ENV_VAR: Final[str] = "ELASTICSEARCH_USERNAME"
PASSWORD_ENV_VAR: Final[str] = "ELASTICSEARCH_PASSWORD"


@dataclass(frozen=True, slots=True)
class ElasticsearchConfig:
    """Holds the coordinates of the Elasticsearch HTTP API."""

    host: str
    port: int
    resilience: ResilienceConfig
    scheme: str = DEFAULT_SCHEME

    @property
    def base_url(self) -> str:
        return f"{self.scheme}://{self.host}:{self.port}"

    @property
    def address(self) -> str:
        return f"{self.host}:{self.port}"


def default_index_name(*, today: datetime | None = None) -> str:
    """Return the Logstash-style daily index name, e.g. ``logstash-2015.06.30``."""

    day = today or datetime.now(UTC)
    return f"logstash-{day:%Y.%m.%d}"


def default_host() -> str:
    """Return the local hostname, falling back to ``localhost``."""

    try:
        hostname = socket.gethostname()
    except OSError:
        return "localhost"
    return hostname or "localhost"


def get_elasticsearch_config(
    *,
    host: str | None = None,
    port: int | None = None,
    scheme: str | None = None,
    ratelimit: RateLimit | None = None,
) -> ElasticsearchConfig:
    effective_host = host or default_host()
    effective_port = DEFAULT_PORT if port is None else port
    effective_scheme = scheme or DEFAULT_SCHEME
    if not 0 < effective_port < 65536:  # noqa: PLR2004
        raise InvalidSettingError(f"Invalid Elasticsearch port: {effective_port}")
    if effective_scheme not in {"http", "https"}:
        raise InvalidSettingError(f"Unsupported Elasticsearch scheme: {effective_scheme}")

    auth = read_env_credentials(USERNAME_ENV_VAR, PASSWORD_ENV_VAR)
    resilience = ResilienceConfig(
        name="elasticsearch",
        base_url=f"{effective_scheme}://{effective_host}:{effective_port}",
        timeout_seconds=ELASTICSEARCH_TIMEOUT_SECONDS,
        retry=RetryPolicy(),
        ratelimit=ratelimit,
        default_headers={"Accept": "application/json"},
        auth=auth,
    )
    return ElasticsearchConfig(
        host=effective_host,
        port=effective_port,
        scheme=effective_scheme,
        resilience=resilience,
    )
