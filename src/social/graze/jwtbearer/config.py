"""
Configuration for the jwt-bearer assertion authenticator.

Settings are loaded from environment variables with pydantic-settings and
turned into an immutable authenticator by ``create_authenticator``. The
authenticator itself never reads settings after construction.

Key configuration areas:
- The audience every assertion must name
- Where device public keys and registered clients are loaded from
- Metrics and error reporting
"""

import logging
from typing import Optional

from pydantic import field_validator
from pydantic_settings import BaseSettings

from social.graze.jwtbearer.authenticator import JwtBearerAssertionTokenAuthenticator
from social.graze.jwtbearer.metrics import SUPPORTED_BACKENDS, MetricsClient
from social.graze.jwtbearer.providers import (
    DevicePublicKeyResolver,
    InMemoryClientRegistry,
    InMemoryDevicePublicKeyResolver,
)

logger = logging.getLogger(__name__)


class Settings(BaseSettings):
    """
    Settings for the assertion authenticator.

    Environment variables map onto fields by name, for example ``AUDIENCE``
    and ``DEVICE_KEYS_FILE``.
    """

    debug: bool = False
    """
    Enable debug logging.
    Set with DEBUG=true environment variable.
    """

    audience: str
    """
    Token endpoint URL every assertion's ``aud`` claim must equal exactly
    (required, no default).
    Set with AUDIENCE environment variable.
    """

    device_keys_file: Optional[str] = None
    """
    Path to a JSON object mapping tenant ids to ``{device_id: PEM}`` objects.
    Without it no device key can be resolved.
    Set with DEVICE_KEYS_FILE environment variable.
    """

    clients_file: Optional[str] = None
    """
    Path to a JSON list of client ids or client record objects.
    Set with CLIENTS_FILE environment variable.
    """

    sentry_dsn: Optional[str] = None
    """
    Sentry DSN for error reporting. Optional, no error reporting if not set.
    Set with SENTRY_DSN environment variable.
    """

    metrics_backend: str = "none"
    """
    Metrics backend, 'telegraf' or 'none'.
    Set with METRICS_BACKEND environment variable.
    """

    statsd_host: str = "telegraf"
    """
    StatsD/Telegraf host for metrics collection.
    Set with STATSD_HOST environment variable.
    """

    statsd_port: int = 8125
    """
    StatsD/Telegraf port for metrics collection.
    Set with STATSD_PORT environment variable.
    """

    @field_validator("audience")
    @classmethod
    def validate_audience(cls, v: str) -> str:
        """Reject an empty audience."""
        if len(v) == 0:
            raise ValueError("audience must not be empty")
        return v

    @field_validator("metrics_backend")
    @classmethod
    def validate_metrics_backend(cls, v: str) -> str:
        backend = v.strip().lower()
        if backend not in SUPPORTED_BACKENDS:
            raise ValueError(
                f"metrics_backend must be one of {', '.join(SUPPORTED_BACKENDS)}"
            )
        return backend


def create_authenticator(
    settings: Settings, metrics: Optional[MetricsClient] = None
) -> JwtBearerAssertionTokenAuthenticator:
    """
    Build an authenticator from settings.

    A configured file that cannot be read or parsed raises.
    """
    key_resolver: Optional[DevicePublicKeyResolver] = None
    if settings.device_keys_file:
        key_resolver = InMemoryDevicePublicKeyResolver.from_json_file(
            settings.device_keys_file
        )
    else:
        logger.warning("No DEVICE_KEYS_FILE configured; device key lookups will fail")

    if settings.clients_file:
        client_registry = InMemoryClientRegistry.from_json_file(settings.clients_file)
    else:
        logger.warning("No CLIENTS_FILE configured; every issuer is unknown")
        client_registry = InMemoryClientRegistry([])

    return JwtBearerAssertionTokenAuthenticator(
        audience=settings.audience,
        client_registry=client_registry,
        key_resolver=key_resolver,
        metrics=metrics,
    )
