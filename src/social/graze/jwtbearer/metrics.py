"""
Metrics for assertion authentication.

A small vendor-agnostic interface so the authenticator can count outcomes and
time validations without caring whether the numbers end up in Telegraf/StatsD
or nowhere at all.

Key Components:
- MetricsClient: Abstract interface used by the authenticator
- TelegrafCompatibilityClient: Delegates to aio-statsd's TelegrafStatsdClient
- NoOpMetricsClient: Discards everything, used when metrics are disabled
- create_metrics_client: Factory selecting a backend by name
"""

import logging
from abc import ABC, abstractmethod
from typing import Any, Dict, Optional, Union

try:
    from aio_statsd import TelegrafStatsdClient
    TELEGRAF_AVAILABLE = True
except ImportError:
    TELEGRAF_AVAILABLE = False

logger = logging.getLogger(__name__)

SUPPORTED_BACKENDS = ("telegraf", "none")


class MetricsClient(ABC):
    """
    Abstract metrics client.

    Tags follow the StatsD tag dictionary convention used by Telegraf.
    """

    @abstractmethod
    def increment(
        self,
        name: str,
        value: Union[int, float] = 1,
        tag_dict: Optional[Dict[str, Any]] = None,
    ) -> None:
        """
        Increment a counter metric.

        Args:
            name: Metric name (e.g., 'jwtbearer.authenticate.failure')
            value: Amount to increment by (default: 1)
            tag_dict: Optional tags for metric dimensions
        """
        pass

    @abstractmethod
    def timer(
        self,
        name: str,
        value: Union[int, float],
        tag_dict: Optional[Dict[str, Any]] = None,
    ) -> None:
        """
        Record a duration in seconds.

        Args:
            name: Metric name (e.g., 'jwtbearer.authenticate.time')
            value: Duration in seconds
            tag_dict: Optional tags for metric dimensions
        """
        pass

    async def connect(self) -> None:
        """Open the transport, for backends that need one."""
        pass

    @abstractmethod
    async def close(self) -> None:
        """Flush pending metrics and release the transport."""
        pass


class TelegrafCompatibilityClient(MetricsClient):
    """MetricsClient that delegates to a TelegrafStatsdClient."""

    def __init__(self, telegraf_client: Any):
        if not TELEGRAF_AVAILABLE:
            raise ImportError(
                "TelegrafStatsdClient not available. Install with: pip install aio-statsd"
            )

        self.client = telegraf_client

    def increment(
        self,
        name: str,
        value: Union[int, float] = 1,
        tag_dict: Optional[Dict[str, Any]] = None,
    ) -> None:
        self.client.increment(name, value, tag_dict=tag_dict or {})

    def timer(
        self,
        name: str,
        value: Union[int, float],
        tag_dict: Optional[Dict[str, Any]] = None,
    ) -> None:
        self.client.timer(name, value, tag_dict=tag_dict or {})

    async def connect(self) -> None:
        await self.client.connect()

    async def close(self) -> None:
        try:
            if hasattr(self.client, "close"):
                await self.client.close()
        except Exception as e:
            logger.warning(f"Error closing Telegraf client: {e}")


class NoOpMetricsClient(MetricsClient):
    """Metrics client that records nothing."""

    def increment(
        self,
        name: str,
        value: Union[int, float] = 1,
        tag_dict: Optional[Dict[str, Any]] = None,
    ) -> None:
        pass

    def timer(
        self,
        name: str,
        value: Union[int, float],
        tag_dict: Optional[Dict[str, Any]] = None,
    ) -> None:
        pass

    async def close(self) -> None:
        pass


def create_metrics_client(
    backend: str,
    host: str = "localhost",
    port: int = 8125,
    telegraf_client: Optional[Any] = None,
    debug: bool = False,
) -> MetricsClient:
    """
    Create a metrics client for the named backend.

    Args:
        backend: Backend type ('telegraf' or 'none')
        host: Telegraf/StatsD host
        port: Telegraf/StatsD port
        telegraf_client: Pre-configured TelegrafStatsdClient instance
        debug: Enable debug logging

    Returns:
        MetricsClient: Configured metrics client instance

    Raises:
        ValueError: If the backend is unknown or its package is not installed
    """
    backend = backend.lower()

    if debug:
        logger.setLevel(logging.DEBUG)
        logger.debug(f"Creating metrics client with backend: {backend}")

    if backend == "telegraf":
        if telegraf_client:
            return TelegrafCompatibilityClient(telegraf_client)

        if not TELEGRAF_AVAILABLE:
            logger.error("Telegraf backend requested but aio-statsd package not available")
            raise ValueError(
                "aio-statsd package required for 'telegraf' backend. "
                "Install with: pip install aio-statsd"
            )

        telegraf_client = TelegrafStatsdClient(host=host, port=port, debug=debug)
        return TelegrafCompatibilityClient(telegraf_client)

    elif backend == "none":
        logger.info("Metrics collection disabled (no-op client)")
        return NoOpMetricsClient()

    else:
        raise ValueError(
            f"Invalid metrics backend: {backend}. "
            f"Supported backends: {', '.join(repr(b) for b in SUPPORTED_BACKENDS)}"
        )
