"""
Collaborator contracts consumed by the authenticator.

DevicePublicKeyResolver maps (tenant, device) to a PEM public key and
ClientRegistry maps an issuer to a client record. Both are injected into the
authenticator at construction. The in-memory implementations here are read
only after construction and are safe to share between threads.
"""

from abc import ABC, abstractmethod
import json
import logging
from types import MappingProxyType
from typing import Any, Dict, Iterable, List, Mapping, Optional, Tuple

from pydantic import BaseModel, Field
import sentry_sdk

from social.graze.jwtbearer.errors import KeyNotFoundError, UnknownClientError

logger = logging.getLogger(__name__)


class PublicKeyNotFoundException(Exception):
    """Raised by a resolver that has no key for the requested device."""


class ClientNotFoundException(Exception):
    """Raised by a registry that has no client for the requested id."""


class ClientRecord(BaseModel):
    """
    Registered OAuth client.

    Only ``client_id`` is interpreted here; everything else is carried through
    to the authentication result untouched.
    """

    client_id: str
    scope: List[str] = Field(default_factory=list)
    authorities: List[str] = Field(default_factory=list)
    additional_information: Dict[str, Any] = Field(default_factory=dict)


class DevicePublicKeyResolver(ABC):
    @abstractmethod
    def lookup(self, tenant_id: str, device_id: str) -> Optional[str]:
        """
        Return the PEM (or base64url-encoded PEM) public key for a device.

        Implementations may return None or raise PublicKeyNotFoundException when
        the device is unknown. Any other exception is treated as a lookup failure.
        """
        pass


class ClientRegistry(ABC):
    @abstractmethod
    def lookup(self, client_id: str) -> Optional[ClientRecord]:
        """
        Return the client registered under ``client_id``.

        Implementations may return None or raise ClientNotFoundException.
        """
        pass


class InMemoryDevicePublicKeyResolver(DevicePublicKeyResolver):
    """Resolver over a fixed mapping of (tenant_id, device_id) to PEM."""

    def __init__(self, keys: Mapping[Tuple[str, str], str]):
        self._keys = MappingProxyType(dict(keys))

    def lookup(self, tenant_id: str, device_id: str) -> Optional[str]:
        key = self._keys.get((tenant_id, device_id))
        if key is None:
            raise PublicKeyNotFoundException(
                f"No public key for device {device_id} in tenant {tenant_id}"
            )
        return key

    @staticmethod
    def from_json_file(path: str) -> "InMemoryDevicePublicKeyResolver":
        """
        Load keys from a JSON object of ``{"tenant": {"device": "PEM"}}``.
        """
        with open(path) as fd:
            data = json.load(fd)

        if not isinstance(data, dict):
            raise ValueError(f"{path}: expected a JSON object of tenants")

        keys: Dict[Tuple[str, str], str] = {}
        for tenant_id, devices in data.items():
            if not isinstance(devices, dict):
                raise ValueError(f"{path}: tenant {tenant_id} must map devices to keys")
            for device_id, pem in devices.items():
                keys[(tenant_id, device_id)] = pem

        logger.info("Loaded %d device keys from %s", len(keys), path)
        return InMemoryDevicePublicKeyResolver(keys)


class InMemoryClientRegistry(ClientRegistry):
    """Registry over a fixed set of client records."""

    def __init__(self, clients: Iterable[ClientRecord]):
        self._clients = MappingProxyType({c.client_id: c for c in clients})

    def lookup(self, client_id: str) -> Optional[ClientRecord]:
        return self._clients.get(client_id)

    @staticmethod
    def from_json_file(path: str) -> "InMemoryClientRegistry":
        """
        Load clients from a JSON list of client ids or client record objects.
        """
        with open(path) as fd:
            data = json.load(fd)

        if not isinstance(data, list):
            raise ValueError(f"{path}: expected a JSON list of clients")

        clients = [
            ClientRecord(client_id=entry)
            if isinstance(entry, str)
            else ClientRecord.model_validate(entry)
            for entry in data
        ]
        logger.info("Loaded %d clients from %s", len(clients), path)
        return InMemoryClientRegistry(clients)


def resolve_public_key(
    resolver: Optional[DevicePublicKeyResolver], tenant_id: str, device_id: str
) -> str:
    """
    Look up a device key and fold every "no usable key" outcome into one error.

    A missing resolver, a None or empty result, PublicKeyNotFoundException, and
    any other resolver exception all raise KeyNotFoundError. Unexpected
    exceptions are also logged and reported to Sentry.
    """
    if resolver is None:
        raise KeyNotFoundError("No device public key resolver is configured")

    try:
        public_key = resolver.lookup(tenant_id, device_id)
    except PublicKeyNotFoundException as e:
        raise KeyNotFoundError(
            f"No public key for device {device_id} in tenant {tenant_id}"
        ) from e
    except Exception as e:
        sentry_sdk.capture_exception(e)
        logger.exception(
            "resolve_public_key: resolver failed for tenant=%s device=%s",
            tenant_id,
            device_id,
        )
        raise KeyNotFoundError(
            f"Public key lookup failed for device {device_id} in tenant {tenant_id}"
        ) from e

    if not public_key:
        raise KeyNotFoundError(
            f"No public key for device {device_id} in tenant {tenant_id}"
        )
    return public_key


def resolve_client(registry: ClientRegistry, client_id: str) -> ClientRecord:
    """Look up a client, raising UnknownClientError when it is not registered."""
    try:
        client = registry.lookup(client_id)
    except ClientNotFoundException as e:
        raise UnknownClientError(f"Unknown client {client_id}") from e
    except Exception as e:
        sentry_sdk.capture_exception(e)
        logger.exception("resolve_client: registry failed for client=%s", client_id)
        raise UnknownClientError(f"Client lookup failed for {client_id}") from e

    if client is None:
        raise UnknownClientError(f"Unknown client {client_id}")
    return client
