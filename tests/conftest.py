"""
Shared test configuration and fixtures for the assertion authenticator tests.

RSA key generation is slow, so keys are generated once per session.
"""

from unittest.mock import Mock

import pytest

from social.graze.jwtbearer.authenticator import JwtBearerAssertionTokenAuthenticator
from social.graze.jwtbearer.metrics import MetricsClient
from social.graze.jwtbearer.mint import export_public_pem, generate_device_key
from social.graze.jwtbearer.providers import (
    ClientRecord,
    InMemoryClientRegistry,
    InMemoryDevicePublicKeyResolver,
)
from tests.test_helpers import AUDIENCE, DEVICE_ID, ISSUER_ID, TENANT_ID, fixed_clock


@pytest.fixture(scope="session")
def device_key():
    """Key registered for (TENANT_ID, DEVICE_ID)."""
    return generate_device_key()


@pytest.fixture(scope="session")
def signer_key():
    """Key of a trusted token signer such as a gateway."""
    return generate_device_key()


@pytest.fixture(scope="session")
def rogue_key():
    """Key registered for nobody."""
    return generate_device_key()


@pytest.fixture(scope="session")
def device_public_pem(device_key):
    return export_public_pem(device_key)


@pytest.fixture(scope="session")
def signer_public_pem(signer_key):
    return export_public_pem(signer_key)


@pytest.fixture
def key_resolver(device_public_pem):
    return InMemoryDevicePublicKeyResolver({(TENANT_ID, DEVICE_ID): device_public_pem})


@pytest.fixture
def client_registry():
    return InMemoryClientRegistry([ClientRecord(client_id=ISSUER_ID)])


@pytest.fixture
def metrics():
    return Mock(spec=MetricsClient)


@pytest.fixture
def authenticator(key_resolver, client_registry, metrics):
    return JwtBearerAssertionTokenAuthenticator(
        audience=AUDIENCE,
        client_registry=client_registry,
        key_resolver=key_resolver,
        metrics=metrics,
        clock=fixed_clock,
    )
