"""Tests for the key resolver and client registry collaborators."""

import json
from unittest.mock import Mock, patch

import pytest
from pydantic import ValidationError

from social.graze.jwtbearer.errors import KeyNotFoundError, UnknownClientError
from social.graze.jwtbearer.providers import (
    ClientNotFoundException,
    ClientRecord,
    ClientRegistry,
    DevicePublicKeyResolver,
    InMemoryClientRegistry,
    InMemoryDevicePublicKeyResolver,
    PublicKeyNotFoundException,
    resolve_client,
    resolve_public_key,
)

PEM = "-----BEGIN PUBLIC KEY-----\nMIIB\n-----END PUBLIC KEY-----\n"


class TestInMemoryDevicePublicKeyResolver:
    def test_lookup(self):
        resolver = InMemoryDevicePublicKeyResolver({("t10", "d10"): PEM})
        assert resolver.lookup("t10", "d10") == PEM

    def test_keys_scoped_by_tenant(self):
        resolver = InMemoryDevicePublicKeyResolver({("t10", "d10"): PEM})
        with pytest.raises(PublicKeyNotFoundException):
            resolver.lookup("t11", "d10")

    def test_source_mapping_copied(self):
        keys = {("t10", "d10"): PEM}
        resolver = InMemoryDevicePublicKeyResolver(keys)
        keys.clear()
        assert resolver.lookup("t10", "d10") == PEM

    def test_from_json_file(self, tmp_path):
        path = tmp_path / "keys.json"
        path.write_text(json.dumps({"t10": {"d10": PEM, "d11": PEM}, "t11": {}}))

        resolver = InMemoryDevicePublicKeyResolver.from_json_file(str(path))
        assert resolver.lookup("t10", "d11") == PEM

    @pytest.mark.parametrize("content", [[], {"t10": ["d10"]}])
    def test_from_json_file_wrong_shape(self, tmp_path, content):
        path = tmp_path / "keys.json"
        path.write_text(json.dumps(content))

        with pytest.raises(ValueError):
            InMemoryDevicePublicKeyResolver.from_json_file(str(path))


class TestInMemoryClientRegistry:
    def test_lookup(self):
        registry = InMemoryClientRegistry([ClientRecord(client_id="client-d10")])
        assert registry.lookup("client-d10").client_id == "client-d10"
        assert registry.lookup("nonexistent-client") is None

    def test_from_json_file(self, tmp_path):
        path = tmp_path / "clients.json"
        path.write_text(
            json.dumps(
                [
                    "client-d10",
                    {"client_id": "client-d11", "scope": ["uaa.none"]},
                ]
            )
        )

        registry = InMemoryClientRegistry.from_json_file(str(path))
        assert registry.lookup("client-d10") == ClientRecord(client_id="client-d10")
        assert registry.lookup("client-d11").scope == ["uaa.none"]

    def test_from_json_file_wrong_shape(self, tmp_path):
        path = tmp_path / "clients.json"
        path.write_text(json.dumps({"client_id": "client-d10"}))

        with pytest.raises(ValueError):
            InMemoryClientRegistry.from_json_file(str(path))

    def test_from_json_file_invalid_record(self, tmp_path):
        path = tmp_path / "clients.json"
        path.write_text(json.dumps([{"scope": []}]))

        with pytest.raises(ValidationError):
            InMemoryClientRegistry.from_json_file(str(path))


class TestResolvePublicKey:
    def test_found(self):
        resolver = InMemoryDevicePublicKeyResolver({("t10", "d10"): PEM})
        assert resolve_public_key(resolver, "t10", "d10") == PEM

    def test_no_resolver(self):
        with pytest.raises(KeyNotFoundError, match="No device public key resolver"):
            resolve_public_key(None, "t10", "d10")

    def test_not_found(self):
        resolver = InMemoryDevicePublicKeyResolver({})
        with pytest.raises(KeyNotFoundError):
            resolve_public_key(resolver, "t10", "d10")

    @pytest.mark.parametrize("value", [None, ""])
    def test_empty_result(self, value):
        resolver = Mock(spec=DevicePublicKeyResolver)
        resolver.lookup.return_value = value
        with pytest.raises(KeyNotFoundError):
            resolve_public_key(resolver, "t10", "d10")

    def test_resolver_failure_reported(self):
        resolver = Mock(spec=DevicePublicKeyResolver)
        error = TimeoutError("key service timed out")
        resolver.lookup.side_effect = error

        with patch("social.graze.jwtbearer.providers.sentry_sdk") as mock_sentry:
            with pytest.raises(KeyNotFoundError) as exc_info:
                resolve_public_key(resolver, "t10", "d10")

        mock_sentry.capture_exception.assert_called_once_with(error)
        assert exc_info.value.__cause__ is error

    def test_not_found_not_reported(self):
        resolver = Mock(spec=DevicePublicKeyResolver)
        resolver.lookup.side_effect = PublicKeyNotFoundException()

        with patch("social.graze.jwtbearer.providers.sentry_sdk") as mock_sentry:
            with pytest.raises(KeyNotFoundError):
                resolve_public_key(resolver, "t10", "d10")

        mock_sentry.capture_exception.assert_not_called()


class TestResolveClient:
    def test_found(self):
        registry = InMemoryClientRegistry([ClientRecord(client_id="client-d10")])
        assert resolve_client(registry, "client-d10").client_id == "client-d10"

    def test_none(self):
        with pytest.raises(UnknownClientError, match="nonexistent-client"):
            resolve_client(InMemoryClientRegistry([]), "nonexistent-client")

    def test_not_found_exception(self):
        registry = Mock(spec=ClientRegistry)
        registry.lookup.side_effect = ClientNotFoundException()
        with pytest.raises(UnknownClientError):
            resolve_client(registry, "client-d10")

    def test_registry_failure_reported(self):
        registry = Mock(spec=ClientRegistry)
        registry.lookup.side_effect = RuntimeError("registry down")

        with patch("social.graze.jwtbearer.providers.sentry_sdk") as mock_sentry:
            with pytest.raises(UnknownClientError):
                resolve_client(registry, "client-d10")

        mock_sentry.capture_exception.assert_called_once()


class TestContracts:
    def test_resolver_is_abstract(self):
        with pytest.raises(TypeError):
            DevicePublicKeyResolver()

    def test_registry_is_abstract(self):
        with pytest.raises(TypeError):
            ClientRegistry()
