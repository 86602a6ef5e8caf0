"""
Tests for assertion token and client assertion header creation.

Tokens are checked both with jwcrypto directly and with the parser the
authenticator uses.
"""

import json
from datetime import datetime, timezone

from jwcrypto import jwk, jwt

from social.graze.jwtbearer.claims import parse_token
from social.graze.jwtbearer.mint import (
    DEFAULT_EXPIRES_IN_SECONDS,
    create_assertion_claims,
    create_assertion_jwt,
    create_client_assertion_header_claims,
    create_client_assertion_header_jwt,
    create_jwt_header,
    export_public_pem,
    generate_device_key,
)
from social.graze.jwtbearer.signature import verify

ISSUED_AT = datetime(2026, 3, 1, 12, 0, 0, tzinfo=timezone.utc)


class TestGenerateDeviceKey:
    def test_rsa_key_with_kid(self, device_key):
        key_dict = device_key.export(as_dict=True)
        assert key_dict["kty"] == "RSA"
        assert key_dict["alg"] == "RS256"
        assert len(key_dict["kid"]) == 26  # ULID length

    def test_explicit_kid(self):
        key = generate_device_key(kid="device-d10")
        assert key.export(as_dict=True)["kid"] == "device-d10"

    def test_public_pem_has_no_private_material(self, device_key):
        pem = export_public_pem(device_key)
        assert pem.startswith("-----BEGIN PUBLIC KEY-----")
        assert "PRIVATE" not in pem


class TestCreateJwtHeader:
    def test_without_kid(self):
        assert create_jwt_header() == {"alg": "RS256", "typ": "JWT"}

    def test_with_kid(self):
        assert create_jwt_header("abc")["kid"] == "abc"


class TestCreateAssertionClaims:
    def test_structure(self):
        claims = create_assertion_claims(
            "client-d10", "d10", "t10", "https://uaa.example.com/oauth/token", ISSUED_AT
        )

        assert claims == {
            "iss": "client-d10",
            "sub": "d10",
            "aud": "https://uaa.example.com/oauth/token",
            "tenant_id": "t10",
            "iat": int(ISSUED_AT.timestamp()),
            "exp": int(ISSUED_AT.timestamp()) + DEFAULT_EXPIRES_IN_SECONDS,
        }

    def test_custom_lifetime(self):
        claims = create_assertion_claims("c", "d", "t", "a", ISSUED_AT, 60)
        assert claims["exp"] - claims["iat"] == 60

    def test_default_issued_at(self):
        before = int(datetime.now(timezone.utc).timestamp())
        claims = create_assertion_claims("c", "d", "t", "a")
        after = int(datetime.now(timezone.utc).timestamp())
        assert before <= claims["iat"] <= after


class TestCreateClientAssertionHeaderClaims:
    def test_structure(self):
        claims = create_client_assertion_header_claims("d10", "t10", ISSUED_AT)
        assert claims == {
            "sub": "d10",
            "tenant_id": "t10",
            "iat": int(ISSUED_AT.timestamp()),
        }


class TestCreateAssertionJwt:
    def test_jwcrypto_verifies(self, device_key):
        token = create_assertion_jwt(
            device_key, "client-d10", "d10", "t10", "aud", ISSUED_AT
        )

        public_key = jwk.JWK.from_pem(export_public_pem(device_key).encode("utf-8"))
        parsed = jwt.JWT(jwt=token, key=public_key, algs=["RS256"], check_claims=False)
        claims = json.loads(parsed.claims)
        assert claims["iss"] == "client-d10"
        assert claims["sub"] == "d10"

    def test_parser_reads_it(self, device_key, device_public_pem):
        token = parse_token(
            create_assertion_jwt(device_key, "client-d10", "d10", "t10", "aud", ISSUED_AT)
        )

        assert token.algorithm == "RS256"
        assert token.header["kid"] == device_key.export(as_dict=True)["kid"]
        assert token.tenant_id == "t10"
        assert verify(token.signing_input, token.signature, device_public_pem)


class TestCreateClientAssertionHeaderJwt:
    def test_signed_by_device(self, device_key, device_public_pem, rogue_key):
        token = parse_token(create_client_assertion_header_jwt(device_key, "d10", "t10"))

        assert token.device_id == "d10"
        assert token.tenant_id == "t10"
        assert verify(token.signing_input, token.signature, device_public_pem)
        assert not verify(
            token.signing_input, token.signature, export_public_pem(rogue_key)
        )
