"""
Assertion token and client assertion header creation.

Devices (and test suites) use these helpers to produce the RS256 JWTs the
authenticator consumes. Signing goes through jwcrypto; the output is a
compact serialization ready to be posted as a jwt-bearer grant assertion.
"""

from datetime import datetime, timezone
from typing import Any, Dict, Optional

from jwcrypto import jwk, jwt
from ulid import ULID

from social.graze.jwtbearer.claims import (
    CLAIM_AUDIENCE,
    CLAIM_EXPIRATION,
    CLAIM_ISSUED_AT,
    CLAIM_ISSUER,
    CLAIM_SUBJECT,
    CLAIM_TENANT_ID,
)
from social.graze.jwtbearer.signature import ALGORITHM

DEFAULT_EXPIRES_IN_SECONDS = 600


def generate_device_key(size: int = 2048, kid: Optional[str] = None) -> jwk.JWK:
    """Generate an RSA key pair for a device, identified by a ULID kid."""
    return jwk.JWK.generate(
        kty="RSA", size=size, kid=kid or str(ULID()), alg=ALGORITHM
    )


def export_public_pem(key: jwk.JWK) -> str:
    """Return the public half of ``key`` as PEM text."""
    return key.export_to_pem(private_key=False).decode("utf-8")


def create_jwt_header(key_id: Optional[str] = None) -> Dict[str, Any]:
    header: Dict[str, Any] = {"alg": ALGORITHM, "typ": "JWT"}
    if key_id is not None:
        header["kid"] = key_id
    return header


def create_assertion_claims(
    issuer: str,
    device_id: str,
    tenant_id: str,
    audience: str,
    issued_at: Optional[datetime] = None,
    expires_in_seconds: int = DEFAULT_EXPIRES_IN_SECONDS,
) -> Dict[str, Any]:
    """Create the claims set for a jwt-bearer assertion.

    Args:
        issuer: OAuth client id the device authenticates as
        device_id: Device identifier, carried in ``sub``
        tenant_id: Tenant the device belongs to
        audience: Token endpoint the assertion is intended for
        issued_at: Issuance time (defaults to current UTC time)
        expires_in_seconds: Lifetime added to ``issued_at`` for ``exp``

    Returns:
        Dict[str, Any]: Claims ready to be signed
    """
    if issued_at is None:
        issued_at = datetime.now(timezone.utc)

    return {
        CLAIM_ISSUER: issuer,
        CLAIM_SUBJECT: device_id,
        CLAIM_AUDIENCE: audience,
        CLAIM_TENANT_ID: tenant_id,
        CLAIM_ISSUED_AT: int(issued_at.timestamp()),
        CLAIM_EXPIRATION: int(issued_at.timestamp()) + expires_in_seconds,
    }


def create_client_assertion_header_claims(
    device_id: str,
    tenant_id: str,
    issued_at: Optional[datetime] = None,
) -> Dict[str, Any]:
    """Create the claims set proving a device's identity to a proxy."""
    if issued_at is None:
        issued_at = datetime.now(timezone.utc)

    return {
        CLAIM_SUBJECT: device_id,
        CLAIM_TENANT_ID: tenant_id,
        CLAIM_ISSUED_AT: int(issued_at.timestamp()),
    }


def sign_jwt(
    signing_key: jwk.JWK,
    claims: Dict[str, Any],
    header: Optional[Dict[str, Any]] = None,
) -> str:
    """Sign ``claims`` with ``signing_key`` and return the compact serialization."""
    if header is None:
        header = create_jwt_header(signing_key.get("kid"))

    token = jwt.JWT(header=header, claims=claims)
    token.make_signed_token(signing_key)
    return token.serialize()


def create_assertion_jwt(
    signing_key: jwk.JWK,
    issuer: str,
    device_id: str,
    tenant_id: str,
    audience: str,
    issued_at: Optional[datetime] = None,
    expires_in_seconds: int = DEFAULT_EXPIRES_IN_SECONDS,
) -> str:
    """Create a signed jwt-bearer assertion.

    Usage:
        ```python
        device_key = generate_device_key()
        assertion = create_assertion_jwt(
            device_key,
            "client-d10",
            "d10",
            "t10",
            "https://uaa.example.com/oauth/token",
        )
        ```
    """
    claims = create_assertion_claims(
        issuer, device_id, tenant_id, audience, issued_at, expires_in_seconds
    )
    return sign_jwt(signing_key, claims)


def create_client_assertion_header_jwt(
    signing_key: jwk.JWK,
    device_id: str,
    tenant_id: str,
    issued_at: Optional[datetime] = None,
) -> str:
    """Create a client assertion header signed with the device's own key."""
    claims = create_client_assertion_header_claims(device_id, tenant_id, issued_at)
    return sign_jwt(signing_key, claims)
