"""
Assertion token parsing.

Splits a compact JWT into its three segments, decodes the JOSE header and the
claims set, and exposes typed accessors for the claims the authenticator
needs. Nothing here checks signatures or times; that happens downstream so that
each failure is reported with its own error kind.
"""

from dataclasses import dataclass
import json
from typing import Any, Dict, Optional

from social.graze.jwtbearer.codec import (
    PERIOD,
    DecodeError,
    b64url_decode,
    concat,
    utf8_decode,
    utf8_encode,
)
from social.graze.jwtbearer.errors import MalformedTokenError

CLAIM_ISSUER = "iss"
CLAIM_SUBJECT = "sub"
CLAIM_AUDIENCE = "aud"
CLAIM_EXPIRATION = "exp"
CLAIM_ISSUED_AT = "iat"
CLAIM_TENANT_ID = "tenant_id"


@dataclass(frozen=True)
class ParsedToken:
    """
    A decoded, not yet verified, compact JWT.

    Attributes:
        header: Decoded JOSE header
        claims: Decoded claims set
        signing_input: Exact ``header "." claims`` bytes as they appeared on the wire
        signature: Raw signature bytes
    """

    header: Dict[str, Any]
    claims: Dict[str, Any]
    signing_input: bytes
    signature: bytes

    @property
    def algorithm(self) -> Optional[str]:
        return _as_str(self.header.get("alg"))

    @property
    def issuer(self) -> Optional[str]:
        return _as_str(self.claims.get(CLAIM_ISSUER))

    @property
    def device_id(self) -> Optional[str]:
        """The device identifier, carried in ``sub``."""
        return _as_str(self.claims.get(CLAIM_SUBJECT))

    @property
    def tenant_id(self) -> Optional[str]:
        return _as_str(self.claims.get(CLAIM_TENANT_ID))

    @property
    def audience(self) -> Optional[str]:
        return _as_str(self.claims.get(CLAIM_AUDIENCE))

    @property
    def expiration(self) -> Any:
        """Raw ``exp`` value; format is checked by the validator."""
        return self.claims.get(CLAIM_EXPIRATION)

    @property
    def issued_at(self) -> Any:
        return self.claims.get(CLAIM_ISSUED_AT)


def _as_str(value: Any) -> Optional[str]:
    return value if isinstance(value, str) else None


def _decode_json_segment(segment: bytes, label: str) -> Dict[str, Any]:
    try:
        decoded = json.loads(utf8_decode(b64url_decode(segment)))
    except (ValueError, RecursionError) as e:
        raise MalformedTokenError(f"Could not decode {label}: {e}") from e

    if not isinstance(decoded, dict):
        raise MalformedTokenError(f"{label} is not a JSON object")
    return decoded


def parse_token(token: Optional[str]) -> ParsedToken:
    """Parse a compact JWT.

    Raises:
        MalformedTokenError: If the token is None or empty, does not have exactly
            three non-empty segments, or a segment does not decode to a JSON object.
    """
    if token is None or not isinstance(token, str) or len(token) == 0:
        raise MalformedTokenError("Assertion token is missing")

    try:
        raw = utf8_encode(token)
    except UnicodeEncodeError as e:
        raise MalformedTokenError("Assertion token is not valid text") from e

    segments = raw.split(PERIOD)
    if len(segments) != 3:
        raise MalformedTokenError(
            f"Expected 3 segments (header.claims.signature), got {len(segments)}"
        )
    if any(len(segment) == 0 for segment in segments):
        raise MalformedTokenError("Assertion token has an empty segment")

    header_segment, claims_segment, signature_segment = segments

    header = _decode_json_segment(header_segment, "header")
    claims = _decode_json_segment(claims_segment, "claims")

    try:
        signature = b64url_decode(signature_segment)
    except DecodeError as e:
        raise MalformedTokenError(f"Could not decode signature: {e}") from e

    return ParsedToken(
        header=header,
        claims=claims,
        signing_input=concat(header_segment, PERIOD, claims_segment),
        signature=signature,
    )
