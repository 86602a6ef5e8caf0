"""RS256 signature verification.

The algorithm is fixed. There is no negotiation from the JOSE header and no
fallback, so a token cannot select a weaker algorithm or ``none``.
"""

import logging
from typing import Union

from cryptography.exceptions import InvalidSignature
from jwcrypto import jwk
from jwcrypto.common import JWException
from jwcrypto.jwa import JWA

from social.graze.jwtbearer.claims import ParsedToken
from social.graze.jwtbearer.codec import DecodeError, b64url_decode, utf8_decode
from social.graze.jwtbearer.errors import InvalidSignatureError

logger = logging.getLogger(__name__)

ALGORITHM = "RS256"

_PEM_MARKER = "-----BEGIN"


class KeyFormatError(ValueError):
    """Raised when key material is not an RSA public key in PEM form."""


def normalize_pem(public_key: Union[str, bytes]) -> bytes:
    """Return PEM bytes from plain PEM text or base64url-wrapped PEM text."""
    if isinstance(public_key, bytes):
        try:
            public_key = public_key.decode("utf-8")
        except UnicodeDecodeError as e:
            raise KeyFormatError("key is not text") from e

    text = public_key.strip()
    if not text.startswith(_PEM_MARKER):
        try:
            text = utf8_decode(b64url_decode(text)).strip()
        except DecodeError as e:
            raise KeyFormatError("key is neither PEM nor base64url-encoded PEM") from e
        if not text.startswith(_PEM_MARKER):
            raise KeyFormatError("decoded key is not PEM")

    return text.encode("utf-8")


def load_public_key(public_key: Union[str, bytes]) -> jwk.JWK:
    """Load an RSA key from PEM (or base64url-wrapped PEM).

    Raises:
        KeyFormatError: If the material cannot be parsed or is not RSA.
    """
    try:
        key = jwk.JWK.from_pem(normalize_pem(public_key))
    except (ValueError, TypeError, JWException) as e:
        raise KeyFormatError(f"unable to load key: {e}") from e

    if key.get("kty") != "RSA":
        raise KeyFormatError(f"expected an RSA key, got {key.get('kty')}")
    return key


def verify(
    signed_content: bytes, signature: bytes, public_key_pem: Union[str, bytes]
) -> bool:
    """Verify an RSA SHA-256 (PKCS#1 v1.5) signature.

    Args:
        signed_content: The exact bytes that were signed
        signature: Raw signature bytes
        public_key_pem: PEM, or base64url-encoded PEM, public key

    Returns:
        bool: True only when the key parses as RSA and the signature matches.
    """
    try:
        key = load_public_key(public_key_pem)
    except KeyFormatError as e:
        logger.debug("verify: rejecting key material: %s", e)
        return False

    try:
        JWA.signing_alg(ALGORITHM).verify(key, signed_content, signature)
    except (InvalidSignature, ValueError, TypeError):
        return False
    return True


def check_signature(token: ParsedToken, public_key_pem: Union[str, bytes]) -> None:
    """Verify a parsed token's signature, raising on any failure.

    Raises:
        InvalidSignatureError: If the header names an algorithm other than
            RS256, the key is unusable, or the signature does not match.
    """
    if token.algorithm != ALGORITHM:
        raise InvalidSignatureError(
            f"Unsupported algorithm {token.algorithm!r}, expected {ALGORITHM}"
        )
    if not verify(token.signing_input, token.signature, public_key_pem):
        raise InvalidSignatureError()
