"""
Authentication Errors

Every way a bearer assertion can be rejected is a subclass of
AuthenticationError. Each subclass carries a stable error code that prefixes
its message, so log lines and CLI output can be matched without parsing the
human readable text.
"""

from typing import Optional


class AuthenticationError(Exception):
    """
    Base class for all assertion authentication failures.

    Attributes:
        code: Stable identifier for the failure kind
        reason: Human readable detail, without the code prefix
    """

    code: str = "error-jwt-bearer-1999"
    default_reason: str = "Authentication failed"

    def __init__(self, reason: Optional[str] = None) -> None:
        self.reason = reason or self.default_reason
        super().__init__(f"{self.code} {self.reason}")


class MalformedTokenError(AuthenticationError):
    """The token is missing, not three segments, or not decodable JSON."""

    code = "error-jwt-bearer-1000"
    default_reason = "Malformed assertion token"


class MissingHeaderError(AuthenticationError):
    """A proxy-bound request arrived without a client assertion header."""

    code = "error-jwt-bearer-1001"
    default_reason = "Client assertion header is required"


class MissingVerifyingKeyError(AuthenticationError):
    """A proxy-bound request arrived without a verifying key."""

    code = "error-jwt-bearer-1002"
    default_reason = "Verifying key is required"


class KeyNotFoundError(AuthenticationError):
    """No usable public key for the device: no resolver, a null key, or not found."""

    code = "error-jwt-bearer-1003"
    default_reason = "Public key not found"


class InvalidSignatureError(AuthenticationError):
    """Signature, algorithm, or key material did not verify."""

    code = "error-jwt-bearer-1004"
    default_reason = "Invalid signature"


class ExpiredTokenError(AuthenticationError):
    code = "error-jwt-bearer-1005"
    default_reason = "Assertion token has expired"


class MissingExpirationError(AuthenticationError):
    code = "error-jwt-bearer-1006"
    default_reason = "Assertion token has no exp claim"


class InvalidExpirationFormatError(AuthenticationError):
    code = "error-jwt-bearer-1007"
    default_reason = "Assertion token exp claim is not a 64-bit integer"


class AudienceMismatchError(AuthenticationError):
    code = "error-jwt-bearer-1008"
    default_reason = "Audience does not match"


class UnknownClientError(AuthenticationError):
    code = "error-jwt-bearer-1009"
    default_reason = "Unknown client"


class DeviceBindingMismatchError(AuthenticationError):
    """The client assertion header names a different device than the token."""

    code = "error-jwt-bearer-1010"
    default_reason = "Client assertion header does not match token device"
