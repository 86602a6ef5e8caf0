"""Time and audience checks for assertion tokens."""

from datetime import datetime
import re
from typing import Any, Optional

from social.graze.jwtbearer.errors import (
    AudienceMismatchError,
    ExpiredTokenError,
    InvalidExpirationFormatError,
    MissingExpirationError,
)

# -2**63 is excluded so that the range is symmetric around zero.
MAX_EXPIRATION = 2**63 - 1
MIN_EXPIRATION = -MAX_EXPIRATION

_INTEGER_STRING = re.compile(r"[+-]?[0-9]+")


def parse_expiration(expiration_claim: Any) -> int:
    """Parse a raw ``exp`` claim into whole seconds since the epoch.

    Accepts a JSON integer or the decimal string form of one.

    Raises:
        MissingExpirationError: If the claim is absent.
        InvalidExpirationFormatError: If the claim is a boolean, a float, a
            non-numeric string, or outside the signed 64-bit range.
    """
    if expiration_claim is None:
        raise MissingExpirationError()

    if isinstance(expiration_claim, bool):
        raise InvalidExpirationFormatError("exp claim is a boolean")

    if isinstance(expiration_claim, int):
        value = expiration_claim
    elif isinstance(expiration_claim, str) and _INTEGER_STRING.fullmatch(
        expiration_claim
    ):
        try:
            value = int(expiration_claim)
        except ValueError as e:
            raise InvalidExpirationFormatError(
                "exp claim has too many digits"
            ) from e
    else:
        raise InvalidExpirationFormatError(
            f"exp claim {expiration_claim!r} is not an integer"
        )

    if value < MIN_EXPIRATION or value > MAX_EXPIRATION:
        raise InvalidExpirationFormatError(
            f"exp claim {value} is outside the signed 64-bit range"
        )
    return value


def check_expiration(expiration_claim: Any, now: datetime) -> int:
    """Fail when ``now`` is at or past the token expiration.

    Returns:
        int: The parsed expiration in seconds since the epoch.
    """
    expiration = parse_expiration(expiration_claim)
    if now.timestamp() >= expiration:
        raise ExpiredTokenError(f"Assertion token expired at {expiration}")
    return expiration


def check_audience(token_audience: Optional[str], configured_audience: str) -> None:
    """Require exact equality between the token audience and ours."""
    if token_audience is None or token_audience != configured_audience:
        raise AudienceMismatchError(
            f"Audience {token_audience!r} does not match {configured_audience!r}"
        )
