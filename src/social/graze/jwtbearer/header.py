"""
Client assertion header validation.

A client assertion header is a small RS256 JWT signed with a device's own
private key. It proves which device is on the other end of a proxy-bound
request. The header is verified against the key registered for the
(tenant_id, sub) pair it names, and that pair is returned so the caller can
bind it to the assertion token.
"""

from dataclasses import dataclass
import logging
from typing import Optional

from social.graze.jwtbearer.claims import parse_token
from social.graze.jwtbearer.errors import MalformedTokenError
from social.graze.jwtbearer.providers import DevicePublicKeyResolver, resolve_public_key
from social.graze.jwtbearer.signature import check_signature

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class DeviceBinding:
    """The device identity proven by a client assertion header."""

    tenant_id: str
    device_id: str


def validate_client_assertion_header(
    client_assertion_header: str,
    key_resolver: Optional[DevicePublicKeyResolver],
) -> DeviceBinding:
    """
    Verify a client assertion header and return the device it proves.

    Args:
        client_assertion_header: Compact JWT carrying ``sub`` and ``tenant_id``
        key_resolver: Resolver for the device's registered public key

    Returns:
        DeviceBinding: The verified (tenant_id, device_id) pair

    Raises:
        MalformedTokenError: If the header cannot be parsed or lacks either claim
        KeyNotFoundError: If no key is available for the named device
        InvalidSignatureError: If the header was not signed by that device's key
    """
    header = parse_token(client_assertion_header)

    tenant_id = header.tenant_id
    device_id = header.device_id
    if not tenant_id or not device_id:
        raise MalformedTokenError(
            "Client assertion header must carry tenant_id and sub claims"
        )

    public_key = resolve_public_key(key_resolver, tenant_id, device_id)
    check_signature(header, public_key)

    logger.debug(
        "Verified client assertion header for tenant=%s device=%s",
        tenant_id,
        device_id,
    )
    return DeviceBinding(tenant_id=tenant_id, device_id=device_id)
