"""
JWT Bearer Assertion Token Authenticator

Authenticates OAuth2 clients (IoT devices) that present an RS256 signed JWT
assertion instead of a client secret.

Two request shapes share one validation pipeline:

1. DirectAuthentication: the token is signed with the device's own key, which
   is resolved from the token's (tenant_id, sub) claims.

2. ProxyBoundAuthentication: a trusted signer (a gateway, or the issuing
   authority) signs the token and the caller supplies that signer's public key.
   The device proves its presence with a separately signed client assertion
   header, and the device named by the header must be the device named by the
   token.

Every failure raises an AuthenticationError subclass. Nothing is retried and
nothing is stored, so the authenticator can be shared between threads as long
as its collaborators can.
"""

from dataclasses import dataclass, field
from datetime import datetime, timezone
import logging
import time
from types import MappingProxyType
from typing import Any, Callable, Mapping, Optional, Tuple, Union

from social.graze.jwtbearer.claims import ParsedToken, parse_token
from social.graze.jwtbearer.errors import (
    AuthenticationError,
    DeviceBindingMismatchError,
    MalformedTokenError,
    MissingHeaderError,
    MissingVerifyingKeyError,
)
from social.graze.jwtbearer.header import validate_client_assertion_header
from social.graze.jwtbearer.metrics import MetricsClient, NoOpMetricsClient
from social.graze.jwtbearer.providers import (
    ClientRecord,
    ClientRegistry,
    DevicePublicKeyResolver,
    resolve_client,
    resolve_public_key,
)
from social.graze.jwtbearer.signature import check_signature
from social.graze.jwtbearer.validation import check_audience, check_expiration

logger = logging.getLogger(__name__)

MODE_DIRECT = "direct"
MODE_PROXY_BOUND = "proxy_bound"


@dataclass(frozen=True)
class DirectAuthentication:
    """A device authenticating with a token signed by its own key."""

    token: Optional[str]


@dataclass(frozen=True)
class ProxyBoundAuthentication:
    """
    A token signed by a trusted signer, bound to a device by a client assertion header.

    Attributes:
        token: Assertion token signed by the holder of ``verifying_key``
        client_assertion_header: Compact JWT signed by the device itself
        verifying_key: PEM (or base64url-encoded PEM) public key of the token signer
    """

    token: Optional[str]
    client_assertion_header: Optional[str]
    verifying_key: Optional[str]


AuthenticationRequest = Union[DirectAuthentication, ProxyBoundAuthentication]


@dataclass(frozen=True, repr=False)
class AuthenticationResult:
    """
    The authenticated client and the device it acts for.

    Attributes:
        client: Registry record for the token issuer
        tenant_id: Tenant the device belongs to
        device_id: Authenticated device
        mode: MODE_DIRECT or MODE_PROXY_BOUND
        expires_at: Token ``exp`` in seconds since the epoch
        claims: Verified claims set; the top-level mapping is read-only,
            nested JSON values are returned as decoded
    """

    client: ClientRecord
    tenant_id: str
    device_id: str
    mode: str
    expires_at: int
    claims: Mapping[str, Any] = field(default_factory=lambda: MappingProxyType({}))

    @property
    def client_id(self) -> str:
        return self.client.client_id

    def __repr__(self) -> str:
        return (
            f"AuthenticationResult(client_id={self.client_id!r}, "
            f"tenant_id={self.tenant_id!r}, device_id={self.device_id!r}, "
            f"mode={self.mode!r})"
        )


def _utc_now() -> datetime:
    return datetime.now(timezone.utc)


def _token_identity(token: ParsedToken) -> Tuple[str, str, str]:
    tenant_id = token.tenant_id
    device_id = token.device_id
    issuer = token.issuer
    if not tenant_id or not device_id or not issuer:
        raise MalformedTokenError(
            "Assertion token must carry non-empty iss, sub and tenant_id claims"
        )
    return tenant_id, device_id, issuer


class JwtBearerAssertionTokenAuthenticator:
    """
    Validates JWT bearer assertions against a fixed audience.

    Collaborators are supplied once, at construction, and never replaced.

    Args:
        audience: Expected ``aud`` claim, compared exactly
        client_registry: Resolves the token issuer to a registered client
        key_resolver: Resolves (tenant_id, device_id) to a device public key.
            When None every lookup fails with KeyNotFoundError.
        metrics: Metrics sink, defaults to NoOpMetricsClient
        clock: Returns the current time, defaults to UTC now
    """

    def __init__(
        self,
        audience: str,
        client_registry: ClientRegistry,
        key_resolver: Optional[DevicePublicKeyResolver] = None,
        metrics: Optional[MetricsClient] = None,
        clock: Callable[[], datetime] = _utc_now,
    ):
        if not audience:
            raise ValueError("audience must be a non-empty string")

        self._audience = audience
        self._client_registry = client_registry
        self._key_resolver = key_resolver
        self._metrics = metrics or NoOpMetricsClient()
        self._clock = clock

    @property
    def audience(self) -> str:
        return self._audience

    def authenticate(self, request: AuthenticationRequest) -> AuthenticationResult:
        """
        Authenticate a request.

        Returns:
            AuthenticationResult: The authenticated client and device

        Raises:
            AuthenticationError: A subclass naming the first check that failed
        """
        mode = (
            MODE_PROXY_BOUND
            if isinstance(request, ProxyBoundAuthentication)
            else MODE_DIRECT
        )
        start_time = time.perf_counter()

        try:
            if isinstance(request, DirectAuthentication):
                result = self._authenticate_direct(request)
            elif isinstance(request, ProxyBoundAuthentication):
                result = self._authenticate_proxy_bound(request)
            else:
                raise MalformedTokenError(
                    f"Unsupported authentication request {type(request).__name__}"
                )
        except AuthenticationError as e:
            logger.info("Assertion rejected (%s): %s", mode, e)
            self._record(
                self._metrics.increment,
                "jwtbearer.authenticate.failure",
                1,
                tag_dict={"mode": mode, "code": e.code},
            )
            raise
        finally:
            self._record(
                self._metrics.timer,
                "jwtbearer.authenticate.time",
                time.perf_counter() - start_time,
                tag_dict={"mode": mode},
            )

        logger.debug(
            "Assertion accepted (%s): client=%s tenant=%s device=%s",
            mode,
            result.client_id,
            result.tenant_id,
            result.device_id,
        )
        self._record(
            self._metrics.increment,
            "jwtbearer.authenticate.success",
            1,
            tag_dict={"mode": mode},
        )
        return result

    def _record(self, emit: Callable[..., None], *args: Any, **kwargs: Any) -> None:
        try:
            emit(*args, **kwargs)
        except Exception as e:
            logger.warning(f"Error recording metric {args[0]}: {e}")

    def _authenticate_direct(
        self, request: DirectAuthentication
    ) -> AuthenticationResult:
        token = parse_token(request.token)
        tenant_id, device_id, issuer = _token_identity(token)

        public_key = resolve_public_key(self._key_resolver, tenant_id, device_id)

        return self._validate(
            token, public_key, tenant_id, device_id, issuer, MODE_DIRECT
        )

    def _authenticate_proxy_bound(
        self, request: ProxyBoundAuthentication
    ) -> AuthenticationResult:
        if not request.client_assertion_header:
            raise MissingHeaderError()
        if not request.verifying_key:
            raise MissingVerifyingKeyError()

        binding = validate_client_assertion_header(
            request.client_assertion_header, self._key_resolver
        )

        token = parse_token(request.token)
        tenant_id, device_id, issuer = _token_identity(token)

        if (binding.tenant_id, binding.device_id) != (tenant_id, device_id):
            raise DeviceBindingMismatchError(
                f"Header proves device {binding.device_id} in tenant "
                f"{binding.tenant_id}, token asserts device {device_id} in "
                f"tenant {tenant_id}"
            )

        return self._validate(
            token,
            request.verifying_key,
            tenant_id,
            device_id,
            issuer,
            MODE_PROXY_BOUND,
        )

    def _validate(
        self,
        token: ParsedToken,
        public_key: str,
        tenant_id: str,
        device_id: str,
        issuer: str,
        mode: str,
    ) -> AuthenticationResult:
        check_signature(token, public_key)

        # Claims below are only trusted once the signature has been checked.
        expires_at = check_expiration(token.expiration, self._clock())
        check_audience(token.audience, self._audience)

        client = resolve_client(self._client_registry, issuer)

        return AuthenticationResult(
            client=client,
            tenant_id=tenant_id,
            device_id=device_id,
            mode=mode,
            expires_at=expires_at,
            claims=MappingProxyType(dict(token.claims)),
        )
