import argparse
import asyncio
import logging
import sys
from typing import Any, Dict, Optional

from jwcrypto import jwk
from pydantic import ValidationError
import sentry_sdk

from social.graze.jwtbearer.authenticator import (
    AuthenticationRequest,
    DirectAuthentication,
    ProxyBoundAuthentication,
)
from social.graze.jwtbearer.cli import configure_logging
from social.graze.jwtbearer.config import Settings, create_authenticator
from social.graze.jwtbearer.errors import AuthenticationError
from social.graze.jwtbearer.metrics import create_metrics_client
from social.graze.jwtbearer.mint import (
    DEFAULT_EXPIRES_IN_SECONDS,
    create_assertion_jwt,
    create_client_assertion_header_jwt,
    export_public_pem,
    generate_device_key,
)

logger = logging.getLogger(__name__)


def load_signing_key(path: str) -> jwk.JWK:
    with open(path) as fd:
        return jwk.JWK.from_json(fd.read())


def read_text(path: str) -> str:
    with open(path) as fd:
        return fd.read()


async def genKey(size: int) -> None:
    key = generate_device_key(size=size)
    print(key.export(private_key=True))
    print(export_public_pem(key), end="")


async def mint(
    key_file: str,
    issuer: str,
    device_id: str,
    tenant_id: str,
    audience: str,
    expires_in: int,
) -> None:
    print(
        create_assertion_jwt(
            load_signing_key(key_file),
            issuer,
            device_id,
            tenant_id,
            audience,
            expires_in_seconds=expires_in,
        )
    )


async def mintHeader(key_file: str, device_id: str, tenant_id: str) -> None:
    print(
        create_client_assertion_header_jwt(
            load_signing_key(key_file), device_id, tenant_id
        )
    )


async def verify(
    token: str,
    header: Optional[str],
    verifying_key_file: Optional[str],
    audience: Optional[str],
) -> int:
    overrides: Dict[str, Any] = {}
    if audience is not None:
        overrides["audience"] = audience
    try:
        settings = Settings(**overrides)
    except ValidationError as e:
        fields = ", ".join(str(error["loc"][0]) for error in e.errors() if error["loc"])
        print(
            f"jwtbearer-util verify: invalid settings: {fields} "
            "(AUDIENCE is required unless --audience is passed)",
            file=sys.stderr,
        )
        return 2

    configure_logging(settings.debug)

    if settings.sentry_dsn:
        sentry_sdk.init(dsn=settings.sentry_dsn)

    metrics = create_metrics_client(
        settings.metrics_backend,
        host=settings.statsd_host,
        port=settings.statsd_port,
        debug=settings.debug,
    )
    await metrics.connect()

    try:
        authenticator = create_authenticator(settings, metrics)

        request: AuthenticationRequest
        if header is None and verifying_key_file is None:
            request = DirectAuthentication(token=token)
        else:
            request = ProxyBoundAuthentication(
                token=token,
                client_assertion_header=header,
                verifying_key=(
                    read_text(verifying_key_file)
                    if verifying_key_file is not None
                    else None
                ),
            )

        try:
            result = authenticator.authenticate(request)
        except AuthenticationError as e:
            print(f"rejected {e.code}: {e.reason}")
            return 1

        print(
            f"authenticated client={result.client_id} tenant={result.tenant_id} "
            f"device={result.device_id} mode={result.mode} exp={result.expires_at}"
        )
        return 0
    finally:
        await metrics.close()


async def realMain() -> int:
    parser = argparse.ArgumentParser(
        prog="jwtbearer-util", description="JWT bearer assertion utilities"
    )

    subparsers = parser.add_subparsers(dest="command", required=True)

    gen_key = subparsers.add_parser("gen-key", help="Generate a device RSA key")
    gen_key.add_argument("--size", type=int, default=2048, help="RSA modulus size.")

    mint_parser = subparsers.add_parser("mint", help="Mint an assertion token")
    mint_parser.add_argument("key_file", help="Private JWK file to sign with.")
    mint_parser.add_argument("issuer", help="Client id (iss).")
    mint_parser.add_argument("device_id", help="Device id (sub).")
    mint_parser.add_argument("tenant_id", help="Tenant id.")
    mint_parser.add_argument("audience", help="Token endpoint (aud).")
    mint_parser.add_argument(
        "--expires-in",
        type=int,
        default=DEFAULT_EXPIRES_IN_SECONDS,
        help="Lifetime in seconds.",
    )

    mint_header = subparsers.add_parser(
        "mint-header", help="Mint a client assertion header"
    )
    mint_header.add_argument("key_file", help="Device private JWK file to sign with.")
    mint_header.add_argument("device_id", help="Device id (sub).")
    mint_header.add_argument("tenant_id", help="Tenant id.")

    verify_parser = subparsers.add_parser("verify", help="Authenticate an assertion")
    verify_parser.add_argument("token", help="The assertion token.")
    verify_parser.add_argument("--header", help="Client assertion header.")
    verify_parser.add_argument(
        "--verifying-key-file", help="PEM public key of the token signer."
    )
    verify_parser.add_argument("--audience", help="Overrides AUDIENCE.")

    args = vars(parser.parse_args())
    command = args.get("command", None)

    if command == "gen-key":
        await genKey(args["size"])
    elif command == "mint":
        await mint(
            args["key_file"],
            args["issuer"],
            args["device_id"],
            args["tenant_id"],
            args["audience"],
            args["expires_in"],
        )
    elif command == "mint-header":
        await mintHeader(args["key_file"], args["device_id"], args["tenant_id"])
    elif command == "verify":
        return await verify(
            args["token"],
            args.get("header"),
            args.get("verifying_key_file"),
            args.get("audience"),
        )
    return 0


def main() -> None:
    sys.exit(asyncio.run(realMain()))


if __name__ == "__main__":
    main()
