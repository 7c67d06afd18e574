"""Command-line interface: manage registered API clients and ID keys."""

import argparse
import asyncio
import os
import sys
from collections.abc import Awaitable, Callable
from pathlib import Path

import httpx

from credcore.cli.remote import RegistryClient
from credcore.core.errors import CredcoreError
from credcore.core.logging import configure_logging, get_logger
from credcore.core.settings import ClientSettings, expand_path
from credcore.crypto.idkey import IdentityKey, generate_identity_key
from credcore.registry.types import (
    ClientDraft,
    ClientPatch,
    LoginPolicy,
    RegisteredClient,
    parse_client_type,
)

log = get_logger(__name__)

KEY_FILE_MODE = 0o600

Handler = Callable[
    [argparse.Namespace, RegistryClient, ClientSettings], Awaitable[None]
]


def _print_client(client: RegisteredClient) -> None:
    print(client.model_dump_json(indent=2))


def _id_key_path(args: argparse.Namespace, settings: ClientSettings) -> str:
    if args.id_key_file:
        return expand_path(args.id_key_file)
    return settings.resolved_id_key_file()


async def cmd_create(
    args: argparse.Namespace, client: RegistryClient, settings: ClientSettings
) -> None:
    client_type = parse_client_type(args.type)
    path = _id_key_path(args, settings)
    key = IdentityKey.from_file(path)
    log.info("using public key from file", path=path)

    draft = ClientDraft(
        id=key.id,
        client_name=args.client_name,
        client_uri=args.client_uri,
        description=args.description,
        type=client_type.value,
        jwks=key.marshal_jwks(),
        redirect_uris=[args.redirect_uri] if args.redirect_uri else [],
        allow_logins=args.allow_logins,
    )
    registered = await client.create(draft)
    print("# Registered API client:")
    _print_client(registered)


async def cmd_list(
    args: argparse.Namespace, client: RegistryClient, _settings: ClientSettings
) -> None:
    async for registered in client.iter_all(per_page=args.per_page):
        if args.detail:
            _print_client(registered)
        else:
            print(f"{registered.id:<48}   {registered.created_at.isoformat()}")


async def cmd_get(
    args: argparse.Namespace, client: RegistryClient, _settings: ClientSettings
) -> None:
    for client_id in args.ids:
        _print_client(await client.get(client_id))


async def cmd_current(
    args: argparse.Namespace, client: RegistryClient, settings: ClientSettings
) -> None:
    key = IdentityKey.from_file(_id_key_path(args, settings))
    _print_client(await client.current(key))


async def cmd_update(
    args: argparse.Namespace, client: RegistryClient, _settings: ClientSettings
) -> None:
    patch = ClientPatch(
        client_name=args.client_name,
        client_uri=args.client_uri,
        redirect_uris=[args.redirect_uri] if args.redirect_uri else None,
        description=args.description,
        allow_logins=args.allow_logins,
    )
    await client.update(args.client_id, patch)
    print(f"{args.client_id}: updated")


async def cmd_delete(
    args: argparse.Namespace, client: RegistryClient, _settings: ClientSettings
) -> None:
    for client_id in args.ids:
        await client.delete(client_id)
        print(f"{client_id}: deleted")


def cmd_keygen(args: argparse.Namespace, settings: ClientSettings) -> None:
    """Write a new identity key file and print its client ID."""
    path = Path(_id_key_path(args, settings))
    if path.exists() and not args.force:
        raise FileExistsError(f"{path} already exists (use --force to overwrite)")
    key = generate_identity_key(args.kind)
    path.parent.mkdir(parents=True, exist_ok=True)
    fd = os.open(path, os.O_WRONLY | os.O_CREAT | os.O_TRUNC, KEY_FILE_MODE)
    with os.fdopen(fd, "w") as f:
        f.write(key.private_key_pem())
    log.info("wrote ID key", path=str(path))
    print(key.id)


def _add_id_key_option(parser: argparse.ArgumentParser) -> None:
    parser.add_argument(
        "-i",
        "--id-key-file",
        help="path to file containing ID key (only the public key is transmitted)",
    )


def _add_client_fields(parser: argparse.ArgumentParser, default: str | None) -> None:
    parser.add_argument("--client-name", default=default)
    parser.add_argument("--client-uri", default=default)
    parser.add_argument("--redirect-uri", default=default)
    parser.add_argument("--description", default=default)
    parser.add_argument(
        "--allow-logins",
        choices=[p.value for p in LoginPolicy],
        help="set to 'all' to allow any user to log in through this client",
    )


def build_parser() -> argparse.ArgumentParser:
    """Build the credcore argument parser."""
    parser = argparse.ArgumentParser(prog="credcore")
    commands = parser.add_subparsers(dest="command", required=True)

    rc = commands.add_parser(
        "registered-clients",
        aliases=["clients", "rc"],
        help="manage registered API clients",
    )
    rc_commands = rc.add_subparsers(dest="rc_command", required=True)

    create = rc_commands.add_parser("create", help="create (register) an API client")
    _add_client_fields(create, default="")
    create.add_argument("--type", default="Server")
    _add_id_key_option(create)
    create.set_defaults(handler=cmd_create)

    list_ = rc_commands.add_parser(
        "list", aliases=["ls"], help="list registered API clients"
    )
    list_.add_argument("-d", "--detail", action="store_true", help="show full details")
    list_.add_argument("--per-page", type=int)
    list_.set_defaults(handler=cmd_list)

    get = rc_commands.add_parser("get", help="show registered API clients")
    get.add_argument("ids", nargs="+", metavar="ID")
    get.set_defaults(handler=cmd_get)

    current = rc_commands.add_parser(
        "current", help="show the client that owns the local ID key"
    )
    _add_id_key_option(current)
    current.set_defaults(handler=cmd_current)

    update = rc_commands.add_parser("update", help="update a registered API client")
    update.add_argument("client_id", metavar="CLIENT-ID")
    _add_client_fields(update, default=None)
    update.set_defaults(handler=cmd_update)

    delete = rc_commands.add_parser(
        "delete", aliases=["rm"], help="delete registered API clients"
    )
    delete.add_argument("ids", nargs="+", metavar="CLIENT-ID")
    delete.set_defaults(handler=cmd_delete)

    keygen = commands.add_parser("keygen", help="generate a new ID key file")
    _add_id_key_option(keygen)
    keygen.add_argument("--kind", choices=["rsa", "ec"], default="rsa")
    keygen.add_argument("--force", action="store_true")

    return parser


async def run(
    argv: list[str] | None = None,
    *,
    transport: httpx.AsyncBaseTransport | None = None,
) -> int:
    """Run the CLI; returns the process exit status."""
    args = build_parser().parse_args(argv)
    settings = ClientSettings()
    try:
        if args.command == "keygen":
            cmd_keygen(args, settings)
            return 0
        async with httpx.AsyncClient(
            base_url=settings.endpoint,
            timeout=settings.timeout_seconds,
            transport=transport,
        ) as http:
            client = RegistryClient(
                http=http,
                token=settings.token,
                audience=settings.audience or settings.endpoint,
            )
            handler: Handler = args.handler
            await handler(args, client, settings)
    except CredcoreError as exc:
        print(f"error: {exc.code}: {exc.message}", file=sys.stderr)
        return 1
    except OSError as exc:
        print(f"error: {exc}", file=sys.stderr)
        return 1
    return 0


def main() -> None:
    """Console-script entry point."""
    configure_logging(level=ClientSettings().log_level, json=False)
    sys.exit(asyncio.run(run()))


if __name__ == "__main__":
    main()
