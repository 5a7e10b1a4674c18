"""secure-message CLI -- encrypt, decrypt and sweep stored secure messages.

Thin wrapper around :class:`SecureMessageService` using click.
Every command opens the record store, runs one coroutine, and disposes of
the engine again.
"""

from __future__ import annotations

import asyncio
import logging
import secrets
import string
import sys
from collections.abc import Awaitable, Callable
from datetime import datetime, timezone
from pathlib import Path
from typing import TypeVar

import click

from secure_message.config import Settings
from secure_message.db.engine import create_async_engine_from_url
from secure_message.db.session import create_tables
from secure_message.housekeeping import housekeeping_loop, run_housekeeping
from secure_message.protocol.errors import SecureMessageError
from secure_message.protocol.types import META_KEY_BYTES
from secure_message.service import SecureMessageService
from secure_message.storage.at_rest import AtRestCipher

T = TypeVar("T")

_META_KEY_ALPHABET = string.ascii_letters + string.digits


# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------


def _error(msg: str) -> None:
    """Print an error message to stderr and exit 1."""
    click.echo(msg, err=True)
    raise SystemExit(1)


def _run(
    settings: Settings, action: Callable[[SecureMessageService], Awaitable[T]]
) -> T:
    """Open the stores, run *action* with a service, and clean up."""

    async def _main() -> T:
        settings.storage_dir.mkdir(parents=True, exist_ok=True)
        _ensure_sqlite_dir(settings.database_url)
        engine = create_async_engine_from_url(settings.database_url)
        try:
            await create_tables(engine)
            service = SecureMessageService.from_settings(settings, engine)
            return await action(service)
        finally:
            await engine.dispose()

    try:
        return asyncio.run(_main())
    except (ValueError, SecureMessageError) as exc:
        _error(f"Error: {exc}")


def _ensure_sqlite_dir(url: str) -> None:
    """Create the directory of a file-backed SQLite database."""
    if url.startswith("sqlite") and ":///" in url:
        path = Path(url.split(":///", 1)[1])
        if str(path) and str(path) != ":memory:":
            path.parent.mkdir(parents=True, exist_ok=True)


def _format_timestamp(ts: int) -> str:
    return datetime.fromtimestamp(ts, tz=timezone.utc).strftime("%Y-%m-%d %H:%M UTC")


# ---------------------------------------------------------------------------
# CLI group
# ---------------------------------------------------------------------------


@click.group()
@click.version_option(package_name="secure-message")
@click.pass_context
def cli(ctx: click.Context) -> None:
    """secure-message -- split-key, self-destructing encrypted messages."""
    ctx.ensure_object(dict)
    try:
        settings = Settings()
    except ValueError as exc:
        _error(f"Configuration error: {exc}")
    logging.basicConfig(
        level=getattr(logging, settings.log_level, logging.INFO),
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )
    ctx.obj["settings"] = settings


@cli.command("generate-keys")
def generate_keys() -> None:
    """Print a fresh meta key and app key for the environment."""
    meta_key = "".join(secrets.choice(_META_KEY_ALPHABET) for _ in range(META_KEY_BYTES))
    click.echo(f"SECURE_MESSAGE_META_KEY={meta_key}")
    click.echo(f"SECURE_MESSAGE_APP_KEY={AtRestCipher.generate_key()}")


@cli.command()
@click.argument("content", required=False)
@click.option("--hit-points", "-p", type=int, default=None, help="Allowed decrypt attempts.")
@click.option("--expires-in", "-e", type=int, default=None, help="Seconds until expiry.")
@click.pass_context
def encrypt(
    ctx: click.Context,
    content: str | None,
    hit_points: int | None,
    expires_in: int | None,
) -> None:
    """Encrypt CONTENT (or stdin) and print the id and verification code."""
    settings: Settings = ctx.obj["settings"]
    if content is None:
        content = sys.stdin.read()
    if not content:
        _error("Nothing to encrypt.")
    if hit_points is not None and hit_points < 1:
        _error("--hit-points must be at least 1.")

    expires_at = None
    if expires_in is not None:
        expires_at = int(datetime.now(timezone.utc).timestamp()) + expires_in

    message = _run(
        settings,
        lambda service: service.encrypt(content, expires_at=expires_at, hit_points=hit_points),
    )
    click.echo(f"ID: {message.id}")
    click.echo(f"Verification code: {message.verification_code}")
    click.echo(f"Hit points: {message.hit_points}")
    click.echo(f"Expires at: {_format_timestamp(message.expires_at)}")
    message.wipe_keys()


@cli.command()
@click.argument("message_id")
@click.argument("verification_code")
@click.pass_context
def decrypt(ctx: click.Context, message_id: str, verification_code: str) -> None:
    """Decrypt a message.  The message is destroyed afterwards."""
    settings: Settings = ctx.obj["settings"]

    content = _run(settings, lambda service: service.decrypt(message_id, verification_code))
    click.echo(content.decode("utf-8", errors="replace"))


@cli.command()
@click.argument("message_id")
@click.argument("verification_code")
@click.pass_context
def check(ctx: click.Context, message_id: str, verification_code: str) -> None:
    """Check a verification code without spending a hit point."""
    settings: Settings = ctx.obj["settings"]
    valid = _run(
        settings,
        lambda service: service.check_verification_code(message_id, verification_code),
    )
    if not valid:
        _error("Invalid verification code.")
    click.echo("Valid verification code.")


@cli.command()
@click.argument("message_id")
@click.pass_context
def meta(ctx: click.Context, message_id: str) -> None:
    """Show remaining hit points and expiry of a message."""
    settings: Settings = ctx.obj["settings"]
    message = _run(settings, lambda service: service.get_meta(message_id))
    click.echo(f"Remaining hit points: {message.hit_points}")
    click.echo(f"Expires at: {_format_timestamp(message.expires_at)}")


@cli.command()
@click.argument("message_id")
@click.pass_context
def destroy(ctx: click.Context, message_id: str) -> None:
    """Destroy a message and its key file."""
    settings: Settings = ctx.obj["settings"]
    _run(settings, lambda service: service.destroy(message_id))
    click.echo(f"Destroyed secure message [{message_id}]")


@cli.command()
@click.option("--verbose", "-v", is_flag=True, help="List destroyed messages.")
@click.option(
    "--interval",
    type=float,
    default=None,
    help="Keep running, sweeping every INTERVAL seconds.",
)
@click.pass_context
def housekeeping(ctx: click.Context, verbose: bool, interval: float | None) -> None:
    """Destroy all messages that are expired or have no hit points left."""
    settings: Settings = ctx.obj["settings"]

    def _report(message_id: str) -> None:
        if verbose:
            click.echo(f"Destroyed secure message [{message_id}]")

    if interval is not None:
        _run(settings, lambda service: housekeeping_loop(service, interval))
        return

    destroyed = _run(settings, lambda service: run_housekeeping(service, on_destroy=_report))
    if verbose:
        click.echo(f"{len(destroyed)} secure message(s) destroyed.")
