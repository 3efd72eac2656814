"""CLI entry point for kiosk-handoff.

Invoked as::

    kiosk-handoff [OPTIONS] COMMAND [ARGS]...

or, during development::

    python -m kiosk_handoff.cli.main

Settings come from ``HANDOFF_*`` environment variables or a ``.env`` file,
exactly as for the server.

Commands
--------
- version   — Show version information
- serve     — Run the HTTP/WebSocket server
- catalog   — Seed and list products
- session   — Inspect stored sessions
- token     — Issue, validate and expire transfer tokens
- sweep     — Run one expiry sweep over the token namespace
"""
from __future__ import annotations

import asyncio
import sys
from pathlib import Path
from typing import Any, Awaitable, Callable, TypeVar

import click
from pydantic import ValidationError
from rich.console import Console
from rich.markup import escape
from rich.table import Table

from kiosk_handoff.config import HandoffSettings
from kiosk_handoff.errors import HandoffError
from kiosk_handoff.logging_config import configure_logging
from kiosk_handoff.runtime import HandoffRuntime, build_runtime

console = Console()

T = TypeVar("T")


# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------


def _settings(ctx: click.Context) -> HandoffSettings:
    return ctx.obj["settings"]


def _run(ctx: click.Context, operation: Callable[[HandoffRuntime], Awaitable[T]]) -> T:
    """Build a runtime, run ``operation`` against it and close it.

    Domain errors are printed and end the command with exit code 1.
    """

    async def _main() -> T:
        runtime = build_runtime(_settings(ctx))
        try:
            return await operation(runtime)
        finally:
            await runtime.close()

    try:
        return asyncio.run(_main())
    except HandoffError as exc:
        console.print(f"[red]{type(exc).__name__}:[/red] {escape(exc.message)}")
        sys.exit(1)


# ---------------------------------------------------------------------------
# Root group
# ---------------------------------------------------------------------------


@click.group()
@click.version_option(package_name="kiosk-handoff")
@click.option("--log-level", default=None, help="Override HANDOFF_LOG_LEVEL.")
@click.pass_context
def cli(ctx: click.Context, log_level: str | None) -> None:
    """Mobile-to-kiosk session handoff service."""
    ctx.ensure_object(dict)
    try:
        settings = HandoffSettings()
    except ValidationError as exc:
        console.print(f"[red]Invalid configuration:[/red]\n{escape(str(exc))}")
        sys.exit(2)
    if log_level:
        settings = settings.model_copy(update={"log_level": log_level.upper()})
    configure_logging(settings.log_level)
    ctx.obj["settings"] = settings


# ---------------------------------------------------------------------------
# version
# ---------------------------------------------------------------------------


@cli.command(name="version")
def version_command() -> None:
    """Show version information."""
    from kiosk_handoff import __version__

    console.print(f"[bold]kiosk-handoff[/bold] v{__version__}")


# ---------------------------------------------------------------------------
# serve
# ---------------------------------------------------------------------------


@cli.command(name="serve")
@click.option("--host", default=None, help="Bind address (default from HANDOFF_HOST).")
@click.option("--port", default=None, type=int, help="Bind port (default from HANDOFF_PORT).")
@click.pass_context
def serve_command(ctx: click.Context, host: str | None, port: int | None) -> None:
    """Run the HTTP and WebSocket server."""
    import uvicorn

    from kiosk_handoff.server.app import create_app

    settings = _settings(ctx)
    app = create_app(settings)
    uvicorn.run(
        app,
        host=host or settings.host,
        port=port or settings.port,
        log_level=settings.log_level.lower(),
    )


# ---------------------------------------------------------------------------
# catalog command group
# ---------------------------------------------------------------------------


@cli.group(name="catalog")
def catalog_group() -> None:
    """Product catalog commands."""


@catalog_group.command(name="seed")
@click.argument("inventory_file", type=click.Path(exists=True, dir_okay=False, path_type=Path))
@click.option("--keep-existing", is_flag=True, help="Add to the catalog instead of replacing it.")
@click.pass_context
def catalog_seed(ctx: click.Context, inventory_file: Path, keep_existing: bool) -> None:
    """Load products from a JSON or YAML INVENTORY_FILE."""

    async def _seed(runtime: HandoffRuntime) -> int:
        return await runtime.catalog.load_file(inventory_file, replace=not keep_existing)

    count = _run(ctx, _seed)
    console.print(f"[green]Imported {count} products[/green] from {inventory_file}")


@catalog_group.command(name="list")
@click.option("--in-stock", is_flag=True, help="Only show products that can be recommended.")
@click.pass_context
def catalog_list(ctx: click.Context, in_stock: bool) -> None:
    """List catalog products."""

    async def _list(runtime: HandoffRuntime) -> list[Any]:
        if in_stock:
            return await runtime.catalog.list_in_stock()
        return await runtime.catalog.list_products()

    products = _run(ctx, _list)
    if not products:
        console.print("[yellow]No products found.[/yellow]")
        return

    table = Table(title="Products")
    table.add_column("ID", style="cyan")
    table.add_column("Name")
    table.add_column("Category", style="green")
    table.add_column("Price", justify="right")
    table.add_column("Stock", justify="right")
    table.add_column("Tags")
    for product in products:
        table.add_row(
            product.product_id,
            product.name,
            product.category,
            f"{product.price:.2f}",
            str(product.stock_count) if product.in_stock else "[red]out[/red]",
            ", ".join(product.tags),
        )
    console.print(table)


# ---------------------------------------------------------------------------
# session command group
# ---------------------------------------------------------------------------


@cli.group(name="session")
def session_group() -> None:
    """Session inspection commands."""


@session_group.command(name="show")
@click.argument("session_id")
@click.option(
    "--format",
    "output_format",
    default="table",
    show_default=True,
    type=click.Choice(["table", "json", "yaml"], case_sensitive=False),
)
@click.pass_context
def session_show(ctx: click.Context, session_id: str, output_format: str) -> None:
    """Display the session SESSION_ID."""
    from kiosk_handoff.session.serializer import SessionSerializer

    session = _run(ctx, lambda runtime: runtime.sessions.load(session_id))

    serializer = SessionSerializer()
    if output_format == "json":
        console.print_json(serializer.to_json(session))
        return
    if output_format == "yaml":
        click.echo(serializer.to_yaml(session))
        return

    table = Table(title=f"Session {session.session_id}", show_lines=True)
    table.add_column("Field", style="bold cyan")
    table.add_column("Value")
    table.add_row("user_id", session.user_id)
    table.add_row("status", session.status.value)
    table.add_row("tags", " ".join(session.tags) or "-")
    intent = session.parsed_intent
    table.add_row(
        "intent",
        f"{intent.occasion} / {intent.style} / {intent.season} / "
        f"budget={intent.budget} / {intent.urgency}",
    )
    table.add_row("messages", str(len(session.conversation_history)))
    table.add_row("qr_code", session.qr_code or "-")
    table.add_row("qr_expiry", session.qr_expiry.isoformat() if session.qr_expiry else "-")
    table.add_row("updated_at", session.updated_at.isoformat())
    console.print(table)

    for message in session.conversation_history:
        style = "green" if message.sender.value == "user" else "blue"
        console.print(f"[{style}]{message.sender.value.upper()}[/{style}] {message.text}")


# ---------------------------------------------------------------------------
# token command group
# ---------------------------------------------------------------------------


@cli.group(name="token")
def token_group() -> None:
    """Transfer token commands."""


@token_group.command(name="issue")
@click.argument("session_id")
@click.pass_context
def token_issue(ctx: click.Context, session_id: str) -> None:
    """Issue a transfer token for SESSION_ID."""
    token = _run(ctx, lambda runtime: runtime.coordinator.request_transfer(session_id))
    console.print(f"[green]Token issued[/green] (expires {token.expires_at.isoformat()})")
    console.print_json(data=token.qr_payload())


@token_group.command(name="validate")
@click.argument("token_id")
@click.argument("signature")
@click.pass_context
def token_validate(ctx: click.Context, token_id: str, signature: str) -> None:
    """Redeem TOKEN_ID with SIGNATURE and print the session id.

    The token is consumed whatever the outcome.
    """
    session_id = _run(ctx, lambda runtime: runtime.tokens.validate(token_id, signature))
    console.print(f"[green]Valid[/green] for session {session_id}")


@token_group.command(name="expire")
@click.argument("token_id")
@click.pass_context
def token_expire(ctx: click.Context, token_id: str) -> None:
    """Expire TOKEN_ID immediately."""
    deleted = _run(ctx, lambda runtime: runtime.tokens.expire(token_id))
    if deleted:
        console.print(f"[green]Expired[/green] {token_id}")
    else:
        console.print(f"[yellow]Token not found:[/yellow] {token_id}")


# ---------------------------------------------------------------------------
# sweep
# ---------------------------------------------------------------------------


@cli.command(name="sweep")
@click.pass_context
def sweep_command(ctx: click.Context) -> None:
    """Run one expiry sweep and report how many tokens were removed."""
    removed = _run(ctx, lambda runtime: runtime.sweeper.sweep_once())
    console.print(f"Removed {removed} expired token(s)")


# ---------------------------------------------------------------------------
# Entry point
# ---------------------------------------------------------------------------


if __name__ == "__main__":
    cli()
