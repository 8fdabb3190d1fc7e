"""Command-line interface for Storefront."""

import asyncio
from datetime import datetime, timezone
from typing import Any, Awaitable, Callable, Optional, TypeVar

import click
from rich import box
from rich.console import Console
from rich.table import Table

from storefront import __version__
from storefront.logging_config import configure_logging, get_logger

console = Console()
logger = get_logger(__name__)

T = TypeVar("T")


def _run_in_session(work: Callable[[Any], Awaitable[T]]) -> T:
    """Run ``work(session)`` in one committed transaction."""
    from storefront.db.session import async_session_factory, close_db

    async def runner() -> T:
        try:
            async with async_session_factory() as session:
                async with session.begin():
                    return await work(session)
        finally:
            await close_db()

    return asyncio.run(runner())


@click.group()
@click.version_option(version=__version__)
@click.option(
    "--log-level",
    type=click.Choice(["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"], case_sensitive=False),
    default="WARNING",
    help="Set logging level",
)
@click.option(
    "--log-format",
    type=click.Choice(["json", "text"], case_sensitive=False),
    default="text",
    help="Log output format",
)
def cli(log_level: str, log_format: str) -> None:
    """Storefront - online shop API and back-office tools."""
    configure_logging(level=log_level.upper(), json_output=log_format.lower() == "json")


@cli.command()
@click.option("--host", default="0.0.0.0", show_default=True, help="Bind address")
@click.option("--port", default=5000, show_default=True, type=int, help="Bind port")
@click.option("--reload", is_flag=True, help="Reload on code changes")
def serve(host: str, port: int, reload: bool) -> None:
    """Run the API server."""
    import uvicorn

    console.print(f"[bold]Storefront API[/bold] on http://{host}:{port}")
    uvicorn.run("storefront.api.app:app", host=host, port=port, reload=reload, log_level="info")


@cli.command("create-admin")
@click.argument("username")
@click.option("--password", prompt=True, hide_input=True, confirmation_prompt=True)
@click.option("--question", default="Admin recovery question", show_default=True)
@click.option("--answer", prompt=True, hide_input=True)
def create_admin(username: str, password: str, question: str, answer: str) -> None:
    """Create an administrator account."""
    from storefront.db.models import UserRole
    from storefront.exceptions import ValidationError
    from storefront.services.accounts import signup

    async def work(session):
        return await signup(
            session,
            {
                "username": username,
                "password": password,
                "securityQuestion": question,
                "securityAnswer": answer,
            },
            role=UserRole.ADMIN.value,
        )

    try:
        user = _run_in_session(work)
    except ValidationError as e:
        console.print(f"[red]✗[/red] {e.message}")
        raise click.Abort()

    console.print(f"[green]✓[/green] Admin [bold]{user.username}[/bold] created (id {user.id})")


@cli.command("seed-categories")
def seed_categories() -> None:
    """Insert the default categories; safe to run repeatedly."""
    from storefront.services.catalog import seed_categories as seed

    created = _run_in_session(seed)
    if created:
        console.print(f"[green]✓[/green] Created: {', '.join(created)}")
    else:
        console.print("[dim]All default categories already exist[/dim]")


@cli.command("expire-sessions")
def expire_sessions() -> None:
    """Mark overdue buy-now sessions as expired."""
    from storefront.services.buy_now import expire_overdue_sessions

    count = _run_in_session(expire_overdue_sessions)
    console.print(f"[green]✓[/green] Expired {count} buy-now session(s)")


@cli.command("check-token")
@click.argument("token")
def check_token(token: str) -> None:
    """Show how the storefront client would judge TOKEN."""
    from storefront.client.tokens import validate

    result = validate(token)
    claims = result.claims or {}

    table = Table(title="Token check", box=box.ROUNDED, show_header=False)
    table.add_column("Field", style="cyan")
    table.add_column("Value")
    table.add_row("Valid", "[green]yes[/green]" if result.valid else "[red]no[/red]")
    table.add_row("Reason", result.reason or "-")
    for name in ("userId", "username", "role"):
        if name in claims:
            table.add_row(name, str(claims[name]))
    exp = _format_exp(claims.get("exp"))
    if exp:
        table.add_row("Expires", exp)
    console.print(table)

    if not result.valid:
        raise SystemExit(1)


def _format_exp(exp: Any) -> Optional[str]:
    if isinstance(exp, bool) or not isinstance(exp, (int, float)):
        return None
    return datetime.fromtimestamp(exp, tz=timezone.utc).isoformat()


def main() -> None:
    """Entry point for the ``storefront`` command."""
    cli()


if __name__ == "__main__":
    main()
