"""
CLI management commands for the Storefront API.
"""

import asyncio
import json
from collections.abc import Callable
from dataclasses import dataclass
from typing import Any

import click

from storefront.auth.passwords import PasswordHasher
from storefront.db import Database
from storefront.environment import EnvironmentService
from storefront.models import Base
from storefront.settings import Settings, get_settings


@dataclass
class CLIDependencies:
    """Collaborators the commands use, swappable in tests."""

    settings_factory: Callable[[], Settings]
    database_factory: Callable[[Settings], Database]
    server_run: Callable[..., Any]


def _get_cli_dependencies() -> CLIDependencies:
    """Real settings, database and uvicorn runner."""
    import uvicorn

    return CLIDependencies(
        settings_factory=get_settings,
        database_factory=Database.from_settings,
        server_run=uvicorn.run,
    )


@click.group()
def cli() -> None:
    """Storefront API CLI."""
    pass


@cli.command()
def init_database() -> None:
    """Create the users and products tables."""
    deps = _get_cli_dependencies()
    database = deps.database_factory(deps.settings_factory())

    async def _init() -> None:
        try:
            await database.create_all()
            click.echo(f"Tables: {', '.join(sorted(Base.metadata.tables))}")
        finally:
            await database.dispose()

    click.echo("Initializing database...")
    asyncio.run(_init())
    click.echo("Database initialized successfully!")


@cli.command()
@click.argument("password")
@click.option("--rounds", type=click.IntRange(4, 31), default=None, help="bcrypt cost factor")
def hash_password(password: str, rounds: int | None) -> None:
    """Print a bcrypt hash of PASSWORD."""
    deps = _get_cli_dependencies()
    if rounds is None:
        rounds = deps.settings_factory().auth.bcrypt_rounds
    click.echo(PasswordHasher(rounds).hash(password))


@cli.command()
def check_config() -> None:
    """Print the configuration report; exits 1 when the configuration is not ready."""
    deps = _get_cli_dependencies()
    report = EnvironmentService(deps.settings_factory()).all_config()
    click.echo(json.dumps(report, indent=2))

    readiness = report["readiness"]
    if not readiness["ready"]:
        for error in readiness["errors"]:
            click.echo(f"✗ {error}", err=True)
        raise SystemExit(1)
    click.echo("✓ Configuration ready")


@cli.command()
@click.option("--host", default=None, help="Bind address (defaults to HOST)")
@click.option("--port", type=int, default=None, help="Bind port (defaults to PORT)")
@click.option("--reload", is_flag=True, help="Reload on code changes")
def serve(host: str | None, port: int | None, reload: bool) -> None:
    """Run the API server with uvicorn."""
    deps = _get_cli_dependencies()
    settings = deps.settings_factory()
    deps.server_run(
        "storefront.main:create_app",
        factory=True,
        host=host or settings.host,
        port=port or settings.port,
        reload=reload,
        log_config=None,
    )


if __name__ == "__main__":
    cli()
