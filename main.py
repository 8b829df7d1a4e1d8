"""UAT admin CLI entry point."""

from __future__ import annotations

import logging
import secrets
from typing import Optional

import typer

from admin import auth as admin_auth
from server.config import DEFAULT_CONFIG_PATH, ConfigurationError, UatConfig, get_config, write_config
from server.logging_config import setup_logging


__version__ = "0.1.0"

app = typer.Typer(add_completion=False, help="UAT checklist admin CLI")
logger = logging.getLogger("uat")


def _ensure_config() -> UatConfig:
    try:
        return get_config()
    except ConfigurationError as exc:
        typer.echo(f"[ERROR] {exc}. Run: uat init --password ... or set the environment variables")
        raise typer.Exit(code=1)


@app.command()
def init(
    password: str = typer.Option(
        ..., "--password", prompt=True, hide_input=True, confirmation_prompt=True,
        help="Admin password",
    ),
    force: bool = typer.Option(False, "--force", help="Overwrite an existing config.ini"),
) -> None:
    """Write config.ini with the admin password and a fresh signing secret."""
    config_path = DEFAULT_CONFIG_PATH
    if config_path.exists() and not force:
        typer.echo(f"[ERROR] {config_path} already exists. Use --force to overwrite.")
        raise typer.Exit(code=1)
    write_config(config_path, password=password, session_secret=secrets.token_hex(32))
    typer.echo(f"[OK] Config created at {config_path}")


@app.command("check-config")
def check_config() -> None:
    """Validate that the admin password and signing secret are configured."""
    setup_logging()
    _ensure_config()
    typer.echo("[OK] Admin password and signing secret configured.")


@app.command()
def serve(
    host: Optional[str] = typer.Option(None, "--host", help="Server host"),
    port: Optional[int] = typer.Option(None, "--port", help="Server port"),
) -> None:
    """Start the web server."""
    setup_logging()

    config = _ensure_config()

    from server.app import run_server

    try:
        run_server(config, host=host, port=port)
    except KeyboardInterrupt:
        pass


@app.command("share-token")
def share_token(
    slug: str = typer.Argument(..., help="Project slug"),
) -> None:
    """Print the share token and public analytics path for a project."""
    config = _ensure_config()
    token = admin_auth.issue_share_token(slug, config.admin.session_secret)
    typer.echo(token)
    typer.echo(f"/share/analytics/{slug}/{token}")


if __name__ == "__main__":
    app()
