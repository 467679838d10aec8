"""Main CLI command: tulip entry point."""

import asyncio
from typing import Annotated

import typer
from dotenv import load_dotenv

load_dotenv()

from ..config import ClientConfig
from ..errors import ConfigError
from .formatting import _markup, configure_logging
from .interactive import run_interactive
from .state import app, console
from .theme import THEME


@app.command()
def main(
    config_file: Annotated[
        str | None,
        typer.Option(
            "--config",
            "-c",
            help="YAML file to load configuration from",
            envvar="TULIP_CONFIG",
        ),
    ] = None,
    email: Annotated[
        str | None,
        typer.Option("--email", help="Your Zulip email address"),
    ] = None,
    api_key: Annotated[
        str | None,
        typer.Option("--api-key", help="Your Zulip API key"),
    ] = None,
    site: Annotated[
        str | None,
        typer.Option("--site", help="Base URL of the Zulip API to connect to"),
    ] = None,
    secure: Annotated[
        bool | None,
        typer.Option(
            "--secure/--insecure",
            help="Verify the server's TLS certificate (default: secure)",
        ),
    ] = None,
    notifications: Annotated[
        bool | None,
        typer.Option(
            "--notifications/--no-notifications",
            help="Show desktop notifications for incoming messages",
        ),
    ] = None,
    debug: Annotated[
        bool,
        typer.Option("--debug", help="Show debug notes and verbose logs"),
    ] = False,
) -> None:
    """Start the interactive client."""
    configure_logging(debug)
    try:
        config = ClientConfig.load(
            config_file,
            overrides={
                "email": email,
                "api_key": api_key,
                "site": site,
                "secure": secure,
                "notifications": notifications,
                "debug": debug,
            },
        )
        config.validate()
    except ConfigError as exc:
        console.print(_markup(f"Error: {exc}", THEME.error))
        raise typer.Exit(2) from exc

    asyncio.run(run_interactive(config))
