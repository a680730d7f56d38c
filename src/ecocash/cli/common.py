"""
Shared helpers for CLI commands: client construction and result rendering.
"""

import asyncio
import json
import os
from collections.abc import Awaitable, Callable
from pathlib import Path
from typing import Any, TypeVar

import typer
from rich.console import Console
from rich.table import Table

from ecocash.client import EcocashClient
from ecocash.config.loader import CONFIG_FILENAME, Config, load_config
from ecocash.config.settings import ClientSettings
from ecocash.environment import Environment
from ecocash.exceptions import ConfigurationError, EcocashError, QueuedError
from ecocash.sandbox import SandboxConfig, SandboxTransport
from ecocash.utils.logging import setup_logging_from_config

console = Console()

T = TypeVar("T")

# Sandbox transport used by --mock: scripted by test number, no delay
MOCK_SANDBOX_CONFIG = SandboxConfig(scripted_responses=True, response_delay=0.0, success_rate=1.0, log_all_requests=False)


def build_client(project_dir: Path, env: str | None, mock: bool, api_key: str | None) -> EcocashClient:
    """
    Create a client from ecocash.yaml when present, otherwise from environment variables.

    Offline queueing is off: an unreachable network fails the command
    instead of queueing a request that would be lost at exit. With ``mock``
    the client talks to SandboxTransport.
    """
    overrides: dict[str, Any] = {"enable_offline_queue": False}
    if mock:
        overrides["transport"] = SandboxTransport(MOCK_SANDBOX_CONFIG)

    if (project_dir / CONFIG_FILENAME).exists():
        config = load_config(project_dir, env=env)
        if config.get("logging"):
            setup_logging_from_config(config.data, project_dir=project_dir)
        if api_key:
            config = Config({**config.data, "api_key": api_key})
        return EcocashClient.from_settings(ClientSettings.from_config(config), **overrides)

    key = api_key or os.getenv("ECOCASH_API_KEY")
    if not key:
        if not mock:
            raise ConfigurationError(
                f"No API key: pass --api-key, set ECOCASH_API_KEY, or create {CONFIG_FILENAME} in {project_dir}"
            )
        key = "sandbox-api-key"

    environment = Environment.LIVE if env == Environment.LIVE.value else Environment.SANDBOX
    return EcocashClient(key, os.getenv("ECOCASH_BEARER_TOKEN"), environment, **overrides)


def run_with_client(
    factory: Callable[[], EcocashClient],
    operation: Callable[[EcocashClient], Awaitable[T]],
) -> T:
    """
    Build a client, run ``operation`` on a fresh event loop, then close the client.

    SDK errors are printed and turned into a non-zero exit code
    (2 when the request was queued, 1 otherwise).
    """

    async def runner() -> T:
        async with factory() as client:
            return await operation(client)

    try:
        return asyncio.run(runner())
    except QueuedError as e:
        console.print(f"[yellow]Queued:[/yellow] {e.message}")
        raise typer.Exit(2) from e
    except (EcocashError, FileNotFoundError, ValueError) as e:
        message = e.message if isinstance(e, EcocashError) else str(e)
        console.print(f"[bold red]Error:[/bold red] {message}")
        if isinstance(e, EcocashError):
            for key, value in e.details.items():
                if value is not None:
                    console.print(f"  [dim]{key}: {value}[/dim]")
        raise typer.Exit(1) from e


def render(result: Any, title: str, as_json: bool = False) -> None:
    """Print a model (anything with ``to_dict``) as a table or JSON."""
    data = result.to_dict() if hasattr(result, "to_dict") else result
    if as_json:
        typer.echo(json.dumps(data, indent=2, default=str))
        return

    table = Table(title=title, show_header=True)
    table.add_column("Field", style="cyan")
    table.add_column("Value", style="green")
    for key, value in data.items():
        table.add_row(str(key), "" if value is None else str(value))
    console.print(table)
