"""
``ecocash`` command line: payments, refunds and lookups against the EcoCash API.
"""

import typer

from ecocash import __version__
from ecocash.cli import scenarios, transactions

app = typer.Typer(
    name="ecocash",
    help="EcoCash SDK - send payments, refunds and lookups from the command line",
    add_completion=True,
)

app.command("pay")(transactions.pay)
app.command("refund")(transactions.refund)
app.command("lookup")(transactions.lookup)
app.add_typer(scenarios.app, name="scenarios")


def _print_version(value: bool) -> None:
    if value:
        typer.echo(f"ecocash version {__version__}")
        raise typer.Exit()


@app.callback(invoke_without_command=True)
def entrypoint(
    ctx: typer.Context,
    version: bool = typer.Option(
        False, "--version", "-v", callback=_print_version, is_eager=True, help="Print the SDK version and exit."
    ),
):
    """Talk to the EcoCash Open API. Use --mock to answer locally from the sandbox."""
    if ctx.invoked_subcommand is None:
        typer.echo(ctx.get_help())
        raise typer.Exit()


def main() -> None:
    app()


if __name__ == "__main__":
    main()
