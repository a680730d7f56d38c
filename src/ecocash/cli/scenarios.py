"""
ecocash scenarios - list sandbox test numbers and their expected outcomes.
"""

import typer
from rich.table import Table

from ecocash.cli.common import console
from ecocash.sandbox import TEST_SCENARIOS
from ecocash.validators import get_network_operator

app = typer.Typer(name="scenarios", help="List sandbox test scenarios", invoke_without_command=True)


@app.callback()
def scenarios(ctx: typer.Context) -> None:
    """
    Show the sandbox test numbers and what each one triggers.
    """
    if ctx.invoked_subcommand is not None:
        return

    table = Table(title="Sandbox test scenarios", show_header=True)
    table.add_column("Scenario", style="cyan")
    table.add_column("Phone", style="green")
    table.add_column("Network", style="magenta")
    table.add_column("Amount", justify="right")
    table.add_column("Expected")
    table.add_column("Description", style="dim")

    for scenario in TEST_SCENARIOS:
        operator = get_network_operator(scenario.phone)
        table.add_row(
            scenario.name,
            scenario.phone,
            operator.value if operator else "-",
            f"{scenario.amount:.2f}",
            scenario.expected_status,
            scenario.description,
        )

    console.print(table)
