"""
ecocash pay / refund / lookup - send single requests from the command line.
"""

from pathlib import Path

import typer

from ecocash.cli.common import build_client, render, run_with_client

ProjectDirOption = typer.Option(Path("."), "--project-dir", "-d", help="Directory containing ecocash.yaml")
EnvOption = typer.Option(None, "--env", "-e", help="Config overlay name (ecocash.{env}.yaml)")
MockOption = typer.Option(False, "--mock", help="Answer locally with the sandbox transport")
ApiKeyOption = typer.Option(None, "--api-key", envvar="ECOCASH_API_KEY", help="Merchant API key")
JsonOption = typer.Option(False, "--json", help="Print the response as JSON")


def pay(
    msisdn: str = typer.Argument(..., help="Customer number, 263XXXXXXXXX or 0XXXXXXXXX"),
    amount: float = typer.Argument(..., help="Amount to charge"),
    reason: str = typer.Option("Payment", "--reason", "-r", help="Payment description"),
    currency: str = typer.Option("USD", "--currency", "-c", help="USD, ZWL, EUR or GBP"),
    reference: str | None = typer.Option(None, "--reference", help="Source reference UUID (generated if omitted)"),
    project_dir: Path = ProjectDirOption,
    env: str | None = EnvOption,
    mock: bool = MockOption,
    api_key: str | None = ApiKeyOption,
    as_json: bool = JsonOption,
) -> None:
    """
    Initiate a C2B payment.
    """
    response = run_with_client(
        lambda: build_client(project_dir, env, mock, api_key),
        lambda client: client.make_payment(msisdn, amount, reason, currency, reference),
    )
    render(response, "Payment", as_json)


def refund(
    transaction_reference: str = typer.Argument(..., help="EcoCash reference of the original payment"),
    msisdn: str = typer.Argument(..., help="Number the payment came from"),
    amount: float = typer.Argument(..., help="Amount to refund"),
    reason: str = typer.Option("Refund", "--reason", "-r", help="Reason for the refund"),
    currency: str = typer.Option("USD", "--currency", "-c", help="USD, ZWL, EUR or GBP"),
    client_name: str | None = typer.Option(None, "--client-name", help="Merchant name on the refund"),
    project_dir: Path = ProjectDirOption,
    env: str | None = EnvOption,
    mock: bool = MockOption,
    api_key: str | None = ApiKeyOption,
    as_json: bool = JsonOption,
) -> None:
    """
    Refund a previous payment.
    """
    response = run_with_client(
        lambda: build_client(project_dir, env, mock, api_key),
        lambda client: client.process_refund(
            transaction_reference, msisdn, amount, reason, currency, client_name=client_name
        ),
    )
    render(response, "Refund", as_json)


def lookup(
    msisdn: str = typer.Argument(..., help="Customer number used for the payment"),
    reference: str = typer.Argument(..., help="Source reference of the payment"),
    project_dir: Path = ProjectDirOption,
    env: str | None = EnvOption,
    mock: bool = MockOption,
    api_key: str | None = ApiKeyOption,
    as_json: bool = JsonOption,
) -> None:
    """
    Look up the status of a transaction.
    """
    status = run_with_client(
        lambda: build_client(project_dir, env, mock, api_key),
        lambda client: client.lookup_transaction(msisdn, reference),
    )
    render(status, "Transaction status", as_json)
