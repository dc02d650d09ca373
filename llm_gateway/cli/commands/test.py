"""Test commands for the llmgw CLI."""

import sys

import typer
from rich.console import Console
from rich.markup import escape
from rich.panel import Panel
from rich.table import Table

from llm_gateway.cli import runtime
from llm_gateway.core.exceptions import ApiTestError, GatewayError

app = typer.Typer(help="Test commands")


def _diagnostics_table(error: ApiTestError) -> Table:
    table = Table(show_header=False, box=None)
    table.add_column("Field", style="bold")
    table.add_column("Value", overflow="fold")
    for name, value in error.to_dict().items():
        if isinstance(value, dict):
            value = "\n".join(f"{k}: {v}" for k, v in value.items()) or "(none)"
        shown = "(none)" if value in (None, "") else escape(str(value))
        table.add_row(name.replace("_", " "), shown)
    return table


@app.command()
def connection(
    provider: str = typer.Option(
        None, "--provider", "-p", help="Provider id (default: LLM_PROVIDER)"
    ),
) -> None:
    """Send a minimal prompt to the provider and show the raw response."""
    console = Console()
    console.print("[bold cyan]Testing API Connectivity[/bold cyan]")
    console.print()

    try:
        result = runtime.run_with_gateway(
            lambda gateway: gateway.test_connection(provider_id=provider)
        )
    except ApiTestError as e:
        title = f"[red]❌ {escape(str(e))}[/red]"
        console.print(Panel(_diagnostics_table(e), title=title, expand=False))
        sys.exit(1)
    except GatewayError as e:
        console.print(f"[red]❌ {escape(str(e))}[/red]")
        sys.exit(1)

    console.print(Panel(escape(result), title="[green]✅ Connection OK[/green]", expand=False))
