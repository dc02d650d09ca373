"""Provider listing for the llmgw CLI."""

import typer
from rich.console import Console
from rich.table import Table

from llm_gateway.cli import runtime

app = typer.Typer(help="Registered providers")


@app.command("list")
def list_providers() -> None:
    """Show every registered provider with its effective settings."""
    console = Console()
    gateway = runtime.build_gateway()
    active = gateway.config.provider

    table = Table(title="Providers")
    table.add_column("ID", style="cyan")
    table.add_column("Name")
    table.add_column("Endpoint", style="green")
    table.add_column("Model", style="yellow")
    table.add_column("Keys", justify="right")
    table.add_column("Multi-file")

    for provider_id in gateway.registry.list():
        provider = gateway.registry.get(provider_id)
        endpoint = gateway.config.provider_api_url(provider_id) or provider.default_api_url
        model = gateway.config.provider_model(provider_id) or provider.default_model
        marker = " (active)" if provider_id == active else ""
        table.add_row(
            f"{provider_id}{marker}",
            provider.display_name,
            endpoint or "[red]not configured[/red]",
            model,
            str(gateway.ledger.get_key_count(provider_id)),
            "yes" if provider.supports_multi_file else "no",
        )

    console.print(table)
