"""API key management commands for the llmgw CLI."""

import sys

import typer
from rich.console import Console
from rich.markup import escape
from rich.table import Table

from llm_gateway.cli import runtime
from llm_gateway.client import LLMGateway
from llm_gateway.core.credentials import mask_key
from llm_gateway.core.exceptions import StorageError

app = typer.Typer(help="API key management")

PROVIDER_OPTION = typer.Option(None, "--provider", "-p", help="Provider id (default: LLM_PROVIDER)")


def _provider_id(gateway: LLMGateway, provider: str | None) -> str:
    return (provider or gateway.config.provider).strip().lower()


@app.command("list")
def list_keys(provider: str = PROVIDER_OPTION) -> None:
    """Show the provider's keys in rotation order (masked)."""
    console = Console()
    gateway = runtime.build_gateway()
    provider_id = _provider_id(gateway, provider)

    keys = gateway.ledger.get_all_keys(provider_id)
    if not keys:
        console.print(f"[yellow]No API keys configured for {provider_id}[/yellow]")
        return

    current = gateway.ledger.get_current_key(provider_id)
    primary = gateway.ledger.get_primary_key(provider_id)
    extras = [k.strip() for k in gateway.ledger.get_extra_keys(provider_id)]

    table = Table(title=f"API keys for {provider_id}")
    table.add_column("#", justify="right")
    table.add_column("Key", style="cyan")
    table.add_column("Source")
    table.add_column("Current")
    for position, key in enumerate(keys, start=1):
        source = "primary" if key == primary else f"extra {extras.index(key) + 1}"
        table.add_row(str(position), mask_key(key), source, "✅" if key == current else "")
    console.print(table)


@app.command("add")
def add_key(
    key: str = typer.Argument(..., help="API key to append"),
    provider: str = PROVIDER_OPTION,
) -> None:
    """Append an extra key to the provider's rotation."""
    console = Console()
    gateway = runtime.build_gateway()
    provider_id = _provider_id(gateway, provider)

    try:
        gateway.ledger.add_extra_key(provider_id, key)
    except StorageError as e:
        console.print(f"[red]❌ {escape(str(e))}[/red]")
        sys.exit(1)
    console.print(
        f"✅ Added {mask_key(key.strip())} to {provider_id} "
        f"({gateway.ledger.get_key_count(provider_id)} key(s) total)"
    )


@app.command("remove")
def remove_key(
    number: int = typer.Argument(..., help="Extra key number as shown by 'keys list'"),
    provider: str = PROVIDER_OPTION,
) -> None:
    """Remove an extra key by its number."""
    console = Console()
    gateway = runtime.build_gateway()
    provider_id = _provider_id(gateway, provider)

    try:
        extras = gateway.ledger.get_extra_keys(provider_id)
        if not 1 <= number <= len(extras):
            console.print(f"[red]❌ No extra key {number} for {provider_id}[/red]")
            sys.exit(1)
        removed = extras[number - 1]
        gateway.ledger.remove_extra_key(provider_id, number - 1)
    except StorageError as e:
        console.print(f"[red]❌ {escape(str(e))}[/red]")
        sys.exit(1)

    console.print(f"✅ Removed {mask_key(removed)} from {provider_id}")


@app.command("reset")
def reset_rotation(provider: str = PROVIDER_OPTION) -> None:
    """Forget failure marks and restart rotation at the first key."""
    console = Console()
    gateway = runtime.build_gateway()
    provider_id = _provider_id(gateway, provider)
    gateway.ledger.reset_rotation(provider_id)
    console.print(f"✅ Rotation reset for {provider_id}")
