"""Main CLI entry point for llm-gateway."""

import typer
from rich.console import Console
from rich.markup import escape

from llm_gateway.cli.commands import keys, providers, summarize, test
from llm_gateway.core.config import Config, validate_all
from llm_gateway.core.logging import configure_logging

app = typer.Typer(
    name="llmgw",
    help="LLM Gateway CLI - summaries, chats and API key management",
    no_args_is_help=True,
    rich_markup_mode="rich",
)

app.add_typer(providers.app, name="providers", help="Registered providers")
app.add_typer(keys.app, name="keys", help="API key management")
app.add_typer(test.app, name="test", help="Test commands")
app.command(name="summarize")(summarize.summarize)


@app.command()
def version() -> None:
    """Show version information."""
    from llm_gateway import __version__

    console = Console()
    console.print(f"[bold cyan]llmgw[/bold cyan] version [green]{__version__}[/green]")


@app.callback()
def main(
    verbose: bool = typer.Option(False, "--verbose", "-v", help="Verbose output"),
) -> None:
    """LLM Gateway CLI."""
    errors = validate_all()
    if errors:
        console = Console(stderr=True)
        for error in errors:
            console.print(f"[yellow]⚠️  {escape(str(error))} (default used)[/yellow]")
    configure_logging("DEBUG" if verbose else Config().log_level)


if __name__ == "__main__":
    app()
