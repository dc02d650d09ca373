"""Summarize documents from the command line."""

import base64
import sys
from pathlib import Path

import typer
from rich.console import Console
from rich.markup import escape

from llm_gateway.cli import runtime
from llm_gateway.core.exceptions import GatewayError
from llm_gateway.core.types import DocumentFile
from llm_gateway.providers.prompts import DEFAULT_SUMMARY_PROMPT


def _encode(path: Path) -> str:
    return base64.b64encode(path.read_bytes()).decode("ascii")


def summarize(
    files: list[Path] = typer.Argument(..., exists=True, dir_okay=False, help="Documents"),
    prompt: str = typer.Option(DEFAULT_SUMMARY_PROMPT, "--prompt", help="Instruction text"),
    pdf: bool = typer.Option(True, "--pdf/--text", help="Attach as PDF or inline as text"),
    no_stream: bool = typer.Option(False, "--no-stream", help="Wait for the full response"),
    provider: str = typer.Option(None, "--provider", "-p", help="Provider id"),
) -> None:
    """Summarize one document, or several PDFs in a single request."""
    console = Console(stderr=True)
    printed: list[str] = []

    def sink(chunk: str) -> None:
        printed.append(chunk)
        typer.echo(chunk, nl=False)

    overrides = {"stream": False} if no_stream else {}

    if len(files) > 1:
        if not pdf:
            console.print("[red]❌ Several files can only be sent as PDFs[/red]")
            sys.exit(1)
        documents = [
            DocumentFile(display_name=path.name, base64_content=_encode(path), file_path=str(path))
            for path in files
        ]

        def operation(gateway):
            return gateway.generate_multi_file_summary(
                documents, prompt, provider_id=provider, progress=sink, **overrides
            )

    else:
        content = _encode(files[0]) if pdf else files[0].read_text(encoding="utf-8")

        def operation(gateway):
            return gateway.generate_summary(
                content, pdf, prompt, provider_id=provider, progress=sink, **overrides
            )

    try:
        text = runtime.run_with_gateway(operation)
    except GatewayError as e:
        if printed:
            typer.echo()
        console.print(f"[red]❌ {escape(str(e))}[/red]")
        sys.exit(1)

    if not printed:
        typer.echo(text, nl=False)
    typer.echo()
