"""CLI interface for the CareGrowth document assistant."""

import json
import os
import uuid

import typer
from rich.console import Console
from rich.panel import Panel
from rich.table import Table

from ....config import settings
from ....config.logging import setup_logging
from ....core.domain import Document
from ...common.exception_handler import format_exception_json

app = typer.Typer(
    name="caregrowth",
    help="CareGrowth - ask questions about your agency's documents",
    add_completion=False,
)

console = Console()

# Full JSON error details instead of a one-line summary
DEBUG_MODE = os.getenv("DEBUG", "false").lower() == "true"


def handle_cli_error(exc: Exception) -> None:
    """Display an error with its code, or the full JSON in debug mode.

    Args:
        exc: The exception to handle.
    """
    error_data = format_exception_json(exc, include_trace=DEBUG_MODE)

    if DEBUG_MODE:
        console.print(
            Panel(
                json.dumps(error_data, indent=2),
                title="[bold red]Error Details[/]",
                border_style="red",
            )
        )
        return

    error_code = error_data["error"].get("code", "UNKNOWN")
    console.print(f"\n[red]Error [{error_code}]:[/] {error_data['error']['message']}")
    console.print(f"[dim]Type: {error_data['error']['type']}[/]")
    console.print("[dim]Set DEBUG=true for full details[/]")


@app.callback()
def main(
    verbose: bool = typer.Option(False, "--verbose", "-v", help="Enable debug logging"),
) -> None:
    """Configure logging before any command runs."""
    setup_logging(
        "DEBUG" if verbose else settings.log_level,
        settings.log_file,
        json_format=settings.log_json,
    )


@app.command()
def ask(
    question: str = typer.Argument(..., help="Question about your documents"),
    user: str | None = typer.Option(
        None, "--user", "-u", help="User asking; searches their documents and shared ones"
    ),
    document: list[str] | None = typer.Option(
        None, "--document", "-d", help="Restrict to a document id (repeatable)"
    ),
) -> None:
    """Ask a single question and print the cited answer."""
    from ....composition.container import get_search_service

    try:
        with console.status("[bold green]Searching your documents...[/]"):
            answer = get_search_service().search(question, user_id=user, document_ids=document)
    except Exception as exc:
        handle_cli_error(exc)
        raise typer.Exit(1)

    console.print(Panel(answer.answer, title="[bold blue]Answer[/]", border_style="blue"))

    if answer.sources:
        console.print("[dim]Sources:[/]")
        for source in answer.sources:
            page = f", page {source.page_number}" if source.page_number else ""
            console.print(f"  [dim]{source.document_title}{page} ({source.confidence:.2f})[/]")

    if answer.tokens_used:
        console.print(f"[dim]Tokens used: {answer.tokens_used}[/]")


@app.command()
def ingest(
    url: str = typer.Argument(..., help="Google Docs/Sheets/Slides share URL or file URL"),
    title: str = typer.Option(..., "--title", "-t", help="Document title used in citations"),
    user: str | None = typer.Option(None, "--user", "-u", help="Owner of the document"),
    document_id: str | None = typer.Option(None, "--id", help="Document id (default: random)"),
    shared: bool = typer.Option(False, "--shared", help="Searchable by every user"),
) -> None:
    """Link a document and index its content."""
    from ....composition.container import get_ingestion_service

    document = Document(
        id=document_id or uuid.uuid4().hex, title=title, url=url, user_id=user, shared=shared
    )
    try:
        with console.status(f"[bold green]Processing {title}...[/]"):
            report = get_ingestion_service().register(document)
    except Exception as exc:
        handle_cli_error(exc)
        raise typer.Exit(1)

    if not report.success:
        console.print(f"[yellow]{report.message}[/]")
        raise typer.Exit(1)

    console.print(
        f"[green]✓[/] {title}: {report.chunks_created} chunks "
        f"({report.content_length} characters) as document [bold]{document.id}[/]"
    )
    if report.chunks_without_embedding:
        console.print(
            f"[yellow]{report.chunks_without_embedding} chunks have no embedding "
            "and will only match by keyword[/]"
        )


@app.command()
def sync(document_id: str = typer.Argument(..., help="Document id to re-fetch")) -> None:
    """Re-fetch a linked document and replace its chunks."""
    from ....composition.container import get_ingestion_service

    try:
        report = get_ingestion_service().sync(document_id)
    except Exception as exc:
        handle_cli_error(exc)
        raise typer.Exit(1)

    style = "green" if report.success else "yellow"
    console.print(f"[{style}]{report.message}[/]")


@app.command()
def documents(
    user: str | None = typer.Option(None, "--user", "-u", help="Owner to filter by"),
) -> None:
    """List linked documents."""
    from ....composition.container import get_store

    try:
        docs = get_store().list_documents(user)
    except Exception as exc:
        handle_cli_error(exc)
        raise typer.Exit(1)

    if not docs:
        console.print("[dim]No documents linked yet.[/]")
        return

    table = Table(title="Documents")
    table.add_column("ID", style="cyan")
    table.add_column("Title")
    table.add_column("Owner")
    table.add_column("Shared")
    table.add_column("Indexed")
    for doc in docs:
        table.add_row(
            doc.id,
            doc.title,
            doc.user_id or "-",
            "yes" if doc.shared else "no",
            "yes" if doc.fetched else "no",
        )
    console.print(table)


@app.command()
def forget(document_id: str = typer.Argument(..., help="Document id to remove")) -> None:
    """Remove a document and its chunks."""
    from ....composition.container import get_ingestion_service

    try:
        get_ingestion_service().forget(document_id)
    except Exception as exc:
        handle_cli_error(exc)
        raise typer.Exit(1)
    console.print(f"[green]Removed {document_id}[/]")


@app.command()
def history(
    user: str | None = typer.Option(None, "--user", "-u", help="Owner to filter by"),
    limit: int = typer.Option(10, "--limit", "-n", help="Number of entries"),
) -> None:
    """Show recently answered questions."""
    from ....composition.container import get_store

    try:
        entries = get_store().recent_interactions(user_id=user, limit=limit)
    except Exception as exc:
        handle_cli_error(exc)
        raise typer.Exit(1)

    if not entries:
        console.print("[dim]No questions answered yet.[/]")
        return

    table = Table(title="Recent questions")
    table.add_column("When", style="dim")
    table.add_column("Category")
    table.add_column("Question")
    for entry in entries:
        table.add_row(str(entry["created_at"]), entry["category"] or "-", entry["question"])
    console.print(table)


@app.command()
def status() -> None:
    """Show configuration and chunk store status."""
    from ....composition.container import check_configuration, get_chunk_store

    console.print("[bold]CareGrowth Status[/]\n")
    console.print(f"LLM: {settings.llm_provider} / {settings.llm_model}")
    console.print(f"Embeddings: {settings.embedding_provider} / {settings.embedding_model}")
    console.print(f"Chunk store: {settings.chunk_store_backend}")

    for problem in check_configuration():
        console.print(f"❌ {problem}")

    try:
        console.print(f"✅ {get_chunk_store().count_chunks()} chunks indexed")
    except Exception as exc:
        handle_cli_error(exc)
        raise typer.Exit(1)


@app.command()
def serve(
    host: str = typer.Option("127.0.0.1", help="Bind address"),
    port: int = typer.Option(8000, help="Port"),
    reload: bool = typer.Option(False, help="Reload on code changes"),
) -> None:
    """Run the HTTP API with uvicorn."""
    import uvicorn

    uvicorn.run("caregrowth.adapters.inbound.api.main:app", host=host, port=port, reload=reload)


if __name__ == "__main__":
    app()
