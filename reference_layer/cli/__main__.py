"""
CLI for reference layer.

Commands:
    search   - Retrieve budgeted context for a query
    info     - Show index diagnostics
    scan     - Show per-page extraction statistics
"""

import asyncio
import logging
from pathlib import Path
from typing import List, Optional

import typer
from rich import print as rprint
from rich.console import Console
from rich.table import Table as RichTable

app = typer.Typer(
    name="reference-layer",
    help="Basis Reference Layer - document excerpts for image analysis",
)
console = Console()


def _build_service(paths: Optional[List[Path]]):
    from ..src.config.settings import get_settings
    from ..src.index_service import IndexService

    settings = get_settings()
    if paths:
        return IndexService(doc_paths=paths, chunk_chars=settings.chunk_chars)
    return IndexService.from_settings()


@app.callback()
def main(
    verbose: bool = typer.Option(False, "--verbose", "-V", help="Log index build progress"),
):
    """Configure logging for all commands."""
    from ..src.config.settings import get_settings

    level = logging.DEBUG if verbose else get_settings().log_level.upper()
    logging.basicConfig(level=level, format="%(levelname)s %(name)s: %(message)s")


@app.command()
def search(
    query: str = typer.Argument(..., help="Free-text query"),
    paths: Optional[List[Path]] = typer.Option(None, "--path", "-p", help="Document to index (repeatable; defaults to DOC_PATHS)"),
    char_budget: Optional[int] = typer.Option(None, "--budget", "-b", help="Character budget (defaults to CONTEXT_CHAR_BUDGET)"),
    top_k: Optional[int] = typer.Option(None, "--top-k", "-k", help="Maximum excerpts (defaults to CONTEXT_TOP_K)"),
    show_text: bool = typer.Option(True, "--show-text/--hide-text", help="Print the assembled context"),
):
    """
    Retrieve relevant excerpts for a query.

    Examples:
        reference-layer search "restroom cleaning frequency"

        reference-layer search "trash" -p spec.pdf -p addendum.txt --budget 2000 -k 3
    """
    from ..src.config.settings import get_settings

    settings = get_settings()
    budget = char_budget if char_budget is not None else settings.context_char_budget
    k = top_k if top_k is not None else settings.context_top_k

    service = _build_service(paths)
    try:
        result = asyncio.run(service.retrieve(query, char_budget=budget, top_k=k))
    except ValueError as e:
        rprint(f"[red]Invalid request: {e}[/red]")
        raise typer.Exit(1)

    rprint(f"\n🔍 Query: [cyan]{query}[/cyan]  (budget {budget}, top-k {k})")

    if result is None:
        rprint("[yellow]No context available[/yellow]")
        return

    table = RichTable(title="Included excerpts")
    table.add_column("#", justify="right")
    table.add_column("Document", style="cyan")
    table.add_column("Page", justify="right")
    table.add_column("Chars", justify="right")

    for i, segment in enumerate(result.segments, 1):
        table.add_row(str(i), segment.doc_name, str(segment.page), str(segment.char_count))

    console.print(table)

    if show_text:
        rprint()
        console.print(result.text, markup=False, highlight=False, soft_wrap=True)


@app.command()
def info(
    paths: Optional[List[Path]] = typer.Option(None, "--path", "-p", help="Document to index (repeatable; defaults to DOC_PATHS)"),
):
    """
    Show index diagnostics: chunk counts, pages per document, configured paths.
    """
    service = _build_service(paths)
    diag = asyncio.run(service.diagnostics())

    rprint(f"\n[bold]Total chunks:[/bold] {diag.total_chunks}")

    if diag.files:
        table = RichTable(title="Indexed documents")
        table.add_column("Document", style="cyan")
        table.add_column("Pages", justify="right")
        for f in diag.files:
            table.add_row(f.doc_name, str(f.page_count))
        console.print(table)

    rprint("\n[bold]Configured paths:[/bold]")
    for p in diag.configured_paths:
        if p.exists:
            rprint(f"  ✓ {p.path}")
        else:
            rprint(f"  ✗ {p.path} [dim](not found)[/dim]")

    for failure in diag.load_errors:
        rprint(f"  [red]![/red] {failure.path}: {failure.error}")


@app.command()
def scan(
    paths: Optional[List[Path]] = typer.Option(None, "--path", "-p", help="Document to scan (repeatable; defaults to DOC_PATHS)"),
    max_pages: Optional[int] = typer.Option(None, "--max-pages", "-n", help="Pages per document (defaults to SCAN_MAX_PAGES)"),
):
    """
    Show per-page extraction statistics without building the index.
    """
    from ..src.config.settings import get_settings

    pages = max_pages if max_pages is not None else get_settings().scan_max_pages
    service = _build_service(paths)

    try:
        report = asyncio.run(service.scan(pages))
    except ValueError as e:
        rprint(f"[red]{e}[/red]")
        raise typer.Exit(1)

    for doc in report.docs:
        if not doc.exists:
            rprint(f"\n✗ {doc.path} [dim](not found)[/dim]")
            continue

        table = RichTable(title=doc.path)
        table.add_column("Page", justify="right")
        table.add_column("Chars", justify="right")
        table.add_column("OCR")
        table.add_column("Error", style="red")

        for page in doc.pages or []:
            table.add_row(
                str(page.page),
                str(page.extracted_chars),
                "✓" if page.used_ocr else "-",
                page.error or "",
            )

        console.print(table)


if __name__ == "__main__":
    app()
