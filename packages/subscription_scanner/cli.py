# ruff: noqa: I001
"""CLI for the ``subscription_scanner`` package.

Command handlers (``cmd_scan``, ``cmd_explain``, ...) are plain functions
returning a process exit code; the Typer commands at the bottom of the module
are thin wrappers around them. A local ``.env`` is loaded with
``python-dotenv`` before any command runs, so ``SUBSCRIPTION_SCANNER_*``
settings can live there.
"""

from __future__ import annotations

import os
import sys
from pathlib import Path
from typing import Annotated

import typer
from dotenv import load_dotenv
from rich.console import Console
from rich.markup import escape
from rich.table import Table
from typer.models import OptionInfo

from .catalog import MERCHANTS_ENV, CatalogError, MerchantCatalog, load_catalog
from .logging_setup import configure_logging

PAGE_WORKERS_ENV = "SUBSCRIPTION_SCANNER_PAGE_WORKERS"

console = Console()


# ---- Small module-level helpers used by CLI commands -------------------------


def _resolve_page_workers(cli_value: int | None) -> int:
    """Resolve the page worker count.

    The ``--workers`` option wins over ``SUBSCRIPTION_SCANNER_PAGE_WORKERS``.
    Values are capped to 1..16; anything unparseable means sequential (1).
    """

    from .workers import MAX_WORKERS

    raw: int | str | None = cli_value if cli_value is not None else os.getenv(PAGE_WORKERS_ENV)
    try:
        n = int(raw) if raw not in (None, "") else 1
    except (TypeError, ValueError):
        n = 1
    if n < 1:
        return 1
    return min(n, MAX_WORKERS)


def _load_merchants(path: Path | None) -> MerchantCatalog:
    """Load the merchant catalog from ``path`` or ``SUBSCRIPTION_SCANNER_MERCHANTS``.

    With neither set the catalog is empty: extraction still works, nothing
    is flagged as a subscription.
    """

    resolved = path if path is not None else os.getenv(MERCHANTS_ENV)
    if not resolved:
        print(
            f"Warning: no merchant file given (--merchants or {MERCHANTS_ENV}); "
            "nothing will be matched.",
            file=sys.stderr,
        )
        return MerchantCatalog()
    return load_catalog(resolved)


def _resolve_year(cli_year: int | None, path: Path) -> int | None:
    from .pdf_source import year_from_filename

    return cli_year if cli_year is not None else year_from_filename(path)


def _fmt_amount(candidate) -> str:
    return f"{candidate.signed_amount:,.2f}"


# ---- Command handlers ---------------------------------------------------------


def cmd_scan(
    pdf_path: Path,
    *,
    merchants: Path | None = None,
    year: int | None = None,
    workers: int | None = None,
    show_all: bool = False,
) -> int:
    """Scan one statement PDF and print the transactions matched to merchants.

    Returns ``0`` on success (including documents with no transactions) and
    ``1`` when the PDF or the merchant file cannot be read.
    """

    from .pdf_source import load_pdf_pages
    from .pipeline import scan_statement

    try:
        catalog = _load_merchants(merchants)
    except CatalogError as e:
        print(f"Error: {e}", file=sys.stderr)
        return 1

    try:
        pages = load_pdf_pages(pdf_path)
    except FileNotFoundError:
        print(f"Error: File not found: {pdf_path}", file=sys.stderr)
        return 1
    except Exception as e:
        print(f"Error: failed to read PDF '{pdf_path}': {e}", file=sys.stderr)
        return 1

    scan = scan_statement(
        pages,
        catalog,
        concurrency=_resolve_page_workers(workers),
        reference_year=_resolve_year(year, pdf_path),
    )

    console.print(f"Format: [bold]{scan.format.kind}[/bold] ({scan.page_count} pages)")
    for diag in scan.diagnostics:
        console.print(f"[yellow]page {diag.page}:[/yellow] {escape(diag.reason)}")
    if scan.is_empty:
        console.print("No transactions found.")
        return 0

    rows = scan.matches if show_all else scan.subscriptions
    table = Table(title="Transactions" if show_all else "Subscriptions")
    table.add_column("Date")
    table.add_column("Description")
    table.add_column("Amount", justify="right")
    table.add_column("Merchant")
    for m in rows:
        c = m.candidate
        table.add_row(
            c.date.isoformat(),
            escape(c.description),
            _fmt_amount(c),
            escape(m.merchant.name) if m.merchant is not None else "",
        )
    console.print(table)
    console.print(f"{len(scan.subscriptions)} of {len(scan.matches)} transactions matched a merchant")
    return 0


def cmd_explain(description: str, *, merchants: Path | None = None) -> int:
    """Show how one description normalizes and which merchant rule it hits."""

    from .matcher import match_details
    from .normalizer import normalize

    try:
        catalog = _load_merchants(merchants)
    except CatalogError as e:
        print(f"Error: {e}", file=sys.stderr)
        return 1

    normalized = normalize(description)
    console.print(f"Normalized: {escape(normalized)}")
    detail = match_details(normalized, catalog)
    if detail is None:
        console.print("Merchant: no match")
        return 0
    console.print(f"Merchant: {escape(detail.merchant.name)} ({escape(detail.merchant.id)})")
    console.print(f"Tier: {detail.tier}")
    if detail.keyword is not None:
        console.print(f"Keyword: {escape(detail.keyword)}")
    if detail.merchant.cancel_url:
        console.print(f"Cancel: {escape(detail.merchant.cancel_url)}")
    return 0


def cmd_lines(pdf_path: Path, *, page: int | None = None) -> int:
    """Dump reconstructed lines (page, row coordinate, text) for debugging layouts."""

    from .pdf_source import load_pdf_pages
    from .pipeline import reconstruct_pages

    try:
        pages = load_pdf_pages(pdf_path)
    except FileNotFoundError:
        print(f"Error: File not found: {pdf_path}", file=sys.stderr)
        return 1
    except Exception as e:
        print(f"Error: failed to read PDF '{pdf_path}': {e}", file=sys.stderr)
        return 1

    lines, _ = reconstruct_pages(pages)
    table = Table()
    table.add_column("Page", justify="right")
    table.add_column("Y", justify="right")
    table.add_column("Text")
    for ln in lines:
        if page is not None and ln.page != page:
            continue
        table.add_row(str(ln.page), str(ln.y), escape(ln.text))
    console.print(table)
    return 0


def cmd_recurring(
    pdf_paths: list[Path] | None,
    *,
    csv_paths: list[Path] | None = None,
    merchants: Path | None = None,
    year: int | None = None,
) -> int:
    """Detect recurring charges across statement PDFs and bank CSV exports."""

    import csv

    from .csv_source import load_csv_transactions
    from .pdf_source import load_pdf_pages
    from .pipeline import scan_statement
    from .recurrence import detect_recurring

    pdf_paths = pdf_paths or []
    csv_paths = csv_paths or []
    if not pdf_paths and not csv_paths:
        print("Error: at least one --pdf-path or --csv-path is required", file=sys.stderr)
        return 1

    try:
        catalog = _load_merchants(merchants)
    except CatalogError as e:
        print(f"Error: {e}", file=sys.stderr)
        return 1

    transactions = []
    for pdf_path in pdf_paths:
        try:
            pages = load_pdf_pages(pdf_path)
        except FileNotFoundError:
            print(f"Error: File not found: {pdf_path}", file=sys.stderr)
            return 1
        except Exception as e:
            print(f"Error: failed to read PDF '{pdf_path}': {e}", file=sys.stderr)
            return 1
        scan = scan_statement(
            pages,
            catalog,
            concurrency=_resolve_page_workers(None),
            reference_year=_resolve_year(year, pdf_path),
        )
        transactions.extend(scan.candidates)
    for csv_path in csv_paths:
        try:
            transactions.extend(
                load_csv_transactions(csv_path, reference_year=_resolve_year(year, csv_path))
            )
        except FileNotFoundError:
            print(f"Error: File not found: {csv_path}", file=sys.stderr)
            return 1
        except (csv.Error, UnicodeDecodeError) as e:
            print(f"Error: failed to read CSV '{csv_path}': {e}", file=sys.stderr)
            return 1

    charges = detect_recurring(transactions, catalog)
    if not charges:
        console.print("No recurring charges found.")
        return 0

    table = Table(title="Recurring charges")
    table.add_column("Name")
    table.add_column("Amount", justify="right")
    table.add_column("Frequency")
    table.add_column("Confidence")
    table.add_column("Charges", justify="right")
    table.add_column("Cancel")
    for ch in charges:
        cancel = ch.merchant.cancel_url if ch.merchant is not None else None
        table.add_row(
            escape(ch.display_name),
            f"{ch.average_amount:,.2f}",
            str(ch.frequency),
            str(ch.confidence),
            str(len(ch.transactions)),
            escape(cancel or ""),
        )
    console.print(table)
    return 0


# ---- Typer-based console interface -------------------------------------------


app = typer.Typer(
    no_args_is_help=True,
    add_completion=False,
    help=(
        "Find subscription charges in bank and card statement PDFs. "
        "Loads SUBSCRIPTION_SCANNER_* settings from a local .env before running."
    ),
)

# Module-level option objects shared by several commands. Defaults are set
# with ``=`` on the parameter since these are used inside ``Annotated``.
PDF_PATH_OPTION: OptionInfo = typer.Option(
    "--pdf-path",
    help="Path to a statement PDF",
    dir_okay=False,
    file_okay=True,
    exists=False,  # the handler reports missing files itself
)
MERCHANTS_OPTION: OptionInfo = typer.Option(
    "--merchants",
    help=f"Merchant knowledge-base JSON (falls back to {MERCHANTS_ENV}).",
    dir_okay=False,
)


def _exit(code: int) -> None:
    if code:
        raise typer.Exit(code)


@app.command("scan")
def scan_cmd(
    pdf_path: Annotated[Path, PDF_PATH_OPTION],
    merchants: Annotated[Path | None, MERCHANTS_OPTION] = None,
    year: Annotated[
        int | None, typer.Option(help="Year for dates printed without one.")
    ] = None,
    workers: Annotated[
        int | None,
        typer.Option(help=f"Pages reconstructed in parallel (falls back to {PAGE_WORKERS_ENV})."),
    ] = None,
    show_all: Annotated[
        bool, typer.Option("--all", help="List every transaction, not only subscriptions.")
    ] = False,
) -> None:
    """Scan a statement and list the charges matching known merchants."""

    _exit(cmd_scan(pdf_path, merchants=merchants, year=year, workers=workers, show_all=show_all))


@app.command("explain")
def explain_cmd(
    description: Annotated[str, typer.Argument(help="Raw statement description")],
    merchants: Annotated[Path | None, MERCHANTS_OPTION] = None,
) -> None:
    """Show the normalized key and merchant match for one description."""

    _exit(cmd_explain(description, merchants=merchants))


@app.command("lines")
def lines_cmd(
    pdf_path: Annotated[Path, PDF_PATH_OPTION],
    page: Annotated[int | None, typer.Option(help="Only show this 0-based page.")] = None,
) -> None:
    """Print the reconstructed text lines of a statement."""

    _exit(cmd_lines(pdf_path, page=page))


@app.command("recurring")
def recurring_cmd(
    pdf_paths: Annotated[
        list[Path] | None,
        typer.Option("--pdf-path", help="Statement PDF; repeat for several statements."),
    ] = None,
    csv_paths: Annotated[
        list[Path] | None,
        typer.Option("--csv-path", help="Bank CSV export; repeat for several files."),
    ] = None,
    merchants: Annotated[Path | None, MERCHANTS_OPTION] = None,
    year: Annotated[
        int | None, typer.Option(help="Year for dates printed without one.")
    ] = None,
) -> None:
    """Detect recurring charges across one or more statements."""

    _exit(cmd_recurring(pdf_paths, csv_paths=csv_paths, merchants=merchants, year=year))


@app.callback(invoke_without_command=True)
def _root(
    ctx: typer.Context,
    log_level: Annotated[
        str | None,
        typer.Option(help="Log level (falls back to SUBSCRIPTION_SCANNER_LOG_LEVEL)."),
    ] = None,
) -> None:
    """Root command.

    Loads ``.env`` from the current working directory (without overriding any
    already-set environment variables) and configures logging.
    """

    load_dotenv(dotenv_path=Path.cwd() / ".env", override=False)

    # Central logging setup so child loggers inherit configuration
    configure_logging(log_level)

    if ctx.invoked_subcommand is None:
        typer.echo("No subcommand provided. Use --help to see available commands.")
        raise typer.Exit(1)


if __name__ == "__main__":  # pragma: no cover
    app()
