# ruff: noqa: I001
"""CLI for the ``ledger_import`` package.

Typer-based console interface. Environment variables (``OPENAI_API_KEY``,
``DATABASE_URL`` and the ``LEDGER_IMPORT_*`` settings) are loaded from a local
``.env`` using ``python-dotenv`` before any command runs. Business logic lives
in :mod:`ledger_import.workflows.import_flow` and related modules.
"""

from __future__ import annotations

import dataclasses
import sys
from pathlib import Path
from typing import Annotated

import typer
from dotenv import load_dotenv
from typer.models import ArgumentInfo

from .logging_setup import configure_logging


def _fail(message: str) -> typer.Exit:
    print(f"Error: {message}", file=sys.stderr)
    return typer.Exit(1)


# Module-level argument object to satisfy ruff B008 (no calls in parameter
# defaults).
STATEMENT_ARGUMENT: ArgumentInfo = typer.Argument(
    ...,
    help="Path to an OFX/SGML bank statement export",
    dir_okay=False,
    file_okay=True,
    exists=False,  # the handlers report missing files themselves
)


app = typer.Typer(
    no_args_is_help=True,
    add_completion=False,
    help=(
        "Import OFX bank statements into the ledger: parse, categorize with rules "
        "and OpenAI, review, and commit. Loads settings from a local .env first."
    ),
)


@app.command("parse")
def parse_cmd(
    statement: Annotated[Path, STATEMENT_ARGUMENT],
    *,
    catalogue: Path | None = typer.Option(
        None, help="Category catalogue JSON (defaults to the packaged seed)."
    ),
) -> None:
    """Print the staged rows of a statement, one tab-separated line per row."""

    from .catalogue import load_catalogue
    from .ingest.utils import load_statement
    from .session import ImportSession

    try:
        text = load_statement(statement)
    except FileNotFoundError:
        raise _fail(f"File not found: {statement}") from None
    except OSError as e:
        raise _fail(f"Failed to read '{statement}': {e}") from None
    try:
        cat, units = load_catalogue(catalogue)
    except Exception as e:
        raise _fail(f"failed to load catalogue: {e}") from None

    session = ImportSession.from_statement(text, catalogue=cat, units=units)
    for item in session.items:
        print(
            "\t".join(
                (
                    item.date,
                    item.direction.value,
                    str(item.amount),
                    item.category,
                    item.unit,
                    item.description,
                )
            )
        )


@app.command("import")
def import_cmd(
    statement: Annotated[Path, STATEMENT_ARGUMENT],
    *,
    ai: bool = typer.Option(False, "--ai/--no-ai", help="Classify descriptions with OpenAI."),
    bulk_category: str | None = typer.Option(
        None, help="Category applied to every selected row before review."
    ),
    review: bool = typer.Option(
        True, "--review/--no-review", help="Review staged rows interactively before commit."
    ),
    persist: bool = typer.Option(False, help="Insert committed entries into the database."),
    database_url: str | None = typer.Option(
        None, help="Override DATABASE_URL (falls back to env var)."
    ),
    catalogue: Path | None = typer.Option(
        None, help="Category catalogue JSON (overrides LEDGER_IMPORT_CATALOGUE)."
    ),
    protect_manual_edits: bool | None = typer.Option(
        None,
        "--protect-manual-edits/--overwrite-manual-edits",
        help="Keep hand-edited categories when AI results arrive.",
    ),
) -> None:
    """Stage a statement, optionally classify and review it, then commit."""

    import os

    from .config import ImportSettings
    from .workflows.import_flow import import_statement

    settings = ImportSettings.from_env()
    overrides: dict[str, object] = {}
    if database_url:
        overrides["database_url"] = database_url
    if catalogue is not None:
        overrides["catalogue_path"] = catalogue
    if protect_manual_edits is not None:
        overrides["protect_manual_edits"] = protect_manual_edits
    if overrides:
        settings = dataclasses.replace(settings, **overrides)

    if ai and not os.getenv("OPENAI_API_KEY"):
        raise _fail("OPENAI_API_KEY is not set in the environment.")
    if persist and not (settings.database_url or os.getenv("DATABASE_URL")):
        raise _fail("DATABASE_URL is not set; pass --database-url or set it in .env.")

    try:
        result = import_statement(
            statement,
            settings=settings,
            use_ai=ai,
            bulk_category=bulk_category,
            review=review,
            persist=persist,
            on_progress=typer.echo,
        )
    except FileNotFoundError:
        raise _fail(f"File not found: {statement}") from None
    except PermissionError:
        raise _fail(f"Permission denied: {statement}") from None
    except Exception as e:
        raise _fail(f"import failed: {e}") from None

    if persist and result.committed and not result.persisted:
        typer.echo("Nothing to save.")


@app.callback()
def _root() -> None:
    """Load ``.env`` from the working directory and configure logging."""

    # override=False keeps variables already set in the environment.
    load_dotenv(dotenv_path=Path.cwd() / ".env", override=False)
    configure_logging()


if __name__ == "__main__":  # pragma: no cover
    app()
