from __future__ import annotations

from pathlib import Path
from typing import NoReturn

import typer

from . import app as session_app
from .app import print_facts
from .config import Settings
from .errors import PersistenceError, SourceFileError
from .handlers.teaching import export_csv, export_markdown, import_csv, teach_from_file
from .logging import configure_logging
from .matching.matcher import Matcher
from .state.knowledge import KnowledgeBase
from .state.store import KnowledgeStore

app = typer.Typer(help="Personal knowledge assistant")

DataFileOption = typer.Option(None, "--data-file", help="Knowledge base JSON file")


def _settings(data_file: Path | None, **overrides: object) -> Settings:
    if data_file is not None:
        overrides["data_file"] = data_file
    return Settings(**overrides)


def _open(data_file: Path | None) -> tuple[KnowledgeStore, KnowledgeBase]:
    configure_logging()
    store = KnowledgeStore(_settings(data_file).data_file)
    kb, _ = store.load()
    return store, kb


def _fail(message: str) -> NoReturn:
    typer.secho(message, fg=typer.colors.RED, bold=True, err=True)
    raise typer.Exit(code=1)


@app.command()
def chat(
    data_file: Path | None = DataFileOption,
    no_speech: bool = typer.Option(False, "--no-speech", help="Do not speak answers"),
    verbose: bool = typer.Option(False, help="Print effective settings"),
) -> None:
    """Start an interactive session."""
    overrides: dict[str, object] = {}
    if no_speech:
        overrides["speech_enabled"] = False
    settings = _settings(data_file, **overrides)
    if verbose:
        typer.echo(settings.model_dump_json(indent=2))
    session_app.run(settings=settings)


@app.command()
def ask(query: str, data_file: Path | None = DataFileOption) -> None:
    """Answer a single query from the knowledge base."""
    _, kb = _open(data_file)
    value = Matcher().lookup(query, kb.facts)
    if value is None:
        _fail("I don't know about that yet.")
    typer.echo(value)


@app.command()
def show(data_file: Path | None = DataFileOption) -> None:
    """Print every learned fact."""
    _, kb = _open(data_file)
    print_facts(kb)


@app.command("teach-file")
def teach_file(path: Path, data_file: Path | None = DataFileOption) -> None:
    """Learn facts from a file of key=value lines."""
    store, kb = _open(data_file)
    try:
        applied = teach_from_file(store, kb, path)
    except (SourceFileError, PersistenceError) as exc:
        _fail(str(exc))
    typer.echo(f"{applied} entries loaded from {path}")


@app.command("import-csv")
def import_csv_command(path: Path, data_file: Path | None = DataFileOption) -> None:
    """Learn facts from a two-column CSV file."""
    store, kb = _open(data_file)
    try:
        applied = import_csv(store, kb, path)
    except (SourceFileError, PersistenceError) as exc:
        _fail(str(exc))
    typer.echo(f"Imported {applied} entries from {path}")


@app.command("export-csv")
def export_csv_command(path: Path, data_file: Path | None = DataFileOption) -> None:
    """Write every fact to a two-column CSV file."""
    _, kb = _open(data_file)
    try:
        export_csv(kb, path)
    except SourceFileError as exc:
        _fail(str(exc))
    typer.echo(f"Exported to {path}")


@app.command("export-md")
def export_md_command(path: Path, data_file: Path | None = DataFileOption) -> None:
    """Write every fact to a Markdown list."""
    _, kb = _open(data_file)
    try:
        export_markdown(kb, path)
    except SourceFileError as exc:
        _fail(str(exc))
    typer.echo(f"Exported to {path}")


@app.command()
def reset(
    data_file: Path | None = DataFileOption,
    yes: bool = typer.Option(False, "--yes", help="Skip the confirmation prompt"),
) -> None:
    """Forget the user's name and every learned fact."""
    if not yes:
        typer.confirm("Forget everything?", abort=True)
    store, kb = _open(data_file)
    try:
        store.reset(kb)
    except PersistenceError as exc:
        _fail(str(exc))
    typer.echo("Memory reset complete.")


if __name__ == "__main__":  # pragma: no cover
    app()
