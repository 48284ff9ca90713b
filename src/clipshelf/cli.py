from pathlib import Path
from typing import Optional

import typer
from rich.console import Console
from rich.markup import escape
from rich.table import Table
from sqlite_utils import Database

from clipshelf.app import ClipshelfApp
from clipshelf.config import LoggingSettings, StoreSettings
from clipshelf.errors import EncryptionError, StoreLoadError, UnknownCategoryError
from clipshelf.models.category import ClipboardCategory, describe
from clipshelf.persistence import PersistenceController, SaveStatus

console = Console(
    record=True,
    width=120,
    color_system="auto",
)

app = typer.Typer(name="clipshelf", help="Inspect and edit the clipboard history store.")


def _store_settings(data_dir: Optional[Path]) -> StoreSettings:
    settings = StoreSettings()
    if data_dir is not None:
        return settings.model_copy(update={"data_dir": data_dir})
    return settings


def _start(data_dir: Optional[Path]) -> ClipshelfApp:
    container = ClipshelfApp(_store_settings(data_dir), LoggingSettings())
    try:
        container.start()
    except StoreLoadError as e:
        console.print(f"[bold red]Error:[/bold red] {e}")
        raise typer.Exit(code=1)
    return container


def _parse_category(value: Optional[str]) -> Optional[ClipboardCategory]:
    if value is None:
        return None
    try:
        if value.isdigit():
            return ClipboardCategory.from_code(int(value))
        return ClipboardCategory[value.upper()]
    except (KeyError, UnknownCategoryError):
        raise typer.BadParameter(f"Unknown category: {value}")


def _print_items(store: PersistenceController, items) -> None:
    table = Table(title="Clipboard items")
    table.add_column("Timestamp")
    table.add_column("Category")
    table.add_column("Content")
    for item in items:
        table.add_row(
            str(item.timestamp),
            item.clipboard_category.display_name,
            escape(store.display_content(item)[:80]),
        )
    console.print(table)


@app.command(name="categories", help="List the clipboard categories.")
def categories():
    table = Table(title="Categories")
    table.add_column("Code", justify="right")
    table.add_column("Name")
    table.add_column("Icon")
    table.add_column("Color")
    for category in ClipboardCategory:
        info = describe(category)
        table.add_row(str(int(category)), info.name, info.icon, info.color)
    console.print(table)


@app.command(name="add", help="Store a text item.")
def add(
    content: str = typer.Argument(..., help="Text to store."),
    category: Optional[str] = typer.Option(None, "--category", "-c", help="Name or code."),
    encrypt: bool = typer.Option(False, "--encrypt", help="Store the content encrypted."),
    data_dir: Optional[Path] = typer.Option(None, "--data-dir", help="Store directory."),
):
    container = _start(data_dir)
    try:
        store = container.store
        try:
            store.add_item(
                content,
                category=_parse_category(category) or ClipboardCategory.TEXT,
                encrypt=encrypt,
            )
        except EncryptionError as e:
            console.print(f"[bold red]Error:[/bold red] {e}")
            raise typer.Exit(code=1)
        status = store.save()
    finally:
        container.shutdown()
    if status is SaveStatus.FAILED:
        console.print("[bold red]Save failed.[/bold red]")
        raise typer.Exit(code=1)
    console.print(f"[bold green]{status.value}[/bold green]")


@app.command(name="list", help="List stored items, newest first.")
def list_items(
    category: Optional[str] = typer.Option(None, "--category", "-c", help="Name or code."),
    limit: int = typer.Option(20, "--limit", "-n", help="Maximum rows."),
    data_dir: Optional[Path] = typer.Option(None, "--data-dir", help="Store directory."),
):
    container = _start(data_dir)
    try:
        store = container.store
        _print_items(store, store.fetch_items(_parse_category(category), limit=limit))
    finally:
        container.shutdown()


@app.command(name="stats", help="Row counts read straight from the store file.")
def stats(
    data_dir: Optional[Path] = typer.Option(None, "--data-dir", help="Store directory."),
):
    path = _store_settings(data_dir).database_path
    if not path.exists():
        console.print(f"[bold red]No store at {path.as_posix()}[/bold red]")
        raise typer.Exit(code=1)
    db = Database(path)
    console.print(f"[bold blue]{path.as_posix()}[/bold blue]")
    for table in db.tables:
        console.print(f"[bold cyan]{table.name}:[/bold cyan] {table.count}")


@app.command(name="preview", help="Show the sample items of a preview store.")
def preview():
    store = PersistenceController.preview()
    try:
        _print_items(store, store.fetch_items())
    finally:
        store.close()


if __name__ == "__main__":
    app()
