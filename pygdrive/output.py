"""Console output for the command line interface."""

import json
from typing import Any, Optional

from rich.console import Console
from rich.table import Table

from .models import Change, File
from .utils import format_size


class OutputFormatter:
    """Prints human-readable or JSON output."""

    def __init__(
        self,
        json_output: bool = False,
        quiet: bool = False,
        console: Optional[Console] = None,
        err_console: Optional[Console] = None,
    ):
        self.json_output = json_output
        self.quiet = quiet
        self.console = console or Console()
        self.err_console = err_console or Console(stderr=True)

    def info(self, message: str) -> None:
        if not self.quiet and not self.json_output:
            self.console.print(message, highlight=False)

    def success(self, message: str) -> None:
        if not self.quiet and not self.json_output:
            self.console.print(f"[green]{message}[/green]", highlight=False)

    def warning(self, message: str) -> None:
        if not self.quiet:
            self.err_console.print(f"[yellow]Warning:[/yellow] {message}")

    def error(self, message: str) -> None:
        self.err_console.print(f"[red]Error:[/red] {message}")

    def print(self, message: str) -> None:
        self.console.print(message, highlight=False, markup=False)

    def output_json(self, data: Any) -> None:
        self.console.print_json(json.dumps(data, default=str))

    def print_files(self, files: list[File]) -> None:
        """Print a listing of objects."""
        if self.json_output:
            self.output_json([file_to_dict(f) for f in files])
            return
        if not files:
            self.info("No files found.")
            return

        table = Table(show_header=True, header_style="bold")
        table.add_column("ID", no_wrap=True)
        table.add_column("Name")
        table.add_column("Size", justify="right")
        table.add_column("Modified")
        for f in files:
            name = f"{f.name}/" if f.is_dir else f.name
            size = "-" if f.is_dir else format_size(f.size)
            modified = f.mod_time.isoformat() if f.mod_time else ""
            table.add_row(f.id, name, size, modified)
        self.console.print(table)

    def print_changes(self, changes: list[Change]) -> None:
        """Print a listing of change events."""
        if self.json_output:
            self.output_json([change_to_dict(c) for c in changes])
            return
        for change in changes:
            if change.deleted or change.file is None:
                self.print(f"{change.id}\tdeleted\t{change.file_id}")
            else:
                self.print(f"{change.id}\t{change.file_id}\t{change.file.name}")


def file_to_dict(f: File) -> dict[str, Any]:
    return {
        "id": f.id,
        "name": f.name,
        "is_dir": f.is_dir,
        "mod_time": f.mod_time.isoformat() if f.mod_time else None,
        "parents": list(f.parents),
        "trashed": f.trashed,
        "mime_type": f.mime_type,
        "size": f.size,
        "md5_checksum": f.md5_checksum,
    }


def change_to_dict(c: Change) -> dict[str, Any]:
    return {
        "id": c.id,
        "file_id": c.file_id,
        "deleted": c.deleted,
        "file": file_to_dict(c.file) if c.file else None,
    }
