"""languages / frameworks commands: show the static detection tables."""

from __future__ import annotations

import click
from rich.console import Console
from rich.table import Table

from codelens_core.utils.languages import SUPPORTED_FRAMEWORKS, SUPPORTED_LANGUAGES

console = Console()


@click.command("languages")
def languages_cmd():
    """List supported languages and the file extensions that select them."""
    table = Table(title="Supported Languages", show_header=True, header_style="bold cyan")
    table.add_column("Language", style="bold")
    table.add_column("Extensions")
    for language, extensions in SUPPORTED_LANGUAGES.items():
        table.add_row(language, ", ".join(f".{ext}" for ext in extensions))
    console.print(table)
    console.print(f"[dim]{len(SUPPORTED_LANGUAGES)} languages[/dim]")


@click.command("frameworks")
def frameworks_cmd():
    """List frameworks that get framework-aware review prompts.

    Other frameworks are still accepted; they are reviewed generically.
    """
    for name in sorted(SUPPORTED_FRAMEWORKS):
        console.print(f"  {name}")
    console.print(f"[dim]{len(SUPPORTED_FRAMEWORKS)} frameworks[/dim]")
