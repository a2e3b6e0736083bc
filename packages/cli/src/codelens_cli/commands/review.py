"""review command: run an AI review on a source file or stdin."""

from __future__ import annotations

import json
from pathlib import Path

import click
from rich.console import Console
from rich.table import Table

from codelens_core.errors import CodeLensError, InvalidInputError
from codelens_core.models import ReviewRequest, ReviewResponse
from codelens_core.reviewer import PROVIDERS

console = Console()

_SEVERITY_STYLE = {"CRITICAL": "red", "HIGH": "yellow", "MEDIUM": "blue", "LOW": "cyan", "INFO": "dim"}


def _score_style(score: float) -> str:
    if score >= 8:
        return "green"
    if score >= 5:
        return "yellow"
    return "red"


def _read_source(path: str) -> tuple[str, str | None]:
    """Return (code, file_name). The file name is None for stdin."""
    if path == "-":
        return click.get_text_stream("stdin").read(), None
    source = Path(path)
    try:
        return source.read_text(encoding="utf-8", errors="replace"), source.name
    except OSError as e:
        raise click.BadParameter(f"Could not read {path}: {e.strerror}", param_hint="'PATH'")


def print_review(response: ReviewResponse) -> None:
    """Render a review to the terminal."""
    result = response.result
    meta = response.metadata
    style = _score_style(result.overall_score)

    console.print(
        f"\n[bold]Review[/bold] [dim]{meta.request_id}[/dim]  "
        f"[cyan]{result.language}[/cyan] / {result.framework}  "
        f"score [bold {style}]{result.overall_score:g}/10[/bold {style}]"
    )
    if result.degraded:
        console.print("[yellow]The AI reply could not be parsed; this review is partial.[/yellow]")
    console.print(f"\n{result.summary}\n")

    if result.issues:
        table = Table(title=f"{len(result.issues)} issue(s)", show_header=True, header_style="bold cyan")
        table.add_column("Line", justify="right", width=6)
        table.add_column("Severity", width=10)
        table.add_column("Category", width=16)
        table.add_column("Issue")
        for issue in result.issues:
            sev_style = _SEVERITY_STYLE.get(issue.severity.value, "white")
            body = f"[bold]{issue.title}[/bold]"
            if issue.description:
                body += f"\n{issue.description}"
            if issue.suggestion:
                body += f"\n[green]Suggestion:[/green] {issue.suggestion}"
            table.add_row(
                str(issue.line) if issue.line else "-",
                f"[{sev_style}]{issue.severity.value}[/{sev_style}]",
                issue.category.value,
                body,
            )
        console.print(table)
    else:
        console.print("[green]No issues found.[/green]")

    if result.positive_aspects:
        console.print("\n[bold]What was done well[/bold]")
        for item in result.positive_aspects:
            console.print(f"  [green]+[/green] {item}")
    if result.recommendations:
        console.print("\n[bold]Recommendations[/bold]")
        for item in result.recommendations:
            console.print(f"  • {item}")

    console.print(f"\n[dim]{meta.model} · {meta.code_size} chars · {meta.processing_time_ms}ms[/dim]")


@click.command("review")
@click.argument("path", type=click.Path(dir_okay=False, allow_dash=True))
@click.option("--language", default=None, help="Source language. Detected from the file name or code when omitted.")
@click.option("--framework", default=None, help="Framework hint, e.g. react or django. Advisory only.")
@click.option(
    "--file-name",
    "file_name",
    default=None,
    help="File name used for language detection. Defaults to the basename of PATH.",
)
@click.option(
    "--model",
    type=click.Choice(list(PROVIDERS)),
    default=None,
    help="AI model provider. Overrides config file.",
)
@click.option("--json", "as_json", is_flag=True, help="Print the review as JSON instead of a table.")
@click.pass_context
def review_cmd(
    ctx,
    path: str,
    language: str | None,
    framework: str | None,
    file_name: str | None,
    model: str | None,
    as_json: bool,
):
    """Review a source file (or '-' for stdin) with an AI model.

    \b
    Required environment variables:
      GEMINI_API_KEY       Required when using --model gemini (default)
      ANTHROPIC_API_KEY    Required when using --model anthropic
      OPENAI_API_KEY       Required when using --model openai
    """
    from codelens_cli.cli import build_service

    config = dict(ctx.obj["config"])
    if model is not None:
        config["model"] = model

    service = build_service(config)
    code, default_name = _read_source(path)
    request = ReviewRequest(code=code, language=language, file_name=file_name or default_name, framework=framework)

    try:
        response = service.review(request)
    except InvalidInputError as e:
        raise click.BadParameter(e.user_message, param_hint="'PATH'")
    except CodeLensError as e:
        raise click.ClickException(f"{e.user_message} [{e.error_code}] (request {e.request_id})")

    if as_json:
        click.echo(json.dumps(response.to_dict(), indent=2))
    else:
        print_review(response)
