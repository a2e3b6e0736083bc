"""CLI entry point for codelens.

Commands:
  review      run an AI review on a source file or stdin
  languages   list supported languages and their file extensions
  frameworks  list frameworks that get framework-aware prompts
  health      probe the configured AI provider
  status      show service capabilities and provider health
"""

from __future__ import annotations

import importlib.metadata
import logging

import click
from rich.console import Console
from rich.logging import RichHandler

from codelens_cli.commands.health import health_cmd, status_cmd
from codelens_cli.commands.languages import frameworks_cmd, languages_cmd
from codelens_cli.commands.review import review_cmd


def _configure_logging(level: str) -> None:
    """Route all library logging through rich on stderr, once per process."""
    logging.basicConfig(
        level=level,
        format="%(message)s",
        datefmt="[%X]",
        handlers=[RichHandler(console=Console(stderr=True), rich_tracebacks=True, show_path=False)],
        force=True,
    )


def build_service(config: dict):
    """Construct the ReviewService, failing with a usage error if the provider key is missing.

    Lives in cli.py so codelens_core never knows about click or how keys are
    looked up on a developer machine.
    """
    from codelens_cli.auth import API_KEY_ENV_VARS, resolve_api_key
    from codelens_core.reviewer import PROVIDERS
    from codelens_core.reviewer import build_service as _build_service

    provider = config["model"]
    if provider not in PROVIDERS:
        raise click.UsageError(f"Unknown model provider: {provider!r}. Choose one of: {', '.join(PROVIDERS)}.")

    key = resolve_api_key(provider, config)
    if not key:
        raise click.UsageError(f"{API_KEY_ENV_VARS[provider]} environment variable is not set.")
    config[f"{provider}_api_key"] = key

    try:
        return _build_service(config)
    except (ValueError, FileNotFoundError, ImportError) as e:
        raise click.UsageError(str(e))


@click.group()
@click.version_option(
    version=importlib.metadata.version("codelens"),
    prog_name="codelens",
)
@click.option(
    "--config",
    "config_path",
    default=".codelens.yml",
    show_default=True,
    help="Path to the configuration file.",
    envvar="CODELENS_CONFIG",
)
@click.option("--verbose", "-v", is_flag=True, help="Log pipeline activity (attempts, retries, timings).")
@click.pass_context
def main(ctx: click.Context, config_path: str, verbose: bool):
    """AI-powered code snippet reviewer."""
    from codelens_core.config import load_config

    ctx.ensure_object(dict)

    try:
        config = load_config(config_path)
    except ValueError as e:
        raise click.UsageError(str(e))

    _configure_logging("INFO" if verbose else config.get("log_level", "WARNING"))
    ctx.obj["config"] = config


main.add_command(review_cmd)
main.add_command(languages_cmd)
main.add_command(frameworks_cmd)
main.add_command(health_cmd)
main.add_command(status_cmd)
