# src/bloop/cli.py
"""bloop-sdk command line interface.

Entry point for the bloop-sdk CLI tool: check a settings file and send a
test event to a collector.
"""

from __future__ import annotations

from dataclasses import replace
from pathlib import Path

import typer
from pydantic import ValidationError

from bloop import __version__
from bloop.contracts.config import RuntimeClientConfig
from bloop.core.config import BloopSettings, load_settings, resolve_config
from bloop.errors import BloopConfigurationError

__all__ = [
    "app",
]

TEST_EVENT_TYPE = "BloopTestEvent"

_SEND_TEST_FLUSH_INTERVAL_MS = 3_600_000

app = typer.Typer(
    name="bloop-sdk",
    help="bloop SDK: buffered error and LLM trace reporting.",
    no_args_is_help=True,
)


def version_callback(value: bool) -> None:
    """Print version and exit."""
    if value:
        typer.echo(f"bloop-sdk version {__version__}")
        raise typer.Exit()


def _load_dotenv(env_file: Path | None = None) -> bool:
    """Load environment variables from .env file.

    Args:
        env_file: Explicit path to .env file. If None, searches for .env
                 in current directory and parent directories.

    Returns:
        True if .env was found and loaded, False otherwise.

    Raises:
        typer.Exit: If explicit env_file path doesn't exist.
    """
    from dotenv import load_dotenv

    if env_file is not None:
        if not env_file.exists():
            typer.secho(
                f"Error: .env file not found: {env_file}",
                fg=typer.colors.RED,
                err=True,
            )
            raise typer.Exit(1)
        return load_dotenv(env_file, override=False)

    return load_dotenv(override=False)  # Don't override existing env vars


@app.callback()
def main(
    version: bool | None = typer.Option(
        None,
        "--version",
        "-V",
        callback=version_callback,
        is_eager=True,
        help="Show version and exit.",
    ),
    no_dotenv: bool = typer.Option(
        False,
        "--no-dotenv",
        help="Skip loading .env file.",
    ),
    env_file: Path | None = typer.Option(
        None,
        "--env-file",
        help="Path to .env file (skips automatic search).",
    ),
    verbose: bool = typer.Option(
        False,
        "--verbose",
        "-v",
        help="Enable verbose/debug logging.",
    ),
    json_logs: bool = typer.Option(
        False,
        "--json-logs",
        help="Output structured JSON logs (for machine processing).",
    ),
) -> None:
    """bloop SDK: buffered error and LLM trace reporting."""
    from bloop.core.logging import configure_logging

    configure_logging(json_output=json_logs, level="DEBUG" if verbose else "INFO")

    if not no_dotenv:
        _load_dotenv(env_file=env_file)
    elif env_file is not None:
        typer.secho(
            "Warning: --env-file ignored because --no-dotenv is set.",
            fg=typer.colors.YELLOW,
            err=True,
        )


def _format_validation_error(
    title: str,
    message: str,
    hint: str | None = None,
    details: list[str] | None = None,
) -> None:
    """Display a formatted validation error with optional hint and details."""
    from rich.console import Console
    from rich.panel import Panel
    from rich.text import Text

    console = Console(stderr=True)

    content = Text()
    content.append(message, style="white")

    if details:
        content.append("\n\n")
        for detail in details:
            content.append(f"  • {detail}\n", style="dim")

    if hint:
        content.append("\n")
        content.append("Hint: ", style="yellow bold")
        content.append(hint, style="yellow")

    console.print(Panel(content, title=f"[red bold]{title}[/]", border_style="red", padding=(0, 1)))


def _load_or_exit(settings: str) -> BloopSettings:
    """Load settings, reporting any failure and exiting with status 1."""
    settings_path = Path(settings).expanduser()
    try:
        return load_settings(settings_path)
    except FileNotFoundError:
        _format_validation_error(
            title="File Not Found",
            message=f"Settings file does not exist: {settings}",
            hint="Check the path and ensure the file exists.",
        )
        raise typer.Exit(1) from None
    except ValidationError as e:
        # Must precede ValueError: ValidationError subclasses it
        details = [f"{'.'.join(str(x) for x in error['loc'])}: {error['msg']}" for error in e.errors()]
        _format_validation_error(
            title="Configuration Validation Failed",
            message=f"Invalid settings in {settings_path.name}",
            details=details,
            hint="Check field names, types, and required values.",
        )
        raise typer.Exit(1) from None
    except ValueError as e:
        error_msg = str(e)
        if "environment variable" in error_msg.lower():
            import re

            match = re.search(r"'(\w+)'", error_msg)
            var_name = match.group(1) if match else "VARIABLE"
            _format_validation_error(
                title="Missing Environment Variable",
                message=error_msg,
                hint=f'Set the variable: export {var_name}="your-value"\n         Or use optional syntax: ${{{var_name}:-default}}',
            )
        else:
            _format_validation_error(title="Configuration Error", message=error_msg)
        raise typer.Exit(1) from None


@app.command()
def validate(
    settings: str = typer.Option(
        ...,
        "--settings",
        "-s",
        help="Path to settings YAML file.",
    ),
) -> None:
    """Validate client settings without sending anything."""
    config = _load_or_exit(settings)

    # Cross-field checks live on the runtime config
    try:
        RuntimeClientConfig.from_settings(config)
    except ValueError as e:
        _format_validation_error(title="Configuration Error", message=str(e))
        raise typer.Exit(1) from None

    typer.echo("Settings are valid.")
    for key, value in resolve_config(config).items():
        if value is not None:
            typer.echo(f"  {key}: {value}")


@app.command("send-test")
def send_test(
    settings: str = typer.Option(
        ...,
        "--settings",
        "-s",
        help="Path to settings YAML file.",
    ),
    message: str = typer.Option(
        "bloop-sdk connectivity test",
        "--message",
        "-m",
        help="Message of the test event.",
    ),
) -> None:
    """Capture one test event and deliver it synchronously."""
    from bloop.client import BloopClient

    config = _load_or_exit(settings)

    try:
        runtime = RuntimeClientConfig.from_settings(config)
        # The single test event must stay buffered until flush_sync()
        runtime = replace(
            runtime,
            max_buffer_size=2,
            max_buffered_items=max(runtime.max_buffered_items, 2),
            flush_interval_ms=_SEND_TEST_FLUSH_INTERVAL_MS,
        )
        client = BloopClient(runtime)
    except (BloopConfigurationError, ValueError) as e:
        _format_validation_error(title="Client Setup Failed", message=str(e))
        raise typer.Exit(1) from None

    try:
        client.capture(TEST_EVENT_TYPE, message, route="bloop-sdk send-test")
        results = client.flush_sync()
    finally:
        client.close()

    if not results:
        typer.secho("Nothing was sent.", fg=typer.colors.RED, err=True)
        raise typer.Exit(1)

    for result in results:
        line = f"{result.kind.value}: {result.outcome.value} ({result.item_count} item(s)"
        if result.status_code is not None:
            line += f", HTTP {result.status_code}"
        line += ")"
        if result.delivered:
            typer.secho(line, fg=typer.colors.GREEN)
        else:
            typer.secho(f"{line}: {result.error}", fg=typer.colors.RED, err=True)

    if not all(result.delivered for result in results):
        raise typer.Exit(1)


if __name__ == "__main__":
    app()
