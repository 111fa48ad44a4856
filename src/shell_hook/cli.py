"""CLI entry point for shell-hook."""

import typer
from pydantic import ValidationError
from rich.console import Console

from . import __version__
from .cli_commands.common import GlobalOptions
from .cli_commands.run import register_run_command
from .cli_commands.shell import register_shell_command
from .core.config import BatchPolicy, WebhookFormat, resolve_webhook_url
from .core.console import setup_logging


def version_callback(value: bool) -> None:
    """Print version and exit."""
    if value:
        console = Console()
        console.print(f"shell-hook v{__version__}")
        raise typer.Exit(0)


app = typer.Typer(
    name="shell-hook",
    help="""Stream command output to chat webhooks.

shell-hook runs a command, batches its stdout and stderr, and posts them to a
Google Chat or Slack webhook, framed by start and finish messages:
- Output is sent in batches (by line count, size, or time)
- Custom success/failure messages
- Interactive shell mode for running many commands

Quick start:
  export WEBHOOK_URL=https://chat.googleapis.com/v1/spaces/...
  shell-hook run -- make deploy
  shell-hook --format slack -t nightly run -q -- ./backup.sh
  shell-hook shell
""",
    add_completion=False,
)


@app.callback()
def main(
    ctx: typer.Context,
    webhook_url: str | None = typer.Option(
        None,
        "--webhook-url",
        metavar="URL",
        help="Webhook URL to send messages to. Defaults to the WEBHOOK_URL env var.",
    ),
    title: str | None = typer.Option(
        None,
        "--title",
        "-t",
        metavar="TITLE",
        help="Title prepended to all messages as [TITLE]",
    ),
    format: WebhookFormat = typer.Option(
        WebhookFormat.GOOGLE_CHAT,
        "--format",
        case_sensitive=False,
        help="Format of the webhook payload",
    ),
    buffer_size: int = typer.Option(
        10, "--buffer-size", metavar="COUNT", help="Max lines to buffer before sending a message"
    ),
    buffer_timeout: float = typer.Option(
        2.0,
        "--buffer-timeout",
        metavar="SECONDS",
        help="Max seconds to wait before flushing the buffer",
    ),
    max_bytes: int = typer.Option(
        4096, "--max-bytes", metavar="BYTES", help="Max bytes of output per message"
    ),
    dry_run: bool = typer.Option(
        False, "--dry-run", help="Run the command but print payloads instead of sending them"
    ),
    verbose: bool = typer.Option(False, "--verbose", help="Show debug logging"),
    version: bool = typer.Option(
        False,
        "--version",
        "-v",
        help="Show version and exit",
        callback=version_callback,
        is_eager=True,
    ),
) -> None:
    """shell-hook - stream command output to webhooks."""
    setup_logging(verbose)
    try:
        batch = BatchPolicy(max_lines=buffer_size, max_bytes=max_bytes, max_wait=buffer_timeout)
    except ValidationError as e:
        fields = ", ".join(str(err["loc"][0]) for err in e.errors())
        raise typer.BadParameter(
            f"buffer settings must be positive (invalid: {fields})"
        ) from None

    ctx.obj = GlobalOptions(
        webhook_url=resolve_webhook_url(webhook_url),
        title=title or None,
        format=format,
        batch=batch,
        dry_run=dry_run,
    )


# Register commands from submodules
register_run_command(app)  # run
register_shell_command(app)  # shell


if __name__ == "__main__":
    app()
