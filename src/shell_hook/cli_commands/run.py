"""Run command - relay a single command's output to the webhook."""

from __future__ import annotations

import asyncio

import typer

from ..core import console
from ..core.exceptions import ConfigurationError
from .common import GlobalOptions, execute_relay


def register_run_command(app: typer.Typer) -> None:
    """Register the ``run`` command."""

    @app.command(
        context_settings={"allow_interspersed_args": False, "ignore_unknown_options": True}
    )
    def run(
        ctx: typer.Context,
        command: list[str] = typer.Argument(
            ..., metavar="COMMAND...", help="Command to execute, e.g. -- make deploy"
        ),
        on_success: str | None = typer.Option(
            None, "--on-success", metavar="MESSAGE", help="Message sent when the command succeeds"
        ),
        on_failure: str | None = typer.Option(
            None, "--on-failure", metavar="MESSAGE", help="Message sent when the command fails"
        ),
        quiet: bool = typer.Option(
            False,
            "--quiet",
            "-q",
            help="Don't stream output to the webhook (start/finish messages are still sent)",
        ),
        no_echo: bool = typer.Option(
            False, "--no-echo", help="Don't echo the command's output to this terminal"
        ),
    ) -> None:
        """Run a single command and stream its output.

        The exit code of shell-hook mirrors the command's exit code.

        Examples:
            shell-hook --webhook-url $URL run -- make deploy
            shell-hook -t nightly run -q --on-failure "backup broke" -- ./backup.sh
        """
        options: GlobalOptions = ctx.obj
        try:
            config = options.relay_config(
                command,
                on_success=on_success,
                on_failure=on_failure,
                quiet=quiet,
                echo=not no_echo,
            )
            config.validate_for_run()
        except ConfigurationError as e:
            console.error(e.message)
            raise typer.Exit(1) from None

        try:
            result = execute_relay(config)
        except (asyncio.CancelledError, KeyboardInterrupt):
            console.warning("Interrupted")
            raise typer.Exit(130) from None

        raise typer.Exit(result.exit_code)
