"""Shell command - interactive prompt that relays every command typed into it.

Each line runs through ``sh -c`` as its own relay run with a fresh
configuration. Only the global options (webhook URL, format, title, batching)
are shared between runs. History is kept in ``~/.shell_hook_history``.
"""

from __future__ import annotations

import asyncio
from collections.abc import Callable
from pathlib import Path

import typer

from ..core import console
from ..core.config import RelayConfig
from ..core.exceptions import MissingWebhookURLError
from ..core.models import RelayResult
from ..core.process import shell_argv
from .common import GlobalOptions, execute_relay

try:
    import readline
except ImportError:  # Windows without pyreadline: no line editing or history.
    readline = None  # type: ignore[assignment]

HISTORY_FILE = Path.home() / ".shell_hook_history"
HISTORY_LENGTH = 1000
PROMPT = "shell-hook> "
EXIT_COMMANDS = frozenset({"exit", "quit"})


class InteractiveShell:
    """Read-eval loop over relay runs."""

    def __init__(
        self,
        options: GlobalOptions,
        history_file: Path | None = HISTORY_FILE,
        input_func: Callable[[str], str] = input,
        runner: Callable[[RelayConfig], RelayResult] = execute_relay,
    ):
        self.options = options
        self.history_file = history_file
        self.input_func = input_func
        self.runner = runner
        self.last_exit_code = 0

    def load_history(self) -> None:
        if readline is None or self.history_file is None:
            return
        readline.set_history_length(HISTORY_LENGTH)
        try:
            readline.read_history_file(self.history_file)
        except FileNotFoundError:
            pass
        except OSError as e:
            console.warning(f"Could not read history from {self.history_file}: {e}")

    def save_history(self) -> None:
        if readline is None or self.history_file is None:
            return
        try:
            readline.write_history_file(self.history_file)
        except OSError as e:
            console.warning(f"Could not save history to {self.history_file}: {e}")

    def run(self) -> int:
        """Loop until ``exit``, ``quit`` or EOF. Returns the last exit code."""
        self.load_history()
        console.info("Interactive shell. Type 'exit' or press Ctrl-D to leave.")
        try:
            while True:
                try:
                    line = self.input_func(PROMPT)
                except EOFError:
                    console.console.print()
                    break
                except KeyboardInterrupt:
                    console.console.print()
                    continue

                line = line.strip()
                if not line:
                    continue
                if line in EXIT_COMMANDS:
                    break
                self.last_exit_code = self.run_line(line)
        finally:
            self.save_history()
        return self.last_exit_code

    def run_line(self, line: str) -> int:
        """Relay one typed command line. Returns its exit code."""
        config = self.options.relay_config(shell_argv(line))
        try:
            result = self.runner(config)
        except (asyncio.CancelledError, KeyboardInterrupt):
            console.warning("Interrupted")
            return 130
        return result.exit_code


def register_shell_command(app: typer.Typer) -> None:
    """Register the ``shell`` command."""

    @app.command()
    def shell(ctx: typer.Context) -> None:
        """Start an interactive shell session.

        Every command typed at the prompt is run with `sh -c` and streamed to
        the webhook, framed by its own start and finish messages.

        Examples:
            shell-hook --webhook-url $URL -t ops shell
        """
        options: GlobalOptions = ctx.obj
        if not options.webhook_url and not options.dry_run:
            console.error(MissingWebhookURLError().message)
            raise typer.Exit(1)

        exit_code = InteractiveShell(options, history_file=HISTORY_FILE).run()
        raise typer.Exit(exit_code)
