"""CLI subcommands, registered onto the typer app in ``shell_hook.cli``."""
