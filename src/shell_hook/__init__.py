"""shell-hook - stream command output to chat webhooks."""

__version__ = "0.2.0"
