"""CLI for composeremote."""

from composeremote.cli.main import app, main


__all__ = ["app", "main"]
