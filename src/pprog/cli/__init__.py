"""Command-line interface for pprog."""

from pprog.cli.main import cli

__all__ = ["cli"]
