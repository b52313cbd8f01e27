"""
CLI module for Quire.

Provides the command-line interface using Click.
"""

from quire.cli.main import cli, main

__all__ = ["main", "cli"]
