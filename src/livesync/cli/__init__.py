"""
LiveSync CLI - Command-line interface.
"""

from livesync.cli.main import cli, main

__all__ = ["cli", "main"]
