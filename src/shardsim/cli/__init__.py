"""
CLI layer for shard-sim.

Provides a Typer application that delegates to the operations layer
(``shardsim.ops``).  All simulation logic lives in ops; this package handles
only terminal transport: argument parsing, coloured output, and tables.

Entry point::

    shardsim --help
"""

from shardsim.cli.app import app

__all__ = ["app"]
