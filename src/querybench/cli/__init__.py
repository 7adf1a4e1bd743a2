"""
CLI layer for querybench.

A Typer application that turns command-line options into ``BenchSettings``,
runs the benchmark through ``querybench.execution.driver`` and renders the
comparison. No benchmark logic lives here.

Entry point::

    querybench --help
"""

from querybench.cli.app import app

__all__ = ["app"]
