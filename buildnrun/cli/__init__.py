"""buildnrun CLI: Typer-based command-line interface.

Provides the ``buildnrun`` command, which parses the watcher configuration
and starts the supervision loop.

Status output uses Rich for formatted terminal display.
"""
