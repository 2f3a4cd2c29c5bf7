"""efistubmgr CLI — Typer-based command-line interface.

Provides the ``efistubmgr`` command with subcommands for running the build
and boot entry sync, showing pending changes and cleaning leftovers.

All output uses Rich for formatted terminal display.
"""
