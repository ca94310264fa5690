"""imagemill CLI — Typer-based command-line interface.

Provides the ``imagemill`` command with subcommands for ingesting uploads,
running transformations, fetching results, sweeping expired artifacts, and
checking the ImageMagick installation.

All output uses Rich for formatted terminal display.
"""
