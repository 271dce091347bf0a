"""Command implementations used by the CLI."""
