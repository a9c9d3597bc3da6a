"""Command-line interface for envpurge."""
