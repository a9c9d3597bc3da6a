"""Shared utilities for envpurge."""
