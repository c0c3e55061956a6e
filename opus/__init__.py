"""Opus - copies package-declared files into a project and keeps them reconciled."""

__version__ = "0.4.0"
