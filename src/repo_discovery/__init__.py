"""Batch cache and enrichment pipeline for repository discovery."""

__version__ = "0.1.0"
