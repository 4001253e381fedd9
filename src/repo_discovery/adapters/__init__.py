"""Adapters for remote services."""
