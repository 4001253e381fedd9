"""Backend API adapter."""

from repo_discovery.adapters.api.backend_client import BackendClient

__all__ = ["BackendClient"]
