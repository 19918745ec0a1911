"""Upstream service clients."""

from .ghost_client import GHOST_BREAKER_NAME, GhostAPIClient, create_admin_token

__all__ = ["GHOST_BREAKER_NAME", "GhostAPIClient", "create_admin_token"]
