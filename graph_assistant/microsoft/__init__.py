"""Microsoft integration module."""

from .auth import AuthProvider, AzureCliAuth, StaticTokenAuth, build_auth_provider
from .graph_client import GraphClient

__all__ = ["AuthProvider", "AzureCliAuth", "StaticTokenAuth", "build_auth_provider", "GraphClient"]
