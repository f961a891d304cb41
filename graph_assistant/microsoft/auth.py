"""Access token providers. OAuth itself is delegated to external tooling."""

import json
import logging
import shutil
import subprocess
from typing import Protocol

from graph_assistant.config import Settings

logger = logging.getLogger(__name__)


class AuthProvider(Protocol):
    """What the Graph client needs from an authentication source."""

    def get_access_token(self) -> str | None:
        ...

    def get_current_identity(self) -> str | None:
        ...


class StaticTokenAuth:
    """Uses a pre-acquired token, e.g. from ``GRAPH_ASSISTANT_ACCESS_TOKEN``."""

    def __init__(self, token: str, identity: str | None = None) -> None:
        self.token = token
        self.identity = identity

    def get_access_token(self) -> str | None:
        return self.token or None

    def get_current_identity(self) -> str | None:
        return self.identity


class AzureCliAuth:
    """Delegates sign-in to the Azure CLI (``az login``)."""

    def __init__(self, resource: str = "https://graph.microsoft.com", timeout_seconds: float = 30.0) -> None:
        self.resource = resource
        self.timeout_seconds = timeout_seconds

    def _run(self, *args: str) -> dict | None:
        executable = shutil.which("az")
        if executable is None:
            logger.warning("Azure CLI not found on PATH; run 'az login' after installing it")
            return None

        try:
            completed = subprocess.run(
                [executable, *args, "--output", "json"],
                capture_output=True,
                text=True,
                timeout=self.timeout_seconds,
                check=False,
            )
        except (OSError, subprocess.TimeoutExpired) as e:
            logger.warning(f"Azure CLI call failed: {e}")
            return None

        if completed.returncode != 0:
            logger.warning(f"Azure CLI returned {completed.returncode}: {completed.stderr.strip()[:200]}")
            return None

        try:
            return json.loads(completed.stdout)
        except json.JSONDecodeError:
            logger.warning("Azure CLI returned non-JSON output")
            return None

    def get_access_token(self) -> str | None:
        """Get a Graph token for the signed-in account, or None if not signed in."""
        result = self._run("account", "get-access-token", "--resource", self.resource)
        if not result:
            return None
        return result.get("accessToken") or None

    def get_current_identity(self) -> str | None:
        result = self._run("account", "show")
        if not result:
            return None
        return result.get("user", {}).get("name") or None


def build_auth_provider(settings: Settings) -> AuthProvider:
    """Pick the provider configured by ``settings.auth_mode``."""
    if settings.auth_mode == "token":
        return StaticTokenAuth(settings.access_token)
    return AzureCliAuth(resource=settings.graph_resource)
