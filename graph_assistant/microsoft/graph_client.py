"""Microsoft Graph API wrapper."""

import json
import logging
from typing import Any

import httpx

from graph_assistant.config import Settings
from graph_assistant.errors import ApiRequestError, AuthenticationError
from graph_assistant.microsoft.auth import AuthProvider
from graph_assistant.observability import StructuredLogger

logger = logging.getLogger(__name__)

LOG_CATEGORY = "Api"

# Methods whose body is sent as JSON text
BODY_METHODS = {"POST", "PUT", "PATCH"}


class GraphClient:
    """Client for Microsoft Graph API."""

    def __init__(
        self,
        settings: Settings,
        auth: AuthProvider,
        structured_logger: StructuredLogger,
        transport: httpx.BaseTransport | None = None,
    ) -> None:
        self.base_url = settings.graph_base_url.rstrip("/")
        self.default_timeout = settings.request_timeout_seconds
        self.auth = auth
        self.log = structured_logger
        self.transport = transport

    def _headers(self, headers: dict[str, str] | None) -> dict[str, str]:
        token = self.auth.get_access_token()
        if not token:
            raise AuthenticationError("No valid access token available. Sign in with 'az login' and retry.")

        merged = {
            "Authorization": f"Bearer {token}",
            "Content-Type": "application/json",
            "Accept": "application/json",
        }
        merged.update(headers or {})
        return merged

    def _url(self, endpoint: str) -> str:
        if endpoint.startswith(("http://", "https://")):
            return endpoint
        return f"{self.base_url}/{endpoint.lstrip('/')}"

    def request(
        self,
        endpoint: str,
        method: str = "GET",
        body: Any = None,
        headers: dict[str, str] | None = None,
        timeout_seconds: float | None = None,
        params: dict[str, Any] | None = None,
    ) -> Any:
        """
        Make a request to the Graph API.

        Args:
            endpoint: Path relative to the Graph base URL, or an absolute URL
            method: HTTP method
            body: Payload serialized as JSON for POST/PUT/PATCH
            headers: Extra headers; these win over the defaults
            timeout_seconds: Per-request timeout (defaults to settings)
            params: Query string parameters

        Returns:
            Parsed JSON body ({} when empty, text when not JSON)
        """
        method = method.upper()
        url = self._url(endpoint)
        request_headers = self._headers(headers)
        content = None
        if method in BODY_METHODS and body is not None:
            content = body if isinstance(body, (str, bytes)) else json.dumps(body)

        timeout = timeout_seconds if timeout_seconds is not None else self.default_timeout
        self.log.debug(LOG_CATEGORY, f"{method} {endpoint}", method=method, endpoint=endpoint)

        try:
            with httpx.Client(transport=self.transport, timeout=timeout) as client:
                response = client.request(
                    method=method,
                    url=url,
                    headers=request_headers,
                    params=params,
                    content=content,
                )
        except httpx.TimeoutException as e:
            raise ApiRequestError(None, f"Request to {endpoint} timed out after {timeout:g}s") from e
        except httpx.HTTPError as e:
            raise ApiRequestError(None, f"{type(e).__name__}: {e}") from e

        if response.status_code >= 400:
            raise ApiRequestError(response.status_code, _error_message(response))

        if not response.content:
            return {}
        try:
            return response.json()
        except ValueError:
            return response.text

    def get_me(self) -> dict:
        """Get the current user's profile."""
        result = self.request("/me")

        return {
            "id": result.get("id", ""),
            "name": result.get("displayName", ""),
            "email": result.get("mail") or result.get("userPrincipalName", ""),
            "job_title": result.get("jobTitle", ""),
        }

    def test_connection(self) -> bool:
        """Check that a token is available and Graph answers ``/me``."""
        try:
            me = self.get_me()
        except Exception as e:
            self.log.warning(LOG_CATEGORY, f"Connection test failed: {e}", error=e)
            return False

        self.log.info(
            LOG_CATEGORY,
            f"Connected to Microsoft Graph as {me['name'] or me['email']}",
            user=me["email"],
        )
        return True


def _error_message(response: httpx.Response) -> str:
    try:
        error_data = response.json() if response.content else {}
    except ValueError:
        return response.text or response.reason_phrase
    if isinstance(error_data, dict):
        error = error_data.get("error")
        if isinstance(error, dict) and error.get("message"):
            return error["message"]
    return response.text or response.reason_phrase
