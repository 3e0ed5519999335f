"""
Media server REST client for CleanStream.

Handles listing the remote library and resolving uploader nicknames.
Does NOT handle file transfers (see MediaTransfer for that).
"""

import json
import time
from dataclasses import dataclass
from typing import TYPE_CHECKING, Callable, Optional, Union

import requests

if TYPE_CHECKING:
    from ..library.models import RemoteItem


class RemoteError(Exception):
    """A call to the media server failed."""

    def __init__(self, message: str, status_code: Optional[int] = None):
        super().__init__(message)
        self.status_code = status_code


class AuthExpiredError(RemoteError):
    """The server rejected the session token (401/403)."""


class MediaNotFoundError(RemoteError):
    """The requested media record doesn't exist (404)."""


def normalize_base_url(url: str) -> str:
    """
    Normalize a server URL.

    "localhost:8080" -> "http://localhost:8080", trailing slashes removed.
    """
    s = (url or "").strip()
    if not s:
        raise ValueError("Server URL is empty")
    if not (s.startswith("http://") or s.startswith("https://")):
        s = "http://" + s
    return s.rstrip("/")


def raise_for_status_code(status_code: int, what: str):
    """Map an HTTP error status onto the RemoteError family."""
    if status_code in (401, 403):
        raise AuthExpiredError(f"{what}: session expired (HTTP {status_code})", status_code)
    if status_code == 404:
        raise MediaNotFoundError(f"{what}: not found (HTTP 404)", status_code)
    raise RemoteError(f"{what}: HTTP {status_code}", status_code)


TokenSource = Union[str, Callable[[], Optional[str]], None]


@dataclass
class MediaClientConfig:
    """Configuration for MediaClient."""
    base_url: str
    timeout: int = 30
    max_retries: int = 3


class MediaClient:
    """
    Media server API client.

    Retries timeouts, connection errors and 5xx responses with exponential
    backoff; 4xx responses fail immediately.
    """

    def __init__(self, config: MediaClientConfig, auth_token: TokenSource = None):
        """
        Initialize the client.

        Args:
            config: Client configuration
            auth_token: Bearer token, or a callable returning the current one
        """
        self.config = config
        self.base_url = normalize_base_url(config.base_url)
        self._auth_token = auth_token
        self._api_calls = 0

    @property
    def api_calls(self) -> int:
        """Total API calls made by this client."""
        return self._api_calls

    def _get_auth_token(self) -> Optional[str]:
        """Get current auth token, calling getter if it's a callable."""
        if callable(self._auth_token):
            return self._auth_token()
        return self._auth_token

    def _get_headers(self) -> dict:
        token = self._get_auth_token()
        if token:
            return {"Authorization": f"Bearer {token}"}
        return {}

    def _request_with_retry(self, method: str, path: str, what: str, **kwargs) -> requests.Response:
        """Make a request with retry logic. Raises RemoteError subclasses."""
        timeout = kwargs.pop("timeout", self.config.timeout)
        url = f"{self.base_url}{path}"
        last_error = ""

        for attempt in range(self.config.max_retries):
            try:
                response = requests.request(
                    method, url, timeout=timeout, headers=self._get_headers(), **kwargs
                )
                self._api_calls += 1
            except (requests.exceptions.Timeout, requests.exceptions.ConnectionError) as e:
                last_error = str(e)
                if attempt < self.config.max_retries - 1:
                    time.sleep(2 ** attempt)
                    continue
                raise RemoteError(f"{what}: {e}") from e

            if response.status_code // 100 == 2:
                return response
            if 500 <= response.status_code < 600 and attempt < self.config.max_retries - 1:
                last_error = f"HTTP {response.status_code}"
                time.sleep(2 ** attempt)
                continue
            raise_for_status_code(response.status_code, what)

        raise RemoteError(f"{what}: failed after {self.config.max_retries} attempts ({last_error})")

    def list_media(self) -> "list[RemoteItem]":
        """
        List every media record on the server.

        Records without an id are skipped.
        """
        # Deferred: the library package imports this module
        from ..library.models import RemoteItem

        response = self._request_with_retry("GET", "/api/files/all", "List media")
        try:
            data = response.json()
        except ValueError as e:
            raise RemoteError(f"List media: invalid JSON ({e})") from e

        items = []
        for record in data or []:
            if not isinstance(record, dict) or record.get("id") is None:
                continue
            items.append(RemoteItem.from_api(record))
        return items

    def get_nickname(self, user_id: int) -> str:
        """
        Get a user's nickname.

        The server answers with a JSON string, a JSON object with a
        nickName/nickname field, or plain text.
        """
        response = self._request_with_retry(
            "GET", f"/api/users/{user_id}/nickname", "Get nickname"
        )
        body = response.text
        try:
            node = json.loads(body)
        except ValueError:
            return body.strip()
        if isinstance(node, str):
            return node
        if isinstance(node, dict):
            for field in ("nickName", "nickname"):
                if field in node:
                    return str(node[field])
        return json.dumps(node)
