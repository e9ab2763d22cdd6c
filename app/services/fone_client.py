"""
Client for the Fone wallet node.

This is the only module that talks to the node. The base URL and SDK key are
read on the backend only: they are attached to outgoing requests and must never
show up in an exception message, a log line or a response body. Errors raised
here carry a message derived from the node's reply (its ``error`` field, the
HTTP reason phrase or ``HTTP <code>``), nothing else.
"""

import json
from typing import Any, Optional

import requests

from app.core.config import Settings, settings
from app.core.errors import NotConfigured, RemoteCallFailed


def _normalize_base(url: Optional[str]) -> str:
    return (url or "").rstrip("/")


def _parse_body(text: str) -> Any:
    if not text:
        return {}
    try:
        return json.loads(text)
    except ValueError:
        return {"raw": text}


def _error_message(data: Any, response: requests.Response) -> str:
    if isinstance(data, dict) and data.get("error"):
        return str(data["error"])
    return response.reason or f"HTTP {response.status_code}"


class FoneClient:
    """Thin JSON-over-HTTP client for the Fone node.

    Holds only the static configuration passed to the constructor; every call is
    independent.
    """

    def __init__(
        self,
        base_url: Optional[str],
        api_key: Optional[str],
        timeout: float = 15.0,
    ) -> None:
        self._base_url = _normalize_base(base_url)
        self._api_key = api_key
        self._timeout = timeout

    @classmethod
    def from_settings(cls, config: Settings) -> "FoneClient":
        return cls(
            base_url=config.FONE_BASE_URL,
            api_key=config.FONE_SDK_KEY,
            timeout=config.FONE_TIMEOUT_SECONDS,
        )

    @property
    def configured(self) -> bool:
        return bool(self._base_url and self._api_key)

    def call(self, path: str, method: str = "GET", body: Optional[dict] = None) -> Any:
        """
        Send a request to the node and return the decoded JSON value.

        Args:
            path: Node path starting with "/", e.g. "/v1/wallet/create"
            method: HTTP method
            body: Optional JSON body; Content-Type is only sent along with it

        Returns:
            The parsed JSON reply, ``{}`` for an empty reply, or
            ``{"raw": <text>}`` when the reply is not JSON.

        Raises:
            NotConfigured: base URL or SDK key missing, nothing was sent
            RemoteCallFailed: non-2xx status, timeout or connection failure
        """
        if not self.configured:
            raise NotConfigured()

        headers = {
            "api-key": self._api_key,
            "Accept": "application/json",
        }
        payload = None
        if body is not None:
            headers["Content-Type"] = "application/json"
            payload = json.dumps(body)

        try:
            response = requests.request(
                method,
                self._base_url + path,
                headers=headers,
                data=payload,
                timeout=self._timeout,
            )
        except requests.Timeout:
            # requests exception text embeds the URL, so it is dropped here
            raise RemoteCallFailed("Fone API timeout") from None
        except requests.RequestException:
            raise RemoteCallFailed("Fone API unreachable") from None

        data = _parse_body(response.text)
        if not response.ok:
            raise RemoteCallFailed(_error_message(data, response))
        return data


def get_fone_client() -> FoneClient:
    """FastAPI dependency returning a client built from the process settings."""
    return FoneClient.from_settings(settings)

