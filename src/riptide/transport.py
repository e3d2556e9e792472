"""HTTP transport for generated clients, backed by a requests.Session."""
from __future__ import annotations

import logging
from typing import Any

import requests

logger = logging.getLogger(__name__)

DEFAULT_TIMEOUT = 30.0


class RequestsTransport:
    """
    Sends generated-client requests relative to a base URL.

    Example:
        transport = RequestsTransport("https://api.example.com")
        client = Client(transport)
        response = client.getPostById({"id": "1"})
        post = response.json()
    """

    def __init__(
        self,
        base_url: str,
        *,
        session: requests.Session | None = None,
        timeout: float | None = DEFAULT_TIMEOUT,
        raise_for_status: bool = True,
        headers: dict[str, str] | None = None,
    ) -> None:
        self.base_url = base_url.rstrip("/")
        self.timeout = timeout
        self.raise_for_status = raise_for_status
        self._session = session or requests.Session()
        if headers:
            self._session.headers.update(headers)

    def url_for(self, path: str) -> str:
        return f"{self.base_url}/{path.lstrip('/')}"

    def request(
        self,
        *,
        method: str,
        url: str,
        params: dict[str, Any] | None = None,
        json: Any = None,
        **options: Any,
    ) -> requests.Response:
        """Send one request; non-2xx responses raise `requests.HTTPError` unless disabled."""
        options.setdefault("timeout", self.timeout)
        full_url = self.url_for(url)
        logger.debug("%s %s", method, full_url)

        response = self._session.request(method, full_url, params=params, json=json, **options)
        if self.raise_for_status:
            response.raise_for_status()
        return response

    def close(self) -> None:
        """Close the HTTP session."""
        self._session.close()

    def __enter__(self) -> RequestsTransport:
        return self

    def __exit__(self, exc_type, exc_val, exc_tb) -> None:
        self.close()
