# gridsuite/dsa/core/clients/base.py
from __future__ import annotations

import json
from typing import Optional

import httpx

API_VERSION = "v1"


def build_endpoint_url(base_url: str, api_version: str, endpoint: Optional[str] = None) -> str:
    url = f"{base_url.rstrip('/')}/{api_version}"
    if endpoint:
        url = f"{url}/{endpoint.strip('/')}"
    return url


def extract_error_message(response: httpx.Response) -> str:
    """Message of a failed collaborator call.

    The structured ``message`` of a JSON body wins, then the raw body, then the
    status line.
    """
    body = response.text
    if body:
        try:
            data = json.loads(body)
        except ValueError:
            return body
        if isinstance(data, dict) and data.get("message"):
            return str(data["message"])
        return body
    return f"{response.status_code} {response.reason_phrase}".strip()


class RestClient:
    """Common plumbing for the collaborator clients."""

    def __init__(
        self,
        *,
        base_url: str,
        timeout: float = 30.0,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ) -> None:
        self._base = base_url.rstrip("/")
        self._timeout = timeout
        self._transport = transport

    def _client(self) -> httpx.AsyncClient:
        return httpx.AsyncClient(timeout=self._timeout, transport=self._transport)

    def _url(self, endpoint: str) -> str:
        return build_endpoint_url(self._base, API_VERSION, endpoint)
