"""
HTTP transport for the configuration backend.

Each command is ``POST {base_url}/invoke/{command}`` with the arguments as the
JSON body. The backend answers with an envelope::

    {"ok": true, "result": ...}
    {"ok": false, "error": "message"}
"""

from __future__ import annotations

import asyncio
from typing import Any, Dict

import requests

from omo.config.models import BackendSettings
from omo.errors import BackendError
from omo.logging import get_logger

from .base import ConfigBackend

logger = get_logger(__name__)


class HttpBackend(ConfigBackend):
    """
    Backend client over HTTP using ``requests``.

    Each call is an independent blocking request run in a worker thread, so
    concurrent commands are in flight at the same time and the event loop
    keeps serving timers meanwhile.
    """

    def __init__(self, settings: BackendSettings) -> None:
        self.base_url = settings.base_url.rstrip("/")
        self.timeout = settings.timeout
        logger.debug(f"Initialized HTTP backend at {self.base_url}")

    async def invoke(self, command: str, **args: Any) -> Any:
        return await asyncio.to_thread(self._post, command, args)

    def _post(self, command: str, payload: Dict[str, Any]) -> Any:
        url = f"{self.base_url}/invoke/{command}"
        try:
            response = requests.post(
                url,
                json=payload,
                headers={"Accept": "application/json"},
                timeout=self.timeout,
            )
        except requests.exceptions.RequestException as exc:
            raise BackendError(f"{command} request failed: {exc}", command=command) from exc

        try:
            body = response.json()
        except ValueError:
            body = None

        if not isinstance(body, dict):
            if response.status_code >= 400:
                raise BackendError(
                    f"{command} failed with HTTP {response.status_code}",
                    command=command,
                )
            raise BackendError(f"{command} returned a malformed response", command=command)

        if not body.get("ok", response.ok):
            message = str(body.get("error") or f"HTTP {response.status_code}")
            raise BackendError(message, command=command)

        return body.get("result")
