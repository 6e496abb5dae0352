#!/usr/bin/env python3
"""
HTTP listener the boiler polls (POST /register, POST /state).

The raw request body is one protocol frame; the response body is the reply
frame, or empty when the exchange was rejected.  The boiler retries on its
own schedule, so every failure is answered with HTTP 200 and an empty body.
"""

from __future__ import annotations

from typing import Any
from urllib.parse import urlsplit

from control_api import BaseBridgeHandler, HTTPListener

BOILER_PATHS = ("/register", "/state")


class _BoilerHandler(BaseBridgeHandler):  # pylint: disable=invalid-name
    """HTTP handler pro rámce od kotle."""

    def do_POST(self) -> None:  # pylint: disable=invalid-name
        """Předá rámec bridge a vrátí odpověď doslova."""
        path = urlsplit(self.path).path.rstrip("/")
        body = self._read_body()
        if path not in BOILER_PATHS:
            self._send_text(404, "")
            return

        bridge = self.server.bridge  # type: ignore[attr-defined]
        raw = body.decode("ascii", errors="replace")
        reply = bridge.boiler_exchange(raw)
        self._send_text(200, reply or "")


class BoilerServer(HTTPListener):
    """Listener pro kotel."""

    def __init__(self, *, host: str, port: int, bridge: Any):
        super().__init__(
            host=host,
            port=port,
            bridge=bridge,
            handler=_BoilerHandler,
            name="rinnai-boiler",
        )
