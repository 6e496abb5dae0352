#!/usr/bin/env python3
"""
Minimal HTTP control API for the boiler.

Intentionally:
- no auth (local network only)
- validation limited to value ranges; delivery is confirmed by the boiler's
  next status exchange, not by this handler
"""

from __future__ import annotations

import json
import threading
from http.server import BaseHTTPRequestHandler, ThreadingHTTPServer
from typing import Any
from urllib.parse import parse_qs, urlsplit

from errors import InvalidCommand
from mutations import (
    Mutation,
    SetAwayMode,
    SetHeat,
    SetHotWater,
    SetHotWaterTemperature,
    SetPower,
    SetPreHeat,
    SetQuickHeat,
    SetRoomTemperature,
    parse_temperature,
)

_SWITCH_ROUTES: dict[str, type[Mutation]] = {
    "power": SetPower,
    "heat": SetHeat,
    "hotwater": SetHotWater,
    "preheat": SetPreHeat,
    "quickheat": SetQuickHeat,
    "goout": SetAwayMode,
}

_TEMPERATURE_ROUTES: dict[str, type[Mutation]] = {
    "desiredtemp": SetRoomTemperature,
    "desiredhotwatertemp": SetHotWaterTemperature,
}


def mutation_from_request(path: str, query: dict[str, list[str]]) -> Mutation | None:
    """Převede PUT cestu na mutaci; None = neznámá cesta.

    Raises InvalidCommand for a known route with a bad value.
    """
    parts = [p for p in path.split("/") if p]
    if len(parts) == 2 and parts[0] in _SWITCH_ROUTES and parts[1] in ("on", "off"):
        return _SWITCH_ROUTES[parts[0]](on=parts[1] == "on")  # type: ignore[call-arg]
    if len(parts) == 1 and parts[0] in _TEMPERATURE_ROUTES:
        raw = (query.get("temp") or [None])[0]
        temp = parse_temperature(raw)
        return _TEMPERATURE_ROUTES[parts[0]](temp=temp)  # type: ignore[call-arg]
    return None


class BaseBridgeHandler(BaseHTTPRequestHandler):  # pylint: disable=invalid-name
    """Společné helpery pro HTTP handlery bridge."""
    server_version = "RinnaiBridge/0.1"

    def _send_json(self, status: int, payload: dict[str, Any]) -> None:
        """Odešle JSON odpověď se zadaným HTTP statusem."""
        raw = json.dumps(payload, ensure_ascii=False).encode("utf-8")
        self._send_raw(status, raw, "application/json; charset=utf-8")

    def _send_text(self, status: int, text: str) -> None:
        """Odešle text/plain odpověď (i prázdnou)."""
        self._send_raw(status, text.encode("utf-8"), "text/plain; charset=utf-8")

    def _send_raw(self, status: int, raw: bytes, content_type: str) -> None:
        self.send_response(status)
        self.send_header("Content-Type", content_type)
        self.send_header("Content-Length", str(len(raw)))
        self.send_header("X-Content-Type-Options", "nosniff")
        self.end_headers()
        self.wfile.write(raw)

    def _read_body(self) -> bytes:
        length = int(self.headers.get("Content-Length", "0") or "0")
        return self.rfile.read(length) if length > 0 else b""

    def log_message(self, _fmt: str, *args: Any) -> None:  # pylint: disable=arguments-differ
        """Potlačí výpisy do stdout."""
        # Keep stdout clean; bridge logs are elsewhere.


class _Handler(BaseBridgeHandler):  # pylint: disable=invalid-name
    """HTTP handler pro Control API."""

    def do_GET(self) -> None:  # pylint: disable=invalid-name
        """Zpracuje GET requesty Control API."""
        bridge = self.server.bridge  # type: ignore[attr-defined]
        path = urlsplit(self.path).path.rstrip("/")
        if path == "/api/health":
            self._send_json(200, bridge.get_control_api_health())
            return
        if path == "":
            status = bridge.control_api_current_status()
            if status is None:
                self._send_json(410, {"error": "boiler_gone"})
                return
            self._send_json(200, status)
            return

        self._send_json(404, {"error": "not_found"})

    def do_PUT(self) -> None:  # pylint: disable=invalid-name
        """Zpracuje PUT /<switch>/on|off a /desiredtemp?temp=N."""
        parts = urlsplit(self.path)
        self._read_body()
        try:
            mutation = mutation_from_request(parts.path, parse_qs(parts.query))
        except InvalidCommand as e:
            self._send_json(400, {"error": "invalid_value", "detail": str(e)})
            return
        if mutation is None:
            self._send_json(404, {"error": "not_found"})
            return

        bridge = self.server.bridge  # type: ignore[attr-defined]
        res = bridge.control_api_request(mutation)
        status = 200 if res.get("ok") else 400
        self._send_json(status, res)


class HTTPListener:
    """Thin wrapper pro ThreadingHTTPServer s daným handlerem."""

    def __init__(
        self,
        *,
        host: str,
        port: int,
        bridge: Any,
        handler: type[BaseHTTPRequestHandler],
        name: str,
    ):
        """Inicializuje server (bez spuštění)."""
        self.host = host
        self.port = port
        self.bridge = bridge
        self.handler = handler
        self.name = name
        self._thread: threading.Thread | None = None
        self._httpd: ThreadingHTTPServer | None = None

    def start(self) -> None:
        """Spustí HTTP server v background threadu."""
        httpd = ThreadingHTTPServer((self.host, self.port), self.handler)
        httpd.bridge = self.bridge  # type: ignore[attr-defined]
        self._httpd = httpd

        t = threading.Thread(
            target=httpd.serve_forever,
            name=self.name,
            daemon=True)
        t.start()
        self._thread = t

    def stop(self) -> None:
        """Bezpečně zastaví server."""
        if self._httpd is not None:
            self._httpd.shutdown()
            self._httpd.server_close()
            self._httpd = None


class ControlAPIServer(HTTPListener):
    """REST Control API (GET stav, PUT příkazy)."""

    def __init__(self, *, host: str, port: int, bridge: Any):
        super().__init__(
            host=host,
            port=port,
            bridge=bridge,
            handler=_Handler,
            name="rinnai-control-api",
        )
