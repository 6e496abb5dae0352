#!/usr/bin/env python3
"""
RinnaiBridge - skládá listener kotle, REST API a MQTT do jednoho procesu.

Jádro (coordinator, fronta příkazů) běží v asyncio event loopu; HTTP
listenery běží ve vlastních vláknech a do loopu předávají práci přes
``asyncio.run_coroutine_threadsafe``.
"""

# pylint: disable=broad-exception-caught

from __future__ import annotations

import asyncio
import logging
from typing import Any

from boiler_api import BoilerServer
from command_queue import CommandQueue
from config import (
    BOILER_HOST,
    BOILER_PORT,
    COMMAND_TIMEOUT_S,
    EXCHANGE_TIMEOUT_S,
    MQTT_HOST,
    RESTAPI_HOST,
    RESTAPI_PORT,
)
from control_api import ControlAPIServer
from coordinator import ExchangeCoordinator
from errors import BridgeError
from hass_sync import HomeAssistantSync
from liveness import LivenessTracker
from mqtt_publisher import MQTTPublisher
from mutations import Mutation

logger = logging.getLogger(__name__)

# HTTP vlákno čeká o tuto rezervu déle než deadline příkazu
_REQUEST_WAIT_MARGIN_S = 2.0


class RinnaiBridge:
    """Bridge mezi kotlem Rinnai a REST/MQTT klienty."""

    def __init__(
        self,
        *,
        liveness: LivenessTracker | None = None,
        command_timeout_s: float = COMMAND_TIMEOUT_S,
        exchange_timeout_s: float = EXCHANGE_TIMEOUT_S,
    ):
        self.liveness = liveness or LivenessTracker()
        self.queue = CommandQueue(self.liveness, timeout_s=command_timeout_s)
        self.coordinator = ExchangeCoordinator(self.liveness, self.queue)
        self.command_timeout_s = float(command_timeout_s)
        self.exchange_timeout_s = float(exchange_timeout_s)

        self._loop: asyncio.AbstractEventLoop | None = None
        self._boiler_api: BoilerServer | None = None
        self._control_api: ControlAPIServer | None = None
        self.mqtt_publisher: MQTTPublisher | None = None
        self.hass_sync: HomeAssistantSync | None = None

    # ---------------------------------------------------------------------
    # Lifecycle
    # ---------------------------------------------------------------------

    def attach_loop(self, loop: asyncio.AbstractEventLoop) -> None:
        self._loop = loop

    async def start(self) -> None:
        """Spustí listenery a MQTT; běží, dokud není proces ukončen."""
        self.attach_loop(asyncio.get_running_loop())

        if MQTT_HOST:
            await self._start_mqtt()
        else:
            logger.info("MQTT: MQTT_HOST not set, Home Assistant sync disabled")

        self._boiler_api = BoilerServer(
            host=BOILER_HOST, port=BOILER_PORT, bridge=self
        )
        self._boiler_api.start()
        logger.info(f"🚀 Boiler listener on http://{BOILER_HOST}:{BOILER_PORT}")

        if RESTAPI_PORT and RESTAPI_PORT > 0:
            try:
                self._control_api = ControlAPIServer(
                    host=RESTAPI_HOST, port=RESTAPI_PORT, bridge=self
                )
                self._control_api.start()
                logger.info(
                    f"🧪 Control API listening on http://{RESTAPI_HOST}:{RESTAPI_PORT}"
                )
            except Exception as e:
                logger.error(f"Control API start failed: {e}")

        try:
            await asyncio.Event().wait()
        finally:
            self.stop()

    async def _start_mqtt(self) -> None:
        publisher = MQTTPublisher()
        sync = HomeAssistantSync(
            coordinator=self.coordinator, publisher=publisher, loop=self._loop
        )
        sync.setup()
        self.coordinator.add_observer(sync.on_status_change)
        self.mqtt_publisher = publisher
        self.hass_sync = sync

        ok = await asyncio.to_thread(publisher.connect)
        if not ok:
            logger.warning("MQTT: Initial connect failed, health check se pokusí reconnect")
        await publisher.start_health_check()
        sync.start()

    def stop(self) -> None:
        """Zastaví listenery a odpojí MQTT."""
        for server in (self._boiler_api, self._control_api):
            if server is not None:
                server.stop()
        self._boiler_api = None
        self._control_api = None
        if self.mqtt_publisher is not None:
            self.mqtt_publisher.disconnect()

    # ---------------------------------------------------------------------
    # Boiler listener (HTTP thread)
    # ---------------------------------------------------------------------

    def boiler_exchange(self, raw: str) -> str:
        """Předá rámec od kotle koordinátoru; "" = bez odpovědi."""
        if self._loop is None:
            logger.warning("BOILER: exchange before event loop is ready")
            return ""
        fut = asyncio.run_coroutine_threadsafe(
            self.coordinator.handle_inbound_frame(raw), self._loop
        )
        try:
            return fut.result(timeout=self.exchange_timeout_s) or ""
        except BridgeError as e:
            logger.error(f"BOILER: ❌ Rejected frame ({e.code}): {e}")
            return ""
        except Exception as e:
            fut.cancel()
            logger.error(f"BOILER: Exchange failed: {type(e).__name__} {e}")
            return ""

    # ---------------------------------------------------------------------
    # Control API (HTTP thread)
    # ---------------------------------------------------------------------

    def get_control_api_health(self) -> dict[str, Any]:
        health = self.coordinator.get_health()
        health["mqtt_connected"] = bool(
            self.mqtt_publisher is not None and self.mqtt_publisher.is_ready()
        )
        return health

    def control_api_current_status(self) -> dict[str, Any] | None:
        """Aktuální stav pro GET /; None pokud kotel není dostupný."""
        if not self.coordinator.is_reachable():
            return None
        status = self.coordinator.current_status()
        return status.to_dict() if status is not None else None

    def control_api_request(self, mutation: Mutation) -> dict[str, Any]:
        """Zařadí mutaci a počká, až ji kotel převezme v další výměně."""
        if self._loop is None:
            return {"ok": False, "error": "event_loop_not_ready"}

        fut = asyncio.run_coroutine_threadsafe(
            self.coordinator.request_mutation(mutation), self._loop
        )
        try:
            fut.result(timeout=self.command_timeout_s + _REQUEST_WAIT_MARGIN_S)
        except BridgeError as e:
            logger.warning(f"CONTROL: {mutation.describe()} failed: {e}")
            return {"ok": False, "error": e.code, "detail": str(e)}
        except Exception as e:
            fut.cancel()
            return {"ok": False, "error": f"send_failed:{type(e).__name__}"}
        return {"ok": True}
