#!/usr/bin/env python3
"""
MQTT Publisher - spojení s brokerem, publish a routing příchozích zpráv.
"""

# pylint: disable=broad-exception-caught

from __future__ import annotations

import asyncio
import logging
import time
from typing import Any, Callable

import paho.mqtt.client as mqtt

from config import (
    HASS_NODEID,
    MQTT_CONNECT_TIMEOUT,
    MQTT_HEALTH_CHECK_INTERVAL,
    MQTT_HOST,
    MQTT_PASSWORD,
    MQTT_PORT,
    MQTT_PUBLISH_QOS,
    MQTT_TOPIC_PREFIX,
    MQTT_USERNAME,
)

logger = logging.getLogger(__name__)

MessageHandler = Callable[[str, bytes, int, bool], None]


class MQTTPublisher:
    """MQTT klient s reconnect health checkem a handlery pro subscribe."""

    # MQTT return codes
    RC_CODES = {
        0: "Connection successful",
        1: "Incorrect protocol version",
        2: "Invalid client identifier",
        3: "Server unavailable",
        4: "Bad username or password",
        5: "Not authorized",
    }

    CONNECT_TIMEOUT = MQTT_CONNECT_TIMEOUT
    HEALTH_CHECK_INTERVAL = MQTT_HEALTH_CHECK_INTERVAL

    def __init__(
        self,
        *,
        host: str = MQTT_HOST,
        port: int = MQTT_PORT,
        node_id: str = HASS_NODEID,
        topic_prefix: str = MQTT_TOPIC_PREFIX,
    ):
        self.host = host
        self.port = port
        self.node_id = node_id
        self.topic_prefix = topic_prefix
        self.client: mqtt.Client | None = None
        self.connected = False
        self._handlers: dict[str, tuple[MessageHandler, int]] = {}
        self._connect_callbacks: list[Callable[[], None]] = []

        # Statistiky
        self.publish_count = 0
        self.publish_failed = 0
        self.last_error_time: float = 0
        self.last_error_msg: str = ""
        self.reconnect_attempts = 0

        self._health_check_task: asyncio.Task[Any] | None = None

    @property
    def availability_topic(self) -> str:
        return self.topic("availability")

    def topic(self, name: str) -> str:
        return f"{self.topic_prefix}/{self.node_id}/{name}"

    def add_message_handler(
        self, *, topic: str, handler: MessageHandler, qos: int = 1
    ) -> None:
        """Zaregistruje handler pro topic; subscribe proběhne při (re)connectu."""
        self._handlers[topic] = (handler, qos)
        if self.client is not None and self.connected:
            self.client.subscribe(topic, qos=qos)

    def add_connect_callback(self, callback: Callable[[], None]) -> None:
        """Callback volaný (z MQTT threadu) po každém úspěšném připojení."""
        self._connect_callbacks.append(callback)

    def connect(self, timeout: float | None = None) -> bool:
        """Připojí k MQTT brokeru s timeoutem."""
        timeout = timeout or self.CONNECT_TIMEOUT
        # předchozí klient (po výpadku) má stále běžící network loop
        self._cleanup_client()

        try:
            self.client = mqtt.Client(
                callback_api_version=mqtt.CallbackAPIVersion.VERSION1,
                client_id=f"{self.node_id}_bridge",
                protocol=mqtt.MQTTv311
            )
            if MQTT_USERNAME:
                self.client.username_pw_set(MQTT_USERNAME, MQTT_PASSWORD)

            self.client.will_set(self.availability_topic, "offline", retain=True)

            # Callbacks
            self.client.on_connect = self._on_connect
            self.client.on_disconnect = self._on_disconnect
            self.client.on_message = self._on_message

            logger.info(
                f"MQTT: Připojuji k {self.host}:{self.port} "
                f"(timeout {timeout}s)"
            )

            self.client.connect(self.host, self.port, 60)
            self.client.loop_start()

            # Čekáme na callback
            start = time.time()
            while not self.connected and (time.time() - start) < timeout:
                time.sleep(0.1)

            if self.connected:
                logger.info(f"MQTT: ✅ Připojeno k {self.host}:{self.port}")
                self.reconnect_attempts = 0
                return True
            logger.error(f"MQTT: ❌ Timeout připojení po {timeout}s")
            self._cleanup_client()
            return False

        except Exception as e:
            logger.error(f"MQTT: ❌ Připojení selhalo: {e}")
            self._cleanup_client()
            return False

    def _cleanup_client(self) -> None:
        """Bezpečně uklidí MQTT klienta."""
        if self.client:
            try:
                self.client.loop_stop()
                self.client.disconnect()
            except Exception as e:
                logger.debug(f"MQTT: Cleanup failed: {e}")
            self.client = None
        self.connected = False

    def disconnect(self) -> None:
        self._cleanup_client()

    def _on_connect(
        self, client: Any, userdata: Any, flags: Any, rc: int
    ) -> None:
        rc_msg = self.RC_CODES.get(rc, f"Unknown error ({rc})")

        if rc != 0:
            logger.error(f"MQTT: ❌ Připojení odmítnuto: {rc_msg}")
            self.connected = False
            self.last_error_time = time.time()
            self.last_error_msg = rc_msg
            return

        logger.info(f"MQTT: Připojeno (flags={flags})")
        self.connected = True
        self.reconnect_attempts = 0

        for topic, (_handler, qos) in self._handlers.items():
            client.subscribe(topic, qos=qos)
            logger.debug(f"MQTT: Subscribed {topic}")

        for callback in list(self._connect_callbacks):
            try:
                callback()
            except Exception as e:
                logger.warning(f"MQTT: Connect callback failed: {e}")

    def _on_disconnect(
        self, client: Any, userdata: Any, rc: int
    ) -> None:
        self.connected = False
        if rc == 0:
            logger.info("MQTT: Odpojeno (čisté odpojení)")
        else:
            logger.warning(f"MQTT: ⚠️ Neočekávané odpojení (rc={rc})")
            self.last_error_time = time.time()
            self.last_error_msg = f"Unexpected disconnect (rc={rc})"

    def _on_message(self, client: Any, userdata: Any, msg: Any) -> None:
        entry = self._handlers.get(msg.topic)
        if entry is None:
            logger.debug(f"MQTT: Zpráva bez handleru: {msg.topic}")
            return
        handler, _qos = entry
        try:
            handler(msg.topic, bytes(msg.payload), int(msg.qos), bool(msg.retain))
        except Exception as e:
            logger.error(f"MQTT: Handler pro {msg.topic} selhal: {e}")

    def is_ready(self) -> bool:
        """Vrací True pokud je MQTT připraveno."""
        return self.client is not None and self.connected

    def publish_raw(
        self,
        *,
        topic: str,
        payload: str,
        qos: int = MQTT_PUBLISH_QOS,
        retain: bool = False,
    ) -> bool:
        """Publikuje zprávu; offline zprávy se zahazují (bez fronty)."""
        if not self.is_ready():
            self.publish_failed += 1
            logger.debug(f"MQTT: Offline - zahazuji {topic}")
            return False

        self.publish_count += 1
        try:
            result = self.client.publish(topic, payload, qos=qos, retain=retain)
        except Exception as e:
            self.publish_failed += 1
            self.last_error_time = time.time()
            self.last_error_msg = str(e)
            logger.error(f"MQTT: Publish exception: {e}")
            return False
        if result.rc != 0:
            self.publish_failed += 1
            logger.error(f"MQTT: Publish selhal rc={result.rc}")
            return False
        logger.debug(f"MQTT: → {topic} | {payload}")
        return True

    async def health_check_loop(self) -> None:
        """Periodicky kontroluje MQTT spojení."""
        logger.info(
            f"MQTT: Health check spuštěn "
            f"(interval {self.HEALTH_CHECK_INTERVAL}s)"
        )

        while True:
            await asyncio.sleep(self.HEALTH_CHECK_INTERVAL)

            if not self.connected:
                self.reconnect_attempts += 1
                logger.warning(
                    f"MQTT: 🔄 Health check - pokus o reconnect "
                    f"#{self.reconnect_attempts}"
                )
                ok = await asyncio.to_thread(self.connect, self.CONNECT_TIMEOUT)
                if ok:
                    logger.info(
                        f"MQTT: ✅ Reconnect úspěšný po "
                        f"{self.reconnect_attempts} pokusech"
                    )
                else:
                    logger.warning(
                        f"MQTT: ❌ Reconnect selhal, další pokus za "
                        f"{self.HEALTH_CHECK_INTERVAL}s"
                    )

    async def start_health_check(self) -> None:
        """Spustí health check jako background task."""
        if self._health_check_task is None or self._health_check_task.done():
            self._health_check_task = asyncio.create_task(
                self.health_check_loop()
            )
