"""HomeAssistantSync - Home Assistant MQTT discovery, state and commands.

Publishes a climate entity plus two sensors for the boiler, republishes
state topics when the decoded status changes, tracks availability from the
liveness tracker and turns set_* command messages into mutation requests.
"""

# pylint: disable=broad-exception-caught

from __future__ import annotations

import asyncio
import json
import logging
from typing import TYPE_CHECKING, Any

from config import (
    AVAILABILITY_POLL_S,
    DEVICE_NAME,
    HASS_STATUS_TOPIC,
    MQTT_DISCOVERY_DELAY_S,
)
from errors import BridgeError
from models import BoilerStatus, action_of, mode_of
from mutations import (
    HOT_WATER_TEMP_MAX,
    ROOM_TEMP_MIN,
    Mutation,
    SetAwayMode,
    SetHotWaterTemperature,
    SetMode,
    SetRoomTemperature,
    parse_temperature,
)

if TYPE_CHECKING:
    from coordinator import ExchangeCoordinator
    from mqtt_publisher import MQTTPublisher

logger = logging.getLogger(__name__)

CLIMATE_MODES = ["off", "cool", "auto", "heat", "dry"]

# state topic -> fields, jejichž změna vyvolá publish
_STATE_TRIGGERS: dict[str, tuple[str, ...]] = {
    "action": ("is_power_on", "combustion_state"),
    "away_mode": ("is_go_out",),
    "target_temperature": ("desired_room_temp",),
    "target_hot_water_temperature": ("desired_hot_water_temp",),
    "current_temperature": ("current_room_temp",),
    "mode": ("is_power_on", "is_heat_on", "is_hot_water_on"),
    "is_hot_water_using": ("is_hot_water_using",),
    "current_water_temperature": ("current_water_temp",),
}


def _on_off(value: Any) -> str:
    return "ON" if value else "OFF"


def state_values(status: BoilerStatus | None) -> dict[str, str]:
    """Hodnoty pro jednotlivé state topicy (None = kotel ještě neznámý)."""
    return {
        "action": action_of(status),
        "away_mode": _on_off(status is not None and status.is_go_out),
        "target_temperature": str(status.desired_room_temp) if status else "0",
        "target_hot_water_temperature": (
            str(status.desired_hot_water_temp) if status else "0"
        ),
        "current_temperature": str(status.current_room_temp) if status else "0",
        "mode": mode_of(status),
        "is_hot_water_using": _on_off(status is not None and status.is_hot_water_using),
        "current_water_temperature": (
            str(status.current_water_temp) if status else "0"
        ),
    }


class HomeAssistantSync:
    """Propojuje ExchangeCoordinator s Home Assistant přes MQTT."""

    def __init__(
        self,
        *,
        coordinator: ExchangeCoordinator,
        publisher: MQTTPublisher,
        loop: asyncio.AbstractEventLoop,
        discovery_delay_s: float = MQTT_DISCOVERY_DELAY_S,
        poll_interval_s: float = AVAILABILITY_POLL_S,
    ) -> None:
        self._coordinator = coordinator
        self._publisher = publisher
        self._loop = loop
        self.discovery_delay_s = float(discovery_delay_s)
        self.poll_interval_s = float(poll_interval_s)
        self.reported_availability: bool | None = None
        self._availability_task: asyncio.Task[Any] | None = None

    # ------------------------------------------------------------------
    # Topics & discovery
    # ------------------------------------------------------------------

    def topic(self, name: str) -> str:
        return self._publisher.topic(name)

    @property
    def command_topics(self) -> dict[str, str]:
        return {
            name: self.topic(name)
            for name in (
                "set_away_mode",
                "set_target_temperature",
                "set_target_hot_water_temperature",
                "set_mode",
            )
        }

    def _device(self) -> dict[str, Any]:
        return {
            "identifiers": [self._publisher.node_id],
            "name": DEVICE_NAME,
        }

    def discovery_payloads(self) -> list[tuple[str, dict[str, Any]]]:
        node = self._publisher.node_id
        availability = self._publisher.availability_topic
        climate = {
            "action_topic": self.topic("action"),
            "availability_topic": availability,
            "away_mode_command_topic": self.topic("set_away_mode"),
            "away_mode_state_topic": self.topic("away_mode"),
            "temperature_command_topic": self.topic("set_target_temperature"),
            "temperature_state_topic": self.topic("target_temperature"),
            "temperature_low_command_topic": self.topic("set_target_temperature"),
            "temperature_low_state_topic": self.topic("target_temperature"),
            "temperature_high_state_topic": self.topic("target_hot_water_temperature"),
            "temperature_high_command_topic": self.topic("set_target_hot_water_temperature"),
            "current_temperature_topic": self.topic("current_temperature"),
            "mode_state_topic": self.topic("mode"),
            "mode_command_topic": self.topic("set_mode"),
            "max_temp": HOT_WATER_TEMP_MAX,
            "min_temp": ROOM_TEMP_MIN,
            "precision": 1,
            "modes": CLIMATE_MODES,
            "unique_id": node,
            "device": self._device(),
            "name": DEVICE_NAME,
        }
        water_using = {
            "availability_topic": availability,
            "device": self._device(),
            "name": f"{DEVICE_NAME} Water Using",
            "unique_id": f"{node}_water_using",
            "device_class": "moisture",
            "state_topic": self.topic("is_hot_water_using"),
        }
        water_temp = {
            "availability_topic": availability,
            "device": self._device(),
            "name": f"{DEVICE_NAME} Current Temperature",
            "unique_id": f"{node}_current_water_temperature",
            "unit_of_measurement": "°C",
            "device_class": "temperature",
            "state_topic": self.topic("current_water_temperature"),
        }
        return [
            (f"homeassistant/climate/{node}/config", climate),
            (f"homeassistant/binary_sensor/{node}/water_using/config", water_using),
            (f"homeassistant/sensor/{node}/current_water_temperature/config", water_temp),
        ]

    # ------------------------------------------------------------------
    # Publishing
    # ------------------------------------------------------------------

    def initial_publish(self) -> None:
        """Discovery + availability + všechny stavy (po connectu / HA restartu)."""
        for topic, payload in self.discovery_payloads():
            self._publisher.publish_raw(
                topic=topic, payload=json.dumps(payload, ensure_ascii=False), retain=True
            )
        logger.info("MQTT: Discovery published (%s)", self._publisher.node_id)
        self.publish_availability(force=True)
        status = self._coordinator.current_status()
        self._publish_states(status, set(_STATE_TRIGGERS))
        self.publish_full_state(status)

    def publish_availability(self, *, force: bool = False) -> None:
        current = self._coordinator.is_reachable()
        if not force and self.reported_availability == current:
            return
        ok = self._publisher.publish_raw(
            topic=self._publisher.availability_topic,
            payload="online" if current else "offline",
            retain=True,
        )
        if ok:
            if self.reported_availability != current:
                logger.info(
                    "MQTT: Boiler availability %s", "online" if current else "offline"
                )
            self.reported_availability = current

    def publish_full_state(self, status: BoilerStatus | None) -> None:
        if status is None:
            return
        self._publisher.publish_raw(
            topic=self.topic("state"), payload=json.dumps(status.to_dict())
        )

    def _publish_states(self, status: BoilerStatus | None, names: set[str]) -> None:
        values = state_values(status)
        for name in _STATE_TRIGGERS:
            if name in names:
                self._publisher.publish_raw(topic=self.topic(name), payload=values[name])

    def on_status_change(
        self, old: BoilerStatus | None, new: BoilerStatus
    ) -> None:
        """Observer koordinátoru: publikuje jen to, co se změnilo."""
        changed = new.changed_fields(old)
        if old is None:
            self.publish_availability()
            names = set(_STATE_TRIGGERS)
        else:
            names = {
                name
                for name, fields in _STATE_TRIGGERS.items()
                if changed.intersection(fields)
            }
        self._publish_states(new, names)
        if old is None or changed:
            self.publish_full_state(new)

    async def availability_loop(self) -> None:
        """Publikuje změny dostupnosti kotle."""
        while True:
            try:
                self.publish_availability()
            except Exception as e:
                logger.debug("MQTT: Availability publish failed: %s", e)
            await asyncio.sleep(self.poll_interval_s)

    # ------------------------------------------------------------------
    # Commands
    # ------------------------------------------------------------------

    def setup(self) -> None:
        """Zaregistruje MQTT handlery a callback po connectu."""

        def _command_handler(topic: str, payload: bytes, _qos: int, _retain: bool) -> None:
            asyncio.run_coroutine_threadsafe(
                self.handle_command(topic=topic, payload=payload), self._loop
            )

        def _hass_status_handler(_topic: str, payload: bytes, _qos: int, _retain: bool) -> None:
            if payload.decode("utf-8", errors="replace").strip() != "online":
                return
            # Home Assistant po startu chvíli ignoruje discovery
            self._loop.call_soon_threadsafe(
                self._loop.call_later, self.discovery_delay_s, self.initial_publish
            )

        for topic in self.command_topics.values():
            self._publisher.add_message_handler(topic=topic, handler=_command_handler, qos=1)
        self._publisher.add_message_handler(
            topic=HASS_STATUS_TOPIC, handler=_hass_status_handler, qos=1
        )
        self._publisher.add_connect_callback(
            lambda: self._loop.call_soon_threadsafe(self.initial_publish)
        )

    def start(self) -> None:
        if self._availability_task is None or self._availability_task.done():
            self._availability_task = self._loop.create_task(self.availability_loop())

    def mutation_for(self, topic: str, message: str) -> Mutation | None:
        """Převede MQTT příkaz na mutaci; None = příkaz se ignoruje."""
        topics = self.command_topics
        if topic == topics["set_away_mode"]:
            if message not in ("ON", "OFF"):
                return None
            return SetAwayMode(on=message == "ON", require_away=False)
        if topic == topics["set_target_temperature"]:
            return SetRoomTemperature(temp=parse_temperature(message))
        if topic == topics["set_target_hot_water_temperature"]:
            return SetHotWaterTemperature(temp=parse_temperature(message))
        if topic == topics["set_mode"]:
            return SetMode(mode=message)
        return None

    async def handle_command(self, *, topic: str, payload: bytes) -> None:
        message = payload.decode("utf-8", errors="replace").strip()
        try:
            mutation = self.mutation_for(topic, message)
        except BridgeError as e:
            logger.warning("MQTT: Ignoring %s=%r: %s", topic, message, e)
            return
        if mutation is None:
            logger.warning("MQTT: Ignoring %s=%r", topic, message)
            return
        try:
            await self._coordinator.request_mutation(mutation)
        except BridgeError as e:
            logger.error("MQTT: %s failed: %s", mutation.describe(), e)
            return
        logger.info("MQTT: %s delivered to boiler", mutation.describe())
