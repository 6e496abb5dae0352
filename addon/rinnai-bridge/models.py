#!/usr/bin/env python3
"""
Datové modely pro Rinnai Bridge.
"""

from __future__ import annotations

from dataclasses import asdict, dataclass
from typing import Any


# ============================================================================
# Wire envelope
# ============================================================================

@dataclass(frozen=True)
class Frame:
    """Jeden rámec protokolu: prefix, příkaz a textový payload."""
    prefix: str
    command: int
    payload: str = ""


# ============================================================================
# Boiler status
# ============================================================================

OPAQUE1_DEFAULT = "ffff"
OPAQUE2_DEFAULT = "0000"
OPAQUE3_DEFAULT = "0" * 70
CLOCK_DEFAULT = "0" * 14
OPAQUE4_DEFAULT = "0" * 40

# Pozorované hodnoty combustion_state
COMBUSTION_IDLE = 1
COMBUSTION_HEATING = 2
COMBUSTION_DRYING = 4

GO_OUT_OFF = 0x00
GO_OUT_ON = 0x80

# atribut -> klíč v JSON stavu (názvy, které znají existující klienti)
WIRE_NAMES: dict[str, str] = {
    "is_power_on": "isPowerOn",
    "is_heat_mode": "isHeatMode",
    "is_heat_on": "isHeatOn",
    "is_hot_water_on": "isHotWaterOn",
    "is_pre_heat": "isPreHeat",
    "is_quick_heat": "isQuickHeat",
    "heat_info_bit6": "heatInfoUnk1",
    "heat_info_bit7": "heatInfoUnk2",
    "desired_room_temp": "desiredRoomTemp",
    "desired_heat_water_temp": "desiredHeatWaterTemp",
    "desired_hot_water_temp": "desiredHotWaterTemp",
    "current_room_temp": "currentRoomTemp",
    "current_water_temp": "currentWaterTemp",
    "combustion_state": "combustionState",
    "drive_status_bit4": "driveStatUnk1",
    "is_hot_water_using": "isHotWaterUsing",
    "drive_status_bit6": "driveStatUnk2",
    "drive_status_bit7": "driveStatUnk3",
    "opaque1": "unk1",
    "is_go_out": "isGoOut",
    "mode_data": "modeData",
    "opaque2": "unk2",
    "reserve_data": "reserveData",
    "opaque3": "unk3",
    "current_time": "currentTime",
    "opaque4": "unk4",
}


@dataclass
class BoilerStatus:
    """Stav kotle tak, jak ho kotel posílá ve status reportu.

    Opaque pole (opaque1..4) nemají známý význam; přenáší se beze změny
    a jejich délka se nikdy nesmí změnit.
    """
    # flags byte
    is_power_on: bool = False
    is_heat_mode: bool = False
    is_heat_on: bool = False
    is_hot_water_on: bool = False
    is_pre_heat: bool = False
    is_quick_heat: bool = False
    heat_info_bit6: bool = False
    heat_info_bit7: bool = False

    desired_room_temp: int = 0
    desired_heat_water_temp: int = 0
    desired_hot_water_temp: int | float = 0

    current_room_temp: int = 0
    current_water_temp: int = 0

    # drive-status byte
    combustion_state: int = COMBUSTION_IDLE
    drive_status_bit4: bool = False
    is_hot_water_using: bool = False
    drive_status_bit6: bool = False
    drive_status_bit7: bool = False

    opaque1: str = OPAQUE1_DEFAULT
    is_go_out: int = GO_OUT_OFF
    mode_data: int = 0
    opaque2: str = OPAQUE2_DEFAULT
    reserve_data: int = 0
    opaque3: str = OPAQUE3_DEFAULT
    current_time: str = CLOCK_DEFAULT
    opaque4: str = OPAQUE4_DEFAULT

    def to_dict(self) -> dict[str, Any]:
        """Vrátí stav jako dict s klíči z WIRE_NAMES (JSON pro REST a MQTT)."""
        return {WIRE_NAMES[key]: value for key, value in asdict(self).items()}

    def changed_fields(self, other: BoilerStatus | None) -> set[str]:
        """Názvy atributů, které se liší od `other` (všechny pokud None)."""
        mine = asdict(self)
        if other is None:
            return set(mine)
        theirs = asdict(other)
        return {key for key, value in mine.items() if theirs.get(key) != value}


# ============================================================================
# Derived views
# ============================================================================

def action_of(status: BoilerStatus | None) -> str:
    """HVAC action pro Home Assistant (off/idle/heating/drying)."""
    if status is None or not status.is_power_on:
        return "off"
    return {
        COMBUSTION_IDLE: "idle",
        COMBUSTION_HEATING: "heating",
        COMBUSTION_DRYING: "drying",
    }.get(status.combustion_state, "off")


def mode_of(status: BoilerStatus | None) -> str:
    """HVAC mode pro Home Assistant (off/auto/heat/dry/cool)."""
    if status is None or not status.is_power_on:
        return "off"
    if status.is_heat_on and status.is_hot_water_on:
        return "auto"
    if status.is_heat_on:
        return "heat"
    if status.is_hot_water_on:
        return "dry"
    return "cool"


@dataclass
class ExchangeStats:
    """Čítače výměn s kotlem (pro health endpoint)."""
    registrations: int = 0
    reports: int = 0
    command_replies: int = 0
    rejected: int = 0
    last_error: str | None = None
