"""Mutation requests - tagged values describing one change of boiler state.

A request is built (and validated) by the REST or MQTT layer, queued, and
applied to the reply status with `apply_mutation` during the next exchange.
"""

from __future__ import annotations

import dataclasses
from dataclasses import dataclass

from errors import InvalidCommand
from models import GO_OUT_OFF, GO_OUT_ON, BoilerStatus

ROOM_TEMP_MIN = 15
ROOM_TEMP_MAX = 30
HOT_WATER_TEMP_MIN = 40
HOT_WATER_TEMP_MAX = 60

HVAC_MODES = ("off", "auto", "heat", "dry", "cool")


class Mutation:
    """Base for all mutation requests."""

    def describe(self) -> str:
        fields = ", ".join(
            f"{f.name}={getattr(self, f.name)!r}" for f in dataclasses.fields(self)  # type: ignore[arg-type]
        )
        return f"{type(self).__name__}({fields})"


@dataclass(frozen=True)
class SetPower(Mutation):
    on: bool


@dataclass(frozen=True)
class SetHeat(Mutation):
    on: bool


@dataclass(frozen=True)
class SetHotWater(Mutation):
    on: bool


@dataclass(frozen=True)
class SetPreHeat(Mutation):
    on: bool


@dataclass(frozen=True)
class SetQuickHeat(Mutation):
    on: bool


@dataclass(frozen=True)
class SetAwayMode(Mutation):
    """Away ON nastaví go-out; OFF nejdřív vypne topení, pokud běží.

    REST vypíná topení jen v away režimu (``require_away=True``), MQTT
    příkaz vypne běžící topení vždy a go-out smaže až dalším OFF.
    """
    on: bool
    require_away: bool = True


@dataclass(frozen=True)
class SetRoomTemperature(Mutation):
    temp: int

    def __post_init__(self) -> None:
        if not ROOM_TEMP_MIN <= self.temp <= ROOM_TEMP_MAX:
            raise InvalidCommand(
                f"room temperature {self.temp} outside {ROOM_TEMP_MIN}-{ROOM_TEMP_MAX}"
            )


@dataclass(frozen=True)
class SetHotWaterTemperature(Mutation):
    temp: int

    def __post_init__(self) -> None:
        if not HOT_WATER_TEMP_MIN <= self.temp <= HOT_WATER_TEMP_MAX:
            raise InvalidCommand(
                f"hot water temperature {self.temp} outside "
                f"{HOT_WATER_TEMP_MIN}-{HOT_WATER_TEMP_MAX}"
            )


@dataclass(frozen=True)
class SetMode(Mutation):
    mode: str

    def __post_init__(self) -> None:
        if self.mode not in HVAC_MODES:
            raise InvalidCommand(f"unknown mode {self.mode!r}")


_FLAG_TARGETS = {
    SetPower: "is_power_on",
    SetHeat: "is_heat_on",
    SetHotWater: "is_hot_water_on",
    SetPreHeat: "is_pre_heat",
    SetQuickHeat: "is_quick_heat",
}


def apply_mutation(status: BoilerStatus, mutation: Mutation) -> BoilerStatus:
    """Vrátí nový stav s aplikovanou změnou; vstupní stav se nemění."""
    target = _FLAG_TARGETS.get(type(mutation))
    if target is not None:
        return dataclasses.replace(status, **{target: bool(mutation.on)})  # type: ignore[attr-defined]

    if isinstance(mutation, SetAwayMode):
        if mutation.on:
            return dataclasses.replace(status, is_go_out=GO_OUT_ON)
        away = bool(status.is_go_out) or not mutation.require_away
        if away and status.is_heat_on:
            return dataclasses.replace(status, is_heat_on=False)
        return dataclasses.replace(status, is_go_out=GO_OUT_OFF)

    if isinstance(mutation, SetRoomTemperature):
        return dataclasses.replace(
            status,
            desired_room_temp=mutation.temp,
            desired_heat_water_temp=mutation.temp,
        )

    if isinstance(mutation, SetHotWaterTemperature):
        return dataclasses.replace(status, desired_hot_water_temp=mutation.temp)

    if isinstance(mutation, SetMode):
        if mutation.mode == "off":
            return dataclasses.replace(status, is_power_on=False)
        return dataclasses.replace(
            status,
            is_power_on=True,
            is_heat_on=mutation.mode in ("auto", "heat"),
            is_hot_water_on=mutation.mode in ("auto", "dry"),
        )

    raise InvalidCommand(f"unsupported mutation {mutation!r}")


def parse_temperature(raw: str | None) -> int:
    """Převede text z query/MQTT na celé číslo (desetinná část se zahodí)."""
    try:
        return int(float(str(raw).strip()))
    except (TypeError, ValueError, OverflowError) as e:
        raise InvalidCommand(f"invalid temperature {raw!r}") from e
