# pylint: disable=missing-module-docstring,missing-function-docstring,missing-class-docstring,protected-access
# pylint: disable=unused-argument,too-few-public-methods,no-member,use-implicit-booleaness-not-comparison,line-too-long
# pylint: disable=invalid-name,too-many-statements,too-many-instance-attributes,wrong-import-position,wrong-import-order
# pylint: disable=deprecated-module,too-many-locals,too-many-lines,attribute-defined-outside-init,unexpected-keyword-arg
# pylint: disable=duplicate-code
import pytest

from errors import InvalidCommand
from models import GO_OUT_ON, WIRE_NAMES, BoilerStatus, action_of, mode_of
from mutations import (
    Mutation,
    SetAwayMode,
    SetHeat,
    SetHotWater,
    SetHotWaterTemperature,
    SetMode,
    SetPower,
    SetPreHeat,
    SetQuickHeat,
    SetRoomTemperature,
    apply_mutation,
    parse_temperature,
)


@pytest.mark.parametrize(
    "mutation,field",
    [
        (SetPower(on=True), "is_power_on"),
        (SetHeat(on=True), "is_heat_on"),
        (SetHotWater(on=True), "is_hot_water_on"),
        (SetPreHeat(on=True), "is_pre_heat"),
        (SetQuickHeat(on=True), "is_quick_heat"),
    ],
)
def test_switch_mutations(mutation, field):
    status = BoilerStatus()
    result = apply_mutation(status, mutation)
    assert getattr(result, field) is True
    assert getattr(status, field) is False
    assert result.changed_fields(status) == {field}

    back = apply_mutation(result, type(mutation)(on=False))
    assert getattr(back, field) is False


def test_room_temperature_sets_heat_water_temp_too():
    result = apply_mutation(BoilerStatus(), SetRoomTemperature(temp=21))
    assert result.desired_room_temp == 21
    assert result.desired_heat_water_temp == 21


def test_hot_water_temperature():
    result = apply_mutation(BoilerStatus(), SetHotWaterTemperature(temp=55))
    assert result.desired_hot_water_temp == 55


@pytest.mark.parametrize("temp", [14, 31, -1])
def test_room_temperature_range(temp):
    with pytest.raises(InvalidCommand):
        SetRoomTemperature(temp=temp)


@pytest.mark.parametrize("temp", [39, 61])
def test_hot_water_temperature_range(temp):
    with pytest.raises(InvalidCommand):
        SetHotWaterTemperature(temp=temp)


def test_temperature_bounds_inclusive():
    assert SetRoomTemperature(temp=15).temp == 15
    assert SetRoomTemperature(temp=30).temp == 30
    assert SetHotWaterTemperature(temp=40).temp == 40
    assert SetHotWaterTemperature(temp=60).temp == 60


def test_away_mode_on():
    result = apply_mutation(BoilerStatus(), SetAwayMode(on=True))
    assert result.is_go_out == GO_OUT_ON


def test_away_mode_off_turns_heat_off_first():
    status = BoilerStatus(is_go_out=GO_OUT_ON, is_heat_on=True)
    result = apply_mutation(status, SetAwayMode(on=False))
    assert result.is_heat_on is False
    assert result.is_go_out == GO_OUT_ON


def test_away_mode_off_clears_go_out():
    status = BoilerStatus(is_go_out=GO_OUT_ON, is_heat_on=False)
    result = apply_mutation(status, SetAwayMode(on=False))
    assert result.is_go_out == 0


@pytest.mark.parametrize(
    "mode,heat,hot_water",
    [("auto", True, True), ("heat", True, False), ("dry", False, True), ("cool", False, False)],
)
def test_set_mode(mode, heat, hot_water):
    result = apply_mutation(BoilerStatus(), SetMode(mode=mode))
    assert result.is_power_on is True
    assert result.is_heat_on is heat
    assert result.is_hot_water_on is hot_water
    assert mode_of(result) == mode


def test_set_mode_off():
    status = BoilerStatus(is_power_on=True, is_heat_on=True)
    result = apply_mutation(status, SetMode(mode="off"))
    assert result.is_power_on is False
    assert result.is_heat_on is True
    assert mode_of(result) == "off"


def test_set_mode_unknown():
    with pytest.raises(InvalidCommand):
        SetMode(mode="fan_only")


def test_unknown_mutation_type():
    with pytest.raises(InvalidCommand):
        apply_mutation(BoilerStatus(), Mutation())


def test_action_of():
    assert action_of(None) == "off"
    assert action_of(BoilerStatus(is_power_on=False, combustion_state=2)) == "off"
    assert action_of(BoilerStatus(is_power_on=True, combustion_state=1)) == "idle"
    assert action_of(BoilerStatus(is_power_on=True, combustion_state=2)) == "heating"
    assert action_of(BoilerStatus(is_power_on=True, combustion_state=4)) == "drying"


def test_parse_temperature():
    assert parse_temperature("21") == 21
    assert parse_temperature(" 21.7 ") == 21
    assert parse_temperature("45.0") == 45
    for raw in (None, "", "abc", "inf", "nan"):
        with pytest.raises(InvalidCommand):
            parse_temperature(raw)


def test_describe():
    assert SetPower(on=True).describe() == "SetPower(on=True)"
    assert SetRoomTemperature(temp=21).describe() == "SetRoomTemperature(temp=21)"


def test_rest_away_off_leaves_heat_alone_when_not_away():
    status = BoilerStatus(is_go_out=0, is_heat_on=True)
    result = apply_mutation(status, SetAwayMode(on=False))
    assert result.is_heat_on is True
    assert result.is_go_out == 0


def test_to_dict_uses_wire_names():
    payload = BoilerStatus(is_power_on=True, desired_room_temp=21).to_dict()
    assert list(payload) == [
        "isPowerOn", "isHeatMode", "isHeatOn", "isHotWaterOn",
        "isPreHeat", "isQuickHeat", "heatInfoUnk1", "heatInfoUnk2",
        "desiredRoomTemp", "desiredHeatWaterTemp", "desiredHotWaterTemp",
        "currentRoomTemp", "currentWaterTemp",
        "combustionState", "driveStatUnk1", "isHotWaterUsing", "driveStatUnk2", "driveStatUnk3",
        "unk1", "isGoOut", "modeData", "unk2", "reserveData", "unk3", "currentTime", "unk4",
    ]
    assert payload["isPowerOn"] is True
    assert payload["desiredRoomTemp"] == 21
    assert payload["unk3"] == "0" * 70


def test_changed_fields_reports_attribute_names():
    old = BoilerStatus()
    new = BoilerStatus(desired_room_temp=22, is_go_out=GO_OUT_ON)
    assert new.changed_fields(old) == {"desired_room_temp", "is_go_out"}
    assert new.changed_fields(None) == set(WIRE_NAMES)
