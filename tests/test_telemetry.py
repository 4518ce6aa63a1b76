"""Tests for superclock/telemetry.py."""

from __future__ import annotations

import math
import threading

import pytest
from superclock.telemetry import (
    BatteryReading,
    ChargeState,
    DoorReading,
    PowerReading,
    TelemetryRecord,
    TelemetryStore,
)


def test_records_start_dirty_with_sentinels(store):
    for record in store.records():
        assert record.changed is True
        assert record.online is False
    assert math.isnan(store.battery.reading.soc)
    assert store.door.reading.contact is None


def test_consume_clears_flag_once(store):
    snapshot = store.power.consume()
    assert snapshot is not None
    assert snapshot.online is False
    assert store.power.consume() is None
    assert store.power.changed is False


def test_update_marks_changed_only_on_difference(consumed_store):
    record = consumed_store.power
    assert record.update(power=120.0, voltage=230.0) is True
    assert record.changed is True
    record.consume()

    assert record.update(power=120.0, voltage=230.0) is False
    assert record.changed is False


def test_nan_is_equal_to_nan_for_change_detection(consumed_store):
    record = consumed_store.battery
    assert record.update(soc=math.nan, temp=math.nan) is False
    assert record.consume() is None


def test_update_unknown_field_raises(store):
    with pytest.raises(KeyError):
        store.power.update(soc=10.0)


def test_set_online_always_marks_changed(consumed_store):
    record = consumed_store.door
    record.set_online(False)
    assert record.changed is True
    snapshot = record.consume()
    assert snapshot is not None
    assert snapshot.online is False


def test_snapshot_does_not_consume(store):
    store.indoor.snapshot()
    assert store.indoor.changed is True


@pytest.mark.parametrize(
    ("current", "expected"),
    [
        (-1.0, ChargeState.DISCHARGING),
        (2.5, ChargeState.CHARGING),
        (0.0, ChargeState.IDLE),
        (math.nan, ChargeState.UNKNOWN),
    ],
)
def test_charge_state(current, expected):
    assert BatteryReading(current=current).charge_state is expected


def test_battery_power_is_current_times_voltage():
    assert BatteryReading(current=-2.0, voltage=26.0).power == pytest.approx(-52.0)


def test_door_open_is_inverse_of_contact():
    assert DoorReading(contact=True).is_open is False
    assert DoorReading(contact=False).is_open is True
    assert DoorReading().is_open is None


def test_concurrent_writer_never_exposes_half_a_message():
    record = TelemetryRecord("power", PowerReading())
    stop = threading.Event()
    torn: list[PowerReading] = []

    def writer() -> None:
        value = 0.0
        while not stop.is_set():
            value += 1.0
            record.update(power=value, voltage=value)

    thread = threading.Thread(target=writer)
    thread.start()
    try:
        for _ in range(2000):
            snapshot = record.consume()
            if snapshot is None:
                continue
            reading = snapshot.reading
            if not math.isnan(reading.power) and reading.power != reading.voltage:
                torn.append(reading)
    finally:
        stop.set()
        thread.join()
    assert torn == []


def test_store_exposes_every_entity():
    names = [record.name for record in TelemetryStore().records()]
    assert names == ["power", "battery", "indoor", "outdoor", "door"]
