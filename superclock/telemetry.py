"""In-memory mirror of remote device telemetry with per-record change tracking."""

from __future__ import annotations

import math
import threading
from dataclasses import dataclass, fields, replace
from enum import Enum
from typing import Any, Generic, TypeVar

from superclock.utils import same_value

NAN = math.nan


class ChargeState(Enum):
    UNKNOWN = "unknown"
    CHARGING = "charging"
    DISCHARGING = "discharging"
    IDLE = "idle"


@dataclass(frozen=True)
class PowerReading:
    power: float = NAN
    voltage: float = NAN
    current: float = NAN
    total: float = NAN


@dataclass(frozen=True)
class BatteryReading:
    soc: float = NAN
    current: float = NAN
    voltage: float = NAN
    temp: float = NAN
    capacity: float = NAN

    @property
    def charge_state(self) -> ChargeState:
        if math.isnan(self.current):
            return ChargeState.UNKNOWN
        if self.current < 0:
            return ChargeState.DISCHARGING
        if self.current > 0:
            return ChargeState.CHARGING
        return ChargeState.IDLE

    @property
    def power(self) -> float:
        return self.current * self.voltage


@dataclass(frozen=True)
class WeatherReading:
    temperature: float = NAN
    humidity: float = NAN


@dataclass(frozen=True)
class DoorReading:
    contact: bool | None = None

    @property
    def is_open(self) -> bool | None:
        if self.contact is None:
            return None
        return not self.contact


R = TypeVar("R", PowerReading, BatteryReading, WeatherReading, DoorReading)


@dataclass(frozen=True)
class RecordSnapshot(Generic[R]):
    """Consistent view of one record taken under its lock."""

    reading: R
    online: bool


class TelemetryRecord(Generic[R]):
    """Latest known state of one remote entity.

    Writers (MQTT dispatch callbacks) and readers (widget updates) live on
    different threads; every read-and-clear and every multi-field write happens
    under the record lock, so a reader never sees half of a message.
    """

    def __init__(self, name: str, reading: R) -> None:
        self.name = name
        self._lock = threading.Lock()
        self._reading: R = reading
        self._field_names = frozenset(f.name for f in fields(reading))
        self._online = False
        # Starts dirty so the first tick renders the placeholder state.
        self._changed = True

    @property
    def changed(self) -> bool:
        with self._lock:
            return self._changed

    @property
    def online(self) -> bool:
        with self._lock:
            return self._online

    @property
    def reading(self) -> R:
        with self._lock:
            return self._reading

    def update(self, **values: Any) -> bool:
        """Apply decoded fields; returns True when at least one value differed."""
        unknown = set(values) - self._field_names
        if unknown:
            raise KeyError(f"{self.name} has no field(s) {sorted(unknown)}")
        with self._lock:
            delta = {
                name: value for name, value in values.items() if not same_value(getattr(self._reading, name), value)
            }
            if not delta:
                return False
            self._reading = replace(self._reading, **delta)
            self._changed = True
            return True

    def set_online(self, online: bool) -> None:
        """Record availability; always marks the record dirty."""
        with self._lock:
            self._online = online
            self._changed = True

    def snapshot(self) -> RecordSnapshot[R]:
        """Read without consuming the dirty flag."""
        with self._lock:
            return RecordSnapshot(self._reading, self._online)

    def consume(self) -> RecordSnapshot[R] | None:
        """Return a snapshot and clear the dirty flag, or None when nothing changed."""
        with self._lock:
            if not self._changed:
                return None
            self._changed = False
            return RecordSnapshot(self._reading, self._online)


class TelemetryStore:
    """Process-wide container for every mirrored entity."""

    def __init__(self) -> None:
        self.power: TelemetryRecord[PowerReading] = TelemetryRecord("power", PowerReading())
        self.battery: TelemetryRecord[BatteryReading] = TelemetryRecord("battery", BatteryReading())
        self.indoor: TelemetryRecord[WeatherReading] = TelemetryRecord("indoor", WeatherReading())
        self.outdoor: TelemetryRecord[WeatherReading] = TelemetryRecord("outdoor", WeatherReading())
        self.door: TelemetryRecord[DoorReading] = TelemetryRecord("door", DoorReading())

    def records(self) -> tuple[TelemetryRecord[Any], ...]:
        return (self.power, self.battery, self.indoor, self.outdoor, self.door)
