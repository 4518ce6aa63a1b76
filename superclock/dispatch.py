"""Topic routing from inbound MQTT messages into the telemetry store."""

from __future__ import annotations

import logging
import threading
from collections.abc import Callable
from dataclasses import dataclass
from typing import Any

from superclock.config import TopicConfig
from superclock.telemetry import TelemetryRecord, TelemetryStore
from superclock.utils import coerce_bool, coerce_float, decode_json_object

LOGGER = logging.getLogger(__name__)

Handler = Callable[[bytes], None]

ONLINE = "online"
OFFLINE = "offline"


@dataclass(frozen=True)
class Subscription:
    topic: str
    handler: Handler


class TopicDispatcher:
    """Ordered topic table; case-insensitive exact match, first registration wins."""

    def __init__(self, logger: logging.Logger | None = None) -> None:
        self._logger = logger or LOGGER
        self._entries: list[Subscription] = []
        self._sealed = False
        self._lock = threading.Lock()

    def register(self, topic: str, handler: Handler) -> None:
        with self._lock:
            if self._sealed:
                raise RuntimeError("Dispatch table is sealed; register topics before connecting")
            if any(entry.topic.lower() == topic.lower() for entry in self._entries):
                self._logger.warning(
                    "[dispatch] Topic '%s' is already registered; the later handler will never run", topic
                )
            self._entries.append(Subscription(topic, handler))

    def seal(self) -> None:
        with self._lock:
            self._sealed = True

    @property
    def sealed(self) -> bool:
        return self._sealed

    def topics(self) -> list[str]:
        """Distinct topics (case-insensitive) in registration order, first spelling kept."""
        seen: set[str] = set()
        ordered: list[str] = []
        for entry in self._entries:
            key = entry.topic.lower()
            if key not in seen:
                seen.add(key)
                ordered.append(entry.topic)
        return ordered

    def dispatch(self, topic: str, payload: bytes) -> bool:
        wanted = topic.lower()
        for entry in self._entries:
            if entry.topic.lower() == wanted:
                entry.handler(payload)
                return True
        self._logger.debug("[dispatch] No handler for topic %s", topic)
        return False

    def __len__(self) -> int:
        return len(self._entries)


def parse_availability(payload: bytes | str) -> bool | None:
    """Decode an availability payload ("Online"/"Offline" or {"state": ...})."""
    if isinstance(payload, bytes):
        payload = payload.decode("utf-8", errors="ignore")
    value = payload.strip().lower()
    if value not in {ONLINE, OFFLINE}:
        data = decode_json_object(payload)
        if data is None:
            return None
        value = str(data.get("state") or "").strip().lower()
    if value == ONLINE:
        return True
    if value == OFFLINE:
        return False
    return None


def availability_handler(record: TelemetryRecord[Any], logger: logging.Logger | None = None) -> Handler:
    log = logger or LOGGER

    def _handle(payload: bytes) -> None:
        online = parse_availability(payload)
        if online is None:
            log.warning("[dispatch] %s: unrecognized availability payload %r", record.name, payload[:64])
            return
        log.info("[dispatch] %s is %s", record.name, ONLINE if online else OFFLINE)
        record.set_online(online)

    return _handle


def _decode(record: TelemetryRecord[Any], payload: bytes, logger: logging.Logger) -> dict[str, Any] | None:
    data = decode_json_object(payload)
    if data is None:
        logger.warning("[dispatch] %s: ignoring non-object payload %r", record.name, payload[:64])
    return data


def battery_handler(record: TelemetryRecord[Any], logger: logging.Logger | None = None) -> Handler:
    log = logger or LOGGER

    def _handle(payload: bytes) -> None:
        data = _decode(record, payload, log)
        if data is None:
            return
        values = {
            "soc": coerce_float(data.get("soc")),
            "current": coerce_float(data.get("current")),
            "voltage": coerce_float(data.get("voltage")),
            "temp": coerce_float(data.get("temp_tube")),
            "capacity": coerce_float(data.get("capacity")),
        }
        if record.update(**values):
            log.info(
                "[dispatch] battery soc=%.0f%% current=%.2fA voltage=%.2fV power=%.2fW temp=%.0fC",
                values["soc"],
                values["current"],
                values["voltage"],
                values["current"] * values["voltage"],
                values["temp"],
            )

    return _handle


def power_handler(record: TelemetryRecord[Any], model_key: str, logger: logging.Logger | None = None) -> Handler:
    log = logger or LOGGER

    def _handle(payload: bytes) -> None:
        data = _decode(record, payload, log)
        if data is None:
            return
        meter = data.get(model_key)
        if not isinstance(meter, dict):
            meter = {}
        values = {
            "power": coerce_float(meter.get("Power")),
            "voltage": coerce_float(meter.get("Voltage")),
            "current": coerce_float(meter.get("Current")),
            "total": coerce_float(meter.get("Total")),
        }
        if record.update(**values):
            log.info("[dispatch] power=%.0fW voltage=%.0fV", values["power"], values["voltage"])

    return _handle


def weather_handler(record: TelemetryRecord[Any], logger: logging.Logger | None = None) -> Handler:
    log = logger or LOGGER

    def _handle(payload: bytes) -> None:
        data = _decode(record, payload, log)
        if data is None:
            return
        raw_temp = data.get("temperature")
        if raw_temp is None:
            raw_temp = data.get("temperature_C")
        values = {
            "temperature": coerce_float(raw_temp),
            "humidity": coerce_float(data.get("humidity")),
        }
        if record.update(**values):
            log.info(
                "[dispatch] %s temperature=%.1fC humidity=%.0f%%",
                record.name,
                values["temperature"],
                values["humidity"],
            )

    return _handle


def door_handler(record: TelemetryRecord[Any], logger: logging.Logger | None = None) -> Handler:
    log = logger or LOGGER

    def _handle(payload: bytes) -> None:
        data = _decode(record, payload, log)
        if data is None:
            return
        contact = coerce_bool(data.get("contact"))
        if record.update(contact=contact):
            log.info("[dispatch] door contact=%s", contact)

    return _handle


def build_dispatch_table(
    store: TelemetryStore,
    topics: TopicConfig,
    logger: logging.Logger | None = None,
) -> TopicDispatcher:
    """Register every entity's sensor and availability handler."""
    dispatcher = TopicDispatcher(logger)
    dispatcher.register(topics.battery.sensor, battery_handler(store.battery, logger))
    dispatcher.register(topics.power.sensor, power_handler(store.power, topics.power_model, logger))
    dispatcher.register(topics.indoor.sensor, weather_handler(store.indoor, logger))
    dispatcher.register(topics.outdoor.sensor, weather_handler(store.outdoor, logger))
    dispatcher.register(topics.door.sensor, door_handler(store.door, logger))
    dispatcher.register(topics.power.availability, availability_handler(store.power, logger))
    dispatcher.register(topics.battery.availability, availability_handler(store.battery, logger))
    dispatcher.register(topics.indoor.availability, availability_handler(store.indoor, logger))
    dispatcher.register(topics.outdoor.availability, availability_handler(store.outdoor, logger))
    dispatcher.register(topics.door.availability, availability_handler(store.door, logger))
    return dispatcher
