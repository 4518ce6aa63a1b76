"""Periodic STATE and SENSOR announcements for this node."""

from __future__ import annotations

import json
import logging
import threading
import time
from collections.abc import Callable
from typing import Any, Protocol

import psutil

from superclock.config import HeartbeatConfig, MqttConfig

LOGGER = logging.getLogger(__name__)

TIME_FORMAT = "%Y-%m-%dT%H:%M:%S"
CPU_SENSOR_KEYS = ("cpu_thermal", "cpu-thermal", "soc_thermal", "coretemp", "k10temp", "arm")

SensorSource = Callable[[], dict[str, Any]]


class Publisher(Protocol):
    def publish(self, topic: str, payload: str, retain: bool = False, qos: int = 0) -> bool: ...


class DeadlineTimer:
    """Level-triggered interval timer.

    ``due(now)`` is true once ``now`` reaches the deadline and re-arms to
    ``now + interval``, so any number of missed intervals collapse into one.
    """

    def __init__(self, interval: float, start: float | None = None) -> None:
        self.interval = interval
        self.deadline = start if start is not None else 0.0

    def due(self, now: float) -> bool:
        if now < self.deadline:
            return False
        self.deadline = now + self.interval
        return True

    def restart(self, now: float) -> None:
        self.deadline = now + self.interval


def timestamp(now: float | None = None) -> str:
    return time.strftime(TIME_FORMAT, time.localtime(now))


def uptime_hours(now: float | None = None) -> int:
    now = time.time() if now is None else now
    return max(0, int(now - psutil.boot_time())) // 3600


def load_average() -> float:
    load1, _load5, _load15 = psutil.getloadavg()
    return round(load1, 2)


def read_cpu_temperature(thermal_zone: int = 0) -> int | None:
    try:
        temps = psutil.sensors_temperatures()
    except (NotImplementedError, AttributeError):
        temps = {}

    for key in CPU_SENSOR_KEYS:
        entries = temps.get(key)
        if entries and entries[0].current is not None:
            return int(entries[0].current)

    path = f"/sys/class/thermal/thermal_zone{thermal_zone}/temp"
    try:
        with open(path, encoding="utf-8") as handle:
            raw = handle.read().strip()
        return int(float(raw) / (1000 if len(raw) > 3 else 1))
    except (OSError, ValueError):
        return None


class Announcer:
    """Publishes ``tele/<node>/STATE`` and ``tele/<node>/SENSOR`` on their own deadlines."""

    def __init__(
        self,
        publisher: Publisher,
        mqtt_config: MqttConfig,
        config: HeartbeatConfig,
        logger: logging.Logger | None = None,
        clock: Callable[[], float] = time.time,
    ) -> None:
        self.publisher = publisher
        self.mqtt_config = mqtt_config
        self.config = config
        self._logger = logger or LOGGER
        self._clock = clock
        self._lock = threading.Lock()
        self.state_timer = DeadlineTimer(config.state_interval_seconds)
        self.sensor_timer = DeadlineTimer(config.sensor_interval_seconds)
        self._sources: list[tuple[str, SensorSource]] = []
        self._stop_event = threading.Event()
        self._thread: threading.Thread | None = None

    def add_sensor_source(self, name: str, source: SensorSource) -> None:
        """Merge ``source()`` into every SENSOR payload."""
        self._sources.append((name, source))

    def tick(self, now: float | None = None) -> None:
        now = self._clock() if now is None else now
        with self._lock:
            state_due = self.state_timer.due(now)
            sensor_due = self.sensor_timer.due(now)
        if state_due:
            self.publish_state(now)
        if sensor_due:
            self.publish_sensors(now)

    def publish_state_now(self) -> bool:
        """Publish STATE immediately and push the state deadline back a full interval."""
        now = self._clock()
        with self._lock:
            self.state_timer.restart(now)
        return self.publish_state(now)

    def state_payload(self, now: float | None = None) -> dict[str, Any]:
        now = self._clock() if now is None else now
        payload: dict[str, Any] = {"Time": timestamp(now)}
        try:
            payload["Uptime"] = uptime_hours(now)
            payload["LoadAverage"] = load_average()
        except (OSError, RuntimeError) as exc:
            self._logger.warning("[heartbeat] Unable to read system metrics: %s", exc)
        cpu_temp = read_cpu_temperature(self.config.thermal_zone)
        if cpu_temp is not None:
            payload["CPUTemp"] = cpu_temp
        return payload

    def sensor_payload(self, now: float | None = None) -> dict[str, Any]:
        now = self._clock() if now is None else now
        payload: dict[str, Any] = {"Time": timestamp(now)}
        for name, source in self._sources:
            try:
                payload.update(source())
            except Exception as exc:  # pylint: disable=broad-except
                self._logger.warning("[heartbeat] Sensor source %s failed: %s", name, exc)
        return payload

    def publish_state(self, now: float | None = None) -> bool:
        payload = json.dumps(self.state_payload(now))
        self._logger.debug("[heartbeat] publish %s: %s", self.mqtt_config.state_topic, payload)
        return self.publisher.publish(self.mqtt_config.state_topic, payload)

    def publish_sensors(self, now: float | None = None) -> bool:
        payload = json.dumps(self.sensor_payload(now))
        self._logger.debug("[heartbeat] publish %s: %s", self.mqtt_config.sensor_topic, payload)
        return self.publisher.publish(self.mqtt_config.sensor_topic, payload)

    def start(self) -> None:
        if self._thread and self._thread.is_alive():
            return
        self._stop_event.clear()
        thread = threading.Thread(target=self._loop, name="superclock-heartbeat", daemon=True)
        self._thread = thread
        thread.start()

    def stop(self) -> None:
        self._stop_event.set()
        thread = self._thread
        if thread:
            thread.join(timeout=self.config.tick_seconds * 2)
        self._thread = None

    def _loop(self) -> None:
        while not self._stop_event.is_set():
            try:
                self.tick()
            except Exception as exc:  # pylint: disable=broad-except
                self._logger.error("[heartbeat] Failed to publish: %s", exc)
            if self._stop_event.wait(self.config.tick_seconds):
                break
