"""Configuration helpers for the SuperClock kiosk."""

from __future__ import annotations

import os
import socket
from dataclasses import dataclass
from pathlib import Path

from superclock.utils import parse_bool, parse_float, parse_int

PROGRAM_NAME = "superclock"
DEFAULT_POWER_MODEL = "PZEM004T"
DEFAULT_ICON_DIR = Path(__file__).resolve().parent / "assets" / "icons"


def _strip_or_none(value: str | None) -> str | None:
    if value is None:
        return None
    stripped = value.strip()
    return stripped or None


@dataclass(frozen=True)
class MqttConfig:
    host: str | None
    port: int
    username: str | None
    password: str | None
    tls_enabled: bool
    cert: str | None
    key: str | None
    ca_cert: str | None
    keepalive: int
    client_id: str
    node: str
    poll_seconds: float = 1.0
    connect_retry_seconds: float = 30.0
    reconnect_cooldown_seconds: float = 10.0

    @property
    def liveness_topic(self) -> str:
        return f"tele/{self.node}/LWT"

    @property
    def state_topic(self) -> str:
        return f"tele/{self.node}/STATE"

    @property
    def sensor_topic(self) -> str:
        return f"tele/{self.node}/SENSOR"


@dataclass(frozen=True)
class EntityTopics:
    sensor: str
    availability: str


@dataclass(frozen=True)
class TopicConfig:
    power: EntityTopics
    battery: EntityTopics
    indoor: EntityTopics
    outdoor: EntityTopics
    door: EntityTopics
    power_model: str


@dataclass(frozen=True)
class DisplayConfig:
    width: int
    height: int
    fullscreen: bool
    font_path: str | None
    clock_font_size: int
    text_font_size: int
    icon_dir: Path
    tick_seconds: float
    idle_seconds: float
    bright_level: int
    dim_level: int
    fade_steps: int
    fade_step_seconds: float
    backlight_device: str | None
    poweroff_command: tuple[str, ...]
    confirm_increment: float


@dataclass(frozen=True)
class HeartbeatConfig:
    state_interval_seconds: float
    sensor_interval_seconds: float
    thermal_zone: int
    tick_seconds: float = 1.0


@dataclass(frozen=True)
class KioskConfig:
    hostname: str
    mqtt: MqttConfig
    topics: TopicConfig
    display: DisplayConfig
    heartbeat: HeartbeatConfig

    @staticmethod
    def from_env(env: dict[str, str] | None = None) -> KioskConfig:
        source = env if env is not None else os.environ
        hostname = source.get("SUPERCLOCK_HOSTNAME") or socket.gethostname()

        mqtt = MqttConfig(
            host=_strip_or_none(source.get("MQTT_HOST")),
            port=parse_int(source.get("MQTT_PORT"), 1883),
            username=_strip_or_none(source.get("MQTT_USER") or source.get("MQTT_USERNAME")),
            password=_strip_or_none(source.get("MQTT_PASS") or source.get("MQTT_PASSWORD")),
            tls_enabled=parse_bool(source.get("MQTT_TLS_ENABLED"), False),
            cert=_strip_or_none(source.get("MQTT_CERT")),
            key=_strip_or_none(source.get("MQTT_KEY")),
            ca_cert=_strip_or_none(source.get("MQTT_CA_CERT")),
            keepalive=max(5, parse_int(source.get("MQTT_KEEPALIVE"), 60)),
            client_id=f"{PROGRAM_NAME}@{hostname}",
            node=hostname,
            poll_seconds=max(0.1, parse_float(source.get("SUPERCLOCK_MQTT_POLL_SECONDS"), 1.0)),
            connect_retry_seconds=max(0.0, parse_float(source.get("SUPERCLOCK_MQTT_RETRY_SECONDS"), 30.0)),
            reconnect_cooldown_seconds=max(0.0, parse_float(source.get("SUPERCLOCK_MQTT_COOLDOWN_SECONDS"), 10.0)),
        )

        topics = TopicConfig(
            power=_entity_topics(source, "POWER", "tele/main-power"),
            battery=_entity_topics(source, "BATTERY", "tele/main_battery"),
            indoor=_entity_topics(source, "INDOOR", "tele/weather_indoor"),
            outdoor=_entity_topics(source, "OUTDOOR", "tele/weather_outdoor"),
            door=_entity_topics(source, "DOOR", "tele/front_door"),
            power_model=(source.get("SUPERCLOCK_POWER_MODEL") or DEFAULT_POWER_MODEL).strip() or DEFAULT_POWER_MODEL,
        )

        icon_dir = Path(source.get("SUPERCLOCK_ICON_DIR") or DEFAULT_ICON_DIR)
        poweroff_raw = source.get("SUPERCLOCK_POWEROFF_COMMAND") or "sudo poweroff"
        confirm_increment = parse_float(source.get("SUPERCLOCK_CONFIRM_INCREMENT"), 0.1)
        if not 0.0 < confirm_increment <= 1.0:
            confirm_increment = 0.1
        display = DisplayConfig(
            width=max(1, parse_int(source.get("SUPERCLOCK_WIDTH"), 640)),
            height=max(1, parse_int(source.get("SUPERCLOCK_HEIGHT"), 480)),
            fullscreen=parse_bool(source.get("SUPERCLOCK_FULLSCREEN"), True),
            font_path=_strip_or_none(source.get("SUPERCLOCK_FONT")),
            clock_font_size=max(8, parse_int(source.get("SUPERCLOCK_CLOCK_FONT_SIZE"), 55)),
            text_font_size=max(8, parse_int(source.get("SUPERCLOCK_TEXT_FONT_SIZE"), 25)),
            icon_dir=icon_dir,
            tick_seconds=max(0.05, parse_float(source.get("SUPERCLOCK_TICK_SECONDS"), 0.25)),
            idle_seconds=max(0.0, parse_float(source.get("SUPERCLOCK_IDLE_SECONDS"), 5.0)),
            bright_level=_percent(source.get("SUPERCLOCK_BRIGHT_LEVEL"), 100),
            dim_level=_percent(source.get("SUPERCLOCK_DIM_LEVEL"), 10),
            fade_steps=max(1, parse_int(source.get("SUPERCLOCK_FADE_STEPS"), 10)),
            fade_step_seconds=max(0.0, parse_float(source.get("SUPERCLOCK_FADE_STEP_SECONDS"), 0.01)),
            backlight_device=_strip_or_none(source.get("SUPERCLOCK_BACKLIGHT_DEVICE")),
            poweroff_command=tuple(poweroff_raw.split()),
            confirm_increment=confirm_increment,
        )

        heartbeat = HeartbeatConfig(
            state_interval_seconds=max(1.0, parse_float(source.get("SUPERCLOCK_STATE_INTERVAL"), 60.0)),
            sensor_interval_seconds=max(1.0, parse_float(source.get("SUPERCLOCK_SENSOR_INTERVAL"), 5.0)),
            thermal_zone=max(0, parse_int(source.get("SUPERCLOCK_THERMAL_ZONE"), 0)),
        )

        return KioskConfig(
            hostname=hostname,
            mqtt=mqtt,
            topics=topics,
            display=display,
            heartbeat=heartbeat,
        )


def _entity_topics(source: dict[str, str], name: str, default_base: str) -> EntityTopics:
    sensor = _strip_or_none(source.get(f"SUPERCLOCK_TOPIC_{name}")) or f"{default_base}/SENSOR"
    availability = _strip_or_none(source.get(f"SUPERCLOCK_TOPIC_{name}_LWT")) or f"{default_base}/LWT"
    return EntityTopics(sensor=sensor, availability=availability)


def _percent(raw: str | None, default: int) -> int:
    return max(0, min(100, parse_int(raw, default)))
