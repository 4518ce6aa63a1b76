"""Shared test fixtures for the SuperClock test suite.

This module provides reusable fixtures for:
- MQTT configuration and paho client mocking
- The telemetry store and dispatch table
- A recording fake render backend
"""

from __future__ import annotations

import logging
from pathlib import Path
from unittest.mock import Mock

import paho.mqtt.client as mqtt
import pytest
from superclock.config import DisplayConfig, EntityTopics, HeartbeatConfig, KioskConfig, MqttConfig, TopicConfig
from superclock.render import Color, FontRole, InputEvent, Rect
from superclock.telemetry import TelemetryStore

# ============================================================================
# Logging Fixtures
# ============================================================================


@pytest.fixture
def mock_logger():
    """Mock with spec=logging.Logger so only real logger methods can be called."""
    return Mock(spec=logging.Logger)


# ============================================================================
# Configuration Fixtures
# ============================================================================


@pytest.fixture
def mqtt_config():
    """MQTT configuration with zero cooldowns so reconnect paths never sleep."""
    return MqttConfig(
        host="localhost",
        port=1883,
        username=None,
        password=None,
        tls_enabled=False,
        cert=None,
        key=None,
        ca_cert=None,
        keepalive=60,
        client_id="superclock@kiosk",
        node="kiosk",
        poll_seconds=0.01,
        connect_retry_seconds=0.0,
        reconnect_cooldown_seconds=0.0,
    )


@pytest.fixture
def topic_config():
    """Default inbound topics of the stock deployment."""
    return TopicConfig(
        power=EntityTopics("tele/main-power/SENSOR", "tele/main-power/LWT"),
        battery=EntityTopics("tele/main_battery/SENSOR", "tele/main_battery/LWT"),
        indoor=EntityTopics("tele/weather_indoor/SENSOR", "tele/weather_indoor/LWT"),
        outdoor=EntityTopics("tele/weather_outdoor/SENSOR", "tele/weather_outdoor/LWT"),
        door=EntityTopics("tele/front_door/SENSOR", "tele/front_door/LWT"),
        power_model="PZEM004T",
    )


@pytest.fixture
def display_config(tmp_path: Path):
    return DisplayConfig(
        width=640,
        height=480,
        fullscreen=False,
        font_path=None,
        clock_font_size=55,
        text_font_size=25,
        icon_dir=tmp_path,
        tick_seconds=0.25,
        idle_seconds=5.0,
        bright_level=100,
        dim_level=10,
        fade_steps=10,
        fade_step_seconds=0.0,
        backlight_device=None,
        poweroff_command=("true",),
        confirm_increment=0.1,
    )


@pytest.fixture
def heartbeat_config():
    return HeartbeatConfig(state_interval_seconds=60.0, sensor_interval_seconds=5.0, thermal_zone=0, tick_seconds=0.01)


@pytest.fixture
def kiosk_config(mqtt_config, topic_config, display_config, heartbeat_config):
    return KioskConfig(
        hostname="kiosk",
        mqtt=mqtt_config,
        topics=topic_config,
        display=display_config,
        heartbeat=heartbeat_config,
    )


# ============================================================================
# MQTT Fixtures
# ============================================================================


@pytest.fixture
def mock_mqtt_client():
    """Mock paho client whose publish/subscribe calls succeed."""
    client = Mock(spec=mqtt.Client)
    client.connect = Mock(return_value=mqtt.MQTT_ERR_SUCCESS)
    client.disconnect = Mock(return_value=mqtt.MQTT_ERR_SUCCESS)
    client.subscribe = Mock(return_value=(mqtt.MQTT_ERR_SUCCESS, 1))
    client.loop = Mock(return_value=mqtt.MQTT_ERR_SUCCESS)

    # Mock MQTTMessageInfo return value to match paho-mqtt's Client.publish() API
    message_info = Mock(spec=mqtt.MQTTMessageInfo)
    message_info.rc = mqtt.MQTT_ERR_SUCCESS
    message_info.mid = 1
    client.publish = Mock(return_value=message_info)
    return client


# ============================================================================
# Telemetry Fixtures
# ============================================================================


@pytest.fixture
def store():
    return TelemetryStore()


@pytest.fixture
def consumed_store(store):
    """Store whose initial dirty flags were already consumed."""
    for record in store.records():
        record.consume()
    return store


# ============================================================================
# Render Fixtures
# ============================================================================


class FakeVisual:
    def __init__(self, label: str, color: Color, width: int = 40, height: int = 20) -> None:
        self.label = label
        self.color = color
        self.width = width
        self.height = height
        self.released = False

    def release(self) -> None:
        self.released = True

    def __repr__(self) -> str:
        return f"FakeVisual({self.label!r}, {self.color})"


class FakeBackend:
    """Records every visual created and every drawing call."""

    def __init__(self, size: tuple[int, int] = (640, 480), icon_size: tuple[int, int] = (48, 48)) -> None:
        self.size = size
        self._icon_size = icon_size
        self.events: list[InputEvent] = []
        self.created: list[FakeVisual] = []
        self.calls: list[tuple] = []
        self.presents = 0
        self.closed = False

    def text(self, text: str, color: Color, role: FontRole = FontRole.TEXT) -> FakeVisual:
        visual = FakeVisual(text, color, width=10 * len(text), height=30 if role is FontRole.TEXT else 60)
        self.created.append(visual)
        return visual

    def tinted_icon(self, name: str, color: Color) -> FakeVisual:
        visual = FakeVisual(name, color, *self._icon_size)
        self.created.append(visual)
        return visual

    def icon_size(self, name: str) -> tuple[int, int]:
        return self._icon_size

    def poll_events(self) -> list[InputEvent]:
        events, self.events = self.events, []
        return events

    def clear(self) -> None:
        self.calls.append(("clear",))

    def fill(self, rect: Rect, color: Color) -> None:
        self.calls.append(("fill", rect, color))

    def draw(self, visual: FakeVisual, rect: Rect) -> None:
        self.calls.append(("draw", visual, rect))

    def present(self) -> None:
        self.calls.append(("present",))
        self.presents += 1

    def close(self) -> None:
        self.closed = True


@pytest.fixture
def backend():
    return FakeBackend()
