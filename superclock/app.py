"""Process entry point: wires the bus client, store, scene and announcer together."""

from __future__ import annotations

import argparse
import logging
import signal
import subprocess  # nosec B404 - power-off relies on a configured CLI command
import threading
import time
from collections.abc import Sequence
from dataclasses import replace

from superclock import systemd_notify
from superclock.backlight import BacklightFader, find_backlight_device
from superclock.config import DisplayConfig, KioskConfig
from superclock.dispatch import build_dispatch_table
from superclock.heartbeat import Announcer
from superclock.mqtt import KioskMqtt
from superclock.pygame_backend import PygameBackend
from superclock.render import BackendSetupError, ExitCode
from superclock.scene import RenderScheduler, build_scene
from superclock.telemetry import TelemetryStore

LOGGER = logging.getLogger("superclock")


class PowerOff:
    """Runs the configured power-off command at most once, off the render thread."""

    def __init__(self, command: Sequence[str], logger: logging.Logger | None = None) -> None:
        self.command = list(command)
        self._logger = logger or LOGGER
        self._lock = threading.Lock()
        self._started = False

    def __call__(self) -> None:
        with self._lock:
            if self._started:
                self._logger.info("[poweroff] request ignored because one is already running")
                return
            self._started = True
        thread = threading.Thread(target=self._perform, name="superclock-poweroff", daemon=True)
        thread.start()

    def _perform(self) -> None:
        if not self.command:
            self._logger.warning("[poweroff] no command configured")
            return
        self._logger.warning("[poweroff] running %s", " ".join(self.command))
        try:
            subprocess.run(self.command, check=True)  # nosec B603 - command comes from local config
        except FileNotFoundError as exc:
            self._logger.error("[poweroff] command not found: %s", exc)
        except subprocess.CalledProcessError as exc:
            self._logger.error("[poweroff] command failed with exit code %s", exc.returncode)


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(prog="superclock", description="MQTT telemetry kiosk display")
    parser.add_argument("--log-level", default="INFO")
    parser.add_argument("--windowed", action="store_true", help="Run in a window instead of fullscreen")
    return parser


def _display_config(config: KioskConfig, windowed: bool) -> DisplayConfig:
    if not windowed:
        return config.display
    return replace(config.display, fullscreen=False)


def run(config: KioskConfig, display: DisplayConfig) -> int:
    stop_event = threading.Event()

    def _handle_signal(signum: int, _frame: object) -> None:
        LOGGER.info("Received signal %s, shutting down", signum)
        stop_event.set()

    for sig in (signal.SIGINT, signal.SIGTERM):
        signal.signal(sig, _handle_signal)

    store = TelemetryStore()
    dispatcher = build_dispatch_table(store, config.topics)
    bus = KioskMqtt(config.mqtt, dispatcher)
    announcer = Announcer(bus, config.mqtt, config.heartbeat)
    fader = BacklightFader.for_device(
        find_backlight_device(display.backlight_device),
        steps=display.fade_steps,
        step_seconds=display.fade_step_seconds,
    )
    announcer.add_sensor_source("backlight", lambda: {"Backlight": fader.level})
    announcer.add_sensor_source("mqtt", lambda: {"Connection": bus.state.value})
    bus.add_connect_listener(announcer.publish_state_now)

    try:
        backend = PygameBackend(display)
    except BackendSetupError as exc:
        LOGGER.error("%s", exc)
        fader.shutdown()
        return int(exc.exit_code)

    scheduler = RenderScheduler(
        backend,
        build_scene(store, display, backend, PowerOff(display.poweroff_command)),
        fader=fader,
        idle_seconds=display.idle_seconds,
        bright_level=display.bright_level,
        dim_level=display.dim_level,
    )

    bus.connect()
    bus.start()
    announcer.start()
    systemd_notify.ready()
    systemd_notify.status(f"Mirroring telemetry from {config.mqtt.host or 'no broker'}")
    LOGGER.info("SuperClock running on %s", config.hostname)
    try:
        while not stop_event.is_set():
            if not scheduler.tick(time.time()):
                break
            systemd_notify.watchdog()
            stop_event.wait(display.tick_seconds)
    finally:
        systemd_notify.stopping()
        announcer.stop()
        bus.shutdown()
        fader.shutdown(restore=display.bright_level)
        scheduler.release()
        backend.close()
    return int(ExitCode.OK)


def main(argv: Sequence[str] | None = None) -> int:
    args = build_parser().parse_args(argv)
    logging.basicConfig(
        level=getattr(logging, args.log_level.upper(), logging.INFO),
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )
    config = KioskConfig.from_env()
    return run(config, _display_config(config, args.windowed))


if __name__ == "__main__":
    raise SystemExit(main())
