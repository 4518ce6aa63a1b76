"""Tests for superclock/app.py wiring and the power-off runner."""

from __future__ import annotations

import subprocess
from dataclasses import replace
from unittest.mock import MagicMock, Mock, patch

import pytest
from superclock.app import PowerOff, _display_config, build_parser, run
from superclock.render import BackendSetupError, EventKind, ExitCode, InputEvent


def test_parser_defaults():
    args = build_parser().parse_args([])
    assert args.log_level == "INFO"
    assert args.windowed is False


def test_windowed_flag_disables_fullscreen(kiosk_config):
    config = replace(kiosk_config, display=replace(kiosk_config.display, fullscreen=True))

    assert _display_config(config, windowed=False).fullscreen is True
    assert _display_config(config, windowed=True).fullscreen is False
    assert config.display.fullscreen is True


# PowerOff


@patch("superclock.app.subprocess.run")
def test_poweroff_runs_command_once(mock_run, mock_logger):
    power_off = PowerOff(["sudo", "poweroff"], logger=mock_logger)

    with patch("superclock.app.threading.Thread") as mock_thread:
        mock_thread.return_value.start.side_effect = power_off._perform
        power_off()
        power_off()

    mock_run.assert_called_once_with(["sudo", "poweroff"], check=True)
    assert mock_thread.call_count == 1


@pytest.mark.parametrize(
    "error",
    [FileNotFoundError("poweroff"), subprocess.CalledProcessError(1, ["poweroff"])],
)
def test_poweroff_logs_failures(error, mock_logger):
    power_off = PowerOff(["poweroff"], logger=mock_logger)

    with patch("superclock.app.subprocess.run", side_effect=error):
        power_off._perform()

    mock_logger.error.assert_called_once()


def test_poweroff_without_command(mock_logger):
    power_off = PowerOff([], logger=mock_logger)
    with patch("superclock.app.subprocess.run") as mock_run:
        power_off._perform()
    mock_run.assert_not_called()
    mock_logger.warning.assert_called_once()


# run()


@pytest.fixture
def wiring():
    """Patch the outward-facing collaborators of ``run``."""
    with (
        patch("superclock.app.signal.signal"),
        patch("superclock.app.KioskMqtt") as mock_bus,
        patch("superclock.app.Announcer") as mock_announcer,
        patch("superclock.app.find_backlight_device", return_value=None),
        patch("superclock.app.systemd_notify") as mock_notify,
    ):
        mock_bus.return_value = MagicMock()
        yield Mock(bus=mock_bus.return_value, announcer=mock_announcer.return_value, notify=mock_notify)


def test_run_returns_backend_exit_code(kiosk_config, wiring):
    error = BackendSetupError(ExitCode.ICON, "Icon power not found")
    with patch("superclock.app.PygameBackend", side_effect=error):
        code = run(kiosk_config, kiosk_config.display)

    assert code == 5
    wiring.bus.connect.assert_not_called()
    wiring.announcer.start.assert_not_called()


def test_run_until_quit_event(kiosk_config, wiring, backend):
    backend.events = [InputEvent(EventKind.QUIT)]

    with patch("superclock.app.PygameBackend", return_value=backend):
        code = run(kiosk_config, kiosk_config.display)

    assert code == 0
    assert backend.presents == 1
    assert backend.closed is True
    wiring.bus.connect.assert_called_once()
    wiring.bus.start.assert_called_once()
    wiring.bus.add_connect_listener.assert_called_once_with(wiring.announcer.publish_state_now)
    wiring.bus.shutdown.assert_called_once()
    wiring.announcer.start.assert_called_once()
    wiring.announcer.stop.assert_called_once()
    wiring.notify.ready.assert_called_once()
    wiring.notify.stopping.assert_called_once()
    sources = [c.args[0] for c in wiring.announcer.add_sensor_source.call_args_list]
    assert sources == ["backlight", "mqtt"]
