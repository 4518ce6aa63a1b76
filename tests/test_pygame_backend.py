"""Tests for superclock/pygame_backend.py using SDL's dummy video driver."""

from __future__ import annotations

from dataclasses import replace
from unittest.mock import patch

import pygame
import pytest
from superclock.pygame_backend import ICON_NAMES, PygameBackend, tint
from superclock.render import RED, WHITE, BackendSetupError, EventKind, ExitCode, FontRole, Rect


@pytest.fixture(autouse=True)
def dummy_video(monkeypatch):
    monkeypatch.setenv("SDL_VIDEODRIVER", "dummy")
    yield
    pygame.quit()


@pytest.fixture
def png_icons(tmp_path):
    for name in ICON_NAMES:
        surface = pygame.Surface((24, 24), pygame.SRCALPHA)
        surface.fill((255, 255, 255, 255), pygame.Rect(4, 4, 16, 16))
        pygame.image.save(surface, str(tmp_path / f"{name}.png"))
    return tmp_path


@pytest.fixture
def backend_config(display_config, png_icons):
    return replace(display_config, icon_dir=png_icons)


def test_tint_replaces_color_and_keeps_alpha():
    surface = pygame.Surface((2, 2), pygame.SRCALPHA)
    surface.fill((255, 255, 255, 128))

    tinted = tint(surface, RED)

    assert tuple(tinted.get_at((0, 0))) == (255, 0, 0, 128)
    assert tuple(surface.get_at((0, 0))) == (255, 255, 255, 128)


def test_backend_renders_text_and_icons(backend_config):
    backend = PygameBackend(backend_config)
    try:
        assert backend.size == (640, 480)
        assert backend.icon_size("battery") == (24, 24)

        clock = backend.text("12:34", WHITE, FontRole.CLOCK)
        label = backend.text("12:34", WHITE, FontRole.TEXT)
        assert clock.width > label.width > 0

        icon = backend.tinted_icon("power", RED)
        assert (icon.width, icon.height) == (24, 24)

        backend.clear()
        backend.fill(Rect(0, 0, 640, 480), WHITE)
        backend.draw(icon, Rect(10, 10, 24, 24))
        backend.present()

        icon.release()
        assert icon.surface is None
        backend.draw(icon, Rect(10, 10, 24, 24))
    finally:
        backend.close()


def test_pointer_events_are_translated(backend_config):
    backend = PygameBackend(backend_config)
    try:
        pygame.event.post(pygame.event.Event(pygame.MOUSEBUTTONDOWN, pos=(5, 6), button=1))
        pygame.event.post(pygame.event.Event(pygame.QUIT))

        events = backend.poll_events()

        kinds = [event.kind for event in events]
        assert EventKind.POINTER_DOWN in kinds
        assert EventKind.QUIT in kinds
        pointer = next(event for event in events if event.kind is EventKind.POINTER_DOWN)
        assert pointer.position == (5, 6)
    finally:
        backend.close()


def test_video_init_failure_exit_code(backend_config):
    with patch("superclock.pygame_backend.pygame.display.init", side_effect=pygame.error("no video")):
        with pytest.raises(BackendSetupError) as excinfo:
            PygameBackend(backend_config)
    assert excinfo.value.exit_code is ExitCode.VIDEO_INIT


def test_window_failure_exit_code(backend_config):
    with patch("superclock.pygame_backend.pygame.display.set_mode", side_effect=pygame.error("no window")):
        with pytest.raises(BackendSetupError) as excinfo:
            PygameBackend(backend_config)
    assert excinfo.value.exit_code is ExitCode.WINDOW


def test_missing_icon_exit_code(display_config):
    with pytest.raises(BackendSetupError) as excinfo:
        PygameBackend(display_config)
    assert excinfo.value.exit_code is ExitCode.ICON
    assert int(excinfo.value.exit_code) == 5


def test_missing_font_exit_code(backend_config, tmp_path):
    config = replace(backend_config, font_path=str(tmp_path / "missing.ttf"))
    with pytest.raises(BackendSetupError) as excinfo:
        PygameBackend(config)
    assert excinfo.value.exit_code is ExitCode.FONT
