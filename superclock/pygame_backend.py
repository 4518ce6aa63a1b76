"""pygame (SDL) implementation of the render backend."""

from __future__ import annotations

import logging
from pathlib import Path

import pygame

from superclock.config import DisplayConfig
from superclock.render import (
    BLACK,
    BackendSetupError,
    Color,
    EventKind,
    ExitCode,
    FontRole,
    InputEvent,
    Rect,
)

LOGGER = logging.getLogger(__name__)

WINDOW_TITLE = "Super Clock"
ICON_NAMES = ("power", "power_off", "battery", "shutdown")
ICON_SUFFIXES = (".svg", ".png")


class SurfaceVisual:
    """Owned pygame surface."""

    def __init__(self, surface: pygame.Surface) -> None:
        self.surface: pygame.Surface | None = surface
        self._size = surface.get_size()

    @property
    def width(self) -> int:
        return self._size[0]

    @property
    def height(self) -> int:
        return self._size[1]

    def release(self) -> None:
        self.surface = None


def tint(surface: pygame.Surface, color: Color) -> pygame.Surface:
    """Copy of ``surface`` with every pixel set to ``color`` and its alpha kept."""
    tinted = surface.copy()
    tinted.fill((0, 0, 0, 255), special_flags=pygame.BLEND_RGBA_MULT)
    tinted.fill((color[0], color[1], color[2], 0), special_flags=pygame.BLEND_RGBA_ADD)
    return tinted


class PygameBackend:
    """Window, fonts and icons; raises ``BackendSetupError`` on any setup failure."""

    def __init__(self, config: DisplayConfig, logger: logging.Logger | None = None) -> None:
        self.config = config
        self._logger = logger or LOGGER
        self._icons: dict[str, pygame.Surface] = {}
        self._fonts: dict[FontRole, pygame.font.Font] = {}
        self._screen: pygame.Surface | None = None
        self._closed = False
        try:
            self._setup()
        except BackendSetupError:
            self.close()
            raise

    def _setup(self) -> None:
        try:
            pygame.display.init()
        except pygame.error as exc:
            raise BackendSetupError(ExitCode.VIDEO_INIT, f"Video init failed: {exc}") from exc
        try:
            pygame.font.init()
        except pygame.error as exc:
            raise BackendSetupError(ExitCode.FONT_INIT, f"Font init failed: {exc}") from exc

        flags = pygame.NOFRAME
        if self.config.fullscreen:
            flags |= pygame.FULLSCREEN
        try:
            pygame.display.set_mode((self.config.width, self.config.height), flags)
        except pygame.error as exc:
            raise BackendSetupError(ExitCode.WINDOW, f"Window creation failed: {exc}") from exc
        pygame.display.set_caption(WINDOW_TITLE)
        screen = pygame.display.get_surface()
        if screen is None:
            raise BackendSetupError(ExitCode.RENDERER, "No drawing surface available")
        self._screen = screen
        pygame.mouse.set_visible(False)

        for name in ICON_NAMES:
            self._icons[name] = self._load_icon(name)

        sizes = {FontRole.CLOCK: self.config.clock_font_size, FontRole.TEXT: self.config.text_font_size}
        for role, size in sizes.items():
            try:
                self._fonts[role] = pygame.font.Font(self.config.font_path, size)
            except (pygame.error, OSError) as exc:
                raise BackendSetupError(
                    ExitCode.FONT, f"Unable to load font {self.config.font_path or 'default'}: {exc}"
                ) from exc
        self._logger.info(
            "[pygame] Display ready (%sx%s, fullscreen=%s)",
            self.config.width,
            self.config.height,
            self.config.fullscreen,
        )

    def _load_icon(self, name: str) -> pygame.Surface:
        icon_dir = Path(self.config.icon_dir)
        for suffix in ICON_SUFFIXES:
            path = icon_dir / f"{name}{suffix}"
            if not path.exists():
                continue
            try:
                return pygame.image.load(str(path)).convert_alpha()
            except (pygame.error, OSError) as exc:
                raise BackendSetupError(ExitCode.ICON, f"Unable to load icon {path}: {exc}") from exc
        raise BackendSetupError(ExitCode.ICON, f"Icon {name} not found in {icon_dir}")

    # ------------------------------------------------------------------
    # RenderContext
    # ------------------------------------------------------------------

    def text(self, text: str, color: Color, role: FontRole = FontRole.TEXT) -> SurfaceVisual:
        surface = self._fonts[role].render(text, True, color[:3])
        return SurfaceVisual(surface)

    def tinted_icon(self, name: str, color: Color) -> SurfaceVisual:
        return SurfaceVisual(tint(self._icons[name], color))

    def icon_size(self, name: str) -> tuple[int, int]:
        return self._icons[name].get_size()

    # ------------------------------------------------------------------
    # RenderBackend
    # ------------------------------------------------------------------

    @property
    def size(self) -> tuple[int, int]:
        if self._screen is None:
            return (self.config.width, self.config.height)
        return self._screen.get_size()

    def poll_events(self) -> list[InputEvent]:
        events: list[InputEvent] = []
        width, height = self.size
        for event in pygame.event.get():
            if event.type == pygame.QUIT:
                events.append(InputEvent(EventKind.QUIT))
            elif event.type == pygame.MOUSEBUTTONDOWN:
                events.append(InputEvent(EventKind.POINTER_DOWN, position=tuple(event.pos)))
            elif event.type == pygame.FINGERDOWN:
                position = (int(event.x * width), int(event.y * height))
                events.append(InputEvent(EventKind.POINTER_DOWN, position=position))
            elif event.type in (pygame.MOUSEMOTION, pygame.FINGERMOTION):
                events.append(InputEvent(EventKind.POINTER_MOTION))
            elif event.type == pygame.KEYDOWN:
                events.append(InputEvent(EventKind.KEY_DOWN, key=pygame.key.name(event.key)))
        return events

    def clear(self) -> None:
        if self._screen is not None:
            self._screen.fill(BLACK)

    def fill(self, rect: Rect, color: Color) -> None:
        if self._screen is not None:
            self._screen.fill(color, pygame.Rect(rect.x, rect.y, rect.width, rect.height))

    def draw(self, visual: SurfaceVisual, rect: Rect) -> None:
        if self._screen is None or visual.surface is None:
            return
        self._screen.blit(visual.surface, (rect.x, rect.y))

    def present(self) -> None:
        pygame.display.flip()

    def close(self) -> None:
        if self._closed:
            return
        self._closed = True
        self._icons.clear()
        self._fonts.clear()
        if self._screen is not None:
            pygame.mouse.set_visible(True)
        self._screen = None
        pygame.quit()
