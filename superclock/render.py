"""Interfaces between the widget layer and a concrete drawing backend."""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum, IntEnum
from typing import Protocol

Color = tuple[int, int, int, int]

GREEN: Color = (0, 255, 0, 255)
RED: Color = (255, 0, 0, 255)
YELLOW: Color = (255, 255, 0, 255)
BACKGROUND: Color = (24, 90, 147, 255)
PANEL: Color = (28, 81, 128, 255)
BLACK: Color = (0, 0, 0, 255)
WHITE: Color = (255, 255, 255, 255)
GREY: Color = (112, 112, 112, 255)


class ExitCode(IntEnum):
    OK = 0
    VIDEO_INIT = 1
    FONT_INIT = 2
    WINDOW = 3
    RENDERER = 4
    ICON = 5
    FONT = 7


class BackendSetupError(RuntimeError):
    """Fatal render-backend setup failure carrying the process exit code."""

    def __init__(self, exit_code: ExitCode, message: str) -> None:
        super().__init__(message)
        self.exit_code = exit_code


class FontRole(Enum):
    CLOCK = "clock"
    TEXT = "text"


class Visual(Protocol):
    """A rendered, immutable bitmap owned by exactly one widget."""

    @property
    def width(self) -> int: ...

    @property
    def height(self) -> int: ...

    def release(self) -> None: ...


class RenderContext(Protocol):
    """What widgets may use to build new visuals."""

    def text(self, text: str, color: Color, role: FontRole = FontRole.TEXT) -> Visual: ...

    def tinted_icon(self, name: str, color: Color) -> Visual: ...

    def icon_size(self, name: str) -> tuple[int, int]: ...


class EventKind(Enum):
    QUIT = "quit"
    POINTER_DOWN = "pointer_down"
    POINTER_MOTION = "pointer_motion"
    KEY_DOWN = "key_down"


@dataclass(frozen=True)
class InputEvent:
    kind: EventKind
    position: tuple[int, int] | None = None
    key: str | None = None


@dataclass(frozen=True)
class Rect:
    x: int
    y: int
    width: int
    height: int

    def contains(self, x: int, y: int) -> bool:
        return self.x <= x < self.x + self.width and self.y <= y < self.y + self.height


class RenderBackend(RenderContext, Protocol):
    @property
    def size(self) -> tuple[int, int]: ...

    def poll_events(self) -> list[InputEvent]: ...

    def clear(self) -> None: ...

    def fill(self, rect: Rect, color: Color) -> None: ...

    def draw(self, visual: Visual, rect: Rect) -> None: ...

    def present(self) -> None: ...

    def close(self) -> None: ...
