"""Scene layout and the dirty-driven render scheduler."""

from __future__ import annotations

import logging
from collections.abc import Callable, Sequence
from typing import Protocol

from superclock.config import DisplayConfig
from superclock.render import BACKGROUND, PANEL, EventKind, Rect, RenderBackend, RenderContext, Visual
from superclock.telemetry import TelemetryStore
from superclock.widgets import (
    BATTERY_ICON,
    CENTERED,
    POWER_ICON,
    POWER_OFF_ICON,
    SHUTDOWN_ICON,
    Alignment,
    BatteryWidget,
    ClockWidget,
    DoorWidget,
    HAlign,
    IconWidget,
    PowerOffWidget,
    PowerWidget,
    VAlign,
    WeatherWidget,
    Widget,
    battery_icon_color,
    mains_absent_color,
    mains_present_color,
)

LOGGER = logging.getLogger(__name__)

PANEL_INSET = 4
ICON_MARGIN = 20


class Fader(Protocol):
    def fade_to(self, target: int) -> bool: ...


def align_h(position: int, size: int, align: HAlign) -> int:
    if align is HAlign.CENTER:
        return position - size // 2
    if align is HAlign.RIGHT:
        return position + size
    return position


def align_v(position: int, size: int, align: VAlign) -> int:
    if align is VAlign.CENTER:
        return position - size // 2
    if align is VAlign.BOTTOM:
        return position + size
    return position


def draw_rect(anchor: tuple[int, int], align: Alignment, visual: Visual) -> Rect:
    x, y = anchor
    return Rect(
        align_h(x, visual.width, align.h),
        align_v(y, visual.height, align.v),
        visual.width,
        visual.height,
    )


def build_scene(
    store: TelemetryStore,
    display: DisplayConfig,
    ctx: RenderContext,
    on_power_off: Callable[[], None],
) -> list[Widget]:
    """Lay out the kiosk widgets in draw order."""
    width, height = display.width, display.height
    widgets: list[Widget] = []

    x = ICON_MARGIN
    icons = (
        ("mains_present", POWER_ICON, store.power, mains_present_color),
        ("mains_absent", POWER_OFF_ICON, store.power, mains_absent_color),
        ("battery_level", BATTERY_ICON, store.battery, battery_icon_color),
    )
    for name, icon, record, color_for in icons:
        widgets.append(IconWidget(name, (x, ICON_MARGIN), icon, record, color_for))
        x += ctx.icon_size(icon)[0] + ICON_MARGIN

    shutdown_width = ctx.icon_size(SHUTDOWN_ICON)[0]
    widgets.append(
        PowerOffWidget(
            "power_off",
            (width - ICON_MARGIN - shutdown_width, ICON_MARGIN),
            on_commit=on_power_off,
            increment=display.confirm_increment,
        )
    )

    widgets.append(ClockWidget("clock", (width // 2, height // 2)))
    widgets.append(BatteryWidget("battery", (width // 2, height // 3), store.battery))
    widgets.append(PowerWidget("power", (width // 2, 3 * height // 4), store.power))
    widgets.append(WeatherWidget("indoor", (width // 4, 7 * height // 8), store.indoor, "In", CENTERED))
    widgets.append(WeatherWidget("outdoor", (3 * width // 4, 7 * height // 8), store.outdoor, "Out", CENTERED))
    widgets.append(DoorWidget("door", (width // 2, 15 * height // 16), store.door))
    return widgets


class RenderScheduler:
    """One pass per tick: input, widget updates, at most one repaint, idle policy."""

    def __init__(
        self,
        backend: RenderBackend,
        widgets: Sequence[Widget],
        fader: Fader | None = None,
        idle_seconds: float = 5.0,
        bright_level: int = 100,
        dim_level: int = 10,
        logger: logging.Logger | None = None,
    ) -> None:
        self.backend = backend
        self.widgets = list(widgets)
        self.fader = fader
        self.idle_seconds = idle_seconds
        self.bright_level = bright_level
        self.dim_level = dim_level
        self._logger = logger or LOGGER
        self._first = True
        self._last_active: float | None = None
        self.repaints = 0

    def widget_at(self, x: int, y: int) -> Widget | None:
        for widget in self.widgets:
            if widget.visual is None:
                continue
            if draw_rect(widget.anchor, widget.align, widget.visual).contains(x, y):
                return widget
        return None

    def tick(self, now: float) -> bool:
        """Run one iteration; returns False once a quit request was seen."""
        if self._last_active is None:
            self._last_active = now
        running = self._handle_events(now)

        dirty = self._update_widgets()
        if dirty or self._first:
            self._first = False
            self.repaint()
            self._mark_active(now)
        elif now - self._last_active > self.idle_seconds:
            self._request_level(self.dim_level)
        return running

    def _handle_events(self, now: float) -> bool:
        running = True
        for event in self.backend.poll_events():
            if event.kind is EventKind.QUIT:
                self._logger.info("[scene] Quit requested")
                running = False
            elif event.kind is EventKind.POINTER_DOWN:
                self._mark_active(now)
                if event.position is not None:
                    self._click(*event.position)
            elif event.kind in (EventKind.POINTER_MOTION, EventKind.KEY_DOWN):
                self._mark_active(now)
        return running

    def _click(self, x: int, y: int) -> None:
        widget = self.widget_at(x, y)
        if widget is None or widget.on_click is None:
            return
        self._logger.debug("[scene] Click at (%s, %s) -> %s", x, y, widget.name)
        widget.on_click()

    def _update_widgets(self) -> bool:
        dirty = False
        for widget in self.widgets:
            visual = widget.update(self.backend)
            if visual is not None:
                widget.replace_visual(visual)
                dirty = True
        return dirty

    def repaint(self) -> None:
        width, height = self.backend.size
        self.backend.clear()
        self.backend.fill(Rect(0, 0, width, height), BACKGROUND)
        self.backend.fill(
            Rect(PANEL_INSET, PANEL_INSET, width - PANEL_INSET * 2, height - PANEL_INSET * 2),
            PANEL,
        )
        for widget in self.widgets:
            if widget.visual is not None:
                self.backend.draw(widget.visual, draw_rect(widget.anchor, widget.align, widget.visual))
        self.backend.present()
        self.repaints += 1

    def _mark_active(self, now: float) -> None:
        self._last_active = now
        self._request_level(self.bright_level)

    def _request_level(self, level: int) -> None:
        if self.fader is not None:
            self.fader.fade_to(level)

    def release(self) -> None:
        for widget in self.widgets:
            widget.release()
