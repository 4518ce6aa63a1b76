"""Self-updating widgets bound to slices of the telemetry store.

Every widget exposes ``update(ctx) -> Visual | None``. Text widgets consume
their record's dirty flag; icon widgets share records with text widgets, so
they compare a cached render key instead of consuming the flag.
"""

from __future__ import annotations

import logging
import math
import time
from collections.abc import Callable
from dataclasses import dataclass
from enum import Enum
from typing import Any

from superclock.render import (
    BACKGROUND,
    GREEN,
    GREY,
    RED,
    WHITE,
    YELLOW,
    Color,
    FontRole,
    RenderContext,
    Visual,
)
from superclock.telemetry import (
    BatteryReading,
    DoorReading,
    PowerReading,
    RecordSnapshot,
    TelemetryRecord,
    WeatherReading,
)

LOGGER = logging.getLogger(__name__)

POWER_ICON = "power"
POWER_OFF_ICON = "power_off"
BATTERY_ICON = "battery"
SHUTDOWN_ICON = "shutdown"


class HAlign(Enum):
    LEFT = "left"
    CENTER = "center"
    RIGHT = "right"


class VAlign(Enum):
    TOP = "top"
    CENTER = "center"
    BOTTOM = "bottom"


@dataclass(frozen=True)
class Alignment:
    h: HAlign = HAlign.LEFT
    v: VAlign = VAlign.TOP


CENTERED = Alignment(HAlign.CENTER, VAlign.CENTER)
TOP_LEFT = Alignment(HAlign.LEFT, VAlign.TOP)


# ----------------------------------------------------------------------------
# Colour bands
# ----------------------------------------------------------------------------

_SEVERITY = {GREEN: 0, YELLOW: 1, RED: 2}


def soc_color(soc: float) -> Color:
    if math.isnan(soc):
        return GREY
    if soc < 20.0:
        return RED
    if soc < 50.0:
        return YELLOW
    return GREEN


def battery_temp_color(temp: float) -> Color:
    if math.isnan(temp):
        return GREEN
    if temp > 50.0:
        return RED
    if temp > 40.0:
        return YELLOW
    return GREEN


def battery_color(reading: BatteryReading) -> Color:
    """The more severe of the state-of-charge and temperature bands."""
    by_soc = soc_color(reading.soc)
    if by_soc == GREY:
        return GREY
    by_temp = battery_temp_color(reading.temp)
    return by_soc if _SEVERITY[by_soc] >= _SEVERITY[by_temp] else by_temp


def power_color(watts: float) -> Color:
    if watts > 4000.0:
        return RED
    if watts > 1000.0:
        return YELLOW
    return GREEN


def lerp_color(start: Color, end: Color, progress: float) -> Color:
    progress = max(0.0, min(1.0, progress))
    return tuple(round(a + (b - a) * progress) for a, b in zip(start, end, strict=True))  # type: ignore[return-value]


# ----------------------------------------------------------------------------
# Widgets
# ----------------------------------------------------------------------------


class Widget:
    """Positioned element owning its current visual."""

    def __init__(
        self,
        name: str,
        anchor: tuple[int, int],
        align: Alignment = TOP_LEFT,
        on_click: Callable[[], None] | None = None,
    ) -> None:
        self.name = name
        self.anchor = anchor
        self.align = align
        self.on_click = on_click
        self.visual: Visual | None = None

    def update(self, ctx: RenderContext) -> Visual | None:
        raise NotImplementedError

    def replace_visual(self, visual: Visual) -> None:
        old = self.visual
        self.visual = visual
        if old is not None:
            old.release()

    def release(self) -> None:
        if self.visual is not None:
            self.visual.release()
            self.visual = None

    def __repr__(self) -> str:
        return f"{type(self).__name__}({self.name!r}, anchor={self.anchor})"


class TextWidget(Widget):
    """Renders text derived from one record, skipping unchanged content."""

    role = FontRole.TEXT

    def __init__(
        self,
        name: str,
        anchor: tuple[int, int],
        record: TelemetryRecord[Any],
        align: Alignment = CENTERED,
    ) -> None:
        super().__init__(name, anchor, align)
        self.record = record
        self._last: tuple[str, Color] | None = None

    def content(self, snapshot: RecordSnapshot[Any]) -> tuple[str, Color]:
        raise NotImplementedError

    def update(self, ctx: RenderContext) -> Visual | None:
        snapshot = self.record.consume()
        if snapshot is None:
            return None
        content = self.content(snapshot)
        if content == self._last:
            return None
        self._last = content
        text, color = content
        return ctx.text(text, color, self.role)

    @property
    def last_content(self) -> tuple[str, Color] | None:
        return self._last


class PowerWidget(TextWidget):
    def content(self, snapshot: RecordSnapshot[PowerReading]) -> tuple[str, Color]:
        reading = snapshot.reading
        if snapshot.online and not math.isnan(reading.power):
            voltage = 0.0 if math.isnan(reading.voltage) else reading.voltage
            return f"{reading.power:.0f}W {voltage:.0f}V", power_color(reading.power)
        return f"{0.0:.0f}W {0.0:.0f}V", GREY


class BatteryWidget(TextWidget):
    def content(self, snapshot: RecordSnapshot[BatteryReading]) -> tuple[str, Color]:
        reading = snapshot.reading
        if snapshot.online and not math.isnan(reading.soc):
            values = [0.0 if math.isnan(v) else v for v in (reading.current, reading.voltage, reading.temp)]
            current, voltage, temp = values
            return f"{reading.soc:.0f}% {current:.2f}A {voltage:.2f}V {temp:.0f}C", battery_color(reading)
        return f"{0.0:.0f}% {0.0:.2f}A {0.0:.2f}V {0.0:.0f}C", GREY


class WeatherWidget(TextWidget):
    def __init__(
        self,
        name: str,
        anchor: tuple[int, int],
        record: TelemetryRecord[WeatherReading],
        label: str,
        align: Alignment = CENTERED,
    ) -> None:
        super().__init__(name, anchor, record, align)
        self.label = label

    def content(self, snapshot: RecordSnapshot[WeatherReading]) -> tuple[str, Color]:
        reading = snapshot.reading
        if not snapshot.online or math.isnan(reading.temperature):
            return f"{self.label} --C", GREY
        text = f"{self.label} {reading.temperature:.1f}C"
        if not math.isnan(reading.humidity):
            text += f" {reading.humidity:.0f}%"
        return text, WHITE


class DoorWidget(TextWidget):
    def content(self, snapshot: RecordSnapshot[DoorReading]) -> tuple[str, Color]:
        is_open = snapshot.reading.is_open
        if not snapshot.online or is_open is None:
            return "Door ?", GREY
        if is_open:
            return "Door open", RED
        return "Door closed", GREEN


class ClockWidget(Widget):
    """HH:MM clock regenerated once per minute."""

    def __init__(
        self,
        name: str,
        anchor: tuple[int, int],
        align: Alignment = CENTERED,
        now: Callable[[], float] = time.time,
    ) -> None:
        super().__init__(name, anchor, align)
        self._now = now
        self._last_minute: int | None = None

    def update(self, ctx: RenderContext) -> Visual | None:
        now = self._now()
        minute = int(now // 60)
        if minute == self._last_minute:
            return None
        self._last_minute = minute
        return ctx.text(time.strftime("%H:%M", time.localtime(now)), WHITE, FontRole.CLOCK)


class IconWidget(Widget):
    """Tinted icon whose colour follows a record; regenerated only on colour change."""

    def __init__(
        self,
        name: str,
        anchor: tuple[int, int],
        icon: str,
        record: TelemetryRecord[Any],
        color_for: Callable[[RecordSnapshot[Any]], Color],
        align: Alignment = TOP_LEFT,
    ) -> None:
        super().__init__(name, anchor, align)
        self.icon = icon
        self.record = record
        self._color_for = color_for
        self._last_color: Color | None = None

    def update(self, ctx: RenderContext) -> Visual | None:
        color = self._color_for(self.record.snapshot())
        if color == self._last_color:
            return None
        self._last_color = color
        return ctx.tinted_icon(self.icon, color)


def mains_present_color(snapshot: RecordSnapshot[PowerReading]) -> Color:
    return GREEN if snapshot.online else BACKGROUND


def mains_absent_color(snapshot: RecordSnapshot[PowerReading]) -> Color:
    return BACKGROUND if snapshot.online else RED


def battery_icon_color(snapshot: RecordSnapshot[BatteryReading]) -> Color:
    return soc_color(snapshot.reading.soc)


class ConfirmState(Enum):
    IDLE = "idle"
    ARMED = "armed"
    CONFIRMING = "confirming"
    COMMITTED = "committed"


class PowerOffWidget(Widget):
    """Click to arm, wait for the colour ramp to commit, click again to cancel.

    ``on_commit`` fires exactly once; after that the widget stops producing
    visuals.
    """

    def __init__(
        self,
        name: str,
        anchor: tuple[int, int],
        on_commit: Callable[[], None],
        increment: float = 0.1,
        idle_color: Color = GREY,
        commit_color: Color = RED,
        icon: str = SHUTDOWN_ICON,
        align: Alignment = TOP_LEFT,
    ) -> None:
        if not 0.0 < increment <= 1.0:
            raise ValueError("increment must be in (0, 1]")
        super().__init__(name, anchor, align, on_click=self.click)
        self.icon = icon
        self.increment = increment
        self.ticks_to_commit = math.ceil(1.0 / increment)
        self.idle_color = idle_color
        self.commit_color = commit_color
        self._on_commit = on_commit
        self._state = ConfirmState.IDLE
        self._ticks = 0
        self._fired = False
        self._needs_render = True

    @property
    def state(self) -> ConfirmState:
        return self._state

    @property
    def progress(self) -> float:
        return min(1.0, self._ticks * self.increment)

    def click(self) -> None:
        if self._state is ConfirmState.IDLE:
            self._state = ConfirmState.ARMED
            self._ticks = 0
            LOGGER.info("[widgets] %s armed", self.name)
        elif self._state in (ConfirmState.ARMED, ConfirmState.CONFIRMING):
            self._state = ConfirmState.IDLE
            self._ticks = 0
            self._needs_render = True
            LOGGER.info("[widgets] %s cancelled", self.name)

    def update(self, ctx: RenderContext) -> Visual | None:
        if self._state is ConfirmState.COMMITTED:
            return None
        if self._state in (ConfirmState.ARMED, ConfirmState.CONFIRMING):
            self._ticks += 1
            if self._ticks >= self.ticks_to_commit:
                self._state = ConfirmState.COMMITTED
                self._commit()
                return None
            self._state = ConfirmState.CONFIRMING
            return ctx.tinted_icon(self.icon, lerp_color(self.idle_color, self.commit_color, self.progress))
        if self._needs_render:
            self._needs_render = False
            return ctx.tinted_icon(self.icon, self.idle_color)
        return None

    def _commit(self) -> None:
        if self._fired:
            return
        self._fired = True
        LOGGER.warning("[widgets] %s confirmed", self.name)
        try:
            self._on_commit()
        except Exception as exc:  # pylint: disable=broad-except
            LOGGER.error("[widgets] %s action failed: %s", self.name, exc, exc_info=True)
