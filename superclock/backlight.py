"""Backlight control and the cancellable brightness ramp."""

from __future__ import annotations

import logging
import subprocess  # nosec B404 - brightness control relies on CLI calls
import threading
from collections.abc import Callable
from pathlib import Path

LOGGER = logging.getLogger(__name__)

BACKLIGHT_ROOT = Path("/sys/class/backlight")


def find_backlight_device(explicit: str | None = None, root: Path = BACKLIGHT_ROOT) -> str | None:
    """Find the backlight device path.

    Uses ``explicit`` when it exists, otherwise the first device under
    /sys/class/backlight exposing both ``brightness`` and ``max_brightness``.

    Returns:
        The backlight device path (e.g., "/sys/class/backlight/rpi_backlight") or None if not found.
    """
    if explicit and Path(explicit).exists():
        return explicit
    if root.exists():
        for device in sorted(root.iterdir()):
            if (device / "brightness").exists() and (device / "max_brightness").exists():
                return str(device)
    return None


def get_brightness(device_path: str) -> int | None:
    """Current brightness percentage read from sysfs, or None if unavailable."""
    try:
        device = Path(device_path)
        max_brightness = int((device / "max_brightness").read_text(encoding="utf-8").strip())
        current = int((device / "brightness").read_text(encoding="utf-8").strip())
    except (OSError, ValueError):
        return None
    if max_brightness <= 0:
        return None
    return int((current * 100) / max_brightness)


def set_brightness(percent: int, device_path: str) -> bool:
    """Set screen brightness.

    Args:
        percent: Brightness percentage (0-100), will be clamped to valid range.
        device_path: Backlight device path.

    Returns:
        True if successful, False otherwise.
    """
    percent = max(0, min(100, percent))
    device = Path(device_path)
    try:
        # nosec B603 B607: command is hardcoded and percent is clamped to 0-100
        result = subprocess.run(
            ["brightnessctl", "--quiet", "--device", device.name, "set", f"{percent}%"],
            check=False,
            capture_output=True,
        )
        if result.returncode == 0:
            return True
    except OSError:
        pass

    # Fallback: write directly to sysfs
    try:
        max_brightness = int((device / "max_brightness").read_text(encoding="utf-8").strip())
        scaled = max(0, min(max_brightness, int(max_brightness * percent / 100)))
        (device / "brightness").write_text(f"{scaled}\n", encoding="utf-8")
        return True
    except (OSError, ValueError) as exc:
        LOGGER.debug("[backlight] Unable to write %s: %s", device_path, exc)
    return False


class BacklightFader:
    """Ramps brightness toward the last requested level on a worker thread.

    A new target cancels the running ramp through its event, joins it, and
    starts a replacement, so at most one ramp thread is ever alive. Requests
    for the current target are ignored.
    """

    def __init__(
        self,
        writer: Callable[[int], bool] | None,
        steps: int = 10,
        step_seconds: float = 0.01,
        initial: int | None = None,
        logger: logging.Logger | None = None,
    ) -> None:
        self._writer = writer
        self.steps = max(1, steps)
        self.step_seconds = step_seconds
        self._logger = logger or LOGGER
        self._lock = threading.Lock()
        self._level = initial
        self._target: int | None = None
        self._cancel = threading.Event()
        self._thread: threading.Thread | None = None
        self._closed = False

    @classmethod
    def for_device(
        cls,
        device_path: str | None,
        steps: int = 10,
        step_seconds: float = 0.01,
        logger: logging.Logger | None = None,
    ) -> BacklightFader:
        log = logger or LOGGER
        if not device_path:
            log.info("[backlight] No backlight device found; brightness control disabled")
            return cls(None, steps, step_seconds, logger=log)
        log.info("[backlight] Using %s", device_path)

        def _write(level: int) -> bool:
            return set_brightness(level, device_path)

        return cls(_write, steps, step_seconds, initial=get_brightness(device_path), logger=log)

    @property
    def enabled(self) -> bool:
        return self._writer is not None

    @property
    def level(self) -> int | None:
        return self._level

    @property
    def target(self) -> int | None:
        return self._target

    def fade_to(self, target: int) -> bool:
        """Start a ramp toward ``target``; False when nothing was started."""
        if self._writer is None or self._closed:
            return False
        target = max(0, min(100, target))
        with self._lock:
            if target == self._target:
                return False
            self._stop_ramp()
            self._target = target
            cancel = threading.Event()
            self._cancel = cancel
            thread = threading.Thread(
                target=self._ramp,
                args=(target, cancel),
                name="superclock-backlight",
                daemon=True,
            )
            self._thread = thread
            thread.start()
        self._logger.debug("[backlight] Fading to %s%%", target)
        return True

    def _stop_ramp(self) -> None:
        self._cancel.set()
        thread = self._thread
        if thread and thread.is_alive() and thread is not threading.current_thread():
            thread.join()
        self._thread = None

    def _ramp(self, target: int, cancel: threading.Event) -> None:
        start = self._level if self._level is not None else target
        step = (target - start) / self.steps
        for index in range(self.steps):
            if cancel.is_set():
                return
            self._write(start + int(step * index))
            if cancel.wait(self.step_seconds):
                return
        self._write(target)

    def _write(self, level: int) -> None:
        if self._level == level or self._writer is None:
            return
        if self._writer(level):
            self._level = level
        else:
            self._logger.debug("[backlight] Failed to set brightness to %s%%", level)

    def wait(self, timeout: float | None = None) -> None:
        """Block until the running ramp (if any) finishes."""
        thread = self._thread
        if thread is not None:
            thread.join(timeout)

    def shutdown(self, restore: int | None = None) -> None:
        """Cancel any ramp; optionally leave the panel at ``restore`` percent."""
        if self._closed:
            return
        self._closed = True
        with self._lock:
            self._stop_ramp()
        if restore is not None:
            self._write(max(0, min(100, restore)))
