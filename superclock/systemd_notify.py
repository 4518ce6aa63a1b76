"""sd_notify over ``$NOTIFY_SOCKET``; every call is a no-op outside systemd."""

from __future__ import annotations

import logging
import os
import socket

_logger = logging.getLogger(__name__)


def _notify(message: str) -> bool:
    addr = os.environ.get("NOTIFY_SOCKET")
    if not addr:
        return False
    if addr.startswith("@"):
        addr = "\0" + addr[1:]  # abstract socket
    try:
        with socket.socket(socket.AF_UNIX, socket.SOCK_DGRAM) as sock:
            sock.sendto(message.encode(), addr)
    except OSError as exc:
        _logger.debug("[sd_notify] Failed to send '%s': %s", message, exc)
        return False
    return True


def ready() -> bool:
    return _notify("READY=1")


def watchdog() -> bool:
    return _notify("WATCHDOG=1")


def stopping() -> bool:
    return _notify("STOPPING=1")


def status(text: str) -> bool:
    """Free-form status line shown by ``systemctl status``."""
    return _notify(f"STATUS={text}")
