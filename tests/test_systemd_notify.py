"""Tests for superclock/systemd_notify.py."""

from __future__ import annotations

from unittest.mock import MagicMock, patch

from superclock.systemd_notify import _notify, ready, status, stopping, watchdog


def _socket_mock(mock_socket_class):
    mock_sock = MagicMock()
    mock_socket_class.return_value.__enter__ = MagicMock(return_value=mock_sock)
    mock_socket_class.return_value.__exit__ = MagicMock(return_value=False)
    return mock_sock


def test_notify_noop_when_no_socket():
    """_notify does nothing when NOTIFY_SOCKET is unset."""
    with patch.dict("os.environ", {}, clear=True):
        assert _notify("READY=1") is False


@patch("superclock.systemd_notify.socket.socket")
def test_notify_sends_to_socket(mock_socket_class):
    mock_sock = _socket_mock(mock_socket_class)

    with patch.dict("os.environ", {"NOTIFY_SOCKET": "/run/systemd/notify"}):
        assert _notify("WATCHDOG=1") is True

    mock_sock.sendto.assert_called_once_with(b"WATCHDOG=1", "/run/systemd/notify")


@patch("superclock.systemd_notify.socket.socket")
def test_notify_abstract_socket(mock_socket_class):
    """_notify converts @ prefix to null byte for abstract sockets."""
    mock_sock = _socket_mock(mock_socket_class)

    with patch.dict("os.environ", {"NOTIFY_SOCKET": "@/run/systemd/notify"}):
        _notify("READY=1")

    mock_sock.sendto.assert_called_once_with(b"READY=1", "\0/run/systemd/notify")


@patch("superclock.systemd_notify.socket.socket")
def test_notify_handles_os_error(mock_socket_class):
    mock_sock = _socket_mock(mock_socket_class)
    mock_sock.sendto.side_effect = OSError("Permission denied")

    with patch.dict("os.environ", {"NOTIFY_SOCKET": "/run/systemd/notify"}):
        assert _notify("WATCHDOG=1") is False


@patch("superclock.systemd_notify._notify")
def test_helpers_send_expected_messages(mock_notify):
    ready()
    watchdog()
    stopping()
    status("connected")
    assert [c.args[0] for c in mock_notify.call_args_list] == [
        "READY=1",
        "WATCHDOG=1",
        "STOPPING=1",
        "STATUS=connected",
    ]
