"""Reconnecting MQTT client for the kiosk.

The client is driven by a manual ``loop()`` poll on its own thread instead of
paho's ``loop_start()`` so that every loop result can be classified and the
reconnect cooldowns stay cancellable by ``shutdown()``.
"""

from __future__ import annotations

import logging
import ssl
import threading
from collections.abc import Callable
from enum import Enum

import paho.mqtt.client as mqtt

from superclock.config import MqttConfig
from superclock.dispatch import TopicDispatcher

LOGGER = logging.getLogger(__name__)

ONLINE = "Online"
OFFLINE = "Offline"

RECOVERABLE_ERRORS = frozenset(
    {
        mqtt.MQTT_ERR_PROTOCOL,
        mqtt.MQTT_ERR_NOMEM,
        mqtt.MQTT_ERR_CONN_LOST,
        mqtt.MQTT_ERR_ERRNO,
        mqtt.MQTT_ERR_INVAL,
    }
)


class ConnectionState(Enum):
    DISCONNECTED = "disconnected"
    CONNECTING = "connecting"
    CONNECTED = "connected"
    RECONNECT_BACKOFF = "reconnect_backoff"


class LoopOutcome(Enum):
    SUCCESS = "success"
    NOT_CONNECTED = "not_connected"
    RECOVERABLE = "recoverable"
    REFUSED = "refused"
    UNKNOWN = "unknown"


def classify_loop_result(rc: int) -> LoopOutcome:
    if rc == mqtt.MQTT_ERR_SUCCESS:
        return LoopOutcome.SUCCESS
    if rc == mqtt.MQTT_ERR_NO_CONN:
        return LoopOutcome.NOT_CONNECTED
    if rc == mqtt.MQTT_ERR_CONN_REFUSED:
        return LoopOutcome.REFUSED
    if rc in RECOVERABLE_ERRORS:
        return LoopOutcome.RECOVERABLE
    return LoopOutcome.UNKNOWN


def _is_mqtt_success(reason_code) -> bool:
    try:
        if hasattr(reason_code, "is_failure"):
            return not reason_code.is_failure
        if hasattr(reason_code, "value"):
            return int(reason_code.value) == 0
        return int(reason_code) == 0
    except (TypeError, ValueError):
        return False


def _error_string(rc) -> str:
    try:
        return mqtt.error_string(rc)
    except Exception:  # pylint: disable=broad-except
        return str(rc)


class KioskMqtt:
    """MQTT session owner: liveness, resubscription and topic dispatch."""

    def __init__(
        self,
        config: MqttConfig,
        dispatcher: TopicDispatcher,
        logger: logging.Logger | None = None,
    ) -> None:
        self.config = config
        self.dispatcher = dispatcher
        self._logger = logger or LOGGER
        self._state = ConnectionState.DISCONNECTED
        self._state_lock = threading.Lock()
        self._publish_lock = threading.Lock()
        self._stop_event = threading.Event()
        self._thread: threading.Thread | None = None
        self._closed = False
        self._refused = False
        self._connect_listeners: list[Callable[[], None]] = []
        self._client: mqtt.Client | None = self._create_client()

    def _create_client(self) -> mqtt.Client | None:
        callback_kwargs: dict[str, object] = {}
        if hasattr(mqtt, "CallbackAPIVersion"):
            callback_kwargs["callback_api_version"] = mqtt.CallbackAPIVersion.VERSION2
        try:
            client = mqtt.Client(client_id=self.config.client_id, clean_session=True, **callback_kwargs)
        except Exception as exc:  # pylint: disable=broad-except
            self._logger.error("[mqtt] Unable to allocate MQTT client; telemetry disabled: %s", exc)
            return None
        if self.config.username:
            client.username_pw_set(self.config.username, self.config.password or "")
        if self.config.tls_enabled:
            tls_kwargs: dict[str, object] = {}
            if self.config.ca_cert:
                tls_kwargs["ca_certs"] = self.config.ca_cert
            if self.config.cert:
                tls_kwargs["certfile"] = self.config.cert
            if self.config.key:
                tls_kwargs["keyfile"] = self.config.key
            tls_kwargs["tls_version"] = getattr(ssl, "PROTOCOL_TLS_CLIENT", ssl.PROTOCOL_TLS)
            client.tls_set(**tls_kwargs)
        client.will_set(self.config.liveness_topic, payload=OFFLINE, qos=0, retain=True)
        client.on_connect = self._on_connect
        client.on_disconnect = self._on_disconnect
        client.on_message = self._on_message
        return client

    # ------------------------------------------------------------------
    # State
    # ------------------------------------------------------------------

    @property
    def state(self) -> ConnectionState:
        with self._state_lock:
            return self._state

    def _set_state(self, state: ConnectionState) -> None:
        with self._state_lock:
            previous = self._state
            self._state = state
        if previous != state:
            self._logger.debug("[mqtt] %s -> %s", previous.value, state.value)

    @property
    def available(self) -> bool:
        """False when the client handle could not be allocated."""
        return self._client is not None

    def is_connected(self) -> bool:
        return self.state == ConnectionState.CONNECTED

    def add_connect_listener(self, callback: Callable[[], None]) -> None:
        """Run ``callback`` on the loop thread after every successful (re)connect."""
        self._connect_listeners.append(callback)

    # ------------------------------------------------------------------
    # Connection
    # ------------------------------------------------------------------

    def connect(self) -> bool:
        client = self._client
        if client is None:
            return False
        if not self.config.host:
            self._logger.warning("[mqtt] MQTT host not configured; telemetry disabled")
            return False
        self.dispatcher.seal()
        self._set_state(ConnectionState.CONNECTING)
        self._logger.info(
            "[mqtt] Connecting to %s:%s as %s", self.config.host, self.config.port, self.config.client_id
        )
        try:
            rc = client.connect(self.config.host, self.config.port, keepalive=self.config.keepalive)
        except (OSError, ValueError) as exc:
            self._logger.warning("[mqtt] Failed to connect to MQTT: %s", exc)
            self._set_state(ConnectionState.DISCONNECTED)
            return False
        if rc != mqtt.MQTT_ERR_SUCCESS:
            self._logger.warning("[mqtt] Failed to connect to MQTT: %s", _error_string(rc))
            self._set_state(ConnectionState.DISCONNECTED)
            return False
        return True

    def start(self) -> None:
        """Run the polling loop on a daemon thread."""
        if self._client is None or self._closed:
            return
        if self._thread and self._thread.is_alive():
            return
        self._stop_event.clear()
        thread = threading.Thread(target=self.run, name="superclock-mqtt", daemon=True)
        self._thread = thread
        thread.start()

    def run(self) -> None:
        if self._client is None:
            return
        self._logger.info("[mqtt] Loop started")
        while not self._stop_event.is_set():
            self.poll_once()
        self._logger.info("[mqtt] Loop finished")

    def poll_once(self) -> LoopOutcome:
        """Service network I/O for one poll slice and react to the result."""
        client = self._client
        if client is None:
            return LoopOutcome.UNKNOWN
        rc = client.loop(timeout=self.config.poll_seconds)
        outcome = classify_loop_result(rc)
        if self._refused:
            outcome = LoopOutcome.REFUSED
        if outcome is LoopOutcome.REFUSED:
            # A refused CONNACK waits out the cooldown before the next connect attempt.
            self._refused = False
            self._set_state(ConnectionState.RECONNECT_BACKOFF)
            self._logger.error(
                "[mqtt] Connection refused; retrying in %.0fs", self.config.reconnect_cooldown_seconds
            )
            self._stop_event.wait(self.config.reconnect_cooldown_seconds)
        elif outcome is LoopOutcome.NOT_CONNECTED:
            if not self.connect():
                self._set_state(ConnectionState.RECONNECT_BACKOFF)
                self._stop_event.wait(self.config.connect_retry_seconds)
        elif outcome is LoopOutcome.RECOVERABLE:
            self._logger.error("[mqtt] Transport error: %s", _error_string(rc))
            try:
                client.disconnect()
            except Exception as exc:  # pylint: disable=broad-except
                self._logger.debug("[mqtt] Disconnect after transport error failed: %s", exc)
            self._set_state(ConnectionState.RECONNECT_BACKOFF)
            self._logger.error("[mqtt] Disconnected; retrying in %.0fs", self.config.reconnect_cooldown_seconds)
            if self._stop_event.wait(self.config.reconnect_cooldown_seconds):
                return outcome
            self._logger.error("[mqtt] Trying to reconnect")
            if self.connect():
                self._logger.info("[mqtt] Reconnect request sent")
            else:
                self._logger.error("[mqtt] Reconnect failed")
        elif outcome is LoopOutcome.UNKNOWN:
            self._logger.error("[mqtt] Unknown error (%s) from MQTT loop", rc)
        return outcome

    def shutdown(self) -> None:
        if self._closed:
            return
        self._closed = True
        self._stop_event.set()
        thread = self._thread
        if thread and thread is not threading.current_thread():
            thread.join()
        self._thread = None
        client = self._client
        if client is None:
            return
        if self.is_connected():
            self._publish(self.config.liveness_topic, OFFLINE, retain=True)
        try:
            client.disconnect()
        except Exception as exc:  # pylint: disable=broad-except
            self._logger.debug("[mqtt] Disconnect during shutdown failed: %s", exc)
        self._set_state(ConnectionState.DISCONNECTED)
        self._logger.info("[mqtt] Shut down")

    # ------------------------------------------------------------------
    # Publishing
    # ------------------------------------------------------------------

    def publish(self, topic: str, payload: str, retain: bool = False, qos: int = 0) -> bool:
        if self._closed:
            return False
        return self._publish(topic, payload, retain=retain, qos=qos)

    def _publish(self, topic: str, payload: str, *, retain: bool = False, qos: int = 0) -> bool:
        client = self._client
        if client is None:
            return False
        try:
            with self._publish_lock:
                result = client.publish(topic, payload=payload, qos=qos, retain=retain)
        except Exception as exc:  # pylint: disable=broad-except
            self._logger.warning("[mqtt] Failed to publish topic '%s': %s", topic, exc)
            return False
        if result.rc != mqtt.MQTT_ERR_SUCCESS:
            self._logger.warning("[mqtt] Failed to publish topic '%s' (%s)", topic, _error_string(result.rc))
            return False
        return True

    def publish_liveness(self, online: bool) -> bool:
        message = ONLINE if online else OFFLINE
        self._logger.info("[mqtt] publish %s: %s", self.config.liveness_topic, message)
        return self._publish(self.config.liveness_topic, message, retain=True)

    # ------------------------------------------------------------------
    # paho callbacks (run on the loop thread)
    # ------------------------------------------------------------------

    def _on_connect(self, client, _userdata, _flags, reason_code, properties=None):  # type: ignore[no-untyped-def]
        if not _is_mqtt_success(reason_code):
            self._logger.error("[mqtt] Connection refused (reason=%s, properties=%s)", reason_code, properties)
            self._refused = True
            self._set_state(ConnectionState.RECONNECT_BACKOFF)
            return
        self._refused = False
        self._set_state(ConnectionState.CONNECTED)
        self._logger.info("[mqtt] Connected (reason=%s); subscribing to topics", reason_code)
        for topic in self.dispatcher.topics():
            result, _mid = client.subscribe(topic, qos=0)
            if result != mqtt.MQTT_ERR_SUCCESS:
                self._logger.warning("[mqtt] Failed to subscribe to topic: %s (rc=%s)", topic, result)
            else:
                self._logger.info("[mqtt] Subscribed to %s", topic)
        self.publish_liveness(True)
        for listener in self._connect_listeners:
            try:
                listener()
            except Exception as exc:  # pylint: disable=broad-except
                self._logger.error("[mqtt] Connect listener failed: %s", exc, exc_info=True)

    def _on_disconnect(self, _client, _userdata, _flags, reason_code, properties=None):  # type: ignore[no-untyped-def]
        self._logger.warning("[mqtt] Disconnected (reason=%s)", reason_code)
        if not self._closed:
            self._set_state(ConnectionState.DISCONNECTED)

    def _on_message(self, _client, _userdata, message):  # type: ignore[no-untyped-def]
        topic = getattr(message, "topic", "")
        try:
            self.dispatcher.dispatch(topic, message.payload)
        except Exception as exc:  # pylint: disable=broad-except
            self._logger.error("[mqtt] Handler failed for topic '%s': %s", topic, exc, exc_info=True)
