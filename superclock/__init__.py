"""
SuperClock - MQTT telemetry kiosk display

Mirrors remote device telemetry (mains power meter, house battery, indoor and
outdoor weather, door contact) published over MQTT and renders it as a handful
of widgets on a small always-on screen, repainting only what changed.

Core modules:
- telemetry: Change-tracked in-memory records for every monitored entity
- dispatch: Topic table routing inbound MQTT payloads into the records
- mqtt: Reconnecting MQTT client with last-will liveness
- widgets / scene: Self-updating widgets and the dirty-driven render scheduler
- heartbeat: Periodic STATE/SENSOR announcements for this node
- backlight: Screen brightness control with cancellable fades
"""

__version__ = "0.4.2"
