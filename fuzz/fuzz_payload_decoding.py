import sys

import atheris

with atheris.instrument_imports():
    from superclock.config import KioskConfig
    from superclock.dispatch import build_dispatch_table, parse_availability
    from superclock.telemetry import TelemetryStore

CONFIG = KioskConfig.from_env({"SUPERCLOCK_HOSTNAME": "fuzz"})


def TestOneInput(data: bytes) -> None:
    """Feed arbitrary payloads to every subscribed topic; dispatch must never raise."""
    fdp = atheris.FuzzedDataProvider(data)
    store = TelemetryStore()
    dispatcher = build_dispatch_table(store, CONFIG.topics)
    topics = dispatcher.topics()
    topic = topics[fdp.ConsumeIntInRange(0, len(topics) - 1)]
    payload = fdp.ConsumeBytes(fdp.remaining_bytes())

    parse_availability(payload)
    dispatcher.dispatch(topic, payload)
    for record in store.records():
        record.consume()

    # Replaying a sensor payload must never mark a record dirty again
    dispatcher.dispatch(topic, payload)
    if not topic.endswith("/LWT"):
        assert all(record.consume() is None for record in store.records())


def main() -> None:
    atheris.Setup(sys.argv, TestOneInput)
    atheris.Fuzz()


if __name__ == "__main__":
    main()
