import sys

import atheris

with atheris.instrument_imports():
    from superclock.config import KioskConfig

KEYS = (
    "MQTT_HOST",
    "MQTT_PORT",
    "MQTT_KEEPALIVE",
    "MQTT_TLS_ENABLED",
    "SUPERCLOCK_WIDTH",
    "SUPERCLOCK_HEIGHT",
    "SUPERCLOCK_TICK_SECONDS",
    "SUPERCLOCK_BRIGHT_LEVEL",
    "SUPERCLOCK_DIM_LEVEL",
    "SUPERCLOCK_CONFIRM_INCREMENT",
    "SUPERCLOCK_STATE_INTERVAL",
    "SUPERCLOCK_TOPIC_POWER",
    "SUPERCLOCK_POWER_MODEL",
)


def TestOneInput(data: bytes) -> None:
    """Build a config from arbitrary env values; every field must stay in range."""
    fdp = atheris.FuzzedDataProvider(data)
    env = {"SUPERCLOCK_HOSTNAME": "fuzz"}
    for key in KEYS:
        if fdp.ConsumeBool():
            env[key] = fdp.ConsumeUnicodeNoSurrogates(32)
    config = KioskConfig.from_env(env)
    assert 0 <= config.display.dim_level <= 100
    assert 0 <= config.display.bright_level <= 100
    assert 0.0 < config.display.confirm_increment <= 1.0
    assert config.display.width >= 1 and config.display.height >= 1
    assert config.topics.power_model


def main() -> None:
    atheris.Setup(sys.argv, TestOneInput)
    atheris.Fuzz()


if __name__ == "__main__":
    main()
