import sys

import atheris

with atheris.instrument_imports():
    from superclock.utils import (
        coerce_bool,
        coerce_float,
        decode_json_object,
        parse_bool,
        parse_float,
        parse_int,
        same_value,
    )


def TestOneInput(data: bytes) -> None:
    """Fuzz env and payload helpers with arbitrary input."""
    value = data.decode("utf-8", errors="ignore")

    # Env parsers fall back to their defaults (should never raise)
    parse_bool(value)
    parse_int(value, default=0)
    parse_float(value, default=0.0)

    coerce_float(value)
    coerce_bool(value)

    decoded = decode_json_object(data)
    if decoded is not None:
        for item in decoded.values():
            number = coerce_float(item)
            assert same_value(number, number)
            coerce_bool(item)


def main() -> None:
    atheris.Setup(sys.argv, TestOneInput)
    atheris.Fuzz()


if __name__ == "__main__":
    main()
