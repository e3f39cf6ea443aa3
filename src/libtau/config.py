"""Project-wide configuration constants and config-file loading.

Central place for tuneable parameters shared across modules.
Import individual names where needed.

Example:
    >>> from libtau.config import load_config, NORMAL_TIMEOUT_MS
    >>> cfg = load_config("tau.toml")
    >>> cfg["transport"]
    'serial'
"""

import tomllib

# Per-byte read deadline in milliseconds during a normal transaction.
NORMAL_TIMEOUT_MS = 1000

# Per-byte read deadline in milliseconds while draining stale input.
FLUSH_TIMEOUT_MS = 10

# The Tau serial port only runs at 57600 8N1.
DEFAULT_BAUDRATE = 57600

TRANSPORTS = ("serial", "tcp")


def load_config(path: str) -> dict:
    """Read a TOML config file and validate required keys.

    Top-level ``transport`` (str, "serial" or "tcp") selects the link,
    defaulting to "serial".

    For serial: ``[serial]`` section with ``port`` (str) and optional
    ``baudrate`` (int, default 57600).
    For tcp: ``[tcp]`` section with ``host`` (str) and ``port`` (int).
    Optional ``[timeouts]`` section with ``normal_ms`` and ``flush_ms``
    (int, milliseconds).

    Raises:
        ValueError: If any required key is missing or has the wrong type.

    Example:
        >>> cfg = load_config("tau.toml")
        >>> cfg["port"], cfg["baudrate"]
        ('/dev/ttyUSB0', 57600)
    """
    with open(path, "rb") as f:
        raw = tomllib.load(f)

    transport = raw.get("transport", "serial")
    if not isinstance(transport, str):
        raise ValueError("transport must be str, got %s" % type(transport).__name__)
    if transport not in TRANSPORTS:
        raise ValueError("transport must be 'serial' or 'tcp', got '%s'" % transport)

    result = {"transport": transport}

    if transport == "serial":
        section = _require_section(raw, "serial")
        _require_str(section, "port", "serial.")
        result["port"] = section["port"]
        result["baudrate"] = _optional_int(
            section, "baudrate", DEFAULT_BAUDRATE, "serial."
        )
    else:
        section = _require_section(raw, "tcp")
        _require_str(section, "host", "tcp.")
        _require_int(section, "port", "tcp.")
        if not (1 <= section["port"] <= 65535):
            raise ValueError("tcp.port must be 1-65535, got %d" % section["port"])
        result["host"] = section["host"]
        result["port"] = section["port"]

    timeouts = raw.get("timeouts", {})
    if not isinstance(timeouts, dict):
        raise ValueError("[timeouts] must be a table")
    result["timeout_ms"] = _optional_int(
        timeouts, "normal_ms", NORMAL_TIMEOUT_MS, "timeouts."
    )
    result["flush_timeout_ms"] = _optional_int(
        timeouts, "flush_ms", FLUSH_TIMEOUT_MS, "timeouts."
    )
    for key in ("timeout_ms", "flush_timeout_ms"):
        if result[key] <= 0:
            raise ValueError("%s must be positive, got %d" % (key, result[key]))

    return result


def _require_section(raw: dict[str, object], name: str) -> dict:
    """Return the ``[name]`` table, raising if it is absent or not a table."""
    if name not in raw:
        raise ValueError("%s transport requires [%s] section" % (name, name))
    section = raw[name]
    if not isinstance(section, dict):
        raise ValueError("[%s] must be a table" % name)
    return section


def _require_str(raw: dict[str, object], key: str, prefix: str = "") -> None:
    """Validate that *key* exists in *raw* and is a str."""
    if key not in raw:
        raise ValueError("missing required key: %s%s" % (prefix, key))
    if not isinstance(raw[key], str):
        raise ValueError(
            "%s%s must be str, got %s" % (prefix, key, type(raw[key]).__name__)
        )


def _require_int(raw: dict[str, object], key: str, prefix: str = "") -> None:
    """Validate that *key* exists in *raw* and is an int."""
    if key not in raw:
        raise ValueError("missing required key: %s%s" % (prefix, key))
    if not isinstance(raw[key], int) or isinstance(raw[key], bool):
        raise ValueError(
            "%s%s must be int, got %s" % (prefix, key, type(raw[key]).__name__)
        )


def _optional_int(raw: dict[str, object], key: str, default: int, prefix: str = "") -> int:
    """Return ``raw[key]`` if present (validated as int), else *default*."""
    if key not in raw:
        return default
    _require_int(raw, key, prefix)
    return raw[key]
