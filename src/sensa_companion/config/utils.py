import copy
import os

import yaml

from sensa_companion.errors import ConfigError

CONFIG_PATH = os.path.join(os.path.dirname(__file__), "device_config.yaml")


def _read_yaml(path):
    try:
        with open(path, "r", encoding="utf-8") as f:
            data = yaml.safe_load(f)
    except OSError as exc:
        raise ConfigError(f"Unable to read config file '{path}': {exc}") from exc
    except yaml.YAMLError as exc:
        raise ConfigError(f"Invalid YAML in '{path}': {exc}") from exc
    if data is None:
        return {}
    if not isinstance(data, dict):
        raise ConfigError(f"Config file '{path}' must contain a mapping")
    return data


def _merge(base, override):
    merged = copy.deepcopy(base)
    for key, value in override.items():
        if isinstance(value, dict) and isinstance(merged.get(key), dict):
            merged[key] = _merge(merged[key], value)
        else:
            merged[key] = value
    return merged


def _check_marker(name, value):
    if not isinstance(value, str) or len(value) != 1 or not value.isascii():
        raise ConfigError(
            f"protocol.{name} must be a single ASCII character, got {value!r}"
        )


def validate_config(config):
    for section in ("device", "protocol", "recording", "logging"):
        if not isinstance(config.get(section), dict):
            raise ConfigError(f"Config section '{section}' must be a mapping")

    device = config["device"]
    for key in ("baudrate", "timeout", "read_size", "discovery_interval"):
        if not isinstance(device.get(key), (int, float)) or device[key] <= 0:
            raise ConfigError(f"device.{key} must be a positive number")
    if not isinstance(device.get("discovery_attempts"), int) or device["discovery_attempts"] < 0:
        raise ConfigError("device.discovery_attempts must be a non-negative integer")

    protocol = config["protocol"]
    _check_marker("start_marker", protocol.get("start_marker"))
    _check_marker("end_marker", protocol.get("end_marker"))
    if protocol["start_marker"] == protocol["end_marker"]:
        raise ConfigError("protocol.start_marker and protocol.end_marker must differ")

    fields = protocol.get("fields")
    if not fields or not all(isinstance(f, str) and f for f in fields):
        raise ConfigError("protocol.fields must be a non-empty list of labels")
    if len(set(fields)) != len(fields):
        raise ConfigError("protocol.fields contains duplicate labels")
    return config


def load_config(path=None):
    """
    Load the packaged defaults and overlay the YAML file at ``path`` if given.
    Nested mappings are merged key by key, everything else is replaced.
    """
    config = _read_yaml(CONFIG_PATH)
    if path is not None:
        config = _merge(config, _read_yaml(path))
    return validate_config(config)


def markers(config):
    protocol = config["protocol"]
    return (
        protocol["start_marker"].encode("ascii"),
        protocol["end_marker"].encode("ascii"),
    )


if __name__ == "__main__":
    resolved = load_config()

    print("Device:")
    for key, value in resolved["device"].items():
        print(f"  {key}: {value}")
    start, end = markers(resolved)
    print(f"\nFrame markers: {start!r} ... {end!r}")
    print("Fields:", ", ".join(resolved["protocol"]["fields"]))
