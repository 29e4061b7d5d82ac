"""Configuration loading for sysdash.

Settings come from three layers, later ones winning:

1. ``DEFAULT_CONFIG``
2. a TOML file: the ``--config`` path if given, else
   ``~/.config/sysdash/config.toml`` when it exists
3. the ``SYSDASH_API_URL`` environment variable (endpoint only)

Command-line flags are applied on top of this by ``sysdash.app``.
"""

from __future__ import annotations

import os
import sys
import tomllib
from collections.abc import Callable
from pathlib import Path
from typing import Any

DEFAULT_API_URL = "http://localhost:3000/api/system/all"

DEFAULT_CONFIG: dict[str, Any] = {
    "api_url": DEFAULT_API_URL,
    "interval_ms": 5000,
    "auto_refresh": True,
    "timeout": 10.0,
}

ENV_API_URL = "SYSDASH_API_URL"

_DEFAULT_PATH = Path.home() / ".config" / "sysdash" / "config.toml"


class ConfigError(ValueError):
    """A config file is missing, unparsable, or holds a value of the wrong type."""


def _is_url(value: Any) -> bool:
    return isinstance(value, str) and bool(value.strip())


def _is_interval(value: Any) -> bool:
    return isinstance(value, int) and not isinstance(value, bool) and value > 0


def _is_timeout(value: Any) -> bool:
    return isinstance(value, (int, float)) and not isinstance(value, bool) and value > 0


_CHECKS: dict[str, tuple[Callable[[Any], bool], str]] = {
    "api_url": (_is_url, "a non-empty string"),
    "interval_ms": (_is_interval, "a positive integer"),
    "auto_refresh": (lambda v: isinstance(v, bool), "true or false"),
    "timeout": (_is_timeout, "a positive number"),
}


def _read(path: Path) -> dict[str, Any]:
    if not path.is_file():
        raise ConfigError(f"config file not found: {path}")
    try:
        return tomllib.loads(path.read_text(encoding="utf-8"))
    except (tomllib.TOMLDecodeError, UnicodeDecodeError) as e:
        raise ConfigError(f"invalid TOML in {path}: {e}") from e


def _validated(data: dict[str, Any], source: Path, strict: bool) -> dict[str, Any]:
    """Keep known keys whose values have the right type.

    Unknown keys are dropped. A bad value raises ConfigError when ``strict``,
    otherwise it is reported on stderr and the default is kept.
    """
    settings: dict[str, Any] = {}
    for key, value in data.items():
        if key not in _CHECKS:
            continue
        check, expected = _CHECKS[key]
        if check(value):
            settings[key] = float(value) if key == "timeout" else value
            continue
        message = f"{source}: {key} must be {expected}, got {value!r}"
        if strict:
            raise ConfigError(message)
        print(f"sysdash: warning: ignoring {message}", file=sys.stderr)
    return settings


def load_config(path: Path | None = None) -> dict[str, Any]:
    """Return the merged configuration dict.

    An explicit ``path`` must exist and be valid, otherwise the error is
    printed and SystemExit(1) raised. Problems with the default file only
    produce a warning.
    """
    config = dict(DEFAULT_CONFIG)
    if path is not None:
        try:
            config.update(_validated(_read(path), path, strict=True))
        except ConfigError as e:
            print(f"sysdash: {e}", file=sys.stderr)
            raise SystemExit(1) from e
    elif _DEFAULT_PATH.is_file():
        try:
            config.update(_validated(_read(_DEFAULT_PATH), _DEFAULT_PATH, strict=False))
        except ConfigError as e:
            print(f"sysdash: warning: ignoring {e}", file=sys.stderr)

    url = os.environ.get(ENV_API_URL)
    if url:
        config["api_url"] = url
    return config


def dump_default_config() -> str:
    """Default configuration as a commented TOML document."""
    body = "\n".join(
        f"{key} = {_toml_value(value)}" for key, value in DEFAULT_CONFIG.items()
    )
    return f"# sysdash configuration\n# Place this file at ~/.config/sysdash/config.toml\n\n{body}\n"


def _toml_value(value: Any) -> str:
    if isinstance(value, bool):
        return "true" if value else "false"
    if isinstance(value, str):
        return f'"{value}"'
    return str(value)
