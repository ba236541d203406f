"""
MIT License
Copyright (c) 2026 arpan404
See LICENSE file for full license text.

Permission runtime settings and explicit config loading.
"""

from __future__ import annotations

import os
from dataclasses import dataclass

_TRUTHY = {"1", "true", "yes", "on"}
_FALSY = {"0", "false", "no", "off"}


def _env_value(name: str) -> str | None:
    raw = os.getenv(name)
    if raw is None:
        return None
    value = raw.strip()
    return value or None


def _env_int(name: str, default: int | None) -> int | None:
    value = _env_value(name)
    if value is None:
        return default
    try:
        return int(value)
    except ValueError as exc:
        raise ValueError(f"{name} must be an integer, got {value!r}") from exc


def _env_bool(name: str, default: bool) -> bool:
    value = _env_value(name)
    if value is None:
        return default
    lowered = value.lower()
    if lowered in _TRUTHY:
        return True
    if lowered in _FALSY:
        return False
    raise ValueError(f"{name} must be a boolean flag, got {value!r}")


@dataclass(frozen=True, slots=True)
class PermflowSettings:
    """
    Explicit settings for hosts and coordinators.

    Attributes:
        api_level: Platform API level the host runs on. ``None`` means the
            platform always gates capabilities at run time.
        gated_api_level: First API level that gates capabilities. Below it,
            every capability counts as already granted.
        logging_enabled: Emit verbose per-capability debug traces.
        metrics_backend: ``noop`` or ``prometheus``.
    """

    api_level: int | None = None
    gated_api_level: int = 23
    logging_enabled: bool = False
    metrics_backend: str = "noop"

    @property
    def is_gated(self) -> bool:
        """Whether capabilities are gated at run time on this platform."""
        return self.api_level is None or self.api_level >= self.gated_api_level

    @staticmethod
    def from_env() -> "PermflowSettings":
        """Load settings from ``PERMFLOW_*`` environment variables."""
        return PermflowSettings(
            api_level=_env_int("PERMFLOW_API_LEVEL", None),
            gated_api_level=_env_int("PERMFLOW_GATED_API_LEVEL", 23),
            logging_enabled=_env_bool("PERMFLOW_LOGGING", False),
            metrics_backend=(_env_value("PERMFLOW_METRICS_BACKEND") or "noop").lower(),
        )
