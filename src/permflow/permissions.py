"""
MIT License
Copyright (c) 2026 arpan404
See LICENSE file for full license text.

Caller-facing permissions facade.
"""

from __future__ import annotations

from collections.abc import AsyncIterator
from typing import Any

from .combinators import Transformer, ensure, ensure_each, ensure_each_combined, once
from .coordinator import PermissionCoordinator
from .host import PermissionHost
from .memory import InMemoryPermissionHost
from .metrics import CoordinatorMetrics, create_coordinator_metrics
from .records import PermissionRecord
from .settings import PermflowSettings


class Permissions:
    """
    Entry point for asking permissions from async code.

    Usage::

        permissions = Permissions.from_settings()
        async for granted in permissions.request("CAMERA", "MICROPHONE"):
            if granted:
                start_recording()

    ``ensure*`` return transformers to apply to a trigger stream; the
    ``request*`` variants ask right away.
    """

    def __init__(self, coordinator: PermissionCoordinator) -> None:
        self._coordinator = coordinator

    @classmethod
    def from_host(
        cls,
        host: PermissionHost,
        *,
        metrics: CoordinatorMetrics | str | None = None,
        logging_enabled: bool = False,
    ) -> "Permissions":
        """Build a facade and coordinator over ``host``."""
        coordinator = PermissionCoordinator(
            host,
            metrics=create_coordinator_metrics(metrics),
            logging_enabled=logging_enabled,
        )
        return cls(coordinator)

    @classmethod
    def from_settings(
        cls, settings: PermflowSettings | None = None, **host_kwargs: Any
    ) -> "Permissions":
        """
        Build a facade over an ``InMemoryPermissionHost``.

        Args:
            settings: Explicit settings; loaded from the environment when omitted.
            **host_kwargs: Extra ``InMemoryPermissionHost`` arguments.
        """
        resolved = settings or PermflowSettings.from_env()
        host = InMemoryPermissionHost.from_settings(resolved, **host_kwargs)
        return cls.from_host(
            host,
            metrics=resolved.metrics_backend,
            logging_enabled=resolved.logging_enabled,
        )

    @property
    def coordinator(self) -> PermissionCoordinator:
        return self._coordinator

    @property
    def host(self) -> PermissionHost:
        return self._coordinator.host

    def ensure(self, *names: str) -> Transformer[bool]:
        """Transformer emitting ``True`` when every name is granted."""
        return ensure(self._coordinator, *names)

    def ensure_each(self, *names: str) -> Transformer[PermissionRecord]:
        """Transformer emitting one record per name."""
        return ensure_each(self._coordinator, *names)

    def ensure_each_combined(self, *names: str) -> Transformer[PermissionRecord]:
        """Transformer emitting one combined record for all names."""
        return ensure_each_combined(self._coordinator, *names)

    def request(self, *names: str) -> AsyncIterator[bool]:
        """Ask for ``names`` now; emits ``True`` if all are granted."""
        return self.ensure(*names)(once())

    def request_each(self, *names: str) -> AsyncIterator[PermissionRecord]:
        """Ask for ``names`` now; emits one record per name."""
        return self.ensure_each(*names)(once())

    def request_each_combined(self, *names: str) -> AsyncIterator[PermissionRecord]:
        """Ask for ``names`` now; emits one combined record."""
        return self.ensure_each_combined(*names)(once())

    def is_granted(self, name: str) -> bool:
        """Whether ``name`` is granted. Always true on ungated platforms."""
        return self._coordinator.is_granted(name)

    def is_revoked(self, name: str) -> bool:
        """Whether ``name`` has been revoked by a policy. Always false on ungated platforms."""
        return self._coordinator.is_revoked(name)

    def should_show_rationale(self, *names: str) -> bool:
        return self._coordinator.should_show_rationale(*names)

    def set_logging(self, enabled: bool) -> None:
        self._coordinator.set_logging(enabled)
