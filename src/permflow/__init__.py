"""
MIT License
Copyright (c) 2026 arpan404
See LICENSE file for full license text.

Async permission request coordination.

Asks for run-time gated capabilities, prompts at most once per capability
while a prompt is outstanding, and streams grant/deny results back in the
order they were asked for.

Quick start::

    from permflow import InMemoryPermissionHost, Permissions

    host = InMemoryPermissionHost(prompt_handler=lambda names: [True] * len(names))
    permissions = Permissions.from_host(host)

    async for granted in permissions.request("CAMERA"):
        ...
"""

from .combinators import batched, ensure, ensure_each, ensure_each_combined, once
from .coordinator import PermissionCoordinator, ReadySource, normalize_names
from .errors import (
    EmptyCombinationError,
    InvalidCapabilityError,
    NoCapabilitiesError,
    PermflowError,
    PromptOutcomeError,
    SignalStateError,
)
from .host import BasePermissionHost, PermissionHost, PromptOutcome
from .memory import InMemoryPermissionHost, PromptHandler
from .metrics import (
    CoordinatorMetrics,
    NoOpCoordinatorMetrics,
    PrometheusCoordinatorMetrics,
    create_coordinator_metrics,
)
from .permissions import Permissions
from .records import PermissionRecord
from .registry import InMemoryPendingRegistry, PendingRegistry
from .settings import PermflowSettings
from .signals import CompletionSignal

__all__ = [
    "Permissions",
    "PermissionCoordinator",
    "PermissionRecord",
    "PermissionHost",
    "BasePermissionHost",
    "InMemoryPermissionHost",
    "PromptHandler",
    "PromptOutcome",
    "PendingRegistry",
    "InMemoryPendingRegistry",
    "CompletionSignal",
    "ReadySource",
    "PermflowSettings",
    "CoordinatorMetrics",
    "NoOpCoordinatorMetrics",
    "PrometheusCoordinatorMetrics",
    "create_coordinator_metrics",
    "ensure",
    "ensure_each",
    "ensure_each_combined",
    "batched",
    "once",
    "normalize_names",
    "PermflowError",
    "NoCapabilitiesError",
    "InvalidCapabilityError",
    "EmptyCombinationError",
    "PromptOutcomeError",
    "SignalStateError",
]
