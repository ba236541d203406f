"""
MIT License
Copyright (c) 2026 arpan404
See LICENSE file for full license text.

Metrics adapters for coordinator observability.
"""

from __future__ import annotations

from collections.abc import Mapping
from typing import Any, Protocol


class CoordinatorMetrics(Protocol):
    """Minimal metrics interface for coordinator instrumentation."""

    def incr(
        self, name: str, value: int = 1, *, tags: Mapping[str, str] | None = None
    ) -> None:
        """Increment a counter metric."""


class NoOpCoordinatorMetrics:
    """Default metrics sink when no metrics backend is provided."""

    def incr(
        self, name: str, value: int = 1, *, tags: Mapping[str, str] | None = None
    ) -> None:
        return None


# Counter name -> (help text, label names). These are the only counters the
# coordinator emits.
COORDINATOR_COUNTERS: dict[str, tuple[str, tuple[str, ...]]] = {
    "permission_immediate_total": (
        "Capabilities resolved from host state without a prompt",
        ("outcome",),
    ),
    "permission_dedup_total": (
        "Capabilities that joined an already pending prompt",
        (),
    ),
    "permission_prompt_batches_total": ("Prompt batches dispatched to the host", ()),
    "permission_prompt_total": ("Capabilities included in dispatched prompts", ()),
    "permission_result_total": (
        "Prompt results delivered to waiting requests",
        ("granted",),
    ),
}


class PrometheusCoordinatorMetrics:
    """
    Prometheus counters for the coordinator, created on first use.

    Requires `prometheus_client` package.
    """

    def __init__(self, *, namespace: str = "permflow", registry: object | None = None) -> None:
        try:
            from prometheus_client import Counter
        except ModuleNotFoundError as exc:  # pragma: no cover
            raise RuntimeError(
                "PrometheusCoordinatorMetrics requires `prometheus_client` to be installed."
            ) from exc

        self._Counter = Counter
        self._namespace = namespace
        self._registry = registry
        self._counters: dict[str, Any] = {}

    def incr(self, name: str, value: int = 1, *, tags: Mapping[str, str] | None = None) -> None:
        entry = COORDINATOR_COUNTERS.get(name)
        if entry is None:
            raise ValueError(f"Unknown coordinator counter: {name}")
        documentation, label_names = entry
        supplied = dict(tags or {})
        if set(supplied) != set(label_names):
            raise ValueError(
                f"Counter {name} expects labels {list(label_names)}, got {sorted(supplied)}"
            )

        counter = self._counters.get(name)
        if counter is None:
            kwargs: dict[str, Any] = {}
            if self._registry is not None:
                kwargs["registry"] = self._registry
            counter = self._Counter(
                name=name,
                documentation=documentation,
                namespace=self._namespace,
                labelnames=label_names,
                **kwargs,
            )
            self._counters[name] = counter

        if label_names:
            counter.labels(**supplied).inc(value)
        else:
            counter.inc(value)


def create_coordinator_metrics(backend: str | CoordinatorMetrics | None = None) -> CoordinatorMetrics:
    """
    Resolve a metrics sink from a backend id or pass through an instance.

    Backends:
    - `noop` (default)
    - `prometheus`
    """
    if backend is None:
        return NoOpCoordinatorMetrics()
    if not isinstance(backend, str):
        return backend
    key = backend.strip().lower()
    if key in ("", "noop", "none", "null"):
        return NoOpCoordinatorMetrics()
    if key == "prometheus":
        return PrometheusCoordinatorMetrics()
    raise ValueError(f"Unknown PERMFLOW_METRICS_BACKEND: {backend}")
