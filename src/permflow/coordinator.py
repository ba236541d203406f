"""
MIT License
Copyright (c) 2026 arpan404
See LICENSE file for full license text.

Request coordinator: deduplicates prompts and reassembles ordered results.
"""

from __future__ import annotations

import logging
from collections.abc import AsyncIterable, AsyncIterator, Iterable, Sequence
from typing import Any, Literal

from pydantic import ValidationError

from .errors import InvalidCapabilityError, NoCapabilitiesError, PromptOutcomeError
from .host import PermissionHost, PromptOutcome
from .metrics import CoordinatorMetrics, NoOpCoordinatorMetrics
from .records import PermissionRecord
from .signals import CompletionSignal

logger = logging.getLogger("permflow.coordinator")

# Which input made a request ready: no trigger given, nothing pending, or
# the caller's trigger emitted.
ReadySource = Literal["immediate", "idle", "trigger"]

_ResultSource = PermissionRecord | CompletionSignal


def normalize_names(names: Iterable[str]) -> tuple[str, ...]:
    """
    Validate capability names eagerly.

    Raises:
        InvalidCapabilityError: If ``names`` is a bare string or holds a
            non-string/blank entry.
        NoCapabilitiesError: If ``names`` is empty.
    """
    if isinstance(names, str):
        raise InvalidCapabilityError(
            "Capability names must be passed as a sequence, not a single string"
        )
    items = tuple(names)
    if not items:
        raise NoCapabilitiesError("A permission request requires at least one capability name")
    for name in items:
        if not isinstance(name, str) or not name.strip():
            raise InvalidCapabilityError(f"Invalid capability name: {name!r}")
    return items


class PermissionCoordinator:
    """
    Coordinates permission prompts over one host.

    At most one prompt per capability name is outstanding at any time. A
    request that includes a name already being prompted waits on the same
    pending entry instead of asking again.

    Usage::

        coordinator = PermissionCoordinator(host)
        async for record in coordinator.request(["CAMERA", "MICROPHONE"]):
            print(record.name, record.granted)
    """

    def __init__(
        self,
        host: PermissionHost,
        *,
        metrics: CoordinatorMetrics | None = None,
        logging_enabled: bool = False,
    ) -> None:
        self._host = host
        self._metrics = metrics or NoOpCoordinatorMetrics()
        self._logging_enabled = logging_enabled
        host.attach(self)

    @property
    def host(self) -> PermissionHost:
        """Host collaborator this coordinator drives."""
        return self._host

    def set_logging(self, enabled: bool) -> None:
        """Toggle verbose per-capability debug traces."""
        self._logging_enabled = enabled

    def is_granted(self, name: str) -> bool:
        """Whether ``name`` is already granted (always true on ungated platforms)."""
        return self._host.is_unconditionally_granted(name)

    def is_revoked(self, name: str) -> bool:
        """Whether ``name`` has been revoked by a policy."""
        return self._host.is_policy_revoked(name)

    def should_show_rationale(self, *names: str) -> bool:
        """
        Whether a rationale should be shown before asking for ``names``.

        True only if every name that is not yet granted asks for a rationale.
        Always false on ungated platforms. Do not call this when every name
        is already granted.
        """
        items = normalize_names(names)
        if not self._host.is_gated:
            return False
        for name in items:
            if not self._host.is_unconditionally_granted(name) and not self._host.should_show_rationale(name):
                return False
        return True

    def request(
        self,
        names: Sequence[str],
        trigger: AsyncIterable[Any] | None = None,
    ) -> AsyncIterator[PermissionRecord]:
        """
        Ask for ``names`` and stream one record per name, in input order.

        The request becomes ready as soon as nothing in ``names`` is pending,
        or otherwise when ``trigger`` emits its first item. Without a trigger
        it is ready immediately.

        Raises:
            NoCapabilitiesError: If ``names`` is empty (raised at call time).
            InvalidCapabilityError: If a name is not a non-empty string.
        """
        items = normalize_names(names)
        return self._request(items, trigger)

    async def _request(
        self,
        names: tuple[str, ...],
        trigger: AsyncIterable[Any] | None,
    ) -> AsyncIterator[PermissionRecord]:
        ready = await self._await_ready(names, trigger)
        if ready is None:
            self._trace("Trigger ended before %s became ready", ", ".join(names))
            return
        self._trace("Request for %s ready (%s)", ", ".join(names), ready)

        for source in self._resolve_sources(names):
            if isinstance(source, PermissionRecord):
                yield source
                continue
            record = await source.wait()
            if record is None:
                self._trace("Pending request for %s closed without a result", source.name)
                continue
            yield record

    async def _await_ready(
        self,
        names: tuple[str, ...],
        trigger: AsyncIterable[Any] | None,
    ) -> ReadySource | None:
        if trigger is None:
            return "immediate"
        if not any(self._host.has_pending_entry(name) for name in names):
            return "idle"
        iterator = aiter(trigger)
        try:
            await anext(iterator)
        except StopAsyncIteration:
            return None
        finally:
            aclose = getattr(iterator, "aclose", None)
            if aclose is not None:
                await aclose()
        return "trigger"

    def _resolve_sources(self, names: tuple[str, ...]) -> list[_ResultSource]:
        # No awaits in here: lookups, inserts and dispatch must all happen
        # within one loop step so overlapping requests see each other.
        sources: list[_ResultSource] = []
        fresh: list[str] = []
        for name in names:
            self._trace("Requesting permission %s", name)
            if self._host.is_unconditionally_granted(name):
                self._metrics.incr("permission_immediate_total", tags={"outcome": "granted"})
                sources.append(PermissionRecord(name, True, False))
                continue

            if self._host.is_policy_revoked(name):
                self._metrics.incr("permission_immediate_total", tags={"outcome": "revoked"})
                sources.append(PermissionRecord(name, False, False))
                continue

            signal = self._host.get_pending_entry(name)
            if signal is None:
                signal = CompletionSignal(name)
                self._host.set_pending_entry(name, signal)
                fresh.append(name)
            else:
                self._metrics.incr("permission_dedup_total")
            sources.append(signal)

        if fresh:
            self._dispatch(fresh)
        return sources

    def _dispatch(self, names: list[str]) -> None:
        self._trace("Dispatching prompt for %s", ", ".join(names))
        try:
            self._host.dispatch_prompt(list(names))
        except Exception:
            logger.exception("Prompt dispatch failed for %s", ", ".join(names))
            for name in names:
                signal = self._host.remove_pending_entry(name)
                if signal is not None and not signal.settled:
                    signal.close()
            raise
        self._metrics.incr("permission_prompt_batches_total")
        self._metrics.incr("permission_prompt_total", len(names))

    def on_prompt_result(self, names: Sequence[str], granted_flags: Sequence[bool]) -> None:
        """
        Deliver a host prompt result to every request waiting on it.

        ``names`` and ``granted_flags`` correspond positionally.

        Raises:
            PromptOutcomeError: If the payload is malformed.
        """
        try:
            outcome = PromptOutcome(names=list(names), granted=list(granted_flags))
        except ValidationError as exc:
            raise PromptOutcomeError(f"Malformed prompt result: {exc}") from exc
        self.on_prompt_outcome(outcome)

    def on_prompt_outcome(self, outcome: PromptOutcome) -> None:
        """Deliver an already-validated ``PromptOutcome``."""
        for record in outcome.records():
            signal = self._host.remove_pending_entry(record.name)
            if signal is None or signal.settled:
                logger.warning(
                    "No pending request found for permission %s, ignoring result",
                    record.name,
                )
                continue
            self._trace("Permission %s resolved, granted=%s", record.name, record.granted)
            self._metrics.incr(
                "permission_result_total",
                tags={"granted": "true" if record.granted else "false"},
            )
            signal.resolve(record)

    def _trace(self, message: str, *args: object) -> None:
        if self._logging_enabled:
            logger.debug(message, *args)
