"""
MIT License
Copyright (c) 2026 arpan404
See LICENSE file for full license text.

Host collaborator contract.

The host owns the real prompt UI and the storage of pending prompts. The
coordinator reads and writes pending entries only through these methods and
expects every dispatched name to come back through
``PermissionCoordinator.on_prompt_result`` exactly once.
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from collections.abc import Sequence
from typing import TYPE_CHECKING

from pydantic import BaseModel, ConfigDict, StrictBool, StrictStr, model_validator

from .records import PermissionRecord
from .registry import InMemoryPendingRegistry, PendingRegistry
from .signals import CompletionSignal

if TYPE_CHECKING:
    from .coordinator import PermissionCoordinator


class PromptOutcome(BaseModel):
    """
    Raw grant/deny result for one dispatched prompt batch.

    ``names`` and ``granted`` correspond positionally.
    """

    model_config = ConfigDict(frozen=True, extra="forbid")

    names: list[StrictStr]
    granted: list[StrictBool]

    @model_validator(mode="after")
    def _check_lengths(self) -> "PromptOutcome":
        if len(self.names) != len(self.granted):
            raise ValueError(
                f"names and granted must have equal length "
                f"({len(self.names)} != {len(self.granted)})"
            )
        return self

    def records(self) -> list[PermissionRecord]:
        """Build one resolved record per reported name."""
        return [
            PermissionRecord(name, granted, False)
            for name, granted in zip(self.names, self.granted)
        ]


class PermissionHost(ABC):
    """Abstract host consumed by ``PermissionCoordinator``."""

    @abstractmethod
    def is_unconditionally_granted(self, name: str) -> bool:
        """True when ``name`` needs no prompt (ungated platform or already granted)."""

    @abstractmethod
    def is_policy_revoked(self, name: str) -> bool:
        """True when a policy forbids ``name`` outright."""

    @abstractmethod
    def should_show_rationale(self, name: str) -> bool:
        """True when the UI should explain ``name`` before asking again."""

    @property
    @abstractmethod
    def is_gated(self) -> bool:
        """Whether the platform gates capabilities at run time at all."""

    @abstractmethod
    def has_pending_entry(self, name: str) -> bool:
        """Whether a prompt for ``name`` is outstanding."""

    @abstractmethod
    def get_pending_entry(self, name: str) -> CompletionSignal | None:
        """Return the live signal for ``name``, if any."""

    @abstractmethod
    def set_pending_entry(self, name: str, signal: CompletionSignal) -> None:
        """Store the live signal for ``name``."""

    @abstractmethod
    def remove_pending_entry(self, name: str) -> CompletionSignal | None:
        """Retire the entry for ``name``."""

    def attach(self, coordinator: PermissionCoordinator) -> None:
        """Called once by the coordinator that receives this host's prompt results."""

    @abstractmethod
    def dispatch_prompt(self, names: Sequence[str]) -> None:
        """
        Show one prompt covering ``names``.

        Must not block. The result arrives later through
        ``PermissionCoordinator.on_prompt_result``.
        """


class BasePermissionHost(PermissionHost):
    """
    Host base that keeps pending entries in an injected registry.

    Pass the same registry to a recreated host to keep outstanding prompts
    alive across host teardown.
    """

    def __init__(self, registry: PendingRegistry | None = None) -> None:
        self._registry = registry if registry is not None else InMemoryPendingRegistry()

    @property
    def registry(self) -> PendingRegistry:
        """Backing store for pending entries."""
        return self._registry

    def has_pending_entry(self, name: str) -> bool:
        return self._registry.contains(name)

    def get_pending_entry(self, name: str) -> CompletionSignal | None:
        return self._registry.get(name)

    def set_pending_entry(self, name: str, signal: CompletionSignal) -> None:
        self._registry.set(name, signal)

    def remove_pending_entry(self, name: str) -> CompletionSignal | None:
        return self._registry.remove(name)
