"""
MIT License
Copyright (c) 2026 arpan404
See LICENSE file for full license text.

Pending registry: capability name -> in-flight completion signal.
"""

from __future__ import annotations

from abc import ABC, abstractmethod

from .signals import CompletionSignal


class PendingRegistry(ABC):
    """
    Storage for prompts that are currently outstanding.

    Holds at most one live signal per capability name. Implementations are
    plain storage; the coordinator decides when entries are inserted and
    retired.
    """

    @abstractmethod
    def get(self, name: str) -> CompletionSignal | None:
        """Return the live signal for ``name``, if any."""

    @abstractmethod
    def set(self, name: str, signal: CompletionSignal) -> None:
        """Store ``signal`` as the live entry for ``name``."""

    @abstractmethod
    def remove(self, name: str) -> CompletionSignal | None:
        """Drop and return the entry for ``name``, if any."""

    @abstractmethod
    def names(self) -> list[str]:
        """Names with a live entry, in insertion order."""

    def contains(self, name: str) -> bool:
        """Whether a prompt for ``name`` is outstanding."""
        return self.get(name) is not None

    def close_all(self) -> list[str]:
        """
        Close every outstanding signal without a value and clear the store.

        Returns:
            Names whose entries were closed.
        """
        closed: list[str] = []
        for name in self.names():
            signal = self.remove(name)
            if signal is None:
                continue
            if not signal.settled:
                signal.close()
            closed.append(name)
        return closed

    def __len__(self) -> int:
        return len(self.names())


class InMemoryPendingRegistry(PendingRegistry):
    """Dict-backed registry for single-process hosts and testing."""

    def __init__(self) -> None:
        self._entries: dict[str, CompletionSignal] = {}

    def get(self, name: str) -> CompletionSignal | None:
        return self._entries.get(name)

    def set(self, name: str, signal: CompletionSignal) -> None:
        existing = self._entries.get(name)
        if existing is not None and existing is not signal and not existing.settled:
            raise ValueError(f"A prompt for '{name}' is already pending")
        self._entries[name] = signal

    def remove(self, name: str) -> CompletionSignal | None:
        return self._entries.pop(name, None)

    def names(self) -> list[str]:
        return list(self._entries.keys())
