"""
MIT License
Copyright (c) 2026 arpan404
See LICENSE file for full license text.

One-shot completion signal carrying a single permission record.
"""

from __future__ import annotations

import asyncio

from .errors import SignalStateError
from .records import PermissionRecord


class CompletionSignal:
    """
    Settle-once notification shared by every request waiting on one prompt.

    The signal either resolves with a ``PermissionRecord`` or closes without
    a value. Any number of awaiters may wait on it, including ones that
    arrive after it has settled.
    """

    def __init__(self, name: str) -> None:
        self._name = name
        self._event = asyncio.Event()
        self._record: PermissionRecord | None = None

    @property
    def name(self) -> str:
        """Capability this signal reports on."""
        return self._name

    @property
    def settled(self) -> bool:
        """Whether the signal has resolved or closed."""
        return self._event.is_set()

    @property
    def record(self) -> PermissionRecord | None:
        """Resolved record, or ``None`` while pending or after ``close``."""
        return self._record

    def resolve(self, record: PermissionRecord) -> None:
        """
        Deliver the single record for this signal and wake all awaiters.

        Raises:
            SignalStateError: If the signal already settled.
        """
        self._ensure_open()
        self._record = record
        self._event.set()

    def close(self) -> None:
        """Settle the signal without a value."""
        self._ensure_open()
        self._event.set()

    async def wait(self) -> PermissionRecord | None:
        """Wait until settled; ``None`` means closed without a result."""
        await self._event.wait()
        return self._record

    def _ensure_open(self) -> None:
        if self._event.is_set():
            raise SignalStateError(f"Completion signal for '{self._name}' already settled")

    def __repr__(self) -> str:
        state = "settled" if self.settled else "pending"
        return f"CompletionSignal(name={self._name!r}, state={state})"
