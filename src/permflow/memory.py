"""
MIT License
Copyright (c) 2026 arpan404
See LICENSE file for full license text.

In-process permission host implementation.
"""

from __future__ import annotations

import asyncio
import inspect
import logging
from collections.abc import Awaitable, Callable, Iterable, Sequence
from typing import TYPE_CHECKING, Any

from .errors import PromptOutcomeError
from .host import BasePermissionHost
from .registry import PendingRegistry
from .settings import PermflowSettings

if TYPE_CHECKING:
    from .coordinator import PermissionCoordinator

logger = logging.getLogger("permflow.memory")

# Receives one prompt batch. May return the grant flags (directly or via an
# awaitable) or ``None`` if results will be delivered later via ``deliver``.
PromptHandler = Callable[
    [list[str]], Sequence[bool] | Awaitable[Sequence[bool] | None] | None
]


class InMemoryPermissionHost(BasePermissionHost):
    """
    Scriptable host that keeps platform state in memory.

    Suitable for tests and for applications that render prompts themselves:
    plug a ``prompt_handler`` in, or call ``deliver`` when the user answers.
    Granted names stay granted for later requests.
    """

    def __init__(
        self,
        *,
        registry: PendingRegistry | None = None,
        api_level: int | None = None,
        gated_api_level: int = 23,
        granted: Iterable[str] = (),
        revoked: Iterable[str] = (),
        rationale: Iterable[str] = (),
        prompt_handler: PromptHandler | None = None,
    ) -> None:
        super().__init__(registry)
        self._api_level = api_level
        self._gated_api_level = gated_api_level
        self._granted: set[str] = set(granted)
        self._revoked: set[str] = set(revoked)
        self._rationale: set[str] = set(rationale)
        self._prompt_handler = prompt_handler
        self._coordinator: PermissionCoordinator | None = None
        self._dispatched: list[list[str]] = []
        self._handler_tasks: set[asyncio.Future[Any]] = set()

    @classmethod
    def from_settings(
        cls, settings: PermflowSettings, **kwargs: Any
    ) -> "InMemoryPermissionHost":
        """Build a host whose platform gating follows ``settings``."""
        return cls(
            api_level=settings.api_level,
            gated_api_level=settings.gated_api_level,
            **kwargs,
        )

    @property
    def is_gated(self) -> bool:
        return self._api_level is None or self._api_level >= self._gated_api_level

    @property
    def dispatched(self) -> list[list[str]]:
        """Every prompt batch dispatched so far, oldest first."""
        return [list(batch) for batch in self._dispatched]

    def attach(self, coordinator: PermissionCoordinator) -> None:
        """Route prompt results to ``coordinator``."""
        self._coordinator = coordinator

    def grant(self, name: str) -> None:
        self._granted.add(name)
        self._revoked.discard(name)

    def revoke(self, name: str) -> None:
        """Mark ``name`` as revoked by policy."""
        self._revoked.add(name)
        self._granted.discard(name)

    def set_rationale(self, name: str, show: bool = True) -> None:
        if show:
            self._rationale.add(name)
        else:
            self._rationale.discard(name)

    def is_unconditionally_granted(self, name: str) -> bool:
        return not self.is_gated or name in self._granted

    def is_policy_revoked(self, name: str) -> bool:
        return self.is_gated and name in self._revoked

    def should_show_rationale(self, name: str) -> bool:
        return name in self._rationale

    def dispatch_prompt(self, names: Sequence[str]) -> None:
        batch = list(names)
        self._dispatched.append(batch)
        logger.info("Prompting for %s", ", ".join(batch))
        if self._prompt_handler is None:
            return

        result = self._prompt_handler(list(batch))
        if inspect.isawaitable(result):
            task = asyncio.ensure_future(result)
            self._handler_tasks.add(task)
            task.add_done_callback(lambda done: self._on_handler_done(batch, done))
            return
        if result is not None:
            self.deliver(batch, result)

    def _on_handler_done(self, batch: list[str], task: asyncio.Future[Any]) -> None:
        # Every dispatched name must settle, so handler failures deny the batch.
        self._handler_tasks.discard(task)
        denied = [False] * len(batch)
        if task.cancelled():
            logger.warning("Prompt handler cancelled for %s, denying", ", ".join(batch))
            self._settle(batch, denied)
            return
        error = task.exception()
        if error is not None:
            logger.error(
                "Prompt handler failed for %s, denying",
                ", ".join(batch),
                exc_info=error,
            )
            self._settle(batch, denied)
            return
        flags = task.result()
        if flags is not None:
            self._settle(batch, flags)

    def _settle(self, batch: list[str], flags: Sequence[bool]) -> None:
        try:
            self.deliver(batch, flags)
        except PromptOutcomeError:
            logger.exception("Prompt handler returned a malformed result for %s, denying", ", ".join(batch))
            self.deliver(batch, [False] * len(batch))
        except RuntimeError:
            logger.exception("Could not deliver prompt result for %s, closing", ", ".join(batch))
            self._retire(batch)

    def _retire(self, batch: list[str]) -> None:
        for name in batch:
            signal = self.registry.remove(name)
            if signal is not None and not signal.settled:
                signal.close()

    def deliver(self, names: Sequence[str], granted_flags: Sequence[bool]) -> None:
        """
        Report the user's answer for a dispatched batch.

        Raises:
            RuntimeError: If no coordinator is attached.
        """
        if self._coordinator is None:
            raise RuntimeError("InMemoryPermissionHost has no attached coordinator")
        self._coordinator.on_prompt_result(names, granted_flags)
        for name, granted in zip(names, granted_flags):
            if granted is True:
                self._granted.add(name)

    def teardown(self) -> list[str]:
        """
        Close every outstanding prompt without a result.

        Requests waiting on them complete without emitting those records.

        Returns:
            Names whose prompts were closed.
        """
        closed = self.registry.close_all()
        if closed:
            logger.warning("Host torn down with pending prompts: %s", ", ".join(closed))
        return closed
