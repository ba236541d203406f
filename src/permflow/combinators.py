"""
MIT License
Copyright (c) 2026 arpan404
See LICENSE file for full license text.

Stream transformers that fold coordinator output into caller-facing shapes.

Each factory takes a coordinator and capability names and returns a
transformer: a callable that maps a trigger stream to a result stream.

    clicks = button_clicks()  # any async iterable
    async for ok in ensure(coordinator, "CAMERA", "MICROPHONE")(clicks):
        ...
"""

from __future__ import annotations

from collections.abc import AsyncIterable, AsyncIterator, Callable
from typing import Any, TypeVar

from .coordinator import PermissionCoordinator, normalize_names
from .records import PermissionRecord

T = TypeVar("T")
R = TypeVar("R")

Transformer = Callable[[AsyncIterable[Any] | None], AsyncIterator[R]]

TRIGGER = object()


async def once(value: Any = TRIGGER) -> AsyncIterator[Any]:
    """Trigger stream that emits one item immediately."""
    yield value


def batched(source: AsyncIterable[T], size: int) -> AsyncIterator[list[T]]:
    """
    Group ``source`` into lists of exactly ``size`` items.

    A trailing group shorter than ``size`` is dropped, so an interrupted
    source ends the stream without emitting a partial batch.
    """
    if size < 1:
        raise ValueError(f"Batch size must be >= 1, got {size}")
    return _batched(source, size)


async def _batched(source: AsyncIterable[T], size: int) -> AsyncIterator[list[T]]:
    group: list[T] = []
    async for item in source:
        group.append(item)
        if len(group) == size:
            yield group
            group = []


async def _all_granted(groups: AsyncIterator[list[PermissionRecord]]) -> AsyncIterator[bool]:
    async for group in groups:
        yield all(record.granted for record in group)


async def _combined(
    groups: AsyncIterator[list[PermissionRecord]],
) -> AsyncIterator[PermissionRecord]:
    async for group in groups:
        yield PermissionRecord.combine(group)


def ensure(coordinator: PermissionCoordinator, *names: str) -> Transformer[bool]:
    """
    Map each ready trigger into ``True`` if every name is granted.

    Names that were never asked for are prompted for first.
    """
    items = normalize_names(names)

    def transform(trigger: AsyncIterable[Any] | None) -> AsyncIterator[bool]:
        return _all_granted(batched(coordinator.request(items, trigger), len(items)))

    return transform


def ensure_each(coordinator: PermissionCoordinator, *names: str) -> Transformer[PermissionRecord]:
    """Map each ready trigger into one ``PermissionRecord`` per name."""
    items = normalize_names(names)

    def transform(trigger: AsyncIterable[Any] | None) -> AsyncIterator[PermissionRecord]:
        return coordinator.request(items, trigger)

    return transform


def ensure_each_combined(
    coordinator: PermissionCoordinator, *names: str
) -> Transformer[PermissionRecord]:
    """
    Map each ready trigger into one combined ``PermissionRecord``.

    The result is granted only if every name is granted, and asks for a
    rationale if any name does.
    """
    items = normalize_names(names)

    def transform(trigger: AsyncIterable[Any] | None) -> AsyncIterator[PermissionRecord]:
        return _combined(batched(coordinator.request(items, trigger), len(items)))

    return transform
