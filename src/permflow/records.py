"""
MIT License
Copyright (c) 2026 arpan404
See LICENSE file for full license text.

Permission result records and the rule for combining them.
"""

from __future__ import annotations

from collections.abc import Iterable
from dataclasses import dataclass

from .errors import EmptyCombinationError


@dataclass(frozen=True, slots=True)
class PermissionRecord:
    """
    Outcome of asking for one capability.

    Attributes:
        name: Capability identifier, e.g. ``"android.permission.CAMERA"``.
        granted: Whether the capability is granted.
        show_rationale: Whether the caller should explain why the capability
            is needed before asking again.
    """

    name: str
    granted: bool
    show_rationale: bool = False

    @classmethod
    def combine(cls, records: Iterable[PermissionRecord]) -> PermissionRecord:
        """
        Fold an ordered sequence of records into one.

        Names are joined with ``", "`` in order, ``granted`` is true only when
        every record is granted, and ``show_rationale`` is true when any record
        asks for it.

        Raises:
            EmptyCombinationError: If ``records`` is empty.
        """
        items = list(records)
        if not items:
            raise EmptyCombinationError("Cannot combine an empty list of permission records")
        return cls(
            name=", ".join(item.name for item in items),
            granted=all(item.granted for item in items),
            show_rationale=any(item.show_rationale for item in items),
        )
