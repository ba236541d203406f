"""
MIT License
Copyright (c) 2026 arpan404
See LICENSE file for full license text.

Error taxonomy for permission request coordination.
"""

from __future__ import annotations


class PermflowError(Exception):
    """Base permflow error."""


class NoCapabilitiesError(PermflowError, ValueError):
    """Raised when a request names no capabilities at all."""


class InvalidCapabilityError(PermflowError, ValueError):
    """Raised when a capability name is not a non-empty string."""


class EmptyCombinationError(PermflowError, ValueError):
    """Raised when combining zero permission records."""


class PromptOutcomeError(PermflowError, ValueError):
    """Raised when a host reports a malformed prompt result."""


class SignalStateError(PermflowError, RuntimeError):
    """Raised when a completion signal is settled more than once."""
