"""Base exceptions and small utilities for Neck Diagram Studio.

This module provides the exception hierarchy used throughout the package
and a couple of helpers for identity tokens and timestamps.
"""

from __future__ import annotations

import uuid
from datetime import datetime, timezone
from typing import Any


class MatchException(Exception):
    """Exception raised when pattern matching fails."""

    def __init__(self, value: Any) -> None:
        """Initialize a MatchException with the unmatched value.

        Args:
            value: The value that failed to match any pattern.
        """
        super().__init__(f"Failed to match value: {value}")


class NeckDiagramError(Exception):
    """Base class for errors surfaced to the user."""


class ImportRejected(NeckDiagramError):
    """Raised when an imported document cannot be repaired into a project."""


class ExportError(NeckDiagramError):
    """Raised when there is nothing sensible to export."""


class PersistenceError(NeckDiagramError):
    """Raised by a project store when a load or save fails."""


def new_id() -> str:
    """Generate a fresh opaque identity token.

    Returns:
        A random UUID string.
    """
    return str(uuid.uuid4())


def now_iso() -> str:
    """Current UTC time as an ISO-8601 string with millisecond precision."""
    return to_iso(datetime.now(timezone.utc))


def to_iso(moment: datetime) -> str:
    """Format a datetime the way the persisted documents store timestamps.

    Args:
        moment: The datetime to format. Naive values are taken as UTC.

    Returns:
        A string like ``2026-02-06T00:00:00.000Z``.
    """
    if moment.tzinfo is None:
        moment = moment.replace(tzinfo=timezone.utc)
    utc = moment.astimezone(timezone.utc)
    return utc.strftime("%Y-%m-%dT%H:%M:%S.") + f"{utc.microsecond // 1000:03d}Z"
