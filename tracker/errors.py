"""Typed errors raised by the assignment and evaluation services.

The API layer maps each class to an HTTP status; callers inside the
process catch them by type.
"""

from __future__ import annotations


class TrackerError(Exception):
    pass


class NotFoundError(TrackerError, LookupError):
    """A group, test, assignment, result or roster entry no longer exists."""

    def __init__(self, entity: str, key) -> None:
        super().__init__(f"{entity} {key!r} not found")
        self.entity = entity
        self.key = key


class EmptyRosterError(TrackerError):
    """Tried to assign a test to a group that has no members."""

    def __init__(self, group_code: str) -> None:
        super().__init__(f"group {group_code!r} has no members to assign")
        self.group_code = group_code


class CodeCollisionError(TrackerError):
    """Every group code candidate collided and the retry budget ran out."""

    def __init__(self, attempts: int) -> None:
        super().__init__(f"no free group code after {attempts} attempts")
        self.attempts = attempts


class MalformedValueError(TrackerError, ValueError):
    """A result value is not a well-formed number."""

    def __init__(self, raw) -> None:
        super().__init__(f"not a numeric result value: {raw!r}")
        self.raw = raw


class PartialWriteError(TrackerError):
    """A roster snapshot could not be written completely.

    The whole assignment creation must be retried.
    """

    def __init__(self, message: str, *, expected: int = 0, written: int = 0) -> None:
        super().__init__(message)
        self.expected = expected
        self.written = written


class DuplicateAssignmentError(TrackerError):
    """The same test is already assigned to the group with that due date."""
