"""Exception types shared across calmly."""

from __future__ import annotations


class CalmlyError(Exception):
    pass


class PreconditionError(CalmlyError, AssertionError):
    """
    Raised when a caller drives the session or an exercise out of order
    (e.g. choosing an exercise before a mood). These are programming errors,
    never user-facing conditions.
    """


class UnknownMoodError(CalmlyError, KeyError):
    pass
