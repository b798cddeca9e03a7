"""Outcome of a single external call."""

from __future__ import annotations

from typing import NamedTuple


class Result(NamedTuple):
    """``(success, message)`` pair that also works in boolean context."""

    success: bool
    message: str = ""

    def __bool__(self) -> bool:
        return self.success

    @classmethod
    def ok(cls, message: str = "") -> Result:
        return cls(True, message)

    @classmethod
    def fail(cls, message: str) -> Result:
        return cls(False, message)
