from dataclasses import dataclass
from typing import Generic, TypeVar

T = TypeVar("T")


@dataclass
class Result(Generic[T]):
    """Outcome of a best-effort operation.

    Storage-backed operations never raise into the caller; they return a
    failed Result carrying the degraded value (a miss, an empty list, ...)
    alongside the error message.
    """
    ok: bool
    value: T | None = None
    error: str | None = None

    @classmethod
    def success(cls, value: T | None = None) -> "Result[T]":
        return cls(ok=True, value=value)

    @classmethod
    def failure(cls, error: str, default: T | None = None) -> "Result[T]":
        return cls(ok=False, value=default, error=error)
