"""Persistence error taxonomy and the result type returned by store calls.

Store operations never raise for expected failures; they hand back a
StoreResult and the caller branches on ``ok``.
"""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from typing import Generic, TypeVar

T = TypeVar("T")


class ErrorKind(str, Enum):
    UNAVAILABLE = "unavailable"  # remote unreachable or query failed
    NOT_FOUND = "not_found"  # expected row missing
    SCHEMA = "schema"  # row or blob has an unusable shape
    MALFORMED_CACHE = "malformed_cache"  # local blob unreadable


@dataclass(frozen=True)
class PersistenceError:
    kind: ErrorKind
    message: str = ""

    def __str__(self) -> str:
        return f"{self.kind.value}: {self.message}" if self.message else self.kind.value


@dataclass(frozen=True)
class StoreResult(Generic[T]):
    value: T | None = None
    error: PersistenceError | None = None

    @property
    def ok(self) -> bool:
        return self.error is None

    @classmethod
    def success(cls, value: T | None = None) -> StoreResult[T]:
        return cls(value=value)

    @classmethod
    def failure(cls, kind: ErrorKind, message: str = "") -> StoreResult[T]:
        return cls(error=PersistenceError(kind, message))

    def unwrap_or(self, default: T) -> T:
        if self.error is not None or self.value is None:
            return default
        return self.value
