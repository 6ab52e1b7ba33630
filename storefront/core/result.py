"""Result — explicit success/failure return value for service operations.

Invariants:
    - Exactly one of value/error is meaningful: ok is True iff error is None
    - error is always a StorefrontError instance (never a bare string)
    - unwrap() is the ONLY place a returned error becomes a raised exception

Design Decisions:
    - Expected request failures (missing entity, bad quantity, short stock) travel
      as values; the HTTP layer decides when to raise
    - Frozen dataclass: a Result handed to the caller cannot be mutated afterwards
"""

from dataclasses import dataclass
from typing import Generic, TypeVar

from storefront.core.errors import StorefrontError

T = TypeVar("T")


@dataclass(frozen=True)
class Result(Generic[T]):
    """Outcome of a service call."""
    value: T | None = None
    error: StorefrontError | None = None

    @property
    def ok(self) -> bool:
        return self.error is None

    @classmethod
    def success(cls, value: T | None = None) -> "Result[T]":
        return cls(value=value)

    @classmethod
    def failure(cls, error: StorefrontError) -> "Result[T]":
        return cls(error=error)

    def unwrap(self) -> T:
        """Return the value, or raise the carried error."""
        if self.error is not None:
            raise self.error
        return self.value
