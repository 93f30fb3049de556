"""
Parse results for lenient configuration parsing.

Parsers return ``Ok(value)`` when the input could be read (defaults filled in)
and ``Err(reason)`` when it could not. Callers decide whether to fall back.
"""

from dataclasses import dataclass
from typing import Callable, Generic, TypeVar, Union

T = TypeVar("T")


@dataclass(frozen=True)
class Ok(Generic[T]):
    """Successful parse."""
    value: T

    @property
    def ok(self) -> bool:
        return True

    def unwrap_or(self, default: T) -> T:
        return self.value

    def unwrap_or_else(self, factory: Callable[[str], T]) -> T:
        return self.value


@dataclass(frozen=True)
class Err:
    """Failed parse with a human-readable reason."""
    reason: str

    @property
    def ok(self) -> bool:
        return False

    def unwrap_or(self, default: T) -> T:
        return default

    def unwrap_or_else(self, factory: Callable[[str], T]) -> T:
        return factory(self.reason)


ParseResult = Union[Ok[T], Err]
