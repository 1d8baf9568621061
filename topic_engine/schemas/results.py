"""
Tagged results for unreliable AI payloads.

Classifier and completion replies are untyped text. Adapters never raise on
malformed input; they return either Parsed(value) or Fallback(reason) and the
caller decides which default to substitute.

Usage:
    result = await classifier.classify(text)
    stance = result.value_or(Stance.NEUTRAL)
"""

from dataclasses import dataclass
from typing import Generic, TypeVar, Union

T = TypeVar("T")


@dataclass(frozen=True)
class Parsed(Generic[T]):
    """Payload parsed successfully."""
    value: T

    @property
    def ok(self) -> bool:
        return True

    def value_or(self, default: T) -> T:
        return self.value


@dataclass(frozen=True)
class Fallback:
    """Payload missing, malformed, or the call failed."""
    reason: str

    @property
    def ok(self) -> bool:
        return False

    def value_or(self, default: T) -> T:
        return default


ParseResult = Union[Parsed[T], Fallback]
