"""
NFT Metadata Registry - Execution Environment Providers

The registry does not read caller identity or time from globals. Both are
supplied by provider objects so embedding environments and tests can
control them.
"""

import time
from abc import ABC, abstractmethod
from threading import Lock
from typing import Callable


class IdentityProvider(ABC):
    """Supplies the identity of the current caller."""

    @abstractmethod
    def current_caller(self) -> str:
        pass


class StaticIdentityProvider(IdentityProvider):
    """Identity provider returning a settable identity."""

    def __init__(self, identity: str):
        self.identity = identity

    def current_caller(self) -> str:
        return self.identity

    def act_as(self, identity: str) -> None:
        """Switch the current caller."""
        self.identity = identity


class SequenceProvider(ABC):
    """Supplies a monotonically non-decreasing sequence marker."""

    @abstractmethod
    def current(self) -> int:
        pass


class CounterSequence(SequenceProvider):
    """Strictly increasing counter, one step per read."""

    def __init__(self, start: int = 1):
        if start < 0:
            raise ValueError("Sequence start must be non-negative")
        self._next = start
        self._lock = Lock()

    def current(self) -> int:
        with self._lock:
            value = self._next
            self._next += 1
            return value


class ManualSequence(SequenceProvider):
    """Fixed sequence marker that only moves when told to."""

    def __init__(self, value: int = 1):
        if value < 0:
            raise ValueError("Sequence value must be non-negative")
        self._value = value

    def current(self) -> int:
        return self._value

    def advance(self, steps: int = 1) -> int:
        if steps < 0:
            raise ValueError("Sequence cannot move backwards")
        self._value += steps
        return self._value

    def set(self, value: int) -> None:
        if value < self._value:
            raise ValueError(f"Sequence cannot move backwards: {value} < {self._value}")
        self._value = value


class ClockSequence(SequenceProvider):
    """Wall-clock milliseconds, clamped so the marker never decreases."""

    def __init__(self, clock: Callable[[], float] = time.time, floor: int = 0):
        self._clock = clock
        self._last = floor
        self._lock = Lock()

    def current(self) -> int:
        with self._lock:
            now = int(self._clock() * 1000)
            self._last = max(self._last, now)
            return self._last
