"""
Error taxonomy for the integration and streaming engine.

Configuration problems are raised at construction time. Numeric divergence
is raised by the stepping primitives and contained by the per-frame owners.
"""

from typing import Optional, Tuple


class SparkstormError(Exception):
    """Base class for all sparkstorm errors."""


class InvalidConfig(SparkstormError, ValueError):
    """A configuration value is out of range (dt, window, grid, steps...)."""


class UnknownAttractor(SparkstormError, KeyError):
    """The requested attractor tag is not registered."""

    def __init__(self, tag: str, known: Tuple[str, ...] = ()):
        self.tag = tag
        self.known = tuple(known)
        super().__init__(tag)

    def __str__(self) -> str:
        if self.known:
            return f"unknown attractor {self.tag!r} (known: {', '.join(self.known)})"
        return f"unknown attractor {self.tag!r}"


class NumericDivergence(SparkstormError, ArithmeticError):
    """A step produced a non-finite state."""

    def __init__(
        self,
        message: str,
        step: Optional[int] = None,
        state: Optional[Tuple[float, float, float]] = None,
    ):
        super().__init__(message)
        self.step = step
        self.state = state
