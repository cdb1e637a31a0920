"""
Fixed-capacity streaming buffer for the visible tail of a trajectory.

The buffer is a ring of ``W`` slots with a head index. ``advance`` overwrites
the oldest slot in place; the renderer reads an ordered (oldest → newest)
snapshot once per frame.
"""

from typing import Iterable, Tuple

import numpy as np

from sparkstorm.core.errors import InvalidConfig


class StreamingLineBuffer:
    """
    Moving window over the last ``window_size`` points of a trajectory.

    A fresh buffer holds ``window_size`` copies of the initial state, so the
    line renders as a single point until it has advanced ``window_size``
    times.
    """

    def __init__(self, window_size: int, initial_state: Iterable[float]):
        if int(window_size) != window_size or window_size <= 0:
            raise InvalidConfig(f"window_size must be a positive integer, got {window_size!r}")
        self._size = int(window_size)
        self._points = np.empty((self._size, 3), dtype=np.float64)
        self._head = 0  # slot holding the oldest point
        self.advanced = 0
        self.reset(initial_state)

    def __len__(self) -> int:
        return self._size

    def __repr__(self) -> str:
        return f"StreamingLineBuffer(window_size={self._size}, advanced={self.advanced})"

    @property
    def window_size(self) -> int:
        return self._size

    @property
    def newest(self) -> Tuple[float, float, float]:
        p = self._points[(self._head - 1) % self._size]
        return float(p[0]), float(p[1]), float(p[2])

    @property
    def oldest(self) -> Tuple[float, float, float]:
        p = self._points[self._head]
        return float(p[0]), float(p[1]), float(p[2])

    def reset(self, state: Iterable[float]) -> None:
        """Fill every slot with ``state`` (degenerate line)."""
        point = np.asarray(tuple(state), dtype=np.float64)
        if point.shape != (3,):
            raise InvalidConfig(f"state must have 3 components, got shape {point.shape}")
        self._points[:] = point
        self._head = 0
        self.advanced = 0

    def advance(self, point: Iterable[float]) -> None:
        """Append ``point`` as the newest entry, evicting the oldest."""
        x, y, z = point
        slot = self._points[self._head]
        slot[0] = x
        slot[1] = y
        slot[2] = z
        self._head += 1
        if self._head == self._size:
            self._head = 0
        self.advanced += 1

    def as_ordered_points(self) -> np.ndarray:
        """Read-only (W, 3) snapshot in draw order, oldest first."""
        h = self._head
        if h == 0:
            ordered = self._points.copy()
        else:
            ordered = np.concatenate((self._points[h:], self._points[:h]))
        ordered.flags.writeable = False
        return ordered

    def flat(self) -> np.ndarray:
        """Flat (3W,) copy in draw order: x0, y0, z0, x1, ..."""
        return self.as_ordered_points().reshape(-1)
