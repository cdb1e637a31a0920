"""
Base class for everything driven once per rendered frame.
"""

import abc
import logging
from typing import Optional

import numpy as np

logger = logging.getLogger(__name__)


class BaseSimulation(abc.ABC):
    """
    Abstract base for per-frame simulations (lines, storms, fields).

    Lifecycle: construct (init) -> tick()* -> dispose(). Randomness is
    confined to construction through ``self.rng``; ticks are deterministic.
    """

    def __init__(self, seed: Optional[int] = None):
        self.rng = np.random.default_rng(seed)
        self.frame = 0
        self._disposed = False

    @property
    def disposed(self) -> bool:
        return self._disposed

    def _require_live(self) -> None:
        if self._disposed:
            raise RuntimeError(f"{type(self).__name__} has been disposed")

    @abc.abstractmethod
    def update(self) -> None:
        """Advance the simulation state by one frame."""
        pass

    @abc.abstractmethod
    def points(self) -> np.ndarray:
        """
        Returns the (N, 3) float array handed to geometry this frame.
        """
        pass

    def tick(self) -> np.ndarray:
        """Default frame: update, then return the drawable points."""
        self._require_live()
        self.update()
        self.frame += 1
        return self.points()

    def _release(self) -> None:
        """Drop owned buffers. Subclasses override."""
        pass

    def dispose(self) -> None:
        if self._disposed:
            return
        self._release()
        self._disposed = True
        logger.debug("%s disposed after %d frames", type(self).__name__, self.frame)
