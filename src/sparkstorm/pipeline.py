"""
Per-frame orchestration.

Drives any number of streaming lines, storms and particle fields once per
frame and yields what the scene layer needs to draw. Frames are produced by
a generator so the caller decides the pace.
"""

import logging
import math
from dataclasses import dataclass, field, replace
from typing import Callable, Iterator, List, Optional, Sequence

import numpy as np

from sparkstorm.core.errors import InvalidConfig
from sparkstorm.presets import get_preset
from sparkstorm.visual.base import BaseSimulation
from sparkstorm.visual.field import ParticleFieldSimulator, PointCloudPass
from sparkstorm.visual.lines import SparkStorm, StaticLineSet, StreamingLine

logger = logging.getLogger(__name__)


@dataclass
class FrameSnapshot:
    """Drawable state after one frame."""

    index: int
    time: float
    lines: List[np.ndarray] = field(default_factory=list)   # (W, 3) per line
    fields: List[np.ndarray] = field(default_factory=list)  # (N, 3) per field
    resets: int = 0

    def all_points(self) -> np.ndarray:
        arrays = self.lines + self.fields
        if not arrays:
            return np.empty((0, 3), dtype=np.float64)
        return np.concatenate([np.asarray(a, dtype=np.float64) for a in arrays])


class FrameDriver:
    """
    Owns per-frame simulations and steps them together.

    Streaming lines and storms contribute their windows, static line sets
    their precomputed points, and fields the positions placed by their
    point-cloud pass.
    """

    def __init__(self, fps: int = 60):
        if not (math.isfinite(fps) and fps > 0):
            raise InvalidConfig(f"fps must be positive, got {fps!r}")
        self.fps = fps
        self.time = 0.0
        self.frame = 0
        self._streams: List[BaseSimulation] = []
        self._static: List[StaticLineSet] = []
        self._fields: List[ParticleFieldSimulator] = []
        self._passes: List[PointCloudPass] = []

    @classmethod
    def from_preset(cls, name: str, seed: Optional[int] = None, fps: int = 60) -> "FrameDriver":
        preset = get_preset(name)
        cfg = preset.config
        if seed is not None:
            cfg = replace(cfg, seed=seed)

        driver = cls(fps=fps)
        if preset.kind == "static":
            driver.add_static(
                StaticLineSet.from_config(cfg, preset.points_per_line, starts=preset.starts)
            )
        elif preset.kind == "storm":
            driver.add(SparkStorm.from_config(cfg))
        else:
            driver.add_field(ParticleFieldSimulator.from_config(cfg))
        logger.debug("driver built from preset %s", name)
        return driver

    def add(self, sim: BaseSimulation) -> BaseSimulation:
        if isinstance(sim, ParticleFieldSimulator):
            return self.add_field(sim)
        self._streams.append(sim)
        return sim

    def add_static(self, lines: StaticLineSet) -> StaticLineSet:
        self._static.append(lines)
        return lines

    def add_field(
        self,
        sim: ParticleFieldSimulator,
        draw_pass: Optional[PointCloudPass] = None,
    ) -> ParticleFieldSimulator:
        self._fields.append(sim)
        self._passes.append(draw_pass or PointCloudPass(sim.field))
        return sim

    def set_pointer(self, pointer: Optional[Sequence[float]]) -> None:
        """Repulsion point applied by every field's draw pass."""
        for p in self._passes:
            p.set_pointer(pointer)

    def step(self) -> FrameSnapshot:
        """Advance every simulation by one frame."""
        self.time += 1.0 / self.fps
        lines: List[np.ndarray] = []
        resets = 0

        for sim in self._streams:
            sim.tick()
            if isinstance(sim, SparkStorm):
                lines.extend(sim.line_points())
                resets += sim.resets
            elif isinstance(sim, StreamingLine):
                lines.append(sim.points())
                resets += sim.resets
            else:
                lines.append(sim.points())

        for static in self._static:
            lines.extend(static.lines)

        fields = []
        for sim, draw in zip(self._fields, self._passes):
            sim.tick()
            fields.append(draw.render(sim))
            resets += sim.total_resets

        snapshot = FrameSnapshot(
            index=self.frame, time=self.time, lines=lines, fields=fields, resets=resets
        )
        self.frame += 1
        return snapshot

    def run(
        self,
        n_frames: int,
        progress_callback: Optional[Callable[[int, int], None]] = None,
    ) -> Iterator[FrameSnapshot]:
        """
        Step ``n_frames`` frames as a generator.

        Args:
            n_frames: Number of frames to produce.
            progress_callback: Optional callback(current, total).

        Yields:
            One FrameSnapshot per frame.
        """
        for i in range(n_frames):
            yield self.step()
            if progress_callback:
                progress_callback(i + 1, n_frames)

    def dispose(self) -> None:
        for sim in self._streams + self._fields:
            sim.dispose()
        self._streams = []
        self._fields = []
        self._passes = []
        self._static = []
