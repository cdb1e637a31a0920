"""
Trajectory lines: per-frame streaming sparks and precomputed static lines.

  - StreamingLine   one attractor trajectory advancing one step per frame
                    through a fixed window (the "growing spark")
  - SparkStorm      many streaming lines with seeded starts, radius and
                    speed variation
  - StaticLineSet   bulk-integrated lines computed once at construction
"""

import logging
import math
from dataclasses import replace
from typing import Iterator, List, Optional, Sequence, Tuple

import numpy as np

from sparkstorm.config import DIVERGENCE_POLICIES, SparkConfig
from sparkstorm.core.attractors import Attractor, State3
from sparkstorm.core.errors import InvalidConfig, NumericDivergence
from sparkstorm.core.integrator import (
    IntegrationConfig,
    apply_render_scale,
    integrate_bulk,
    integrate_step,
    project_to_radius,
)
from sparkstorm.core.stream import StreamingLineBuffer
from sparkstorm.visual.base import BaseSimulation

logger = logging.getLogger(__name__)


def sphere_point(rng: np.random.Generator, radius: float = 1.0) -> State3:
    """Uniform random point on a sphere of ``radius``."""
    while True:
        v = rng.normal(0.0, 1.0, 3)
        n = float(np.linalg.norm(v))
        if n > 1e-12:
            break
    v = v * (radius / n)
    return float(v[0]), float(v[1]), float(v[2])


class StreamingLine(BaseSimulation):
    """
    A trajectory rendered as a moving window.

    Each tick performs one Euler step from the persistent state, hands the
    new point to geometry (``radius`` projection or per-axis render scale)
    and advances the window. A non-finite step never stops the line: it is
    reseeded from its initial state (``policy="reseed"``) or held at its
    last finite state (``policy="hold"``).
    """

    def __init__(
        self,
        attractor: Attractor,
        config: IntegrationConfig,
        initial_state: Sequence[float],
        window_size: int = 100,
        radius: Optional[float] = None,
        policy: str = "reseed",
        seed: Optional[int] = None,
    ):
        super().__init__(seed)
        if policy not in DIVERGENCE_POLICIES:
            raise InvalidConfig(f"policy must be one of {DIVERGENCE_POLICIES}, got {policy!r}")
        if radius is not None and not radius > 0:
            raise InvalidConfig(f"radius must be positive, got {radius!r}")

        self.attractor = attractor
        self.config = config
        self.radius = radius
        self.policy = policy
        self.initial_state: State3 = tuple(float(v) for v in initial_state)  # type: ignore[assignment]
        self.state: State3 = self.initial_state
        self.resets = 0

        self.buffer: Optional[StreamingLineBuffer] = StreamingLineBuffer(
            window_size, self._handoff(self.initial_state)
        )

    def __repr__(self) -> str:
        return (
            f"StreamingLine({self.attractor!r}, dt={self.config.dt}, "
            f"window={self.window_size}, frame={self.frame})"
        )

    @property
    def window_size(self) -> int:
        return self._live_buffer().window_size

    def _live_buffer(self) -> StreamingLineBuffer:
        self._require_live()
        return self.buffer  # type: ignore[return-value]

    def _handoff(self, state: State3) -> State3:
        if self.radius is not None:
            return project_to_radius(state, self.radius)
        sx, sy, sz = self.config.render_scale
        return state[0] * sx, state[1] * sy, state[2] * sz

    def update(self) -> None:
        buffer = self._live_buffer()
        try:
            self.state = integrate_step(self.attractor, self.config, self.state)
        except NumericDivergence as exc:
            self.resets += 1
            if self.policy == "reseed":
                self.state = self.initial_state
            log = logger.warning if self.resets == 1 else logger.debug
            log(
                "%s diverged at frame %d (%s); %s",
                self.attractor.tag, self.frame, exc,
                "reseeded" if self.policy == "reseed" else "holding last state",
            )
        buffer.advance(self._handoff(self.state))

    def points(self) -> np.ndarray:
        return self._live_buffer().as_ordered_points()

    def flat(self) -> np.ndarray:
        """Flat (3W,) draw-order triples for mesh-line style consumers."""
        return self._live_buffer().flat()

    def _release(self) -> None:
        self.buffer = None


class SparkStorm(BaseSimulation):
    """
    A bundle of independent streaming lines.

    Every line starts on the unit sphere, projects onto a sphere whose radius
    varies by ``radius_variation`` around ``base_radius``, and steps with a
    time step jittered in [0.8, 1.2] × ``config.dt``. All randomness is drawn
    here, once; ticking is deterministic.
    """

    def __init__(
        self,
        attractor: Attractor,
        config: IntegrationConfig,
        count: int = 15,
        window_size: int = 100,
        base_radius: float = 10.0,
        radius_variation: float = 0.2,
        speed_multiplier: float = 1.0,
        policy: str = "reseed",
        seed: Optional[int] = None,
    ):
        super().__init__(seed)
        if int(count) != count or count <= 0:
            raise InvalidConfig(f"count must be a positive integer, got {count!r}")
        if not 0.0 <= radius_variation < 1.0:
            raise InvalidConfig(f"radius_variation must be in [0, 1), got {radius_variation!r}")
        if not (math.isfinite(speed_multiplier) and speed_multiplier > 0):
            raise InvalidConfig(f"speed_multiplier must be positive, got {speed_multiplier!r}")

        self.attractor = attractor
        self.lines: List[StreamingLine] = []
        for _ in range(int(count)):
            start = sphere_point(self.rng, 1.0)
            radius = base_radius * (
                1.0 + float(self.rng.uniform(-radius_variation, radius_variation))
            )
            speed = config.dt * speed_multiplier * float(self.rng.uniform(0.8, 1.2))
            self.lines.append(
                StreamingLine(
                    attractor,
                    replace(config, dt=speed),
                    start,
                    window_size=window_size,
                    radius=radius,
                    policy=policy,
                )
            )

    @classmethod
    def from_config(cls, cfg: SparkConfig, **kwargs) -> "SparkStorm":
        kwargs.setdefault("count", cfg.count)
        kwargs.setdefault("window_size", cfg.window_size)
        kwargs.setdefault("policy", cfg.divergence_policy)
        if cfg.radius is not None:
            kwargs.setdefault("base_radius", cfg.radius)
        return cls(cfg.build_attractor(), cfg.integration(), seed=cfg.seed, **kwargs)

    def __len__(self) -> int:
        return len(self.lines)

    def __iter__(self) -> Iterator[StreamingLine]:
        return iter(self.lines)

    @property
    def resets(self) -> int:
        return sum(line.resets for line in self.lines)

    def update(self) -> None:
        self._require_live()
        for line in self.lines:
            line.update()

    def line_points(self) -> List[np.ndarray]:
        """One (W, 3) array per line."""
        self._require_live()
        return [line.points() for line in self.lines]

    def points(self) -> np.ndarray:
        return np.concatenate(self.line_points())

    def _release(self) -> None:
        for line in self.lines:
            line.dispose()
        self.lines = []


class StaticLineSet:
    """
    Precomputed, non-animated lines.

    Line ``k`` starts at ``(2 cos θ, 4 sin θ, 4)`` with θ drawn uniformly
    from the seeded generator, unless explicit ``starts`` are given.
    Points have ``render_scale`` applied.
    """

    def __init__(
        self,
        attractor: Attractor,
        config: IntegrationConfig,
        count: int = 10,
        points_per_line: int = 5000,
        starts: Optional[Sequence[Sequence[float]]] = None,
        seed: Optional[int] = None,
    ):
        if starts is None:
            if int(count) != count or count <= 0:
                raise InvalidConfig(f"count must be a positive integer, got {count!r}")
            rng = np.random.default_rng(seed)
            thetas = rng.uniform(0.0, 2.0 * math.pi, int(count))
            starts = [(2.0 * math.cos(t), 4.0 * math.sin(t), 4.0) for t in thetas]

        self.attractor = attractor
        self.config = config
        self.starts: List[Tuple[float, ...]] = [tuple(float(v) for v in s) for s in starts]
        self.lines: List[np.ndarray] = [
            apply_render_scale(integrate_bulk(attractor, config, s, points_per_line), config)
            for s in self.starts
        ]

    @classmethod
    def from_config(cls, cfg: SparkConfig, points_per_line: int, **kwargs) -> "StaticLineSet":
        kwargs.setdefault("count", cfg.count)
        return cls(
            cfg.build_attractor(),
            cfg.integration(),
            points_per_line=points_per_line,
            seed=cfg.seed,
            **kwargs,
        )

    def __len__(self) -> int:
        return len(self.lines)

    def __iter__(self) -> Iterator[np.ndarray]:
        return iter(self.lines)

    def flat(self, index: int) -> np.ndarray:
        return self.lines[index].reshape(-1)

    def points(self) -> np.ndarray:
        return np.concatenate(self.lines)
