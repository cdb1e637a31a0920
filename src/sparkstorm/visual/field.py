"""
Render-to-texture particle field.

Particle state lives in a float32 RGBA texture of W×H texels; texel (i, j)
(column i, row j) stores one particle's position in RGB. Each tick runs the
per-texel simulation program reading the ``current`` target and writing the
``next`` one, then swaps the two slots (ping-pong). A separate draw pass
samples the latest target to place points, optionally pushed away from a
pointer; the draw pass never writes back into the simulation.

Divergence containment: a texel whose next state is non-finite (or outside
float32 range) is reset before it is stored, so no later tick ever samples
a diverged texel. Sibling texels are unaffected.
"""

import logging
from typing import Optional, Sequence

import numba
import numpy as np

from sparkstorm.config import FieldConfig, SparkConfig
from sparkstorm.core.attractors import Attractor, variant_rates
from sparkstorm.core.errors import InvalidConfig
from sparkstorm.core.integrator import IntegrationConfig
from sparkstorm.visual.base import BaseSimulation

logger = logging.getLogger(__name__)

_F32_MAX = float(np.finfo(np.float32).max)


# ---------------------------------------------------------------------------
# Simulation program (one invocation per texel)
# ---------------------------------------------------------------------------

@numba.njit(cache=True)
def _simulation_program(kind, coeffs, src, dst, seed, dt, sx, sy, sz, hold, limit):
    """Euler-step every texel of ``src`` into ``dst``. Returns the number of
    texels that were reset. ``src`` and ``dst`` must not alias."""
    h = src.shape[0]
    w = src.shape[1]
    resets = 0
    for j in range(h):
        for i in range(w):
            x = float(src[j, i, 0])
            y = float(src[j, i, 1])
            z = float(src[j, i, 2])
            dx, dy, dz = variant_rates(kind, x, y, z, coeffs)
            nx = x + dt * dx * sx
            ny = y + dt * dy * sy
            nz = z + dt * dz * sz
            if abs(nx) <= limit and abs(ny) <= limit and abs(nz) <= limit:
                dst[j, i, 0] = nx
                dst[j, i, 1] = ny
                dst[j, i, 2] = nz
            else:
                # NaN fails every comparison above and lands here too
                resets += 1
                if hold and abs(x) <= limit and abs(y) <= limit and abs(z) <= limit:
                    dst[j, i, 0] = x
                    dst[j, i, 1] = y
                    dst[j, i, 2] = z
                else:
                    dst[j, i, 0] = seed[j, i, 0]
                    dst[j, i, 1] = seed[j, i, 1]
                    dst[j, i, 2] = seed[j, i, 2]
            dst[j, i, 3] = 1.0
    return resets


def seed_grid(
    width: int,
    height: int,
    origin: Sequence[float] = (0.0, 0.0, 0.0),
    extent: Sequence[float] = (1.0, 1.0),
) -> np.ndarray:
    """(H, W, 3) float32 initial positions: ``origin + (i/W * ex, j/H * ey, 0)``."""
    u = np.arange(width, dtype=np.float64) / width
    v = np.arange(height, dtype=np.float64) / height
    ug, vg = np.meshgrid(u, v)
    seed = np.empty((height, width, 3), dtype=np.float64)
    seed[..., 0] = origin[0] + ug * extent[0]
    seed[..., 1] = origin[1] + vg * extent[1]
    seed[..., 2] = origin[2]
    return seed.astype(np.float32)


def texel_uvs(width: int, height: int) -> np.ndarray:
    """(W*H, 2) lookup coordinates of each point vertex into the texture."""
    idx = np.arange(width * height)
    uvs = np.empty((width * height, 2), dtype=np.float32)
    uvs[:, 0] = (idx % width) / width
    uvs[:, 1] = (idx // width) / height
    return uvs


# ---------------------------------------------------------------------------
# Off-screen targets
# ---------------------------------------------------------------------------

class RenderTarget:
    """A W×H float32 RGBA off-screen color target."""

    def __init__(self, width: int, height: int, name: str = ""):
        if int(width) != width or int(height) != height or width <= 0 or height <= 0:
            raise InvalidConfig(f"render target size must be positive, got {width}x{height}")
        self.width = int(width)
        self.height = int(height)
        self.name = name
        self.texture: Optional[np.ndarray] = np.zeros(
            (self.height, self.width, 4), dtype=np.float32
        )
        self.texture[..., 3] = 1.0

    def __repr__(self) -> str:
        state = "disposed" if self.disposed else f"{self.width}x{self.height}"
        return f"RenderTarget({self.name!r}, {state})"

    @property
    def disposed(self) -> bool:
        return self.texture is None

    def dispose(self) -> None:
        self.texture = None


class PingPongTargets:
    """Two named slots; ``current`` is read, ``next`` is written, then swapped."""

    def __init__(self, a: RenderTarget, b: RenderTarget):
        if a is b or np.shares_memory(a.texture, b.texture):
            raise InvalidConfig("ping-pong targets must not alias")
        if a.texture.shape != b.texture.shape:
            raise InvalidConfig("ping-pong targets must have the same size")
        self.current = a
        self.next = b
        self.swaps = 0

    def swap(self) -> None:
        self.current, self.next = self.next, self.current
        self.swaps += 1

    def dispose(self) -> None:
        self.current.dispose()
        self.next.dispose()


# ---------------------------------------------------------------------------
# Simulator
# ---------------------------------------------------------------------------

class ParticleFieldSimulator(BaseSimulation):
    """
    Advances W×H particles per tick on a ping-pong pair of float textures.

    The per-texel program evaluates exactly the line integrator's Euler step
    (same compiled rate dispatch), with storage in float32 as on a GPU target.
    """

    def __init__(
        self,
        attractor: Attractor,
        config: IntegrationConfig,
        field: Optional[FieldConfig] = None,
    ):
        super().__init__(None)
        self.attractor = attractor
        self.config = config
        self.field = field or FieldConfig()

        w, h = self.field.grid_size
        self.targets: Optional[PingPongTargets] = PingPongTargets(
            RenderTarget(w, h, "ping"), RenderTarget(w, h, "pong")
        )
        self._seed = seed_grid(w, h, self.field.origin, self.field.extent)
        self.targets.current.texture[..., :3] = self._seed

        self._coeffs = attractor.coeff_array
        self._hold = self.field.divergence_policy == "hold"
        self.last_resets = 0
        self.total_resets = 0
        logger.debug("field %dx%d initialised for %r", w, h, attractor)

    @classmethod
    def from_config(cls, cfg: SparkConfig) -> "ParticleFieldSimulator":
        return cls(cfg.build_attractor(), cfg.integration(), cfg.field_config())

    def __repr__(self) -> str:
        w, h = self.field.grid_size
        return f"ParticleFieldSimulator({self.attractor!r}, {w}x{h}, frame={self.frame})"

    @property
    def count(self) -> int:
        return self.field.count

    def _live_targets(self) -> PingPongTargets:
        self._require_live()
        return self.targets  # type: ignore[return-value]

    def update(self) -> None:
        targets = self._live_targets()
        src = targets.current.texture
        dst = targets.next.texture
        sx, sy, sz = self.config.axis_scale
        resets = _simulation_program(
            self.attractor.kind,
            self._coeffs,
            src,
            dst,
            self._seed,
            self.config.dt,
            sx, sy, sz,
            self._hold,
            _F32_MAX,
        )
        targets.swap()

        self.last_resets = int(resets)
        if resets:
            self.total_resets += int(resets)
            logger.warning(
                "field tick %d: %d/%d particles diverged and were %s",
                self.frame, resets, self.count,
                "held" if self._hold else "reseeded",
            )

    @property
    def texture(self) -> np.ndarray:
        """Read-only view of the latest target."""
        view = self._live_targets().current.texture.view()
        view.flags.writeable = False
        return view

    def positions(self) -> np.ndarray:
        """(W*H, 3) float32 copy of the latest particle positions, row-major."""
        return self._live_targets().current.texture[..., :3].reshape(-1, 3).copy()

    def points(self) -> np.ndarray:
        return self.positions()

    def reset(self) -> None:
        """Reseed every particle from its grid coordinate."""
        targets = self._live_targets()
        targets.current.texture[..., :3] = self._seed
        targets.current.texture[..., 3] = 1.0
        self.frame = 0
        self.last_resets = 0
        self.total_resets = 0

    def _release(self) -> None:
        if self.targets is not None:
            self.targets.dispose()
        self.targets = None


# ---------------------------------------------------------------------------
# Draw pass
# ---------------------------------------------------------------------------

def _smoothstep(edge0: float, edge1: float, x: np.ndarray) -> np.ndarray:
    t = np.clip((x - edge0) / (edge1 - edge0), 0.0, 1.0)
    return t * t * (3.0 - 2.0 * t)


class PointCloudPass:
    """
    Places one point per texel by sampling the latest simulation target.

    When a pointer is set, points within ``repulsion_radius`` are pushed
    away from it: ``s = smoothstep(radius, 0, |p - pointer|)`` and
    ``p' = mix(p, p + dir * s * force, s)``. This bias is evaluated at draw
    time only.
    """

    def __init__(self, field: Optional[FieldConfig] = None):
        self.field = field or FieldConfig()
        w, h = self.field.grid_size
        self.uvs = texel_uvs(w, h)
        self.pointer: Optional[np.ndarray] = None
        self.strength: Optional[np.ndarray] = None

    def set_pointer(self, pointer: Optional[Sequence[float]]) -> None:
        if pointer is None:
            self.pointer = None
            return
        p = np.asarray(pointer, dtype=np.float64)
        if p.shape != (3,) or not np.all(np.isfinite(p)):
            raise InvalidConfig(f"pointer must be a finite 3-vector, got {pointer!r}")
        self.pointer = p

    def sample(self, texture: np.ndarray) -> np.ndarray:
        """Nearest-texel lookup of every vertex's position, (W*H, 3) float64."""
        h, w = texture.shape[:2]
        if (w, h) != self.field.grid_size:
            raise InvalidConfig(
                f"texture is {w}x{h}, pass expects {self.field.grid_size[0]}x{self.field.grid_size[1]}"
            )
        cols = np.minimum((self.uvs[:, 0] * w + 0.5).astype(np.int64), w - 1)
        rows = np.minimum((self.uvs[:, 1] * h + 0.5).astype(np.int64), h - 1)
        return texture[rows, cols, :3].astype(np.float64)

    def render(self, source) -> np.ndarray:
        """
        Positions for this frame.

        Args:
            source: A ParticleFieldSimulator or an (H, W, 4) texture.

        Returns:
            (W*H, 3) float64 positions with pointer repulsion applied.
        """
        texture = source.texture if isinstance(source, ParticleFieldSimulator) else source
        pos = self.sample(texture)
        if self.pointer is None:
            self.strength = np.zeros(len(pos))
            return pos

        away = pos - self.pointer
        dist = np.linalg.norm(away, axis=1)
        s = _smoothstep(self.field.repulsion_radius, 0.0, dist)
        direction = np.zeros_like(away)
        nz = dist > 0.0
        direction[nz] = away[nz] / dist[nz, np.newaxis]

        pushed = pos + direction * (s * self.field.repulsion_force)[:, np.newaxis]
        self.strength = s
        return pos * (1.0 - s)[:, np.newaxis] + pushed * s[:, np.newaxis]


