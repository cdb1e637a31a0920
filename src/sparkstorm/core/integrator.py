"""
Explicit Euler integration of attractor trajectories.

Two entry points share one compiled stepping loop:

  - integrate_bulk  warm-up + N recorded steps, for precomputed static lines
  - integrate_step  exactly one step, for per-frame streaming lines

Step definition (all three rates read from the unmutated current state):

    x' = x + dt * dx * scale_x
    y' = y + dt * dy * scale_y
    z' = z + dt * dz * scale_z

``render_scale`` is applied only to points handed to geometry, never fed back
into the state.
"""

import math
import numbers
from dataclasses import dataclass
from typing import Iterable, Tuple, Union

import numba
import numpy as np

from sparkstorm.core.attractors import Attractor, State3, variant_rates
from sparkstorm.core.errors import InvalidConfig, NumericDivergence

Triple = Tuple[float, float, float]


def as_triple(value: Union[float, Iterable[float]], name: str) -> Triple:
    """Broadcast a scalar to three axes or validate a 3-sequence."""
    if isinstance(value, numbers.Real):
        values = (float(value),) * 3
    else:
        values = tuple(float(v) for v in value)
        if len(values) != 3:
            raise InvalidConfig(f"{name} must have 3 components, got {len(values)}")
    if not all(math.isfinite(v) for v in values):
        raise InvalidConfig(f"{name} must be finite, got {values}")
    return values  # type: ignore[return-value]


@dataclass(frozen=True)
class IntegrationConfig:
    """Time step, per-axis update scales, warm-up and geometry scale."""

    dt: float = 0.005
    axis_scale: Triple = (1.0, 1.0, 1.0)
    warmup: int = 0
    render_scale: Triple = (1.0, 1.0, 1.0)

    def __post_init__(self):
        dt = float(self.dt)
        if not math.isfinite(dt) or dt <= 0.0:
            raise InvalidConfig(f"dt must be a positive finite number, got {self.dt!r}")
        if int(self.warmup) != self.warmup or self.warmup < 0:
            raise InvalidConfig(f"warmup must be a non-negative integer, got {self.warmup!r}")
        object.__setattr__(self, "dt", dt)
        object.__setattr__(self, "warmup", int(self.warmup))
        object.__setattr__(self, "axis_scale", as_triple(self.axis_scale, "axis_scale"))
        object.__setattr__(self, "render_scale", as_triple(self.render_scale, "render_scale"))


# ---------------------------------------------------------------------------
# Compiled stepping loop
# ---------------------------------------------------------------------------

@numba.njit(cache=True)
def _euler_run(kind, coeffs, x, y, z, dt, sx, sy, sz, warmup, steps, out):
    """Run ``warmup + steps`` Euler steps, recording the last ``steps`` into
    ``out``. Returns -1, or the index of the first step that went non-finite
    (its state is written to ``out[0]`` when that happens during warm-up)."""
    for i in range(warmup + steps):
        dx, dy, dz = variant_rates(kind, x, y, z, coeffs)
        x = x + dt * dx * sx
        y = y + dt * dy * sy
        z = z + dt * dz * sz
        if not (math.isfinite(x) and math.isfinite(y) and math.isfinite(z)):
            k = i - warmup if i >= warmup else 0
            out[k, 0] = x
            out[k, 1] = y
            out[k, 2] = z
            return i
        if i >= warmup:
            k = i - warmup
            out[k, 0] = x
            out[k, 1] = y
            out[k, 2] = z
    return -1


def _start(state: Iterable[float]) -> Triple:
    values = tuple(float(v) for v in state)
    if len(values) != 3:
        raise InvalidConfig(f"state must have 3 components, got {len(values)}")
    return values  # type: ignore[return-value]


def _run(
    attractor: Attractor,
    config: IntegrationConfig,
    state: Triple,
    warmup: int,
    steps: int,
) -> np.ndarray:
    out = np.empty((steps, 3), dtype=np.float64)
    sx, sy, sz = config.axis_scale
    failed = _euler_run(
        attractor.kind,
        attractor.coeff_array,
        state[0], state[1], state[2],
        config.dt, sx, sy, sz,
        warmup, steps, out,
    )
    if failed >= 0:
        k = failed - warmup if failed >= warmup else 0
        bad = (float(out[k, 0]), float(out[k, 1]), float(out[k, 2]))
        raise NumericDivergence(
            f"{attractor.tag}: non-finite state at step {failed} (dt={config.dt})",
            step=int(failed),
            state=bad,
        )
    return out


def integrate_bulk(
    attractor: Attractor,
    config: IntegrationConfig,
    initial: Iterable[float],
    total_steps: int,
) -> np.ndarray:
    """
    Integrate a trajectory for precomputed geometry.

    Args:
        attractor: Variant providing the rates.
        config: Step size, axis scales and warm-up count.
        initial: Starting state (x, y, z).
        total_steps: Number of recorded steps after warm-up.

    Returns:
        (total_steps, 3) float64 array, oldest first. ``render_scale`` is
        not applied; see ``apply_render_scale``.

    Raises:
        InvalidConfig: ``total_steps`` is not a positive integer.
        NumericDivergence: a step produced a non-finite state.
    """
    if int(total_steps) != total_steps or total_steps <= 0:
        raise InvalidConfig(f"total_steps must be a positive integer, got {total_steps!r}")
    return _run(attractor, config, _start(initial), config.warmup, int(total_steps))


def integrate_step(
    attractor: Attractor,
    config: IntegrationConfig,
    state: Iterable[float],
) -> State3:
    """Advance ``state`` by one Euler step. Warm-up is not applied here."""
    out = _run(attractor, config, _start(state), 0, 1)
    return float(out[0, 0]), float(out[0, 1]), float(out[0, 2])


# ---------------------------------------------------------------------------
# Geometry hand-off
# ---------------------------------------------------------------------------

def apply_render_scale(points: np.ndarray, config: IntegrationConfig) -> np.ndarray:
    """Return ``points`` (N, 3) or (3,) multiplied per axis by ``render_scale``."""
    return np.asarray(points, dtype=np.float64) * np.asarray(config.render_scale)


def project_to_radius(point: Iterable[float], radius: float) -> State3:
    """Normalise ``point`` onto a sphere of ``radius``; the origin stays put."""
    x, y, z = (float(v) for v in point)
    length = math.sqrt(x * x + y * y + z * z)
    if length == 0.0 or not math.isfinite(length):
        return 0.0, 0.0, 0.0
    k = radius / length
    return x * k, y * k, z * k
