"""
Configuration surface for lines and particle fields.

``SparkConfig`` carries every recognised option; the engine consumes the
narrower ``IntegrationConfig`` and ``FieldConfig`` built from it. All values
are validated at construction and never silently defaulted.
"""

import math
import numbers
from dataclasses import dataclass, field, fields
from typing import Any, Dict, Mapping, Optional, Tuple, Union

from sparkstorm.core.attractors import Attractor, lookup
from sparkstorm.core.errors import InvalidConfig
from sparkstorm.core.integrator import IntegrationConfig, Triple, as_triple

DIVERGENCE_POLICIES = ("reseed", "hold")

# camelCase spellings accepted by from_dict
_ALIASES = {
    "attractorTag": "attractor",
    "axisScales": "axis_scale",
    "renderScale": "render_scale",
    "windowSize": "window_size",
    "particleGridSize": "grid_size",
    "warmupSteps": "warmup",
    "divergencePolicy": "divergence_policy",
    "repulsionRadius": "repulsion_radius",
    "repulsionForce": "repulsion_force",
}


def _grid(value: Union[int, Tuple[int, int]]) -> Tuple[int, int]:
    if isinstance(value, numbers.Integral):
        dims = (int(value), int(value))
    else:
        dims = tuple(value)
        if len(dims) != 2:
            raise InvalidConfig(f"grid_size must be W or (W, H), got {value!r}")
    for d in dims:
        if int(d) != d or d <= 0:
            raise InvalidConfig(f"grid_size components must be positive integers, got {value!r}")
    return int(dims[0]), int(dims[1])


def _extent(value: Tuple[float, float]) -> Tuple[float, float]:
    values = tuple(float(v) for v in value)
    if len(values) != 2 or not all(math.isfinite(v) for v in values):
        raise InvalidConfig(f"extent must be two finite numbers, got {value!r}")
    return values  # type: ignore[return-value]


@dataclass(frozen=True)
class FieldConfig:
    """Particle grid size, seeding and divergence handling."""

    grid_size: Tuple[int, int] = (100, 100)
    origin: Triple = (0.0, 0.0, 0.0)
    extent: Tuple[float, float] = (1.0, 1.0)
    divergence_policy: str = "reseed"

    # Draw-time pointer repulsion
    repulsion_radius: float = 50.0
    repulsion_force: float = 2.0

    def __post_init__(self):
        object.__setattr__(self, "grid_size", _grid(self.grid_size))
        object.__setattr__(self, "origin", as_triple(self.origin, "origin"))
        object.__setattr__(self, "extent", _extent(self.extent))
        if self.divergence_policy not in DIVERGENCE_POLICIES:
            raise InvalidConfig(
                f"divergence_policy must be one of {DIVERGENCE_POLICIES}, "
                f"got {self.divergence_policy!r}"
            )
        if not (math.isfinite(self.repulsion_radius) and self.repulsion_radius > 0):
            raise InvalidConfig(f"repulsion_radius must be positive, got {self.repulsion_radius!r}")
        if not math.isfinite(self.repulsion_force):
            raise InvalidConfig("repulsion_force must be finite")

    @property
    def width(self) -> int:
        return self.grid_size[0]

    @property
    def height(self) -> int:
        return self.grid_size[1]

    @property
    def count(self) -> int:
        return self.grid_size[0] * self.grid_size[1]


@dataclass
class SparkConfig:
    """Every option a line or field can be configured with."""

    attractor: str = "lorenz"
    coefficients: Dict[str, float] = field(default_factory=dict)

    # Integration
    dt: float = 0.005
    axis_scale: Triple = (1.0, 1.0, 1.0)
    warmup: int = 0

    # Geometry hand-off
    render_scale: Triple = (1.0, 1.0, 1.0)
    radius: Optional[float] = None  # normalise-to-sphere projection instead of render_scale

    # Streaming lines
    window_size: int = 100
    count: int = 1
    seed: Optional[int] = None

    # Particle field
    grid_size: Tuple[int, int] = (100, 100)
    divergence_policy: str = "reseed"
    origin: Triple = (0.0, 0.0, 0.0)
    extent: Tuple[float, float] = (1.0, 1.0)
    repulsion_radius: float = 50.0
    repulsion_force: float = 2.0

    def __post_init__(self):
        # Both raise on bad values; keep the normalised tuples
        integration = self.integration()
        self.axis_scale = integration.axis_scale
        self.render_scale = integration.render_scale
        self.build_attractor()
        self.grid_size = self.field_config().grid_size

        if int(self.window_size) != self.window_size or self.window_size <= 0:
            raise InvalidConfig(f"window_size must be a positive integer, got {self.window_size!r}")
        if int(self.count) != self.count or self.count <= 0:
            raise InvalidConfig(f"count must be a positive integer, got {self.count!r}")
        if self.radius is not None and not (math.isfinite(self.radius) and self.radius > 0):
            raise InvalidConfig(f"radius must be positive, got {self.radius!r}")

    def build_attractor(self) -> Attractor:
        return lookup(self.attractor, **self.coefficients)

    def integration(self) -> IntegrationConfig:
        return IntegrationConfig(
            dt=self.dt,
            axis_scale=self.axis_scale,
            warmup=self.warmup,
            render_scale=self.render_scale,
        )

    def field_config(self) -> FieldConfig:
        return FieldConfig(
            grid_size=self.grid_size,
            origin=self.origin,
            extent=self.extent,
            divergence_policy=self.divergence_policy,
            repulsion_radius=self.repulsion_radius,
            repulsion_force=self.repulsion_force,
        )

    def to_dict(self) -> Dict[str, Any]:
        return {f.name: getattr(self, f.name) for f in fields(self)}


def from_dict(options: Mapping[str, Any]) -> SparkConfig:
    """Build a ``SparkConfig`` from snake_case or camelCase keys."""
    known = {f.name for f in fields(SparkConfig)}
    kwargs: Dict[str, Any] = {}
    for key, value in options.items():
        name = _ALIASES.get(key, key)
        if name not in known:
            raise InvalidConfig(f"unrecognised option {key!r}")
        if name in kwargs:
            raise InvalidConfig(f"option {name!r} given twice")
        kwargs[name] = value
    return SparkConfig(**kwargs)
