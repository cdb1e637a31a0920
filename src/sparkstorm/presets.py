"""
Named scene presets.

  lorenz_sparks   10 static Lorenz lines (σ=11.14, ρ=40, β=5), 5000 points each
  lorenz_system   one static Lorenz line from (2, 4, 4), 100 warm-up steps discarded
  spark_storm     15 streaming Lorenz-Mod2 sparks projected on a radius-10 sphere
  particle_field  100×100 particle field on the tuned Lorenz flow
"""

from dataclasses import dataclass
from typing import Callable, Dict, Optional, Tuple

from sparkstorm.config import SparkConfig
from sparkstorm.core.errors import InvalidConfig

KINDS = ("static", "storm", "field")

_TUNED_LORENZ = {"sigma": 11.14, "rho": 40.0, "beta": 5.0}


@dataclass
class Preset:
    name: str
    kind: str  # "static" | "storm" | "field"
    config: SparkConfig
    points_per_line: int = 0
    starts: Optional[Tuple[Tuple[float, float, float], ...]] = None  # fixed static starts


def _lorenz_sparks() -> Preset:
    return Preset(
        name="lorenz_sparks",
        kind="static",
        config=SparkConfig(
            attractor="lorenz",
            coefficients=dict(_TUNED_LORENZ),
            dt=0.005,
            axis_scale=(1.0, 1.18, 0.8),
            render_scale=0.1,
            count=10,
        ),
        points_per_line=5000,
    )


def _lorenz_system() -> Preset:
    return Preset(
        name="lorenz_system",
        kind="static",
        config=SparkConfig(
            attractor="lorenz",
            coefficients=dict(_TUNED_LORENZ),
            dt=0.005,
            axis_scale=(1.0, 1.18, 0.8),
            warmup=100,
            render_scale=(1.2, 0.1, 0.8),
            count=1,
        ),
        points_per_line=4900,
        starts=((2.0, 4.0, 4.0),),
    )


def _spark_storm() -> Preset:
    return Preset(
        name="spark_storm",
        kind="storm",
        config=SparkConfig(
            attractor="lorenz_mod2",
            dt=0.005,
            window_size=100,
            radius=10.0,
            count=15,
        ),
    )


def _particle_field() -> Preset:
    return Preset(
        name="particle_field",
        kind="field",
        config=SparkConfig(
            attractor="lorenz",
            coefficients=dict(_TUNED_LORENZ),
            dt=0.005,
            axis_scale=(1.2, 0.1 * 1.18, 0.8),
            grid_size=(100, 100),
        ),
    )


_PRESETS: Dict[str, Callable[[], Preset]] = {
    "lorenz_sparks": _lorenz_sparks,
    "lorenz_system": _lorenz_system,
    "spark_storm": _spark_storm,
    "particle_field": _particle_field,
}


def preset_names() -> Tuple[str, ...]:
    return tuple(_PRESETS)


def get_preset(name: str) -> Preset:
    """Return a fresh copy of the named preset."""
    factory = _PRESETS.get(name.strip().lower().replace("-", "_"))
    if factory is None:
        raise InvalidConfig(
            f"unknown preset {name!r} (available: {', '.join(preset_names())})"
        )
    return factory()
