"""
Strange attractor variants and their registry.

Each variant is a small class carrying a fixed set of named coefficients and
one Numba-compiled rate kernel ``rates(x, y, z, coeffs) -> (dx, dy, dz)``,
reached through ``variant_rates`` by the integer tag ``kind``.
The same dispatcher is used by the CPU line integrator and by the per-pixel field
program, so both paths evaluate identical math.

Shipped variants (default coefficients):
  - lorenz       σ=10, ρ=28, β=8/3
  - lorenz_mod2  a=0.9, b=5.0, c=9.9, d=1.0
  - dadras       a=3, b=2.7, c=1.7, d=2, e=9
  - aizawa       a=0.95, b=0.7, c=0.6, d=3.5, e=0.25, f=0.1
  - arneodo      a=-5.5, b=3.5, d=-1
  - dequan       a=40, b=1.833, c=0.16, d=0.65, e=55, f=20
"""

import math
from dataclasses import dataclass
from typing import Dict, Iterable, Tuple, Type

import numba
import numpy as np

from sparkstorm.core.errors import InvalidConfig, UnknownAttractor

State3 = Tuple[float, float, float]


# ---------------------------------------------------------------------------
# Rate kernels (compiled on first call)
# ---------------------------------------------------------------------------

@numba.njit(cache=True)
def _lorenz_rates(x, y, z, c):
    sigma = c[0]
    rho = c[1]
    beta = c[2]
    return sigma * (y - x), x * (rho - z) - y, x * y - beta * z


@numba.njit(cache=True)
def _lorenz_mod2_rates(x, y, z, c):
    a = c[0]
    b = c[1]
    cc = c[2]
    d = c[3]
    dx = -a * x + y * y - z * z + a * cc
    dy = x * (y - b * z) + d
    dz = -z + x * (b * y + z)
    return dx, dy, dz


@numba.njit(cache=True)
def _dadras_rates(x, y, z, c):
    a = c[0]
    b = c[1]
    cc = c[2]
    d = c[3]
    e = c[4]
    dx = y - a * x + b * y * z
    dy = cc * y - x * z + z
    dz = d * x * y - e * z
    return dx, dy, dz


@numba.njit(cache=True)
def _aizawa_rates(x, y, z, c):
    a = c[0]
    b = c[1]
    cc = c[2]
    d = c[3]
    # c[4] (e) is part of the published parameter set but unused by the flow
    f = c[5]
    dx = (z - b) * x - d * y
    dy = d * x + (z - b) * y
    dz = cc + a * z - z * z * z / 3.0 - x * x + f * z * (x * x * x)
    return dx, dy, dz


@numba.njit(cache=True)
def _arneodo_rates(x, y, z, c):
    a = c[0]
    b = c[1]
    d = c[2]
    return y, z, -a * x - b * y - z + d * (x * x * x)


@numba.njit(cache=True)
def _dequan_rates(x, y, z, c):
    a = c[0]
    b = c[1]
    cc = c[2]
    d = c[3]
    e = c[4]
    f = c[5]
    dx = a * (y - x) + cc * x * z
    dy = e * x + f * y - x * z
    dz = b * z + x * y - d * x * x
    return dx, dy, dz


# Variant tags understood by the compiled dispatcher
LORENZ = 0
LORENZ_MOD2 = 1
DADRAS = 2
AIZAWA = 3
ARNEODO = 4
DEQUAN = 5

_KINDS = (LORENZ, LORENZ_MOD2, DADRAS, AIZAWA, ARNEODO, DEQUAN)


@numba.njit(cache=True)
def variant_rates(kind, x, y, z, c):
    """Rates of variant ``kind`` at (x, y, z). Unknown tags yield NaN."""
    if kind == LORENZ:
        return _lorenz_rates(x, y, z, c)
    elif kind == LORENZ_MOD2:
        return _lorenz_mod2_rates(x, y, z, c)
    elif kind == DADRAS:
        return _dadras_rates(x, y, z, c)
    elif kind == AIZAWA:
        return _aizawa_rates(x, y, z, c)
    elif kind == ARNEODO:
        return _arneodo_rates(x, y, z, c)
    elif kind == DEQUAN:
        return _dequan_rates(x, y, z, c)
    return math.nan, math.nan, math.nan


# ---------------------------------------------------------------------------
# Variants
# ---------------------------------------------------------------------------

@dataclass(frozen=True)
class AttractorSpec:
    """Immutable identity of a variant: tag plus its coefficients."""

    tag: str
    coefficients: Tuple[Tuple[str, float], ...]

    def as_dict(self) -> Dict[str, float]:
        return dict(self.coefficients)


class Attractor:
    """
    A chaotic flow with fixed coefficients.

    Subclasses declare ``tag``, ``coefficient_names``, ``defaults`` and the
    ``kind`` tag that ``variant_rates`` dispatches on.
    """

    tag: str = ""
    coefficient_names: Tuple[str, ...] = ()
    defaults: Tuple[float, ...] = ()
    kind: int = -1

    def __init__(self, **overrides: float):
        unknown = sorted(set(overrides) - set(self.coefficient_names))
        if unknown:
            raise InvalidConfig(
                f"{self.tag}: unknown coefficient(s) {', '.join(unknown)}; "
                f"expected a subset of {', '.join(self.coefficient_names)}"
            )

        values = []
        for name, default in zip(self.coefficient_names, self.defaults):
            value = float(overrides.get(name, default))
            if not math.isfinite(value):
                raise InvalidConfig(f"{self.tag}: coefficient {name} must be finite")
            values.append(value)

        # Handed to the compiled kernels; never mutated after construction
        self._coeffs = np.array(values, dtype=np.float64)

    def __repr__(self) -> str:
        params = ", ".join(f"{k}={v:g}" for k, v in self.spec.coefficients)
        return f"{type(self).__name__}({params})"

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, Attractor):
            return NotImplemented
        return self.spec == other.spec

    def __hash__(self) -> int:
        return hash(self.spec)

    @property
    def spec(self) -> AttractorSpec:
        return AttractorSpec(
            tag=self.tag,
            coefficients=tuple(
                (name, float(v)) for name, v in zip(self.coefficient_names, self._coeffs)
            ),
        )

    @property
    def coefficients(self) -> Dict[str, float]:
        return self.spec.as_dict()

    @property
    def coeff_array(self) -> np.ndarray:
        """Coefficient vector in ``coefficient_names`` order (a copy)."""
        return self._coeffs.copy()

    def with_coefficients(self, **overrides: float) -> "Attractor":
        """Return a new variant with some coefficients replaced."""
        merged = self.coefficients
        merged.update(overrides)
        return type(self)(**merged)

    def rates(self, state: Iterable[float]) -> State3:
        """Time derivatives at ``state``."""
        x, y, z = (float(v) for v in state)
        dx, dy, dz = variant_rates(self.kind, x, y, z, self._coeffs)
        return float(dx), float(dy), float(dz)

    def derivative(self, state: Iterable[float], dt: float) -> np.ndarray:
        """Return the Euler delta ``dt * rates(state)``; ``state`` is left untouched."""
        return np.asarray(self.rates(state), dtype=np.float64) * dt


_REGISTRY: Dict[str, Type[Attractor]] = {}


def _normalize_tag(tag: str) -> str:
    return str(tag).strip().lower().replace("-", "_").replace(" ", "_")


def register(cls: Type[Attractor]) -> Type[Attractor]:
    """Class decorator adding a variant to the registry."""
    if not cls.tag or cls.kind not in _KINDS:
        raise InvalidConfig(f"{cls.__name__} must define a tag and a known kind")
    if len(cls.coefficient_names) != len(cls.defaults):
        raise InvalidConfig(f"{cls.__name__}: coefficient names and defaults differ in length")
    _REGISTRY[_normalize_tag(cls.tag)] = cls
    return cls


def available() -> Tuple[str, ...]:
    """Registered tags, sorted."""
    return tuple(sorted(_REGISTRY))


def lookup(tag: str, **overrides: float) -> Attractor:
    """Instantiate the variant registered under ``tag``."""
    cls = _REGISTRY.get(_normalize_tag(tag))
    if cls is None:
        raise UnknownAttractor(str(tag), available())
    return cls(**overrides)


def make_spec(tag: str, **overrides: float) -> AttractorSpec:
    return lookup(tag, **overrides).spec


def from_spec(spec: AttractorSpec) -> Attractor:
    return lookup(spec.tag, **spec.as_dict())


@register
class Lorenz(Attractor):
    tag = "lorenz"
    coefficient_names = ("sigma", "rho", "beta")
    defaults = (10.0, 28.0, 8.0 / 3.0)
    kind = LORENZ


@register
class LorenzMod2(Attractor):
    tag = "lorenz_mod2"
    coefficient_names = ("a", "b", "c", "d")
    defaults = (0.9, 5.0, 9.9, 1.0)
    kind = LORENZ_MOD2


@register
class Dadras(Attractor):
    tag = "dadras"
    coefficient_names = ("a", "b", "c", "d", "e")
    defaults = (3.0, 2.7, 1.7, 2.0, 9.0)
    kind = DADRAS


@register
class Aizawa(Attractor):
    tag = "aizawa"
    coefficient_names = ("a", "b", "c", "d", "e", "f")
    defaults = (0.95, 0.7, 0.6, 3.5, 0.25, 0.1)
    kind = AIZAWA


@register
class Arneodo(Attractor):
    tag = "arneodo"
    coefficient_names = ("a", "b", "d")
    defaults = (-5.5, 3.5, -1.0)
    kind = ARNEODO


@register
class Dequan(Attractor):
    tag = "dequan"
    coefficient_names = ("a", "b", "c", "d", "e", "f")
    defaults = (40.0, 1.833, 0.16, 0.65, 55.0, 20.0)
    kind = DEQUAN
