"""Integration and streaming-geometry engine."""

from sparkstorm.core.attractors import (
    Attractor,
    AttractorSpec,
    available,
    from_spec,
    lookup,
    make_spec,
    register,
)
from sparkstorm.core.errors import (
    InvalidConfig,
    NumericDivergence,
    SparkstormError,
    UnknownAttractor,
)
from sparkstorm.core.integrator import (
    IntegrationConfig,
    apply_render_scale,
    integrate_bulk,
    integrate_step,
    project_to_radius,
)
from sparkstorm.core.stream import StreamingLineBuffer
