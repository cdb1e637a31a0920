"""
sparkstorm: chaotic-attractor integration and streaming geometry.

Steps Lorenz-family attractors with explicit Euler, streams trajectories
through fixed windows ("sparks") and simulates particle fields on ping-pong
float textures.
"""

__version__ = "0.1.0"

from sparkstorm.config import FieldConfig, SparkConfig, from_dict
from sparkstorm.core import (
    Attractor,
    AttractorSpec,
    IntegrationConfig,
    InvalidConfig,
    NumericDivergence,
    SparkstormError,
    StreamingLineBuffer,
    UnknownAttractor,
    available,
    integrate_bulk,
    integrate_step,
    lookup,
)
from sparkstorm.pipeline import FrameDriver, FrameSnapshot
from sparkstorm.presets import get_preset, preset_names
from sparkstorm.visual import (
    ParticleFieldSimulator,
    PointCloudPass,
    SparkStorm,
    StaticLineSet,
    StreamingLine,
)
