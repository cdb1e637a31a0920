"""
Per-frame simulations built on the core engine, plus a headless preview.
"""

from sparkstorm.visual.base import BaseSimulation
from sparkstorm.visual.field import (
    ParticleFieldSimulator,
    PingPongTargets,
    PointCloudPass,
    RenderTarget,
)
from sparkstorm.visual.lines import SparkStorm, StaticLineSet, StreamingLine
