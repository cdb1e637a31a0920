"""Tests for streaming lines, storms and static line sets."""

import logging
import math

import numpy as np
import pytest

from sparkstorm.config import SparkConfig
from sparkstorm.core.attractors import lookup
from sparkstorm.core.errors import InvalidConfig
from sparkstorm.core.integrator import (
    IntegrationConfig,
    apply_render_scale,
    integrate_bulk,
    integrate_step,
)
from sparkstorm.visual.lines import SparkStorm, StaticLineSet, StreamingLine, sphere_point

START = (2.0, 4.0, 4.0)


def _norms(points):
    return np.linalg.norm(points, axis=1)


class TestSpherePoint:
    def test_on_sphere(self, rng):
        for _ in range(20):
            p = sphere_point(rng, 3.0)
            assert math.sqrt(sum(v * v for v in p)) == pytest.approx(3.0)

    def test_seeded(self):
        a = sphere_point(np.random.default_rng(1))
        b = sphere_point(np.random.default_rng(1))
        assert a == b


class TestStreamingLine:
    def test_window_size_is_constant(self, lorenz, spark_config):
        line = StreamingLine(lorenz, spark_config, START, window_size=30)
        assert line.points().shape == (30, 3)
        for _ in range(75):
            pts = line.tick()
            assert pts.shape == (30, 3)
        assert line.frame == 75

    def test_starts_as_single_point(self, lorenz, spark_config):
        line = StreamingLine(lorenz, spark_config, START, window_size=10)
        np.testing.assert_array_equal(line.points(), np.tile(START, (10, 1)))

    def test_follows_integrate_step(self, lorenz, spark_config):
        line = StreamingLine(lorenz, spark_config, START, window_size=5)
        state = START
        expected = []
        for _ in range(12):
            line.tick()
            state = integrate_step(lorenz, spark_config, state)
            expected.append(state)
        np.testing.assert_array_equal(line.points(), np.array(expected[-5:]))
        assert line.state == state

    def test_render_scale_applied_at_handoff(self, lorenz):
        cfg = IntegrationConfig(render_scale=(1.0, 0.5, 2.0))
        line = StreamingLine(lorenz, cfg, START, window_size=4)
        line.tick()
        state = integrate_step(lorenz, cfg, START)
        np.testing.assert_allclose(line.points()[-1], np.array(state) * (1.0, 0.5, 2.0))
        # state itself is never scaled
        assert line.state == state

    def test_radius_projection(self, lorenz, spark_config):
        line = StreamingLine(lorenz, spark_config, START, window_size=8, radius=10.0)
        for _ in range(20):
            line.tick()
        np.testing.assert_allclose(_norms(line.points()), 10.0)

    def test_flat(self, lorenz, spark_config):
        line = StreamingLine(lorenz, spark_config, START, window_size=6)
        line.tick()
        flat = line.flat()
        assert flat.shape == (18,)
        np.testing.assert_array_equal(flat, line.points().reshape(-1))

    def test_points_are_not_aliased(self, lorenz, spark_config):
        line = StreamingLine(lorenz, spark_config, START, window_size=6)
        before = line.tick().copy()
        held = line.points()
        line.tick()
        np.testing.assert_array_equal(held, before)

    def test_reseeds_on_divergence(self, lorenz):
        line = StreamingLine(lorenz, IntegrationConfig(dt=10.0), START, window_size=20)
        for _ in range(100):
            line.tick()
            assert np.all(np.isfinite(line.points()))
        assert line.resets >= 1

    def test_reseed_restarts_from_initial_state(self, lorenz):
        line = StreamingLine(lorenz, IntegrationConfig(dt=10.0), START, window_size=4)
        while line.resets == 0:
            line.tick()
        assert line.state == START
        np.testing.assert_array_equal(line.points()[-1], START)

    def test_hold_keeps_last_finite_state(self, lorenz):
        line = StreamingLine(
            lorenz, IntegrationConfig(dt=10.0), START, window_size=4, policy="hold"
        )
        previous = None
        while line.resets == 0:
            previous = line.state
            line.tick()
        assert line.state == previous
        assert all(math.isfinite(v) for v in line.state)

    def test_divergence_warns_once(self, lorenz, caplog):
        line = StreamingLine(lorenz, IntegrationConfig(dt=10.0), START, window_size=4)
        with caplog.at_level(logging.WARNING, logger="sparkstorm.visual.lines"):
            for _ in range(200):
                line.tick()
        assert line.resets > 1
        warnings = [r for r in caplog.records if r.levelno == logging.WARNING]
        assert len(warnings) == 1
        assert "lorenz diverged" in warnings[0].getMessage()

    def test_rejects_bad_policy(self, lorenz, spark_config):
        with pytest.raises(InvalidConfig):
            StreamingLine(lorenz, spark_config, START, policy="clamp")

    def test_rejects_bad_radius(self, lorenz, spark_config):
        with pytest.raises(InvalidConfig):
            StreamingLine(lorenz, spark_config, START, radius=0.0)

    def test_dispose(self, lorenz, spark_config):
        line = StreamingLine(lorenz, spark_config, START, window_size=4)
        line.tick()
        line.dispose()
        assert line.disposed
        assert line.buffer is None
        with pytest.raises(RuntimeError):
            line.tick()
        with pytest.raises(RuntimeError):
            line.points()
        line.dispose()


class TestSparkStorm:
    def _storm(self, seed=3, **kwargs):
        kwargs.setdefault("count", 6)
        kwargs.setdefault("window_size", 25)
        return SparkStorm(lookup("lorenz_mod2"), IntegrationConfig(dt=0.005), seed=seed, **kwargs)

    def test_line_count_and_shapes(self):
        storm = self._storm()
        assert len(storm) == 6
        storm.tick()
        per_line = storm.line_points()
        assert len(per_line) == 6
        assert all(p.shape == (25, 3) for p in per_line)
        assert storm.points().shape == (150, 3)

    def test_radius_variation(self):
        storm = self._storm(base_radius=10.0, radius_variation=0.2)
        for _ in range(30):
            storm.tick()
        for line in storm:
            assert 8.0 <= line.radius <= 12.0
            np.testing.assert_allclose(_norms(line.points()), line.radius)

    def test_speed_variation(self):
        storm = self._storm(speed_multiplier=2.0)
        for line in storm:
            assert 0.8 * 0.01 <= line.config.dt <= 1.2 * 0.01

    def test_seeded_storms_match(self):
        a = self._storm(seed=11)
        b = self._storm(seed=11)
        for _ in range(15):
            a.tick()
            b.tick()
        np.testing.assert_array_equal(a.points(), b.points())

    def test_different_seeds_differ(self):
        a = self._storm(seed=1)
        b = self._storm(seed=2)
        assert not np.array_equal(a.points(), b.points())

    def test_from_config(self):
        cfg = SparkConfig(attractor="lorenz_mod2", radius=5.0, count=4, window_size=12, seed=9)
        storm = SparkStorm.from_config(cfg)
        assert len(storm) == 4
        assert all(line.window_size == 12 for line in storm)
        assert all(4.0 <= line.radius <= 6.0 for line in storm)

    @pytest.mark.parametrize("kwargs", [
        {"count": 0},
        {"radius_variation": 1.0},
        {"speed_multiplier": 0.0},
    ])
    def test_rejects_bad_arguments(self, kwargs):
        with pytest.raises(InvalidConfig):
            self._storm(**kwargs)

    def test_dispose_releases_lines(self):
        storm = self._storm()
        lines = list(storm)
        storm.dispose()
        assert len(storm) == 0
        assert all(line.disposed for line in lines)
        with pytest.raises(RuntimeError):
            storm.tick()


class TestStaticLineSet:
    def test_shapes(self, lorenz, spark_config):
        lines = StaticLineSet(lorenz, spark_config, count=3, points_per_line=400, seed=0)
        assert len(lines) == 3
        assert all(line.shape == (400, 3) for line in lines)
        assert lines.points().shape == (1200, 3)
        assert lines.flat(1).shape == (1200,)

    def test_seeded_starts_on_ellipse(self, lorenz, spark_config):
        lines = StaticLineSet(lorenz, spark_config, count=5, points_per_line=10, seed=4)
        for x, y, z in lines.starts:
            assert (x / 2.0) ** 2 + (y / 4.0) ** 2 == pytest.approx(1.0)
            assert z == 4.0

    def test_explicit_starts_and_render_scale(self, lorenz):
        cfg = IntegrationConfig(dt=0.005, axis_scale=(1.0, 1.18, 0.8), render_scale=0.1)
        lines = StaticLineSet(lorenz, cfg, starts=[START], points_per_line=100)
        expected = apply_render_scale(integrate_bulk(lorenz, cfg, START, 100), cfg)
        np.testing.assert_array_equal(lines.lines[0], expected)

    def test_seeded_sets_match(self, lorenz, spark_config):
        a = StaticLineSet(lorenz, spark_config, count=2, points_per_line=50, seed=8)
        b = StaticLineSet(lorenz, spark_config, count=2, points_per_line=50, seed=8)
        np.testing.assert_array_equal(a.points(), b.points())

    def test_from_config(self):
        cfg = SparkConfig(count=2, warmup=100, render_scale=(1.2, 0.1, 0.8), seed=1)
        lines = StaticLineSet.from_config(cfg, points_per_line=30)
        assert len(lines) == 2
        assert lines.lines[0].shape == (30, 3)

    def test_rejects_bad_count(self, lorenz, spark_config):
        with pytest.raises(InvalidConfig):
            StaticLineSet(lorenz, spark_config, count=0)
