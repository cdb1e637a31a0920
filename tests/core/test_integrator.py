"""Tests for the Euler integrator and geometry hand-off."""

import math

import numpy as np
import pytest

from sparkstorm.core.attractors import lookup
from sparkstorm.core.errors import InvalidConfig, NumericDivergence
from sparkstorm.core.integrator import (
    IntegrationConfig,
    apply_render_scale,
    as_triple,
    integrate_bulk,
    integrate_step,
    project_to_radius,
)

START = (2.0, 4.0, 4.0)


class TestIntegrationConfig:
    def test_defaults(self):
        cfg = IntegrationConfig()
        assert cfg.dt == 0.005
        assert cfg.axis_scale == (1.0, 1.0, 1.0)
        assert cfg.warmup == 0
        assert cfg.render_scale == (1.0, 1.0, 1.0)

    def test_scalar_scale_broadcasts(self):
        cfg = IntegrationConfig(render_scale=0.1, axis_scale=2)
        assert cfg.render_scale == (0.1, 0.1, 0.1)
        assert cfg.axis_scale == (2.0, 2.0, 2.0)

    @pytest.mark.parametrize("dt", [0.0, -0.01, float("nan"), float("inf")])
    def test_rejects_bad_dt(self, dt):
        with pytest.raises(InvalidConfig):
            IntegrationConfig(dt=dt)

    def test_rejects_negative_warmup(self):
        with pytest.raises(InvalidConfig):
            IntegrationConfig(warmup=-1)

    def test_rejects_wrong_length_scale(self):
        with pytest.raises(InvalidConfig):
            IntegrationConfig(axis_scale=(1.0, 2.0))

    def test_rejects_non_finite_scale(self):
        with pytest.raises(InvalidConfig):
            as_triple((1.0, float("inf"), 1.0), "render_scale")

    def test_invalid_config_is_a_value_error(self):
        with pytest.raises(ValueError):
            IntegrationConfig(dt=-1.0)


class TestStep:
    def test_lorenz_first_step(self, lorenz, spark_config):
        x, y, z = integrate_step(lorenz, spark_config, START)
        assert x == pytest.approx(2.1, abs=1e-6)
        assert y == pytest.approx(4.2596, abs=1e-6)
        assert z == pytest.approx(3.9893333, abs=1e-6)

    def test_rates_read_unmutated_state(self, lorenz):
        # With sequential updates dz would see the new x and y
        cfg = IntegrationConfig(dt=0.1)
        x, y, z = integrate_step(lorenz, cfg, START)
        assert z == pytest.approx(4.0 + 0.1 * (2.0 * 4.0 - 8.0 / 3.0 * 4.0))

    def test_input_not_mutated(self, lorenz, spark_config):
        state = np.array(START)
        integrate_step(lorenz, spark_config, state)
        np.testing.assert_array_equal(state, START)

    def test_warmup_not_applied(self, lorenz):
        plain = integrate_step(lorenz, IntegrationConfig(), START)
        warm = integrate_step(lorenz, IntegrationConfig(warmup=50), START)
        assert plain == warm

    def test_rejects_wrong_arity(self, lorenz, spark_config):
        with pytest.raises(InvalidConfig):
            integrate_step(lorenz, spark_config, (1.0, 2.0))

    def test_divergence(self, lorenz):
        with pytest.raises(NumericDivergence):
            integrate_step(lorenz, IntegrationConfig(), (1e300, 1e300, 1e300))


class TestBulk:
    def test_shape_and_dtype(self, lorenz, spark_config):
        pts = integrate_bulk(lorenz, spark_config, START, 250)
        assert pts.shape == (250, 3)
        assert pts.dtype == np.float64
        assert np.all(np.isfinite(pts))

    def test_first_point_is_one_step(self, lorenz, spark_config):
        pts = integrate_bulk(lorenz, spark_config, START, 10)
        np.testing.assert_allclose(pts[0], (2.1, 4.2596, 3.9893333), atol=1e-6)

    def test_single_bulk_step_equals_integrate_step(self, lorenz, spark_config):
        pts = integrate_bulk(lorenz, spark_config, START, 1)
        assert tuple(pts[0]) == integrate_step(lorenz, spark_config, START)

    def test_matches_repeated_single_steps(self, lorenz, spark_config):
        pts = integrate_bulk(lorenz, spark_config, START, 200)
        state = START
        stepped = []
        for _ in range(200):
            state = integrate_step(lorenz, spark_config, state)
            stepped.append(state)
        np.testing.assert_array_equal(pts, np.array(stepped))

    def test_deterministic(self, spark_config):
        a = integrate_bulk(lookup("dadras"), spark_config, (1.0, 1.0, 1.0), 500)
        b = integrate_bulk(lookup("dadras"), spark_config, (1.0, 1.0, 1.0), 500)
        np.testing.assert_array_equal(a, b)

    def test_warmup_discards_leading_steps(self, lorenz):
        cfg = IntegrationConfig(dt=0.005, axis_scale=(1.0, 1.18, 0.8))
        warm = IntegrationConfig(dt=0.005, axis_scale=(1.0, 1.18, 0.8), warmup=100)
        full = integrate_bulk(lorenz, cfg, START, 400)
        tail = integrate_bulk(lorenz, warm, START, 300)
        np.testing.assert_array_equal(tail, full[100:])

    def test_render_scale_not_applied(self, lorenz):
        plain = integrate_bulk(lorenz, IntegrationConfig(), START, 50)
        scaled = integrate_bulk(lorenz, IntegrationConfig(render_scale=0.1), START, 50)
        np.testing.assert_array_equal(plain, scaled)

    def test_axis_scale_changes_trajectory(self, lorenz):
        plain = integrate_bulk(lorenz, IntegrationConfig(), START, 50)
        squashed = integrate_bulk(lorenz, IntegrationConfig(axis_scale=(1.0, 1.18, 0.8)), START, 50)
        assert not np.allclose(plain, squashed)

    @pytest.mark.parametrize("steps", [0, -5, 2.5])
    def test_rejects_bad_step_count(self, lorenz, spark_config, steps):
        with pytest.raises(InvalidConfig):
            integrate_bulk(lorenz, spark_config, START, steps)

    def test_divergence_reports_step(self, lorenz):
        with pytest.raises(NumericDivergence) as info:
            integrate_bulk(lorenz, IntegrationConfig(dt=10.0), START, 1000)
        assert info.value.step is not None
        assert info.value.step < 1000
        assert not all(math.isfinite(v) for v in info.value.state)

    def test_divergence_during_warmup(self, lorenz):
        with pytest.raises(NumericDivergence):
            integrate_bulk(lorenz, IntegrationConfig(dt=10.0, warmup=1000), START, 5)

    @pytest.mark.parametrize("tag", ["lorenz", "lorenz_mod2", "dadras", "aizawa", "arneodo", "dequan"])
    def test_every_variant_stays_finite_with_small_dt(self, tag):
        pts = integrate_bulk(lookup(tag), IntegrationConfig(dt=0.001), (0.1, 0.1, 0.1), 500)
        assert np.all(np.isfinite(pts))


class TestHandoff:
    def test_apply_render_scale(self):
        cfg = IntegrationConfig(render_scale=(1.2, 0.1, 0.8))
        pts = np.array([[1.0, 10.0, 5.0], [2.0, 20.0, -5.0]])
        np.testing.assert_allclose(
            apply_render_scale(pts, cfg), [[1.2, 1.0, 4.0], [2.4, 2.0, -4.0]]
        )

    def test_apply_render_scale_returns_new_array(self):
        pts = np.ones((4, 3))
        out = apply_render_scale(pts, IntegrationConfig(render_scale=2.0))
        assert not np.shares_memory(out, pts)
        np.testing.assert_array_equal(pts, 1.0)

    def test_project_to_radius(self):
        p = project_to_radius((3.0, 0.0, 4.0), 10.0)
        assert p == pytest.approx((6.0, 0.0, 8.0))
        assert math.sqrt(sum(v * v for v in p)) == pytest.approx(10.0)

    def test_project_origin(self):
        assert project_to_radius((0.0, 0.0, 0.0), 10.0) == (0.0, 0.0, 0.0)
