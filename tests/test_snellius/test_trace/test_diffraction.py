"""Tests for HURB diffraction in snellius.trace.diffraction."""

import chex
import jax
import jax.numpy as jnp
import pytest

from snellius import config
from snellius.trace import hurb_bend, hurb_spreads, trace_lens
from snellius.types import (
    make_aperture_stop,
    make_lens_system,
    make_ray_bundle,
    make_refractive_surface,
)

WAVELENGTH_MM = 550.0 * config.NM_TO_MM


class TestHurbSpreads(chex.TestCase):
    """Test the angular spreads of rays inside a circular stop."""

    def test_centre_spreads_equal(self) -> None:
        """Test that radial and tangential spreads agree at the centre."""
        points = jnp.array([[0.0, 0.0, 0.0]])
        radial, tangential = hurb_spreads(
            points, 1.0, jnp.array([WAVELENGTH_MM])
        )
        wavenumber = 2.0 * jnp.pi / WAVELENGTH_MM
        expected = jnp.arctan(1.0 / (2.0 * wavenumber))
        chex.assert_trees_all_close(radial, jnp.array([expected]))
        chex.assert_trees_all_close(tangential, radial)

    def test_spread_grows_near_rim(self) -> None:
        """Test that the radial spread dominates close to the rim."""
        points = jnp.array([[0.0, 0.5, 0.0], [0.0, 0.9, 0.0]])
        radial, tangential = hurb_spreads(
            points, 1.0, jnp.full(2, WAVELENGTH_MM)
        )
        assert float(radial[1]) > float(radial[0])
        assert float(radial[1]) > float(tangential[1])

    def test_longer_wavelength_spreads_more(self) -> None:
        """Test that the spread scales with wavelength."""
        points = jnp.array([[0.2, 0.0, 0.0], [0.2, 0.0, 0.0]])
        radial, _ = hurb_spreads(
            points, 1.0, jnp.array([400.0, 700.0]) * config.NM_TO_MM
        )
        assert float(radial[1]) > float(radial[0])


class TestHurbBend(chex.TestCase):
    """Test the random tilt applied to rays passing the stop."""

    def setUp(self) -> None:
        super().setUp()
        self.points = jnp.array(
            [[0.0, 0.0, 0.0], [0.3, -0.2, 0.0], [0.0, 0.99, 0.0]]
        )
        self.directions = jnp.tile(jnp.array([[0.0, 0.0, 1.0]]), (3, 1))
        self.wavelength = jnp.full(3, WAVELENGTH_MM)

    @chex.variants(with_jit=True, without_jit=True)
    def test_unit_directions(self) -> None:
        """Test that bent directions stay unit length and forward."""
        bent = self.variant(hurb_bend)(
            jax.random.PRNGKey(0),
            self.points,
            self.directions,
            jnp.ones(3, dtype=bool),
            1.0,
            self.wavelength,
        )
        chex.assert_trees_all_close(
            jnp.linalg.norm(bent, axis=-1), jnp.ones(3), atol=1e-12
        )
        assert bool(jnp.all(bent[:, 2] > 0.99))

    def test_dead_rows_unchanged(self) -> None:
        """Test that rays not passing the stop keep their direction."""
        alive = jnp.array([True, False, False])
        bent = hurb_bend(
            jax.random.PRNGKey(1),
            self.points,
            self.directions,
            alive,
            1.0,
            self.wavelength,
        )
        chex.assert_trees_all_close(bent[1:], self.directions[1:])

    def test_deterministic_for_key(self) -> None:
        """Test that a fixed key reproduces the same bend."""
        args = (
            self.points,
            self.directions,
            jnp.ones(3, dtype=bool),
            1.0,
            self.wavelength,
        )
        first = hurb_bend(jax.random.PRNGKey(7), *args)
        second = hurb_bend(jax.random.PRNGKey(7), *args)
        other = hurb_bend(jax.random.PRNGKey(8), *args)
        chex.assert_trees_all_close(first, second)
        assert not bool(jnp.allclose(first, other))

    def test_rim_rays_bend_more(self) -> None:
        """Test that rays near the rim deviate more on average."""
        n_rays = 2000
        directions = jnp.tile(jnp.array([[0.0, 0.0, 1.0]]), (n_rays, 1))
        wavelength = jnp.full(n_rays, WAVELENGTH_MM)
        alive = jnp.ones(n_rays, dtype=bool)
        centre = jnp.zeros((n_rays, 3))
        rim = jnp.tile(jnp.array([[0.0, 0.999, 0.0]]), (n_rays, 1))
        key = jax.random.PRNGKey(3)
        centre_bent = hurb_bend(
            key, centre, directions, alive, 1.0, wavelength
        )
        rim_bent = hurb_bend(key, rim, directions, alive, 1.0, wavelength)
        centre_tilt = jnp.mean(jnp.abs(centre_bent[:, 1]))
        rim_tilt = jnp.mean(jnp.abs(rim_bent[:, 1]))
        assert float(rim_tilt) > 10.0 * float(centre_tilt)


class TestTraceWithDiffraction(chex.TestCase):
    """Test the diffraction hook of the tracer."""

    def setUp(self) -> None:
        super().setUp()
        self.lens = make_lens_system(
            [
                make_refractive_surface(jnp.inf, 0.0, 10.0, 1.0),
                make_aperture_stop(5.0, 4.0),
                make_refractive_surface(jnp.inf, 5.0, 10.0, 1.0),
            ],
            wavelengths=(550.0,),
        )
        heights = jnp.array([0.0, 0.5, 1.5, 1.99, 3.0])
        origins = jnp.stack(
            [jnp.zeros(5), heights, jnp.full(5, -20.0)], axis=-1
        )
        directions = jnp.tile(jnp.array([[0.0, 0.0, 1.0]]), (5, 1))
        self.bundle = make_ray_bundle(origins, directions)

    def test_only_directions_change(self) -> None:
        """Test that diffraction perturbs directions but not survival."""
        plain = trace_lens(self.bundle, self.lens)
        bent = trace_lens(
            self.bundle, self.lens, diffraction_key=jax.random.PRNGKey(0)
        )

        chex.assert_trees_all_equal(plain.alive, bent.alive)
        chex.assert_trees_all_close(
            plain.middle.xy, bent.middle.xy, atol=1e-12
        )
        assert not bool(
            jnp.allclose(
                plain.exit.direction[:4], bent.exit.direction[:4], atol=0.0
            )
        )
        chex.assert_trees_all_close(
            plain.exit.direction, bent.exit.direction, atol=5e-2
        )

    def test_middle_direction_is_incident(self) -> None:
        """Test that the stop snapshot keeps the unbent direction."""
        bent = trace_lens(
            self.bundle, self.lens, diffraction_key=jax.random.PRNGKey(1)
        )
        alive = bent.middle.alive
        chex.assert_trees_all_close(
            bent.middle.direction[alive],
            jnp.tile(jnp.array([[0.0, 0.0, 1.0]]), (int(alive.sum()), 1)),
            atol=0.0,
        )
        assert not bool(
            jnp.allclose(bent.exit.direction[3], jnp.array([0.0, 0.0, 1.0]))
        )


if __name__ == "__main__":
    pytest.main([__file__])
