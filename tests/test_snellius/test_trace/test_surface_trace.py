"""Tests for the sequential surface tracer in snellius.trace.surface_trace."""

import chex
import jax
import jax.numpy as jnp
import numpy as np
import pytest
from absl.testing import parameterized

from snellius.rays import collimated_rays
from snellius.trace import (
    plane_intersection,
    snell_refract,
    sphere_intersection,
    surface_normals,
    trace_lens,
)
from snellius.types import (
    APERTURE,
    REFRACTIVE,
    live_count,
    make_aperture_stop,
    make_lens_system,
    make_ray_bundle,
    make_refractive_surface,
    ray_positions,
    snapshot_points,
    throughput,
)
from snellius.utils import LensConfigurationError


def _flat_lens(glass_index=1.5, exit_semi=10.0, stop_diameter=20.0):
    """Flat glass plate from z = -10 to z = 0 with a stop at z = -5."""
    return make_lens_system(
        [
            make_refractive_surface(jnp.inf, 0.0, 10.0, glass_index),
            make_aperture_stop(5.0, stop_diameter),
            make_refractive_surface(jnp.inf, 5.0, exit_semi, 1.0),
        ],
        wavelengths=(550.0,),
    )


def _axial_rays(heights, z_start=-20.0):
    heights = jnp.asarray(heights, dtype=jnp.float64)
    origins = jnp.stack(
        [jnp.zeros_like(heights), heights, jnp.full_like(heights, z_start)],
        axis=-1,
    )
    directions = jnp.tile(jnp.array([[0.0, 0.0, 1.0]]), (heights.shape[0], 1))
    return make_ray_bundle(origins, directions)


class TestIntersections(chex.TestCase):
    """Test ray/surface intersection primitives."""

    @chex.variants(with_jit=True, without_jit=True)
    def test_sphere_vertex_hit(self) -> None:
        """Test that an axial ray hits a convex sphere at its vertex."""
        origins = jnp.array([[0.0, 0.0, -5.0]])
        directions = jnp.array([[0.0, 0.0, 1.0]])
        t, hit = self.variant(sphere_intersection)(
            origins, directions, 10.0, 10.0
        )
        chex.assert_trees_all_close(t, jnp.array([5.0]))
        assert bool(hit[0])

    @chex.variants(with_jit=True, without_jit=True)
    def test_sphere_negative_radius_root(self) -> None:
        """Test that a concave-towards-scene sphere uses the far root."""
        origins = jnp.array([[0.0, 0.0, -15.0]])
        directions = jnp.array([[0.0, 0.0, 1.0]])
        t, hit = self.variant(sphere_intersection)(
            origins, directions, -10.0, -10.0
        )
        chex.assert_trees_all_close(t, jnp.array([15.0]))
        assert bool(hit[0])

    def test_sphere_miss(self) -> None:
        """Test that a negative discriminant is a miss."""
        origins = jnp.array([[0.0, 20.0, -5.0]])
        directions = jnp.array([[0.0, 0.0, 1.0]])
        _, hit = sphere_intersection(origins, directions, 10.0, 10.0)
        assert not bool(hit[0])

    def test_plane_parallel_ray(self) -> None:
        """Test that rays parallel to a plane do not hit it."""
        origins = jnp.array([[0.0, 0.0, -5.0], [0.0, 0.0, -5.0]])
        directions = jnp.array([[1.0, 0.0, 0.0], [0.0, 0.6, 0.8]])
        t, hit = plane_intersection(origins, directions, 3.0)
        assert not bool(hit[0])
        assert bool(hit[1])
        chex.assert_trees_all_close(t[1], 10.0)

    @parameterized.named_parameters(
        ("positive", 10.0),
        ("negative", -10.0),
    )
    def test_normals_face_incoming_light(self, radius: float) -> None:
        """Test that normals at the vertex point towards -z."""
        center_z = radius
        points = jnp.array([[0.0, 0.0, 0.0]])
        normals = surface_normals(points, center_z, radius)
        chex.assert_trees_all_close(normals, jnp.array([[0.0, 0.0, -1.0]]))


class TestSnellRefract(chex.TestCase, parameterized.TestCase):
    """Test the vector form of Snell's law."""

    @chex.variants(with_jit=True, without_jit=True)
    def test_normal_incidence(self) -> None:
        """Test that normal incidence keeps the direction."""
        directions = jnp.array([[0.0, 0.0, 1.0]])
        normals = jnp.array([[0.0, 0.0, -1.0]])
        refracted, ok = self.variant(snell_refract)(
            directions, normals, jnp.array([1.0 / 1.5])
        )
        chex.assert_trees_all_close(refracted, directions)
        assert bool(ok[0])

    @parameterized.named_parameters(
        ("air_to_glass", 1.0, 1.5, 0.3),
        ("glass_to_air", 1.5, 1.0, 0.2),
        ("glass_to_glass", 1.5, 1.7, 0.5),
    )
    def test_sine_law(self, n1: float, n2: float, angle: float) -> None:
        """Test that n1 sin(i) equals n2 sin(r)."""
        directions = jnp.array([[0.0, jnp.sin(angle), jnp.cos(angle)]])
        normals = jnp.array([[0.0, 0.0, -1.0]])
        refracted, ok = snell_refract(
            directions, normals, jnp.array([n1 / n2])
        )
        assert bool(ok[0])
        chex.assert_trees_all_close(
            n2 * refracted[0, 1], n1 * jnp.sin(angle), atol=1e-12
        )
        chex.assert_trees_all_close(
            jnp.linalg.norm(refracted[0]), 1.0, atol=1e-12
        )

    def test_total_internal_reflection(self) -> None:
        """Test that rays beyond the critical angle are flagged."""
        angle = 0.9
        directions = jnp.array([[0.0, jnp.sin(angle), jnp.cos(angle)]])
        normals = jnp.array([[0.0, 0.0, -1.0]])
        _, ok = snell_refract(directions, normals, jnp.array([1.5]))
        assert not bool(ok[0])


class TestTraceLens(chex.TestCase, parameterized.TestCase):
    """Test tracing bundles through complete lenses."""

    @chex.variants(with_jit=True, without_jit=True)
    def test_matched_flat_surfaces_translate(self) -> None:
        """Test that flat surfaces with matched indices only translate."""
        lens = _flat_lens(glass_index=1.0)
        angles = jnp.array([0.0, 0.05, -0.1, 0.2])
        origins = jnp.zeros((4, 3)).at[:, 2].set(-20.0)
        directions = jnp.stack(
            [jnp.zeros(4), jnp.sin(angles), jnp.cos(angles)], axis=-1
        )
        bundle = make_ray_bundle(origins, directions)
        traced = self.variant(trace_lens)(bundle, lens)

        assert bool(jnp.all(traced.alive))
        chex.assert_trees_all_close(
            traced.direction, bundle.direction, atol=1e-12
        )
        expected = origins + (20.0 / directions[:, 2:3]) * directions
        chex.assert_trees_all_close(traced.origin, expected, atol=1e-12)

    @chex.variants(with_jit=True, without_jit=True)
    def test_equal_index_sphere_keeps_directions(self) -> None:
        """Test that a sphere between equal media does not bend rays."""
        lens = make_lens_system(
            [
                make_refractive_surface(15.0, 0.0, 8.0, 1.0),
                make_aperture_stop(4.0, 16.0),
                make_refractive_surface(-15.0, 4.0, 8.0, 1.0),
            ],
            wavelengths=(550.0,),
        )
        angles = jnp.array([0.0, 0.1, -0.15])
        origins = jnp.array(
            [[0.0, 0.0, -30.0], [0.0, 1.0, -30.0], [0.5, -1.0, -30.0]]
        )
        directions = jnp.stack(
            [jnp.zeros(3), jnp.sin(angles), jnp.cos(angles)], axis=-1
        )
        bundle = make_ray_bundle(origins, directions)
        traced = self.variant(trace_lens)(bundle, lens)
        assert bool(jnp.all(traced.alive))
        chex.assert_trees_all_close(
            traced.direction, bundle.direction, atol=1e-12
        )

    @chex.variants(with_jit=True, without_jit=True)
    def test_aperture_boundary_is_exclusive(self) -> None:
        """Test that an endpoint exactly on the rim kills the ray."""
        lens = _flat_lens(exit_semi=5.0)
        bundle = _axial_rays([5.0, 4.999, -5.0, 0.0])
        traced = self.variant(trace_lens)(bundle, lens)
        chex.assert_trees_all_equal(
            traced.alive, jnp.array([False, True, False, True])
        )

    @chex.variants(with_jit=True, without_jit=True)
    def test_axial_path_length(self) -> None:
        """Test path length as distance times index along the axis."""
        lens = _flat_lens()
        bundle = _axial_rays([0.0, 1.0, -3.0])
        traced = self.variant(trace_lens)(bundle, lens)
        expected = 10.0 * 1.0 + 5.0 * 1.5 + 5.0 * 1.5
        chex.assert_trees_all_close(traced.path_length, jnp.full(3, expected))

    @chex.variants(with_jit=True, without_jit=True)
    def test_tilted_path_length(self) -> None:
        """Test path length for a ray refracted into the plate."""
        lens = _flat_lens()
        angle = 0.1
        bundle = make_ray_bundle(
            jnp.array([[0.0, 0.0, -20.0]]),
            jnp.array([[0.0, jnp.sin(angle), jnp.cos(angle)]]),
        )
        traced = self.variant(trace_lens)(bundle, lens)
        inside = jnp.arcsin(jnp.sin(angle) / 1.5)
        expected = 10.0 / jnp.cos(angle) + 1.5 * 10.0 / jnp.cos(inside)
        chex.assert_trees_all_close(
            traced.path_length, jnp.array([expected]), rtol=1e-12
        )
        chex.assert_trees_all_close(
            traced.direction, bundle.direction, atol=1e-12
        )

    def test_dead_ray_keeps_earlier_path(self) -> None:
        """Test that a ray killed at surface k keeps its path to k - 1."""
        lens = _flat_lens(exit_semi=3.0)
        bundle = _axial_rays([4.0, 1.0])
        traced = trace_lens(bundle, lens)
        chex.assert_trees_all_equal(traced.alive, jnp.array([False, True]))
        chex.assert_trees_all_close(traced.path_length[0], 10.0 + 7.5)
        chex.assert_trees_all_close(
            traced.origin[0], jnp.array([0.0, 4.0, -5.0])
        )
        assert bool(jnp.all(jnp.isnan(ray_positions(traced)[0])))

    def test_middle_snapshot_at_stop(self) -> None:
        """Test that the middle snapshot records the stop plane."""
        lens = _flat_lens(exit_semi=3.0)
        bundle = _axial_rays([4.0, 1.0])
        traced = trace_lens(bundle, lens)
        chex.assert_trees_all_close(traced.middle.z, jnp.full(2, -5.0))
        chex.assert_trees_all_equal(
            traced.middle.alive, jnp.array([True, True])
        )
        chex.assert_trees_all_equal(
            traced.exit.alive, jnp.array([False, True])
        )
        chex.assert_trees_all_close(
            snapshot_points(traced.exit)[1], jnp.array([0.0, 1.0, 0.0])
        )

    def test_retrace_rejected(self) -> None:
        """Test that a bundle cannot be traced twice."""
        lens = _flat_lens()
        traced = trace_lens(_axial_rays([0.0]), lens)
        with pytest.raises(ValueError, match="already been traced"):
            trace_lens(traced, lens)

    def test_two_stops_fail_before_tracing(self) -> None:
        """Test that a sequence with two stops never reaches the tracer."""
        with pytest.raises(LensConfigurationError):
            make_lens_system(
                [
                    make_aperture_stop(0.0, 4.0),
                    make_refractive_surface(10.0, 1.0, 5.0, 1.5),
                    make_aperture_stop(1.0, 4.0),
                ]
            )

    def test_rebuilt_lens_with_two_stops_rejected(self) -> None:
        """Test that kinds edited after construction are re-checked."""
        lens = _flat_lens()
        two_stops = lens._replace(kinds=(APERTURE, APERTURE, REFRACTIVE))
        with pytest.raises(LensConfigurationError, match="one aperture stop"):
            trace_lens(_axial_rays([0.0]), two_stops)

    def test_stop_index_must_point_at_stop(self) -> None:
        """Test that a stop index on a refractive surface is rejected."""
        lens = _flat_lens()._replace(stop_index=0)
        with pytest.raises(LensConfigurationError):
            trace_lens(_axial_rays([0.0]), lens)

    @parameterized.named_parameters(
        ("past_table", 7),
        ("negative", -1),
    )
    def test_wave_index_out_of_range(self, wave_index: int) -> None:
        """Test that rays cannot select a missing wavelength column."""
        bundle = make_ray_bundle(
            jnp.array([[0.0, 0.0, -20.0]]),
            jnp.array([[0.0, 0.0, 1.0]]),
            wave_index=wave_index,
        )
        with pytest.raises(ValueError, match="wavelength"):
            trace_lens(bundle, _flat_lens())

    def test_total_internal_reflection_kills(self) -> None:
        """Test that a ray totally reflected inside glass dies."""
        lens = make_lens_system(
            [
                make_refractive_surface(jnp.inf, 0.0, 10.0, 1.5),
                make_aperture_stop(5.0, 20.0),
                make_refractive_surface(-6.0, 5.0, 5.5, 1.0),
            ],
            wavelengths=(550.0,),
        )
        traced = trace_lens(_axial_rays([5.0, 1.0]), lens)
        chex.assert_trees_all_equal(traced.alive, jnp.array([False, True]))
        chex.assert_trees_all_close(
            traced.origin[0], jnp.array([0.0, 5.0, -5.0])
        )

    @chex.variants(with_jit=True, without_jit=True)
    def test_all_dead_bundle(self) -> None:
        """Test that a bundle with no live ray completes."""
        lens = _flat_lens()
        bundle = _axial_rays([0.0, 1.0, 2.0])
        bundle = bundle._replace(alive=jnp.zeros(3, dtype=bool))
        traced = self.variant(trace_lens)(bundle, lens)
        chex.assert_trees_all_equal(live_count(traced), 0)
        chex.assert_trees_all_close(traced.path_length, jnp.zeros(3))
        assert bool(jnp.all(jnp.isnan(snapshot_points(traced.exit))))

    def test_missing_all_surfaces(self) -> None:
        """Test that rays outside every aperture all die."""
        lens = _flat_lens()
        traced = trace_lens(_axial_rays([11.0, -12.0]), lens)
        chex.assert_trees_all_equal(live_count(traced), 0)

    def test_wavelength_selects_index(self) -> None:
        """Test that each ray refracts with its own wavelength's index."""
        lens = make_lens_system(
            [
                make_refractive_surface(
                    jnp.inf, 0.0, 10.0, jnp.array([1.5, 1.7])
                ),
                make_aperture_stop(5.0, 20.0),
                make_refractive_surface(jnp.inf, 5.0, 10.0, 1.0),
            ],
            wavelengths=(450.0, 650.0),
        )
        angle = 0.2
        origins = jnp.zeros((2, 3)).at[:, 2].set(-20.0)
        directions = jnp.tile(
            jnp.array([[0.0, jnp.sin(angle), jnp.cos(angle)]]), (2, 1)
        )
        bundle = make_ray_bundle(
            origins, directions, wave_index=jnp.array([0, 1])
        )
        traced = trace_lens(bundle, lens)
        chex.assert_trees_all_close(
            traced.middle.direction[:, 1],
            jnp.sin(angle) / jnp.array([1.5, 1.7]),
            atol=1e-12,
        )

    def test_round_trip_through_small_stop(self) -> None:
        """Test that survivors scale with stop area and pass the stop."""
        stop_radius = 1.0
        beam_radius = 5.0
        lens = make_lens_system(
            [
                make_refractive_surface(50.0, 0.0, 10.0, 1.0),
                make_aperture_stop(3.0, 2.0 * stop_radius),
                make_refractive_surface(jnp.inf, 3.0, 10.0, 1.0),
            ],
            wavelengths=(550.0,),
        )
        bundle = collimated_rays(
            jax.random.PRNGKey(0), 1000, beam_radius, -30.0
        )
        traced = trace_lens(bundle, lens)

        expected = (stop_radius / beam_radius) ** 2
        assert abs(float(throughput(traced)) - expected) < 0.02
        exit_xy = np.asarray(snapshot_points(traced.exit))[:, :2]
        alive = np.asarray(traced.alive)
        assert np.all(np.linalg.norm(exit_xy[alive], axis=-1) < stop_radius)
        middle_xy = np.asarray(snapshot_points(traced.middle))[:, :2]
        assert np.all(np.isnan(middle_xy[~alive]))

    def test_refracting_sphere_then_stop(self) -> None:
        """Test throughput of a converging beam on a trailing stop."""
        radius, index, gap = 10.0, 1.5, 15.0
        stop_radius = 1.0
        beam_radius = 5.0
        lens = make_lens_system(
            [
                make_refractive_surface(radius, 0.0, 10.0, index),
                make_aperture_stop(gap, 2.0 * stop_radius),
            ],
            wavelengths=(550.0,),
        )
        bundle = collimated_rays(
            jax.random.PRNGKey(0), 4000, beam_radius, -30.0
        )
        traced = trace_lens(bundle, lens)

        # the beam converges on the focus n R / (n - 1) behind the vertex
        focus = index * radius / (index - 1.0)
        footprint = 1.0 - gap / focus
        expected = (stop_radius / (footprint * beam_radius)) ** 2
        assert abs(float(throughput(traced)) - expected) < 0.025
        assert abs(float(throughput(traced)) - 0.04) > 0.08

        alive = np.asarray(traced.alive)
        exit_xy = np.asarray(snapshot_points(traced.exit))[:, :2]
        assert np.all(np.linalg.norm(exit_xy[alive], axis=-1) < stop_radius)
        chex.assert_trees_all_equal(traced.middle, traced.exit)
        chex.assert_trees_all_close(traced.exit.z[alive], 0.0)

    def test_focusing_singlet_converges(self) -> None:
        """Test that a plano-convex lens bends parallel rays inwards."""
        lens = make_lens_system(
            [
                make_refractive_surface(20.0, 0.0, 8.0, 1.5),
                make_aperture_stop(2.0, 14.0),
                make_refractive_surface(jnp.inf, 2.0, 8.0, 1.0),
            ],
            wavelengths=(550.0,),
        )
        traced = trace_lens(_axial_rays([2.0, -4.0, 6.0]), lens)
        assert bool(jnp.all(traced.alive))
        heights = traced.origin[:, 1]
        slopes = traced.direction[:, 1]
        assert bool(jnp.all(heights * slopes < 0))


if __name__ == "__main__":
    pytest.main([__file__])
