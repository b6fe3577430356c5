"""Tests for the paraxial focus model in snellius.paraxial.black_box."""

import chex
import jax.numpy as jnp
import pytest
from absl.testing import parameterized

from snellius.paraxial import (
    build_focus_model,
    film_distance,
    image_point,
    system_matrix,
)
from snellius.trace import trace_lens
from snellius.types import (
    make_aperture_stop,
    make_lens_system,
    make_ray_bundle,
    make_refractive_surface,
)


def _thin_biconvex(index=1.5, wavelengths=(550.0,)):
    return make_lens_system(
        [
            make_refractive_surface(50.0, 0.0, 10.0, index),
            make_aperture_stop(0.0, 10.0),
            make_refractive_surface(-50.0, 0.0, 10.0, 1.0),
        ],
        wavelengths=wavelengths,
    )


def _plano_convex():
    return make_lens_system(
        [
            make_refractive_surface(50.0, 0.0, 10.0, 1.5),
            make_aperture_stop(1.0, 18.0),
            make_refractive_surface(jnp.inf, 1.0, 10.0, 1.0),
        ],
        wavelengths=(550.0,),
    )


class TestSystemMatrix(chex.TestCase, parameterized.TestCase):
    """Test the reduced transfer matrix."""

    @parameterized.named_parameters(
        ("thin", _thin_biconvex),
        ("thick", _plano_convex),
    )
    def test_unit_determinant(self, lens_fn) -> None:
        """Test that reduced matrices have unit determinant."""
        matrix = system_matrix(lens_fn())
        chex.assert_shape(matrix, (1, 2, 2))
        chex.assert_trees_all_close(
            jnp.linalg.det(matrix), jnp.ones(1), atol=1e-12
        )

    def test_flat_plate_has_no_power(self) -> None:
        """Test that a plane-parallel plate only translates."""
        lens = make_lens_system(
            [
                make_refractive_surface(jnp.inf, 0.0, 10.0, 1.5),
                make_aperture_stop(1.5, 18.0),
                make_refractive_surface(jnp.inf, 1.5, 10.0, 1.0),
            ],
            wavelengths=(550.0,),
        )
        matrix = system_matrix(lens)
        chex.assert_trees_all_close(
            matrix[0], jnp.array([[1.0, 2.0], [0.0, 1.0]])
        )

    def test_leading_stop_only_translates(self) -> None:
        """Test a thick lens behind a stop against a hand product."""
        lens = make_lens_system(
            [
                make_aperture_stop(0.0, 10.0),
                make_refractive_surface(50.0, 5.0, 10.0, 1.5),
                make_refractive_surface(-50.0, 3.0, 10.0, 1.0),
            ],
            wavelengths=(550.0,),
        )
        matrix = system_matrix(lens)
        chex.assert_trees_all_close(
            matrix[0], jnp.array([[0.98, 6.9], [-0.0198, 0.881]])
        )


class TestFocusModel(chex.TestCase, parameterized.TestCase):
    """Test cardinal points and Gaussian imaging."""

    def test_thin_lens_cardinal_points(self) -> None:
        """Test focal length and focal points of a thin lens."""
        model = build_focus_model(_thin_biconvex())
        chex.assert_trees_all_close(
            model.effective_focal_length, jnp.array([50.0])
        )
        chex.assert_trees_all_close(
            model.object_principal_z, jnp.zeros(1), atol=1e-12
        )
        chex.assert_trees_all_close(
            model.image_principal_z, jnp.zeros(1), atol=1e-12
        )
        chex.assert_trees_all_close(model.object_focal_z, jnp.array([-50.0]))
        chex.assert_trees_all_close(model.image_focal_z, jnp.array([50.0]))

    def test_thick_lens_focal_length(self) -> None:
        """Test the lensmaker's equation with thickness."""
        index, r1, r2, thickness = 1.5, 50.0, -50.0, 5.0
        lens = make_lens_system(
            [
                make_refractive_surface(r1, 0.0, 10.0, index),
                make_aperture_stop(2.5, 18.0),
                make_refractive_surface(r2, 2.5, 10.0, 1.0),
            ],
            wavelengths=(550.0,),
        )
        power = (index - 1.0) * (
            1.0 / r1
            - 1.0 / r2
            + (index - 1.0) * thickness / (index * r1 * r2)
        )
        model = build_focus_model(lens)
        chex.assert_trees_all_close(
            model.effective_focal_length, jnp.array([1.0 / power])
        )

    def test_dispersion(self) -> None:
        """Test that a higher index shortens the focal length."""
        lens = _thin_biconvex(jnp.array([1.5, 1.6]), (450.0, 650.0))
        model = build_focus_model(lens)
        chex.assert_shape(model.effective_focal_length, (2,))
        chex.assert_trees_all_close(
            model.effective_focal_length, jnp.array([50.0, 50.0 / 1.2])
        )

    def test_image_medium(self) -> None:
        """Test that an immersed image side scales the rear focus."""
        plain = build_focus_model(_plano_convex())
        immersed = build_focus_model(_plano_convex(), image_index=1.33)
        chex.assert_trees_all_close(
            immersed.effective_focal_length, plain.effective_focal_length
        )
        chex.assert_trees_all_close(
            immersed.image_focal_z, 1.33 * plain.image_focal_z
        )
        chex.assert_trees_all_close(immersed.image_index, 1.33)

    @parameterized.named_parameters(
        ("on_axis", 0.0, -100.0, 100.0, 0.0),
        ("off_axis", 2.0, -100.0, 100.0, -2.0),
        ("far", 1.0, -150.0, 75.0, -0.5),
    )
    def test_image_point(
        self,
        height: float,
        source_z: float,
        image_z: float,
        image_height: float,
    ) -> None:
        """Test Gaussian imaging through a thin lens."""
        model = build_focus_model(_thin_biconvex())
        image = image_point(model, jnp.array([0.0, height, source_z]))
        chex.assert_trees_all_close(
            image, jnp.array([[0.0, image_height, image_z]]), atol=1e-9
        )

    def test_film_distance(self) -> None:
        """Test the axial focus position of a source."""
        model = build_focus_model(_thin_biconvex())
        distance = film_distance(model, jnp.array([0.0, 0.0, -100.0]))
        chex.assert_trees_all_close(distance, 100.0)

    def test_matches_paraxial_trace(self) -> None:
        """Test that a near-axis traced ray crosses the axis at the focus."""
        lens = _plano_convex()
        model = build_focus_model(lens)
        height = 0.01
        bundle = make_ray_bundle(
            jnp.array([[0.0, height, -20.0]]), jnp.array([[0.0, 0.0, 1.0]])
        )
        traced = trace_lens(bundle, lens)
        origin = traced.origin[0]
        direction = traced.direction[0]
        crossing = origin[2] - origin[1] * direction[2] / direction[1]
        chex.assert_trees_all_close(
            crossing, model.image_focal_z[0], rtol=1e-5
        )


if __name__ == "__main__":
    pytest.main([__file__])
