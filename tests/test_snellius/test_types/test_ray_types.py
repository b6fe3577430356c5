"""Tests for ray bundles and snapshots in snellius.types.ray_types."""

import chex
import jax
import jax.numpy as jnp
import pytest
from absl.testing import parameterized

from snellius.types import (
    RayBundle,
    has_snapshots,
    live_count,
    make_interface_snapshot,
    make_ray_bundle,
    ray_directions,
    ray_positions,
    snapshot_directions,
    snapshot_points,
    throughput,
)


class TestMakeRayBundle(chex.TestCase, parameterized.TestCase):
    """Test the make_ray_bundle factory."""

    def setUp(self) -> None:
        super().setUp()
        self.origin = jnp.array(
            [[0.0, 0.0, -10.0], [1.0, 0.0, -10.0], [0.0, 2.0, -10.0]]
        )
        self.direction = jnp.array(
            [[0.0, 0.0, 2.0], [0.0, 0.3, 4.0], [1.0, 1.0, 1.0]]
        )

    def test_defaults(self) -> None:
        """Test default wave index, path length and liveness."""
        bundle = make_ray_bundle(self.origin, self.direction)
        chex.assert_shape(bundle.wave_index, (3,))
        chex.assert_trees_all_equal(bundle.wave_index, jnp.zeros(3, jnp.int32))
        chex.assert_trees_all_close(bundle.path_length, jnp.zeros(3))
        assert bool(jnp.all(bundle.alive))
        assert bundle.middle is None
        assert bundle.exit is None
        assert bundle.num_rays == 3

    def test_directions_normalized(self) -> None:
        """Test that directions are scaled to unit length."""
        bundle = make_ray_bundle(self.origin, self.direction)
        norms = jnp.linalg.norm(bundle.direction, axis=-1)
        chex.assert_trees_all_close(norms, jnp.ones(3), atol=1e-12)
        chex.assert_trees_all_close(
            bundle.direction[0], jnp.array([0.0, 0.0, 1.0])
        )

    def test_per_ray_fields(self) -> None:
        """Test that per-ray arrays are kept row-aligned."""
        bundle = make_ray_bundle(
            self.origin,
            self.direction,
            wave_index=jnp.array([0, 1, 2]),
            path_length=jnp.array([1.0, 2.0, 3.0]),
            alive=jnp.array([True, False, True]),
        )
        chex.assert_trees_all_equal(bundle.wave_index, jnp.array([0, 1, 2]))
        chex.assert_trees_all_close(
            bundle.path_length, jnp.array([1.0, 2.0, 3.0])
        )
        chex.assert_trees_all_equal(
            bundle.alive, jnp.array([True, False, True])
        )

    def test_bad_origin_shape(self) -> None:
        """Test that origins must be [N, 3]."""
        with pytest.raises(ValueError, match="origins"):
            make_ray_bundle(self.origin[:, :2], self.direction[:, :2])

    def test_mismatched_directions(self) -> None:
        """Test that origins and directions must have the same rows."""
        with pytest.raises(ValueError, match="directions"):
            make_ray_bundle(self.origin, self.direction[:2])

    @parameterized.named_parameters(
        ("wave_index", {"wave_index": jnp.array([0, 1])}),
        ("path_length", {"path_length": jnp.zeros(4)}),
        ("alive", {"alive": jnp.array([True, False])}),
    )
    def test_mismatched_per_ray_arrays(self, kwargs) -> None:
        """Test that per-ray arrays must have one entry per ray."""
        with pytest.raises(ValueError):
            make_ray_bundle(self.origin, self.direction, **kwargs)

    def test_pytree_leaves_without_snapshots(self) -> None:
        """Test that absent snapshots contribute no leaves."""
        bundle = make_ray_bundle(self.origin, self.direction)
        leaves, treedef = jax.tree_util.tree_flatten(bundle)
        assert len(leaves) == 5
        rebuilt = jax.tree_util.tree_unflatten(treedef, leaves)
        assert isinstance(rebuilt, RayBundle)
        assert rebuilt.middle is None


class TestRayAccessors(chex.TestCase):
    """Test that dead rows read as NaN."""

    def setUp(self) -> None:
        super().setUp()
        origin = jnp.array([[0.0, 0.0, 0.0], [1.0, 1.0, 1.0], [2.0, 2.0, 2.0]])
        direction = jnp.tile(jnp.array([[0.0, 0.0, 1.0]]), (3, 1))
        self.bundle = make_ray_bundle(
            origin, direction, alive=jnp.array([True, False, True])
        )

    @chex.variants(with_jit=True, without_jit=True)
    def test_ray_positions(self) -> None:
        """Test positions of live rows and NaN for dead rows."""
        positions = self.variant(ray_positions)(self.bundle)
        chex.assert_trees_all_close(positions[0], jnp.zeros(3))
        chex.assert_trees_all_close(positions[2], jnp.full(3, 2.0))
        assert bool(jnp.all(jnp.isnan(positions[1])))

    @chex.variants(with_jit=True, without_jit=True)
    def test_ray_directions(self) -> None:
        """Test directions of live rows and NaN for dead rows."""
        directions = self.variant(ray_directions)(self.bundle)
        assert bool(jnp.all(jnp.isnan(directions[1])))
        assert bool(jnp.all(jnp.isfinite(directions[::2])))

    def test_live_count_and_throughput(self) -> None:
        """Test liveness summaries."""
        chex.assert_trees_all_equal(live_count(self.bundle), 2)
        chex.assert_trees_all_close(throughput(self.bundle), 2.0 / 3.0)

    def test_empty_bundle_throughput(self) -> None:
        """Test that an empty bundle has zero throughput."""
        empty = make_ray_bundle(jnp.zeros((0, 3)), jnp.zeros((0, 3)))
        chex.assert_trees_all_equal(live_count(empty), 0)
        chex.assert_trees_all_close(throughput(empty), 0.0)

    def test_has_snapshots(self) -> None:
        """Test detection of traced bundles."""
        assert not has_snapshots(self.bundle)
        snapshot = make_interface_snapshot(
            self.bundle.origin, self.bundle.direction, self.bundle.alive
        )
        assert has_snapshots(self.bundle._replace(exit=snapshot))


class TestInterfaceSnapshot(chex.TestCase):
    """Test snapshot construction and accessors."""

    def setUp(self) -> None:
        super().setUp()
        self.points = jnp.array([[0.5, -0.5, 3.0], [1.0, 2.0, 3.5]])
        self.directions = jnp.array([[0.0, 0.0, 1.0], [0.0, 0.6, 0.8]])
        self.alive = jnp.array([True, False])

    def test_split_coordinates(self) -> None:
        """Test that points are split into xy and z."""
        snapshot = make_interface_snapshot(
            self.points, self.directions, self.alive
        )
        chex.assert_shape(snapshot.xy, (2, 2))
        chex.assert_shape(snapshot.z, (2,))
        chex.assert_trees_all_close(snapshot.z, jnp.array([3.0, 3.5]))

    @chex.variants(with_jit=True, without_jit=True)
    def test_snapshot_accessors(self) -> None:
        """Test that accessors rebuild points and mask dead rows."""
        snapshot = make_interface_snapshot(
            self.points, self.directions, self.alive
        )
        points = self.variant(snapshot_points)(snapshot)
        directions = self.variant(snapshot_directions)(snapshot)
        chex.assert_trees_all_close(points[0], self.points[0])
        chex.assert_trees_all_close(directions[0], self.directions[0])
        assert bool(jnp.all(jnp.isnan(points[1])))
        assert bool(jnp.all(jnp.isnan(directions[1])))


if __name__ == "__main__":
    pytest.main([__file__])
