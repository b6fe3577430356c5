"""Ray bundle and interface snapshot types.

Extended Summary
----------------
A ray bundle is a structure-of-arrays batch of N rays that stays
row-aligned for the whole trace: row i of every field always describes the
same ray, whether it is still alive or not. Liveness is an explicit boolean
mask. A ray that dies keeps the state it had at the moment of death; the
accessor functions of this module return NaN for those rows, so consumers
never read a frozen dead state as if it were valid.

Routine Listings
----------------
InterfaceSnapshot : NamedTuple
    PyTree recording ray positions and directions at one surface
RayBundle : NamedTuple
    PyTree for a batch of rays with liveness, path length and snapshots
make_interface_snapshot : function
    Factory function for InterfaceSnapshot creation
make_ray_bundle : function
    Factory function for RayBundle creation
ray_positions : function
    Current ray origins, NaN for dead rays
ray_directions : function
    Current ray directions, NaN for dead rays
snapshot_points : function
    Snapshot positions as [N, 3], NaN for rays dead at that surface
snapshot_directions : function
    Snapshot directions, NaN for rays dead at that surface
live_count : function
    Number of live rays in a bundle
throughput : function
    Fraction of rays in a bundle that are alive
has_snapshots : function
    Whether a bundle has already been through the tracer

Notes
-----
The ``middle`` snapshot is taken at the aperture stop and the ``exit``
snapshot at the last surface. Both are ``None`` until the bundle is traced
and are written exactly once.
"""

import jax
import jax.numpy as jnp
from beartype import beartype
from beartype.typing import NamedTuple, Optional, Tuple, Union
from jax.tree_util import register_pytree_node_class
from jaxtyping import Array, Bool, Float, Int, jaxtyped

from snellius.utils.math import normalize_rows

from .common_types import ScalarFloat, ScalarInteger

jax.config.update("jax_enable_x64", True)


@register_pytree_node_class
class InterfaceSnapshot(NamedTuple):
    """PyTree recording the rays at one surface.

    Attributes
    ----------
    xy : Float[Array, " N 2"]
        Transverse intersection coordinates.
    z : Float[Array, " N"]
        Axial intersection coordinate.
    direction : Float[Array, " N 3"]
        Ray direction leaving the surface.
    alive : Bool[Array, " N"]
        Liveness of each ray just after the surface.
    """

    xy: Float[Array, " N 2"]
    z: Float[Array, " N"]
    direction: Float[Array, " N 3"]
    alive: Bool[Array, " N"]

    def tree_flatten(
        self,
    ) -> Tuple[
        Tuple[
            Float[Array, " N 2"],
            Float[Array, " N"],
            Float[Array, " N 3"],
            Bool[Array, " N"],
        ],
        None,
    ]:
        """Flatten the InterfaceSnapshot into a tuple of its components."""
        return ((self.xy, self.z, self.direction, self.alive), None)

    @classmethod
    def tree_unflatten(
        cls,
        _aux_data: None,
        children: Tuple[
            Float[Array, " N 2"],
            Float[Array, " N"],
            Float[Array, " N 3"],
            Bool[Array, " N"],
        ],
    ) -> "InterfaceSnapshot":
        """Unflatten the InterfaceSnapshot from a tuple of its components."""
        return cls(*children)


@register_pytree_node_class
class RayBundle(NamedTuple):
    """PyTree for a batch of rays.

    Attributes
    ----------
    origin : Float[Array, " N 3"]
        Current ray origins in mm.
    direction : Float[Array, " N 3"]
        Current unit ray directions.
    wave_index : Int[Array, " N"]
        Column into ``LensSystem.media`` selecting each ray's wavelength.
    path_length : Float[Array, " N"]
        Optical path length accumulated so far.
    alive : Bool[Array, " N"]
        Liveness mask. Once False for a row it never becomes True again.
    middle : Optional[InterfaceSnapshot]
        Rays at the aperture stop, None before tracing.
    exit : Optional[InterfaceSnapshot]
        Rays at the last surface, None before tracing.
    """

    origin: Float[Array, " N 3"]
    direction: Float[Array, " N 3"]
    wave_index: Int[Array, " N"]
    path_length: Float[Array, " N"]
    alive: Bool[Array, " N"]
    middle: Optional[InterfaceSnapshot]
    exit: Optional[InterfaceSnapshot]

    @property
    def num_rays(self) -> int:
        """Number of rows in the bundle, alive or not."""
        return int(self.origin.shape[0])

    def tree_flatten(
        self,
    ) -> Tuple[
        Tuple[
            Float[Array, " N 3"],
            Float[Array, " N 3"],
            Int[Array, " N"],
            Float[Array, " N"],
            Bool[Array, " N"],
            Optional[InterfaceSnapshot],
            Optional[InterfaceSnapshot],
        ],
        None,
    ]:
        """Flatten the RayBundle into a tuple of its components."""
        return (
            (
                self.origin,
                self.direction,
                self.wave_index,
                self.path_length,
                self.alive,
                self.middle,
                self.exit,
            ),
            None,
        )

    @classmethod
    def tree_unflatten(
        cls,
        _aux_data: None,
        children: Tuple[
            Float[Array, " N 3"],
            Float[Array, " N 3"],
            Int[Array, " N"],
            Float[Array, " N"],
            Bool[Array, " N"],
            Optional[InterfaceSnapshot],
            Optional[InterfaceSnapshot],
        ],
    ) -> "RayBundle":
        """Unflatten the RayBundle from a tuple of its components."""
        return cls(*children)


@jaxtyped(typechecker=beartype)
def make_interface_snapshot(
    points: Float[Array, " N 3"],
    directions: Float[Array, " N 3"],
    alive: Bool[Array, " N"],
) -> InterfaceSnapshot:
    """Record ray endpoints and directions at a surface.

    Parameters
    ----------
    points : Float[Array, " N 3"]
        Intersection points with the surface.
    directions : Float[Array, " N 3"]
        Directions leaving the surface.
    alive : Bool[Array, " N"]
        Liveness just after the surface.

    Returns
    -------
    snapshot : InterfaceSnapshot
        The snapshot, with the points split into ``xy`` and ``z``.
    """
    return InterfaceSnapshot(
        xy=points[:, :2],
        z=points[:, 2],
        direction=directions,
        alive=alive,
    )


def make_ray_bundle(
    origin: Float[Array, " ..."],
    direction: Float[Array, " ..."],
    wave_index: Union[ScalarInteger, Int[Array, " ..."]] = 0,
    path_length: Optional[Union[ScalarFloat, Float[Array, " ..."]]] = None,
    alive: Optional[Bool[Array, " ..."]] = None,
) -> RayBundle:
    """Create a RayBundle with consistent, row-aligned fields.

    Parameters
    ----------
    origin : Float[Array, " N 3"]
        Ray origins in mm.
    direction : Float[Array, " N 3"]
        Ray directions; normalized to unit length here.
    wave_index : ScalarInteger or Int[Array, " N"], optional
        Wavelength column per ray, or one value for every ray.
        Default is 0.
    path_length : ScalarFloat or Float[Array, " N"], optional
        Starting optical path length. Default is zero for every ray.
    alive : Bool[Array, " N"], optional
        Starting liveness mask. Default is all alive.

    Returns
    -------
    bundle : RayBundle
        A fresh bundle with no snapshots.

    Raises
    ------
    ValueError
        If ``origin`` or ``direction`` is not ``[N, 3]``, or the per-ray
        arrays disagree on N.
    """
    origin_arr: Float[Array, " ..."] = jnp.asarray(origin, dtype=jnp.float64)
    direction_arr: Float[Array, " ..."] = jnp.asarray(
        direction, dtype=jnp.float64
    )
    if origin_arr.ndim != 2 or origin_arr.shape[1] != 3:
        raise ValueError(
            f"Ray origins must have shape [N, 3], got {origin_arr.shape}"
        )
    if direction_arr.shape != origin_arr.shape:
        raise ValueError(
            f"Ray directions must match origins {origin_arr.shape}, "
            f"got {direction_arr.shape}"
        )
    num_rays: int = origin_arr.shape[0]

    def _per_ray(value, dtype, name: str) -> Array:
        arr = jnp.asarray(value, dtype=dtype)
        if arr.ndim == 0:
            return jnp.full((num_rays,), arr, dtype=dtype)
        if arr.shape != (num_rays,):
            raise ValueError(
                f"{name} must be a scalar or have shape ({num_rays},), "
                f"got {arr.shape}"
            )
        return arr

    wave_arr: Int[Array, " N"] = _per_ray(wave_index, jnp.int32, "wave_index")
    length_arr: Float[Array, " N"] = _per_ray(
        0.0 if path_length is None else path_length,
        jnp.float64,
        "path_length",
    )
    alive_arr: Bool[Array, " N"] = _per_ray(
        True if alive is None else alive, jnp.bool_, "alive"
    )

    return RayBundle(
        origin=origin_arr,
        direction=normalize_rows(direction_arr),
        wave_index=wave_arr,
        path_length=length_arr,
        alive=alive_arr,
        middle=None,
        exit=None,
    )


@jaxtyped(typechecker=beartype)
def ray_positions(bundle: RayBundle) -> Float[Array, " N 3"]:
    """Current ray origins, with NaN rows for dead rays."""
    return jnp.where(bundle.alive[:, None], bundle.origin, jnp.nan)


@jaxtyped(typechecker=beartype)
def ray_directions(bundle: RayBundle) -> Float[Array, " N 3"]:
    """Current ray directions, with NaN rows for dead rays."""
    return jnp.where(bundle.alive[:, None], bundle.direction, jnp.nan)


@jaxtyped(typechecker=beartype)
def snapshot_points(snapshot: InterfaceSnapshot) -> Float[Array, " N 3"]:
    """Snapshot positions as ``[N, 3]``, NaN for rays dead at that surface."""
    points: Float[Array, " N 3"] = jnp.concatenate(
        [snapshot.xy, snapshot.z[:, None]], axis=-1
    )
    return jnp.where(snapshot.alive[:, None], points, jnp.nan)


@jaxtyped(typechecker=beartype)
def snapshot_directions(snapshot: InterfaceSnapshot) -> Float[Array, " N 3"]:
    """Snapshot directions, NaN for rays dead at that surface."""
    return jnp.where(snapshot.alive[:, None], snapshot.direction, jnp.nan)


@jaxtyped(typechecker=beartype)
def live_count(bundle: RayBundle) -> Int[Array, " "]:
    """Number of live rays in the bundle."""
    return jnp.sum(bundle.alive.astype(jnp.int32))


@jaxtyped(typechecker=beartype)
def throughput(bundle: RayBundle) -> Float[Array, " "]:
    """Fraction of rays in the bundle that are alive.

    An empty bundle has zero throughput.
    """
    total: int = max(bundle.num_rays, 1)
    return live_count(bundle).astype(jnp.float64) / total


def has_snapshots(bundle: RayBundle) -> bool:
    """Whether the bundle already carries a middle or exit snapshot."""
    return bundle.middle is not None or bundle.exit is not None
