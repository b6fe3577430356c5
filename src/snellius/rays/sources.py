"""Entrance-ray generators.

Extended Summary
----------------
Builders of fresh :class:`~snellius.types.RayBundle` instances on the scene
side of a lens: rays from a point source aimed at the first surface, angular
fans from one point (used by the pupil sweep) and collimated beams.

Routine Listings
----------------
point_source_rays : function
    Rays from a point aimed at a grid over the first surface aperture
angular_fan_rays : function
    Rays from one origin over a grid of polar and azimuthal angles
collimated_rays : function
    Axis-parallel rays uniformly distributed over a disk

Notes
-----
Angles are in degrees; theta is measured from the optical axis and phi
from the +x axis. The bundle row order is theta-major for fans and
row-major (y, then x) for grids.
"""

import jax
import jax.numpy as jnp
from beartype import beartype
from beartype.typing import Optional, Union
from jaxtyping import Array, Float, Int, PRNGKeyArray, jaxtyped

from snellius.types import (
    LensSystem,
    RayBundle,
    ScalarFloat,
    ScalarInteger,
    make_ray_bundle,
)

jax.config.update("jax_enable_x64", True)


@jaxtyped(typechecker=beartype)
def point_source_rays(
    point: Float[Array, " 3"],
    lens: LensSystem,
    grid_size: int,
    wave_index: Union[ScalarInteger, Int[Array, " N"]] = 0,
    key: Optional[PRNGKeyArray] = None,
) -> RayBundle:
    """Rays from a point source aimed at the first lens surface.

    Parameters
    ----------
    point : Float[Array, " 3"]
        Source position, in front of the first surface.
    lens : LensSystem
        Lens whose first surface is sampled.
    grid_size : int
        Number of samples per side of the square target grid.
    wave_index : ScalarInteger or Int[Array, " N"], optional
        Wavelength column for every ray. Default is 0.
    key : PRNGKeyArray, optional
        When given, each target is jittered uniformly within its grid
        cell. Default is None (cell centres).

    Returns
    -------
    bundle : RayBundle
        ``grid_size²`` rays. Targets that fall outside the clear aperture
        are kept and die at the first surface.

    Raises
    ------
    ValueError
        If ``grid_size`` is below 1.
    """
    if grid_size < 1:
        raise ValueError(f"grid_size must be at least 1, got {grid_size}")
    semi: Float[Array, " "] = lens.semi_diameter[0]
    cell: Float[Array, " "] = 2.0 * semi / grid_size
    centres: Float[Array, " G"] = (
        -semi + cell * (jnp.arange(grid_size, dtype=jnp.float64) + 0.5)
    )
    grid_y, grid_x = jnp.meshgrid(centres, centres, indexing="ij")
    targets_xy: Float[Array, " N 2"] = jnp.stack(
        [grid_x.ravel(), grid_y.ravel()], axis=-1
    )
    if key is not None:
        jitter: Float[Array, " N 2"] = jax.random.uniform(
            key,
            targets_xy.shape,
            dtype=jnp.float64,
            minval=-0.5,
            maxval=0.5,
        )
        targets_xy = targets_xy + cell * jitter
    num_rays: int = targets_xy.shape[0]
    targets: Float[Array, " N 3"] = jnp.concatenate(
        [targets_xy, jnp.full((num_rays, 1), lens.vertex_z[0])], axis=-1
    )
    origins: Float[Array, " N 3"] = jnp.broadcast_to(point, (num_rays, 3))
    return make_ray_bundle(origins, targets - origins, wave_index)


@jaxtyped(typechecker=beartype)
def angular_fan_rays(
    origin: Float[Array, " 3"],
    thetas_deg: Float[Array, " T"],
    phis_deg: Float[Array, " P"],
    wave_index: ScalarInteger = 0,
) -> RayBundle:
    """Rays from one origin over a theta by phi grid of directions.

    The direction of each ray is
    ``(sin θ cos φ, sin θ sin φ, cos θ)``, with rows ordered theta-major.
    """
    theta: Float[Array, " T"] = jnp.deg2rad(thetas_deg)
    phi: Float[Array, " P"] = jnp.deg2rad(phis_deg)
    grid_theta, grid_phi = jnp.meshgrid(theta, phi, indexing="ij")
    grid_theta = grid_theta.ravel()
    grid_phi = grid_phi.ravel()
    directions: Float[Array, " N 3"] = jnp.stack(
        [
            jnp.sin(grid_theta) * jnp.cos(grid_phi),
            jnp.sin(grid_theta) * jnp.sin(grid_phi),
            jnp.cos(grid_theta),
        ],
        axis=-1,
    )
    origins: Float[Array, " N 3"] = jnp.broadcast_to(
        origin, directions.shape
    )
    return make_ray_bundle(origins, directions, wave_index)


@jaxtyped(typechecker=beartype)
def collimated_rays(
    key: PRNGKeyArray,
    n_rays: int,
    beam_radius: ScalarFloat,
    z_start: ScalarFloat,
    wave_index: ScalarInteger = 0,
) -> RayBundle:
    """Axis-parallel rays uniformly distributed over a disk.

    Parameters
    ----------
    key : PRNGKeyArray
        Random key for the sample positions.
    n_rays : int
        Number of rays.
    beam_radius : ScalarFloat
        Radius of the beam in mm.
    z_start : ScalarFloat
        Axial position of the ray origins.
    wave_index : ScalarInteger, optional
        Wavelength column for every ray. Default is 0.

    Returns
    -------
    bundle : RayBundle
        Rays travelling along +z.
    """
    radius_key, angle_key = jax.random.split(key)
    radius: Float[Array, " N"] = beam_radius * jnp.sqrt(
        jax.random.uniform(radius_key, (n_rays,), dtype=jnp.float64)
    )
    angle: Float[Array, " N"] = (
        2.0
        * jnp.pi
        * jax.random.uniform(angle_key, (n_rays,), dtype=jnp.float64)
    )
    origins: Float[Array, " N 3"] = jnp.stack(
        [
            radius * jnp.cos(angle),
            radius * jnp.sin(angle),
            jnp.full((n_rays,), z_start, dtype=jnp.float64),
        ],
        axis=-1,
    )
    directions: Float[Array, " N 3"] = jnp.broadcast_to(
        jnp.array([0.0, 0.0, 1.0]), (n_rays, 3)
    )
    return make_ray_bundle(origins, directions, wave_index)
