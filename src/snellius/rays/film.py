"""Film recording and spot metrics.

Extended Summary
----------------
Rays leaving the last surface are extended in a straight line to a film
(sensor) plane. Spot metrics summarize where the surviving rays land;
dead rays are NaN and never contribute.

Routine Listings
----------------
record_on_film : function
    Intersections of the traced rays with the film plane
spot_centroid : function
    Mean transverse landing position of the live rays
rms_spot_radius : function
    Root-mean-square distance of the live rays from the centroid
spot_diameter : function
    Twice the largest distance of a live ray from the centroid
"""

import jax
import jax.numpy as jnp
from beartype import beartype
from jaxtyping import Array, Bool, Float, jaxtyped

from snellius.types import RayBundle, ScalarFloat

jax.config.update("jax_enable_x64", True)


@jaxtyped(typechecker=beartype)
def record_on_film(
    bundle: RayBundle, film_z: ScalarFloat
) -> Float[Array, " N 3"]:
    """Extend the traced rays to the plane ``z = film_z``.

    Parameters
    ----------
    bundle : RayBundle
        A traced bundle.
    film_z : ScalarFloat
        Axial film position in mm (the last vertex is at z = 0).

    Returns
    -------
    points : Float[Array, " N 3"]
        Landing points; NaN for dead rays and for rays that never reach
        the film.
    """
    dz: Float[Array, " N"] = bundle.direction[:, 2]
    moving: Bool[Array, " N"] = dz > 0
    t: Float[Array, " N"] = (film_z - bundle.origin[:, 2]) / jnp.where(
        moving, dz, 1.0
    )
    landed: Bool[Array, " N"] = bundle.alive & moving & (t >= 0)
    points: Float[Array, " N 3"] = (
        bundle.origin + t[:, None] * bundle.direction
    )
    return jnp.where(landed[:, None], points, jnp.nan)


@jaxtyped(typechecker=beartype)
def spot_centroid(points: Float[Array, " N 3"]) -> Float[Array, " 2"]:
    """Mean landing position of the finite rows; NaN when there are none."""
    return jnp.nanmean(points[:, :2], axis=0)


@jaxtyped(typechecker=beartype)
def rms_spot_radius(points: Float[Array, " N 3"]) -> Float[Array, " "]:
    """Root-mean-square distance of the finite rows from their centroid."""
    offsets: Float[Array, " N 2"] = points[:, :2] - spot_centroid(points)
    return jnp.sqrt(jnp.nanmean(jnp.sum(offsets**2, axis=-1)))


@jaxtyped(typechecker=beartype)
def spot_diameter(points: Float[Array, " N 3"]) -> Float[Array, " "]:
    """Twice the largest distance of a finite row from the centroid."""
    offsets: Float[Array, " N 2"] = points[:, :2] - spot_centroid(points)
    return 2.0 * jnp.nanmax(jnp.linalg.norm(offsets, axis=-1))
