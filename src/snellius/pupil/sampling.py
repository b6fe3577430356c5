"""Pupil-plane sampling by tracing angular fans.

Extended Summary
----------------
The shape of the pupil seen from an off-axis point is sampled by tracing a
dense fan of rays from that point and keeping, for each ray that survives
the lens, its intersection with a reference plane in front of the source.
Sweeping the source height gives the ``[3, P, N]`` sample array consumed by
the vignetting estimator.

Routine Listings
----------------
pupil_plane_points : function
    Reference-plane intersections of the entry rays that survive the trace
sample_pupil_shapes : function
    Pupil-plane samples for a sweep of off-axis source heights

Notes
-----
Sources lie on the y axis at ``(0, h, source_z)`` and must be in front of
the first lens vertex. The off-axis sweep is vectorized with ``jax.vmap``.
"""

import jax
import jax.numpy as jnp
from beartype import beartype
from jaxtyping import Array, Bool, Float, jaxtyped

from snellius.rays.sources import angular_fan_rays
from snellius.trace.surface_trace import trace_lens
from snellius.types import LensSystem, RayBundle, ScalarFloat, ScalarInteger

jax.config.update("jax_enable_x64", True)


@jaxtyped(typechecker=beartype)
def pupil_plane_points(
    entry: RayBundle,
    traced: RayBundle,
    source_z: ScalarFloat,
    reference_distance: ScalarFloat,
) -> Float[Array, " 3 N"]:
    """Intersect entry rays with the reference plane.

    Parameters
    ----------
    entry : RayBundle
        Bundle before tracing.
    traced : RayBundle
        The same bundle after :func:`~snellius.trace.trace_lens`.
    source_z : ScalarFloat
        Axial position of the source plane.
    reference_distance : ScalarFloat
        Distance of the reference plane from the source plane.

    Returns
    -------
    points : Float[Array, " 3 N"]
        Rows x, y, z of each intersection; NaN columns for rays that did
        not survive the trace.
    """
    plane_z = source_z + reference_distance
    dz: Float[Array, " N"] = entry.direction[:, 2]
    forward: Bool[Array, " N"] = dz > 0
    t: Float[Array, " N"] = (plane_z - entry.origin[:, 2]) / jnp.where(
        forward, dz, 1.0
    )
    points: Float[Array, " N 3"] = entry.origin + t[:, None] * entry.direction
    keep: Bool[Array, " N"] = traced.alive & forward
    return jnp.where(keep[:, None], points, jnp.nan).T


@jaxtyped(typechecker=beartype)
def sample_pupil_shapes(
    lens: LensSystem,
    off_axis_heights: Float[Array, " P"],
    thetas_deg: Float[Array, " T"],
    phis_deg: Float[Array, " F"],
    source_z: ScalarFloat,
    reference_distance: ScalarFloat,
    wave_index: ScalarInteger = 0,
) -> Float[Array, " 3 P N"]:
    """Sample the pupil shape for a sweep of off-axis source heights.

    Parameters
    ----------
    lens : LensSystem
        The lens to sample.
    off_axis_heights : Float[Array, " P"]
        Source heights along y; index 0 is conventionally the axis.
    thetas_deg : Float[Array, " T"]
        Polar angles of the fan.
    phis_deg : Float[Array, " F"]
        Azimuthal angles of the fan.
    source_z : ScalarFloat
        Axial position of the sources, in front of the first vertex.
    reference_distance : ScalarFloat
        Distance of the reference plane from the source plane.
    wave_index : ScalarInteger, optional
        Wavelength column for every ray. Default is 0.

    Returns
    -------
    points : Float[Array, " 3 P N"]
        Reference-plane samples with ``N = T * F``; NaN for vignetted rays.
    """
    z: Float[Array, " "] = jnp.asarray(source_z, dtype=jnp.float64)

    def _one_height(height: Float[Array, " "]) -> Float[Array, " 3 N"]:
        origin: Float[Array, " 3"] = jnp.stack(
            [jnp.zeros_like(height), height, z]
        )
        entry: RayBundle = angular_fan_rays(
            origin, thetas_deg, phis_deg, wave_index
        )
        traced: RayBundle = trace_lens(entry, lens)
        return pupil_plane_points(entry, traced, z, reference_distance)

    per_height: Float[Array, " P 3 N"] = jax.vmap(_one_height)(
        off_axis_heights
    )
    return jnp.transpose(per_height, (1, 0, 2))
