"""Heisenberg uncertainty ray bending at the aperture stop.

Extended Summary
----------------
HURB approximates edge diffraction statistically: a ray passing through a
circular opening close to its rim is tilted by a random angle whose spread
grows as the distance to the rim shrinks, in analogy with the position and
momentum uncertainty of a photon confined by the aperture. Spreads are
computed separately along the radial direction (distance to the nearest
edge) and the tangential direction (half-chord through the ray).

Routine Listings
----------------
hurb_spreads : function
    Radial and tangential angular spreads for rays inside a circular stop
hurb_bend : function
    Randomly tilt ray directions according to their HURB spreads

Notes
-----
The angular spread along an axis with confinement half-width ``w`` is
``arctan(1 / (2 w k))`` with wavenumber ``k = 2π / λ``. Tilts are applied
as small-angle offsets along the radial and tangential unit vectors and
the direction is renormalized.
"""

import jax
import jax.numpy as jnp
from beartype import beartype
from beartype.typing import Tuple
from jaxtyping import Array, Bool, Float, PRNGKeyArray, jaxtyped

from snellius.types import ScalarFloat
from snellius.utils.math import normalize_rows, safe_sqrt

jax.config.update("jax_enable_x64", True)


@jaxtyped(typechecker=beartype)
def hurb_spreads(
    points: Float[Array, " N 3"],
    semi_diameter: ScalarFloat,
    wavelength_mm: Float[Array, " N"],
) -> Tuple[Float[Array, " N"], Float[Array, " N"]]:
    """Radial and tangential angular spreads at a circular stop.

    Parameters
    ----------
    points : Float[Array, " N 3"]
        Ray intersections with the stop plane.
    semi_diameter : ScalarFloat
        Radius of the stop opening in mm.
    wavelength_mm : Float[Array, " N"]
        Wavelength of each ray in mm.

    Returns
    -------
    sigma_radial : Float[Array, " N"]
        Spread across the nearest edge.
    sigma_tangential : Float[Array, " N"]
        Spread along the chord through the ray.
    """
    rho: Float[Array, " N"] = jnp.hypot(points[:, 0], points[:, 1])
    edge_distance: Float[Array, " N"] = jnp.maximum(semi_diameter - rho, 0.0)
    half_chord: Float[Array, " N"] = safe_sqrt(semi_diameter**2 - rho**2)
    wavenumber: Float[Array, " N"] = 2.0 * jnp.pi / wavelength_mm
    sigma_radial: Float[Array, " N"] = jnp.arctan(
        1.0 / (2.0 * edge_distance * wavenumber)
    )
    sigma_tangential: Float[Array, " N"] = jnp.arctan(
        1.0 / (2.0 * half_chord * wavenumber)
    )
    return sigma_radial, sigma_tangential


@jaxtyped(typechecker=beartype)
def hurb_bend(
    key: PRNGKeyArray,
    points: Float[Array, " N 3"],
    directions: Float[Array, " N 3"],
    alive: Bool[Array, " N"],
    semi_diameter: ScalarFloat,
    wavelength_mm: Float[Array, " N"],
) -> Float[Array, " N 3"]:
    """Tilt the directions of rays passing a circular stop.

    Parameters
    ----------
    key : PRNGKeyArray
        Random key; the result is deterministic for a fixed key.
    points : Float[Array, " N 3"]
        Ray intersections with the stop plane.
    directions : Float[Array, " N 3"]
        Unit ray directions at the stop.
    alive : Bool[Array, " N"]
        Rays that pass the stop. Other rows are returned unchanged.
    semi_diameter : ScalarFloat
        Radius of the stop opening in mm.
    wavelength_mm : Float[Array, " N"]
        Wavelength of each ray in mm.

    Returns
    -------
    bent : Float[Array, " N 3"]
        New unit directions.
    """
    sigma_radial, sigma_tangential = hurb_spreads(
        points, semi_diameter, wavelength_mm
    )
    num_rays: int = points.shape[0]
    noise: Float[Array, " N 2"] = jax.random.normal(
        key, (num_rays, 2), dtype=jnp.float64
    )
    angle_radial: Float[Array, " N"] = noise[:, 0] * sigma_radial
    angle_tangential: Float[Array, " N"] = noise[:, 1] * sigma_tangential

    rho: Float[Array, " N"] = jnp.hypot(points[:, 0], points[:, 1])
    on_axis: Bool[Array, " N"] = rho == 0
    safe_rho: Float[Array, " N"] = jnp.where(on_axis, 1.0, rho)
    cos_phi: Float[Array, " N"] = jnp.where(
        on_axis, 1.0, points[:, 0] / safe_rho
    )
    sin_phi: Float[Array, " N"] = jnp.where(
        on_axis, 0.0, points[:, 1] / safe_rho
    )
    zeros: Float[Array, " N"] = jnp.zeros_like(rho)
    radial: Float[Array, " N 3"] = jnp.stack([cos_phi, sin_phi, zeros], -1)
    tangential: Float[Array, " N 3"] = jnp.stack(
        [-sin_phi, cos_phi, zeros], -1
    )

    axial: Float[Array, " N 1"] = jnp.abs(directions[:, 2:3])
    tilted: Float[Array, " N 3"] = (
        directions
        + axial * jnp.tan(angle_radial)[:, None] * radial
        + axial * jnp.tan(angle_tangential)[:, None] * tangential
    )
    bent: Float[Array, " N 3"] = normalize_rows(tilted)
    return jnp.where(alive[:, None], bent, directions)
