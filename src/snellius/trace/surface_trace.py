"""Sequential ray tracing through a lens system.

Extended Summary
----------------
Rays are propagated surface by surface from the scene side to the sensor
side. At every refractive surface each live ray is intersected with the
sphere (or plane), clipped by the clear aperture and refracted with the
vector form of Snell's law using the refractive index of its own
wavelength. At the aperture stop rays are intersected with the stop plane
and clipped by the smaller of the stop and the diaphragm openings. Rays
that miss, are clipped or are totally internally reflected are retired
from the bundle by clearing their liveness flag; their state stays frozen.

Routine Listings
----------------
sphere_intersection : function
    Ray parameter of the intersection with a spherical surface
plane_intersection : function
    Ray parameter of the intersection with a plane normal to the axis
surface_normals : function
    Unit normals of a spherical surface facing the incoming light
snell_refract : function
    Vector form of Snell's law with total-internal-reflection flag
trace_lens : function
    Trace a ray bundle through every surface of a lens system

Notes
-----
Surface kinds are static metadata of :class:`~snellius.types.LensSystem`,
so the per-surface loop unrolls at trace time and the whole function is
compatible with ``jax.jit`` and ``jax.vmap``. No exception is raised for
per-ray failures; an all-dead bundle is a valid result.
"""

import logging

import jax
import jax.numpy as jnp
from beartype import beartype
from beartype.typing import Callable, Optional, Tuple
from jaxtyping import Array, Bool, Float, PRNGKeyArray, jaxtyped

from snellius import config
from snellius.types import (
    APERTURE,
    REFRACTIVE,
    LensSystem,
    RayBundle,
    ScalarFloat,
    effective_stop_radius,
    has_snapshots,
    make_interface_snapshot,
)
from snellius.types.lens_types import _concrete
from snellius.utils.exceptions import LensConfigurationError
from snellius.utils.math import (
    normalize_rows,
    radial_distance_squared,
    row_dot,
    safe_sqrt,
)

from .diffraction import hurb_bend

jax.config.update("jax_enable_x64", True)

logger = logging.getLogger(__name__)


@jaxtyped(typechecker=beartype)
def sphere_intersection(
    origins: Float[Array, " N 3"],
    directions: Float[Array, " N 3"],
    center_z: ScalarFloat,
    radius: ScalarFloat,
) -> Tuple[Float[Array, " N"], Bool[Array, " N"]]:
    """Intersect rays with a spherical surface centred on the axis.

    Parameters
    ----------
    origins : Float[Array, " N 3"]
        Ray origins.
    directions : Float[Array, " N 3"]
        Unit ray directions.
    center_z : ScalarFloat
        Axial position of the centre of curvature.
    radius : ScalarFloat
        Signed radius of curvature.

    Returns
    -------
    t : Float[Array, " N"]
        Ray parameter of the intersection.
    hit : Bool[Array, " N"]
        False where the ray misses the sphere (negative discriminant).

    Notes
    -----
    The quadratic ``|o + t d - c|² = R²`` has roots
    ``t = -d·(o - c) ± sqrt((d·(o - c))² - |o - c|² + R²)``. The surface
    crossed by a ray travelling towards +z is the near root for a positive
    radius (centre beyond the vertex) and the far root for a negative one.
    """
    center: Float[Array, " 3"] = jnp.array([0.0, 0.0, 1.0]) * center_z
    to_origin: Float[Array, " N 3"] = origins - center
    projection: Float[Array, " N"] = row_dot(directions, to_origin)
    discriminant: Float[Array, " N"] = (
        projection**2 - row_dot(to_origin, to_origin) + radius**2
    )
    root: Float[Array, " N"] = safe_sqrt(discriminant)
    t: Float[Array, " N"] = jnp.where(
        radius < 0, -projection + root, -projection - root
    )
    hit: Bool[Array, " N"] = discriminant >= 0
    return t, hit


@jaxtyped(typechecker=beartype)
def plane_intersection(
    origins: Float[Array, " N 3"],
    directions: Float[Array, " N 3"],
    plane_z: ScalarFloat,
) -> Tuple[Float[Array, " N"], Bool[Array, " N"]]:
    """Intersect rays with the plane ``z = plane_z``.

    Rays parallel to the plane do not hit it.
    """
    dz: Float[Array, " N"] = directions[:, 2]
    hit: Bool[Array, " N"] = dz != 0
    t: Float[Array, " N"] = (plane_z - origins[:, 2]) / jnp.where(hit, dz, 1.0)
    return t, hit


@jaxtyped(typechecker=beartype)
def surface_normals(
    points: Float[Array, " N 3"],
    center_z: ScalarFloat,
    radius: ScalarFloat,
) -> Float[Array, " N 3"]:
    """Unit normals of a spherical surface at ``points``.

    The normal ``(p - c) / |p - c|`` is flipped for a negative radius so
    that it always faces the incoming light (negative z component near
    the axis).
    """
    center: Float[Array, " 3"] = jnp.array([0.0, 0.0, 1.0]) * center_z
    normals: Float[Array, " N 3"] = normalize_rows(points - center)
    return jnp.where(radius < 0, -normals, normals)


@jaxtyped(typechecker=beartype)
def snell_refract(
    directions: Float[Array, " N 3"],
    normals: Float[Array, " N 3"],
    ratio: Float[Array, " N"],
) -> Tuple[Float[Array, " N 3"], Bool[Array, " N"]]:
    """Refract unit directions at a surface with unit normals.

    Parameters
    ----------
    directions : Float[Array, " N 3"]
        Incident unit directions.
    normals : Float[Array, " N 3"]
        Unit surface normals facing the incident rays.
    ratio : Float[Array, " N"]
        Index ratio ``n_before / n_after`` per ray.

    Returns
    -------
    refracted : Float[Array, " N 3"]
        Refracted unit directions.
    transmitted : Bool[Array, " N"]
        False where total internal reflection occurs.

    Notes
    -----
    With ``cos_i = -n·d`` the transmitted direction is
    ``ratio d + (ratio cos_i - sqrt(1 - ratio² (1 - cos_i²))) n``,
    renormalized to remove rounding drift.
    """
    cos_incident: Float[Array, " N"] = -row_dot(normals, directions)
    radicand: Float[Array, " N"] = 1.0 - ratio**2 * (1.0 - cos_incident**2)
    transmitted: Bool[Array, " N"] = radicand >= 0
    refracted: Float[Array, " N 3"] = (
        ratio[:, None] * directions
        + (ratio * cos_incident - safe_sqrt(radicand))[:, None] * normals
    )
    return normalize_rows(refracted), transmitted


def _check_trace_inputs(bundle: RayBundle, lens: LensSystem) -> None:
    """Reject stop layouts and wavelength columns the loop cannot honour."""
    num_stops: int = lens.kinds.count(APERTURE)
    stop_in_range: bool = 0 <= lens.stop_index < lens.num_surfaces
    if (
        num_stops != 1
        or not stop_in_range
        or lens.kinds[lens.stop_index] != APERTURE
    ):
        raise LensConfigurationError(
            f"Lens {lens.name!r} must have exactly one aperture stop at "
            f"stop_index {lens.stop_index}, got kinds {lens.kinds}"
        )
    wave_index = _concrete(bundle.wave_index)
    if wave_index is None or wave_index.size == 0:
        return
    low: int = int(wave_index.min())
    high: int = int(wave_index.max())
    if low < 0 or high >= lens.num_wavelengths:
        raise ValueError(
            f"Ray wavelength indices span [{low}, {high}] but lens "
            f"{lens.name!r} tracks {lens.num_wavelengths} wavelengths"
        )


def trace_lens(
    bundle: RayBundle,
    lens: LensSystem,
    observer: Optional[Callable[..., None]] = None,
    diffraction_key: Optional[PRNGKeyArray] = None,
) -> RayBundle:
    """Trace a ray bundle through every surface of a lens system.

    Parameters
    ----------
    bundle : RayBundle
        Fresh rays on the scene side of the lens, without snapshots.
    lens : LensSystem
        The surface sequence.
    observer : Callable, optional
        Called after every surface as
        ``observer(surface_index, kind, start_points, end_points, reached)``
        where ``reached`` flags rays whose segment ends on the surface.
        Never influences the trace. Default is None.
    diffraction_key : PRNGKeyArray, optional
        When given, rays passing the aperture stop are bent with
        :func:`~snellius.trace.diffraction.hurb_bend` using this key.
        Default is None (no diffraction).

    Returns
    -------
    traced : RayBundle
        The same rows after the last surface, with updated liveness, path
        length and both ``middle`` and ``exit`` snapshots.

    Raises
    ------
    ValueError
        If the bundle already carries snapshots, or a ray's wavelength
        index is outside the lens's wavelength table.
    LensConfigurationError
        If the lens does not have exactly one aperture stop at
        ``stop_index``.

    Notes
    -----
    Algorithm, for each surface in order, with the previous index starting
    at 1.0 for every ray:

    - Intersect (sphere, plane for flat surfaces and the stop)
    - Keep rays with a finite, non-negative ray parameter whose endpoint
      satisfies ``x² + y² < semi²``
    - Refract with the index of the ray's wavelength and drop rays under
      total internal reflection (refractive surfaces only)
    - Advance survivors, adding ``t * previous index`` to the path length
    - Record the ``middle`` snapshot at the stop and the ``exit`` snapshot
      at the last surface; the ``middle`` direction is the one incident on
      the stop, before any diffraction bend
    """
    if has_snapshots(bundle):
        raise ValueError(
            "Ray bundle has already been traced; build a new bundle with "
            "make_ray_bundle"
        )
    _check_trace_inputs(bundle, lens)
    logger.debug(
        "Tracing %d rays through %d surfaces of lens %r",
        bundle.num_rays,
        lens.num_surfaces,
        lens.name,
    )

    origin: Float[Array, " N 3"] = bundle.origin
    direction: Float[Array, " N 3"] = bundle.direction
    path_length: Float[Array, " N"] = bundle.path_length
    alive: Bool[Array, " N"] = bundle.alive
    previous_index: Float[Array, " N"] = jnp.ones_like(path_length)
    middle = None
    exit_snapshot = None
    facing: Float[Array, " 3"] = jnp.array([0.0, 0.0, -1.0])

    for index, kind in enumerate(lens.kinds):
        if kind == REFRACTIVE:
            radius = lens.radius[index]
            flat = ~jnp.isfinite(radius)
            sphere_radius = jnp.where(flat, 1.0, radius)
            t_sphere, hit_sphere = sphere_intersection(
                origin, direction, lens.center_z[index], sphere_radius
            )
            t_plane, hit_plane = plane_intersection(
                origin, direction, lens.vertex_z[index]
            )
            t = jnp.where(flat, t_plane, t_sphere)
            hit = jnp.where(flat, hit_plane, hit_sphere)
            semi = lens.semi_diameter[index]
        elif kind == APERTURE:
            t, hit = plane_intersection(
                origin, direction, lens.vertex_z[index]
            )
            semi = effective_stop_radius(lens)
        else:
            raise ValueError(f"Unknown surface kind at {index}: {kind}")

        valid_t: Bool[Array, " N"] = hit & jnp.isfinite(t) & (t >= 0)
        step: Float[Array, " N"] = jnp.where(valid_t, t, 0.0)
        end: Float[Array, " N 3"] = origin + step[:, None] * direction
        reached: Bool[Array, " N"] = alive & valid_t
        passes: Bool[Array, " N"] = reached & (
            radial_distance_squared(end) < semi**2
        )

        unbent: Float[Array, " N 3"] = direction
        if kind == REFRACTIVE:
            normals = jnp.where(
                flat,
                facing,
                surface_normals(end, lens.center_z[index], sphere_radius),
            )
            current_index = lens.media[index][bundle.wave_index]
            new_direction, transmitted = snell_refract(
                direction, normals, previous_index / current_index
            )
            passes = passes & transmitted
            next_index = current_index
        else:
            new_direction = direction
            next_index = previous_index
            if diffraction_key is not None:
                wavelength_mm = (
                    lens.wavelengths[bundle.wave_index] * config.NM_TO_MM
                )
                new_direction = hurb_bend(
                    diffraction_key,
                    end,
                    direction,
                    passes,
                    semi,
                    wavelength_mm,
                )

        if observer is not None:
            observer(index, kind, origin, end, reached)

        origin = jnp.where(passes[:, None], end, origin)
        direction = jnp.where(passes[:, None], new_direction, direction)
        path_length = jnp.where(
            passes, path_length + step * previous_index, path_length
        )
        previous_index = jnp.where(passes, next_index, previous_index)
        alive = passes

        if index == lens.stop_index:
            middle = make_interface_snapshot(origin, unbent, alive)
        if index == lens.num_surfaces - 1:
            exit_snapshot = make_interface_snapshot(origin, direction, alive)

    return bundle._replace(
        origin=origin,
        direction=direction,
        path_length=path_length,
        alive=alive,
        middle=middle,
        exit=exit_snapshot,
    )
