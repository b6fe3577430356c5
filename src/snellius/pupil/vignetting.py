"""Vignetting pupil estimation from traced pupil-plane samples.

Extended Summary
----------------
For a source at off-axis distance h, the rays that make it through a lens
cross a reference plane (at a fixed distance in front of the source) inside
the intersection of several circles. The on-axis entrance pupil gives one
circle centred on the axis. Every other lens rim that clips the beam gives
a "cutting" circle of fixed radius whose centre moves linearly with h; the
slope is the circle's sensitivity. This module recovers those circles from
sampled pupil shapes and back-projects them to physical pupils.

Routine Listings
----------------
valid_pupil_samples : function
    Mask of finite samples that are not exactly on the axis
entrance_pupil_radius : function
    Smallest axis-centred circle enclosing the on-axis samples
find_cutting_circle : function
    Iterative search for the radius and sensitivity of a cutting circle
back_project_circle : function
    Physical radius and distance of the pupil behind a cutting circle
fit_vignetting : function
    Entrance pupil plus bottom and top cutting circles in one call
pupil_pass_mask : function
    Predict which pupil-plane points pass every fitted circle

Notes
-----
Samples are ``[C, P, N]`` arrays with C = 2 (x, y) or 3 (x, y, z), P
off-axis distances and N rays per distance, as produced by
:func:`~snellius.pupil.sampling.sample_pupil_shapes`. NaN marks vignetted
rays. A sample exactly at (0, 0) is treated as degenerate and excluded,
like NaN samples.

The cutting-circle search works along y. For the bottom circle the lowest
valid sample, pushed outwards by ``vertex_offset``, is the circle's lowest
point at each distance; the trial radius R = k * radius_step grows from
zero until every valid sample at every distance lies within the circle
centred ``R`` above its vertex. The top circle mirrors this.
"""

import logging

import jax
import jax.numpy as jnp
from beartype import beartype
from beartype.typing import Optional, Sequence, Tuple, Union
from jax import lax
from jaxtyping import Array, Bool, Float, Int, jaxtyped

from snellius.types import (
    CuttingCircle,
    ScalarFloat,
    VignettingFit,
    VignettingParams,
    make_cutting_circle,
    make_vignetting_fit,
    make_vignetting_params,
)
from snellius.utils.exceptions import VignettingSearchError

jax.config.update("jax_enable_x64", True)

logger = logging.getLogger(__name__)

SIDES: dict[str, float] = {"bottom": 1.0, "top": -1.0}


@jaxtyped(typechecker=beartype)
def valid_pupil_samples(
    x: Float[Array, " ..."], y: Float[Array, " ..."]
) -> Bool[Array, " ..."]:
    """Finite samples that are not exactly on the optical axis."""
    finite: Bool[Array, " ..."] = jnp.isfinite(x) & jnp.isfinite(y)
    on_axis: Bool[Array, " ..."] = (x == 0) & (y == 0)
    return finite & ~on_axis


@jaxtyped(typechecker=beartype)
def entrance_pupil_radius(points: Float[Array, " C N"]) -> Float[Array, " "]:
    """Radius of the smallest axis-centred circle enclosing the samples.

    Parameters
    ----------
    points : Float[Array, " C N"]
        Pupil-plane samples of the on-axis source.

    Returns
    -------
    radius : Float[Array, " "]
        Largest distance of a valid sample from the axis; zero when no
        sample is valid.
    """
    x: Float[Array, " N"] = points[0]
    y: Float[Array, " N"] = points[1]
    valid: Bool[Array, " N"] = valid_pupil_samples(x, y)
    distance: Float[Array, " N"] = jnp.hypot(
        jnp.where(valid, x, 0.0), jnp.where(valid, y, 0.0)
    )
    return jnp.max(jnp.where(valid, distance, 0.0), initial=0.0)


@jaxtyped(typechecker=beartype)
def _circle_vertices(
    y: Float[Array, " P N"],
    valid: Bool[Array, " P N"],
    sign: float,
    vertex_offset: Float[Array, " "],
) -> Float[Array, " P"]:
    """Extreme valid y per distance, pushed outwards by the offset."""
    if sign > 0:
        extreme = jnp.min(jnp.where(valid, y, jnp.inf), axis=-1)
    else:
        extreme = jnp.max(jnp.where(valid, y, -jnp.inf), axis=-1)
    has_points: Bool[Array, " P"] = jnp.any(valid, axis=-1)
    return jnp.where(has_points, extreme - sign * vertex_offset, 0.0)


def find_cutting_circle(
    points: Float[Array, " C P N"],
    off_axis_distances: Float[Array, " P"],
    side: str,
    params: VignettingParams,
) -> CuttingCircle:
    """Search for the radius and sensitivity of one cutting circle.

    Parameters
    ----------
    points : Float[Array, " C P N"]
        Pupil-plane samples, NaN for vignetted rays.
    off_axis_distances : Float[Array, " P"]
        Off-axis source distance of each sample set.
    side : str
        ``"bottom"`` or ``"top"``.
    params : VignettingParams
        Vertex offset, radius step and iteration cap.

    Returns
    -------
    circle : CuttingCircle
        The smallest trial radius satisfying every distance, the derived
        sensitivity, the number of trials and a convergence flag.

    Raises
    ------
    ValueError
        If ``side`` is neither ``"bottom"`` nor ``"top"``.

    Notes
    -----
    Distances without any valid sample place no constraint on the circle.
    The sensitivity is taken from the last distance that has valid
    samples: ``(vertex + sign * R) / distance``.
    """
    if side not in SIDES:
        raise ValueError(
            f"Unknown vignetting side: {side!r}; expected one of "
            f"{sorted(SIDES)}"
        )
    return _search_cutting_circle(
        points, off_axis_distances, SIDES[side], params
    )


@jaxtyped(typechecker=beartype)
def _search_cutting_circle(
    points: Float[Array, " C P N"],
    off_axis_distances: Float[Array, " P"],
    sign: float,
    params: VignettingParams,
) -> CuttingCircle:
    x: Float[Array, " P N"] = points[0]
    y: Float[Array, " P N"] = points[1]
    valid: Bool[Array, " P N"] = valid_pupil_samples(x, y)
    has_points: Bool[Array, " P"] = jnp.any(valid, axis=-1)
    vertices: Float[Array, " P"] = _circle_vertices(
        y, valid, sign, params.vertex_offset
    )
    safe_x: Float[Array, " P N"] = jnp.where(valid, x, 0.0)
    safe_y: Float[Array, " P N"] = jnp.where(valid, y, 0.0)

    def _encloses(radius: Float[Array, " "]) -> Bool[Array, " "]:
        centres: Float[Array, " P"] = vertices + sign * radius
        dist_sq: Float[Array, " P N"] = (
            safe_x**2 + (safe_y - centres[:, None]) ** 2
        )
        inside: Bool[Array, " P N"] = (dist_sq <= radius**2) | ~valid
        return jnp.all(inside)

    def _cond(
        state: Tuple[Int[Array, " "], Bool[Array, " "]],
    ) -> Bool[Array, " "]:
        trial, done = state
        return (~done) & (trial < params.max_iterations)

    def _body(
        state: Tuple[Int[Array, " "], Bool[Array, " "]],
    ) -> Tuple[Int[Array, " "], Bool[Array, " "]]:
        trial, _ = state
        found: Bool[Array, " "] = _encloses(trial * params.radius_step)
        return jnp.where(found, trial, trial + 1), found

    initial = (jnp.zeros((), jnp.int32), jnp.zeros((), jnp.bool_))
    trial, converged = lax.while_loop(_cond, _body, initial)

    radius: Float[Array, " "] = trial * params.radius_step
    num_distances: int = off_axis_distances.shape[0]
    last: Int[Array, " "] = (num_distances - 1) - jnp.argmax(has_points[::-1])
    sensitivity: Float[Array, " "] = (
        vertices[last] + sign * radius
    ) / off_axis_distances[last]
    iterations: Int[Array, " "] = jnp.where(converged, trial + 1, trial)
    return make_cutting_circle(radius, sensitivity, iterations, converged)


@jaxtyped(typechecker=beartype)
def back_project_circle(
    circle: CuttingCircle, reference_distance: ScalarFloat
) -> Tuple[Float[Array, " "], Float[Array, " "]]:
    """Physical pupil behind a cutting circle.

    A pupil of radius ``R_p`` at distance ``d_p`` from the source plane
    projects onto the reference plane at distance ``d_r`` as a circle of
    radius ``R_p d_r / d_p`` whose centre moves with sensitivity
    ``1 - d_r / d_p``. Inverting gives ``R_p = R / (1 - s)`` and
    ``d_p = d_r / (1 - s)``.

    Returns
    -------
    radius : Float[Array, " "]
        Pupil radius.
    distance : Float[Array, " "]
        Pupil distance from the source plane.
    """
    scale: Float[Array, " "] = 1.0 - circle.sensitivity
    return circle.radius / scale, reference_distance / scale


def fit_vignetting(
    points: Float[Array, " C P N"],
    off_axis_distances: Float[Array, " P"],
    reference_distance: ScalarFloat,
    bottom_selection: Union[Sequence[int], Int[Array, " B"]],
    top_selection: Optional[Union[Sequence[int], Int[Array, " T"]]] = None,
    bottom_params: Optional[VignettingParams] = None,
    top_params: Optional[VignettingParams] = None,
    on_axis_index: int = 0,
) -> VignettingFit:
    """Fit the entrance pupil and the cutting circles of a lens.

    Parameters
    ----------
    points : Float[Array, " C P N"]
        Pupil-plane samples, NaN for vignetted rays.
    off_axis_distances : Float[Array, " P"]
        Off-axis source distance of each sample set.
    reference_distance : ScalarFloat
        Distance from the source plane to the reference plane.
    bottom_selection : Sequence[int] or Int[Array, " B"]
        Indices of the distances used for the bottom circle; pick the
        distances where the bottom of the pupil is clipped.
    top_selection : Sequence[int] or Int[Array, " T"], optional
        Indices used for the top circle. None skips the top circle.
    bottom_params, top_params : VignettingParams, optional
        Search tunables. Default is :func:`make_vignetting_params`.
    on_axis_index : int, optional
        Index of the on-axis sample set. Default is 0.

    Returns
    -------
    fit : VignettingFit
        Entrance radius, cutting circles and back-projected pupils, in the
        order entrance, bottom, top.

    Raises
    ------
    VignettingSearchError
        If a cutting-circle search exhausts its iteration cap.
    """
    if bottom_params is None:
        bottom_params = make_vignetting_params()
    if top_params is None:
        top_params = make_vignetting_params()
    reference: Float[Array, " "] = jnp.asarray(
        reference_distance, dtype=jnp.float64
    )

    entrance: Float[Array, " "] = entrance_pupil_radius(
        points[:, on_axis_index, :]
    )

    def _fit(side, selection, params) -> CuttingCircle:
        rows = jnp.asarray(selection, dtype=jnp.int32)
        circle = find_cutting_circle(
            points[:, rows, :], off_axis_distances[rows], side, params
        )
        if not bool(circle.converged):
            raise VignettingSearchError(
                f"{side} cutting circle not found within "
                f"{int(params.max_iterations)} iterations "
                f"(last radius {float(circle.radius):.6g}); increase "
                f"radius_step or max_iterations"
            )
        logger.info(
            "%s cutting circle: radius %.6g, sensitivity %.6g after %d "
            "iterations",
            side,
            float(circle.radius),
            float(circle.sensitivity),
            int(circle.iterations),
        )
        return circle

    bottom: CuttingCircle = _fit("bottom", bottom_selection, bottom_params)
    bottom_radius, bottom_distance = back_project_circle(bottom, reference)

    top: Optional[CuttingCircle] = None
    top_radius: Float[Array, " "] = jnp.asarray(jnp.nan)
    top_distance: Float[Array, " "] = jnp.asarray(jnp.nan)
    if top_selection is not None:
        top = _fit("top", top_selection, top_params)
        top_radius, top_distance = back_project_circle(top, reference)

    pupil_radii: Float[Array, " 3"] = jnp.stack(
        [entrance, bottom_radius, top_radius]
    )
    pupil_distances: Float[Array, " 3"] = jnp.stack(
        [reference, bottom_distance, top_distance]
    )
    logger.info(
        "Entrance pupil radius %.6g; pupil radii %s at distances %s",
        float(entrance),
        pupil_radii,
        pupil_distances,
    )
    return make_vignetting_fit(
        entrance, bottom, top, reference, pupil_radii, pupil_distances
    )


@jaxtyped(typechecker=beartype)
def pupil_pass_mask(
    points_xy: Float[Array, " C N"],
    off_axis_distance: ScalarFloat,
    fit: VignettingFit,
) -> Bool[Array, " N"]:
    """Predict which pupil-plane points pass every fitted circle.

    Parameters
    ----------
    points_xy : Float[Array, " C N"]
        Reference-plane points (rows x, y and optionally z).
    off_axis_distance : ScalarFloat
        Off-axis distance of the source.
    fit : VignettingFit
        Fitted circles.

    Returns
    -------
    passes : Bool[Array, " N"]
        True for finite points inside the entrance circle and inside each
        cutting circle centred at ``(0, sensitivity * distance)``.
    """
    x: Float[Array, " N"] = points_xy[0]
    y: Float[Array, " N"] = points_xy[1]
    passes: Bool[Array, " N"] = (
        jnp.isfinite(x)
        & jnp.isfinite(y)
        & (x**2 + y**2 <= fit.entrance_radius**2)
    )
    circles = [fit.bottom] if fit.top is None else [fit.bottom, fit.top]
    for circle in circles:
        centre: Float[Array, " "] = circle.sensitivity * off_axis_distance
        passes = passes & (x**2 + (y - centre) ** 2 <= circle.radius**2)
    return passes
