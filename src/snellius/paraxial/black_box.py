"""Paraxial black-box focus model of a lens system.

Extended Summary
----------------
In the paraxial regime a whole lens behaves as a 2x2 transfer matrix
acting on the reduced ray vector ``(y, n u)``. From that matrix follow the
lens power, its effective focal length and the positions of its principal
and focal planes. Once these cardinal points are known, the image of any
source point is found with the Gaussian imaging equation, without tracing
rays. The model is built once per lens with :func:`build_focus_model` and
then queried with pure functions.

Routine Listings
----------------
system_matrix : function
    Reduced transfer matrix from the first to the last vertex
build_focus_model : function
    Cardinal points of a lens for every wavelength
image_point : function
    Gaussian image of a source point, per wavelength
film_distance : function
    Axial film position that focuses a source point

Notes
-----
The refraction matrix of a spherical surface is ``[[1, 0], [-φ, 1]]``
with surface power ``φ = (n' - n) / R``; the translation matrix over a
distance d in a medium of index n is ``[[1, d / n], [0, 1]]``. The aperture
stop only contributes translation. For a system matrix
``[[A, B], [C, D]]`` with object index n and image index n':

- power ``P = -C`` and effective focal length ``1 / P``
- object principal plane at ``z_first + n (D - 1) / C``
- image principal plane at ``z_last + n' (1 - A) / C``
- front focal point at ``z_first + n D / C``
- rear focal point at ``z_last - n' A / C``

An afocal system (C = 0) has no finite cardinal points.
"""

import logging

import jax
import jax.numpy as jnp
from beartype import beartype
from jaxtyping import Array, Float, jaxtyped

from snellius.types import (
    APERTURE,
    FocusModel,
    LensSystem,
    ScalarFloat,
    ScalarInteger,
    make_focus_model,
)

jax.config.update("jax_enable_x64", True)

logger = logging.getLogger(__name__)


@jaxtyped(typechecker=beartype)
def system_matrix(
    lens: LensSystem,
    object_index: ScalarFloat = 1.0,
    image_index: ScalarFloat = 1.0,
) -> Float[Array, " W 2 2"]:
    """Reduced transfer matrix of the lens for every wavelength.

    Parameters
    ----------
    lens : LensSystem
        The surface sequence.
    object_index : ScalarFloat, optional
        Index of the medium before the first surface. Default is 1.0.
    image_index : ScalarFloat, optional
        Index of the medium after the last surface. Default is 1.0.

    Returns
    -------
    matrix : Float[Array, " W 2 2"]
        ``[[A, B], [C, D]]`` from the first to the last vertex.
    """
    num_waves: int = lens.num_wavelengths
    last: int = lens.num_surfaces - 1
    ones = jnp.ones(num_waves, dtype=jnp.float64)
    zeros = jnp.zeros(num_waves, dtype=jnp.float64)
    a, b, c, d = ones, zeros, zeros, ones
    index_before = ones * object_index

    for surface, kind in enumerate(lens.kinds):
        if surface > 0:
            reduced = lens.offset[surface] / index_before
            a, b = a + reduced * c, b + reduced * d
        if kind == APERTURE:
            index_after = index_before
        else:
            index_after = (
                ones * image_index if surface == last else lens.media[surface]
            )
            power = (index_after - index_before) / lens.radius[surface]
            c, d = c - power * a, d - power * b
        index_before = index_after

    return jnp.stack(
        [jnp.stack([a, b], axis=-1), jnp.stack([c, d], axis=-1)], axis=-2
    )


@jaxtyped(typechecker=beartype)
def build_focus_model(
    lens: LensSystem,
    object_index: ScalarFloat = 1.0,
    image_index: ScalarFloat = 1.0,
) -> FocusModel:
    """Compute the cardinal points of a lens for every wavelength.

    Parameters
    ----------
    lens : LensSystem
        The surface sequence.
    object_index : ScalarFloat, optional
        Index of the object medium. Default is 1.0.
    image_index : ScalarFloat, optional
        Index of the image medium. Default is 1.0.

    Returns
    -------
    model : FocusModel
        Effective focal length, principal planes and focal points in lens
        coordinates (last vertex at z = 0).
    """
    matrix: Float[Array, " W 2 2"] = system_matrix(
        lens, object_index, image_index
    )
    a = matrix[:, 0, 0]
    c = matrix[:, 1, 0]
    d = matrix[:, 1, 1]
    z_first: Float[Array, " "] = lens.vertex_z[0]
    z_last: Float[Array, " "] = lens.vertex_z[-1]

    logger.debug(
        "Building focus model for lens %r over %d wavelengths",
        lens.name,
        lens.num_wavelengths,
    )
    return make_focus_model(
        effective_focal_length=-1.0 / c,
        object_principal_z=z_first + object_index * (d - 1.0) / c,
        image_principal_z=z_last + image_index * (1.0 - a) / c,
        object_focal_z=z_first + object_index * d / c,
        image_focal_z=z_last - image_index * a / c,
        object_index=object_index,
        image_index=image_index,
    )


@jaxtyped(typechecker=beartype)
def image_point(
    model: FocusModel, source_point: Float[Array, " 3"]
) -> Float[Array, " W 3"]:
    """Gaussian image of a source point for every wavelength.

    Parameters
    ----------
    model : FocusModel
        Cardinal points of the lens.
    source_point : Float[Array, " 3"]
        Source position in lens coordinates, in front of the lens.

    Returns
    -------
    image : Float[Array, " W 3"]
        Image position per wavelength. Transverse coordinates are scaled
        by the lateral magnification ``-(d_im / d_ob)(n_ob / n_im)``.

    Notes
    -----
    With ``d_ob = z_H - z_src`` the imaging equation
    ``n_ob / d_ob + n_im / d_im = P`` gives
    ``d_im = n_im / (P - n_ob / d_ob)`` and an image at ``z_H' + d_im``.
    """
    power: Float[Array, " W"] = 1.0 / model.effective_focal_length
    object_distance: Float[Array, " W"] = (
        model.object_principal_z - source_point[2]
    )
    image_distance: Float[Array, " W"] = model.image_index / (
        power - model.object_index / object_distance
    )
    magnification: Float[Array, " W"] = -(
        image_distance / object_distance
    ) * (model.object_index / model.image_index)
    return jnp.stack(
        [
            magnification * source_point[0],
            magnification * source_point[1],
            model.image_principal_z + image_distance,
        ],
        axis=-1,
    )


@jaxtyped(typechecker=beartype)
def film_distance(
    model: FocusModel,
    source_point: Float[Array, " 3"],
    wave_index: ScalarInteger = 0,
) -> Float[Array, " "]:
    """Axial film position bringing ``source_point`` into focus."""
    return image_point(model, source_point)[wave_index, 2]
