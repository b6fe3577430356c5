"""Row-wise vector utilities for ray arrays.

Extended Summary
----------------
Small helpers operating on ``[N, 3]`` arrays where every row is one ray.
They are the building blocks of the intersection and refraction code and
are written to stay finite for rows that are already dead, so that masked
rays never inject NaN into the live rows of a bundle.

Routine Listings
----------------
normalize_rows : function
    Scale each row to unit length.
row_dot : function
    Row-wise dot product of two ``[N, 3]`` arrays.
radial_distance_squared : function
    Squared distance of each row from the optical (z) axis.
safe_sqrt : function
    Square root that returns zero for negative arguments.

Notes
-----
All functions are JAX-compatible and support automatic differentiation.
"""

import jax
import jax.numpy as jnp
from beartype import beartype
from jaxtyping import Array, Float, jaxtyped

jax.config.update("jax_enable_x64", True)


@jaxtyped(typechecker=beartype)
def normalize_rows(vectors: Float[Array, " N 3"]) -> Float[Array, " N 3"]:
    """Scale each row to unit length.

    Parameters
    ----------
    vectors : Float[Array, " N 3"]
        Row vectors, one per ray.

    Returns
    -------
    unit : Float[Array, " N 3"]
        Unit row vectors. Zero-length rows are returned unchanged.
    """
    norms: Float[Array, " N 1"] = jnp.linalg.norm(
        vectors, axis=-1, keepdims=True
    )
    safe_norms: Float[Array, " N 1"] = jnp.where(norms > 0, norms, 1.0)
    unit: Float[Array, " N 3"] = vectors / safe_norms
    return unit


@jaxtyped(typechecker=beartype)
def row_dot(
    a: Float[Array, " N 3"], b: Float[Array, " N 3"]
) -> Float[Array, " N"]:
    """Row-wise dot product of two ``[N, 3]`` arrays."""
    return jnp.sum(a * b, axis=-1)


@jaxtyped(typechecker=beartype)
def radial_distance_squared(
    points: Float[Array, " N 3"],
) -> Float[Array, " N"]:
    """Squared distance of each point from the optical axis (x² + y²)."""
    return points[:, 0] ** 2 + points[:, 1] ** 2


@jaxtyped(typechecker=beartype)
def safe_sqrt(values: Float[Array, " ..."]) -> Float[Array, " ..."]:
    """Square root clamped to zero for negative arguments.

    The caller is expected to carry its own validity mask (``values >= 0``);
    this keeps gradients finite for the rows that the mask discards.
    """
    return jnp.sqrt(jnp.where(values >= 0, values, 0.0))
