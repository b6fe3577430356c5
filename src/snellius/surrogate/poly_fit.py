"""Polynomial surrogate of a lens from traced ray pairs.

Extended Summary
----------------
A lens maps each entering ray to an exiting ray. For rotationally
symmetric lenses, sources on the y axis suffice, so a ray is described on
input by its height y and the transverse direction components (dx, dy),
and on output by its exit position (x, y) and full direction
(dx, dy, dz). Every output coordinate is fitted by least squares as a
polynomial in the three inputs, giving a fast surrogate of the trace.

Routine Listings
----------------
monomial_powers : function
    Exponents of every monomial up to a total degree
design_matrix : function
    Monomials evaluated at every input row
ray_pair_samples : function
    Input and output coordinates of traced rays
fit_ray_polynomial : function
    Weighted least-squares fit of every output column
evaluate_ray_polynomial : function
    Evaluate a fitted polynomial at new inputs

Notes
-----
Rows with any non-finite input or output (vignetted rays) receive zero
weight, so traced samples can be passed in without filtering.
"""

import itertools
import logging

import jax
import jax.numpy as jnp
from beartype import beartype
from beartype.typing import Tuple
from jaxtyping import Array, Bool, Float, Int, jaxtyped

from snellius.types import (
    RayBundle,
    RayPolynomial,
    make_ray_polynomial,
    snapshot_directions,
    snapshot_points,
)

jax.config.update("jax_enable_x64", True)

logger = logging.getLogger(__name__)


def monomial_powers(num_vars: int, max_degree: int) -> Int[Array, " M V"]:
    """Exponents of every monomial with total degree up to ``max_degree``.

    Monomials are ordered by total degree, the constant term first.

    Examples
    --------
    >>> monomial_powers(2, 1)
    Array([[0, 0],
           [1, 0],
           [0, 1]], dtype=int32)
    """
    if num_vars < 1 or max_degree < 0:
        raise ValueError(
            f"Need num_vars >= 1 and max_degree >= 0, got "
            f"{num_vars} and {max_degree}"
        )
    powers: list[tuple[int, ...]] = []
    for degree in range(max_degree + 1):
        for combo in itertools.combinations_with_replacement(
            range(num_vars), degree
        ):
            exponents = [0] * num_vars
            for var in combo:
                exponents[var] += 1
            powers.append(tuple(exponents))
    return jnp.asarray(powers, dtype=jnp.int32)


@jaxtyped(typechecker=beartype)
def design_matrix(
    inputs: Float[Array, " N V"], powers: Int[Array, " M V"]
) -> Float[Array, " N M"]:
    """Evaluate every monomial at every input row."""
    return jnp.prod(inputs[:, None, :] ** powers[None, :, :], axis=-1)


@jaxtyped(typechecker=beartype)
def ray_pair_samples(
    entry: RayBundle, traced: RayBundle
) -> Tuple[Float[Array, " N 3"], Float[Array, " N 5"]]:
    """Input and output coordinates of a traced bundle.

    Parameters
    ----------
    entry : RayBundle
        Bundle before tracing.
    traced : RayBundle
        The same bundle after tracing.

    Returns
    -------
    inputs : Float[Array, " N 3"]
        Entry height y and direction components dx, dy.
    outputs : Float[Array, " N 5"]
        Exit x, y and direction dx, dy, dz at the last surface; NaN rows
        for rays that did not survive.
    """
    if traced.exit is None:
        raise ValueError("Ray bundle has not been traced")
    inputs: Float[Array, " N 3"] = jnp.stack(
        [entry.origin[:, 1], entry.direction[:, 0], entry.direction[:, 1]],
        axis=-1,
    )
    outputs: Float[Array, " N 5"] = jnp.concatenate(
        [
            snapshot_points(traced.exit)[:, :2],
            snapshot_directions(traced.exit),
        ],
        axis=-1,
    )
    return inputs, outputs


def fit_ray_polynomial(
    inputs: Float[Array, " N V"],
    outputs: Float[Array, " N O"],
    max_degree: int = 4,
) -> RayPolynomial:
    """Least-squares polynomial fit of every output column.

    Parameters
    ----------
    inputs : Float[Array, " N V"]
        Input variables per sample.
    outputs : Float[Array, " N O"]
        Output variables per sample.
    max_degree : int, optional
        Maximum total degree of the monomials. Default is 4.

    Returns
    -------
    model : RayPolynomial
        Coefficients, exponents and per-output RMSE over the finite rows.

    Raises
    ------
    ValueError
        If ``inputs`` and ``outputs`` have different numbers of rows.
    """
    if inputs.shape[0] != outputs.shape[0]:
        raise ValueError(
            f"inputs and outputs need the same number of rows, got "
            f"{inputs.shape[0]} and {outputs.shape[0]}"
        )
    powers: Int[Array, " M V"] = monomial_powers(inputs.shape[1], max_degree)
    finite: Bool[Array, " N"] = jnp.all(
        jnp.isfinite(inputs), axis=-1
    ) & jnp.all(jnp.isfinite(outputs), axis=-1)
    weight: Float[Array, " N 1"] = finite[:, None].astype(jnp.float64)
    design: Float[Array, " N M"] = design_matrix(
        jnp.where(finite[:, None], inputs, 0.0), powers
    )
    targets: Float[Array, " N O"] = jnp.where(finite[:, None], outputs, 0.0)

    coefficients, _, _, _ = jnp.linalg.lstsq(
        design * weight, targets * weight
    )
    residual: Float[Array, " N O"] = (design @ coefficients - targets) * weight
    used: Float[Array, " "] = jnp.maximum(jnp.sum(weight), 1.0)
    rmse: Float[Array, " O"] = jnp.sqrt(jnp.sum(residual**2, axis=0) / used)

    logger.debug(
        "Fitted %d outputs with %d monomials of degree <= %d on %d rows",
        outputs.shape[1],
        powers.shape[0],
        max_degree,
        inputs.shape[0],
    )
    return make_ray_polynomial(coefficients, powers, rmse)


@jaxtyped(typechecker=beartype)
def evaluate_ray_polynomial(
    model: RayPolynomial, inputs: Float[Array, " N V"]
) -> Float[Array, " N O"]:
    """Evaluate a fitted polynomial at new input rows."""
    return design_matrix(inputs, model.powers) @ model.coefficients
