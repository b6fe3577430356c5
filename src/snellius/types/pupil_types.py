"""Vignetting search parameters and results.

Extended Summary
----------------
An off-axis point sees the lens through the intersection of several
circles: the entrance pupil and one circle per lens rim that clips the
beam. Each clipping circle is described by its radius on the reference
plane and a sensitivity, the rate at which its centre shifts with the
off-axis distance of the source. This module holds the tunables of the
cutting-circle search and the PyTrees that carry its results.

Routine Listings
----------------
VignettingParams : NamedTuple
    Tunables of the cutting-circle search
CuttingCircle : NamedTuple
    Result of one cutting-circle search
VignettingFit : NamedTuple
    Entrance pupil and cutting circles, with back-projected radii
make_vignetting_params : function
    Factory function for VignettingParams creation
make_cutting_circle : function
    Factory function for CuttingCircle creation
make_vignetting_fit : function
    Factory function for VignettingFit creation
"""

import jax
import jax.numpy as jnp
import numpy as np
from beartype import beartype
from beartype.typing import NamedTuple, Optional, Tuple
from jax.tree_util import register_pytree_node_class
from jaxtyping import Array, Bool, Float, Int, jaxtyped

from snellius import config

from .common_types import ScalarBool, ScalarFloat, ScalarInteger

jax.config.update("jax_enable_x64", True)


@register_pytree_node_class
class VignettingParams(NamedTuple):
    """Tunables of the cutting-circle search.

    Attributes
    ----------
    vertex_offset : Float[Array, " "]
        Margin by which the extreme sample is pushed outwards, away from
        the pupil, before it is used as the circle vertex.
    radius_step : Float[Array, " "]
        Increment of the trial radius.
    max_iterations : Int[Array, " "]
        Maximum number of trial radii before the search gives up.
    """

    vertex_offset: Float[Array, " "]
    radius_step: Float[Array, " "]
    max_iterations: Int[Array, " "]

    def tree_flatten(
        self,
    ) -> Tuple[
        Tuple[Float[Array, " "], Float[Array, " "], Int[Array, " "]], None
    ]:
        """Flatten the VignettingParams into a tuple of its components."""
        return (
            (self.vertex_offset, self.radius_step, self.max_iterations),
            None,
        )

    @classmethod
    def tree_unflatten(
        cls,
        _aux_data: None,
        children: Tuple[Float[Array, " "], Float[Array, " "], Int[Array, " "]],
    ) -> "VignettingParams":
        """Unflatten the VignettingParams from a tuple of its components."""
        return cls(*children)


@register_pytree_node_class
class CuttingCircle(NamedTuple):
    """Result of one cutting-circle search.

    Attributes
    ----------
    radius : Float[Array, " "]
        Circle radius on the reference plane.
    sensitivity : Float[Array, " "]
        Circle centre displacement per unit off-axis distance.
    iterations : Int[Array, " "]
        Number of trial radii evaluated.
    converged : Bool[Array, " "]
        False when the search hit its iteration cap.
    """

    radius: Float[Array, " "]
    sensitivity: Float[Array, " "]
    iterations: Int[Array, " "]
    converged: Bool[Array, " "]

    def tree_flatten(
        self,
    ) -> Tuple[
        Tuple[
            Float[Array, " "],
            Float[Array, " "],
            Int[Array, " "],
            Bool[Array, " "],
        ],
        None,
    ]:
        """Flatten the CuttingCircle into a tuple of its components."""
        return (
            (self.radius, self.sensitivity, self.iterations, self.converged),
            None,
        )

    @classmethod
    def tree_unflatten(
        cls,
        _aux_data: None,
        children: Tuple[
            Float[Array, " "],
            Float[Array, " "],
            Int[Array, " "],
            Bool[Array, " "],
        ],
    ) -> "CuttingCircle":
        """Unflatten the CuttingCircle from a tuple of its components."""
        return cls(*children)


@register_pytree_node_class
class VignettingFit(NamedTuple):
    """Entrance pupil and cutting circles of one lens.

    Attributes
    ----------
    entrance_radius : Float[Array, " "]
        On-axis entrance pupil radius on the reference plane.
    bottom : CuttingCircle
        Circle clipping the beam from below.
    top : Optional[CuttingCircle]
        Circle clipping the beam from above, None when not fitted.
    reference_distance : Float[Array, " "]
        Distance from the source plane to the reference plane.
    pupil_radii : Float[Array, " 3"]
        Back-projected radii of the entrance, bottom and top pupils. NaN
        for a circle that was not fitted.
    pupil_distances : Float[Array, " 3"]
        Back-projected distances of the same pupils from the source plane.
    """

    entrance_radius: Float[Array, " "]
    bottom: CuttingCircle
    top: Optional[CuttingCircle]
    reference_distance: Float[Array, " "]
    pupil_radii: Float[Array, " 3"]
    pupil_distances: Float[Array, " 3"]

    def tree_flatten(
        self,
    ) -> Tuple[
        Tuple[
            Float[Array, " "],
            CuttingCircle,
            Optional[CuttingCircle],
            Float[Array, " "],
            Float[Array, " 3"],
            Float[Array, " 3"],
        ],
        None,
    ]:
        """Flatten the VignettingFit into a tuple of its components."""
        return (
            (
                self.entrance_radius,
                self.bottom,
                self.top,
                self.reference_distance,
                self.pupil_radii,
                self.pupil_distances,
            ),
            None,
        )

    @classmethod
    def tree_unflatten(
        cls,
        _aux_data: None,
        children: Tuple[
            Float[Array, " "],
            CuttingCircle,
            Optional[CuttingCircle],
            Float[Array, " "],
            Float[Array, " 3"],
            Float[Array, " 3"],
        ],
    ) -> "VignettingFit":
        """Unflatten the VignettingFit from a tuple of its components."""
        return cls(*children)


def make_vignetting_params(
    vertex_offset: ScalarFloat = config.DEFAULT_VERTEX_OFFSET,
    radius_step: ScalarFloat = config.DEFAULT_RADIUS_STEP,
    max_iterations: ScalarInteger = config.DEFAULT_MAX_ITERATIONS,
) -> VignettingParams:
    """Create validated VignettingParams.

    Parameters
    ----------
    vertex_offset : ScalarFloat, optional
        Outward margin applied to the extreme sample.
        Default is :data:`snellius.config.DEFAULT_VERTEX_OFFSET`.
    radius_step : ScalarFloat, optional
        Trial-radius increment, must be positive.
        Default is :data:`snellius.config.DEFAULT_RADIUS_STEP`.
    max_iterations : ScalarInteger, optional
        Iteration cap, must be at least 1.
        Default is :data:`snellius.config.DEFAULT_MAX_ITERATIONS`.

    Returns
    -------
    params : VignettingParams
        The validated parameters.

    Raises
    ------
    ValueError
        If ``radius_step`` is not positive or ``max_iterations`` is below 1.
    """
    if float(np.asarray(radius_step)) <= 0:
        raise ValueError(f"radius_step must be positive, got {radius_step}")
    if int(np.asarray(max_iterations)) < 1:
        raise ValueError(
            f"max_iterations must be at least 1, got {max_iterations}"
        )
    return VignettingParams(
        vertex_offset=jnp.asarray(vertex_offset, dtype=jnp.float64),
        radius_step=jnp.asarray(radius_step, dtype=jnp.float64),
        max_iterations=jnp.asarray(max_iterations, dtype=jnp.int32),
    )


@jaxtyped(typechecker=beartype)
def make_cutting_circle(
    radius: ScalarFloat,
    sensitivity: ScalarFloat,
    iterations: ScalarInteger = 0,
    converged: ScalarBool = True,
) -> CuttingCircle:
    """Create a CuttingCircle from plain or array scalars."""
    return CuttingCircle(
        radius=jnp.asarray(radius, dtype=jnp.float64),
        sensitivity=jnp.asarray(sensitivity, dtype=jnp.float64),
        iterations=jnp.asarray(iterations, dtype=jnp.int32),
        converged=jnp.asarray(converged, dtype=jnp.bool_),
    )


@jaxtyped(typechecker=beartype)
def make_vignetting_fit(
    entrance_radius: ScalarFloat,
    bottom: CuttingCircle,
    top: Optional[CuttingCircle],
    reference_distance: ScalarFloat,
    pupil_radii: Float[Array, " 3"],
    pupil_distances: Float[Array, " 3"],
) -> VignettingFit:
    """Create a VignettingFit from its fitted components."""
    return VignettingFit(
        entrance_radius=jnp.asarray(entrance_radius, dtype=jnp.float64),
        bottom=bottom,
        top=top,
        reference_distance=jnp.asarray(reference_distance, dtype=jnp.float64),
        pupil_radii=pupil_radii,
        pupil_distances=pupil_distances,
    )
