"""Paraxial focus model type.

Extended Summary
----------------
The paraxial ("black box") description of a lens: per wavelength, its
effective focal length and the axial positions of its principal and focal
planes, together with the refractive indices of the object and image
media. It is computed once from a lens system and then queried for image
points and film positions.

Routine Listings
----------------
FocusModel : NamedTuple
    PyTree with the cardinal points of a lens, per wavelength
make_focus_model : function
    Factory function for FocusModel creation
"""

import jax
import jax.numpy as jnp
from beartype import beartype
from beartype.typing import NamedTuple, Tuple
from jax.tree_util import register_pytree_node_class
from jaxtyping import Array, Float, jaxtyped

from .common_types import ScalarFloat

jax.config.update("jax_enable_x64", True)


@register_pytree_node_class
class FocusModel(NamedTuple):
    """Cardinal points of a lens, per wavelength.

    Attributes
    ----------
    effective_focal_length : Float[Array, " W"]
        Effective focal length 1/P in mm.
    object_principal_z : Float[Array, " W"]
        Axial position of the object-side principal plane.
    image_principal_z : Float[Array, " W"]
        Axial position of the image-side principal plane.
    object_focal_z : Float[Array, " W"]
        Axial position of the front focal point.
    image_focal_z : Float[Array, " W"]
        Axial position of the rear focal point.
    object_index : Float[Array, " "]
        Refractive index of the object medium.
    image_index : Float[Array, " "]
        Refractive index of the image medium.
    """

    effective_focal_length: Float[Array, " W"]
    object_principal_z: Float[Array, " W"]
    image_principal_z: Float[Array, " W"]
    object_focal_z: Float[Array, " W"]
    image_focal_z: Float[Array, " W"]
    object_index: Float[Array, " "]
    image_index: Float[Array, " "]

    def tree_flatten(
        self,
    ) -> Tuple[Tuple[Array, ...], None]:
        """Flatten the FocusModel into a tuple of its components."""
        return (
            (
                self.effective_focal_length,
                self.object_principal_z,
                self.image_principal_z,
                self.object_focal_z,
                self.image_focal_z,
                self.object_index,
                self.image_index,
            ),
            None,
        )

    @classmethod
    def tree_unflatten(
        cls,
        _aux_data: None,
        children: Tuple[Array, ...],
    ) -> "FocusModel":
        """Unflatten the FocusModel from a tuple of its components."""
        return cls(*children)


@jaxtyped(typechecker=beartype)
def make_focus_model(
    effective_focal_length: Float[Array, " W"],
    object_principal_z: Float[Array, " W"],
    image_principal_z: Float[Array, " W"],
    object_focal_z: Float[Array, " W"],
    image_focal_z: Float[Array, " W"],
    object_index: ScalarFloat = 1.0,
    image_index: ScalarFloat = 1.0,
) -> FocusModel:
    """Create a FocusModel whose per-wavelength arrays share one length."""
    return FocusModel(
        effective_focal_length=effective_focal_length,
        object_principal_z=object_principal_z,
        image_principal_z=image_principal_z,
        object_focal_z=object_focal_z,
        image_focal_z=image_focal_z,
        object_index=jnp.asarray(object_index, dtype=jnp.float64),
        image_index=jnp.asarray(image_index, dtype=jnp.float64),
    )
