"""Polynomial surrogate model type.

Routine Listings
----------------
RayPolynomial : NamedTuple
    PyTree holding a multivariate polynomial map from input to output rays
make_ray_polynomial : function
    Factory function for RayPolynomial creation
"""

import jax
from beartype import beartype
from beartype.typing import NamedTuple, Tuple
from jax.tree_util import register_pytree_node_class
from jaxtyping import Array, Float, Int, jaxtyped

jax.config.update("jax_enable_x64", True)


@register_pytree_node_class
class RayPolynomial(NamedTuple):
    """Multivariate polynomial map from input to output ray coordinates.

    Attributes
    ----------
    coefficients : Float[Array, " M O"]
        One coefficient column per output variable.
    powers : Int[Array, " M V"]
        Exponent of each input variable in each monomial.
    rmse : Float[Array, " O"]
        Root-mean-square fit residual per output over the rows used.
    """

    coefficients: Float[Array, " M O"]
    powers: Int[Array, " M V"]
    rmse: Float[Array, " O"]

    def tree_flatten(
        self,
    ) -> Tuple[
        Tuple[Float[Array, " M O"], Int[Array, " M V"], Float[Array, " O"]],
        None,
    ]:
        """Flatten the RayPolynomial into a tuple of its components."""
        return ((self.coefficients, self.powers, self.rmse), None)

    @classmethod
    def tree_unflatten(
        cls,
        _aux_data: None,
        children: Tuple[
            Float[Array, " M O"], Int[Array, " M V"], Float[Array, " O"]
        ],
    ) -> "RayPolynomial":
        """Unflatten the RayPolynomial from a tuple of its components."""
        return cls(*children)


@jaxtyped(typechecker=beartype)
def make_ray_polynomial(
    coefficients: Float[Array, " M O"],
    powers: Int[Array, " M V"],
    rmse: Float[Array, " O"],
) -> RayPolynomial:
    """Create a RayPolynomial whose monomial and output counts agree."""
    return RayPolynomial(coefficients=coefficients, powers=powers, rmse=rmse)
