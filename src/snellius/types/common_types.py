"""Scalar type aliases shared across snellius.

Extended Summary
----------------
Type aliases that accept either Python numbers or zero-dimensional JAX
arrays, so that factories and numerical routines can be called with plain
floats in eager code and with traced scalars under ``jax.jit``.

Routine Listings
----------------
NonJaxNumber : TypeAlias
    Python int or float.
ScalarBool : TypeAlias
    Python bool or scalar JAX bool array.
ScalarFloat : TypeAlias
    Python float or scalar JAX float array.
ScalarInteger : TypeAlias
    Python int or scalar JAX integer array.
ScalarNumeric : TypeAlias
    Any real scalar accepted by the factories.
"""

from beartype.typing import TypeAlias, Union
from jaxtyping import Array, Bool, Float, Int, Num

NonJaxNumber: TypeAlias = Union[int, float]
ScalarBool: TypeAlias = Union[bool, Bool[Array, " "]]
ScalarFloat: TypeAlias = Union[float, Float[Array, " "]]
ScalarInteger: TypeAlias = Union[int, Int[Array, " "]]
ScalarNumeric: TypeAlias = Union[int, float, Num[Array, " "]]
