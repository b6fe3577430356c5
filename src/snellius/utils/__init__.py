"""Common utility functions used throughout the code.

Extended Summary
----------------
Row-wise vector math used by the tracer, the package exceptions, and
device-mesh helpers for spreading ray bundles over several devices.

Submodules
----------
distributed
    Multi-device utilities for row-parallel ray tracing
exceptions
    Exceptions raised by snellius
math
    Row-wise vector utilities for ray arrays

Routine Listings
----------------
create_mesh : function
    Creates a device mesh for data parallelism across available devices
get_device_count : function
    Gets the number of available JAX devices
normalize_rows : function
    Scale each row to unit length
radial_distance_squared : function
    Squared distance of each row from the optical axis
row_dot : function
    Row-wise dot product
safe_sqrt : function
    Square root clamped to zero for negative arguments
shard_batch : function
    Shards array data across the batch dimension for parallel processing
shard_ray_bundle : function
    Shards every per-ray array of a bundle across the batch dimension
LensConfigurationError : exception
    A surface sequence that cannot be traced
VignettingSearchError : exception
    A cutting-circle search that exhausted its iteration cap
"""

from .distributed import (
    create_mesh,
    get_device_count,
    shard_batch,
    shard_ray_bundle,
)
from .exceptions import LensConfigurationError, VignettingSearchError
from .math import normalize_rows, radial_distance_squared, row_dot, safe_sqrt

__all__: list[str] = [
    "create_mesh",
    "get_device_count",
    "normalize_rows",
    "radial_distance_squared",
    "row_dot",
    "safe_sqrt",
    "shard_batch",
    "shard_ray_bundle",
    "LensConfigurationError",
    "VignettingSearchError",
]
