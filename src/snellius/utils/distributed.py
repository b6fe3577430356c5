"""Multi-device utilities for row-parallel ray tracing.

Extended Summary
----------------
Rays in a bundle never interact, so the row (ray) axis is the natural axis
along which to spread a trace over several devices (CPUs, GPUs or TPUs).
This module builds a one-dimensional device mesh and places ray arrays or
whole ray bundles on it, sharded along their first dimension.

Routine Listings
----------------
create_mesh : function
    Creates a device mesh for data parallelism across available devices.
get_device_count : function
    Gets the number of available JAX devices.
shard_batch : function
    Shards array data across the batch dimension for parallel processing.
shard_ray_bundle : function
    Shards every per-ray array of a bundle across the batch dimension.

Notes
-----
Surfaces are traversed strictly in sequence; only rows are distributed.
The number of rays should ideally be divisible by the number of devices.

Examples
--------
>>> import jax.numpy as jnp
>>> from snellius.utils.distributed import create_mesh, shard_batch
>>>
>>> mesh = create_mesh()
>>> origins = jnp.zeros((1024, 3))
>>> sharded = shard_batch(origins, mesh)
"""

import jax
import jax.numpy as jnp
from beartype import beartype
from beartype.typing import Optional
from jax.experimental import mesh_utils
from jax.sharding import Mesh, NamedSharding
from jax.sharding import PartitionSpec as P
from jaxtyping import Array, PyTree, Shaped, jaxtyped


@jaxtyped(typechecker=beartype)
def get_device_count() -> int:
    """Get number of available JAX devices.

    Returns
    -------
    n_devices : int
        Number of available devices.
    """
    n_devices: int = jax.device_count()
    return n_devices


@jaxtyped(typechecker=beartype)
def create_mesh(n_devices: Optional[int] = None) -> Mesh:
    """Create a device mesh for data parallelism.

    Parameters
    ----------
    n_devices : int, optional
        Number of devices to use in the mesh. If None, uses all available
        devices detected by JAX (default: None).

    Returns
    -------
    mesh : Mesh
        Device mesh with a single axis named ``'batch'``.

    Raises
    ------
    ValueError
        If more devices are requested than are available.
    """
    available: int = jax.device_count()
    if n_devices is None:
        n_devices = available
    if n_devices < 1 or n_devices > available:
        raise ValueError(
            f"Cannot build a mesh of {n_devices} devices; "
            f"{available} available"
        )
    selected_devices: list = jax.devices()[:n_devices]
    devices: jnp.ndarray = mesh_utils.create_device_mesh(
        (n_devices,), devices=selected_devices
    )
    return Mesh(devices, axis_names=("batch",))


@jaxtyped(typechecker=beartype)
def shard_batch(
    data: Shaped[Array, " ..."], mesh: Mesh
) -> Shaped[Array, " ..."]:
    """Shard data across batch dimension.

    Parameters
    ----------
    data : Shaped[Array, " ..."]
        Input array whose first dimension is the ray (batch) dimension.
    mesh : Mesh
        Device mesh with a ``'batch'`` axis, e.g. from :func:`create_mesh`.

    Returns
    -------
    sharded_data : Shaped[Array, " ..."]
        The same values, with the first dimension distributed across the
        devices in ``mesh``.
    """
    sharding: NamedSharding = NamedSharding(mesh, P("batch"))
    return jax.device_put(data, sharding)


def shard_ray_bundle(bundle: PyTree, mesh: Mesh) -> PyTree:
    """Shard every per-ray array of a ray bundle.

    Parameters
    ----------
    bundle : PyTree
        A :class:`~snellius.types.RayBundle` (or any PyTree whose leaves
        all share the same leading ray dimension).
    mesh : Mesh
        Device mesh with a ``'batch'`` axis.

    Returns
    -------
    sharded_bundle : PyTree
        The bundle with each leaf sharded along its first dimension; row
        alignment between leaves is preserved.

    Notes
    -----
    Subsequent calls to :func:`snellius.trace.trace_lens` on the sharded
    bundle run row-parallel across the devices of ``mesh``.
    """
    return jax.tree_util.tree_map(lambda leaf: shard_batch(leaf, mesh), bundle)
