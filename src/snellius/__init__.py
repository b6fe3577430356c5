"""Sequential lens ray tracing and vignetting pupils in JAX.

Extended Summary
----------------
A toolkit for simulating image formation through multi-element camera
lenses. Bundles of rays are traced surface by surface from the scene to
the sensor, with per-wavelength refraction, aperture clipping and optical
path length accumulation. The traced rays feed a paraxial focus model, a
vignetting pupil estimator and a polynomial surrogate of the lens. All
numerical functions are JIT-compilable and differentiable.

Routine Listings
----------------
:mod:`config`
    Package defaults and environment settings.
:mod:`load`
    Lens file loading.
:mod:`paraxial`
    Paraxial focus model.
:mod:`plots`
    Plotting utilities for lenses, ray paths and pupil fits.
:mod:`pupil`
    Pupil sampling and vignetting estimation.
:mod:`rays`
    Ray generation and film recording.
:mod:`surrogate`
    Polynomial surrogate models of traced lenses.
:mod:`trace`
    Sequential ray tracing through multi-element lenses.
:mod:`types`
    Type definitions and factory functions.
:mod:`utils`
    Common utility functions used throughout the code.

Examples
--------
>>> import jax.numpy as jnp
>>> import snellius as sn
>>> lens = sn.load.read_lens_file("dgauss.22deg.50.0mm.json")
>>> rays = sn.rays.point_source_rays(
...     jnp.array([0.0, 1.0, -100.0]), lens, grid_size=32
... )
>>> traced = sn.trace.trace_lens(rays, lens)
>>> sn.types.throughput(traced)

Notes
-----
Lengths are in millimetres and wavelengths in nanometres. The last lens
vertex sits at z = 0 with the scene at negative z. Set the
``SNELLIUS_LOG_LEVEL`` environment variable (e.g. ``DEBUG``) to see the
package's log messages.
"""

import logging
import os
from importlib.metadata import version

# Enable multi-threaded CPU execution for JAX (before importing JAX)
os.environ.setdefault(
    "XLA_FLAGS",
    "--xla_cpu_multi_thread_eigen=true intra_op_parallelism_threads=0",
)

# Enable 64-bit precision in JAX (must be set before importing submodules)
import jax  # noqa: E402

jax.config.update("jax_enable_x64", True)

from . import config  # noqa: E402

logging.getLogger(__name__).addHandler(logging.NullHandler())
if config.LOG_LEVEL:
    logging.getLogger(__name__).setLevel(config.LOG_LEVEL.upper())

from . import (  # noqa: E402, I001
    utils,
    types,
    load,
    rays,
    trace,
    pupil,
    paraxial,
    surrogate,
    plots,
)

__version__: str = version("snellius")

__all__: list[str] = [
    "__version__",
    "config",
    "load",
    "paraxial",
    "plots",
    "pupil",
    "rays",
    "surrogate",
    "trace",
    "types",
    "utils",
]
