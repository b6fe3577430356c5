"""Package-wide defaults and environment settings.

Extended Summary
----------------
Centralized constants used as defaults by the factories, loaders and the
vignetting estimator. Values that callers tune per lens travel explicitly
as function arguments; this module only provides their starting points.

Routine Listings
----------------
DEFAULT_WAVELENGTHS_NM : tuple
    Default wavelength table in nanometres (400 to 700 nm, 10 nm steps).
UNIT_SCALES : dict
    Conversion factors from lens file units to millimetres.
DEFAULT_VERTEX_OFFSET : float
    Outward margin applied to the extreme pupil sample.
DEFAULT_RADIUS_STEP : float
    Trial-radius increment of the cutting-circle search.
DEFAULT_MAX_ITERATIONS : int
    Iteration cap of the cutting-circle search.
LOG_LEVEL : str or None
    Value of the ``SNELLIUS_LOG_LEVEL`` environment variable.

Notes
-----
All lengths are in millimetres and all wavelengths in nanometres.
"""

import os

# =============================================================================
# Spectral sampling
# =============================================================================

DEFAULT_WAVELENGTHS_NM: tuple[float, ...] = tuple(
    float(w) for w in range(400, 701, 10)
)
NM_TO_MM: float = 1e-6

# =============================================================================
# Lens files
# =============================================================================

UNIT_SCALES: dict[str, float] = {
    "um": 1e-3,
    "mm": 1.0,
    "m": 1e3,
}
LENS_FILE_SUFFIXES: tuple[str, ...] = (".txt", ".json")

# =============================================================================
# Vignetting search
# =============================================================================

DEFAULT_VERTEX_OFFSET: float = 0.01
DEFAULT_RADIUS_STEP: float = 0.001
DEFAULT_MAX_ITERATIONS: int = 10_000

# =============================================================================
# Logging
# =============================================================================

LOG_LEVEL: str | None = os.getenv("SNELLIUS_LOG_LEVEL", None)
