"""Plotting utilities for lenses, ray paths and pupil fits.

Extended Summary
----------------
Functions for visualizing lens cross-sections, ray paths recorded during a
trace, and pupil samples with their fitted vignetting circles.

Routine Listings
----------------
:func:`plot_lens_profile`
    Draw the meridional cross-section of a lens.
:func:`plot_ray_paths`
    Draw recorded ray paths over the lens.
:func:`plot_pupil_fit`
    Draw pupil samples with the fitted circles.
:func:`surface_profile`
    Sampled outline of one surface.

Notes
-----
These plotting functions are designed for data visualization only and
do not require JAX compatibility. They accept PyTree data structures
from the snellius package.
"""

from .pupil import plot_pupil_fit
from .rays import plot_lens_profile, plot_ray_paths, surface_profile

__all__: list[str] = [
    "plot_lens_profile",
    "plot_pupil_fit",
    "plot_ray_paths",
    "surface_profile",
]
