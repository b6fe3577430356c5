"""Paraxial focus model.

Extended Summary
----------------
Transfer-matrix description of a lens system, its cardinal points per
wavelength, and Gaussian imaging queries that locate the focused image of
a source point.

Submodules
----------
black_box
    System matrix, cardinal points and Gaussian imaging

Routine Listings
----------------
:func:`system_matrix`
    Reduced transfer matrix of a lens.
:func:`build_focus_model`
    Cardinal points of a lens.
:func:`image_point`
    Gaussian image of a source point.
:func:`film_distance`
    Focused film position for a source point.
"""

from .black_box import (
    build_focus_model,
    film_distance,
    image_point,
    system_matrix,
)

__all__: list[str] = [
    "build_focus_model",
    "film_distance",
    "image_point",
    "system_matrix",
]
