"""Ray generation and film recording.

Extended Summary
----------------
Generators of fresh ray bundles on the scene side of a lens and helpers
that record traced rays on a film plane and summarize the resulting spot.

Submodules
----------
sources
    Point-source, angular-fan and collimated ray generators
film
    Film-plane intersections and spot metrics

Routine Listings
----------------
:func:`point_source_rays`
    Rays from a point aimed at the first surface.
:func:`angular_fan_rays`
    Rays from one origin over a grid of angles.
:func:`collimated_rays`
    Axis-parallel rays over a disk.
:func:`record_on_film`
    Intersections of traced rays with a film plane.
:func:`spot_centroid`
    Mean landing position of live rays.
:func:`rms_spot_radius`
    RMS distance of live rays from the centroid.
:func:`spot_diameter`
    Spot diameter of live rays.
"""

from .film import record_on_film, rms_spot_radius, spot_centroid, spot_diameter
from .sources import angular_fan_rays, collimated_rays, point_source_rays

__all__: list[str] = [
    "angular_fan_rays",
    "collimated_rays",
    "point_source_rays",
    "record_on_film",
    "rms_spot_radius",
    "spot_centroid",
    "spot_diameter",
]
