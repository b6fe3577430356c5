"""Pupil sampling and vignetting estimation.

Extended Summary
----------------
Traces fans of rays from off-axis points to sample the pupil shape on a
reference plane, then recovers the entrance pupil and the cutting circles
that describe vignetting, together with their back-projected physical
pupils.

Submodules
----------
sampling
    Reference-plane samples from traced angular fans
vignetting
    Entrance pupil radius, cutting-circle search and back-projection

Routine Listings
----------------
:func:`pupil_plane_points`
    Reference-plane intersections of surviving rays.
:func:`sample_pupil_shapes`
    Samples for a sweep of off-axis heights.
:func:`valid_pupil_samples`
    Mask of usable samples.
:func:`entrance_pupil_radius`
    On-axis entrance pupil radius.
:func:`find_cutting_circle`
    Cutting-circle radius and sensitivity search.
:func:`back_project_circle`
    Physical pupil behind a cutting circle.
:func:`fit_vignetting`
    Entrance pupil plus cutting circles in one call.
:func:`pupil_pass_mask`
    Points predicted to pass the fitted circles.
"""

from .sampling import pupil_plane_points, sample_pupil_shapes
from .vignetting import (
    back_project_circle,
    entrance_pupil_radius,
    find_cutting_circle,
    fit_vignetting,
    pupil_pass_mask,
    valid_pupil_samples,
)

__all__: list[str] = [
    "back_project_circle",
    "entrance_pupil_radius",
    "find_cutting_circle",
    "fit_vignetting",
    "pupil_pass_mask",
    "pupil_plane_points",
    "sample_pupil_shapes",
    "valid_pupil_samples",
]
