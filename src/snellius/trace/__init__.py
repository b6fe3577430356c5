"""Sequential ray tracing through multi-element lenses.

Extended Summary
----------------
The sequential surface tracer and the pieces it is built from: ray/sphere
and ray/plane intersection, surface normals, vector Snell refraction, the
optional HURB diffraction hook at the aperture stop, and observers that
record ray paths for plotting.

Submodules
----------
surface_trace
    Intersection, refraction and the per-surface tracing loop
diffraction
    Heisenberg uncertainty ray bending at the aperture stop
observers
    Callbacks that watch a trace without influencing it

Routine Listings
----------------
:func:`trace_lens`
    Trace a ray bundle through every surface of a lens system.
:func:`sphere_intersection`
    Ray parameter of a ray/sphere intersection.
:func:`plane_intersection`
    Ray parameter of a ray/plane intersection.
:func:`surface_normals`
    Unit normals of a spherical surface.
:func:`snell_refract`
    Vector form of Snell's law.
:func:`hurb_bend`
    Random diffraction tilt of rays passing the stop.
:func:`hurb_spreads`
    Angular spreads used by the diffraction tilt.
:class:`TraceObserver`
    Observer call signature.
:class:`RayPathRecorder`
    Observer recording ray segments.
:class:`RaySegment`
    One recorded propagation step.
"""

from .diffraction import hurb_bend, hurb_spreads
from .observers import RayPathRecorder, RaySegment, TraceObserver
from .surface_trace import (
    plane_intersection,
    snell_refract,
    sphere_intersection,
    surface_normals,
    trace_lens,
)

__all__: list[str] = [
    "RayPathRecorder",
    "RaySegment",
    "TraceObserver",
    "hurb_bend",
    "hurb_spreads",
    "plane_intersection",
    "snell_refract",
    "sphere_intersection",
    "surface_normals",
    "trace_lens",
]
