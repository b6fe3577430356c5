"""Type definitions and factory functions for snellius.

Extended Summary
----------------
Core PyTree types of the package: optical surfaces and the stacked lens
system, ray bundles with their interface snapshots, vignetting search
parameters and results, the paraxial focus model and the polynomial ray
surrogate. Every type has a ``make_*`` factory that validates its inputs
and converts them to arrays.

Routine Listings
----------------
:func:`make_refractive_surface`
    Factory function for RefractiveSurface creation.
:func:`make_aperture_stop`
    Factory function for ApertureStop creation.
:func:`make_lens_system`
    Validates and stacks surfaces into a LensSystem.
:func:`set_diaphragm_diameter`
    Returns a lens copy with a new diaphragm diameter.
:func:`effective_stop_radius`
    Clear semi-diameter of the stop after the diaphragm.
:func:`lens_thickness`
    Axial distance from the first to the last vertex.
:func:`lens_height`
    Largest clear-aperture semi-diameter.
:func:`make_ray_bundle`
    Factory function for RayBundle creation.
:func:`make_interface_snapshot`
    Factory function for InterfaceSnapshot creation.
:func:`ray_positions`
    Ray origins with NaN for dead rays.
:func:`ray_directions`
    Ray directions with NaN for dead rays.
:func:`snapshot_points`
    Snapshot positions with NaN for dead rays.
:func:`snapshot_directions`
    Snapshot directions with NaN for dead rays.
:func:`live_count`
    Number of live rays.
:func:`throughput`
    Fraction of live rays.
:func:`has_snapshots`
    Whether a bundle has been traced.
:func:`make_vignetting_params`
    Factory function for VignettingParams creation.
:func:`make_cutting_circle`
    Factory function for CuttingCircle creation.
:func:`make_vignetting_fit`
    Factory function for VignettingFit creation.
:func:`make_focus_model`
    Factory function for FocusModel creation.
:func:`make_ray_polynomial`
    Factory function for RayPolynomial creation.
:class:`RefractiveSurface`
    PyTree for a refractive surface.
:class:`ApertureStop`
    PyTree for the aperture stop.
:class:`LensSystem`
    PyTree for a validated surface sequence.
:class:`RayBundle`
    PyTree for a batch of rays.
:class:`InterfaceSnapshot`
    PyTree for rays recorded at one surface.
:class:`VignettingParams`
    PyTree for cutting-circle search tunables.
:class:`CuttingCircle`
    PyTree for one cutting-circle result.
:class:`VignettingFit`
    PyTree for a complete vignetting fit.
:class:`FocusModel`
    PyTree for the paraxial cardinal points.
:class:`RayPolynomial`
    PyTree for a polynomial ray surrogate.
"""

from .common_types import (
    NonJaxNumber,
    ScalarBool,
    ScalarFloat,
    ScalarInteger,
    ScalarNumeric,
)
from .lens_types import (
    APERTURE,
    REFRACTIVE,
    ApertureStop,
    LensSystem,
    RefractiveSurface,
    effective_stop_radius,
    lens_height,
    lens_thickness,
    make_aperture_stop,
    make_lens_system,
    make_refractive_surface,
    set_diaphragm_diameter,
)
from .paraxial_types import FocusModel, make_focus_model
from .pupil_types import (
    CuttingCircle,
    VignettingFit,
    VignettingParams,
    make_cutting_circle,
    make_vignetting_fit,
    make_vignetting_params,
)
from .ray_types import (
    InterfaceSnapshot,
    RayBundle,
    has_snapshots,
    live_count,
    make_interface_snapshot,
    make_ray_bundle,
    ray_directions,
    ray_positions,
    snapshot_directions,
    snapshot_points,
    throughput,
)
from .surrogate_types import RayPolynomial, make_ray_polynomial

__all__: list[str] = [
    "APERTURE",
    "REFRACTIVE",
    "ApertureStop",
    "CuttingCircle",
    "FocusModel",
    "InterfaceSnapshot",
    "LensSystem",
    "NonJaxNumber",
    "RayBundle",
    "RayPolynomial",
    "RefractiveSurface",
    "ScalarBool",
    "ScalarFloat",
    "ScalarInteger",
    "ScalarNumeric",
    "VignettingFit",
    "VignettingParams",
    "effective_stop_radius",
    "has_snapshots",
    "lens_height",
    "lens_thickness",
    "live_count",
    "make_aperture_stop",
    "make_cutting_circle",
    "make_focus_model",
    "make_interface_snapshot",
    "make_lens_system",
    "make_ray_bundle",
    "make_ray_polynomial",
    "make_refractive_surface",
    "make_vignetting_fit",
    "make_vignetting_params",
    "ray_directions",
    "ray_positions",
    "set_diaphragm_diameter",
    "snapshot_directions",
    "snapshot_points",
    "throughput",
]
