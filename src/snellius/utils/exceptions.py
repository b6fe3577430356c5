"""Exceptions raised by snellius.

Routine Listings
----------------
LensConfigurationError : exception
    A surface sequence that cannot be traced.
VignettingSearchError : exception
    A cutting-circle search that exhausted its iteration cap.

Notes
-----
Per-ray numerical failures (misses, clipped rays, total internal
reflection) are never exceptions; they only clear the liveness mask.
"""


class LensConfigurationError(ValueError):
    """A surface sequence that cannot be traced.

    Raised when building a lens system with no aperture stop, more than
    one aperture stop, an unknown surface type, a refractive surface with
    zero radius, or refractive index tables that do not match the
    wavelength table.
    """


class VignettingSearchError(RuntimeError):
    """The cutting-circle search exceeded its iteration cap."""
