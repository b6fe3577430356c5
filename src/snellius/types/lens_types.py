"""Surface and lens-system types.

Extended Summary
----------------
A lens is an ordered sequence of optical surfaces crossed by light from
the scene to the sensor. Two surface variants exist: refractive surfaces
(spherical, or flat when the radius is infinite) and the single planar
aperture stop. Surfaces are built one at a time and then stacked into a
:class:`LensSystem` PyTree whose per-surface arrays are indexed by surface
number, while the surface kinds are static metadata so that the tracer can
branch on them under ``jax.jit``.

Routine Listings
----------------
RefractiveSurface : NamedTuple
    PyTree for one refractive (spherical or flat) surface
ApertureStop : NamedTuple
    PyTree for the planar, non-refractive aperture stop
LensSystem : NamedTuple
    PyTree for a validated, stacked surface sequence
make_refractive_surface : function
    Factory function for RefractiveSurface creation
make_aperture_stop : function
    Factory function for ApertureStop creation
make_lens_system : function
    Validates and stacks surfaces into a LensSystem
set_diaphragm_diameter : function
    Returns a copy of a lens with a new global diaphragm diameter
effective_stop_radius : function
    Clear semi-diameter of the stop after applying the diaphragm
lens_thickness : function
    Axial distance from the first to the last vertex
lens_height : function
    Largest clear-aperture semi-diameter of the lens

Notes
-----
Coordinates follow the scene-to-sensor convention: the optical axis is z,
light travels towards +z, and the last surface vertex sits at z = 0 so
that the scene is at negative z and the film at positive z. Lengths are in
millimetres and wavelengths in nanometres.

Each refractive surface carries the refractive index of the medium *after*
it, one value per wavelength. The aperture stop does not change the medium.
"""

import logging

import jax
import jax.numpy as jnp
import numpy as np
from beartype import beartype
from beartype.typing import NamedTuple, Optional, Sequence, Tuple, Union
from jax.tree_util import register_pytree_node_class
from jaxtyping import Array, Float, jaxtyped

from snellius import config
from snellius.utils.exceptions import LensConfigurationError

from .common_types import ScalarNumeric

jax.config.update("jax_enable_x64", True)

logger = logging.getLogger(__name__)

REFRACTIVE: str = "refractive"
APERTURE: str = "aperture"


@register_pytree_node_class
class RefractiveSurface(NamedTuple):
    """PyTree for one refractive surface.

    Attributes
    ----------
    radius : Float[Array, " "]
        Signed radius of curvature in mm. Positive when the centre of
        curvature lies on the sensor side of the vertex; ``inf`` for a
        flat refractive interface. Never zero.
    offset : Float[Array, " "]
        Axial distance from the previous surface vertex in mm.
    semi_diameter : Float[Array, " "]
        Clear-aperture semi-diameter in mm.
    refractive_index : Float[Array, " W"]
        Refractive index of the medium after the surface, one entry per
        wavelength (or a single entry used for every wavelength).
    """

    radius: Float[Array, " "]
    offset: Float[Array, " "]
    semi_diameter: Float[Array, " "]
    refractive_index: Float[Array, " W"]

    def tree_flatten(
        self,
    ) -> Tuple[
        Tuple[
            Float[Array, " "],
            Float[Array, " "],
            Float[Array, " "],
            Float[Array, " W"],
        ],
        None,
    ]:
        """Flatten the RefractiveSurface into a tuple of its components."""
        return (
            (
                self.radius,
                self.offset,
                self.semi_diameter,
                self.refractive_index,
            ),
            None,
        )

    @classmethod
    def tree_unflatten(
        cls,
        _aux_data: None,
        children: Tuple[
            Float[Array, " "],
            Float[Array, " "],
            Float[Array, " "],
            Float[Array, " W"],
        ],
    ) -> "RefractiveSurface":
        """Unflatten the RefractiveSurface from a tuple of its components."""
        return cls(*children)


@register_pytree_node_class
class ApertureStop(NamedTuple):
    """PyTree for the planar aperture stop (diaphragm).

    Attributes
    ----------
    offset : Float[Array, " "]
        Axial distance from the previous surface vertex in mm.
    diameter : Float[Array, " "]
        Stated diameter of the stop opening in mm.
    """

    offset: Float[Array, " "]
    diameter: Float[Array, " "]

    def tree_flatten(
        self,
    ) -> Tuple[Tuple[Float[Array, " "], Float[Array, " "]], None]:
        """Flatten the ApertureStop into a tuple of its components."""
        return ((self.offset, self.diameter), None)

    @classmethod
    def tree_unflatten(
        cls,
        _aux_data: None,
        children: Tuple[Float[Array, " "], Float[Array, " "]],
    ) -> "ApertureStop":
        """Unflatten the ApertureStop from a tuple of its components."""
        return cls(*children)


@register_pytree_node_class
class LensSystem(NamedTuple):
    """PyTree for a validated surface sequence.

    Attributes
    ----------
    radius : Float[Array, " S"]
        Signed radius of curvature per surface (0 for the stop).
    offset : Float[Array, " S"]
        Axial offset of each vertex from the previous one.
    vertex_z : Float[Array, " S"]
        Axial vertex position; the last vertex is at z = 0.
    center_z : Float[Array, " S"]
        Axial position of the centre of curvature for spherical surfaces,
        and of the vertex for the stop and flat interfaces.
    semi_diameter : Float[Array, " S"]
        Stated clear-aperture semi-diameter per surface.
    media : Float[Array, " S W"]
        Refractive index of the medium after each surface, per wavelength.
    wavelengths : Float[Array, " W"]
        Wavelength table in nanometres.
    diaphragm_diameter : Float[Array, " "]
        Global diaphragm diameter; further restricts the stop.
    kinds : Tuple[str, ...]
        Static surface kinds, ``"refractive"`` or ``"aperture"``.
    stop_index : int
        Static index of the single aperture stop.
    name : str
        Free-form lens name.

    Notes
    -----
    Only the array fields are PyTree children. ``kinds``, ``stop_index``
    and ``name`` are auxiliary data, so two lenses with different surface
    layouts compile to different traces.
    """

    radius: Float[Array, " S"]
    offset: Float[Array, " S"]
    vertex_z: Float[Array, " S"]
    center_z: Float[Array, " S"]
    semi_diameter: Float[Array, " S"]
    media: Float[Array, " S W"]
    wavelengths: Float[Array, " W"]
    diaphragm_diameter: Float[Array, " "]
    kinds: Tuple[str, ...]
    stop_index: int
    name: str

    @property
    def num_surfaces(self) -> int:
        """Number of surfaces in the sequence."""
        return len(self.kinds)

    @property
    def num_wavelengths(self) -> int:
        """Number of entries in the wavelength table."""
        return int(self.wavelengths.shape[0])

    def tree_flatten(
        self,
    ) -> Tuple[
        Tuple[
            Float[Array, " S"],
            Float[Array, " S"],
            Float[Array, " S"],
            Float[Array, " S"],
            Float[Array, " S"],
            Float[Array, " S W"],
            Float[Array, " W"],
            Float[Array, " "],
        ],
        Tuple[Tuple[str, ...], int, str],
    ]:
        """Flatten the LensSystem into its arrays and static metadata."""
        return (
            (
                self.radius,
                self.offset,
                self.vertex_z,
                self.center_z,
                self.semi_diameter,
                self.media,
                self.wavelengths,
                self.diaphragm_diameter,
            ),
            (self.kinds, self.stop_index, self.name),
        )

    @classmethod
    def tree_unflatten(
        cls,
        aux_data: Tuple[Tuple[str, ...], int, str],
        children: Tuple[
            Float[Array, " S"],
            Float[Array, " S"],
            Float[Array, " S"],
            Float[Array, " S"],
            Float[Array, " S"],
            Float[Array, " S W"],
            Float[Array, " W"],
            Float[Array, " "],
        ],
    ) -> "LensSystem":
        """Unflatten the LensSystem from its arrays and static metadata."""
        return cls(*children, *aux_data)


def _concrete(value: Array) -> Optional[np.ndarray]:
    """Return a NumPy copy of ``value``, or None while it is being traced."""
    try:
        return np.asarray(value)
    except (
        jax.errors.TracerArrayConversionError,
        jax.errors.ConcretizationTypeError,
    ):
        return None


@jaxtyped(typechecker=beartype)
def make_refractive_surface(
    radius: ScalarNumeric,
    offset: ScalarNumeric,
    semi_diameter: ScalarNumeric,
    refractive_index: Union[ScalarNumeric, Float[Array, " W"]],
) -> RefractiveSurface:
    """Create a validated RefractiveSurface.

    Parameters
    ----------
    radius : ScalarNumeric
        Signed radius of curvature in mm; ``jnp.inf`` for a flat surface.
    offset : ScalarNumeric
        Axial distance from the previous vertex in mm.
    semi_diameter : ScalarNumeric
        Clear-aperture semi-diameter in mm.
    refractive_index : Union[ScalarNumeric, Float[Array, " W"]]
        Index of the medium after the surface, scalar or per wavelength.

    Returns
    -------
    surface : RefractiveSurface
        The surface with all fields as float64 arrays.

    Raises
    ------
    LensConfigurationError
        If the radius is zero (zero marks the aperture stop) or the
        semi-diameter is not positive.
    """
    radius_arr: Float[Array, " "] = jnp.asarray(radius, dtype=jnp.float64)
    offset_arr: Float[Array, " "] = jnp.asarray(offset, dtype=jnp.float64)
    semi_arr: Float[Array, " "] = jnp.asarray(semi_diameter, dtype=jnp.float64)
    index_arr: Float[Array, " W"] = jnp.atleast_1d(
        jnp.asarray(refractive_index, dtype=jnp.float64)
    )

    radius_value: Optional[np.ndarray] = _concrete(radius_arr)
    if radius_value is not None and radius_value == 0:
        raise LensConfigurationError(
            "A refractive surface cannot have zero radius; "
            "use make_aperture_stop for the diaphragm"
        )
    semi_value: Optional[np.ndarray] = _concrete(semi_arr)
    if semi_value is not None and not semi_value > 0:
        raise LensConfigurationError(
            f"Semi-diameter must be positive, got {float(semi_value)}"
        )

    return RefractiveSurface(
        radius=radius_arr,
        offset=offset_arr,
        semi_diameter=semi_arr,
        refractive_index=index_arr,
    )


@jaxtyped(typechecker=beartype)
def make_aperture_stop(
    offset: ScalarNumeric,
    diameter: ScalarNumeric,
) -> ApertureStop:
    """Create a validated ApertureStop.

    Parameters
    ----------
    offset : ScalarNumeric
        Axial distance from the previous vertex in mm.
    diameter : ScalarNumeric
        Diameter of the stop opening in mm.

    Returns
    -------
    stop : ApertureStop
        The aperture stop.
    """
    offset_arr: Float[Array, " "] = jnp.asarray(offset, dtype=jnp.float64)
    diameter_arr: Float[Array, " "] = jnp.asarray(diameter, dtype=jnp.float64)
    diameter_value: Optional[np.ndarray] = _concrete(diameter_arr)
    if diameter_value is not None and not diameter_value > 0:
        raise LensConfigurationError(
            f"Aperture stop diameter must be positive, "
            f"got {float(diameter_value)}"
        )
    return ApertureStop(offset=offset_arr, diameter=diameter_arr)


def make_lens_system(
    surfaces: Sequence[Union[RefractiveSurface, ApertureStop]],
    wavelengths: Optional[Union[Sequence[float], Float[Array, " W"]]] = None,
    diaphragm_diameter: Optional[ScalarNumeric] = None,
    name: str = "",
) -> LensSystem:
    """Validate a surface sequence and stack it into a LensSystem.

    Parameters
    ----------
    surfaces : Sequence[Union[RefractiveSurface, ApertureStop]]
        Surfaces in scene-to-sensor order.
    wavelengths : Sequence[float] or Float[Array, " W"], optional
        Wavelength table in nm. Defaults to
        :data:`snellius.config.DEFAULT_WAVELENGTHS_NM`.
    diaphragm_diameter : ScalarNumeric, optional
        Global diaphragm diameter in mm. Defaults to the stop's own
        diameter.
    name : str, optional
        Lens name used in log messages. Default is "".

    Returns
    -------
    lens : LensSystem
        The stacked, validated surface sequence.

    Raises
    ------
    LensConfigurationError
        If the sequence is empty, contains an object that is not a
        surface, does not contain exactly one aperture stop, or a
        refractive index table has neither one nor W entries.

    Notes
    -----
    Algorithm:

    - Classify each surface and count aperture stops
    - Broadcast each refractive index table to the wavelength table
    - Propagate media: a stop repeats the previous medium (air before the
      first surface)
    - Place vertices by cumulative offsets so the last vertex is at z = 0
    - Place centres of curvature at vertex + radius for spherical surfaces
    """
    if len(surfaces) == 0:
        raise LensConfigurationError("A lens needs at least one surface")

    if wavelengths is None:
        wavelengths = config.DEFAULT_WAVELENGTHS_NM
    wave_arr: Float[Array, " W"] = jnp.atleast_1d(
        jnp.asarray(wavelengths, dtype=jnp.float64)
    )
    num_waves: int = int(wave_arr.shape[0])

    kinds: list[str] = []
    radii: list[Array] = []
    offsets: list[Array] = []
    semis: list[Array] = []
    media: list[Array] = []
    previous_medium: Float[Array, " W"] = jnp.ones(num_waves, jnp.float64)
    stop_indices: list[int] = []

    for index, surface in enumerate(surfaces):
        if isinstance(surface, RefractiveSurface):
            table: Array = surface.refractive_index
            if table.shape[0] not in (1, num_waves):
                raise LensConfigurationError(
                    f"Surface {index} has {table.shape[0]} refractive "
                    f"indices for {num_waves} wavelengths"
                )
            medium = jnp.broadcast_to(table, (num_waves,))
            kinds.append(REFRACTIVE)
            radii.append(surface.radius)
            semis.append(surface.semi_diameter)
        elif isinstance(surface, ApertureStop):
            medium = previous_medium
            kinds.append(APERTURE)
            radii.append(jnp.zeros((), jnp.float64))
            semis.append(surface.diameter / 2.0)
            stop_indices.append(index)
        else:
            raise LensConfigurationError(
                f"Unknown surface type at index {index}: "
                f"{type(surface).__name__}"
            )
        offsets.append(surface.offset)
        media.append(medium)
        previous_medium = medium

    if len(stop_indices) == 0:
        raise LensConfigurationError(
            "No aperture stop found; exactly one is required"
        )
    if len(stop_indices) > 1:
        raise LensConfigurationError(
            f"Multiple aperture stops at surfaces {stop_indices}; "
            f"exactly one is required"
        )
    stop_index: int = stop_indices[0]

    radius_arr: Float[Array, " S"] = jnp.stack(radii)
    offset_arr: Float[Array, " S"] = jnp.stack(offsets)
    semi_arr: Float[Array, " S"] = jnp.stack(semis)
    media_arr: Float[Array, " S W"] = jnp.stack(media)

    vertex_z: Float[Array, " S"] = jnp.cumsum(offset_arr) - jnp.sum(offset_arr)
    is_sphere = jnp.array([k == REFRACTIVE for k in kinds]) & jnp.isfinite(
        radius_arr
    )
    center_z: Float[Array, " S"] = jnp.where(
        is_sphere, vertex_z + jnp.where(is_sphere, radius_arr, 0.0), vertex_z
    )

    if diaphragm_diameter is None:
        diaphragm: Float[Array, " "] = 2.0 * semi_arr[stop_index]
    else:
        diaphragm = jnp.asarray(diaphragm_diameter, dtype=jnp.float64)

    logger.debug(
        "Built lens %r: %d surfaces, stop at surface %d, %d wavelengths",
        name,
        len(kinds),
        stop_index,
        num_waves,
    )

    return LensSystem(
        radius=radius_arr,
        offset=offset_arr,
        vertex_z=vertex_z,
        center_z=center_z,
        semi_diameter=semi_arr,
        media=media_arr,
        wavelengths=wave_arr,
        diaphragm_diameter=diaphragm,
        kinds=tuple(kinds),
        stop_index=stop_index,
        name=name,
    )


@jaxtyped(typechecker=beartype)
def set_diaphragm_diameter(
    lens: LensSystem, diameter: ScalarNumeric
) -> LensSystem:
    """Return a copy of ``lens`` with a new global diaphragm diameter.

    The stop's effective opening is the smaller of its stated diameter and
    the diaphragm diameter, so enlarging the diaphragm beyond the stated
    stop diameter has no effect on the trace.
    """
    return lens._replace(
        diaphragm_diameter=jnp.asarray(diameter, dtype=jnp.float64)
    )


@jaxtyped(typechecker=beartype)
def effective_stop_radius(lens: LensSystem) -> Float[Array, " "]:
    """Clear semi-diameter of the stop after applying the diaphragm."""
    return (
        jnp.minimum(
            2.0 * lens.semi_diameter[lens.stop_index], lens.diaphragm_diameter
        )
        / 2.0
    )


@jaxtyped(typechecker=beartype)
def lens_thickness(lens: LensSystem) -> Float[Array, " "]:
    """Axial distance from the first to the last surface vertex."""
    return lens.vertex_z[-1] - lens.vertex_z[0]


@jaxtyped(typechecker=beartype)
def lens_height(lens: LensSystem) -> Float[Array, " "]:
    """Largest clear-aperture semi-diameter of the lens."""
    return jnp.max(lens.semi_diameter)
