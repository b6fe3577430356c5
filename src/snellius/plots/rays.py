"""Lens cross-section and ray path plotting.

Extended Summary
----------------
Functions for drawing the meridional (y, z) cross-section of a lens and
the ray paths recorded by :class:`~snellius.trace.RayPathRecorder` during
an eager trace.
This module is NOT JAX-accelerated.

Routine Listings
----------------
surface_profile : function
    Sampled (z, y) outline of one surface
plot_lens_profile : function
    Draw every surface of a lens in the y-z plane
plot_ray_paths : function
    Draw recorded ray paths, optionally over the lens profile

Notes
-----
The optical axis runs left to right. Lengths are in millimetres, matching
the millimetre scale bar drawn by matplotlib-scalebar.
"""

import matplotlib.pyplot as plt
import numpy as np
from beartype import beartype
from beartype.typing import Optional, Tuple
from jaxtyping import Float
from matplotlib.axes import Axes
from matplotlib.figure import Figure
from matplotlib_scalebar.scalebar import ScaleBar
from numpy import ndarray as NDArray  # noqa: N814

from snellius.trace.observers import RayPathRecorder
from snellius.types import APERTURE, LensSystem, effective_stop_radius

LENS_COLOR: str = "tab:blue"
STOP_COLOR: str = "black"
RAY_COLOR: str = "tab:red"


@beartype
def surface_profile(
    vertex_z: float,
    radius: float,
    semi_diameter: float,
    num_points: int = 65,
) -> Tuple[Float[NDArray, " K"], Float[NDArray, " K"]]:
    """Sampled (z, y) outline of a refractive surface.

    Parameters
    ----------
    vertex_z : float
        Axial vertex position.
    radius : float
        Signed radius of curvature, ``inf`` for a flat surface.
    semi_diameter : float
        Half height of the outline.
    num_points : int, optional
        Number of samples. Default is 65.

    Returns
    -------
    z : Float[NDArray, " K"]
        Axial coordinates.
    y : Float[NDArray, " K"]
        Transverse coordinates.
    """
    y: Float[NDArray, " K"] = np.linspace(
        -semi_diameter, semi_diameter, num_points
    )
    if not np.isfinite(radius):
        return np.full_like(y, vertex_z), y
    sag_arg: Float[NDArray, " K"] = np.clip(radius**2 - y**2, 0.0, None)
    z: Float[NDArray, " K"] = (
        vertex_z + radius - np.sign(radius) * np.sqrt(sag_arg)
    )
    return z, y


@beartype
def plot_lens_profile(
    lens: LensSystem,
    ax: Optional[Axes] = None,
    figsize: Tuple[float, float] = (8, 4),
    title: Optional[str] = None,
) -> Tuple[Figure, Axes]:
    """Draw the meridional cross-section of a lens.

    Parameters
    ----------
    lens : LensSystem
        The lens to draw.
    ax : Axes, optional
        Axes to draw into. If None, a new figure is created.
    figsize : Tuple[float, float], optional
        Figure size in inches when a new figure is created.
        Default is (8, 4).
    title : Optional[str], optional
        Title for the axes. If None, no title is added.

    Returns
    -------
    fig : Figure
        The matplotlib Figure object.
    ax : Axes
        The matplotlib Axes object.

    Notes
    -----
    Refractive surfaces are drawn as their sag profile over the clear
    aperture; the stop is drawn as two blades running from the effective
    opening to beyond the tallest surface.
    """
    fig: Figure
    if ax is None:
        fig, ax = plt.subplots(figsize=figsize)
    else:
        fig = ax.figure

    vertex_z: Float[NDArray, " S"] = np.asarray(lens.vertex_z)
    radius: Float[NDArray, " S"] = np.asarray(lens.radius)
    semi: Float[NDArray, " S"] = np.asarray(lens.semi_diameter)
    blade_end: float = 1.2 * float(np.max(semi))

    for index, kind in enumerate(lens.kinds):
        if kind == APERTURE:
            opening: float = float(effective_stop_radius(lens))
            for side in (1.0, -1.0):
                ax.plot(
                    [vertex_z[index], vertex_z[index]],
                    [side * opening, side * blade_end],
                    color=STOP_COLOR,
                    linewidth=2,
                )
            continue
        z, y = surface_profile(
            float(vertex_z[index]), float(radius[index]), float(semi[index])
        )
        ax.plot(z, y, color=LENS_COLOR, linewidth=1)

    ax.axhline(0.0, color="gray", linewidth=0.5, linestyle="--")
    ax.set_aspect("equal")
    ax.set_xlabel("z (mm)")
    ax.set_ylabel("y (mm)")
    if title is not None:
        ax.set_title(title)
    return fig, ax


@beartype
def plot_ray_paths(
    recorder: RayPathRecorder,
    lens: Optional[LensSystem] = None,
    figsize: Tuple[float, float] = (8, 4),
    scalebar_length: float | None = None,
    title: Optional[str] = None,
) -> Tuple[Figure, Axes]:
    """Draw the ray paths recorded during a trace.

    Parameters
    ----------
    recorder : RayPathRecorder
        Recorder passed as ``observer`` to an eager trace.
    lens : LensSystem, optional
        When given, the lens cross-section is drawn underneath.
    figsize : Tuple[float, float], optional
        Figure size in inches (width, height). Default is (8, 4).
    scalebar_length : Optional[float], optional
        Length of the scalebar in mm. If None, matplotlib-scalebar will
        choose automatically.
    title : Optional[str], optional
        Title for the figure. If None, no title is added.

    Returns
    -------
    fig : Figure
        The matplotlib Figure object.
    ax : Axes
        The matplotlib Axes object.

    Raises
    ------
    ValueError
        If the recorder holds no segments.
    """
    if len(recorder) == 0:
        raise ValueError(
            "Recorder is empty; pass it as observer to trace_lens"
        )
    fig: Figure
    ax: Axes
    fig, ax = plt.subplots(figsize=figsize)
    if lens is not None:
        plot_lens_profile(lens, ax=ax)

    paths: Float[NDArray, " V n 3"] = recorder.paths()
    ax.plot(paths[:, :, 2], paths[:, :, 1], color=RAY_COLOR, linewidth=0.5)
    ax.set_xlabel("z (mm)")
    ax.set_ylabel("y (mm)")

    scalebar: ScaleBar = ScaleBar(
        1.0,
        units="mm",
        length_fraction=0.25,
        location="lower right",
        box_alpha=0.5,
        fixed_value=scalebar_length,
    )
    ax.add_artist(scalebar)

    if title is not None:
        ax.set_title(title)

    fig.tight_layout()

    return fig, ax
