"""Pupil sample and vignetting fit plotting.

Extended Summary
----------------
Draws the reference-plane samples of one off-axis source together with the
circles of a :class:`~snellius.types.VignettingFit`, for checking a fit by
eye.
This module is NOT JAX-accelerated.

Routine Listings
----------------
plot_pupil_fit : function
    Scatter pupil samples with the fitted entrance and cutting circles
"""

import matplotlib.pyplot as plt
import numpy as np
from beartype import beartype
from beartype.typing import Optional, Tuple
from jaxtyping import Array, Float
from matplotlib.axes import Axes
from matplotlib.figure import Figure
from matplotlib.patches import Circle
from matplotlib_scalebar.scalebar import ScaleBar
from numpy import ndarray as NDArray  # noqa: N814

from snellius.types import VignettingFit


@beartype
def plot_pupil_fit(
    points: Float[Array, " C P N"],
    off_axis_distances: Float[Array, " P"],
    fit: VignettingFit,
    index: int,
    figsize: Tuple[float, float] = (5, 5),
    scalebar_length: float | None = None,
    title: Optional[str] = None,
) -> Tuple[Figure, Axes]:
    """Plot the samples of one off-axis source with the fitted circles.

    Parameters
    ----------
    points : Float[Array, " C P N"]
        Reference-plane samples, NaN for vignetted rays.
    off_axis_distances : Float[Array, " P"]
        Off-axis distance of each sample set.
    fit : VignettingFit
        Fitted circles.
    index : int
        Sample set to draw.
    figsize : Tuple[float, float], optional
        Figure size in inches (width, height). Default is (5, 5).
    scalebar_length : Optional[float], optional
        Length of the scalebar in mm. If None, matplotlib-scalebar will
        choose automatically.
    title : Optional[str], optional
        Title for the figure. If None, the off-axis distance is used.

    Returns
    -------
    fig : Figure
        The matplotlib Figure object.
    ax : Axes
        The matplotlib Axes object.
    """
    x: Float[NDArray, " N"] = np.asarray(points[0, index])
    y: Float[NDArray, " N"] = np.asarray(points[1, index])
    distance: float = float(off_axis_distances[index])

    fig: Figure
    ax: Axes
    fig, ax = plt.subplots(figsize=figsize)
    ax.scatter(x, y, s=2, color="tab:gray", label="samples")

    circles = [
        ("entrance", 0.0, float(fit.entrance_radius), "tab:blue"),
        (
            "bottom",
            float(fit.bottom.sensitivity) * distance,
            float(fit.bottom.radius),
            "tab:red",
        ),
    ]
    if fit.top is not None:
        circles.append(
            (
                "top",
                float(fit.top.sensitivity) * distance,
                float(fit.top.radius),
                "tab:green",
            )
        )
    for label, centre, radius, color in circles:
        ax.add_patch(
            Circle(
                (0.0, centre),
                radius,
                fill=False,
                edgecolor=color,
                linewidth=1.5,
                label=label,
            )
        )

    extent: float = 1.1 * max(radius for _, _, radius, _ in circles)
    ax.set_xlim(-extent, extent)
    ax.set_ylim(-extent + circles[1][1], extent + circles[1][1])
    ax.set_aspect("equal")
    ax.legend(loc="upper right", fontsize="small")

    scalebar: ScaleBar = ScaleBar(
        1.0,
        units="mm",
        length_fraction=0.25,
        location="lower right",
        box_alpha=0.5,
        fixed_value=scalebar_length,
    )
    ax.add_artist(scalebar)

    ax.set_title(title if title is not None else f"h = {distance:g} mm")
    fig.tight_layout()

    return fig, ax
