"""Observers that watch a trace without influencing it.

Extended Summary
----------------
:func:`~snellius.trace.surface_trace.trace_lens` accepts an optional
callback invoked after every surface. Observers decouple visualization and
diagnostics from the tracing loop: the tracer never reads anything back
from them.

Routine Listings
----------------
TraceObserver : Protocol
    Call signature expected by the tracer
RaySegment : NamedTuple
    One recorded propagation step between two surfaces
RayPathRecorder : class
    Observer that stores every ray segment as NumPy arrays

Notes
-----
Observers receive concrete arrays only when the trace runs eagerly. Under
``jax.jit`` they would be handed tracers, so recorders are meant for
eager, diagnostic traces.
"""

import logging

import numpy as np
from beartype.typing import NamedTuple, Optional, Protocol
from jaxtyping import Array, Bool, Float

logger = logging.getLogger(__name__)


class TraceObserver(Protocol):
    """Callback invoked by the tracer after each surface."""

    def __call__(
        self,
        surface_index: int,
        kind: str,
        start_points: Float[Array, " N 3"],
        end_points: Float[Array, " N 3"],
        reached: Bool[Array, " N"],
    ) -> None:
        """Observe the segments that end on ``surface_index``."""


class RaySegment(NamedTuple):
    """One propagation step, with NaN rows for rays that did not reach it.

    Attributes
    ----------
    surface_index : int
        Surface the segment ends on.
    kind : str
        Kind of that surface.
    start : np.ndarray
        ``[n, 3]`` segment start points.
    end : np.ndarray
        ``[n, 3]`` segment end points.
    """

    surface_index: int
    kind: str
    start: np.ndarray
    end: np.ndarray


class RayPathRecorder:
    """Record the segment of every ray at every surface.

    Parameters
    ----------
    max_rays : int, optional
        Only the first ``max_rays`` rows are kept, to keep plots legible.
        Default is None (all rows).

    Attributes
    ----------
    segments : list[RaySegment]
        Segments in surface order.
    """

    def __init__(self, max_rays: Optional[int] = None) -> None:
        if max_rays is not None and max_rays < 1:
            raise ValueError(f"max_rays must be at least 1, got {max_rays}")
        self.max_rays = max_rays
        self.segments: list[RaySegment] = []

    def __call__(
        self,
        surface_index: int,
        kind: str,
        start_points: Float[Array, " N 3"],
        end_points: Float[Array, " N 3"],
        reached: Bool[Array, " N"],
    ) -> None:
        rows = slice(None, self.max_rays)
        mask = np.asarray(reached)[rows, None]
        start = np.where(mask, np.asarray(start_points)[rows], np.nan)
        end = np.where(mask, np.asarray(end_points)[rows], np.nan)
        self.segments.append(RaySegment(surface_index, kind, start, end))
        logger.debug(
            "Recorded %d of %d segments at surface %d",
            int(mask.sum()),
            mask.shape[0],
            surface_index,
        )

    def __len__(self) -> int:
        return len(self.segments)

    def clear(self) -> None:
        """Forget every recorded segment."""
        self.segments = []

    def paths(self) -> np.ndarray:
        """Ray polylines as ``[S + 1, n, 3]`` vertices.

        Vertex 0 is the start of the first segment and vertex k is the end
        point on surface k - 1. NaN marks rays that never reached a
        surface.
        """
        if not self.segments:
            return np.empty((0, 0, 3))
        vertices = [self.segments[0].start]
        vertices.extend(segment.end for segment in self.segments)
        return np.stack(vertices)
