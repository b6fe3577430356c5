"""Reading lens prescriptions from disk.

Extended Summary
----------------
Two lens file formats are supported. The legacy text format is a
tab-separated table, with ``#`` comment lines, a focal-length line and a
header line containing ``radius`` followed by one row per surface:
radius, axial position, refractive index and aperture diameter. The JSON
format holds a name, a description and a list of surfaces with radius,
thickness, index and semi-aperture. Both list surfaces from the scene to
the sensor and mark the aperture stop with a zero radius.

Routine Listings
----------------
LensTable : NamedTuple
    Raw per-surface columns of a lens file, before unit scaling
parse_txt_lens : function
    Parse the text format into a LensTable
parse_json_lens : function
    Parse the JSON format into a LensTable
lens_from_table : function
    Scale a LensTable to millimetres and build a LensSystem
read_lens_table : function
    Read and parse a lens file by its extension
read_lens_file : function
    Read a lens file straight into a LensSystem

Notes
-----
In the text format the axial position on each row is the distance to the
*next* surface; it is shifted down one row (``[0, axpos[:-1]]``) so that
every surface stores its offset from the previous one. In the JSON format
the thickness list is rotated (``[thickness[-1], thickness[:-1]]``) for
the same reason.
"""

import json
import logging
from pathlib import Path

import jax.numpy as jnp
import numpy as np
from beartype.typing import Any, NamedTuple, Optional, Sequence, Union

from snellius import config
from snellius.types import (
    LensSystem,
    make_aperture_stop,
    make_lens_system,
    make_refractive_surface,
)

logger = logging.getLogger(__name__)


class LensTable(NamedTuple):
    """Per-surface columns of a lens file in file units.

    Attributes
    ----------
    name : str
        Lens name (file stem for the text format).
    description : str
        Free-form description.
    focal_length : float
        Focal length stated by the file, NaN when absent.
    radius : np.ndarray
        Signed radius of curvature; 0 marks the aperture stop.
    offset : np.ndarray
        Distance of each surface from the previous one.
    diameter : np.ndarray
        Clear-aperture diameter.
    ior : np.ndarray
        Refractive index after each surface.
    """

    name: str
    description: str
    focal_length: float
    radius: np.ndarray
    offset: np.ndarray
    diameter: np.ndarray
    ior: np.ndarray


def _to_float(token: str) -> Optional[float]:
    try:
        return float(token)
    except ValueError:
        return None


def parse_txt_lens(text: str, name: str = "") -> LensTable:
    """Parse the tab-separated text lens format.

    Parameters
    ----------
    text : str
        File contents.
    name : str, optional
        Name given to the lens. Default is "".

    Returns
    -------
    table : LensTable
        Surface columns in file units.

    Raises
    ------
    ValueError
        If no ``radius`` header line is found, there are no data rows, or
        a data row does not hold four numbers.
    """
    lines = [line.strip() for line in text.splitlines()]
    focal_length = float("nan")
    header: Optional[int] = None
    for number, line in enumerate(lines):
        if not line:
            continue
        first = line.split()[0]
        if np.isnan(focal_length) and _to_float(first) is not None:
            focal_length = float(first)
        if "radius" in first or (first == "#" and "radius" in line):
            header = number
            break
    if header is None:
        raise ValueError("Lens file has no header line containing 'radius'")

    rows: list[list[float]] = []
    for number, line in enumerate(lines[header + 1 :], start=header + 2):
        if not line or line.startswith("#"):
            continue
        values = [_to_float(token) for token in line.split()]
        if len(values) < 4 or any(value is None for value in values[:4]):
            raise ValueError(
                f"Lens file line {number}: expected radius, axpos, N and "
                f"aperture, got {line!r}"
            )
        rows.append(values[:4])
    if not rows:
        raise ValueError("Lens file has no surface rows after the header")

    data = np.asarray(rows, dtype=np.float64)
    axial = data[:, 1]
    return LensTable(
        name=name,
        description="",
        focal_length=focal_length,
        radius=data[:, 0],
        offset=np.concatenate([[0.0], axial[:-1]]),
        diameter=data[:, 3],
        ior=data[:, 2],
    )


def parse_json_lens(data: dict[str, Any]) -> LensTable:
    """Parse the JSON lens format.

    Raises
    ------
    ValueError
        If the document has no surfaces or a surface misses a field.
    """
    try:
        surfaces = data["surfaces"]
        radius = np.array([float(s["radius"]) for s in surfaces])
        thickness = np.array([float(s["thickness"]) for s in surfaces])
        ior = np.array([float(s["ior"]) for s in surfaces])
        semi = np.array([float(s["semi_aperture"]) for s in surfaces])
    except (KeyError, TypeError, ValueError) as e:
        logger.exception("Surface parsing error: %s", e)
        raise ValueError(f"Failed to parse lens surfaces: {e}") from e
    if radius.size == 0:
        raise ValueError("Lens file has no surfaces")
    return LensTable(
        name=str(data.get("name", "")),
        description=str(data.get("description", "")),
        focal_length=float(data.get("focal_length", float("nan"))),
        radius=radius,
        offset=np.concatenate([thickness[-1:], thickness[:-1]]),
        diameter=2.0 * semi,
        ior=ior,
    )


def lens_from_table(
    table: LensTable,
    units: str = "mm",
    wavelengths: Optional[Union[Sequence[float], np.ndarray]] = None,
) -> LensSystem:
    """Scale a LensTable to millimetres and build a LensSystem.

    Parameters
    ----------
    table : LensTable
        Parsed lens file.
    units : str, optional
        Units of the file, one of ``"um"``, ``"mm"`` or ``"m"``.
        Default is "mm".
    wavelengths : Sequence[float], optional
        Wavelength table in nm; every refractive index is replicated
        across it. Default is :data:`snellius.config.DEFAULT_WAVELENGTHS_NM`.

    Returns
    -------
    lens : LensSystem
        The validated surface sequence.

    Raises
    ------
    ValueError
        If ``units`` is unknown.
    LensConfigurationError
        If the file does not describe exactly one aperture stop.
    """
    if units not in config.UNIT_SCALES:
        raise ValueError(
            f"Unknown units: {units!r}; expected one of "
            f"{sorted(config.UNIT_SCALES)}"
        )
    scale = config.UNIT_SCALES[units]
    surfaces = []
    for radius, offset, diameter, ior in zip(
        table.radius, table.offset, table.diameter, table.ior
    ):
        if radius == 0:
            surfaces.append(
                make_aperture_stop(
                    float(offset * scale), float(diameter * scale)
                )
            )
        else:
            surfaces.append(
                make_refractive_surface(
                    float(radius * scale),
                    float(offset * scale),
                    float(diameter * scale / 2.0),
                    float(ior),
                )
            )
    if wavelengths is not None:
        wavelengths = jnp.asarray(wavelengths, dtype=jnp.float64)
    return make_lens_system(surfaces, wavelengths, name=table.name)


def read_lens_table(path: Union[str, Path]) -> LensTable:
    """Read and parse a lens file, choosing the parser by extension.

    Raises
    ------
    ValueError
        If the extension is not ``.txt`` or ``.json``, or the file cannot
        be parsed.
    FileNotFoundError
        If the file does not exist.
    """
    path = Path(path)
    suffix = path.suffix.lower()
    if suffix not in config.LENS_FILE_SUFFIXES:
        raise ValueError(
            f"Unsupported lens file type {suffix!r}; expected one of "
            f"{list(config.LENS_FILE_SUFFIXES)}"
        )
    content = path.read_text(encoding="utf-8")
    if suffix == ".txt":
        return parse_txt_lens(content, name=path.stem)
    try:
        data = json.loads(content)
    except json.JSONDecodeError as e:
        logger.exception("JSON parse error in %s: %s", path, e)
        raise ValueError(f"Invalid JSON in {path}: {e}") from e
    if not isinstance(data, dict):
        raise ValueError(f"Expected a JSON object in {path}")
    return parse_json_lens(data)


def read_lens_file(
    path: Union[str, Path],
    units: str = "mm",
    wavelengths: Optional[Union[Sequence[float], np.ndarray]] = None,
) -> LensSystem:
    """Read a ``.txt`` or ``.json`` lens file into a LensSystem.

    Parameters
    ----------
    path : str or Path
        Lens file.
    units : str, optional
        Units of the file, ``"um"``, ``"mm"`` or ``"m"``. Default is "mm".
    wavelengths : Sequence[float], optional
        Wavelength table in nm. Default is
        :data:`snellius.config.DEFAULT_WAVELENGTHS_NM`.

    Returns
    -------
    lens : LensSystem
        The validated surface sequence in millimetres.

    Examples
    --------
    >>> from snellius.load import read_lens_file
    >>> lens = read_lens_file("dgauss.22deg.50.0mm.json")
    >>> lens.stop_index
    6
    """
    table = read_lens_table(path)
    lens = lens_from_table(table, units=units, wavelengths=wavelengths)
    logger.info(
        "Loaded lens %r from %s: %d surfaces, stop at surface %d, "
        "focal length %s",
        lens.name,
        path,
        lens.num_surfaces,
        lens.stop_index,
        table.focal_length * config.UNIT_SCALES[units],
    )
    return lens
