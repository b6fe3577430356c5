"""Lens file loading.

Extended Summary
----------------
Readers for the tab-separated text and JSON lens formats, producing
validated :class:`~snellius.types.LensSystem` instances in millimetres.

Submodules
----------
lens_files
    Parsers for both formats and unit scaling

Routine Listings
----------------
:func:`read_lens_file`
    Read a lens file into a LensSystem.
:func:`read_lens_table`
    Read a lens file into raw columns.
:func:`parse_txt_lens`
    Parse the text format.
:func:`parse_json_lens`
    Parse the JSON format.
:func:`lens_from_table`
    Build a LensSystem from raw columns.
:class:`LensTable`
    Raw per-surface columns of a lens file.
"""

from .lens_files import (
    LensTable,
    lens_from_table,
    parse_json_lens,
    parse_txt_lens,
    read_lens_file,
    read_lens_table,
)

__all__: list[str] = [
    "LensTable",
    "lens_from_table",
    "parse_json_lens",
    "parse_txt_lens",
    "read_lens_file",
    "read_lens_table",
]
