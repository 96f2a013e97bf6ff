"""Geoid height lookup for GPS altitude correction.

GPS receivers report height above the WGS 84 ellipsoid; maps and
hikers think in height above mean sea level. The difference (the geoid
height) is read from a 1-degree grid:

- 181 rows (latitude +90 down to -90) x 360 columns (longitude 0..359)
- big-endian signed 16-bit samples in centimetres, row-major
- poles duplicated across all longitudes

Samples are fetched lazily from disk and kept forever in a lock-guarded
cache shared by every thread using the table. Read failures never
propagate: missing samples count as 0 cm, since the correction only
refines the displayed altitude.
"""

from __future__ import annotations

import logging
import math
import threading
from pathlib import Path

from kml_georef.models.geo import wrap_longitude

logger = logging.getLogger("kml_georef.geoid.height_table")

GRID_ROWS = 181
GRID_COLUMNS = 360
SAMPLE_BYTES = 2
CENTIMETRES_PER_METRE = 100.0

Cell = tuple[int, int]


def sample_offset(cell: Cell) -> int:
    """Byte offset of a ``(row, column)`` sample in the data file."""
    row, column = cell
    return SAMPLE_BYTES * (GRID_COLUMNS * row + column)


# ---------------------------------------------------------------------------
# Sample cache
# ---------------------------------------------------------------------------


class _SampleCache:
    """Unbounded thread-safe ``cell -> centimetres`` map.

    Values never change once stored, so concurrent readers only need the
    lock to see a consistent dict.
    """

    def __init__(self) -> None:
        self._values: dict[Cell, int] = {}
        self._lock = threading.Lock()

    def get(self, cell: Cell) -> int | None:
        with self._lock:
            return self._values.get(cell)

    def put(self, cell: Cell, value: int) -> None:
        with self._lock:
            self._values.setdefault(cell, value)

    def __len__(self) -> int:
        with self._lock:
            return len(self._values)


# ---------------------------------------------------------------------------
# Table
# ---------------------------------------------------------------------------


class GeoidHeightTable:
    """Bilinear geoid height interpolation over a disk-backed 1-degree grid."""

    def __init__(self, data_path: Path | str) -> None:
        self._path = Path(data_path)
        self._cache = _SampleCache()
        self._failure_reported = False

    @property
    def data_path(self) -> Path:
        return self._path

    @property
    def cached_samples(self) -> int:
        return len(self._cache)

    def height_at(self, latitude: float, longitude: float) -> int:
        """Geoid height in centimetres at a location.

        Interpolates bilinearly along both axis orders and averages the
        two results. At exact grid points the stored sample is returned.
        """
        lat = min(90.0, max(-90.0, latitude))
        lon = wrap_longitude(longitude)

        lat0 = math.floor(lat)
        if lat0 >= 90:
            lat0 = 89
        lon0 = math.floor(lon)
        lat_frac = lat - lat0
        lon_frac = lon - lon0

        north_row = 90 - (lat0 + 1)
        south_row = 90 - lat0
        west_col = lon0 % GRID_COLUMNS
        east_col = (lon0 + 1) % GRID_COLUMNS

        nw_cell = (north_row, west_col)
        ne_cell = (north_row, east_col)
        sw_cell = (south_row, west_col)
        se_cell = (south_row, east_col)
        samples = self._samples([nw_cell, ne_cell, sw_cell, se_cell])
        nw, ne = samples[nw_cell], samples[ne_cell]
        sw, se = samples[sw_cell], samples[se_cell]

        north = nw + (ne - nw) * lon_frac
        south = sw + (se - sw) * lon_frac
        west = sw + (nw - sw) * lat_frac
        east = se + (ne - se) * lat_frac
        along_lon_first = south + (north - south) * lat_frac
        along_lat_first = west + (east - west) * lon_frac
        return math.floor((along_lon_first + along_lat_first) / 2.0 + 0.5)

    def msl_altitude(self, ellipsoid_altitude_m: float, latitude: float, longitude: float) -> float:
        """Convert a GPS (ellipsoidal) altitude to height above mean sea level."""
        return ellipsoid_altitude_m - self.height_at(latitude, longitude) / CENTIMETRES_PER_METRE

    def _samples(self, cells: list[Cell]) -> dict[Cell, int]:
        values: dict[Cell, int] = {}
        missing: list[Cell] = []
        for cell in cells:
            cached = self._cache.get(cell)
            if cached is None:
                missing.append(cell)
            else:
                values[cell] = cached
        if missing:
            values.update(self._read(missing))
        # Samples that could not be read count as 0 cm.
        return {cell: values.get(cell, 0) for cell in cells}

    def _read(self, cells: list[Cell]) -> dict[Cell, int]:
        """Read samples in ascending file order, seeking forward only.

        For an ordinary cell that is NW, NE, SW, SE. When the cell spans
        the 359/0 degree seam the east column (0) precedes the west
        column (359) in the file, so the order becomes NE, NW, SE, SW.
        """
        values: dict[Cell, int] = {}
        try:
            with self._path.open("rb") as fh:
                for cell in sorted(set(cells), key=sample_offset):
                    fh.seek(sample_offset(cell))
                    data = fh.read(SAMPLE_BYTES)
                    if len(data) != SAMPLE_BYTES:
                        msg = f"short read at offset {sample_offset(cell)}"
                        raise OSError(msg)
                    value = int.from_bytes(data, "big", signed=True)
                    self._cache.put(cell, value)
                    values[cell] = value
        except OSError as exc:
            log = logger.debug if self._failure_reported else logger.error
            log("Geoid data unreadable, using 0 cm | path=%s | error=%s", self._path, exc)
            self._failure_reported = True
        return values
