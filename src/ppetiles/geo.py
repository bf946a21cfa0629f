"""Web Mercator coordinate helpers for slippy-map tiles.

Conversions between tile addresses, longitude/latitude and absolute
pixel space at a zoom level. Tiles are 256x256 pixels, the pixel origin
is the top-left corner of the world and y grows southward, the same
scheme used by every XYZ tile server. Inputs are not validated here;
use `validate_tile_address` at the edge of the system.
"""
import math
from typing import Tuple

import mercantile
import numpy as np
from pyproj import Transformer

from .exceptions import InvalidTileAddressError

WEBMERCATOR_RADIUS = 6378137.0
TILE_SIZE = 256
HALF_CIRCUMFERENCE = math.pi * WEBMERCATOR_RADIUS
# Latitude at which the Web Mercator world becomes square.
MAX_LATITUDE = 85.0511287798066

# Web Mercator transformer (lon/lat to x/y meters)
_transformer_to_webmerc = Transformer.from_crs(
    "EPSG:4326", "EPSG:3857", always_xy=True
)


def lonlat_to_webmercator(lons, lats) -> Tuple[np.ndarray, np.ndarray]:
    """Transform longitude/latitude to Web Mercator coordinates.

    Latitudes are clamped to +/- `MAX_LATITUDE` so that the poles map
    to the edge of the world instead of infinity.

    Parameters
    ----------
    lons : float or array_like
        Longitude values in degrees.
    lats : float or array_like
        Latitude values in degrees.

    Returns
    -------
    tuple of numpy.ndarray
        (x, y) coordinates in Web Mercator meters, at least 1-D.
    """
    lons = np.atleast_1d(np.asarray(lons, dtype=np.float64))
    lats = np.clip(np.atleast_1d(np.asarray(lats, dtype=np.float64)),
                   -MAX_LATITUDE, MAX_LATITUDE)
    x, y = _transformer_to_webmerc.transform(lons, lats)
    return np.asarray(x, dtype=np.float64), np.asarray(y, dtype=np.float64)


def world_size(zoom: int) -> float:
    """Width of the whole world in pixels at `zoom`."""
    return TILE_SIZE * 2.0 ** zoom


def lonlat_to_pixel(lon, lat, zoom: int):
    """Project longitude/latitude to absolute pixel space at `zoom`.

    Parameters
    ----------
    lon : float or array_like
        Longitude in degrees.
    lat : float or array_like
        Latitude in degrees.
    zoom : int
        Zoom level.

    Returns
    -------
    tuple
        ``(px, py)`` as floats for scalar input, or as numpy arrays when
        arrays were passed.
    """
    scalar = np.ndim(lon) == 0 and np.ndim(lat) == 0
    x, y = lonlat_to_webmercator(lon, lat)
    scale = world_size(zoom) / (2 * HALF_CIRCUMFERENCE)
    px = (x + HALF_CIRCUMFERENCE) * scale
    py = (HALF_CIRCUMFERENCE - y) * scale
    if scalar:
        return float(px[0]), float(py[0])
    return px, py


def tile_to_bounding_box(zoom: int, x: int, y: int) -> mercantile.LngLatBbox:
    """Geographic bounding box of a tile.

    Returns
    -------
    mercantile.LngLatBbox
        Named tuple ``(west, south, east, north)`` in degrees.
    """
    return mercantile.bounds(x, y, zoom)


def tile_origin(zoom: int, x: int, y: int) -> Tuple[float, float]:
    """Absolute pixel coordinate of the tile's top-left corner."""
    return float(x * TILE_SIZE), float(y * TILE_SIZE)


def bbox_origin(bbox, zoom: int) -> Tuple[float, float]:
    """Pixel anchor of a bounding box.

    The x coordinate comes from the south-west corner and the y
    coordinate from the north-east corner, which for a tile's own
    bounding box is its top-left pixel.
    """
    west, south, east, north = bbox
    sw_x, _ = lonlat_to_pixel(west, south, zoom)
    _, ne_y = lonlat_to_pixel(east, north, zoom)
    return sw_x, ne_y


def validate_tile_address(zoom, x, y, min_zoom: int = 0, max_zoom: int = 22) -> mercantile.Tile:
    """Parse and range-check a tile address.

    Parameters
    ----------
    zoom, x, y : int or str
        Tile address, possibly still as path segments.
    min_zoom : int, optional
        Lowest zoom accepted, by default 0.
    max_zoom : int, optional
        Highest zoom accepted, by default 22.

    Returns
    -------
    mercantile.Tile
        The validated tile.

    Raises
    ------
    InvalidTileAddressError
        If a component is not an integer or lies outside its range.
    """
    try:
        zoom, x, y = int(zoom), int(x), int(y)
    except (TypeError, ValueError) as exc:
        raise InvalidTileAddressError(
            f"Tile address must be numeric, got {zoom}/{x}/{y}") from exc

    if not min_zoom <= zoom <= max_zoom:
        raise InvalidTileAddressError(
            f"Zoom level must be between {min_zoom} and {max_zoom}")
    max_coord = 2 ** zoom
    if not (0 <= x < max_coord and 0 <= y < max_coord):
        raise InvalidTileAddressError(
            f"Tile x and y must be between 0 and {max_coord - 1} for zoom level {zoom}")
    return mercantile.Tile(x, y, zoom)
