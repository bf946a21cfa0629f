"""Render PPE points onto 256x256 PNG tiles.

The features handed to `draw_features` are expected to be decimated and
clipped to the tile by the feature store already; this module only
places and paints them.
"""
import io
import logging
import math
from typing import Sequence

import numpy as np
from PIL import Image, ImageDraw

from . import colors, geo
from .exceptions import RenderError
from .resolution import ResolutionFilter

logger = logging.getLogger(__name__)

TILE_SIZE = geo.TILE_SIZE
CIRCLE_RADIUS = 4


def tile_positions(zoom: int, bbox, features: Sequence):
    """Tile-relative pixel positions of `features`.

    Parameters
    ----------
    zoom : int
        Zoom level.
    bbox : tuple of float
        Tile bounding box ``(west, south, east, north)``.
    features : sequence
        Items with ``lon`` and ``lat`` attributes.

    Returns
    -------
    tuple of numpy.ndarray
        (x, y) pixel offsets from the tile's top-left corner.
    """
    if len(features) == 0:
        return np.empty(0), np.empty(0)
    origin_x, origin_y = geo.bbox_origin(bbox, zoom)
    lons = np.fromiter((f.lon for f in features), dtype=np.float64, count=len(features))
    lats = np.fromiter((f.lat for f in features), dtype=np.float64, count=len(features))
    px, py = geo.lonlat_to_pixel(lons, lats, zoom)
    return px - origin_x, py - origin_y


def circle_box(x, y, radius=CIRCLE_RADIUS):
    """Pixel box of a circle of `radius` centred on ``(x, y)``.

    Pillow includes both corners of the box, so the box spans
    ``2 * radius`` pixels per side.
    """
    left = math.floor(x - radius + 0.5)
    top = math.floor(y - radius + 0.5)
    return (left, top, left + 2 * radius - 1, top + 2 * radius - 1)


def draw_features(zoom: int, bbox, features: Sequence) -> bytes:
    """Draw one filled circle per feature and return the PNG bytes.

    Features are painted in list order, so a later feature covers an
    earlier one at the same position.

    Parameters
    ----------
    zoom : int
        Zoom level of the tile.
    bbox : tuple of float
        Tile bounding box ``(west, south, east, north)``.
    features : sequence
        Items with ``ppe``, ``lon`` and ``lat`` attributes, such as
        `ppetiles.models.Point`.

    Returns
    -------
    bytes
        256x256 RGBA PNG.

    Raises
    ------
    RenderError
        If drawing or encoding fails.
    """
    features = list(features)
    try:
        img = Image.new("RGBA", (TILE_SIZE, TILE_SIZE), (0, 0, 0, 0))
        draw = ImageDraw.Draw(img)
        xs, ys = tile_positions(zoom, bbox, features)
        for feature, x, y in zip(features, xs, ys):
            draw.ellipse(circle_box(x, y), fill=colors.ppe_to_fill(feature.ppe))
        buf = io.BytesIO()
        img.save(buf, format="PNG")
    except Exception as e:
        logger.error("Rendering tile at zoom %s failed: %s", zoom, e)
        raise RenderError(f"Could not render tile: {e}") from e
    return buf.getvalue()


def render_tile(zoom: int, x: int, y: int, store,
                resolution_filter: ResolutionFilter = None) -> bytes:
    """Render the tile at ``zoom/x/y`` from the features in `store`.

    Parameters
    ----------
    zoom, x, y : int
        Validated tile address.
    store : ppetiles.store.FeatureStore
        Open feature store used for the bounding box query.
    resolution_filter : ResolutionFilter, optional
        Decimation passed on to the store. Uses the store's own when
        omitted.

    Returns
    -------
    bytes
        PNG tile.
    """
    bbox = geo.tile_to_bounding_box(zoom, x, y)
    points = store.query_features(bbox, zoom, resolution_filter=resolution_filter)
    logger.debug("Tile %s/%s/%s: %d features", zoom, x, y, len(points))
    return draw_features(zoom, bbox, points)
