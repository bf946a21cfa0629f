"""Slippy-map tiles of street quality (PPE) measurements.

The rendering pipeline turns a tile address into a bounding box
(`geo`), asks the feature store for the decimated points inside it
(`store`, `resolution`), colours each point (`colors`) and paints them
on a PNG (`rasterizer`).
"""

from .exceptions import (FeatureQueryError, InvalidFeatureError,
                         InvalidTileAddressError, PpeTilesError, RenderError)
from .rasterizer import draw_features, render_tile
from .store import FeatureStore

__version__ = "0.1.0"

__all__ = [
    "FeatureQueryError",
    "FeatureStore",
    "InvalidFeatureError",
    "InvalidTileAddressError",
    "PpeTilesError",
    "RenderError",
    "draw_features",
    "render_tile",
]
