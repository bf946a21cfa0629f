"""Batch rendering of PPE tiles to a ``{z}/{x}/{y}.png`` directory tree.

Uses mercantile to enumerate the tiles covering an area and renders
them on a bounded thread pool.
"""
import os
import pathlib
from concurrent.futures import ThreadPoolExecutor, as_completed
from typing import List, Optional, Sequence

import mercantile
from tqdm import tqdm

from . import config
from .rasterizer import render_tile
from .utils import vprint

WORLD_BOUNDS = (-180.0, -85.0, 180.0, 85.0)


def default_workers():
    """Worker count for CPU bound rendering: all cores but one."""
    return max((os.cpu_count() or 1) - 1, 1)


def tile_path(out_dir, tile) -> pathlib.Path:
    """Output file of `tile` below `out_dir`."""
    return pathlib.Path(out_dir) / str(tile.z) / str(tile.x) / f"{tile.y}.png"


def tiles_exists(out_dir, zoom) -> bool:
    """True if a zoom level directory has already been written."""
    return (pathlib.Path(out_dir) / str(zoom)).is_dir()


def tiles_for_bounds(bbox, zoom_levels: Sequence[int]) -> List[mercantile.Tile]:
    """All tiles intersecting `bbox` at the given zoom levels.

    Parameters
    ----------
    bbox : tuple of float
        ``(west, south, east, north)`` in degrees.
    zoom_levels : sequence of int
        Zoom levels to enumerate.

    Returns
    -------
    list of mercantile.Tile
    """
    west, south, east, north = bbox
    return list(mercantile.tiles(west, south, east, north, zooms=list(zoom_levels)))


def _write_tile(tile, store, out_dir):
    data = render_tile(tile.z, tile.x, tile.y, store)
    path = tile_path(out_dir, tile)
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_bytes(data)
    return path


def render_area(store, out_dir=None, bbox=WORLD_BOUNDS, zoom_levels=(1, 2, 3),
                workers: Optional[int] = None, force=False, progress=True):
    """Render every tile of `bbox` at `zoom_levels` into `out_dir`.

    Parameters
    ----------
    store : ppetiles.store.FeatureStore
        Open feature store.
    out_dir : str or pathlib.Path, optional
        Output directory. Defaults to the ``tile_dir`` setting.
    bbox : tuple of float, optional
        Area to cover, by default the whole Web Mercator world.
    zoom_levels : sequence of int, optional
        Zoom levels to render, by default 1 to 3.
    workers : int, optional
        Number of worker threads. If None, uses CPU count - 1.
    force : bool, optional
        Re-render zoom levels whose directory already exists.
    progress : bool, optional
        Show a tqdm progress bar, by default True.

    Returns
    -------
    list of pathlib.Path
        Files written, in completion order.

    Raises
    ------
    ppetiles.exceptions.PpeTilesError
        The first query or render failure; remaining tiles are cancelled.
    """
    out_dir = pathlib.Path(out_dir or config.get("tile_dir"))
    out_dir.mkdir(parents=True, exist_ok=True)
    workers = workers or default_workers()

    zooms = [z for z in zoom_levels if force or not tiles_exists(out_dir, z)]
    skipped = sorted(set(zoom_levels) - set(zooms))
    if skipped:
        vprint(f"Skipping existing zoom levels {skipped}")
    tiles = tiles_for_bounds(bbox, zooms)
    vprint(f"Total tiles to generate: {len(tiles)}")

    written = []
    with ThreadPoolExecutor(max_workers=workers) as executor:
        futures = {executor.submit(_write_tile, tile, store, out_dir): tile for tile in tiles}
        with tqdm(total=len(tiles), desc="Rendering tiles", unit="tile",
                  disable=not progress) as pbar:
            try:
                for future in as_completed(futures):
                    written.append(future.result())
                    pbar.update(1)
            except Exception:
                for future in futures:
                    future.cancel()
                raise
    vprint(f"Wrote {len(written)} tiles to {out_dir}", level=1)
    return written
