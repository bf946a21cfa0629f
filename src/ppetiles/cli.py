"""Command-line interface for ppetiles.

Database set-up, feature import, tile rendering and the HTTP server,
built with Typer.
"""
import pathlib
from typing import List, Optional, Tuple

import numpy as np
import pandas as pd
import typer

from . import config, tile
from .exceptions import PpeTilesError
from .geo import validate_tile_address
from .models import FeatureIn
from .rasterizer import render_tile
from .resolution import ResolutionFilter
from .store import FeatureStore
from .utils import vprint

app = typer.Typer(help="Render street quality (PPE) points as slippy tiles.",
                  no_args_is_help=True)

NYC_LON = -74.006
NYC_LAT = 40.7128


@app.callback()
def main(env: str = typer.Option("DEFAULT", help="Settings environment to use."),
         verbose: bool = typer.Option(False, "--verbose", "-v", help="Print progress messages.")):
    """Render street quality (PPE) points as slippy tiles."""
    if env != "DEFAULT":
        config.change_env(env)
    if verbose:
        config.settings.set("verbose", True)


def _open_store(database: Optional[pathlib.Path]) -> FeatureStore:
    resolution_filter = ResolutionFilter(int(config.get("min_zoom")), int(config.get("max_zoom")))
    return FeatureStore(database or config.get("database_path"), resolution_filter).open()


def _fail(exc: Exception):
    typer.echo(f"Error: {exc}", err=True)
    raise typer.Exit(code=1)


DatabaseOption = typer.Option(None, "--database", "-d",
                              help="SQLite file, defaults to the database_path setting.")


@app.command("init-db")
def init_db(database: Optional[pathlib.Path] = DatabaseOption):
    """Create the features table and its indexes."""
    try:
        with _open_store(database) as store:
            typer.echo(f"Feature store ready at {store.path} ({store.count()} features)")
    except PpeTilesError as exc:
        _fail(exc)


def sample_features(count=1000, city_count=200, seed=None):
    """Random sample features around the world and around New York.

    Parameters
    ----------
    count : int, optional
        Points spread over the world between 85S and 85N.
    city_count : int, optional
        Points within 0.1 degrees of New York City.
    seed : int, optional
        Random seed for reproducible samples.

    Returns
    -------
    list of FeatureIn
    """
    rng = np.random.default_rng(seed)
    lons = np.concatenate([rng.uniform(-180, 180, count),
                           NYC_LON - 0.1 + rng.uniform(0, 0.2, city_count)])
    lats = np.concatenate([rng.uniform(-85, 85, count),
                           NYC_LAT - 0.1 + rng.uniform(0, 0.2, city_count)])
    ppes = rng.uniform(0, 5, count + city_count)
    return [FeatureIn.from_point(float(ppe), float(lon), float(lat))
            for ppe, lon, lat in zip(ppes, lons, lats)]


@app.command()
def seed(database: Optional[pathlib.Path] = DatabaseOption,
         count: int = typer.Option(1000, help="Random points over the world."),
         city_count: int = typer.Option(200, help="Random points around New York."),
         random_seed: Optional[int] = typer.Option(None, "--seed", help="Random seed.")):
    """Fill the store with random sample features."""
    try:
        with _open_store(database) as store:
            written = store.add_features(sample_features(count, city_count, random_seed))
    except PpeTilesError as exc:
        _fail(exc)
    typer.echo(f"Inserted {written} sample features")


def read_features_csv(path):
    """Read features from a CSV file with ``ppe``, ``lon`` and ``lat`` columns.

    Optional ``timestamp``, ``device_id`` and ``user_id`` columns are
    carried over.
    """
    df = pd.read_csv(path)
    missing = {"ppe", "lon", "lat"} - set(df.columns)
    if missing:
        raise ValueError(f"{path} is missing columns {sorted(missing)}")
    features = []
    for row in df.to_dict("records"):
        extra = {key: row[key] for key in ("timestamp", "device_id", "user_id")
                 if key in row and pd.notna(row[key])}
        if "timestamp" in extra:
            extra["timestamp"] = int(extra["timestamp"])
        features.append(dict(ppe=row["ppe"],
                             loc={"type": "Point", "coordinates": [row["lon"], row["lat"]]},
                             **extra))
    return features


@app.command()
def ingest(csv_file: pathlib.Path = typer.Argument(..., exists=True, dir_okay=False),
           database: Optional[pathlib.Path] = DatabaseOption):
    """Import features from a CSV file."""
    try:
        features = read_features_csv(csv_file)
        vprint(f"Read {len(features)} features from {csv_file}")
        with _open_store(database) as store:
            written = store.add_features(features)
    except (ValueError, PpeTilesError) as exc:
        _fail(exc)
    typer.echo(f"Inserted {written} features")


@app.command()
def render(zoom: str, x: str, y: str,
           output: pathlib.Path = typer.Option(..., "--output", "-o", help="PNG file to write."),
           database: Optional[pathlib.Path] = DatabaseOption):
    """Render a single tile to a PNG file."""
    try:
        address = validate_tile_address(zoom, x, y, max_zoom=int(config.get("max_zoom_served")))
        with _open_store(database) as store:
            png = render_tile(address.z, address.x, address.y, store)
    except PpeTilesError as exc:
        _fail(exc)
    output.parent.mkdir(parents=True, exist_ok=True)
    output.write_bytes(png)
    typer.echo(f"Wrote {output}")


@app.command("render-area")
def render_area(bbox: Tuple[float, float, float, float] = typer.Option(
                    tile.WORLD_BOUNDS, help="west south east north"),
                zooms: List[int] = typer.Option([1, 2, 3], "--zoom", "-z", help="Zoom level, repeatable."),
                output: Optional[pathlib.Path] = typer.Option(None, "--output", "-o",
                                                              help="Directory, defaults to tile_dir."),
                workers: Optional[int] = typer.Option(None, help="Render threads."),
                force: bool = typer.Option(False, help="Re-render existing zoom levels."),
                database: Optional[pathlib.Path] = DatabaseOption):
    """Render all tiles of an area into a z/x/y.png tree."""
    try:
        with _open_store(database) as store:
            written = tile.render_area(store, output, tuple(bbox), zooms,
                                       workers=workers, force=force)
    except PpeTilesError as exc:
        _fail(exc)
    typer.echo(f"Rendered {len(written)} tiles")


@app.command()
def serve(host: str = typer.Option("127.0.0.1", help="Interface to bind."),
          port: int = typer.Option(8000, help="Port to listen on.")):
    """Serve tiles and feature ingestion over HTTP."""
    import uvicorn

    from .server import create_app
    uvicorn.run(create_app(), host=host, port=port)


if __name__ == "__main__":
    app()
