"""Shared pytest fixtures for ppetiles tests."""

import io
import tempfile
from pathlib import Path

import pytest
from PIL import Image

from ppetiles import config
from ppetiles.models import Point
from ppetiles.resolution import ResolutionFilter
from ppetiles.store import FeatureStore

API_KEY = "test-key"

# Tile scenario around lower Manhattan.
NYC_ZOOM = 12
NYC_BBOX = (-74.05, 40.7, -73.95, 40.73)
NYC_POINTS = [
    Point(ppe=1.5, lon=-74.006, lat=40.7128),
    Point(ppe=3.2, lon=-73.992, lat=40.7219),
]


@pytest.fixture
def temp_dir():
    """Provide a temporary directory that is cleaned up after the test."""
    with tempfile.TemporaryDirectory() as tmpdir:
        yield Path(tmpdir)


@pytest.fixture
def store():
    """Provide an open in-memory feature store."""
    with FeatureStore(":memory:") as fs:
        yield fs


@pytest.fixture
def nyc_store():
    """Feature store holding the two lower Manhattan points.

    Decimation stops at NYC_ZOOM so both points are drawn there.
    """
    with FeatureStore(":memory:", ResolutionFilter(max_zoom=NYC_ZOOM)) as fs:
        fs.add_features(
            {"ppe": p.ppe, "loc": {"type": "Point", "coordinates": [p.lon, p.lat]}}
            for p in NYC_POINTS
        )
        yield fs


@pytest.fixture
def api_key(monkeypatch):
    """Accept only API_KEY for the duration of the test."""
    monkeypatch.setattr(config, "api_keys", lambda: [API_KEY])
    return API_KEY


def decode_png(data):
    """Open PNG bytes as an RGBA Pillow image."""
    img = Image.open(io.BytesIO(data))
    assert img.format == "PNG"
    return img.convert("RGBA")
