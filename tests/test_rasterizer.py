"""Tests for the ppetiles.rasterizer module."""

from unittest.mock import patch

import numpy as np
import pytest

from ppetiles import colors, geo, rasterizer
from ppetiles.exceptions import FeatureQueryError, RenderError
from ppetiles.models import Point
from ppetiles.resolution import ResolutionFilter

from conftest import NYC_BBOX, NYC_POINTS, NYC_ZOOM, decode_png


def _pixel(img, x, y):
    return img.getpixel((int(round(x)), int(round(y))))


class TestTilePositions:
    """Tests for the tile_positions function."""

    def test_empty(self):
        """No features should give empty position arrays."""
        xs, ys = rasterizer.tile_positions(NYC_ZOOM, NYC_BBOX, [])
        assert len(xs) == 0 and len(ys) == 0

    def test_positions_are_relative_to_bbox_anchor(self):
        """Positions should be offsets from the bbox's north-west pixel."""
        xs, ys = rasterizer.tile_positions(NYC_ZOOM, NYC_BBOX, NYC_POINTS)
        origin_x, origin_y = geo.bbox_origin(NYC_BBOX, NYC_ZOOM)
        for point, x, y in zip(NYC_POINTS, xs, ys):
            px, py = geo.lonlat_to_pixel(point.lon, point.lat, NYC_ZOOM)
            assert x == pytest.approx(px - origin_x)
            assert y == pytest.approx(py - origin_y)

    def test_nyc_points_fall_inside_tile(self):
        """Points inside the bbox should land inside the tile."""
        xs, ys = rasterizer.tile_positions(NYC_ZOOM, NYC_BBOX, NYC_POINTS)
        assert np.all((xs >= 0) & (xs < 256))
        assert np.all((ys >= 0) & (ys < 256))


class TestDrawFeatures:
    """Tests for the draw_features function."""

    def test_empty_tile_is_transparent(self):
        """A tile without features should be fully transparent."""
        img = decode_png(rasterizer.draw_features(NYC_ZOOM, NYC_BBOX, []))
        assert img.size == (256, 256)
        assert img.getextrema()[3] == (0, 0)

    def test_two_circles(self):
        """Both features should be drawn as circles in their ramp colour."""
        img = decode_png(rasterizer.draw_features(NYC_ZOOM, NYC_BBOX, NYC_POINTS))
        assert img.size == (256, 256)

        xs, ys = rasterizer.tile_positions(NYC_ZOOM, NYC_BBOX, NYC_POINTS)
        first = _pixel(img, xs[0], ys[0])
        second = _pixel(img, xs[1], ys[1])
        assert first == (255, 91, 0, 229)
        assert second == (255, 0, 153, 229)

        painted = {pixel for pixel in img.getdata() if pixel[3] > 0}
        assert painted == {first, second}

    def test_circle_radius(self):
        """Pixels within the radius are painted, pixels beyond it are not."""
        img = decode_png(rasterizer.draw_features(NYC_ZOOM, NYC_BBOX, NYC_POINTS[:1]))
        xs, ys = rasterizer.tile_positions(NYC_ZOOM, NYC_BBOX, NYC_POINTS[:1])
        cx, cy = int(round(xs[0])), int(round(ys[0]))
        assert img.getpixel((cx + 2, cy))[3] > 0
        assert img.getpixel((cx, cy - 2))[3] > 0
        assert img.getpixel((cx + 7, cy))[3] == 0
        assert img.getpixel((cx, cy + 7))[3] == 0

        rows, cols = np.nonzero(np.asarray(img)[..., 3])
        assert cols.max() - cols.min() + 1 == 2 * rasterizer.CIRCLE_RADIUS
        assert rows.max() - rows.min() + 1 == 2 * rasterizer.CIRCLE_RADIUS
        assert 44 <= len(rows) <= 56

    def test_circle_box_spans_diameter(self):
        """The box should cover exactly twice the radius in pixels."""
        for x, y in [(10.0, 20.0), (10.49, 20.51), (0.2, 255.7)]:
            left, top, right, bottom = rasterizer.circle_box(x, y)
            assert right - left + 1 == 8
            assert bottom - top + 1 == 8
            assert abs((left + right + 1) / 2 - x) <= 0.5
            assert abs((top + bottom + 1) / 2 - y) <= 0.5

    def test_is_idempotent(self):
        """Rendering the same input twice should give identical bytes."""
        first = rasterizer.draw_features(NYC_ZOOM, NYC_BBOX, NYC_POINTS)
        second = rasterizer.draw_features(NYC_ZOOM, NYC_BBOX, list(NYC_POINTS))
        assert first == second

    def test_last_feature_wins(self):
        """Coincident features should show the colour of the later one."""
        lon, lat = NYC_POINTS[0].lon, NYC_POINTS[0].lat
        points = [Point(0.0, lon, lat), Point(5.0, lon, lat)]
        img = decode_png(rasterizer.draw_features(NYC_ZOOM, NYC_BBOX, points))
        xs, ys = rasterizer.tile_positions(NYC_ZOOM, NYC_BBOX, points[:1])
        assert _pixel(img, xs[0], ys[0]) == colors.ppe_to_fill(5.0)

        img = decode_png(rasterizer.draw_features(NYC_ZOOM, NYC_BBOX, points[::-1]))
        assert _pixel(img, xs[0], ys[0]) == colors.ppe_to_fill(0.0)

    def test_points_outside_are_clipped(self):
        """A feature far outside the bbox should not paint anything."""
        img = decode_png(rasterizer.draw_features(NYC_ZOOM, NYC_BBOX, [Point(1.0, 2.35, 48.85)]))
        assert img.getextrema()[3] == (0, 0)

    def test_encoding_failure_raises_render_error(self):
        """Pillow failures should surface as RenderError."""
        with patch.object(rasterizer.Image, "new", side_effect=OSError("out of memory")):
            with pytest.raises(RenderError):
                rasterizer.draw_features(NYC_ZOOM, NYC_BBOX, NYC_POINTS)

    def test_bad_feature_raises_render_error(self):
        """A feature without a PPE value should raise RenderError."""
        with pytest.raises(RenderError):
            rasterizer.draw_features(NYC_ZOOM, NYC_BBOX, [Point(None, -74.0, 40.71)])


class TestRenderTile:
    """Tests for the render_tile function."""

    def test_queries_store_with_tile_bbox(self, nyc_store):
        """render_tile should query the tile's bbox and draw the result."""
        zoom, x, y = 12, 1205, 1539
        with patch.object(rasterizer, "draw_features", return_value=b"png") as mock_draw:
            with patch.object(nyc_store, "query_features",
                              wraps=nyc_store.query_features) as mock_query:
                assert rasterizer.render_tile(zoom, x, y, nyc_store) == b"png"

        bbox = geo.tile_to_bounding_box(zoom, x, y)
        mock_query.assert_called_once_with(bbox, zoom, resolution_filter=None)
        mock_draw.assert_called_once()
        assert mock_draw.call_args[0][:2] == (zoom, bbox)
        assert mock_draw.call_args[0][2] == [NYC_POINTS[0]]

    def test_renders_png(self, nyc_store):
        """The tile holding the first NYC point shows it in its ramp colour."""
        img = decode_png(rasterizer.render_tile(12, 1205, 1539, nyc_store))
        assert img.size == (256, 256)
        painted = {pixel for pixel in img.getdata() if pixel[3] > 0}
        assert painted == {colors.ppe_to_fill(NYC_POINTS[0].ppe)}

    def test_resolution_filter_override(self, nyc_store):
        """A stricter filter passed in should reach the store query."""
        strict = ResolutionFilter(max_zoom=16)
        with patch.object(nyc_store, "query_features", return_value=[]) as mock_query:
            rasterizer.render_tile(12, 1205, 1539, nyc_store, resolution_filter=strict)
        assert mock_query.call_args.kwargs["resolution_filter"] is strict

    def test_query_failure_propagates(self, store):
        """Store errors should reach the caller unchanged, nothing is drawn."""
        with patch.object(store, "query_features", side_effect=FeatureQueryError("db down")):
            with patch.object(rasterizer, "draw_features") as mock_draw:
                with pytest.raises(FeatureQueryError, match="db down"):
                    rasterizer.render_tile(12, 1205, 1539, store)
        mock_draw.assert_not_called()
