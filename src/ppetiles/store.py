"""SQLite backed feature store.

The store is constructed explicitly, opened with `open` (or used as a
context manager) and handed to whoever needs it; there is no shared
module-level connection. Writes assign the aggregate id and the
timestamp, reads push the bounding box and the resolution filter into
the SQL query and return only ``ppe``, ``lon`` and ``lat``.
"""
from __future__ import annotations

import json
import logging
import pathlib
import sqlite3
import threading
from typing import Iterable, List, Optional

import pandas as pd
from pydantic import ValidationError

from .aggregate import generate_aggregate_id, is_valid_coordinates, is_valid_ppe
from .exceptions import FeatureQueryError, InvalidFeatureError
from .models import Feature, FeatureIn, Point
from .resolution import ResolutionFilter

logger = logging.getLogger(__name__)

SCHEMA = """
CREATE TABLE IF NOT EXISTS features (
    id INTEGER PRIMARY KEY AUTOINCREMENT,
    ppe REAL NOT NULL,
    lon REAL NOT NULL,
    lat REAL NOT NULL,
    aggregate_id INTEGER NOT NULL,
    timestamp INTEGER NOT NULL,
    device_id TEXT,
    user_id TEXT,
    additional_data TEXT
);
CREATE INDEX IF NOT EXISTS features_lonlat ON features (lon, lat);
CREATE INDEX IF NOT EXISTS features_aggregate_id ON features (aggregate_id);
"""

_COLUMNS = ("ppe", "lon", "lat", "aggregate_id", "timestamp",
            "device_id", "user_id", "additional_data")


def now_ms() -> int:
    """Current time as milliseconds since the epoch."""
    return int(pd.Timestamp.now(tz="UTC").value // 1_000_000)


def _as_feature_in(feature) -> FeatureIn:
    if isinstance(feature, FeatureIn):
        return feature
    try:
        return FeatureIn.model_validate(feature)
    except ValidationError as exc:
        raise InvalidFeatureError(f"Invalid feature: {exc}") from exc


class FeatureStore:
    """Feature persistence and the tile query.

    Parameters
    ----------
    path : str or pathlib.Path
        SQLite database file, or ``":memory:"``.
    resolution_filter : ResolutionFilter, optional
        Decimation applied by `query_features`, by default zoom 1 to 16.
    """

    def __init__(self, path, resolution_filter: Optional[ResolutionFilter] = None):
        self.path = str(path)
        self.resolution_filter = resolution_filter or ResolutionFilter()
        self._conn: Optional[sqlite3.Connection] = None
        self._lock = threading.Lock()

    def __repr__(self):
        return f"FeatureStore({self.path!r})"

    def __enter__(self):
        return self.open()

    def __exit__(self, *exc):
        self.close()

    @property
    def is_open(self) -> bool:
        return self._conn is not None

    def open(self) -> "FeatureStore":
        """Connect to the database and make sure the schema exists."""
        if self._conn is not None:
            return self
        if self.path != ":memory:":
            pathlib.Path(self.path).parent.mkdir(parents=True, exist_ok=True)
        try:
            self._conn = sqlite3.connect(self.path, check_same_thread=False)
            self.init_schema()
        except sqlite3.Error as exc:
            self._conn = None
            raise FeatureQueryError(f"Could not open feature store {self.path}: {exc}") from exc
        logger.info("Opened feature store %s", self.path)
        return self

    def close(self) -> None:
        """Close the connection. Safe to call more than once."""
        if self._conn is None:
            return
        with self._lock:
            self._conn.close()
            self._conn = None
        logger.info("Closed feature store %s", self.path)

    def _connection(self) -> sqlite3.Connection:
        if self._conn is None:
            raise FeatureQueryError("Feature store is not open")
        return self._conn

    def init_schema(self) -> None:
        """Create the features table and its indexes if missing."""
        conn = self._connection()
        with self._lock:
            conn.executescript(SCHEMA)
            conn.commit()

    def _row(self, feature) -> tuple:
        feature = _as_feature_in(feature)
        lon, lat = feature.lon, feature.lat
        if not is_valid_coordinates(lon, lat) or not is_valid_ppe(feature.ppe):
            raise InvalidFeatureError("Invalid coordinates or PPE value")
        additional = (json.dumps(feature.additional_data)
                      if feature.additional_data is not None else None)
        return (feature.ppe, lon, lat,
                generate_aggregate_id(lon, lat),
                feature.timestamp if feature.timestamp is not None else now_ms(),
                feature.device_id, feature.user_id, additional)

    def add_feature(self, feature) -> int:
        """Store one feature.

        Parameters
        ----------
        feature : FeatureIn or dict
            The feature. Any aggregate id it carries is ignored and
            recomputed from its location; a missing timestamp is set
            to now.

        Returns
        -------
        int
            Row id of the new feature.

        Raises
        ------
        InvalidFeatureError
            If the PPE value or the coordinates are out of range.
        FeatureQueryError
            If the insert fails.
        """
        row = self._row(feature)
        conn = self._connection()
        try:
            with self._lock:
                cur = conn.execute(
                    f"INSERT INTO features ({', '.join(_COLUMNS)}) "
                    f"VALUES ({', '.join('?' * len(_COLUMNS))})", row)
                conn.commit()
        except sqlite3.Error as exc:
            raise FeatureQueryError(f"Failed to insert feature: {exc}") from exc
        return cur.lastrowid

    def add_features(self, features: Iterable) -> int:
        """Store many features in one transaction.

        Every feature is validated before anything is written, so an
        invalid item leaves the store unchanged.

        Returns
        -------
        int
            Number of features written.
        """
        rows = [self._row(feature) for feature in features]
        conn = self._connection()
        try:
            with self._lock:
                conn.executemany(
                    f"INSERT INTO features ({', '.join(_COLUMNS)}) "
                    f"VALUES ({', '.join('?' * len(_COLUMNS))})", rows)
                conn.commit()
        except sqlite3.Error as exc:
            raise FeatureQueryError(f"Failed to insert features: {exc}") from exc
        logger.info("Inserted %d features into %s", len(rows), self.path)
        return len(rows)

    def query_features(self, bbox, zoom: int,
                       resolution_filter: Optional[ResolutionFilter] = None) -> List[Point]:
        """Features inside `bbox` that survive decimation at `zoom`.

        Parameters
        ----------
        bbox : tuple of float
            ``(west, south, east, north)`` in degrees, edges inclusive.
        zoom : int
            Zoom level the features are drawn at.
        resolution_filter : ResolutionFilter, optional
            Overrides the store's filter for this query.

        Returns
        -------
        list of Point
            In insertion order.

        Raises
        ------
        FeatureQueryError
            If the query fails.
        """
        west, south, east, north = bbox
        rfilter = resolution_filter or self.resolution_filter
        clause, params = rfilter.sql_predicate(zoom)
        sql = ("SELECT ppe, lon, lat FROM features "
               "WHERE lon BETWEEN ? AND ? AND lat BETWEEN ? AND ?")
        if clause:
            sql += f" AND {clause}"
        sql += " ORDER BY id"
        conn = self._connection()
        try:
            with self._lock:
                rows = conn.execute(sql, (west, east, south, north) + params).fetchall()
        except sqlite3.Error as exc:
            raise FeatureQueryError(f"Feature query failed: {exc}") from exc
        return [Point(*row) for row in rows]

    def get_feature(self, feature_id: int) -> Optional[Feature]:
        """Full stored record for `feature_id`, or None."""
        conn = self._connection()
        try:
            with self._lock:
                row = conn.execute(
                    f"SELECT id, {', '.join(_COLUMNS)} FROM features WHERE id = ?",
                    (feature_id,)).fetchone()
        except sqlite3.Error as exc:
            raise FeatureQueryError(f"Feature lookup failed: {exc}") from exc
        if row is None:
            return None
        record = dict(zip(("id",) + _COLUMNS, row))
        if record["additional_data"] is not None:
            record["additional_data"] = json.loads(record["additional_data"])
        return Feature.model_validate(record)

    def count(self) -> int:
        """Number of stored features."""
        conn = self._connection()
        try:
            with self._lock:
                return conn.execute("SELECT COUNT(*) FROM features").fetchone()[0]
        except sqlite3.Error as exc:
            raise FeatureQueryError(f"Feature count failed: {exc}") from exc
