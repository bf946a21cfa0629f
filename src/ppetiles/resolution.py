"""Zoom dependent thinning of the point set.

At zoom `MAX_ZOOM` and above every feature is drawn. Each zoom level
below that doubles the resolution factor, and only features whose
aggregate id is divisible by the factor are kept, so every step out
roughly halves the number of points. The predicate depends on the
stored id only, which keeps a point either always in or always out of
a given zoom as the user pans.
"""
from typing import Iterable, Tuple

MIN_ZOOM = 1
MAX_ZOOM = 16


def clamp_zoom(zoom: int, min_zoom: int = MIN_ZOOM, max_zoom: int = MAX_ZOOM) -> int:
    """Clamp `zoom` into ``[min_zoom, max_zoom]``."""
    return min(max_zoom, max(min_zoom, int(zoom)))


def resolution_factor(zoom: int, min_zoom: int = MIN_ZOOM, max_zoom: int = MAX_ZOOM) -> int:
    """Power-of-two divisor applied to the aggregate id at `zoom`."""
    return 2 ** (max_zoom - clamp_zoom(zoom, min_zoom, max_zoom))


class ResolutionFilter:
    """Decimation predicate with configurable zoom bounds.

    Parameters
    ----------
    min_zoom : int, optional
        Zoom at which thinning stops getting stronger, by default 1.
    max_zoom : int, optional
        Zoom from which every feature is kept, by default 16.
    column : str, optional
        Column holding the aggregate id in SQL predicates.
    """

    def __init__(self, min_zoom: int = MIN_ZOOM, max_zoom: int = MAX_ZOOM,
                 column: str = "aggregate_id"):
        if min_zoom > max_zoom:
            raise ValueError(f"min_zoom ({min_zoom}) is larger than max_zoom ({max_zoom})")
        self.min_zoom = int(min_zoom)
        self.max_zoom = int(max_zoom)
        self.column = column

    def __repr__(self):
        return f"ResolutionFilter(min_zoom={self.min_zoom}, max_zoom={self.max_zoom})"

    def factor(self, zoom: int) -> int:
        """Resolution factor for `zoom`."""
        return resolution_factor(zoom, self.min_zoom, self.max_zoom)

    def passes(self, aggregate_id: int, zoom: int) -> bool:
        """True if a feature with `aggregate_id` is drawn at `zoom`."""
        factor = self.factor(zoom)
        return factor == 1 or aggregate_id % factor == 0

    def select(self, features: Iterable, zoom: int) -> list:
        """Keep the features of `features` that pass at `zoom`.

        Items must expose an ``aggregate_id`` attribute. Order is kept.
        """
        return [feature for feature in features
                if self.passes(feature.aggregate_id, zoom)]

    def sql_predicate(self, zoom: int) -> Tuple[str, tuple]:
        """SQL clause and parameters enforcing the filter in a query.

        Returns an empty clause when every feature is kept.
        """
        factor = self.factor(zoom)
        if factor == 1:
            return "", ()
        return f"{self.column} % ? = 0", (factor,)
