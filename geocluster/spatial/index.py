"""
Static point indexes used by each zoom level.

The clustering code only relies on the :class:`SpatialIndex` interface, so
any structure answering rectangle and radius queries over a fixed point set
can be plugged in through ``ClusterIndex(index_factory=...)``. The default
:class:`KDTreeIndex` wraps scikit-learn's ``KDTree``.
"""

from __future__ import annotations

import math
from abc import ABC, abstractmethod
from typing import List, Optional

import numpy as np
from sklearn.neighbors import KDTree


_EMPTY = np.empty(0, dtype=np.intp)

# Slack added to the circumscribed radius of a range query so corner points
# are not lost to rounding; the exact bounds mask runs afterwards.
_RANGE_SLACK = 1e-9


class SpatialIndex(ABC):
    """Immutable 2D point index.

    All queries return point positions as ascending integer arrays.
    """

    @property
    @abstractmethod
    def coords(self) -> np.ndarray:
        """Indexed points as an ``(n, 2)`` array."""
        pass

    @abstractmethod
    def range(self, min_x: float, min_y: float, max_x: float, max_y: float) -> np.ndarray:
        """Positions of points inside the closed rectangle."""
        pass

    @abstractmethod
    def within(self, x: float, y: float, r: float) -> np.ndarray:
        """Positions of points at Euclidean distance ``<= r`` from (x, y)."""
        pass

    def within_many(self, centers: np.ndarray, r: float) -> List[np.ndarray]:
        """Run :meth:`within` for each row of ``centers``."""
        return [self.within(float(cx), float(cy), r) for cx, cy in centers]

    def __len__(self) -> int:
        return len(self.coords)


class KDTreeIndex(SpatialIndex):
    """
    :class:`SpatialIndex` backed by :class:`sklearn.neighbors.KDTree`.

    Args:
        coords: ``(n, 2)`` array of plane coordinates
        node_size: KD-tree leaf size; affects speed only
    """

    def __init__(self, coords: np.ndarray, node_size: int = 64):
        coords = np.asarray(coords, dtype=float).reshape(-1, 2)
        self._coords = coords
        self.node_size = node_size
        self._tree: Optional[KDTree] = (
            KDTree(coords, leaf_size=node_size) if len(coords) else None
        )

    @property
    def coords(self) -> np.ndarray:
        return self._coords

    def range(self, min_x: float, min_y: float, max_x: float, max_y: float) -> np.ndarray:
        if self._tree is None or min_x > max_x or min_y > max_y:
            return _EMPTY

        cx = (min_x + max_x) / 2.0
        cy = (min_y + max_y) / 2.0
        half_diagonal = math.hypot(max_x - min_x, max_y - min_y) / 2.0
        radius = half_diagonal * (1.0 + _RANGE_SLACK) + _RANGE_SLACK

        candidates = self.within(cx, cy, radius)
        if len(candidates) == 0:
            return candidates

        xs = self._coords[candidates, 0]
        ys = self._coords[candidates, 1]
        mask = (xs >= min_x) & (xs <= max_x) & (ys >= min_y) & (ys <= max_y)
        return candidates[mask]

    def within(self, x: float, y: float, r: float) -> np.ndarray:
        if self._tree is None:
            return _EMPTY
        ids = self._tree.query_radius(np.array([[x, y]], dtype=float), r=r)[0]
        return np.sort(ids)

    def within_many(self, centers: np.ndarray, r: float) -> List[np.ndarray]:
        centers = np.asarray(centers, dtype=float).reshape(-1, 2)
        if self._tree is None or len(centers) == 0:
            return [_EMPTY for _ in range(len(centers))]
        return [np.sort(ids) for ids in self._tree.query_radius(centers, r=r)]


def build_kdtree_index(coords: np.ndarray, node_size: int = 64) -> SpatialIndex:
    """Default index factory."""
    return KDTreeIndex(coords, node_size=node_size)


__all__ = [
    "SpatialIndex",
    "KDTreeIndex",
    "build_kdtree_index",
]
