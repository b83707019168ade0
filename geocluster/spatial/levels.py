"""
Per-zoom storage of cluster points.

Each :class:`Level` is a struct-of-arrays arena: row ``i`` of every array
describes one cluster point, and ``i`` is the position encoded into cluster
ids. Cross-level links (``parent_ids``) are plain packed ids, never object
references. A level becomes read-only once :meth:`Level.publish` has filled
in its parent ids.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Callable, Dict, List, Optional, Sequence

import numpy as np

from .ids import NO_ID
from .index import SpatialIndex, build_kdtree_index


IndexFactory = Callable[[np.ndarray, int], SpatialIndex]


@dataclass(frozen=True)
class ClusterPoint:
    """Read-only view of one row of a :class:`Level`."""

    x: float
    y: float
    count: int
    id: int
    """Packed cluster id, or ``NO_ID`` for a leaf."""

    source: int
    """Source feature position for a leaf, -1 for an aggregate."""

    parent_id: int
    properties: Optional[Dict[str, Any]] = None

    @property
    def is_cluster(self) -> bool:
        return self.id != NO_ID


@dataclass
class Level:
    """All cluster points of one zoom level plus their spatial index."""

    zoom: int
    xs: np.ndarray
    ys: np.ndarray
    counts: np.ndarray
    ids: np.ndarray
    sources: np.ndarray
    properties: Sequence[Optional[Dict[str, Any]]]
    index: SpatialIndex
    parent_ids: np.ndarray = field(default=None)

    def __post_init__(self):
        if self.parent_ids is None:
            self.parent_ids = np.full(len(self.xs), NO_ID, dtype=np.int64)

    @classmethod
    def build(
        cls,
        zoom: int,
        xs,
        ys,
        counts,
        ids,
        sources,
        properties: List[Optional[Dict[str, Any]]],
        *,
        index_factory: IndexFactory = build_kdtree_index,
        node_size: int = 64,
    ) -> "Level":
        """Create a level from column data and index its points."""
        xs = np.asarray(xs, dtype=float)
        ys = np.asarray(ys, dtype=float)
        coords = np.column_stack((xs, ys)) if len(xs) else np.empty((0, 2))
        return cls(
            zoom=zoom,
            xs=xs,
            ys=ys,
            counts=np.asarray(counts, dtype=np.int64),
            ids=np.asarray(ids, dtype=np.int64),
            sources=np.asarray(sources, dtype=np.int64),
            properties=list(properties),
            index=index_factory(coords, node_size),
        )

    def __len__(self) -> int:
        return len(self.xs)

    @property
    def coords(self) -> np.ndarray:
        return self.index.coords

    @property
    def total_count(self) -> int:
        """Number of source features represented on this level."""
        return int(self.counts.sum())

    @property
    def num_clusters(self) -> int:
        return int(np.count_nonzero(self.ids != NO_ID))

    @property
    def frozen(self) -> bool:
        return not self.xs.flags.writeable

    def is_cluster(self, position: int) -> bool:
        return self.ids[position] != NO_ID

    def point(self, position: int) -> ClusterPoint:
        return ClusterPoint(
            x=float(self.xs[position]),
            y=float(self.ys[position]),
            count=int(self.counts[position]),
            id=int(self.ids[position]),
            source=int(self.sources[position]),
            parent_id=int(self.parent_ids[position]),
            properties=self.properties[position],
        )

    def publish(self, parent_ids: Optional[np.ndarray] = None) -> "Level":
        """Record parent ids and make every array read-only."""
        if self.frozen:
            raise ValueError(f"Level {self.zoom} is already published")
        if parent_ids is not None:
            if len(parent_ids) != len(self):
                raise ValueError(
                    f"Expected {len(self)} parent ids for level {self.zoom}, got {len(parent_ids)}"
                )
            self.parent_ids = np.asarray(parent_ids, dtype=np.int64)
        for array in (self.xs, self.ys, self.counts, self.ids, self.sources, self.parent_ids):
            array.setflags(write=False)
        self.properties = tuple(self.properties)
        return self
