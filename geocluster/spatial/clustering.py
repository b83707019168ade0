"""
Greedy radius clustering across zoom levels.

This module provides:
1. The per-zoom merge pass (:func:`cluster_level`)
2. The top-down build of the whole level hierarchy (:func:`build_levels`)
3. Build diagnostics with per-level timing

Each pass walks the finer level in order. The first point not yet consumed
becomes a representative, absorbs every unconsumed neighbor within the merge
radius, and is replaced by a weighted-centroid aggregate (or kept as-is when
it absorbed nothing). Results depend only on input order, so identical input
always yields identical ids, centroids and counts.
"""

from __future__ import annotations

import logging
import time
from dataclasses import dataclass, field
from typing import TYPE_CHECKING, Any, Dict, List, Optional, Sequence, Tuple

import numpy as np

from ..aggregation.aggregators import Aggregator
from .ids import NO_ID, encode_cluster_id
from .index import build_kdtree_index
from .levels import IndexFactory, Level

if TYPE_CHECKING:
    from ..schemas.models import ClusterOptions


logger = logging.getLogger(__name__)

# Number of finer-level points whose neighborhoods are fetched per batch query
NEIGHBOR_CHUNK = 4096


@dataclass
class LevelStats:
    """Statistics for one built level."""

    zoom: int
    num_points: int
    """Cluster points stored on the level (aggregates + leaves)."""

    num_clusters: int
    """Aggregates among them."""

    elapsed_ms: float = 0.0


@dataclass
class BuildDiagnostics:
    """Summary of a full hierarchy build."""

    num_input: int
    """Features passed to ``load``."""

    num_indexed: int
    """Features with a coordinate."""

    levels: List[LevelStats] = field(default_factory=list)
    """Per-level stats, finest first."""

    total_ms: float = 0.0

    @property
    def num_skipped(self) -> int:
        """Features dropped for lacking a coordinate."""
        return self.num_input - self.num_indexed


def merge_radius(radius: float, extent: float, zoom: int) -> float:
    """Merge radius in plane units at ``zoom``."""
    return radius / (extent * 2.0 ** zoom)


def _accumulate(
    aggregator: Aggregator,
    accumulated: Dict[str, Any],
    level: Level,
    position: int,
    source_properties: Sequence[Optional[Dict[str, Any]]],
) -> None:
    if level.ids[position] != NO_ID:
        mapped = level.properties[position]
    else:
        mapped = aggregator.project(source_properties[level.sources[position]])
    aggregator.combine(accumulated, mapped)


def cluster_level(
    finer: Level,
    zoom: int,
    *,
    radius: float,
    extent: float,
    aggregator: Optional[Aggregator] = None,
    source_properties: Optional[Sequence[Optional[Dict[str, Any]]]] = None,
    index_factory: IndexFactory = build_kdtree_index,
    node_size: int = 64,
) -> Tuple[Level, np.ndarray]:
    """
    Cluster the points of ``finer`` (zoom ``zoom + 1``) into level ``zoom``.

    Args:
        finer: Level ``zoom + 1``; read but not modified
        zoom: Zoom of the level to produce
        radius: Merge radius in pixels
        extent: Tile extent the radius is relative to
        aggregator: Optional custom property reducer
        source_properties: Properties by source position (required with an aggregator)
        index_factory: Builds the new level's spatial index
        node_size: Index tuning parameter

    Returns:
        ``(coarser, parent_ids)`` where ``coarser`` is the unpublished new
        level and ``parent_ids[i]`` is the id of the aggregate that absorbed
        row ``i`` of ``finer`` (``NO_ID`` if none).
    """
    if aggregator is not None and source_properties is None:
        raise ValueError("source_properties are required when an aggregator is set")

    r = merge_radius(radius, extent, zoom)
    n = len(finer)
    xs, ys, counts = finer.xs, finer.ys, finer.counts

    # pass-scoped, never stored on a level
    consumed = np.zeros(n, dtype=bool)
    parent_ids = np.full(n, NO_ID, dtype=np.int64)

    out_x: List[float] = []
    out_y: List[float] = []
    out_counts: List[int] = []
    out_ids: List[int] = []
    out_sources: List[int] = []
    out_properties: List[Optional[Dict[str, Any]]] = []

    for start in range(0, n, NEIGHBOR_CHUNK):
        pending = np.flatnonzero(~consumed[start:start + NEIGHBOR_CHUNK]) + start
        if len(pending) == 0:
            continue
        neighborhoods = finer.index.within_many(finer.coords[pending], r)

        for i, neighbors in zip(pending.tolist(), neighborhoods):
            # may have been absorbed earlier in this chunk
            if consumed[i]:
                continue
            consumed[i] = True

            num_points = int(counts[i])
            wx = float(xs[i]) * num_points
            wy = float(ys[i]) * num_points

            accumulated = None
            if aggregator is not None:
                accumulated = aggregator.seed()
                _accumulate(aggregator, accumulated, finer, i, source_properties)

            cluster_id = encode_cluster_id(i, zoom)

            for j in neighbors.tolist():
                if consumed[j]:
                    continue
                consumed[j] = True

                num_points2 = int(counts[j])
                wx += float(xs[j]) * num_points2
                wy += float(ys[j]) * num_points2
                num_points += num_points2
                parent_ids[j] = cluster_id

                if aggregator is not None:
                    _accumulate(aggregator, accumulated, finer, j, source_properties)

            if num_points == 1:
                out_x.append(float(xs[i]))
                out_y.append(float(ys[i]))
                out_counts.append(1)
                out_ids.append(NO_ID)
                out_sources.append(int(finer.sources[i]))
                out_properties.append(None)
            else:
                parent_ids[i] = cluster_id
                out_x.append(wx / num_points)
                out_y.append(wy / num_points)
                out_counts.append(num_points)
                out_ids.append(cluster_id)
                out_sources.append(-1)
                out_properties.append(accumulated)

    coarser = Level.build(
        zoom,
        out_x,
        out_y,
        out_counts,
        out_ids,
        out_sources,
        out_properties,
        index_factory=index_factory,
        node_size=node_size,
    )
    return coarser, parent_ids


def _log_level(options: ClusterOptions, stats: LevelStats) -> None:
    if options.log:
        logger.info(
            f"z{stats.zoom}: {stats.num_points} clusters in {stats.elapsed_ms:.1f}ms"
        )
    elif logger.isEnabledFor(logging.DEBUG):
        logger.debug(
            f"z{stats.zoom}: {stats.num_points} points, "
            f"{stats.num_clusters} clusters in {stats.elapsed_ms:.1f}ms"
        )


def build_levels(
    xs: np.ndarray,
    ys: np.ndarray,
    sources: np.ndarray,
    options: ClusterOptions,
    *,
    aggregator: Optional[Aggregator] = None,
    source_properties: Optional[Sequence[Optional[Dict[str, Any]]]] = None,
    index_factory: IndexFactory = build_kdtree_index,
    num_input: Optional[int] = None,
) -> Tuple[Dict[int, Level], BuildDiagnostics]:
    """
    Build every level from raw points (``max_zoom + 1``) down to ``min_zoom``.

    Args:
        xs: Plane x of each indexed feature
        ys: Plane y of each indexed feature
        sources: Source feature position of each indexed feature
        options: Validated clustering options
        aggregator: Optional custom property reducer
        source_properties: Properties by source position
        index_factory: Spatial index factory
        num_input: Total features given to ``load`` (for diagnostics)

    Returns:
        (levels keyed by zoom, diagnostics)
    """
    started = time.perf_counter()
    num_indexed = len(xs)
    diagnostics = BuildDiagnostics(
        num_input=num_indexed if num_input is None else num_input,
        num_indexed=num_indexed,
    )

    if options.log:
        logger.info(f"prepare {num_indexed} points")

    level_started = time.perf_counter()
    finer = Level.build(
        options.max_zoom + 1,
        xs,
        ys,
        np.ones(num_indexed, dtype=np.int64),
        np.full(num_indexed, NO_ID, dtype=np.int64),
        sources,
        [None] * num_indexed,
        index_factory=index_factory,
        node_size=options.node_size,
    )
    stats = LevelStats(
        zoom=finer.zoom,
        num_points=len(finer),
        num_clusters=0,
        elapsed_ms=(time.perf_counter() - level_started) * 1000.0,
    )
    diagnostics.levels.append(stats)
    _log_level(options, stats)

    levels: Dict[int, Level] = {}
    for zoom in range(options.max_zoom, options.min_zoom - 1, -1):
        level_started = time.perf_counter()
        coarser, parent_ids = cluster_level(
            finer,
            zoom,
            radius=options.radius,
            extent=options.extent,
            aggregator=aggregator,
            source_properties=source_properties,
            index_factory=index_factory,
            node_size=options.node_size,
        )
        levels[finer.zoom] = finer.publish(parent_ids)
        finer = coarser

        stats = LevelStats(
            zoom=zoom,
            num_points=len(coarser),
            num_clusters=coarser.num_clusters,
            elapsed_ms=(time.perf_counter() - level_started) * 1000.0,
        )
        diagnostics.levels.append(stats)
        _log_level(options, stats)

    levels[finer.zoom] = finer.publish()
    diagnostics.total_ms = (time.perf_counter() - started) * 1000.0

    summary = (
        f"total time: {diagnostics.total_ms:.1f}ms "
        f"({diagnostics.num_indexed} indexed, {diagnostics.num_skipped} skipped)"
    )
    if options.log:
        logger.info(summary)
    elif logger.isEnabledFor(logging.DEBUG):
        logger.debug(summary)

    return levels, diagnostics
