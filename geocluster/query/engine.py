"""
Hierarchical point clustering index.

:class:`ClusterIndex` loads a static set of point features, builds one
clustered level per zoom and answers read-only queries against them:

- clusters in a bounding box at a zoom (:meth:`ClusterIndex.get_clusters`)
- immediate children of a cluster (:meth:`ClusterIndex.get_children`)
- paginated leaves under a cluster (:meth:`ClusterIndex.get_leaves`)
- the zoom at which a cluster splits (:meth:`ClusterIndex.get_cluster_expansion_zoom`)
- per-tile features (:meth:`ClusterIndex.get_tile`)

Example:
    >>> index = ClusterIndex(radius=60, max_zoom=14).load(features)
    >>> index.get_clusters([-180, -85, 180, 85], zoom=2)
"""

from __future__ import annotations

import logging
import math
from pathlib import Path
from types import MappingProxyType
from typing import Any, Dict, Iterable, List, Mapping, Optional, Sequence, Tuple, Union

import numpy as np
from pydantic import ValidationError

from ..aggregation.aggregators import Aggregator, FunctionAggregator
from ..errors import ClusterNotFoundError, ConfigurationError, GeoClusterError
from ..schemas.models import ClusterOptions
from ..spatial.clustering import BuildDiagnostics, build_levels, merge_radius
from ..spatial.ids import try_decode_cluster_id
from ..spatial.index import build_kdtree_index
from ..spatial.levels import IndexFactory, Level
from ..spatial.projection import lat_y, lng_x, project_lat, project_lng
from ..tools.config_loader import ConfigLoader, aggregator_from_profile, options_from_profile
from .features import cluster_feature
from .tiles import Tile, extract_tile


logger = logging.getLogger(__name__)

Feature = Dict[str, Any]

_AGGREGATION_KEYS = ("reduce", "initial", "map")


def _resolve_options(
    options: Union[ClusterOptions, Mapping[str, Any], None],
    overrides: Dict[str, Any],
    aggregator: Optional[Aggregator],
) -> Tuple[ClusterOptions, Optional[Aggregator]]:
    if isinstance(options, ClusterOptions):
        data = options.model_dump()
    else:
        data = dict(options or {})
    data.update(overrides)

    functions = {key: data.pop(key) for key in _AGGREGATION_KEYS if key in data}
    if functions.get("reduce") is not None:
        if aggregator is not None:
            raise ConfigurationError("Pass either an aggregator or reduce/initial/map, not both")
        aggregator = FunctionAggregator(
            reduce=functions["reduce"],
            initial=functions.get("initial"),
            map=functions.get("map"),
        )

    try:
        resolved = ClusterOptions(**data)
    except ValidationError as exc:
        raise ConfigurationError(f"Invalid clustering options: {exc}") from exc
    return resolved, aggregator


def _normalize_lng(lng: float) -> float:
    return ((lng + 180.0) % 360.0) - 180.0


class ClusterIndex:
    """
    Multi-zoom point clustering index.

    Args:
        options: :class:`ClusterOptions` or a mapping of option values
        aggregator: Optional custom cluster property reducer
        index_factory: Builds a :class:`~geocluster.spatial.index.SpatialIndex`
            from an ``(n, 2)`` coordinate array and a node size
        **overrides: Individual option values; ``reduce``, ``initial`` and
            ``map`` callables are accepted as a shorthand for a
            :class:`FunctionAggregator`

    Raises:
        ConfigurationError: If the options are invalid
    """

    def __init__(
        self,
        options: Union[ClusterOptions, Mapping[str, Any], None] = None,
        *,
        aggregator: Optional[Aggregator] = None,
        index_factory: IndexFactory = build_kdtree_index,
        **overrides: Any,
    ):
        self.options, self.aggregator = _resolve_options(options, overrides, aggregator)
        self.index_factory = index_factory
        self.points: List[Feature] = []
        self._levels: Dict[int, Level] = {}
        self.diagnostics: Optional[BuildDiagnostics] = None

    @classmethod
    def from_profile(
        cls,
        name: Optional[str] = None,
        config_dir: Optional[Path] = None,
        **overrides: Any,
    ) -> "ClusterIndex":
        """
        Create an index from a YAML profile.

        Args:
            name: Profile to load; falls back to the
                ``GEOCLUSTER_PROFILE`` environment variable, then ``default``
            config_dir: Directory holding the profiles
            **overrides: Option values taking precedence over the profile
        """
        name = name or ConfigLoader.get_profile_from_env() or ConfigLoader.DEFAULT_PROFILE
        profile = ConfigLoader.load_profile(name, config_dir=config_dir)
        options = options_from_profile(profile).model_dump()
        options.update(overrides)
        return cls(options, aggregator=aggregator_from_profile(profile))

    # ------------------------------------------------------------------
    # Build
    # ------------------------------------------------------------------

    def load(self, points: Iterable[Feature]) -> "ClusterIndex":
        """
        Index ``points`` and build the cluster hierarchy.

        Features without a geometry are kept in :attr:`points` (so positions
        match the input) but never indexed or returned. Calling ``load``
        again discards the previous hierarchy.

        Returns:
            self, for chaining
        """
        self.points = list(points)

        sources = [i for i, p in enumerate(self.points) if p.get("geometry")]
        lngs = [self.points[i]["geometry"]["coordinates"][0] for i in sources]
        lats = [self.points[i]["geometry"]["coordinates"][1] for i in sources]

        source_properties = None
        if self.aggregator is not None:
            source_properties = [p.get("properties") for p in self.points]

        self._levels, self.diagnostics = build_levels(
            project_lng(lngs),
            project_lat(lats),
            np.asarray(sources, dtype=np.int64),
            self.options,
            aggregator=self.aggregator,
            source_properties=source_properties,
            index_factory=self.index_factory,
            num_input=len(self.points),
        )

        if logger.isEnabledFor(logging.DEBUG):
            logger.debug(
                f"Loaded {self.diagnostics.num_indexed}/{self.diagnostics.num_input} features "
                f"into {len(self._levels)} levels"
            )
        return self

    @property
    def levels(self) -> Mapping[int, Level]:
        """Built levels keyed by zoom (read-only)."""
        return MappingProxyType(self._levels)

    def _level(self, zoom: int) -> Level:
        if not self._levels:
            raise GeoClusterError("No points loaded; call load() first")
        return self._levels[self.options.limit_zoom(zoom)]

    def _feature(self, level: Level, position: int) -> Feature:
        if level.is_cluster(position):
            return cluster_feature(level, position)
        return self.points[int(level.sources[position])]

    # ------------------------------------------------------------------
    # Queries
    # ------------------------------------------------------------------

    def get_clusters(self, bbox: Sequence[float], zoom: float) -> List[Feature]:
        """
        Clusters and points inside ``bbox`` at ``zoom``.

        Args:
            bbox: ``[west, south, east, north]`` in degrees; longitudes are
                wrapped and latitudes clamped, so any values are accepted
            zoom: Map zoom; floored and clamped to the built range

        Returns:
            Source features for individual points and cluster features for
            aggregates. A box crossing the antimeridian is queried as two
            halves whose results are concatenated.
        """
        west, south, east, north = (float(v) for v in bbox)
        min_lng = _normalize_lng(west)
        min_lat = max(-90.0, min(90.0, south))
        max_lng = 180.0 if east == 180 else _normalize_lng(east)
        max_lat = max(-90.0, min(90.0, north))

        if east - west >= 360:
            min_lng = -180.0
            max_lng = 180.0
        elif min_lng > max_lng:
            eastern = self.get_clusters([min_lng, min_lat, 180.0, max_lat], zoom)
            western = self.get_clusters([-180.0, min_lat, max_lng, max_lat], zoom)
            return eastern + western

        level = self._level(zoom)
        positions = level.index.range(
            lng_x(min_lng), lat_y(max_lat), lng_x(max_lng), lat_y(min_lat)
        )
        return [self._feature(level, int(i)) for i in positions]

    def _children(self, cluster_id: int) -> Tuple[Level, np.ndarray]:
        decoded = try_decode_cluster_id(cluster_id)
        if decoded is None:
            raise ClusterNotFoundError(cluster_id)

        level = self._levels.get(decoded.origin_zoom)
        if level is None or decoded.origin_position >= len(level):
            raise ClusterNotFoundError(cluster_id)

        r = merge_radius(self.options.radius, self.options.extent, decoded.origin_zoom - 1)
        origin = decoded.origin_position
        candidates = level.index.within(float(level.xs[origin]), float(level.ys[origin]), r)
        children = candidates[level.parent_ids[candidates] == cluster_id]
        if len(children) == 0:
            raise ClusterNotFoundError(cluster_id)
        return level, children

    def get_children(self, cluster_id: int) -> List[Feature]:
        """
        Immediate children of a cluster, one zoom finer.

        Raises:
            ClusterNotFoundError: If ``cluster_id`` does not name a cluster
        """
        level, children = self._children(cluster_id)
        return [self._feature(level, int(i)) for i in children]

    def get_leaves(
        self,
        cluster_id: int,
        limit: Optional[int] = 10,
        offset: int = 0,
    ) -> List[Feature]:
        """
        Source features under a cluster, depth first.

        Args:
            cluster_id: Cluster to expand
            limit: Maximum number of leaves; None for all of them
            offset: Number of leaves to skip

        Raises:
            ClusterNotFoundError: If ``cluster_id`` does not name a cluster
        """
        leaves: List[Feature] = []
        if limit is not None and limit <= 0:
            return leaves
        self._append_leaves(leaves, cluster_id, math.inf if limit is None else limit, offset, 0)
        return leaves

    def _append_leaves(
        self,
        result: List[Feature],
        cluster_id: int,
        limit: float,
        offset: int,
        skipped: int,
    ) -> int:
        level, children = self._children(cluster_id)

        for position in children.tolist():
            if level.is_cluster(position):
                count = int(level.counts[position])
                if skipped + count <= offset:
                    # whole subtree falls before the offset
                    skipped += count
                else:
                    skipped = self._append_leaves(
                        result, int(level.ids[position]), limit, offset, skipped
                    )
            elif skipped < offset:
                skipped += 1
            else:
                result.append(self.points[int(level.sources[position])])

            if len(result) >= limit:
                break

        return skipped

    def get_cluster_expansion_zoom(self, cluster_id: int) -> int:
        """
        Zoom at which a cluster breaks into more than one child.

        Chains of single-child clusters are followed downwards; the walk
        stops at ``max_zoom + 1`` at the latest.

        Raises:
            ClusterNotFoundError: If ``cluster_id`` does not name a cluster
        """
        decoded = try_decode_cluster_id(cluster_id)
        if decoded is None:
            raise ClusterNotFoundError(cluster_id)

        cluster_zoom = decoded.zoom
        while cluster_zoom <= self.options.max_zoom:
            level, children = self._children(cluster_id)
            cluster_zoom += 1
            if len(children) != 1:
                break
            cluster_id = int(level.ids[children[0]])
        return cluster_zoom

    def get_tile(self, z: int, x: int, y: int) -> Optional[Tile]:
        """
        Features of map tile (z, x, y) in tile-local integer coordinates.

        Returns:
            A :class:`Tile`, or None when the tile holds no features
        """
        return extract_tile(
            self._level(z),
            z,
            x,
            y,
            radius=self.options.radius,
            extent=self.options.extent,
            source_feature=self.points.__getitem__,
        )
