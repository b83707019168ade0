"""
geocluster/spatial: Projection, cluster ids, point indexes and the level builder.

Everything here works in the unit-square Web Mercator plane; degrees only
appear at the projection boundary.
"""

from .clustering import (
    BuildDiagnostics,
    LevelStats,
    build_levels,
    cluster_level,
    merge_radius,
)
from .ids import (
    MAX_ZOOM,
    NO_ID,
    ClusterId,
    decode_cluster_id,
    encode_cluster_id,
)
from .index import KDTreeIndex, SpatialIndex, build_kdtree_index
from .levels import ClusterPoint, Level
from .projection import lat_y, lng_x, x_lng, y_lat

__all__ = [
    "BuildDiagnostics",
    "LevelStats",
    "build_levels",
    "cluster_level",
    "merge_radius",
    "MAX_ZOOM",
    "NO_ID",
    "ClusterId",
    "decode_cluster_id",
    "encode_cluster_id",
    "KDTreeIndex",
    "SpatialIndex",
    "build_kdtree_index",
    "ClusterPoint",
    "Level",
    "lat_y",
    "lng_x",
    "x_lng",
    "y_lat",
]
