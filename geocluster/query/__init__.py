"""
geocluster/query: The read side of the cluster hierarchy.

This module provides the :class:`ClusterIndex` facade plus GeoJSON and tile
shaping of cluster points.
"""

from .engine import ClusterIndex
from .features import abbreviate_count, cluster_feature, cluster_properties
from .tiles import Tile, TileFeature, extract_tile

__all__ = [
    "ClusterIndex",
    "abbreviate_count",
    "cluster_feature",
    "cluster_properties",
    "Tile",
    "TileFeature",
    "extract_tile",
]
