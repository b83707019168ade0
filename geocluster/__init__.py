"""
geocluster: Hierarchical clustering of geographic points for web maps.

Load GeoJSON point features once, then query clusters per zoom and bounding
box, drill into children and leaves, or cut vector-tile style output.
"""

from .aggregation import FieldAggregator, FunctionAggregator
from .errors import ClusterNotFoundError, ConfigurationError, GeoClusterError
from .query import ClusterIndex, Tile, TileFeature
from .schemas import ClusterOptions

__version__ = "0.1.0"

__all__ = [
    "ClusterIndex",
    "ClusterOptions",
    "FieldAggregator",
    "FunctionAggregator",
    "Tile",
    "TileFeature",
    "ClusterNotFoundError",
    "ConfigurationError",
    "GeoClusterError",
]
