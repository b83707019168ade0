"""
Vector-tile style feature extraction.

Features are placed in tile-local integer coordinates (``0..extent`` inside
the tile) with a padding of one merge radius so markers near a tile edge are
drawn in both neighbouring tiles. Tiles on the first and last column also
pick up points from the opposite side of the antimeridian.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Callable, Dict, Iterable, List, Optional

from ..spatial.levels import Level
from .features import cluster_properties, round_half_up


# Vector tile geometry type for points
POINT_GEOMETRY = 1


@dataclass
class TileFeature:
    """One point feature of a tile."""

    geometry: List[List[int]]
    """Single ``[x, y]`` pair in tile-local units."""

    tags: Dict[str, Any]
    id: Optional[Any] = None
    type: int = POINT_GEOMETRY

    def to_dict(self) -> Dict[str, Any]:
        data = {"type": self.type, "geometry": self.geometry, "tags": self.tags}
        if self.id is not None:
            data["id"] = self.id
        return data


@dataclass
class Tile:
    """Features extracted for one (z, x, y) tile."""

    features: List[TileFeature] = field(default_factory=list)

    def to_dict(self) -> Dict[str, Any]:
        return {"features": [f.to_dict() for f in self.features]}


def _add_tile_features(
    tile: Tile,
    level: Level,
    positions: Iterable[int],
    x: float,
    y: float,
    z2: float,
    extent: int,
    source_feature: Callable[[int], Dict[str, Any]],
) -> None:
    for position in positions:
        px = float(level.xs[position])
        py = float(level.ys[position])
        if level.is_cluster(position):
            tags = cluster_properties(level, position)
            feature_id = int(level.ids[position])
        else:
            source = source_feature(int(level.sources[position]))
            tags = source.get("properties")
            feature_id = source.get("id")

        tile.features.append(
            TileFeature(
                geometry=[[
                    round_half_up(extent * (px * z2 - x)),
                    round_half_up(extent * (py * z2 - y)),
                ]],
                tags=tags,
                id=feature_id,
            )
        )


def extract_tile(
    level: Level,
    z: int,
    x: int,
    y: int,
    *,
    radius: float,
    extent: int,
    source_feature: Callable[[int], Dict[str, Any]],
) -> Optional[Tile]:
    """
    Collect the features of tile (z, x, y) from ``level``.

    Args:
        level: Level to read (already clamped to the built zoom range)
        z: Tile zoom, used unclamped for tile arithmetic
        x: Tile column
        y: Tile row
        radius: Merge radius in pixels (used as padding)
        extent: Tile extent in pixels
        source_feature: Looks up a source feature by position

    Returns:
        The tile, or None when no feature falls inside it
    """
    z2 = 2.0 ** z
    p = radius / extent
    top = (y - p) / z2
    bottom = (y + 1 + p) / z2

    tile = Tile()
    _add_tile_features(
        tile,
        level,
        level.index.range((x - p) / z2, top, (x + 1 + p) / z2, bottom),
        x, y, z2, extent, source_feature,
    )

    if x == 0:
        _add_tile_features(
            tile,
            level,
            level.index.range(1 - p / z2, top, 1, bottom),
            z2, y, z2, extent, source_feature,
        )
    if x == z2 - 1:
        _add_tile_features(
            tile,
            level,
            level.index.range(0, top, p / z2, bottom),
            -1, y, z2, extent, source_feature,
        )

    return tile if tile.features else None
