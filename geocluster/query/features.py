"""GeoJSON shaping for cluster points."""

from __future__ import annotations

import math
from typing import Any, Dict, Union

from ..spatial.levels import Level
from ..spatial.projection import x_lng, y_lat


def round_half_up(value: float) -> int:
    """Round to the nearest integer with ties towards +infinity."""
    return int(math.floor(value + 0.5))


def abbreviate_count(count: int) -> Union[int, str]:
    """
    Short label for a point count.

    >>> abbreviate_count(950), abbreviate_count(1500), abbreviate_count(25400)
    (950, '1.5k', '25k')
    """
    if count >= 10000:
        return f"{round_half_up(count / 1000)}k"
    if count >= 1000:
        tenths = round_half_up(count / 100) / 10
        if tenths.is_integer():
            return f"{int(tenths)}k"
        return f"{tenths}k"
    return count


def cluster_properties(level: Level, position: int) -> Dict[str, Any]:
    """Accumulated properties merged with the standard cluster fields."""
    count = int(level.counts[position])
    cluster_id = int(level.ids[position])
    properties = dict(level.properties[position] or {})
    properties.update(
        cluster=True,
        cluster_id=cluster_id,
        point_count=count,
        point_count_abbreviated=abbreviate_count(count),
    )
    return properties


def cluster_feature(level: Level, position: int) -> Dict[str, Any]:
    """GeoJSON point feature for the aggregate at ``position``."""
    return {
        "type": "Feature",
        "id": int(level.ids[position]),
        "properties": cluster_properties(level, position),
        "geometry": {
            "type": "Point",
            "coordinates": [
                x_lng(float(level.xs[position])),
                y_lat(float(level.ys[position])),
            ],
        },
    }
