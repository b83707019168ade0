"""Spherical-mercator helpers mapping (lng, lat) onto the unit square."""

from __future__ import annotations

import math

import numpy as np


def lng_x(lng: float) -> float:
    """Longitude in degrees to plane x in [0, 1]."""
    return lng / 360.0 + 0.5


def lat_y(lat: float) -> float:
    """Latitude in degrees to plane y in [0, 1], clamped at the poles."""
    sin = math.sin(lat * math.pi / 180.0)
    if sin >= 1.0:
        return 0.0
    if sin <= -1.0:
        return 1.0
    y = 0.5 - 0.25 * math.log((1.0 + sin) / (1.0 - sin)) / math.pi
    return min(max(y, 0.0), 1.0)


def x_lng(x: float) -> float:
    """Plane x back to longitude in degrees."""
    return (x - 0.5) * 360.0


def y_lat(y: float) -> float:
    """Plane y back to latitude in degrees."""
    y2 = (180.0 - y * 360.0) * math.pi / 180.0
    return 360.0 * math.atan(math.exp(y2)) / math.pi - 90.0


def project_lng(lngs) -> np.ndarray:
    """Vectorized :func:`lng_x`."""
    return np.asarray(lngs, dtype=float) / 360.0 + 0.5


def project_lat(lats) -> np.ndarray:
    """Vectorized :func:`lat_y`.

    The poles produce infinite logarithms which the final clip folds back
    onto 0 and 1.
    """
    sin = np.sin(np.asarray(lats, dtype=float) * np.pi / 180.0)
    with np.errstate(divide="ignore", invalid="ignore"):
        y = 0.5 - 0.25 * np.log((1.0 + sin) / (1.0 - sin)) / np.pi
    return np.clip(y, 0.0, 1.0)


__all__ = [
    "lng_x",
    "lat_y",
    "x_lng",
    "y_lat",
    "project_lng",
    "project_lat",
]
