"""
Pytest configuration and shared fixtures for geocluster tests.

This file provides:
- GeoJSON feature builders
- Seeded random point sets
- Prebuilt cluster indexes
"""

from typing import Any, Callable, Dict, List

import numpy as np
import pandas as pd
import pytest

from geocluster import ClusterIndex


# ==============================================================================
# Feature Builders
# ==============================================================================

def _point(lng: float, lat: float, feature_id=None, **properties) -> Dict[str, Any]:
    feature = {
        "type": "Feature",
        "geometry": {"type": "Point", "coordinates": [lng, lat]},
        "properties": properties,
    }
    if feature_id is not None:
        feature["id"] = feature_id
    return feature


@pytest.fixture
def make_point() -> Callable[..., Dict[str, Any]]:
    """Factory for a GeoJSON point feature."""
    return _point


# ==============================================================================
# Sample Point Sets
# ==============================================================================

@pytest.fixture
def rng() -> np.random.Generator:
    """Seeded generator so every run sees the same points."""
    return np.random.default_rng(42)


@pytest.fixture
def random_points(rng) -> List[Dict[str, Any]]:
    """1000 points spread over the whole map."""
    lngs = rng.uniform(-180.0, 180.0, size=1000)
    lats = rng.uniform(-85.0, 85.0, size=1000)
    weights = rng.integers(1, 100, size=1000)
    return [
        _point(float(lng), float(lat), feature_id=i, index=i, weight=int(w))
        for i, (lng, lat, w) in enumerate(zip(lngs, lats, weights))
    ]


@pytest.fixture
def tokyo_points(rng) -> List[Dict[str, Any]]:
    """300 points scattered around three Tokyo neighbourhoods."""
    centres = [
        (139.7671, 35.6812),  # Tokyo Station
        (139.7967, 35.7148),  # Senso-ji
        (139.7006, 35.6595),  # Shibuya
    ]
    features = []
    for c, (lng, lat) in enumerate(centres):
        offsets = rng.normal(scale=0.01, size=(100, 2))
        for dx, dy in offsets:
            features.append(
                _point(lng + float(dx), lat + float(dy), centre=c, weight=1)
            )
    return features


@pytest.fixture
def sample_places_df() -> pd.DataFrame:
    """Small table of places, including one row without coordinates."""
    return pd.DataFrame({
        "id": ["place_1", "place_2", "place_3", "place_4", "place_5"],
        "name": ["Tokyo Station", "Senso-ji Temple", "Shibuya Crossing", "Unknown", "Meiji Shrine"],
        "lat": [35.6812, 35.7148, 35.6595, np.nan, 35.6764],
        "lng": [139.7671, 139.7967, 139.7006, 139.70, 139.6993],
        "rating": [4.5, 4.4, 4.3, 3.0, 4.6],
        "weight": [5, 3, 4, 1, 2],
    })


# ==============================================================================
# Built Indexes
# ==============================================================================

@pytest.fixture
def random_index(random_points) -> ClusterIndex:
    """Default-options index over ``random_points``."""
    return ClusterIndex().load(random_points)


@pytest.fixture
def tokyo_index(tokyo_points) -> ClusterIndex:
    """Default-options index over ``tokyo_points``."""
    return ClusterIndex().load(tokyo_points)
