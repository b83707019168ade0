"""pandas adapters between tabular point data and GeoJSON features."""

from __future__ import annotations

from typing import Any, Dict, Iterable, List, Optional

import numpy as np
import pandas as pd


FEATURE_COLUMNS = ["lng", "lat", "cluster", "cluster_id", "point_count", "id"]


def features_from_dataframe(
    df: pd.DataFrame,
    lat_col: str = "lat",
    lng_col: str = "lng",
    id_col: Optional[str] = None,
) -> List[Dict[str, Any]]:
    """Turn each row of ``df`` into a GeoJSON point feature.

    Columns other than the coordinate and id columns become feature
    properties. Rows with a missing coordinate get ``geometry=None`` so that
    :meth:`ClusterIndex.load` keeps their position but never indexes them.

    Raises:
        KeyError: If a coordinate or id column is missing
    """

    missing = [c for c in (lat_col, lng_col, id_col) if c is not None and c not in df]
    if missing:
        raise KeyError(f"Missing column(s): {', '.join(missing)}")

    property_columns = [c for c in df.columns if c not in (lat_col, lng_col, id_col)]
    lats = pd.to_numeric(df[lat_col], errors="coerce").to_numpy(dtype=float)
    lngs = pd.to_numeric(df[lng_col], errors="coerce").to_numpy(dtype=float)
    valid = ~(np.isnan(lats) | np.isnan(lngs))
    if property_columns:
        records = df[property_columns].to_dict("records")
    else:
        records = [{} for _ in range(len(df))]
    ids = df[id_col].tolist() if id_col is not None else None

    features = []
    for i, properties in enumerate(records):
        geometry = None
        if valid[i]:
            geometry = {"type": "Point", "coordinates": [float(lngs[i]), float(lats[i])]}
        feature = {"type": "Feature", "geometry": geometry, "properties": properties}
        if ids is not None:
            feature["id"] = ids[i]
        features.append(feature)
    return features


def features_to_dataframe(features: Iterable[Dict[str, Any]]) -> pd.DataFrame:
    """Flatten query results (points and clusters) into one row per feature."""

    rows = []
    for feature in features:
        properties = dict(feature.get("properties") or {})
        lng, lat = (feature.get("geometry") or {}).get("coordinates", (np.nan, np.nan))[:2]
        is_cluster = bool(properties.pop("cluster", False))
        row = {
            "lng": lng,
            "lat": lat,
            "cluster": is_cluster,
            "cluster_id": properties.pop("cluster_id", None),
            "point_count": properties.pop("point_count", 1),
            "id": feature.get("id"),
        }
        properties.pop("point_count_abbreviated", None)
        for key, value in properties.items():
            row.setdefault(key, value)
        rows.append(row)

    if not rows:
        return pd.DataFrame(columns=FEATURE_COLUMNS)
    return pd.DataFrame(rows)
