"""Pydantic models for clustering configuration."""

from __future__ import annotations

import math
from typing import Any, Dict

from pydantic import BaseModel, Field, model_validator

from ..spatial.ids import MAX_ZOOM


class ClusterOptions(BaseModel):
    """Options controlling how the cluster hierarchy is built.

    Field names are snake_case; the camelCase spellings used by map
    clients (``minZoom``, ``maxZoom``, ``nodeSize``) are accepted too.
    """

    min_zoom: int = Field(0, ge=0, le=MAX_ZOOM, alias="minZoom", description="Lowest zoom clustered")
    max_zoom: int = Field(16, ge=0, le=MAX_ZOOM, alias="maxZoom", description="Highest zoom clustered")
    radius: float = Field(40.0, gt=0, description="Merge radius in pixels")
    extent: int = Field(512, gt=0, description="Tile extent the radius is relative to")
    node_size: int = Field(64, ge=1, alias="nodeSize", description="Spatial index leaf size")
    log: bool = Field(False, description="Log build timings at INFO level")

    model_config = {"populate_by_name": True, "frozen": True, "extra": "forbid"}

    @model_validator(mode="after")
    def _check_zoom_range(self) -> "ClusterOptions":
        if self.min_zoom > self.max_zoom:
            raise ValueError(
                f"min_zoom ({self.min_zoom}) must not exceed max_zoom ({self.max_zoom})"
            )
        return self

    def limit_zoom(self, zoom: float) -> int:
        """Clamp ``zoom`` to the built range ``[min_zoom, max_zoom + 1]``."""
        # clamp first so infinite zooms never reach floor()
        zoom = max(self.min_zoom, min(zoom, self.max_zoom + 1))
        return int(math.floor(zoom))

    def to_dict(self) -> Dict[str, Any]:
        return self.model_dump()
