"""
Compound cluster identifiers.

A cluster id packs the position of the cluster's representative point in
the finer level together with that level's zoom:

    id = (origin_position << ZOOM_BITS) | origin_zoom

The zoom field is ``ZOOM_BITS`` wide, so the finest level (``max_zoom + 1``)
must fit in it. That caps ``max_zoom`` at ``MAX_ZOOM``.
"""

from __future__ import annotations

from dataclasses import dataclass
from numbers import Integral
from typing import Optional


ZOOM_BITS = 5
ZOOM_MASK = (1 << ZOOM_BITS) - 1

# origin_zoom = max_zoom + 1 must fit in ZOOM_BITS
MAX_ZOOM = ZOOM_MASK - 1

# Marker for "no cluster id" in level arrays (leaves, unabsorbed points)
NO_ID = -1


@dataclass(frozen=True)
class ClusterId:
    """Unpacked cluster identifier."""

    origin_position: int
    """Row of the representative point in level ``origin_zoom``."""

    origin_zoom: int
    """Zoom of the finer level the cluster was built from."""

    @property
    def zoom(self) -> int:
        """Zoom of the level the cluster itself lives on."""
        return self.origin_zoom - 1

    def pack(self) -> int:
        """Return the wire-compatible integer form."""
        return (self.origin_position << ZOOM_BITS) | self.origin_zoom


def encode_cluster_id(position: int, zoom: int) -> int:
    """
    Encode the id of a cluster created on level ``zoom``.

    Args:
        position: Row of the representative point in level ``zoom + 1``
        zoom: Level the new cluster is emitted on

    Returns:
        Packed integer id
    """
    return ClusterId(origin_position=int(position), origin_zoom=int(zoom) + 1).pack()


def decode_cluster_id(cluster_id: int) -> ClusterId:
    """Split a packed id into its position and origin zoom."""
    cluster_id = int(cluster_id)
    return ClusterId(
        origin_position=cluster_id >> ZOOM_BITS,
        origin_zoom=cluster_id & ZOOM_MASK,
    )


def try_decode_cluster_id(cluster_id) -> Optional[ClusterId]:
    """Decode ``cluster_id``, returning None for negative or non-integer values."""
    if isinstance(cluster_id, bool) or not isinstance(cluster_id, Integral):
        return None
    if cluster_id < 0:
        return None
    return decode_cluster_id(cluster_id)
