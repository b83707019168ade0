"""Configuration schemas."""

from .models import ClusterOptions

__all__ = ["ClusterOptions"]
