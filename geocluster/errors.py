"""
Exception hierarchy for geocluster.

Queries raise :class:`ClusterNotFoundError` for unknown cluster ids and
construction raises :class:`ConfigurationError` for invalid options.
"""


class GeoClusterError(Exception):
    """Base class for all geocluster errors."""


class ClusterNotFoundError(GeoClusterError, LookupError):
    """No cluster with the requested id exists in the built hierarchy."""

    def __init__(self, cluster_id, reason: str = "No cluster with the specified id."):
        self.cluster_id = cluster_id
        super().__init__(f"{reason} (cluster_id={cluster_id!r})")


class ConfigurationError(GeoClusterError, ValueError):
    """Invalid clustering options or aggregation setup."""
