"""Cluster property aggregators."""

from .aggregators import FIELD_OPERATIONS, Aggregator, FieldAggregator, FunctionAggregator

__all__ = [
    "FIELD_OPERATIONS",
    "Aggregator",
    "FieldAggregator",
    "FunctionAggregator",
]
