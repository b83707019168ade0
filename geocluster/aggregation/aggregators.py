"""
Custom cluster property aggregation.

An :class:`Aggregator` folds the properties of every point absorbed into a
cluster into one accumulator, which becomes the cluster's custom
properties. Three steps are involved:

- ``seed()`` creates an empty accumulator for a new cluster
- ``project(properties)`` maps a source feature's properties to the value
  that gets folded (aggregates fold their accumulator as-is)
- ``combine(accumulator, mapped)`` folds one value into the accumulator
  in place

When no aggregator is configured clusters carry no custom properties.
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from typing import Any, Callable, Dict, Mapping, Optional

from ..errors import ConfigurationError


class Aggregator(ABC):
    """Pluggable cluster property reducer."""

    @abstractmethod
    def seed(self) -> Dict[str, Any]:
        """Return a fresh accumulator."""
        pass

    @abstractmethod
    def project(self, properties: Optional[Mapping[str, Any]]) -> Any:
        """Map a leaf's source properties before folding."""
        pass

    @abstractmethod
    def combine(self, accumulator: Dict[str, Any], mapped: Any) -> None:
        """Fold ``mapped`` into ``accumulator`` in place."""
        pass


def _identity(properties):
    return properties


class FunctionAggregator(Aggregator):
    """
    Aggregator built from plain callables.

    Args:
        reduce: ``reduce(accumulated, props)`` mutating ``accumulated``
        initial: Factory for the starting accumulator (default: ``dict``)
        map: Transform applied to leaf properties (default: identity)

    Examples:
        >>> agg = FunctionAggregator(
        ...     reduce=lambda acc, props: acc.update(sum=acc["sum"] + props["sum"]),
        ...     initial=lambda: {"sum": 0},
        ...     map=lambda props: {"sum": props["population"]},
        ... )
    """

    def __init__(
        self,
        reduce: Callable[[Dict[str, Any], Any], None],
        initial: Optional[Callable[[], Dict[str, Any]]] = None,
        map: Optional[Callable[[Any], Any]] = None,
    ):
        if not callable(reduce):
            raise ConfigurationError("reduce must be callable")
        self._reduce = reduce
        self._initial = initial or dict
        self._map = map or _identity

    def seed(self) -> Dict[str, Any]:
        return self._initial()

    def project(self, properties):
        return self._map(properties)

    def combine(self, accumulator, mapped) -> None:
        self._reduce(accumulator, mapped)


def _fold_sum(current, value):
    return current + value


def _fold_min(current, value):
    return value if value < current else current


def _fold_max(current, value):
    return value if value > current else current


# Registry of declarative operations usable from YAML profiles
FIELD_OPERATIONS: Dict[str, Callable[[Any, Any], Any]] = {
    "sum": _fold_sum,
    "min": _fold_min,
    "max": _fold_max,
}


class FieldAggregator(Aggregator):
    """
    Declarative per-field aggregation.

    Each entry of ``fields`` maps a source property name to one of the
    operations in :data:`FIELD_OPERATIONS`. The cluster property keeps the
    same name. Missing or ``None`` values are ignored, so a field absent
    from every absorbed point is absent from the cluster too.

    Args:
        fields: Mapping of property name -> operation name

    Raises:
        ConfigurationError: If an operation name is unknown
    """

    def __init__(self, fields: Mapping[str, str]):
        unknown = {op for op in fields.values() if op not in FIELD_OPERATIONS}
        if unknown:
            raise ConfigurationError(
                f"Unknown aggregation operation(s): {', '.join(sorted(unknown))}. "
                f"Available: {', '.join(FIELD_OPERATIONS)}"
            )
        self.fields: Dict[str, str] = dict(fields)

    def seed(self) -> Dict[str, Any]:
        return {}

    def project(self, properties):
        properties = properties or {}
        return {
            name: properties[name]
            for name in self.fields
            if properties.get(name) is not None
        }

    def combine(self, accumulator, mapped) -> None:
        for name, op in self.fields.items():
            value = (mapped or {}).get(name)
            if value is None:
                continue
            if name in accumulator:
                accumulator[name] = FIELD_OPERATIONS[op](accumulator[name], value)
            else:
                accumulator[name] = value

    def to_dict(self) -> Dict[str, str]:
        """Return the field specification, as stored in profiles."""
        return dict(self.fields)
