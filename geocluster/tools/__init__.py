"""Configuration loading and pandas adapters."""

from .config_loader import (
    ConfigLoader,
    aggregator_from_profile,
    get_config,
    options_from_profile,
)
from .frames import features_from_dataframe, features_to_dataframe

__all__ = [
    "ConfigLoader",
    "aggregator_from_profile",
    "get_config",
    "options_from_profile",
    "features_from_dataframe",
    "features_to_dataframe",
]
