"""
Configuration loader for clustering profiles and environment variables.
"""

import os
from pathlib import Path
from typing import Any, Dict, Optional

import yaml
from pydantic import ValidationError

from ..aggregation.aggregators import Aggregator, FieldAggregator
from ..errors import ConfigurationError
from ..schemas.models import ClusterOptions


class ConfigLoader:
    """Load and manage clustering profiles from YAML files and environment."""

    CONFIG_DIR = Path(__file__).parent.parent / "configs"
    ENV_VAR = "GEOCLUSTER_PROFILE"
    DEFAULT_PROFILE = "default"

    @classmethod
    def load_profile(
        cls,
        profile_name: str = DEFAULT_PROFILE,
        config_dir: Optional[Path] = None,
    ) -> Dict[str, Any]:
        """
        Load a clustering profile.

        Args:
            profile_name: Name of the profile (default, dense-markers, vector-tiles)
            config_dir: Directory to read from instead of :attr:`CONFIG_DIR`

        Returns:
            Dictionary with ``options`` and optional ``aggregate`` sections

        Raises:
            FileNotFoundError: If profile doesn't exist
            ConfigurationError: If the file is not a mapping
        """
        config_dir = Path(config_dir) if config_dir is not None else cls.CONFIG_DIR
        profile_path = config_dir / f"{profile_name}.yaml"

        if not profile_path.exists():
            available = sorted(f.stem for f in config_dir.glob("*.yaml"))
            raise FileNotFoundError(
                f"Profile '{profile_name}' not found. Available profiles: {', '.join(available)}"
            )

        with open(profile_path, "r") as f:
            profile = yaml.safe_load(f) or {}

        if not isinstance(profile, dict):
            raise ConfigurationError(f"Profile '{profile_name}' must be a YAML mapping")
        return profile

    @classmethod
    def get_profile_from_env(cls) -> Optional[str]:
        """Get profile name from the GEOCLUSTER_PROFILE environment variable."""
        return os.getenv(cls.ENV_VAR)

    @classmethod
    def load_default_or_env_profile(cls, config_dir: Optional[Path] = None) -> Dict[str, Any]:
        """
        Load the profile named by the environment, or the default profile.

        Returns:
            Configuration dictionary
        """
        profile = cls.get_profile_from_env() or cls.DEFAULT_PROFILE
        return cls.load_profile(profile, config_dir=config_dir)


def options_from_profile(profile: Dict[str, Any]) -> ClusterOptions:
    """
    Build validated options from a profile's ``options`` section.

    Raises:
        ConfigurationError: If the section holds invalid values
    """
    try:
        return ClusterOptions(**(profile.get("options") or {}))
    except ValidationError as exc:
        raise ConfigurationError(f"Invalid options in profile: {exc}") from exc


def aggregator_from_profile(profile: Dict[str, Any]) -> Optional[Aggregator]:
    """Build a :class:`FieldAggregator` from the ``aggregate`` section, if any."""
    fields = profile.get("aggregate")
    if not fields:
        return None
    if not isinstance(fields, dict):
        raise ConfigurationError("Profile 'aggregate' section must map field names to operations")
    return FieldAggregator(fields)


def get_config() -> Dict[str, Any]:
    """Load the active profile (environment or default)."""
    return ConfigLoader.load_default_or_env_profile()
