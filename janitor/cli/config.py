"""CLI configuration.

Settings come from a YAML file ($JANITOR_CONFIG or ~/.janitor/config.yaml),
then environment variables override individual values.

Example config.yaml:

    storage_path: /var/lib/janitor/records
    log_level: WARNING
    override_tag:
      tag_key: janitor
      exempt_value: donotmark
      resource_types: [EBS_VOLUME]
      idle_states: [available]
"""

from __future__ import annotations

import os
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Dict, List, Optional, Union

import yaml

from janitor.models.resource import ResourceType
from janitor.rules.override import EXEMPT_VALUE, JANITOR_TAG, OverridePolicyConfig


def default_config_path() -> Path:
    return Path(os.environ.get("JANITOR_CONFIG") or Path.home() / ".janitor" / "config.yaml")


@dataclass
class Config:
    """Janitor CLI configuration.

    Attributes:
        storage_path: Directory for cluster records (None uses the storage default)
        log_level: Default log level
        janitor_tag: Name of the owner override tag
        exempt_value: Override tag value exempting a resource from cleanup
        resource_types: Resource types governed by the override tag
        idle_states: Live states meaning a resource is not in use
    """

    storage_path: Optional[str] = None
    log_level: str = "INFO"
    janitor_tag: str = JANITOR_TAG
    exempt_value: str = EXEMPT_VALUE
    resource_types: List[str] = field(default_factory=lambda: [ResourceType.EBS_VOLUME.value])
    idle_states: List[str] = field(default_factory=lambda: ["available"])

    @classmethod
    def load(cls, path: Optional[Union[str, Path]] = None) -> Config:
        """Load configuration from file and environment.

        Args:
            path: Config file path (default: $JANITOR_CONFIG or ~/.janitor/config.yaml)

        Returns:
            Config instance; defaults are used when the file does not exist

        Raises:
            ValueError: If the file is not a YAML mapping
        """
        config_path = Path(path) if path else default_config_path()
        data: Dict[str, Any] = {}

        if config_path.exists():
            with open(config_path, "r") as f:
                loaded = yaml.safe_load(f)
            if loaded is not None and not isinstance(loaded, dict):
                raise ValueError(f"Invalid config file {config_path}: expected a mapping")
            data = loaded or {}

        config = cls.from_dict(data)

        # Environment overrides
        if os.environ.get("JANITOR_STORAGE_PATH"):
            config.storage_path = os.environ["JANITOR_STORAGE_PATH"]
        if os.environ.get("JANITOR_LOG_LEVEL"):
            config.log_level = os.environ["JANITOR_LOG_LEVEL"]

        return config

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> Config:
        """Create config from a parsed YAML mapping.

        Raises:
            ValueError: If a section or list setting has the wrong shape
        """
        if not isinstance(data, dict):
            raise ValueError(f"Config must be a mapping, got {type(data).__name__}")
        override = data.get("override_tag") or {}
        if not isinstance(override, dict):
            raise ValueError(f"override_tag must be a mapping, got {type(override).__name__}")
        defaults = cls()

        return cls(
            storage_path=data.get("storage_path"),
            log_level=str(data.get("log_level", defaults.log_level)),
            janitor_tag=str(override.get("tag_key", defaults.janitor_tag)),
            exempt_value=str(override.get("exempt_value", defaults.exempt_value)),
            resource_types=_string_list(override, "resource_types", defaults.resource_types),
            idle_states=_string_list(override, "idle_states", defaults.idle_states),
        )

    def override_policy_config(self) -> OverridePolicyConfig:
        """Build the immutable override policy settings.

        Raises:
            ValueError: If a resource type name is unknown
        """
        resource_types = set()
        for type_name in self.resource_types:
            try:
                resource_types.add(ResourceType(type_name.upper()))
            except ValueError:
                raise ValueError(f"Unknown resource type in config: {type_name}")

        return OverridePolicyConfig(
            tag_key=self.janitor_tag,
            exempt_value=self.exempt_value,
            resource_types=frozenset(resource_types),
            idle_states=frozenset(self.idle_states),
        )


def _string_list(section: Dict[str, Any], key: str, default: List[str]) -> List[str]:
    values = section.get(key, default)
    if not isinstance(values, (list, tuple)):
        raise ValueError(f"override_tag.{key} must be a list, got {type(values).__name__}")
    return [str(value) for value in values]
