"""Resource model for cloud resources evaluated by janitor rules."""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from typing import Any, Dict, Optional


class ResourceType(Enum):
    """Resource categories managed by the janitor."""

    INSTANCE = "INSTANCE"
    ASG = "ASG"
    EBS_VOLUME = "EBS_VOLUME"
    EBS_SNAPSHOT = "EBS_SNAPSHOT"
    LAUNCH_CONFIG = "LAUNCH_CONFIG"
    IMAGE = "IMAGE"
    S3_BUCKET = "S3_BUCKET"
    SECURITY_GROUP = "SECURITY_GROUP"
    ELB = "ELB"


@dataclass
class Resource:
    """A cloud resource as seen by the cleanup rules.

    Resources are built by the discovery layer. Rules never change identity,
    state or tags; they only fill in the termination fields through
    mark_for_termination().

    Attributes:
        resource_id: Resource identifier (e.g., "vol-0abc")
        resource_type: Resource category
        region: Cloud region
        state: Live state reported by the provider (e.g., "available", "in-use")
        tags: Resource tags as key-value pairs
        owner_email: Owner contact (optional)
        launch_time: When the resource was created (optional)
        expected_termination_time: When cleanup is scheduled (set by rules)
        termination_reason: Why cleanup is scheduled (set by rules)
    """

    resource_id: str
    resource_type: ResourceType
    region: str = "us-east-1"
    state: Optional[str] = None
    tags: Dict[str, str] = field(default_factory=dict)
    owner_email: Optional[str] = None
    launch_time: Optional[datetime] = None
    expected_termination_time: Optional[datetime] = None
    termination_reason: Optional[str] = None

    def __post_init__(self) -> None:
        if not self.resource_id:
            raise ValueError("resource_id cannot be empty")
        if not isinstance(self.resource_type, ResourceType):
            raise ValueError(f"Invalid resource type: {self.resource_type!r}. Must be ResourceType enum.")

    def get_tag(self, key: str) -> Optional[str]:
        """Return the value of a tag, or None when the tag is not set."""
        return self.tags.get(key)

    @property
    def is_marked(self) -> bool:
        """Whether a rule has scheduled this resource for cleanup."""
        return self.expected_termination_time is not None

    def mark_for_termination(self, when: datetime, reason: str) -> None:
        """Schedule the resource for cleanup.

        Args:
            when: Expected termination time
            reason: Human-readable termination reason
        """
        if when is None:
            raise ValueError("termination time cannot be None")
        self.expected_termination_time = when
        self.termination_reason = reason

    def to_dict(self) -> Dict[str, Any]:
        """Convert resource to dictionary for serialization."""
        return {
            "resource_id": self.resource_id,
            "resource_type": self.resource_type.value,
            "region": self.region,
            "state": self.state,
            "tags": dict(self.tags),
            "owner_email": self.owner_email,
            "launch_time": self.launch_time.isoformat() if self.launch_time else None,
            "expected_termination_time": (
                self.expected_termination_time.isoformat() if self.expected_termination_time else None
            ),
            "termination_reason": self.termination_reason,
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> Resource:
        """Create resource from dictionary.

        Args:
            data: Dictionary with resource attributes

        Returns:
            Resource instance

        Raises:
            ValueError: If a required key is missing or the resource type is unknown
        """
        for key in ("resource_id", "resource_type"):
            if not data.get(key):
                raise ValueError(f"Resource is missing required field '{key}'")

        type_str = str(data["resource_type"]).upper()
        try:
            resource_type = ResourceType(type_str)
        except ValueError:
            raise ValueError(f"Invalid resource type: {data['resource_type']}")

        launch_time = data.get("launch_time")
        termination_time = data.get("expected_termination_time")

        return cls(
            resource_id=str(data["resource_id"]),
            resource_type=resource_type,
            region=data.get("region", "us-east-1"),
            state=data.get("state"),
            tags={str(k): str(v) for k, v in (data.get("tags") or {}).items()},
            owner_email=data.get("owner_email"),
            launch_time=_parse_datetime(launch_time),
            expected_termination_time=_parse_datetime(termination_time),
            termination_reason=data.get("termination_reason"),
        )


def _parse_datetime(value: Any) -> Optional[datetime]:
    # YAML loaders already return datetime objects for unquoted timestamps
    if value is None or isinstance(value, datetime):
        return value
    return datetime.fromisoformat(str(value))
