"""Owner override tag policy.

Resource owners can opt a resource out of automated cleanup, or pin an
explicit termination date, through a single tag. The tag value is either the
exemption sentinel or a calendar date in yyyy-MM-dd form.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from datetime import datetime
from enum import Enum
from typing import FrozenSet, Optional

from janitor.models.resource import Resource, ResourceType

JANITOR_TAG = "janitor"
EXEMPT_VALUE = "donotmark"
TERMINATION_DATE_FORMAT = "%Y-%m-%d"


class OverrideAction(Enum):
    """Outcome of evaluating the override tag."""

    KEEP = "keep"
    OVERRIDE = "override"
    DELEGATE = "delegate"


@dataclass(frozen=True)
class OverrideDecision:
    """Result of TagOverridePolicy.decide().

    Attributes:
        action: KEEP, OVERRIDE or DELEGATE
        termination_time: Owner-specified termination day (OVERRIDE only)
        reason: Termination reason quoting the tag value (OVERRIDE only)
    """

    action: OverrideAction
    termination_time: Optional[datetime] = None
    reason: Optional[str] = None

    @classmethod
    def keep(cls) -> OverrideDecision:
        return cls(OverrideAction.KEEP)

    @classmethod
    def delegate(cls) -> OverrideDecision:
        return cls(OverrideAction.DELEGATE)

    @classmethod
    def override(cls, when: datetime, reason: str) -> OverrideDecision:
        return cls(OverrideAction.OVERRIDE, termination_time=when, reason=reason)


@dataclass(frozen=True)
class OverridePolicyConfig:
    """Immutable settings for the override policy.

    Built once and shared by every policy instance; safe for concurrent
    read-only use.

    Attributes:
        tag_key: Name of the override tag
        exempt_value: Tag value that exempts the resource from cleanup
        date_format: strptime pattern for owner-specified termination dates
        resource_types: Resource categories governed by the policy
        idle_states: Live states meaning the resource is not in active use
    """

    tag_key: str = JANITOR_TAG
    exempt_value: str = EXEMPT_VALUE
    date_format: str = TERMINATION_DATE_FORMAT
    resource_types: FrozenSet[ResourceType] = frozenset({ResourceType.EBS_VOLUME})
    idle_states: FrozenSet[str] = frozenset({"available"})

    def __post_init__(self) -> None:
        if not self.tag_key:
            raise ValueError("tag_key cannot be empty")
        if not self.exempt_value:
            raise ValueError("exempt_value cannot be empty")


DEFAULT_POLICY_CONFIG = OverridePolicyConfig()


class TagOverridePolicy:
    """Interprets the owner override tag of a resource.

    Evaluation order:
        1. Category not governed by the policy -> KEEP
        2. Resource still in active use -> KEEP
        3. No override tag -> DELEGATE
        4. Tag equals the exemption sentinel -> KEEP
        5. Tag parses as a date -> OVERRIDE on that day
        6. Anything else -> DELEGATE (malformed tags never block the
           category rule)

    Attributes:
        config: Policy settings
        logger: Diagnostics sink for exemption and parse-failure messages
    """

    def __init__(
        self,
        config: OverridePolicyConfig = DEFAULT_POLICY_CONFIG,
        logger: Optional[logging.Logger] = None,
    ) -> None:
        self.config = config
        self.logger = logger if logger is not None else logging.getLogger(__name__)

    def governs(self, resource: Resource) -> bool:
        """Whether the resource is idle and of a governed category."""
        if resource.resource_type not in self.config.resource_types:
            return False
        return resource.state in self.config.idle_states

    def decide(self, resource: Resource) -> OverrideDecision:
        """Decide how the override tag affects cleanup of a resource.

        Args:
            resource: Resource to evaluate

        Returns:
            OverrideDecision for the resource

        Raises:
            ValueError: If resource is None
        """
        if resource is None:
            raise ValueError("resource cannot be None")

        if not self.governs(resource):
            return OverrideDecision.keep()

        tag_value = resource.get_tag(self.config.tag_key)
        if tag_value is None:
            return OverrideDecision.delegate()

        if tag_value == self.config.exempt_value:
            self.logger.info(
                "The %s %s is tagged as not handled by the janitor",
                resource.resource_type.value,
                resource.resource_id,
            )
            return OverrideDecision.keep()

        termination_day = self.parse_termination_date(tag_value)
        if termination_day is None:
            self.logger.warning(
                "The %s tag of %s is not a user specified date: %s",
                self.config.tag_key,
                resource.resource_id,
                tag_value,
            )
            return OverrideDecision.delegate()

        return OverrideDecision.override(termination_day, f"User specified termination date {tag_value}")

    def parse_termination_date(self, value: str) -> Optional[datetime]:
        """Parse an owner-specified termination date.

        Args:
            value: Raw tag value

        Returns:
            Midnight of the given day, or None if the value is not a date
        """
        try:
            return datetime.strptime(value, self.config.date_format)
        except ValueError:
            return None
