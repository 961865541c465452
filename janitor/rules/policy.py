"""Resource policy rule.

Combines the owner override tag policy with a category-specific cleanup
predicate. Categories plug in a predicate function instead of subclassing.
"""

from __future__ import annotations

from typing import Callable, Optional

from janitor.models.resource import Resource
from janitor.rules.override import OverrideAction, TagOverridePolicy

# Category-specific check: True leaves the resource alone, False marks it.
# A predicate that returns False is expected to have set the termination
# fields itself via Resource.mark_for_termination().
ResourcePredicate = Callable[[Resource], bool]


class ResourcePolicyRule:
    """Cleanup rule for one resource category.

    Attributes:
        rule_id: Rule identifier (used in reports and by RuleEngine)
        predicate: Category-specific check consulted when the override tag
            does not decide
        override_policy: Owner override tag policy
    """

    def __init__(
        self,
        rule_id: str,
        predicate: ResourcePredicate,
        override_policy: Optional[TagOverridePolicy] = None,
    ) -> None:
        if not rule_id:
            raise ValueError("rule_id cannot be empty")
        if predicate is None:
            raise ValueError("predicate cannot be None")
        self.rule_id = rule_id
        self.predicate = predicate
        self.override_policy = override_policy or TagOverridePolicy()

    def is_valid(self, resource: Resource) -> bool:
        """Check whether a resource should be left alone.

        Args:
            resource: Resource to evaluate

        Returns:
            True to leave the resource alone, False if it is eligible for
            cleanup (termination fields are populated before returning)

        Raises:
            ValueError: If resource is None
        """
        if resource is None:
            raise ValueError("resource cannot be None")

        decision = self.override_policy.decide(resource)

        if decision.action == OverrideAction.KEEP:
            return True

        if decision.action == OverrideAction.OVERRIDE:
            resource.mark_for_termination(decision.termination_time, decision.reason)
            return False

        return bool(self.predicate(resource))

    def __repr__(self) -> str:
        return f"ResourcePolicyRule(rule_id={self.rule_id!r})"
