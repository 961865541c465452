"""Rule engine evaluating several cleanup rules against a resource."""

from __future__ import annotations

import logging
from datetime import datetime
from typing import List, Optional, Tuple

from janitor.models.resource import Resource
from janitor.rules.policy import ResourcePolicyRule

logger = logging.getLogger(__name__)


class RuleEngine:
    """Evaluates resources against an ordered list of policy rules.

    A resource is valid only when every rule considers it valid. When more
    than one rule marks a resource, the earliest termination time wins and
    the matching reason is kept on the resource.

    Attributes:
        rules: Policy rules in evaluation order
    """

    def __init__(self, rules: List[ResourcePolicyRule]) -> None:
        """Initialize rule engine.

        Args:
            rules: Policy rules in evaluation order
        """
        self.rules = list(rules)

    def add_rule(self, rule: ResourcePolicyRule) -> RuleEngine:
        """Append a rule to the engine.

        Returns:
            The engine itself
        """
        if rule is None:
            raise ValueError("rule cannot be None")
        self.rules.append(rule)
        return self

    def is_valid(self, resource: Resource) -> bool:
        """Check a resource against all rules.

        Args:
            resource: Resource to evaluate

        Returns:
            True if no rule marks the resource for cleanup
        """
        return not self.failing_rules(resource)

    def failing_rules(self, resource: Resource) -> List[str]:
        """Evaluate all rules and return the ids of those marking the resource.

        Unlike is_valid(), the return value lists every rule that considers
        the resource eligible for cleanup, not just whether one does.

        Args:
            resource: Resource to evaluate

        Returns:
            Ids of the failing rules, in evaluation order
        """
        if resource is None:
            raise ValueError("resource cannot be None")

        failing: List[str] = []
        earliest: Optional[Tuple[datetime, Optional[str]]] = None
        original = (resource.expected_termination_time, resource.termination_reason)

        try:
            for rule in self.rules:
                # Cleared so each rule's own termination fields can be compared
                resource.expected_termination_time = None
                resource.termination_reason = None

                if rule.is_valid(resource):
                    continue

                failing.append(rule.rule_id)
                when = resource.expected_termination_time
                if when is not None and (earliest is None or when < earliest[0]):
                    earliest = (when, resource.termination_reason)
        except Exception:
            resource.expected_termination_time, resource.termination_reason = original
            raise

        if earliest is not None:
            resource.mark_for_termination(earliest[0], earliest[1] or "")
        else:
            resource.expected_termination_time, resource.termination_reason = original

        if failing:
            logger.debug("Resource %s failed rules: %s", resource.resource_id, ", ".join(failing))

        return failing
