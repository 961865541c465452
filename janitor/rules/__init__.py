"""Cleanup eligibility rules.

Classes:
    TagOverridePolicy: Owner override tag interpretation
    ResourcePolicyRule: Override policy composed with a category predicate
    RuleEngine: Ordered evaluation of several policy rules
"""

from __future__ import annotations

__all__ = [
    "TagOverridePolicy",
    "ResourcePolicyRule",
    "RuleEngine",
]
