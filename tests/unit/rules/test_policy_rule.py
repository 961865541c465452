"""Tests for ResourcePolicyRule.

Test coverage for the override policy composed with category predicates.
"""

from __future__ import annotations

from datetime import datetime
from typing import List

import pytest

from janitor.models.resource import Resource
from janitor.rules.policy import ResourcePolicyRule
from tests.fixtures.resources import create_instance, create_volume


class RecordingPredicate:
    """Category predicate returning a fixed verdict and recording calls."""

    def __init__(self, verdict: bool) -> None:
        self.verdict = verdict
        self.calls: List[str] = []

    def __call__(self, resource: Resource) -> bool:
        self.calls.append(resource.resource_id)
        if not self.verdict:
            resource.mark_for_termination(datetime(2030, 1, 1), "Detached volume")
        return self.verdict


class TestResourcePolicyRule:
    """Test suite for ResourcePolicyRule class."""

    @pytest.mark.parametrize("verdict", [True, False])
    def test_ungoverned_type_always_valid(self, verdict: bool) -> None:
        """Test ungoverned categories are valid whatever the predicate says."""
        predicate = RecordingPredicate(verdict)
        rule = ResourcePolicyRule("volume_rule", predicate)

        for tags in ({}, {"janitor": "2020-01-15"}, {"janitor": "junk"}):
            assert rule.is_valid(create_instance(state="available", tags=tags)) is True

        assert predicate.calls == []

    def test_attached_volume_always_valid(self) -> None:
        """Test a governed resource in use is valid regardless of tag content."""
        predicate = RecordingPredicate(False)
        rule = ResourcePolicyRule("volume_rule", predicate)
        volume = create_volume(state="in-use", tags={"janitor": "2020-01-15"})

        assert rule.is_valid(volume) is True
        assert volume.expected_termination_time is None
        assert predicate.calls == []

    def test_exempt_tag_valid_and_untouched(self) -> None:
        """Test the exemption sentinel keeps the resource and leaves fields untouched."""
        predicate = RecordingPredicate(False)
        rule = ResourcePolicyRule("volume_rule", predicate)
        volume = create_volume(tags={"janitor": "donotmark"})

        assert rule.is_valid(volume) is True
        assert volume.expected_termination_time is None
        assert volume.termination_reason is None
        assert predicate.calls == []

    def test_date_tag_marks_resource(self) -> None:
        """Test a date tag marks the resource for that calendar day."""
        predicate = RecordingPredicate(True)
        rule = ResourcePolicyRule("volume_rule", predicate)
        volume = create_volume(tags={"janitor": "2020-01-15"})

        assert rule.is_valid(volume) is False
        assert volume.expected_termination_time is not None
        assert volume.expected_termination_time.date() == datetime(2020, 1, 15).date()
        assert volume.expected_termination_time.time() == datetime.min.time()
        assert "2020-01-15" in volume.termination_reason
        assert predicate.calls == []

    @pytest.mark.parametrize("verdict", [True, False])
    def test_malformed_tag_uses_predicate_verdict(self, verdict: bool) -> None:
        """Test a malformed tag falls through to the category predicate."""
        predicate = RecordingPredicate(verdict)
        rule = ResourcePolicyRule("volume_rule", predicate)
        volume = create_volume(volume_id="vol-junk", tags={"janitor": "not-a-date"})

        assert rule.is_valid(volume) is verdict
        assert predicate.calls == ["vol-junk"]
        if verdict:
            assert volume.expected_termination_time is None
        else:
            assert volume.termination_reason == "Detached volume"

    @pytest.mark.parametrize("verdict", [True, False])
    def test_untagged_resource_uses_predicate_verdict(self, verdict: bool) -> None:
        """Test an untagged idle resource is decided by the predicate."""
        predicate = RecordingPredicate(verdict)
        rule = ResourcePolicyRule("volume_rule", predicate)

        assert rule.is_valid(create_volume(volume_id="vol-plain")) is verdict
        assert predicate.calls == ["vol-plain"]

    def test_predicate_result_coerced_to_bool(self) -> None:
        """Test truthy predicate results are returned as booleans."""
        rule = ResourcePolicyRule("volume_rule", lambda resource: 1)  # type: ignore[arg-type,return-value]

        assert rule.is_valid(create_volume()) is True

    def test_none_resource_rejected(self) -> None:
        """Test is_valid() fails fast on None."""
        rule = ResourcePolicyRule("volume_rule", RecordingPredicate(True))

        with pytest.raises(ValueError, match="resource cannot be None"):
            rule.is_valid(None)  # type: ignore[arg-type]

    def test_requires_rule_id_and_predicate(self) -> None:
        """Test constructor validation."""
        with pytest.raises(ValueError, match="rule_id"):
            ResourcePolicyRule("", RecordingPredicate(True))
        with pytest.raises(ValueError, match="predicate"):
            ResourcePolicyRule("volume_rule", None)  # type: ignore[arg-type]
