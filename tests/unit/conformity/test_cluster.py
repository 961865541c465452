"""Tests for Cluster model."""

from __future__ import annotations

import pytest

from janitor.conformity.cluster import AutoScalingGroup, Cluster
from janitor.conformity.models import Conformity
from tests.fixtures.resources import create_cluster


class TestCluster:
    """Test suite for Cluster model."""

    def test_create_grouped_cluster(self) -> None:
        """Test creating a cluster of auto scaling groups."""
        asg = AutoScalingGroup("api-v001", instances=["i-1", "i-2"])
        cluster = Cluster("api", "us-east-1", asg)

        assert cluster.name == "api"
        assert cluster.region == "us-east-1"
        assert cluster.auto_scaling_groups == (asg,)
        assert cluster.solo_instances == frozenset()
        assert cluster.is_solo is False
        assert cluster.update_time is None
        assert cluster.owner_email is None

    def test_create_solo_cluster(self) -> None:
        """Test creating a cluster of solo instances."""
        cluster = Cluster.with_solo_instances("batch", "us-west-2", {"i-1", "i-2"})

        assert cluster.solo_instances == frozenset({"i-1", "i-2"})
        assert cluster.auto_scaling_groups == ()
        assert cluster.is_solo is True

    def test_name_and_region_required(self) -> None:
        """Test name and region cannot be None."""
        with pytest.raises(ValueError, match="name"):
            Cluster(None, "us-east-1")  # type: ignore[arg-type]
        with pytest.raises(ValueError, match="region"):
            Cluster("api", None)  # type: ignore[arg-type]
        with pytest.raises(ValueError, match="solo_instances"):
            Cluster.with_solo_instances("api", "us-east-1", None)  # type: ignore[arg-type]

    def test_name_is_read_only(self) -> None:
        """Test identity cannot be reassigned."""
        cluster = Cluster("api", "us-east-1")

        with pytest.raises(AttributeError):
            cluster.name = "web"  # type: ignore[misc]

    def test_exclude_rules_trims_and_deduplicates(self) -> None:
        """Test excluded rule ids are trimmed and deduplicated."""
        cluster = Cluster("api", "us-east-1")

        result = cluster.exclude_rules("r1", " r2 ", "r1", "r2")

        assert result is cluster
        assert cluster.excluded_rules == frozenset({"r1", "r2"})
        assert cluster.is_rule_excluded("r2") is True
        assert cluster.is_rule_excluded("r3") is False

    def test_exclude_none_rule_rejected(self) -> None:
        """Test None rule ids are rejected and nothing is added."""
        cluster = Cluster("api", "us-east-1")

        with pytest.raises(ValueError):
            cluster.exclude_rules("r1", None)  # type: ignore[arg-type]

        assert cluster.excluded_rules == frozenset()

    def test_excluded_rules_view_is_immutable(self) -> None:
        """Test the exposed exclusion set cannot be mutated."""
        cluster = Cluster("api", "us-east-1").exclude_rules("r1")

        with pytest.raises(AttributeError):
            cluster.excluded_rules.add("r2")  # type: ignore[attr-defined]

    def test_effective_conformities_skip_excluded_rules(self) -> None:
        """Test stale entries for excluded rules are not authoritative."""
        cluster = create_cluster(conformities={"ruleA": [], "ruleB": ["api-v001"]})
        cluster.exclude_rules("ruleB")

        effective = cluster.effective_conformities()

        assert list(effective) == ["ruleA"]
        assert cluster.cluster_conformity.get_conformity("ruleB") == Conformity("ruleB", ["api-v001"])

    def test_asg_requires_name(self) -> None:
        """Test AutoScalingGroup validation."""
        with pytest.raises(ValueError):
            AutoScalingGroup("")

    def test_asg_suspended(self) -> None:
        """Test suspended processes flag."""
        assert AutoScalingGroup("a", suspended_processes=["Launch"]).is_suspended is True
        assert AutoScalingGroup("a").is_suspended is False
