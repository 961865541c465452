"""Conformity checking pass over clusters."""

from __future__ import annotations

import logging
from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Callable, Iterable, List, Optional

from janitor.conformity.cluster import Cluster
from janitor.conformity.models import Conformity

ConformityCheck = Callable[[Cluster], Conformity]


@dataclass(frozen=True)
class ConformityRule:
    """A named check evaluated against a cluster.

    Attributes:
        name: Rule id; the check must return a Conformity with this id
        check: Function returning the rule outcome for a cluster
        nonconforming_reason: Human-readable explanation shown for failures
    """

    name: str
    check: ConformityCheck
    nonconforming_reason: str = ""

    def __post_init__(self) -> None:
        if not self.name:
            raise ValueError("name cannot be empty")
        if self.check is None:
            raise ValueError("check cannot be None")


class ConformityChecker:
    """Runs conformity rules against clusters.

    A pass owns the cluster's conformity record until the caller persists
    it: entries are cleared, every rule not excluded for the cluster is
    evaluated, and the conforming flag and update time are set.

    Attributes:
        rules: Conformity rules to evaluate
    """

    def __init__(self, rules: Iterable[ConformityRule], logger: Optional[logging.Logger] = None) -> None:
        self.rules: List[ConformityRule] = list(rules)
        self.logger = logger or logging.getLogger(__name__)
        names = [rule.name for rule in self.rules]
        if len(names) != len(set(names)):
            raise ValueError("Conformity rule names must be unique")

    def check(self, cluster: Cluster, now: Optional[datetime] = None) -> bool:
        """Run a checking pass over one cluster.

        Args:
            cluster: Cluster to check
            now: Update time to record (default: current UTC time)

        Returns:
            True if every evaluated rule passed
        """
        if cluster is None:
            raise ValueError("cluster cannot be None")

        # Evaluate everything before touching the aggregate so it always
        # holds one complete pass.
        results = []
        for rule in self.rules:
            if cluster.is_rule_excluded(rule.name):
                self.logger.debug("Rule %s is excluded for cluster %s", rule.name, cluster.name)
                continue
            results.append(self._evaluate(rule, cluster))

        conformity = cluster.cluster_conformity
        conformity.clear_conformities()
        for result in results:
            conformity.update_conformity(result)

        conforming = conformity.all_passed(cluster.excluded_rules)
        conformity.set_conforming(conforming)
        cluster.update_time = now or datetime.now(timezone.utc).replace(tzinfo=None)

        if not conforming:
            self.logger.info(
                "Cluster %s in %s failed rules: %s",
                cluster.name,
                cluster.region,
                ", ".join(conformity.failed_rules(cluster.excluded_rules)),
            )
        return conforming

    def check_all(self, clusters: Iterable[Cluster], now: Optional[datetime] = None) -> List[Cluster]:
        """Check several clusters.

        Returns:
            Clusters that are not conforming and have not opted out
        """
        failing = []
        for cluster in clusters:
            if not self.check(cluster, now=now) and not cluster.cluster_conformity.is_opt_out_of_conformity:
                failing.append(cluster)
        return failing

    def _evaluate(self, rule: ConformityRule, cluster: Cluster) -> Conformity:
        try:
            result = rule.check(cluster)
        except Exception:
            # Continue with the other rules; a crashing check counts as a failure
            self.logger.exception("Conformity rule %s failed on cluster %s", rule.name, cluster.name)
            return Conformity(rule.name, [cluster.name])

        if not isinstance(result, Conformity) or result.rule_id != rule.name:
            self.logger.error(
                "Conformity rule %s returned %r for cluster %s; counting it as failed",
                rule.name,
                result,
                cluster.name,
            )
            return Conformity(rule.name, [cluster.name])
        return result
