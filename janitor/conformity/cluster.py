"""Cluster model.

A cluster is the unit of conformity checking. It is either a group of auto
scaling groups belonging to the same application, or a flat list of solo
instances that do not belong to any group.
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime
from typing import Dict, FrozenSet, Iterable, List, Mapping, Optional, Sequence, Tuple

from janitor.conformity import codec
from janitor.conformity.models import ClusterConformity, Conformity


@dataclass(frozen=True)
class AutoScalingGroup:
    """An auto scaling group belonging to a cluster.

    Attributes:
        name: Group name
        instances: Instance ids in the group
        suspended_processes: Scaling processes suspended on the group
    """

    name: str
    instances: Sequence[str] = ()
    suspended_processes: Sequence[str] = ()

    def __post_init__(self) -> None:
        if not self.name:
            raise ValueError("name cannot be empty")
        object.__setattr__(self, "instances", tuple(self.instances))
        object.__setattr__(self, "suspended_processes", tuple(self.suspended_processes))

    @property
    def is_suspended(self) -> bool:
        return bool(self.suspended_processes)


class Cluster:
    """A named, region-scoped group of resources checked for conformity.

    Name and region identify the cluster and never change. Membership is
    either grouped (auto scaling groups) or flat (solo instances). Collections
    are exposed as immutable views; mutation goes through exclude_rules() and
    the owned ClusterConformity.

    Attributes:
        name: Cluster name
        region: Cloud region
        owner_email: Owner contact (optional)
        update_time: When the conformity state was last updated (optional)
        cluster_conformity: Aggregate conformity state
    """

    def __init__(self, name: str, region: str, *auto_scaling_groups: AutoScalingGroup) -> None:
        """Create a cluster of auto scaling groups.

        Args:
            name: Cluster name
            region: Cloud region
            auto_scaling_groups: Groups in the cluster

        Raises:
            ValueError: If name or region is missing
        """
        if name is None:
            raise ValueError("name cannot be None")
        if region is None:
            raise ValueError("region cannot be None")
        for asg in auto_scaling_groups:
            if asg is None:
                raise ValueError("auto scaling group cannot be None")

        self._name = name
        self._region = region
        self._auto_scaling_groups: List[AutoScalingGroup] = list(auto_scaling_groups)
        self._solo_instances: set = set()
        self._excluded_rules: set = set()
        self.owner_email: Optional[str] = None
        self.update_time: Optional[datetime] = None
        self.cluster_conformity = ClusterConformity()

    @classmethod
    def with_solo_instances(cls, name: str, region: str, solo_instances: Iterable[str]) -> Cluster:
        """Create a cluster made of standalone instances.

        Args:
            name: Cluster name
            region: Cloud region
            solo_instances: Instance ids

        Raises:
            ValueError: If any argument is None
        """
        if solo_instances is None:
            raise ValueError("solo_instances cannot be None")
        cluster = cls(name, region)
        for instance_id in solo_instances:
            if instance_id is None:
                raise ValueError("instance id cannot be None")
            cluster._solo_instances.add(instance_id)
        return cluster

    @property
    def name(self) -> str:
        return self._name

    @property
    def region(self) -> str:
        return self._region

    @property
    def auto_scaling_groups(self) -> Tuple[AutoScalingGroup, ...]:
        return tuple(self._auto_scaling_groups)

    @property
    def solo_instances(self) -> FrozenSet[str]:
        return frozenset(self._solo_instances)

    @property
    def is_solo(self) -> bool:
        """Whether the cluster is a flat list of solo instances."""
        return bool(self._solo_instances)

    @property
    def excluded_rules(self) -> FrozenSet[str]:
        return frozenset(self._excluded_rules)

    def exclude_rules(self, *rule_ids: str) -> Cluster:
        """Exclude conformity rules from checks of this cluster.

        Ids are whitespace-trimmed; excluding a rule twice is harmless.

        Returns:
            The cluster itself

        Raises:
            ValueError: If any rule id is None
        """
        for rule_id in rule_ids:
            if rule_id is None:
                raise ValueError("rule id cannot be None")
        for rule_id in rule_ids:
            trimmed = rule_id.strip()
            if trimmed:
                self._excluded_rules.add(trimmed)
        return self

    def is_rule_excluded(self, rule_id: str) -> bool:
        return rule_id.strip() in self._excluded_rules

    def effective_conformities(self) -> Dict[str, Conformity]:
        """Conformity entries for rules that are not excluded.

        Entries left over from before a rule was excluded are stale and not
        returned.
        """
        return {
            rule_id: conformity
            for rule_id, conformity in self.cluster_conformity.conformities.items()
            if rule_id not in self._excluded_rules
        }

    def to_field_map(self, include_conformity: bool = False) -> Dict[str, str]:
        """Encode to a flat field map.

        Args:
            include_conformity: Also merge the ClusterConformity record into
                the map

        Returns:
            Map from field name to string value; None fields are omitted
        """
        fields: Dict[str, str] = {}
        codec.put_if_not_none(fields, codec.CLUSTER, self._name)
        codec.put_if_not_none(fields, codec.REGION, self._region)
        codec.put_if_not_none(fields, codec.OWNER_EMAIL, self.owner_email)
        if self.update_time is not None:
            fields[codec.UPDATE_TIMESTAMP] = codec.format_timestamp(self.update_time)
        fields[codec.EXCLUDED_RULES] = codec.join_values(codec.EXCLUDED_RULES, sorted(self._excluded_rules))
        if self._solo_instances:
            fields[codec.SOLO_INSTANCES] = codec.join_values(codec.SOLO_INSTANCES, sorted(self._solo_instances))

        if include_conformity:
            fields.update(self.cluster_conformity.to_field_map())
        return fields

    @classmethod
    def from_field_map(cls, fields: Mapping[str, str]) -> Cluster:
        """Decode a cluster from a flat field map.

        The conformity record is rehydrated as well when the map carries any
        of its keys (flags or rule inventory). Auto scaling groups are not
        persisted, so a grouped cluster comes back with no groups.

        Raises:
            MissingFieldError: If cluster, region or updateTimestamp is absent
            InvalidFieldError: If updateTimestamp cannot be parsed
            SchemaDriftError: If a listed rule has no entry
        """
        if fields is None:
            raise ValueError("fields cannot be None")

        name = codec.require(fields, codec.CLUSTER)
        region = codec.require(fields, codec.REGION)
        update_time = codec.parse_timestamp(codec.UPDATE_TIMESTAMP, codec.require(fields, codec.UPDATE_TIMESTAMP))

        solo_instances = codec.split_values(fields.get(codec.SOLO_INSTANCES))
        if solo_instances:
            cluster = cls.with_solo_instances(name, region, solo_instances)
        else:
            cluster = cls(name, region)

        cluster.owner_email = fields.get(codec.OWNER_EMAIL)
        cluster.exclude_rules(*codec.split_values(fields.get(codec.EXCLUDED_RULES)))
        cluster.update_time = update_time

        if any(key in fields for key in codec.CONFORMITY_KEYS):
            cluster.cluster_conformity = ClusterConformity.from_field_map(fields)
        return cluster

    def __repr__(self) -> str:
        return f"Cluster(name={self._name!r}, region={self._region!r})"
