"""Conformity outcome models."""

from __future__ import annotations

from dataclasses import dataclass
from types import MappingProxyType
from typing import Dict, Iterable, List, Mapping, Optional, Sequence

from janitor.conformity import codec


@dataclass(frozen=True)
class Conformity:
    """Outcome of one conformity rule for one cluster.

    Attributes:
        rule_id: Identifier of the checked rule
        failed_components: Components that failed the rule, in the order the
            check reported them (empty means the rule passed)
    """

    rule_id: str
    failed_components: Sequence[str] = ()

    def __post_init__(self) -> None:
        if not self.rule_id:
            raise ValueError("rule_id cannot be empty")
        object.__setattr__(self, "failed_components", tuple(self.failed_components or ()))

    @property
    def passed(self) -> bool:
        """Whether no component failed the rule."""
        return not self.failed_components


class ClusterConformity:
    """Aggregate conformity state of a cluster.

    Holds one Conformity per checked rule. is_conforming is set by the
    checking pass and never recomputed here; is_opt_out_of_conformity is an
    operator override that suppresses enforcement whatever the verdict.

    Attributes:
        is_conforming: Whether every checked rule passed
        is_opt_out_of_conformity: Whether enforcement is suppressed
    """

    def __init__(self, is_conforming: bool = False, is_opt_out_of_conformity: bool = False) -> None:
        self.is_conforming = is_conforming
        self.is_opt_out_of_conformity = is_opt_out_of_conformity
        self._conformities: Dict[str, Conformity] = {}

    @property
    def conformities(self) -> Mapping[str, Conformity]:
        """Read-only snapshot of conformity entries keyed by rule id."""
        return MappingProxyType(dict(self._conformities))

    def get_conformity(self, rule_id: str) -> Optional[Conformity]:
        if rule_id is None:
            raise ValueError("rule_id cannot be None")
        return self._conformities.get(rule_id)

    def update_conformity(self, conformity: Conformity) -> ClusterConformity:
        """Insert or replace the entry for the conformity's rule.

        Returns:
            The aggregate itself
        """
        if conformity is None:
            raise ValueError("conformity cannot be None")
        self._conformities[conformity.rule_id] = conformity
        return self

    def clear_conformities(self) -> None:
        self._conformities.clear()

    def set_conforming(self, conforming: bool) -> None:
        self.is_conforming = conforming

    def set_opt_out_of_conformity(self, opt_out: bool) -> None:
        self.is_opt_out_of_conformity = opt_out

    def all_passed(self, excluded_rules: Iterable[str] = ()) -> bool:
        """Compute whether every non-excluded entry passed.

        The result is not stored; callers decide whether to set_conforming().
        """
        excluded = set(excluded_rules)
        return all(c.passed for rule_id, c in self._conformities.items() if rule_id not in excluded)

    def failed_rules(self, excluded_rules: Iterable[str] = ()) -> List[str]:
        """Ids of non-excluded rules with failed components."""
        excluded = set(excluded_rules)
        return [rule_id for rule_id, c in self._conformities.items() if rule_id not in excluded and not c.passed]

    def to_field_map(self) -> Dict[str, str]:
        """Encode to a flat field map.

        Besides the fixed keys, each rule gets a key equal to its rule id
        holding the comma-joined failed components, and conformityRules lists
        every rule id present.

        Raises:
            ValueError: If a rule id collides with a schema key, or a value
                contains the list delimiter
        """
        fields: Dict[str, str] = {}
        codec.put_if_not_none(fields, codec.IS_CONFORMING, codec.format_bool(self.is_conforming))
        codec.put_if_not_none(fields, codec.IS_OPTED_OUT, codec.format_bool(self.is_opt_out_of_conformity))

        rule_ids = []
        for rule_id, conformity in self._conformities.items():
            if rule_id in codec.SCHEMA_KEYS:
                raise ValueError(f"Rule id '{rule_id}' collides with a reserved field name")
            fields[rule_id] = codec.join_values(rule_id, conformity.failed_components)
            rule_ids.append(rule_id)

        codec.put_if_not_none(fields, codec.CONFORMITY_RULES, codec.join_values(codec.CONFORMITY_RULES, rule_ids))
        return fields

    @classmethod
    def from_field_map(cls, fields: Mapping[str, str]) -> ClusterConformity:
        """Decode from a flat field map.

        The conformityRules inventory is read first to know which other keys
        are rule entries.

        Raises:
            SchemaDriftError: If a listed rule has no entry in the map
        """
        if fields is None:
            raise ValueError("fields cannot be None")

        cluster_conformity = cls(
            is_conforming=codec.parse_bool(fields.get(codec.IS_CONFORMING)),
            is_opt_out_of_conformity=codec.parse_bool(fields.get(codec.IS_OPTED_OUT)),
        )
        for rule_id in codec.split_values(fields.get(codec.CONFORMITY_RULES)):
            if rule_id not in fields:
                raise codec.SchemaDriftError(rule_id)
            cluster_conformity.update_conformity(Conformity(rule_id, codec.split_values(fields[rule_id])))
        return cluster_conformity

    def __repr__(self) -> str:
        return (
            f"ClusterConformity(is_conforming={self.is_conforming}, "
            f"is_opt_out_of_conformity={self.is_opt_out_of_conformity}, "
            f"rules={sorted(self._conformities)})"
        )
