"""Field-map encoding helpers.

Entities are persisted as flat maps of string keys to string values so any
key-value store can hold them. This module owns the schema key names, the
timestamp format and the list encoding shared by Cluster and
ClusterConformity.

Limitations:
    - Timestamps keep second precision only; sub-second parts are dropped.
    - Lists are comma-joined without escaping. Values must not contain a
      comma, and empty entries are dropped on decode.
"""

from __future__ import annotations

from datetime import datetime, timezone
from typing import Dict, Iterable, List, Mapping, Optional

# Cluster record keys
CLUSTER = "cluster"
REGION = "region"
OWNER_EMAIL = "ownerEmail"
UPDATE_TIMESTAMP = "updateTimestamp"
EXCLUDED_RULES = "excludedRules"
SOLO_INSTANCES = "soloInstances"

# ClusterConformity record keys
IS_CONFORMING = "isConforming"
IS_OPTED_OUT = "isOptedOut"
CONFORMITY_RULES = "conformityRules"
CONFORMITY_KEYS = (IS_CONFORMING, IS_OPTED_OUT, CONFORMITY_RULES)

SCHEMA_KEYS = frozenset(
    {
        CLUSTER,
        REGION,
        OWNER_EMAIL,
        UPDATE_TIMESTAMP,
        EXCLUDED_RULES,
        SOLO_INSTANCES,
        IS_CONFORMING,
        IS_OPTED_OUT,
        CONFORMITY_RULES,
    }
)

TIMESTAMP_FORMAT = "%Y-%m-%dT%H:%M:%S"
LIST_DELIMITER = ","


class FieldMapDecodeError(ValueError):
    """Raised when a field map cannot be decoded into an entity."""


class MissingFieldError(FieldMapDecodeError):
    """Raised when a required field is absent from a field map."""

    def __init__(self, field_name: str) -> None:
        super().__init__(f"Missing required field '{field_name}'")
        self.field_name = field_name


class SchemaDriftError(FieldMapDecodeError):
    """Raised when a rule listed in the rule inventory has no entry."""

    def __init__(self, rule_id: str) -> None:
        super().__init__(f"Rule '{rule_id}' is listed in '{CONFORMITY_RULES}' but has no entry")
        self.rule_id = rule_id


class InvalidFieldError(FieldMapDecodeError):
    """Raised when a field value cannot be parsed."""

    def __init__(self, field_name: str, value: str) -> None:
        super().__init__(f"Invalid value for field '{field_name}': {value!r}")
        self.field_name = field_name
        self.value = value


def put_if_not_none(fields: Dict[str, str], key: str, value: Optional[str]) -> None:
    """Add value to the map unless it is None."""
    if key is None:
        raise ValueError("key cannot be None")
    if value is not None:
        fields[key] = value


def require(fields: Mapping[str, str], key: str) -> str:
    """Return a required field or raise MissingFieldError."""
    value = fields.get(key)
    if value is None:
        raise MissingFieldError(key)
    return value


def format_timestamp(value: datetime) -> str:
    """Format a timestamp at second precision.

    Timezone-aware values are converted to UTC first.
    """
    if value.tzinfo is not None:
        value = value.astimezone(timezone.utc).replace(tzinfo=None)
    return value.strftime(TIMESTAMP_FORMAT)


def parse_timestamp(key: str, value: str) -> datetime:
    """Parse a timestamp written by format_timestamp()."""
    try:
        return datetime.strptime(value, TIMESTAMP_FORMAT)
    except ValueError:
        raise InvalidFieldError(key, value)


def join_values(key: str, values: Iterable[str]) -> str:
    """Comma-join values for a list-valued field.

    Raises:
        ValueError: If a value contains the delimiter
    """
    values = list(values)
    for value in values:
        if LIST_DELIMITER in value:
            raise ValueError(f"Value {value!r} for field '{key}' cannot contain '{LIST_DELIMITER}'")
    return LIST_DELIMITER.join(values)


def split_values(value: Optional[str]) -> List[str]:
    """Split a comma-joined field, dropping empty entries."""
    if not value:
        return []
    return [item for item in value.split(LIST_DELIMITER) if item]


def format_bool(value: bool) -> str:
    return "true" if value else "false"


def parse_bool(value: Optional[str]) -> bool:
    """Parse a boolean field; only "true" (any case) is true."""
    return value is not None and value.lower() == "true"
