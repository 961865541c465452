"""Cluster record storage.

Persists cluster field maps as YAML files so the conformity state survives
between checking passes.
"""

from __future__ import annotations

import os
from pathlib import Path
from typing import Dict, List, Optional, Tuple, Union

import yaml

from janitor.conformity.cluster import Cluster
from janitor.conformity.codec import FieldMapDecodeError


class ClusterRecordStorage:
    """Field-map record storage and retrieval.

    Stores one YAML file per cluster, holding the flat field map of the
    cluster merged with its conformity record.

    Storage structure:
        ~/.janitor/records/
            us-east-1/
                api.yaml
                web.yaml
            eu-west-1/
                api.yaml

    Attributes:
        storage_dir: Base directory for records
    """

    def __init__(self, storage_dir: Optional[Union[str, Path]] = None) -> None:
        """Initialize record storage.

        Args:
            storage_dir: Base directory for records
                (default: $JANITOR_STORAGE_PATH or ~/.janitor/records)
        """
        if storage_dir is None:
            storage_dir = os.environ.get("JANITOR_STORAGE_PATH") or str(Path.home() / ".janitor" / "records")

        self.storage_dir = Path(storage_dir)
        self.storage_dir.mkdir(parents=True, exist_ok=True)

    def _record_path(self, name: str, region: str) -> Path:
        for part in (name, region):
            if not part or "/" in part or part in (".", ".."):
                raise ValueError(f"Invalid record key: {part!r}")
        return self.storage_dir / region / f"{name}.yaml"

    def save(self, cluster: Cluster) -> Path:
        """Write the cluster record, replacing any previous snapshot.

        Args:
            cluster: Cluster to persist

        Returns:
            Path of the written record
        """
        fields = cluster.to_field_map(include_conformity=True)
        path = self._record_path(cluster.name, cluster.region)
        path.parent.mkdir(parents=True, exist_ok=True)

        with open(path, "w") as f:
            yaml.safe_dump(fields, f, default_flow_style=False, sort_keys=True)

        return path

    def load_fields(self, name: str, region: str) -> Dict[str, str]:
        """Read the raw field map of a cluster.

        Raises:
            FileNotFoundError: If no record exists
            FieldMapDecodeError: If the file is not a flat string map
        """
        path = self._record_path(name, region)
        if not path.exists():
            raise FileNotFoundError(f"No record for cluster '{name}' in {region}")

        with open(path, "r") as f:
            data = yaml.safe_load(f)

        return validate_field_map(data, source=str(path))

    def load(self, name: str, region: str) -> Cluster:
        """Load a cluster with its conformity record.

        Raises:
            FileNotFoundError: If no record exists
            FieldMapDecodeError: If the record cannot be decoded
        """
        return Cluster.from_field_map(self.load_fields(name, region))

    def exists(self, name: str, region: str) -> bool:
        return self._record_path(name, region).exists()

    def delete(self, name: str, region: str) -> bool:
        """Delete a cluster record.

        Returns:
            True if a record was deleted, False if none existed
        """
        path = self._record_path(name, region)
        if not path.exists():
            return False
        path.unlink()
        return True

    def list_clusters(self) -> List[Tuple[str, str]]:
        """List stored records as (name, region) pairs, sorted by region then name."""
        records = []
        for region_dir in sorted(self.storage_dir.glob("*")):
            if not region_dir.is_dir():
                continue
            for record_file in sorted(region_dir.glob("*.yaml")):
                records.append((record_file.stem, region_dir.name))
        return records


def validate_field_map(data: object, source: str = "record") -> Dict[str, str]:
    """Check that loaded data is a flat map of strings.

    Raises:
        FieldMapDecodeError: If data is not a mapping of strings to strings
    """
    if not isinstance(data, dict):
        raise FieldMapDecodeError(f"{source} does not contain a field map")

    for key, value in data.items():
        if not isinstance(key, str) or not isinstance(value, str):
            raise FieldMapDecodeError(f"{source} has a non-string entry: {key!r}={value!r}")

    return data
