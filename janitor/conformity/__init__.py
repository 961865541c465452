"""Cluster conformity tracking.

Classes:
    Cluster: Unit of conformity checking
    ClusterConformity: Aggregate conformity state of a cluster
    Conformity: Outcome of one rule for one cluster
    ConformityChecker: Runs a checking pass over a cluster
"""

from __future__ import annotations

__all__ = [
    "Cluster",
    "ClusterConformity",
    "Conformity",
    "ConformityChecker",
]
