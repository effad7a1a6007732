"""
Snapshot graph analysis: find branch points whose branches do not commute.

Snapshots link to their parents through `prev_ids`. Every parent with more
than one child is a branch point; each child heads a branch whose leaves are
the snapshots reachable from it that have no children of their own. Every
leaf of one branch is checked against every leaf of each other branch with
`detect_conflict`, using the branch point as the common parent.
"""

from __future__ import annotations

from collections.abc import Mapping, Sequence
from dataclasses import dataclass

from src.constants import ORIGIN_SNAPSHOT_ID
from src.ddl_engine.catalog.catalog import Catalog
from src.ddl_engine.diff.differ import Differ
from src.ddl_engine.errors import SnapshotFormatError
from src.ddl_engine.merge.conflicts import Conflict, detect_conflict
from src.ddl_engine.plan.orderer import DependencyOrderer
from src.logger import LOGGER


@dataclass(frozen=True)
class BranchHead:
    head_id: str
    path: str | None = None


@dataclass(frozen=True)
class BranchConflict:
    parent_id: str
    branch_a: BranchHead
    branch_b: BranchHead
    conflict: Conflict


@dataclass(frozen=True)
class NonCommutativityReport:
    conflicts: tuple[BranchConflict, ...] = ()
    leaf_ids: tuple[str, ...] = ()

    @property
    def ok(self) -> bool:
        return not self.conflicts


def detect_non_commutative(
    snapshots: Sequence[Catalog],
    *,
    paths: Mapping[str, str] | None = None,
    differ: Differ | None = None,
    orderer: DependencyOrderer | None = None,
) -> NonCommutativityReport:
    """
    Check every branch point of the snapshot graph.

    `paths` optionally maps snapshot ids to the files they came from; it only
    decorates the report.
    """
    if not snapshots:
        return NonCommutativityReport()

    paths = paths or {}
    differ = differ or Differ()
    orderer = orderer or DependencyOrderer()
    by_id = _index(snapshots)
    children = _children(snapshots)

    conflicts: list[BranchConflict] = []
    for parent_id, child_ids in children.items():
        if len(child_ids) < 2:
            continue
        parent = _parent_catalog(parent_id, by_id, snapshots[0])
        branches = [_leaves(child_id, children) for child_id in child_ids]
        LOGGER.debug(
            "Branch point %s: %d branches, leaves %s", parent_id, len(branches), branches
        )
        for i, leaves_a in enumerate(branches):
            for leaves_b in branches[i + 1 :]:
                for a_id in leaves_a:
                    for b_id in leaves_b:
                        conflict = detect_conflict(
                            parent, by_id[a_id], by_id[b_id], differ=differ, orderer=orderer
                        )
                        if conflict is None:
                            continue
                        conflicts.append(
                            BranchConflict(
                                parent_id=parent_id,
                                branch_a=BranchHead(a_id, paths.get(a_id)),
                                branch_b=BranchHead(b_id, paths.get(b_id)),
                                conflict=conflict,
                            )
                        )

    leaf_ids = tuple(s.id for s in snapshots if not children.get(s.id))
    LOGGER.info(
        "Checked %d snapshots: %d conflicts, %d leaves", len(snapshots), len(conflicts), len(leaf_ids)
    )
    return NonCommutativityReport(conflicts=tuple(conflicts), leaf_ids=leaf_ids)


# ---------- graph helpers ----------


def _index(snapshots: Sequence[Catalog]) -> dict[str, Catalog]:
    by_id: dict[str, Catalog] = {}
    dialect = snapshots[0].dialect
    for snapshot in snapshots:
        if not snapshot.id:
            raise SnapshotFormatError("Snapshot without id cannot be placed in the graph")
        if snapshot.id in by_id:
            raise SnapshotFormatError(f"Duplicate snapshot id {snapshot.id!r}", entity_ids=[snapshot.id])
        if snapshot.dialect is not dialect:
            raise SnapshotFormatError(
                f"Snapshot {snapshot.id!r} is {snapshot.dialect}, expected {dialect}",
                entity_ids=[snapshot.id],
            )
        by_id[snapshot.id] = snapshot
    return by_id


def _children(snapshots: Sequence[Catalog]) -> dict[str, list[str]]:
    """parent id -> child ids, in input order; a child may have several parents."""
    children: dict[str, list[str]] = {}
    for snapshot in snapshots:
        for parent_id in snapshot.prev_ids:
            children.setdefault(parent_id, []).append(snapshot.id)
    return children


def _leaves(start_id: str, children: Mapping[str, list[str]]) -> list[str]:
    leaves: list[str] = []
    seen: set[str] = set()
    stack = [start_id]
    while stack:
        node_id = stack.pop()
        if node_id in seen:
            continue
        seen.add(node_id)
        node_children = children.get(node_id, [])
        if not node_children:
            leaves.append(node_id)
        else:
            stack.extend(reversed(node_children))
    return leaves


def _parent_catalog(parent_id: str, by_id: Mapping[str, Catalog], sample: Catalog) -> Catalog:
    parent = by_id.get(parent_id)
    if parent is not None:
        return parent
    if parent_id == ORIGIN_SNAPSHOT_ID:
        return Catalog.empty(sample.dialect, ORIGIN_SNAPSHOT_ID)
    raise SnapshotFormatError(f"Unknown parent snapshot {parent_id!r}", entity_ids=[parent_id])
