"""
Snapshot files: Catalog <-> JSON document.

Document shape
--------------
{
  "version": "1",
  "dialect": "postgresql",
  "id": "<snapshot id>",
  "prevIds": ["<parent id>", ...],
  "ddl": [<entity dicts, see catalog/serde.py>],
  "renames": ["public.users->public.accounts", ...]
}

`renames` records the rename answers given when the snapshot was generated,
so the migration can be replayed with a PresetRenameResolver.
"""

from __future__ import annotations

import json
from collections.abc import Iterable, Mapping
from dataclasses import dataclass
from pathlib import Path
from typing import Any

from src.constants import SNAPSHOT_FILE_NAME, SNAPSHOT_VERSION
from src.ddl_engine.catalog.builder import build_catalog
from src.ddl_engine.catalog.catalog import Catalog
from src.ddl_engine.catalog.serde import entity_to_dict
from src.ddl_engine.errors import SnapshotFormatError
from src.enums import Dialect
from src.logger import LOGGER


@dataclass(frozen=True)
class SnapshotFile:
    """A snapshot loaded from disk."""

    path: Path
    catalog: Catalog
    renames: tuple[str, ...] = ()


def snapshot_to_dict(catalog: Catalog, renames: Iterable[str] = ()) -> dict[str, Any]:
    return {
        "version": SNAPSHOT_VERSION,
        "dialect": catalog.dialect.value,
        "id": catalog.id,
        "prevIds": list(catalog.prev_ids),
        "ddl": [entity_to_dict(entity, catalog.dialect) for entity in catalog],
        "renames": list(renames),
    }


def snapshot_from_dict(raw: Mapping[str, Any]) -> Catalog:
    """
    Decode a snapshot document.

    Raises
    ------
    SnapshotFormatError
        Wrong version, unknown dialect, or malformed entities.
    ValidationError
        The decoded entities do not form a valid catalog.
    """
    if not isinstance(raw, Mapping):
        raise SnapshotFormatError(f"Snapshot must be an object, got {type(raw).__name__}")

    version = str(raw.get("version", ""))
    if version != SNAPSHOT_VERSION:
        raise SnapshotFormatError(
            f"Unsupported snapshot version {version!r}; expected {SNAPSHOT_VERSION!r}"
        )

    try:
        dialect = Dialect(raw["dialect"])
    except (KeyError, ValueError) as error:
        raise SnapshotFormatError(f"Invalid snapshot dialect: {raw.get('dialect')!r}") from error

    ddl = raw.get("ddl", [])
    if not isinstance(ddl, list):
        raise SnapshotFormatError("Snapshot 'ddl' must be a list of entities")

    return build_catalog(
        ddl,
        dialect=dialect,
        snapshot_id=str(raw.get("id", "")),
        prev_ids=[str(prev) for prev in raw.get("prevIds", [])],
    )


def save_snapshot(catalog: Catalog, path: str | Path, renames: Iterable[str] = ()) -> Path:
    target = Path(path)
    target.parent.mkdir(parents=True, exist_ok=True)
    with target.open("w", encoding="utf-8") as f:
        json.dump(snapshot_to_dict(catalog, renames), f, indent=2, ensure_ascii=False)
        f.write("\n")
    LOGGER.info(f"Snapshot {catalog.id or '<unnamed>'} written to {target}")
    return target


def _read_document(path: Path) -> dict[str, Any]:
    try:
        with path.open("r", encoding="utf-8") as f:
            return json.load(f)
    except json.JSONDecodeError as error:
        raise SnapshotFormatError(f"Snapshot {path} is not valid JSON: {error}") from error


def load_snapshot(path: str | Path) -> Catalog:
    return load_snapshot_file(path).catalog


def load_snapshot_file(path: str | Path) -> SnapshotFile:
    source = Path(path)
    raw = _read_document(source)
    catalog = snapshot_from_dict(raw)
    renames = tuple(str(rename) for rename in raw.get("renames", []))
    return SnapshotFile(path=source, catalog=catalog, renames=renames)


def load_snapshots(directory: str | Path) -> list[SnapshotFile]:
    """Every snapshot file under `directory`, ordered by path."""
    root = Path(directory)
    if not root.is_dir():
        raise SnapshotFormatError(f"Snapshot directory not found: {root}")
    files = [load_snapshot_file(path) for path in sorted(root.rglob(SNAPSHOT_FILE_NAME))]
    LOGGER.info(f"Loaded {len(files)} snapshot(s) from {root}")
    return files
