"""WooMirror: Replace-set for child collections.

Makes a parent's child rows exactly equal a desired set: rows whose key is
no longer desired are deleted, matching rows are updated in place, and new
keys are inserted. The caller commits, so one call is one atomic unit.
"""

from dataclasses import dataclass
from typing import Any, Callable, Dict, Hashable, Sequence

from sqlmodel import Session, SQLModel


@dataclass
class ReplaceStats:
    inserted: int = 0
    updated: int = 0
    deleted: int = 0


def unkeyed(index: int) -> Hashable:
    """Key for a desired child the remote gives no stable id; never matches."""
    return ("unkeyed", index)


def replace_set(
    session: Session,
    existing: Sequence[SQLModel],
    desired: Dict[Hashable, Dict[str, Any]],
    row_key: Callable[[Any], Hashable],
    build: Callable[[Dict[str, Any]], SQLModel],
) -> ReplaceStats:
    """Diff ``existing`` rows against ``desired`` (key -> column values)."""
    stats = ReplaceStats()
    kept: Dict[Hashable, SQLModel] = {}

    for row in existing:
        key = row_key(row)
        if key is None or key not in desired or key in kept:
            session.delete(row)
            stats.deleted += 1
        else:
            kept[key] = row

    for key, values in desired.items():
        row = kept.get(key)
        if row is None:
            session.add(build(values))
            stats.inserted += 1
            continue
        for column, value in values.items():
            setattr(row, column, value)
        session.add(row)
        stats.updated += 1

    return stats
