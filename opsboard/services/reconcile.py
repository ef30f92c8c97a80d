"""
Child-row reconciliation for parents edited as a whole (purchase items,
order items, product batches).

The submitted list is the new truth: existing children whose id is not
submitted are removed, submitted entries with an id update the matching
child, entries without an id become new children. The collection must be a
``delete-orphan`` relationship so removals become DELETEs at flush time,
inside the caller's transaction.
"""
from dataclasses import dataclass
from typing import Any, Callable, List, Sequence


class UnknownChildError(ValueError):
    """A submitted child id does not belong to the parent being edited"""

    def __init__(self, child_ids: Sequence[int]):
        super().__init__(f"Unknown item id(s): {', '.join(str(i) for i in sorted(child_ids))}")
        self.child_ids = list(child_ids)


@dataclass
class ReconcileResult:
    updated: int = 0
    inserted: int = 0
    deleted: int = 0


def reconcile_children(
    collection: List[Any],
    submitted: Sequence[Any],
    build: Callable[[Any], Any],
    apply: Callable[[Any, Any], None],
) -> ReconcileResult:
    """
    Sync ``collection`` (loaded ORM children) with ``submitted`` payload entries.

    Args:
        collection: the parent's child list, mutated in place
        submitted: payload entries; each has an optional ``id``
        build: creates a new child from a payload entry
        apply: copies payload fields onto an existing child
    """
    existing = {child.id: child for child in collection}
    submitted_ids = {entry.id for entry in submitted if entry.id is not None}

    unknown = submitted_ids - existing.keys()
    if unknown:
        raise UnknownChildError(list(unknown))

    result = ReconcileResult()
    for child in list(collection):
        if child.id not in submitted_ids:
            collection.remove(child)
            result.deleted += 1

    for entry in submitted:
        if entry.id is not None:
            apply(existing[entry.id], entry)
            result.updated += 1
        else:
            collection.append(build(entry))
            result.inserted += 1

    return result
