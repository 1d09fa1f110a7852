"""
List matching for snapshot reconciliation.

Aligns the previous snapshot of a collection with a freshly parsed one.
Matching is greedy, first-fit and order-preserving: each new item claims the
first unclaimed old item satisfying the key predicate. Duplicate keys are
therefore paired up in their original order, and no item is matched twice.
"""

from dataclasses import dataclass, field
from typing import Callable, Generic, Sequence, TypeVar

T = TypeVar("T")


@dataclass
class ListMatch(Generic[T]):
    """Result of aligning two lists."""
    matched: list[tuple[T, T]] = field(default_factory=list)  # (old, new)
    added: list[T] = field(default_factory=list)
    removed: list[T] = field(default_factory=list)


def match_lists(
    old_items: Sequence[T],
    new_items: Sequence[T],
    same_key: Callable[[T, T], bool],
) -> ListMatch[T]:
    """
    Partition old/new items into matched pairs, added-only and removed-only.

    Args:
        old_items: Items from the previous snapshot
        new_items: Items from the fresh snapshot
        same_key: Predicate called as same_key(old, new)

    Returns:
        ListMatch with pairs in new-item order, added items in new-item order
        and removed items in old-item order
    """
    result: ListMatch[T] = ListMatch()
    claimed = [False] * len(old_items)

    for new_item in new_items:
        for index, old_item in enumerate(old_items):
            if claimed[index]:
                continue
            if same_key(old_item, new_item):
                claimed[index] = True
                result.matched.append((old_item, new_item))
                break
        else:
            result.added.append(new_item)

    result.removed = [item for index, item in enumerate(old_items) if not claimed[index]]
    return result
