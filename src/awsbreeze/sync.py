"""Classify fetched items as new or already seen."""

from dataclasses import replace
from typing import Iterable, List

from .models import Item
from .storage import SeenState


def is_new(item: Item, state: SeenState) -> bool:
    """An item is new if it was never acknowledged and is newer than the last run."""
    return not state.is_seen(item.guid) and item.pub_date > state.last_run


def synchronize(items: Iterable[Item], state: SeenState) -> List[Item]:
    """Return copies of items with is_new recomputed against state.

    Order is preserved; inputs are not modified.
    """
    return [replace(item, is_new=is_new(item, state)) for item in items]
