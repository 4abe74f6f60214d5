"""Integer-keyed storage for conflicts, trade agreements and alliances.

Colony diplomacies only hold arena IDs; the canonical object is always
looked up here. Objects are never removed, only flagged inactive.
"""

from __future__ import annotations

from collections.abc import Callable, Iterator
from typing import Generic, Protocol, TypeVar


class _Activatable(Protocol):
    id: int
    is_active: bool


T = TypeVar("T", bound=_Activatable)


class Arena(Generic[T]):
    """Owns every object of one kind, indexed by a monotonically rising ID."""

    def __init__(self):
        self._items: dict[int, T] = {}
        self._next_id = 1

    def add(self, factory: Callable[[int], T]) -> T:
        """Allocate an ID, build the object with it and store it.

        Args:
            factory: Callable taking the new ID and returning the object

        Returns:
            The stored object
        """
        item = factory(self._next_id)
        self._items[item.id] = item
        self._next_id += 1
        return item

    def get(self, item_id: int) -> T | None:
        return self._items.get(item_id)

    def active(self) -> list[T]:
        """Active objects in creation order."""
        return [item for item in self._items.values() if item.is_active]

    def all(self) -> list[T]:
        """Every object ever created, active or not, in creation order."""
        return list(self._items.values())

    @property
    def next_id(self) -> int:
        return self._next_id

    def __len__(self) -> int:
        return len(self._items)

    def __iter__(self) -> Iterator[T]:
        return iter(list(self._items.values()))
