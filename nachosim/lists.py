"""Singly linked lists of arbitrary items, optionally kept sorted by key.

Items are compared by identity when removed, so the same object may sit
on several lists at once. The list provides no locking; callers that
share a list between threads must synchronise access themselves.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Callable, Iterator, Optional, Tuple

__all__ = ["ListElement", "ItemList"]


@dataclass(eq=False)
class ListElement:
    """One cell of an :class:`ItemList`: an item, its sort key and a link."""

    item: Any
    key: int = 0
    next: Optional["ListElement"] = None


class ItemList:
    """A singly linked list with FIFO and key-sorted operations."""

    def __init__(self) -> None:
        self._first: Optional[ListElement] = None
        self._last: Optional[ListElement] = None

    def _elements(self) -> Iterator[ListElement]:
        element = self._first
        while element is not None:
            following = element.next
            yield element
            element = following

    def prepend(self, item: Any) -> None:
        """Put ``item`` at the front of the list."""
        element = ListElement(item, 0)
        if self._first is None:
            self._first = self._last = element
        else:
            element.next = self._first
            self._first = element

    def append(self, item: Any) -> None:
        """Put ``item`` at the end of the list."""
        element = ListElement(item, 0)
        if self._last is None:
            self._first = self._last = element
        else:
            self._last.next = element
            self._last = element

    def first_element(self) -> Optional[ListElement]:
        """Return the first cell without removing it, or None if empty."""
        return self._first

    def pop_front(self) -> Any:
        """Remove and return the first item, or None if the list is empty."""
        removed = self.sorted_remove()
        return None if removed is None else removed[0]

    def remove(self, item: Any) -> None:
        """Remove ``item`` (matched by identity) from the list.

        Raises ValueError if the item is not on the list.
        """
        previous: Optional[ListElement] = None
        for element in self._elements():
            if element.item is item:
                if previous is None:
                    self._first = element.next
                else:
                    previous.next = element.next
                if element is self._last:
                    self._last = previous
                element.next = None
                return
            previous = element
        raise ValueError(f"Trying to remove {item!r} from list which doesn't contain it")

    def __len__(self) -> int:
        return sum(1 for _ in self._elements())

    def __iter__(self) -> Iterator[Any]:
        for element in self._elements():
            yield element.item

    def mapcar(self, func: Callable[..., Any], *args: Any) -> None:
        """Call ``func(item, *args)`` on every item, front to back.

        The next cell is fetched before each call, so ``func`` may remove
        the item it is given.
        """
        for element in self._elements():
            func(element.item, *args)

    def is_empty(self) -> bool:
        """Return True if the list holds no items."""
        return self._first is None

    def sorted_insert(self, item: Any, sort_key: int) -> None:
        """Insert ``item`` so that keys stay in increasing order.

        An item goes after every existing item with an equal key.
        """
        element = ListElement(item, sort_key)
        if self._first is None:
            self._first = self._last = element
            return
        if sort_key < self._first.key:
            element.next = self._first
            self._first = element
            return
        cursor = self._first
        while cursor.next is not None:
            if sort_key < cursor.next.key:
                element.next = cursor.next
                cursor.next = element
                return
            cursor = cursor.next
        cursor.next = element
        self._last = element

    def sorted_remove(self) -> Optional[Tuple[Any, int]]:
        """Remove the first cell and return ``(item, key)``, or None if empty."""
        element = self._first
        if element is None:
            return None
        self._first = element.next
        if self._first is None:
            self._last = None
        element.next = None
        return element.item, element.key