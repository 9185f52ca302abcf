"""Sliding-window order statistic (rolling median / percentile).

Nodes are kept in a value-ordered doubly linked list together with an
insertion-order chain used to age out the oldest value. A single cursor
points at the node holding the tracked percentile; each insertion walks
from that cursor only as far as needed, so updates stay cheap for
slowly changing streams.

Links are integer handles into parallel lists (an arena) instead of
node objects referencing each other. Released slots are recycled.
"""

import math
from collections.abc import Callable, Iterator
from typing import Any, Generic, TypeVar

from voxgate.constants import MAX_PERCENTILE, MIN_WINDOW_NODE_COUNT
from voxgate.errors import InvalidArgumentError

T = TypeVar("T")

Comparator = Callable[[T, T], float]

_NIL = -1


def natural_order(a: Any, b: Any) -> int:
    """Three-way comparison using ``<`` and ``>``."""
    return (a > b) - (a < b)


def key_comparator(key: Callable[[T], Any]) -> Comparator[T]:
    """Build a three-way comparator that orders payloads by ``key``."""

    def compare(a: T, b: T) -> int:
        return natural_order(key(a), key(b))

    return compare


def clamp_percentile(percentile: float) -> float:
    # 1.0 would balance the cursor one past the last node.
    return min(max(percentile, 0.0), MAX_PERCENTILE)


class OrderStatisticWindow(Generic[T]):
    """Fixed-capacity window tracking a percentile of its payloads.

    Example::

        window = OrderStatisticWindow(5, natural_order)
        for v in (3, 2, 1, 5, 4):
            median = window.insert(v)
        assert median == 3 and list(window) == [1, 2, 3, 4, 5]

    ``left_count`` and ``right_count`` are the numbers of nodes strictly
    before and after the percentile node in sorted order, so
    ``left_count + right_count + 1 == size`` whenever the window is
    non-empty.
    """

    __slots__ = (
        "_comparator",
        "_max_node_count",
        "_percentile",
        "_payloads",
        "_successor",
        "_prev",
        "_next",
        "_free",
        "_oldest",
        "_newest",
        "_cursor",
        "_size",
        "_left",
        "_right",
    )

    def __init__(
        self,
        max_node_count: int,
        comparator: Comparator[T] = natural_order,
        percentile: float = 0.5,
    ) -> None:
        _check_max_node_count(max_node_count)
        self._comparator = comparator
        self._max_node_count = max_node_count
        self._percentile = clamp_percentile(percentile)
        self._payloads: list[T | None] = []
        self._successor: list[int] = []
        self._prev: list[int] = []
        self._next: list[int] = []
        self._free: list[int] = []
        self._oldest = _NIL
        self._newest = _NIL
        self._cursor = _NIL
        self._size = 0
        self._left = 0
        self._right = 0

    # -- accessors -----------------------------------------------------------

    @property
    def value(self) -> T | None:
        """Payload at the tracked percentile, or None when empty."""
        if self._cursor == _NIL:
            return None
        return self._payloads[self._cursor]

    @property
    def size(self) -> int:
        return self._size

    def __len__(self) -> int:
        return self._size

    @property
    def percentile(self) -> float:
        return self._percentile

    @property
    def max_node_count(self) -> int:
        return self._max_node_count

    @property
    def left_count(self) -> int:
        return self._left

    @property
    def right_count(self) -> int:
        return self._right

    # -- arena ---------------------------------------------------------------

    def _alloc(self, payload: T) -> int:
        if self._free:
            node = self._free.pop()
            self._payloads[node] = payload
            self._successor[node] = self._prev[node] = self._next[node] = _NIL
            return node
        self._payloads.append(payload)
        self._successor.append(_NIL)
        self._prev.append(_NIL)
        self._next.append(_NIL)
        return len(self._payloads) - 1

    def _release(self, node: int) -> None:
        self._payloads[node] = None
        self._free.append(node)

    def _compare(self, a: int, b: int) -> float:
        return self._comparator(self._payloads[a], self._payloads[b])

    # -- linking -------------------------------------------------------------

    def _link_before(self, seek: int, node: int) -> None:
        while self._prev[seek] != _NIL and self._compare(self._prev[seek], node) > 0:
            seek = self._prev[seek]
        before = self._prev[seek]
        self._next[node] = seek
        self._prev[node] = before
        if before != _NIL:
            self._next[before] = node
        self._prev[seek] = node

    def _link_after(self, seek: int, node: int) -> None:
        while self._next[seek] != _NIL and self._compare(self._next[seek], node) <= 0:
            seek = self._next[seek]
        after = self._next[seek]
        self._prev[node] = seek
        self._next[node] = after
        if after != _NIL:
            self._prev[after] = node
        self._next[seek] = node

    def _unlink(self, node: int) -> None:
        before = self._prev[node]
        after = self._next[node]
        if before != _NIL:
            self._next[before] = after
        if after != _NIL:
            self._prev[after] = before

    def _precedes_cursor(self, node: int) -> bool:
        """Whether ``node`` sits left of an equal-comparing cursor."""
        seek = self._prev[self._cursor]
        while seek != _NIL and self._compare(seek, node) == 0:
            if seek == node:
                return True
            seek = self._prev[seek]
        return False

    # -- insertion and eviction ----------------------------------------------

    def _place(self, node: int) -> None:
        # Equal payloads keep insertion order: a new node goes after its equals.
        if self._compare(node, self._cursor) < 0:
            self._left += 1
            self._link_before(self._cursor, node)
        else:
            self._right += 1
            self._link_after(self._cursor, node)

    def _evict_oldest(self) -> None:
        node = self._oldest
        self._oldest = self._successor[node]
        order = self._compare(node, self._cursor)
        if order < 0:
            self._left -= 1
        elif order > 0:
            self._right -= 1
        elif node == self._cursor:
            if self._prev[node] != _NIL:
                self._cursor = self._prev[node]
                self._left -= 1
            else:
                self._cursor = self._next[node]
                self._right -= 1
        elif self._precedes_cursor(node):
            self._left -= 1
        else:
            self._right -= 1
        self._unlink(node)
        self._release(node)
        self._size -= 1

    def _balance(self) -> None:
        if self._cursor == _NIL:
            return
        delta = math.floor(self._size * self._percentile) - self._left
        while delta > 0:
            self._cursor = self._next[self._cursor]
            self._left += 1
            self._right -= 1
            delta -= 1
        while delta < 0:
            self._cursor = self._prev[self._cursor]
            self._left -= 1
            self._right += 1
            delta += 1

    def insert(self, payload: T) -> T:
        """Add ``payload``, evict the oldest if over capacity, return the percentile."""
        node = self._alloc(payload)
        if self._cursor == _NIL:
            self._cursor = self._oldest = self._newest = node
            self._size = 1
            self._left = self._right = 0
            return payload

        self._successor[self._newest] = node
        self._newest = node
        self._place(node)
        self._size += 1

        # More than one eviction after set_max_node_count() shrank the window.
        while self._size > self._max_node_count:
            self._evict_oldest()

        self._balance()
        return self._payloads[self._cursor]

    def set_percentile(self, percentile: float) -> None:
        """Change the tracked percentile; clamped into ``[0, 0.99999]``."""
        self._percentile = clamp_percentile(percentile)
        self._balance()

    def set_max_node_count(self, max_node_count: int) -> None:
        """Resize the window; surplus nodes are evicted on the next insert."""
        _check_max_node_count(max_node_count)
        self._max_node_count = max_node_count

    def clear(self) -> None:
        self._payloads.clear()
        self._successor.clear()
        self._prev.clear()
        self._next.clear()
        self._free.clear()
        self._oldest = self._newest = self._cursor = _NIL
        self._size = self._left = self._right = 0

    # -- iteration -----------------------------------------------------------

    def _first(self) -> int:
        seek = self._cursor
        if seek == _NIL:
            return _NIL
        while self._prev[seek] != _NIL:
            seek = self._prev[seek]
        return seek

    def __iter__(self) -> Iterator[T]:
        """Yield payloads in sorted order."""
        seek = self._first()
        while seek != _NIL:
            yield self._payloads[seek]
            seek = self._next[seek]

    def to_list(self) -> list[T]:
        return list(self)

    def __str__(self) -> str:
        parts: list[str] = []
        seek = self._first()
        while seek != _NIL:
            marker = "!" if seek == self._cursor else ""
            parts.append(f"{marker}{self._payloads[seek]}")
            seek = self._next[seek]
        return " ".join(parts)

    def __repr__(self) -> str:
        return (
            f"OrderStatisticWindow(size={self._size}, "
            f"max_node_count={self._max_node_count}, "
            f"percentile={self._percentile})"
        )


def _check_max_node_count(max_node_count: int) -> None:
    if max_node_count < MIN_WINDOW_NODE_COUNT:
        raise InvalidArgumentError(
            f"max_node_count must be at least {MIN_WINDOW_NODE_COUNT}"
        )
