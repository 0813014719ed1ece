"""
Pooled row storage for batched bulk writes.

A RowBuffer holds at most `capacity` rows of exactly `nb_fields` values.
Rows come from a RowPool keyed by width; after a successful flush,
reset() hands every row back to the pool, so a multi-gigabyte file
runs on a fixed set of row objects.

Lifecycle of one batch:

    row, full = buffer.checkout()      # full -> flush first
    buffer.append_field(row, value)    # once per column
    cursor = buffer.materialize_cursor()
    sink.flush(columns, cursor)
    buffer.reset()                     # rows back to the pool
"""

import threading
from collections import defaultdict
from typing import Any, Iterator

from logpush.core.errors import RowCapacityError, SchemaMismatchError, StaleCursorError


class Row:
    """
    Fixed-width row storage.

    The backing list is allocated once at full width and reused;
    len(row) counts the values appended since the last clear().
    """

    __slots__ = ("width", "_values", "_size")

    def __init__(self, width: int):
        self.width = width
        self._values: list[Any] = [None] * width
        self._size = 0

    def add_field(self, value: Any) -> None:
        """
        Append one value.

        Raises:
            RowCapacityError: If the row already holds `width` values
        """
        if self._size >= self.width:
            raise RowCapacityError(self.width)
        self._values[self._size] = value
        self._size += 1

    def values(self) -> list[Any]:
        """
        Return the row's values.

        The complete backing list is returned as-is (no copy); callers
        must not keep it past the next reset of the owning buffer.
        """
        if self._size == self.width:
            return self._values
        return self._values[: self._size]

    def clear(self) -> None:
        """Drop contents, keep storage."""
        self._values[: self.width] = _blanks(self.width)
        self._size = 0

    def __len__(self) -> int:
        return self._size

    def __iter__(self) -> Iterator[Any]:
        return iter(self._values[: self._size])

    def __repr__(self) -> str:
        return f"Row({self._values[: self._size]!r}, width={self.width})"


_BLANKS: dict[int, list[None]] = {}


def _blanks(width: int) -> list[None]:
    blanks = _BLANKS.get(width)
    if blanks is None:
        blanks = _BLANKS.setdefault(width, [None] * width)
    return blanks


class RowPool:
    """
    Free list of rows keyed by width.

    Safe to share between buffers and threads. `created` counts the rows
    the pool ever had to allocate, which makes reuse observable.
    """

    def __init__(self) -> None:
        self._free: dict[int, list[Row]] = defaultdict(list)
        self._lock = threading.Lock()
        self.created = 0

    def acquire(self, width: int) -> Row:
        """Return an empty row of the given width, reusing one when possible."""
        with self._lock:
            free = self._free[width]
            if free:
                return free.pop()
            self.created += 1
        return Row(width)

    def release(self, row: Row) -> None:
        """Clear row and make it available for reuse."""
        row.clear()
        with self._lock:
            self._free[row.width].append(row)

    def available(self, width: int) -> int:
        with self._lock:
            return len(self._free[width])


class BatchCursor:
    """
    Single-pass, read-only view over the rows of a batch.

    Yields each row's values in order. Becomes stale when the batch
    is reset; reading a stale cursor raises StaleCursorError.
    """

    def __init__(self, buffer: "RowBuffer"):
        self._buffer = buffer
        self._generation = buffer.generation
        self._index = 0

    def __iter__(self) -> "BatchCursor":
        return self

    def __next__(self) -> list[Any]:
        if self._generation != self._buffer.generation:
            raise StaleCursorError("batch was reset after this cursor was created")
        rows = self._buffer.rows
        if self._index >= len(rows):
            raise StopIteration
        row = rows[self._index]
        self._index += 1
        return row.values()

    def __len__(self) -> int:
        return len(self._buffer.rows)

    @property
    def position(self) -> int:
        return self._index


class RowBuffer:
    """
    Bounded batch of fixed-width rows.

    Owned by exactly one file upload; never shared across workers.
    """

    def __init__(self, capacity: int, nb_fields: int, pool: RowPool | None = None):
        """
        Initialize row buffer.

        Args:
            capacity: Maximum rows per batch
            nb_fields: Values per row
            pool: Row pool to draw from (a private one by default)
        """
        if capacity < 1:
            raise ValueError(f"capacity must be at least 1, got {capacity}")
        if nb_fields < 1:
            raise ValueError(f"nb_fields must be at least 1, got {nb_fields}")
        self.capacity = capacity
        self.nb_fields = nb_fields
        self.pool = pool or RowPool()
        self.rows: list[Row] = []
        # bumped on every reset so outstanding cursors can detect it
        self.generation = 0

    def checkout(self) -> tuple[Row | None, bool]:
        """
        Append an empty row to the batch.

        Returns:
            (row, False) when there was room, (None, True) when the batch
            is full; a full batch is left untouched
        """
        if len(self.rows) >= self.capacity:
            return None, True
        row = self.pool.acquire(self.nb_fields)
        self.rows.append(row)
        return row, False

    def append_field(self, row: Row, value: Any) -> None:
        """
        Append one value to row.

        Raises:
            RowCapacityError: If the row already holds nb_fields values
        """
        row.add_field(value)

    def materialize_cursor(self) -> BatchCursor:
        """
        Check every row is complete and return a cursor over the batch.

        Raises:
            SchemaMismatchError: On the first row whose width differs from nb_fields
        """
        for i, row in enumerate(self.rows):
            if len(row) != self.nb_fields:
                raise SchemaMismatchError(i, self.nb_fields, len(row))
        return BatchCursor(self)

    def reset(self) -> None:
        """Return every row to the pool and empty the batch."""
        for row in self.rows:
            self.pool.release(row)
        self.rows.clear()
        self.generation += 1

    def size(self) -> int:
        return len(self.rows)

    def is_full(self) -> bool:
        return len(self.rows) >= self.capacity

    def __len__(self) -> int:
        return len(self.rows)

    def __repr__(self) -> str:
        return f"RowBuffer(size={len(self.rows)}, capacity={self.capacity}, nb_fields={self.nb_fields})"
