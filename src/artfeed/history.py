"""Bounded back/forward navigation history."""

from __future__ import annotations

from typing import List, Optional, Set

from .models import Record

DEFAULT_HISTORY_CAP = 20


class NavigationHistory:
    """Records the user has seen, with a cursor on the one being displayed.

    Invariant: ``0 <= cursor < len(self)`` when non-empty, ``-1`` when empty.
    Pushing while the cursor is not at the tail abandons the forward branch.
    Stepping only moves the cursor; it never resolves anything.
    """

    def __init__(self, cap: int = DEFAULT_HISTORY_CAP):
        if cap < 1:
            raise ValueError("History cap must be positive")
        self._cap = cap
        self._records: List[Record] = []
        self._cursor = -1

    @property
    def cap(self) -> int:
        return self._cap

    @property
    def cursor(self) -> int:
        return self._cursor

    @property
    def records(self) -> List[Record]:
        return list(self._records)

    @property
    def current(self) -> Optional[Record]:
        if self._cursor < 0:
            return None
        return self._records[self._cursor]

    @property
    def can_go_forward(self) -> bool:
        return 0 <= self._cursor < len(self._records) - 1

    @property
    def can_go_back(self) -> bool:
        return self._cursor > 0

    def peek_next(self) -> Optional[Record]:
        return self._records[self._cursor + 1] if self.can_go_forward else None

    def peek_previous(self) -> Optional[Record]:
        return self._records[self._cursor - 1] if self.can_go_back else None

    def ids(self) -> Set[str]:
        return {record.id for record in self._records}

    def push(self, record: Record) -> None:
        if self.can_go_forward:
            del self._records[self._cursor + 1:]

        self._records.append(record)
        if len(self._records) > self._cap:
            del self._records[0]
            self._cursor = max(0, self._cursor - 1)

        self._cursor = len(self._records) - 1

    def step_forward(self) -> Optional[Record]:
        if not self.can_go_forward:
            return None
        self._cursor += 1
        return self._records[self._cursor]

    def step_backward(self) -> Optional[Record]:
        if not self.can_go_back:
            return None
        self._cursor -= 1
        return self._records[self._cursor]

    def reset(self) -> None:
        self._records.clear()
        self._cursor = -1

    def __len__(self) -> int:
        return len(self._records)

    def __repr__(self) -> str:
        return f"NavigationHistory(len={len(self)}, cursor={self._cursor}, cap={self._cap})"
