from collections import deque
from typing import Deque, Generic, Iterator, Optional, TypeVar

from ..models import AbortOverwrite, RespondOverwrite

Overwrite = TypeVar("Overwrite", RespondOverwrite, AbortOverwrite)


class OverwriteQueue(Generic[Overwrite]):
    """
    Ordered overwrites of one kind for a single mock.

    Only the front entry is ever applied. A one-shot front is dropped once
    used; a sticky front stays and hides everything queued behind it until
    the queue is cleared.
    """

    def __init__(self):
        self._entries: Deque[Overwrite] = deque()

    def push(self, overwrite: Overwrite):
        self._entries.append(overwrite)

    def peek_front(self) -> Optional[Overwrite]:
        return self._entries[0] if self._entries else None

    def consume_front_if_one_shot(self, applied: Overwrite) -> bool:
        """Drop `applied` if it is still the one-shot front entry."""
        if not self._entries or self._entries[0] is not applied:
            return False
        if applied.sticky:
            return False
        self._entries.popleft()
        return True

    def clear(self):
        self._entries.clear()

    def __len__(self) -> int:
        return len(self._entries)

    def __iter__(self) -> Iterator[Overwrite]:
        return iter(list(self._entries))

    def __bool__(self) -> bool:
        return bool(self._entries)
