from collections import deque
import asyncio
from typing import Deque, List, Optional

from rhythmo.exceptions import QueueFullError
from rhythmo.track import Track


class TrackQueue:
    """FIFO of pending tracks for one server.

    Mutations are synchronous (the event loop is single-threaded); the event
    only exists so the playback driver can sleep until something is appended.
    Only the head can be removed.
    """
    def __init__(self, max_size: Optional[int] = None) -> None:
        self._dq: Deque[Track] = deque()
        self._not_empty: asyncio.Event = asyncio.Event()
        self.max_size = max_size

    def put(self, track: Track) -> int:
        """Append to the tail, returning the new queue length."""
        if self.max_size is not None and len(self._dq) >= self.max_size:
            raise QueueFullError(f"queue holds {self.max_size} tracks already")
        self._dq.append(track)
        self._not_empty.set()
        return len(self._dq)

    def pop_front(self) -> Optional[Track]:
        if not self._dq:
            return None
        item = self._dq.popleft()
        if not self._dq:
            self._not_empty.clear()
        return item

    def clear(self) -> int:
        n = len(self._dq)
        self._dq.clear()
        self._not_empty.clear()
        return n

    async def wait_for_item(self, timeout: Optional[float] = None) -> None:
        """Block until the queue is non-empty.

        Raises asyncio.TimeoutError if nothing arrives within `timeout` seconds.
        """
        while not self._dq:
            self._not_empty.clear()
            if timeout is None:
                await self._not_empty.wait()
            else:
                await asyncio.wait_for(self._not_empty.wait(), timeout=timeout)

    def snapshot(self, limit: Optional[int] = None) -> List[Track]:
        """Return a copy of the pending tracks in FIFO order.

        If `limit` is provided, return at most the first `limit` items.
        """
        if limit is None:
            return list(self._dq)
        if limit <= 0:
            return []
        res = []
        for i, item in enumerate(self._dq):
            if i >= limit:
                break
            res.append(item)
        return res

    def qsize(self) -> int:
        return len(self._dq)

    def empty(self) -> bool:
        return not self._dq

    def __len__(self) -> int:
        return len(self._dq)
