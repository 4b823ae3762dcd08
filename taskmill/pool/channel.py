import queue
from typing import Any, Optional


class CompletionChannel:
    """Multi-producer, single-consumer queue of completion events.

    Producers never block and nothing is ever dropped: every put() is
    buffered until the consumer drains it. The consumer waits with a timeout
    so it can notice a closed pool between events.
    """

    def __init__(self, backing=None):
        self._queue = backing if backing is not None else queue.Queue()
        self._closed = False

    @classmethod
    def for_processes(cls, ctx) -> "CompletionChannel":
        return cls(ctx.Queue())

    @property
    def queue(self):
        """The underlying queue, handed to workers as their outbox."""
        return self._queue

    def put(self, event: Any):
        self._queue.put(event)

    def get(self, timeout: Optional[float] = None) -> Optional[Any]:
        """Return the next event, or None if nothing arrived within ``timeout``."""
        try:
            return self._queue.get(timeout=timeout)
        except queue.Empty:
            return None

    def drain(self) -> list:
        events = []
        while True:
            try:
                events.append(self._queue.get_nowait())
            except queue.Empty:
                return events

    def close(self):
        if self._closed:
            return
        self._closed = True
        # multiprocessing queues own a pipe and a feeder thread
        if hasattr(self._queue, "cancel_join_thread"):
            self._queue.cancel_join_thread()
            self._queue.close()
