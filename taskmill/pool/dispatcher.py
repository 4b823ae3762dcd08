import threading
from collections import deque
from typing import Deque, Dict, Iterable, Optional

from taskmill.errors import TaskTransportError
from taskmill.models import CompletionEvent, Task
from .channel import CompletionChannel
from .schemas import TaskPhase


class Dispatcher:
    """Feeds queued tasks to idle workers in strict index order.

    The queue and the idle set are both FIFO, so the longest-idle worker gets
    the oldest task. dispatch() runs whenever tasks are enqueued or a worker
    is released. Both the consuming thread and the result collector call in,
    so every operation holds ``lock``.
    """

    def __init__(self, workers: Dict[int, object], channel: CompletionChannel, logger):
        self.workers = workers
        self.channel = channel
        self.logger = logger

        self.lock = threading.RLock()
        self.queue: Deque[Task] = deque()
        self.idle: Deque[int] = deque(workers)
        self.busy: Dict[int, Task] = {}
        self.stopped = False

    def enqueue(self, tasks: Iterable[Task], run_id: Optional[int] = None) -> int:
        with self.lock:
            before = len(self.queue)
            self.queue.extend(tasks)
            added = len(self.queue) - before

        self.logger.debug(
            f"Queued {added} tasks",
            run_id=run_id,
            pending=added,
            phase=TaskPhase.QUEUED.value,
        )
        return added

    def dispatch(self) -> int:
        issued = 0
        with self.lock:
            while self.idle and self.queue and not self.stopped:
                worker_id = self.idle.popleft()
                task = self.queue.popleft()

                try:
                    self.workers[worker_id].submit(task)
                except TaskTransportError as e:
                    # The task never reached the worker: fail it here and
                    # keep the worker at the head of the idle set
                    self.idle.appendleft(worker_id)
                    self.channel.put(CompletionEvent(
                        run_id=task.run_id,
                        worker_id=None,
                        index=task.index,
                        input=task.input,
                        error=str(e),
                    ))
                    continue

                self.busy[worker_id] = task
                issued += 1
                self.logger.debug(
                    f"Task {task.index} → worker {worker_id}",
                    run_id=task.run_id,
                    index=task.index,
                    worker_id=worker_id,
                    phase=TaskPhase.DISPATCHED.value,
                )
        return issued

    def release(self, worker_id: int) -> Optional[Task]:
        """Return a busy worker to the idle set; None if it was not busy."""
        with self.lock:
            task = self.busy.pop(worker_id, None)
            if task is None:
                return None
            self.idle.append(worker_id)
            return task

    def complete(self, event: CompletionEvent) -> Optional[Task]:
        with self.lock:
            task = self.release(event.worker_id)
            if task is not None:
                self.dispatch()
            return task

    def discard_pending(self, run_id: Optional[int] = None) -> int:
        """Drop queued tasks (of one run, or all); in-flight tasks are untouched."""
        with self.lock:
            if run_id is None:
                dropped = len(self.queue)
                self.queue.clear()
                return dropped

            kept = deque(t for t in self.queue if t.run_id != run_id)
            dropped = len(self.queue) - len(kept)
            self.queue = kept
            return dropped

    def busy_workers(self) -> Dict[int, Task]:
        with self.lock:
            return dict(self.busy)

    def is_busy(self, worker_id: int) -> bool:
        with self.lock:
            return worker_id in self.busy

    @property
    def pending(self) -> int:
        with self.lock:
            return len(self.queue)

    def stop(self) -> int:
        with self.lock:
            self.stopped = True
            return self.discard_pending()
