import queue
import threading

from taskmill.models import Task
from .runtime import thread_main


class ThreadWorker:
    """A worker running as a daemon thread in the calling process.

    Threads cannot be interrupted: terminate() stops the worker after its
    current task, and that task's completion is never drained.
    """
    kind = "thread"

    def __init__(self, worker_id: int, outbox):
        self.worker_id = worker_id
        self._inbox = queue.Queue()
        self._thread = threading.Thread(
            target=thread_main,
            args=(worker_id, self._inbox, outbox),
            name=f"taskmill-worker-{worker_id}",
            daemon=True,
        )
        self._terminated = False

    def start(self):
        self._thread.start()

    def submit(self, task: Task):
        self._inbox.put(task)

    def is_alive(self) -> bool:
        return self._thread.is_alive()

    @property
    def exitcode(self):
        return None

    def terminate(self, timeout: float):
        if self._terminated:
            return
        self._terminated = True
        self._inbox.put(None)
