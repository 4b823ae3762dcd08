import pickle

from taskmill.errors import TaskTransportError
from taskmill.models import Task
from .runtime import process_main


class ProcessWorker:
    """A worker running in its own interpreter process.

    Requests are pickled here, before they are queued, so an unpicklable
    input fails the task instead of being lost in the queue feeder thread.
    """
    kind = "process"

    def __init__(self, worker_id: int, ctx, outbox):
        self.worker_id = worker_id
        self._inbox = ctx.Queue()
        self._process = ctx.Process(
            target=process_main,
            args=(worker_id, self._inbox, outbox),
            name=f"taskmill-worker-{worker_id}",
            daemon=True,
        )
        self._terminated = False

    def start(self):
        self._process.start()

    def submit(self, task: Task):
        try:
            payload = pickle.dumps(task, protocol=pickle.HIGHEST_PROTOCOL)
        except Exception as e:
            raise TaskTransportError(
                f"Task {task.index} cannot be sent to a worker process: {e}"
            ) from e
        self._inbox.put((task.run_id, task.index, payload))

    def is_alive(self) -> bool:
        return self._process.is_alive()

    @property
    def exitcode(self):
        return self._process.exitcode

    def terminate(self, timeout: float):
        if self._terminated:
            return
        self._terminated = True

        if self._process.is_alive():
            self._process.terminate()
            self._process.join(timeout)
            if self._process.is_alive():
                self._process.kill()
                self._process.join()

        self._inbox.cancel_join_thread()
        self._inbox.close()
