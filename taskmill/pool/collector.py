import threading
from typing import Dict, Optional

from taskmill.errors import TaskmillError, WorkerLostError
from .channel import CompletionChannel
from .dispatcher import Dispatcher
from .schemas import TaskPhase


class ResultCollector:
    """Background thread moving worker completions onto the completion channel.

    For each event it releases the worker and re-triggers the dispatcher
    before forwarding the event, so workers stay busy even while the consumer
    is slow to pull results. Between events it checks that every worker is
    still alive and records a WorkerLostError for the consumer if not.
    """

    def __init__(
        self,
        outbox: CompletionChannel,
        channel: CompletionChannel,
        dispatcher: Dispatcher,
        workers: Dict[int, object],
        logger,
        poll_interval: float = 0.1,
    ):
        self.outbox = outbox
        self.channel = channel
        self.dispatcher = dispatcher
        self.workers = workers
        self.logger = logger
        self.poll_interval = poll_interval

        self.failure: Optional[TaskmillError] = None
        self._stop = threading.Event()
        self._thread = threading.Thread(
            target=self._collect_loop,
            name="taskmill-collector",
            daemon=True,
        )

    def start(self):
        self._thread.start()

    def stop(self, timeout: Optional[float] = None):
        self._stop.set()
        if self._thread.is_alive() and self._thread is not threading.current_thread():
            self._thread.join(timeout)

    def _collect_loop(self):
        try:
            self._collect()
        except Exception as e:
            self.logger.error(f"Result collector crashed: {e}", exc_info=True)
            self.failure = TaskmillError(f"Result collector crashed: {e}")

    def _collect(self):
        while not self._stop.is_set():
            event = self.outbox.get(timeout=self.poll_interval)
            if event is None:
                self._check_workers()
                continue

            task = self.dispatcher.complete(event)
            if task is None:
                self.logger.warning(
                    f"Dropping completion from worker {event.worker_id}: worker was not busy",
                    run_id=event.run_id,
                    index=event.index,
                    worker_id=event.worker_id,
                )
                continue

            phase = TaskPhase.COMPLETED if event.success else TaskPhase.FAILED
            self.logger.debug(
                f"Task {event.index} {phase.value} on worker {event.worker_id}",
                run_id=event.run_id,
                index=event.index,
                worker_id=event.worker_id,
                error=event.error,
                phase=phase.value,
                duration_seconds=event.duration_seconds,
            )
            self.channel.put(event)

    def _check_workers(self):
        if self.failure is not None or self._stop.is_set():
            return

        for worker_id, worker in self.workers.items():
            if worker.is_alive():
                continue

            busy = self.dispatcher.busy_workers()
            task = busy.get(worker_id)
            index = task.index if task is not None else None
            self.failure = WorkerLostError(worker_id, index, worker.exitcode)
            self.logger.error(
                str(self.failure),
                worker_id=worker_id,
                index=index,
                exitcode=worker.exitcode,
            )
            return
