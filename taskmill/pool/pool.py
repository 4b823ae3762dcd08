import asyncio
import itertools
import multiprocessing
import threading
from typing import Any, AsyncIterable, Callable, Dict, Iterable, Iterator, List, Optional, Union

from taskmill.config import PoolConfig, build_config, load_pool_config
from taskmill.errors import PoolBusyError, PoolClosedError
from taskmill.logger import PoolLogger, create_logger
from taskmill.models import CompletionEvent, Task, TaskResponse
from taskmill.progress import RunProgress
from taskmill.transport import TaskRef, task_ref
from taskmill.worker import ProcessWorker, ThreadWorker

from . import handlers
from .channel import CompletionChannel
from .collector import ResultCollector
from .context import RunContext, TaskErrorHandler, TaskSuccessHandler
from .dispatcher import Dispatcher
from .ordering import OrderingBuffer
from .schemas import PoolState


TaskLike = Union[str, TaskRef, Callable[..., Any]]
InputSource = Union[Iterable[Any], AsyncIterable[Any]]

_pool_ids = itertools.count(1)


async def _drain_async(inputs) -> List[Any]:
    return [item async for item in inputs]


def _enumerate_inputs(inputs: InputSource) -> List[Any]:
    """Materialise every input before dispatch, sync or async source alike."""
    if hasattr(inputs, "__aiter__"):
        return asyncio.run(_drain_async(inputs))
    return list(inputs)


class Pool:
    """
    Fixed-size pool of isolated workers with three ways to consume results.

    Every consumption method runs the same engine: the inputs are enumerated
    up front, each gets a 0-based index, the dispatcher feeds them to idle
    workers in index order and completions are drained until every task has
    reported back. Only the shape of the output differs:

    - map(): list aligned with the inputs, returned when everything is done
    - imap(): input order, yielded as soon as a contiguous prefix is ready
    - imap_unordered(): completion order
    - imap_unordered_extended(): completion order, as (index, result, error)

    A failed task never stops a run. Its result is None and its error message
    is passed to ``on_error`` (and exposed by imap_unordered_extended).

    Only one run may be active on a pool at a time; starting another raises
    PoolBusyError.

    Usage:
        with Pool(4) as pool:
            squares = pool.map(range(10), "mypackage.tasks:square")

            for value in pool.imap(inputs, square, on_error=log_failure):
                ...
    """

    def __init__(
        self,
        pool_size: Optional[int] = None,
        *,
        config: Optional[PoolConfig] = None,
        logger: Optional[PoolLogger] = None,
        **overrides: Any
    ):
        """
        Start the pool's workers.

        Args:
            pool_size: Number of workers (> 0); defaults to the configured size
            config: Base configuration; loaded from the environment if omitted
            logger: Logger to use instead of one built from the config
            **overrides: PoolConfig fields overriding ``config``

        Raises:
            InvalidConfigurationError: pool_size <= 0 or any invalid setting
        """
        if config is None:
            config = load_pool_config(pool_size=pool_size, **overrides)
        else:
            config = build_config(config, pool_size=pool_size, **overrides)

        self.config = config
        self.name = f"pool-{next(_pool_ids)}"
        self._owns_logger = logger is None
        self.logger = logger or create_logger(
            self.name,
            log_dir=config.log_dir,
            level=config.log_level,
        )

        self._run_lock = threading.Lock()
        self._close_lock = threading.Lock()
        self._closed = False
        self._run_ids = itertools.count(1)

        self.workers: Dict[int, Union[ProcessWorker, ThreadWorker]] = {}
        self.channel = CompletionChannel()
        self.outbox = self._create_outbox()
        try:
            self._start_workers()
        except Exception:
            for worker in self.workers.values():
                worker.terminate(config.shutdown_timeout)
            self.outbox.close()
            raise

        self.dispatcher = Dispatcher(self.workers, self.channel, self.logger)
        self.collector = ResultCollector(
            self.outbox,
            self.channel,
            self.dispatcher,
            self.workers,
            self.logger,
            poll_interval=config.poll_interval,
        )
        self.collector.start()

        self.logger.info(
            f"{self.name} started with {self.pool_size} {config.backend} workers",
            pool_size=self.pool_size,
            backend=config.backend,
        )

    def _create_outbox(self) -> CompletionChannel:
        if self.config.backend == "process":
            self._mp_context = multiprocessing.get_context(self.config.start_method)
            return CompletionChannel.for_processes(self._mp_context)
        return CompletionChannel()

    def _start_workers(self):
        for worker_id in range(self.config.pool_size):
            if self.config.backend == "process":
                worker = ProcessWorker(worker_id, self._mp_context, self.outbox.queue)
            else:
                worker = ThreadWorker(worker_id, self.outbox.queue)
            self.workers[worker_id] = worker
            worker.start()

    @property
    def pool_size(self) -> int:
        return self.config.pool_size

    @property
    def closed(self) -> bool:
        return self._closed

    @property
    def state(self) -> PoolState:
        if self._closed:
            return PoolState.CLOSED
        if self._run_lock.locked():
            return PoolState.RUNNING
        return PoolState.IDLE

    # ===== Consumption methods =====

    def map(
        self,
        inputs: InputSource,
        task: TaskLike,
        on_success: Optional[TaskSuccessHandler] = None,
        on_error: Optional[TaskErrorHandler] = None
    ) -> List[Optional[Any]]:
        """
        Run ``task`` over every input and return results in input order.

        Args:
            inputs: Iterable or async iterable (fully enumerated before any dispatch)
            task: Importable callable or "module:function" path
            on_success: Called as on_success(result, input, index) per success
            on_error: Called as on_error(error, input, index) per failure

        Returns:
            List with one entry per input; None where the task failed
        """
        responses = list(self.imap_unordered_extended(inputs, task, on_success, on_error))
        responses.sort(key=lambda response: response.index)
        return [response.result for response in responses]

    def imap(
        self,
        inputs: InputSource,
        task: TaskLike,
        on_success: Optional[TaskSuccessHandler] = None,
        on_error: Optional[TaskErrorHandler] = None
    ) -> Iterator[Optional[Any]]:
        """Lazily yield results in input order (None for failed tasks)."""
        return self._in_input_order(
            self.imap_unordered_extended(inputs, task, on_success, on_error)
        )

    def imap_unordered(
        self,
        inputs: InputSource,
        task: TaskLike,
        on_success: Optional[TaskSuccessHandler] = None,
        on_error: Optional[TaskErrorHandler] = None
    ) -> Iterator[Optional[Any]]:
        """Lazily yield results as tasks complete (None for failed tasks)."""
        return self._results_only(
            self.imap_unordered_extended(inputs, task, on_success, on_error)
        )

    def imap_unordered_extended(
        self,
        inputs: InputSource,
        task: TaskLike,
        on_success: Optional[TaskSuccessHandler] = None,
        on_error: Optional[TaskErrorHandler] = None
    ) -> Iterator[TaskResponse]:
        """
        Lazily yield TaskResponse(index, result, error) as tasks complete.

        Exactly one of ``result``/``error`` is meaningful per response:
        ``error`` is None for a successful task.
        """
        ref = task_ref(task)
        self._ensure_open()
        return self._run(inputs, ref, on_success, on_error)

    @staticmethod
    def _in_input_order(responses: Iterator[TaskResponse]) -> Iterator[Optional[Any]]:
        buffer = OrderingBuffer()
        try:
            for response in responses:
                yield from buffer.push(response.index, response.result)
        finally:
            responses.close()

    @staticmethod
    def _results_only(responses: Iterator[TaskResponse]) -> Iterator[Optional[Any]]:
        try:
            for response in responses:
                yield response.result
        finally:
            responses.close()

    # ===== Run lifecycle =====

    def _run(
        self,
        inputs: InputSource,
        ref: TaskRef,
        on_success: Optional[TaskSuccessHandler],
        on_error: Optional[TaskErrorHandler]
    ) -> Iterator[TaskResponse]:
        self._ensure_open()
        if not self._run_lock.acquire(blocking=False):
            raise PoolBusyError(
                f"{self.name} already has an active run; runs on one pool cannot overlap"
            )
        holding = True
        run = None

        try:
            run = self._start_run(inputs, ref, on_success, on_error)

            while not run.done:
                event = self._next_event(run)
                if event.run_id != run.run_id:
                    handlers.handle_stale(self, event)
                    continue

                response = handlers.deliver(self, run, event)
                if response is None:
                    continue

                if run.done:
                    # Free the pool before handing out the last result
                    handlers.finish_run(self, run)
                    self._run_lock.release()
                    holding = False

                yield response

            if not run.finished:
                handlers.finish_run(self, run)
        finally:
            if run is not None and not run.finished:
                handlers.abandon_run(self, run)
            if holding:
                self._run_lock.release()

    def _start_run(
        self,
        inputs: InputSource,
        ref: TaskRef,
        on_success: Optional[TaskSuccessHandler],
        on_error: Optional[TaskErrorHandler]
    ) -> RunContext:
        run = RunContext(
            run_id=next(self._run_ids),
            task_ref=ref,
            inputs=_enumerate_inputs(inputs),
            on_success=on_success,
            on_error=on_error,
        )

        self.logger.info(
            f"Run {run.run_id}: {run.total} tasks of {ref} on {self.pool_size} workers",
            run_id=run.run_id,
            total=run.total,
            pool_size=self.pool_size,
        )

        if run.total and self.config.show_progress:
            run.progress = RunProgress(run.total, prefix=f"{ref.qualname} ")
            run.progress.start()

        self.dispatcher.enqueue(
            (
                Task(run_id=run.run_id, index=index, input=item, task_ref=ref)
                for index, item in enumerate(run.inputs)
            ),
            run_id=run.run_id,
        )
        self.dispatcher.dispatch()
        return run

    def _next_event(self, run: RunContext) -> CompletionEvent:
        while True:
            failure = self.collector.failure
            if failure is not None:
                self.close()
                raise failure

            if self._closed:
                raise PoolClosedError(
                    f"{self.name} was closed while run {run.run_id} "
                    f"waited for {run.stats.outstanding} tasks"
                )

            event = self.channel.get(timeout=self.config.poll_interval)
            if event is not None:
                return event

    def _ensure_open(self):
        if self._closed:
            raise PoolClosedError(f"{self.name} is closed")

    # ===== Shutdown =====

    def close(self):
        """
        Terminate every worker, including those with a task in flight.

        In-flight results are discarded. A run still waiting for completions
        raises PoolClosedError. Calling close() again does nothing.
        """
        with self._close_lock:
            if self._closed:
                return
            self._closed = True

        in_flight = len(self.dispatcher.busy_workers())
        dropped = self.dispatcher.stop()
        self.collector.stop(timeout=self.config.poll_interval * 10)

        for worker in self.workers.values():
            worker.terminate(self.config.shutdown_timeout)
        self.outbox.close()

        self.logger.info(
            f"{self.name} closed ({in_flight} in-flight and {dropped} queued tasks discarded)",
            pool_size=self.pool_size,
            pending=dropped,
        )
        if self._owns_logger:
            self.logger.close()

    def __enter__(self) -> "Pool":
        return self

    def __exit__(self, exc_type, exc_val, exc_tb):
        self.close()
        return False

    def __repr__(self) -> str:
        return f"<Pool {self.name} size={self.pool_size} backend={self.config.backend} state={self.state.value}>"
