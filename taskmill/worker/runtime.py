"""Task execution inside a worker.

Every request produces exactly one CompletionEvent. Failures are reported as
a message string; the worker itself keeps running.
"""

import asyncio
import inspect
import pickle
from time import perf_counter
from typing import Any, Optional

from taskmill.models import CompletionEvent, Task
from taskmill.transport import resolve_task


def error_message(exc: BaseException) -> str:
    return str(exc) or type(exc).__name__


async def _await(awaitable):
    return await awaitable


def execute(task: Task, worker_id: int, check_picklable: bool = False) -> CompletionEvent:
    t0 = perf_counter()
    result: Any = None
    error: Optional[str] = None

    try:
        fn = resolve_task(task.task_ref.path)
        result = fn(task.input)
        if inspect.isawaitable(result):
            result = asyncio.run(_await(result))
    except KeyboardInterrupt:
        raise
    except BaseException as e:
        # SystemExit and friends fail the task, not the worker
        result, error = None, error_message(e)

    # A returned exception counts as a failure, same as a raised one
    if isinstance(result, BaseException):
        result, error = None, error_message(result)

    if check_picklable and error is None:
        try:
            pickle.dumps(result, protocol=pickle.HIGHEST_PROTOCOL)
        except Exception as e:
            result, error = None, f"Result of task {task.index} is not picklable: {error_message(e)}"

    return CompletionEvent(
        run_id=task.run_id,
        worker_id=worker_id,
        index=task.index,
        input=task.input,
        result=result,
        error=error,
        duration_seconds=perf_counter() - t0,
    )


def thread_main(worker_id: int, inbox, outbox):
    while True:
        task = inbox.get()
        if task is None:
            break
        outbox.put(execute(task, worker_id))


def process_main(worker_id: int, inbox, outbox):
    while True:
        message = inbox.get()
        if message is None:
            break

        run_id, index, payload = message
        try:
            task = pickle.loads(payload)
        except Exception as e:
            outbox.put(CompletionEvent(
                run_id=run_id,
                worker_id=worker_id,
                index=index,
                input=None,
                error=f"Task {index} could not be loaded in worker {worker_id}: {error_message(e)}",
            ))
            continue

        outbox.put(execute(task, worker_id, check_picklable=True))
