import time
from typing import Optional

from taskmill.models import CompletionEvent, TaskResponse
from .context import RunContext
from .schemas import TaskPhase


def deliver(
    pool,
    run: RunContext,
    event: CompletionEvent
) -> Optional[TaskResponse]:
    """Account for one completion of the active run and fire its hook.

    Returns None for a duplicate index so the caller can skip it.
    """
    if event.index in run.delivered:
        pool.logger.warning(
            f"Ignoring duplicate completion for task {event.index}",
            run_id=run.run_id,
            index=event.index,
            worker_id=event.worker_id,
        )
        return None
    run.delivered.add(event.index)

    item = run.inputs[event.index]

    if event.success:
        run.stats.succeeded += 1
        invoke_hook(pool, run, event, run.on_success, event.result, item, event.index)
    else:
        run.stats.failed += 1
        invoke_hook(pool, run, event, run.on_error, event.error, item, event.index)

    if run.progress is not None:
        run.progress.advance(success=event.success)

    pool.logger.debug(
        f"Task {event.index} delivered ({run.stats.delivered}/{run.total})",
        run_id=run.run_id,
        index=event.index,
        worker_id=event.worker_id,
        error=event.error,
        phase=TaskPhase.DELIVERED.value,
    )

    return TaskResponse(event.index, event.result, event.error)


def invoke_hook(pool, run: RunContext, event: CompletionEvent, hook, *args):
    try:
        hook(*args)
    except Exception as e:
        run.stats.handler_errors += 1
        if pool.config.raise_handler_errors:
            raise
        pool.logger.error(
            f"Handler failed for task {event.index}: {type(e).__name__}: {e}",
            run_id=run.run_id,
            index=event.index,
            error_type=type(e).__name__,
            error=str(e),
            exc_info=True,
        )


def handle_stale(pool, event: CompletionEvent):
    pool.logger.debug(
        f"Discarding completion of task {event.index} from abandoned run {event.run_id}",
        run_id=event.run_id,
        index=event.index,
        worker_id=event.worker_id,
    )


def finish_run(pool, run: RunContext):
    run.finished = True
    run.stats.finished_at = time.time()

    if run.progress is not None:
        run.progress.finish()

    pool.logger.info(
        f"Run {run.run_id} complete: {run.stats.succeeded} succeeded, "
        f"{run.stats.failed} failed in {run.stats.elapsed_seconds:.2f}s",
        run_id=run.run_id,
        total=run.total,
        succeeded=run.stats.succeeded,
        failed=run.stats.failed,
        handler_errors=run.stats.handler_errors,
        duration_seconds=run.stats.elapsed_seconds,
    )


def abandon_run(pool, run: RunContext):
    """Stop a run before all of its completions were drained.

    Queued tasks are dropped; tasks already on a worker finish and their
    completions are discarded later by run_id.
    """
    run.stats.finished_at = time.time()
    dropped = pool.dispatcher.discard_pending(run.run_id)

    if run.progress is not None:
        run.progress.finish()

    pool.logger.warning(
        f"Run {run.run_id} abandoned with {run.stats.outstanding} of {run.total} tasks undelivered "
        f"({dropped} never dispatched)",
        run_id=run.run_id,
        total=run.total,
        succeeded=run.stats.succeeded,
        failed=run.stats.failed,
        pending=dropped,
    )
