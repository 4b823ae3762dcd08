"""Worker runtime for taskmill pools.

A worker executes one Task at a time and reports exactly one
CompletionEvent per Task on the pool's shared outbox:

1. **Execution** (runtime.py)
   - Resolve the task's import path (cached per process)
   - Call it with the input, awaiting coroutine results
   - Turn raised or returned exceptions into an error message

2. **Process workers** (process.py)
   - One interpreter per worker, requests pickled by the orchestrator
   - terminate() kills the process, discarding any in-flight task

3. **Thread workers** (thread.py)
   - Daemon threads sharing the orchestrator's interpreter
   - Useful for I/O-bound tasks and for tests

Workers never talk to each other; the Dispatcher in taskmill.pool decides
which worker gets which Task.
"""
from .process import ProcessWorker
from .thread import ThreadWorker
from .runtime import execute, error_message

__all__ = ['ProcessWorker', 'ThreadWorker', 'execute', 'error_message']
