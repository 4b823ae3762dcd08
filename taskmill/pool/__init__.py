"""Scheduling and correlation engine for taskmill.

The Pool facade (pool.py) owns one run at a time and wires together:

1. **Dispatcher** (dispatcher.py)
   - FIFO queue of not-yet-assigned tasks, FIFO set of idle workers
   - Issues the queue head to the longest-idle worker whenever both exist

2. **Result Collector** (collector.py)
   - Background thread reading the workers' shared outbox
   - Releases the finished worker and re-triggers the dispatcher
   - Detects workers that died and reports WorkerLostError

3. **Completion Channel** (channel.py)
   - Buffered multi-producer, single-consumer queue of CompletionEvents
   - Nothing is dropped, however many workers finish at once

4. **Ordering Buffer** (ordering.py)
   - Rebuilds input order for imap()

5. **Run handling** (context.py, handlers.py)
   - Per-run context: inputs, hooks, stats, progress bar
   - Hook invocation, stale-event filtering, run completion/abandonment

## Usage

    from taskmill import Pool

    with Pool(4) as pool:
        results = pool.map([1, 2, 3, 4], "mypackage.tasks:square")
"""
from .pool import Pool
from .channel import CompletionChannel
from .dispatcher import Dispatcher
from .ordering import OrderingBuffer
from .context import RunContext
from .schemas import PoolState, RunStats, TaskPhase

__all__ = [
    'Pool',
    'CompletionChannel',
    'Dispatcher',
    'OrderingBuffer',
    'RunContext',
    'PoolState',
    'RunStats',
    'TaskPhase',
]
