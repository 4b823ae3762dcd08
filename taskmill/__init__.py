from taskmill.config import PoolConfig, load_pool_config
from taskmill.errors import (
    TaskmillError,
    InvalidConfigurationError,
    InvalidTaskError,
    PoolBusyError,
    PoolClosedError,
    TaskTransportError,
    WorkerLostError,
)
from taskmill.logger import PoolLogger, create_logger
from taskmill.models import CompletionEvent, Task, TaskResponse
from taskmill.pool import Pool, PoolState, RunStats
from taskmill.transport import TaskRef, task_ref, resolve_task

__all__ = [
    "Pool",
    "PoolState",
    "RunStats",

    "PoolConfig",
    "load_pool_config",

    "Task",
    "TaskRef",
    "TaskResponse",
    "CompletionEvent",
    "task_ref",
    "resolve_task",

    "PoolLogger",
    "create_logger",

    "TaskmillError",
    "InvalidConfigurationError",
    "InvalidTaskError",
    "PoolBusyError",
    "PoolClosedError",
    "TaskTransportError",
    "WorkerLostError",
]
