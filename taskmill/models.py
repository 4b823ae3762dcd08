#!/usr/bin/env python3
from dataclasses import dataclass
from typing import Any, NamedTuple, Optional

from taskmill.transport import TaskRef


@dataclass(frozen=True)
class Task:
    """One input bound to its position in the run and the task to apply."""
    run_id: int
    index: int
    input: Any
    task_ref: TaskRef


@dataclass(frozen=True)
class CompletionEvent:
    """Exactly one per Task. ``error is None`` means the task succeeded."""
    run_id: int
    worker_id: Optional[int]
    index: int
    input: Any
    result: Any = None
    error: Optional[str] = None
    duration_seconds: float = 0.0

    @property
    def success(self) -> bool:
        return self.error is None


class TaskResponse(NamedTuple):
    index: int
    result: Any
    error: Optional[str]
