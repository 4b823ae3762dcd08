from dataclasses import dataclass, field
from typing import Any, Callable, List, Optional

from taskmill.progress import RunProgress
from taskmill.transport import TaskRef
from .schemas import RunStats


TaskSuccessHandler = Callable[[Any, Any, int], None]
TaskErrorHandler = Callable[[str, Any, int], None]


def _noop(*args):
    return None


@dataclass
class RunContext:
    """Everything that belongs to one run and must not outlive it."""
    run_id: int
    task_ref: TaskRef
    inputs: List[Any]
    on_success: TaskSuccessHandler = _noop
    on_error: TaskErrorHandler = _noop
    stats: RunStats = None
    progress: Optional[RunProgress] = None
    finished: bool = False
    delivered: set = field(default_factory=set)

    def __post_init__(self):
        self.on_success = self.on_success or _noop
        self.on_error = self.on_error or _noop
        if self.stats is None:
            self.stats = RunStats(total=len(self.inputs))

    @property
    def total(self) -> int:
        return len(self.inputs)

    @property
    def done(self) -> bool:
        return self.stats.delivered >= self.total
