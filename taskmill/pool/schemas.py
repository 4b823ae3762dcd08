#!/usr/bin/env python3
import time
from enum import Enum
from dataclasses import dataclass, field
from typing import Optional


class TaskPhase(str, Enum):
    QUEUED = "queued"
    DISPATCHED = "dispatched"
    COMPLETED = "completed"
    FAILED = "failed"
    DELIVERED = "delivered"


class PoolState(str, Enum):
    IDLE = "idle"
    RUNNING = "running"
    CLOSED = "closed"


@dataclass
class RunStats:
    total: int
    succeeded: int = 0
    failed: int = 0
    handler_errors: int = 0
    started_at: float = field(default_factory=time.time)
    finished_at: Optional[float] = None

    @property
    def delivered(self) -> int:
        return self.succeeded + self.failed

    @property
    def outstanding(self) -> int:
        return self.total - self.delivered

    @property
    def elapsed_seconds(self) -> float:
        end = self.finished_at if self.finished_at is not None else time.time()
        return end - self.started_at

    @property
    def tasks_per_second(self) -> float:
        elapsed = self.elapsed_seconds
        return self.delivered / elapsed if elapsed > 0 else 0.0
