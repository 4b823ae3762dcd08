"""
Configuration schema for taskmill pools.

A PoolConfig is immutable once built. Values come from (lowest to highest
precedence) field defaults, a YAML file, TASKMILL_* environment variables
and explicit keyword overrides; see loader.py.
"""

import os
from pathlib import Path
from typing import Literal, Optional

from pydantic import BaseModel, Field, field_validator


START_METHODS = ("fork", "spawn", "forkserver")


class PoolConfig(BaseModel):
    pool_size: Optional[int] = Field(
        None,
        validate_default=True,
        description="Number of workers (defaults to os.cpu_count())"
    )
    backend: Literal["process", "thread"] = Field(
        "process",
        description="Worker runtime: isolated processes or in-process threads"
    )
    start_method: Optional[str] = Field(
        None,
        description="multiprocessing start method (fork, spawn, forkserver)"
    )
    poll_interval: float = Field(
        0.1,
        gt=0,
        description="Seconds between closed/liveness checks while waiting for completions"
    )
    shutdown_timeout: float = Field(
        5.0,
        ge=0,
        description="Seconds to wait for each worker to exit on close"
    )
    raise_handler_errors: bool = Field(
        False,
        description="Propagate exceptions raised by on_success/on_error hooks"
    )
    show_progress: bool = Field(
        False,
        description="Render a rich progress bar for each run"
    )
    log_level: str = Field(
        "INFO",
        description="Logger level name"
    )
    log_dir: Optional[Path] = Field(
        None,
        description="Directory for JSONL logs (None disables file output)"
    )

    model_config = {
        "frozen": True,
        "validate_assignment": True,
        "extra": "forbid"
    }

    @field_validator('pool_size')
    @classmethod
    def validate_pool_size(cls, v: Optional[int]) -> int:
        if v is None:
            return os.cpu_count() or 1
        if v <= 0:
            raise ValueError(f"pool_size must be > 0, got {v}")
        return v

    @field_validator('start_method')
    @classmethod
    def validate_start_method(cls, v: Optional[str]) -> Optional[str]:
        if v is None or v == "":
            return None
        v = v.strip().lower()
        if v not in START_METHODS:
            raise ValueError(f"start_method must be one of {START_METHODS}, got {v!r}")
        return v

    @field_validator('log_level')
    @classmethod
    def validate_log_level(cls, v: str) -> str:
        level = v.strip().upper()
        if level not in ("DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"):
            raise ValueError(f"Unknown log level: {v!r}")
        return level

    @field_validator('log_dir')
    @classmethod
    def validate_log_dir(cls, v: Optional[Path]) -> Optional[Path]:
        if v is None:
            return None
        return Path(v).expanduser().resolve()
