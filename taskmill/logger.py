import json
import logging
import sys
from datetime import datetime
from pathlib import Path
from typing import Optional


STRUCTURED_FIELDS = (
    'pool',
    'run_id',
    'index',
    'worker_id',
    'total',
    'pool_size',
    'backend',
    'succeeded',
    'failed',
    'handler_errors',
    'pending',
    'exitcode',
    'error',
    'error_type',
    'phase',
    'duration_seconds',
)


class FlushingFileHandler(logging.FileHandler):
    """FileHandler that flushes after every emit for real-time log visibility."""
    def emit(self, record):
        super().emit(record)
        self.flush()


class JSONFormatter(logging.Formatter):
    def format(self, record: logging.LogRecord) -> str:
        log_data = {
            "timestamp": datetime.now().astimezone().isoformat(),
            "level": record.levelname,
            "message": record.getMessage(),
        }

        for field in STRUCTURED_FIELDS:
            if hasattr(record, field):
                log_data[field] = getattr(record, field)

        if record.exc_info:
            log_data["traceback"] = self.formatException(record.exc_info)

        return json.dumps(log_data, default=str)


class PoolLogger:
    """Logger for one pool, optionally writing an append-only JSONL file.

    Keyword arguments passed to the level methods become structured fields
    on the record. Handlers are created lazily on first log message so an
    idle pool never creates a log file. Without console or file output the
    records propagate to the ``taskmill`` logger hierarchy.
    """
    def __init__(
        self,
        name: str,
        log_dir: Optional[Path] = None,
        console_output: bool = False,
        level: str = "INFO",
        filename: str = None
    ):
        self.name = name
        self.log_dir = Path(log_dir) if log_dir is not None else None
        self.console_output = console_output
        self.level = level
        self.filename = filename or f"{name}.jsonl"

        self._logger = None
        self._initialized = False
        self.log_file = None

    def _ensure_initialized(self):
        if self._initialized:
            return

        self._logger = logging.getLogger(f"taskmill.{self.name}.{id(self)}")
        self._logger.setLevel(getattr(logging, self.level.upper()))

        if self.console_output:
            console_handler = logging.StreamHandler(sys.stderr)
            console_handler.setFormatter(logging.Formatter('%(levelname)s: %(message)s'))
            self._logger.addHandler(console_handler)

        if self.log_dir is not None:
            self.log_dir.mkdir(parents=True, exist_ok=True)
            json_file = self.log_dir / self.filename
            json_handler = FlushingFileHandler(json_file, mode='a')
            json_handler.setFormatter(JSONFormatter())
            self._logger.addHandler(json_handler)
            self.log_file = json_file

        self._logger.propagate = not self._logger.handlers
        self._initialized = True

    @property
    def logger(self) -> logging.Logger:
        self._ensure_initialized()
        return self._logger

    def _log(self, level: str, message: str, **kwargs):
        reserved_params = {}
        for param in ['exc_info', 'stack_info', 'stacklevel', 'extra']:
            if param in kwargs:
                reserved_params[param] = kwargs.pop(param)

        extra = {
            'pool': self.name,
            **kwargs
        }
        if 'extra' in reserved_params:
            extra.update(reserved_params.pop('extra'))

        self.logger.log(
            getattr(logging, level.upper()),
            message,
            extra=extra,
            **reserved_params
        )

    def debug(self, message: str, **kwargs):
        self._log('DEBUG', message, **kwargs)

    def info(self, message: str, **kwargs):
        self._log('INFO', message, **kwargs)

    def warning(self, message: str, **kwargs):
        self._log('WARNING', message, **kwargs)

    def error(self, message: str, **kwargs):
        self._log('ERROR', message, **kwargs)

    def close(self):
        if self._initialized and self._logger:
            for handler in self._logger.handlers[:]:
                handler.close()
                self._logger.removeHandler(handler)
            self._logger.propagate = True

    def __enter__(self):
        return self

    def __exit__(self, exc_type, exc_val, exc_tb):
        self.close()
        return False


def create_logger(name: str, **kwargs) -> PoolLogger:
    return PoolLogger(name, **kwargs)
