class TaskmillError(Exception):
    pass


class InvalidConfigurationError(TaskmillError, ValueError):
    pass


class InvalidTaskError(TaskmillError, ValueError):
    pass


class PoolClosedError(TaskmillError):
    pass


class PoolBusyError(TaskmillError):
    """Raised when a run is started while another run owns the pool."""


class TaskTransportError(TaskmillError):
    """A request could not be handed to a worker (e.g. unpicklable input)."""


class WorkerLostError(TaskmillError):
    def __init__(self, worker_id: int, index: int, exitcode=None):
        self.worker_id = worker_id
        self.index = index
        self.exitcode = exitcode
        super().__init__(
            f"Worker {worker_id} exited (exitcode={exitcode}) while running task {index}"
        )
