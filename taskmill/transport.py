"""Task references that can cross process boundaries.

A task is identified by an import path of the form ``package.module:qualname``.
Workers resolve the path themselves, so only the short string is sent with
each request and no code or closure is ever serialized. Lambdas and nested
functions have no such path and are rejected up front.
"""

from dataclasses import dataclass
from functools import lru_cache
from importlib import import_module
from typing import Any, Callable, Union

from taskmill.errors import InvalidTaskError


@dataclass(frozen=True)
class TaskRef:
    path: str

    @property
    def module(self) -> str:
        return self.path.split(":", 1)[0]

    @property
    def qualname(self) -> str:
        return self.path.split(":", 1)[1]

    def __str__(self) -> str:
        return self.path


def task_ref(task: Union[str, TaskRef, Callable[..., Any]]) -> TaskRef:
    """Build a TaskRef from a path string or an importable callable."""
    if isinstance(task, TaskRef):
        return task

    if isinstance(task, str):
        if ":" not in task:
            raise InvalidTaskError(f"Task path must be 'module:function', got {task!r}")
        module_name, qualname = task.split(":", 1)
        if not module_name or not qualname:
            raise InvalidTaskError(f"Task path must be 'module:function', got {task!r}")
        resolve_task(task)
        return TaskRef(task)

    if not callable(task):
        raise InvalidTaskError(f"Task must be a callable or an import path, got {type(task).__name__}")

    module_name = getattr(task, "__module__", None)
    qualname = getattr(task, "__qualname__", None)
    if not module_name or not qualname:
        raise InvalidTaskError(f"Task {task!r} has no importable name")
    if "<lambda>" in qualname or "<locals>" in qualname:
        raise InvalidTaskError(
            f"Task {qualname!r} is not importable; define it at module level"
        )
    if module_name == "__main__":
        # Spawned workers re-import __main__ under another name
        raise InvalidTaskError(
            f"Task {qualname!r} is defined in __main__; move it into an importable module"
        )

    ref = TaskRef(f"{module_name}:{qualname}")
    if resolve_task(ref.path) != task:
        raise InvalidTaskError(f"Task {ref.path!r} does not resolve back to the given callable")
    return ref


@lru_cache(maxsize=None)
def resolve_task(path: str) -> Callable[..., Any]:
    """Import and return the callable named by ``path`` (cached per process)."""
    if ":" not in path:
        raise InvalidTaskError(f"Task path must be 'module:function', got {path!r}")
    module_name, qualname = path.split(":", 1)

    try:
        target: Any = import_module(module_name)
    except ImportError as e:
        raise InvalidTaskError(f"Cannot import task module {module_name!r}: {e}") from e

    for attr in qualname.split("."):
        try:
            target = getattr(target, attr)
        except AttributeError:
            raise InvalidTaskError(f"Task {qualname!r} not found in module {module_name!r}") from None

    if not callable(target):
        raise InvalidTaskError(f"Task {path!r} is not callable")
    return target
