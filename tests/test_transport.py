"""
Tests for task references and in-worker execution.
"""

import pytest

from taskmill import InvalidTaskError, Task, TaskRef, resolve_task, task_ref
from taskmill.worker import error_message, execute
from tests import tasks


class Scaler:
    factor = 3

    @classmethod
    def scale(cls, x):
        return x * cls.factor


def run_task(fn, value, check_picklable=False):
    task = Task(run_id=1, index=0, input=value, task_ref=task_ref(fn))
    return execute(task, worker_id=7, check_picklable=check_picklable)


class TestTaskRef:

    def test_from_module_function(self):
        ref = task_ref(tasks.square)
        assert ref == TaskRef("tests.tasks:square")
        assert ref.module == "tests.tasks"
        assert ref.qualname == "square"

    def test_from_path_string(self):
        assert task_ref("tests.tasks:identity").path == "tests.tasks:identity"

    def test_existing_ref_passes_through(self):
        ref = TaskRef("tests.tasks:square")
        assert task_ref(ref) is ref

    def test_nested_qualname(self):
        assert task_ref(tasks.Arithmetic.cube).qualname == "Arithmetic.cube"

    def test_classmethod(self):
        assert task_ref(Scaler.scale).path == f"{__name__}:Scaler.scale"

    def test_lambda_rejected(self):
        with pytest.raises(InvalidTaskError, match="module level"):
            task_ref(lambda x: x)

    def test_nested_function_rejected(self):
        def inner(x):
            return x

        with pytest.raises(InvalidTaskError, match="module level"):
            task_ref(inner)

    def test_main_module_rejected(self):
        def fake(x):
            return x
        fake.__module__ = "__main__"
        fake.__qualname__ = "fake"

        with pytest.raises(InvalidTaskError, match="__main__"):
            task_ref(fake)

    def test_shadowed_name_rejected(self):
        def square(x):
            return x
        square.__module__ = "tests.tasks"
        square.__qualname__ = "square"

        with pytest.raises(InvalidTaskError, match="does not resolve back"):
            task_ref(square)

    @pytest.mark.parametrize("path", ["square", ":square", "tests.tasks:"])
    def test_malformed_path_rejected(self, path):
        with pytest.raises(InvalidTaskError):
            task_ref(path)

    def test_non_callable_rejected(self):
        with pytest.raises(InvalidTaskError):
            task_ref(42)

    def test_invalid_task_is_a_value_error(self):
        with pytest.raises(ValueError):
            task_ref("no.such.module:fn")


class TestResolveTask:

    def test_resolves_to_same_object(self):
        assert resolve_task("tests.tasks:square") is tasks.square

    def test_resolution_is_cached(self):
        resolve_task("tests.tasks:identity")
        hits = resolve_task.cache_info().hits
        resolve_task("tests.tasks:identity")
        assert resolve_task.cache_info().hits == hits + 1

    def test_missing_module(self):
        with pytest.raises(InvalidTaskError, match="Cannot import"):
            resolve_task("tests.no_such_module:fn")

    def test_missing_attribute(self):
        with pytest.raises(InvalidTaskError, match="not found"):
            resolve_task("tests.tasks:no_such_function")

    def test_not_callable(self):
        with pytest.raises(InvalidTaskError, match="not callable"):
            resolve_task("tests.tasks:os")


class TestExecute:

    def test_success(self):
        event = run_task(tasks.square, 6)
        assert event.success
        assert event.result == 36
        assert event.worker_id == 7
        assert event.index == 0
        assert event.duration_seconds >= 0

    def test_raised_exception(self):
        event = run_task(tasks.fail_on_five, 5)
        assert not event.success
        assert event.result is None
        assert event.error == "boom"

    def test_returned_exception(self):
        event = run_task(tasks.return_error, 2)
        assert event.error == "bad input 2"
        assert event.result is None

    def test_system_exit_is_a_task_failure(self):
        event = run_task(tasks.exit_on_one, 1)
        assert not event.success
        assert event.error == "bye"

    def test_keyboard_interrupt_propagates(self):
        with pytest.raises(KeyboardInterrupt):
            run_task(tasks.interrupt, 0)

    def test_empty_message_uses_type_name(self):
        assert run_task(tasks.raise_without_message, 0).error == "KeyError"

    def test_coroutine_awaited(self):
        assert run_task(tasks.async_double, 21).result == 42

    def test_unpicklable_result_checked_on_request(self):
        assert run_task(tasks.return_lock, 0).success
        event = run_task(tasks.return_lock, 0, check_picklable=True)
        assert not event.success
        assert "not picklable" in event.error


class TestErrorMessage:

    def test_uses_message(self):
        assert error_message(ValueError("bad")) == "bad"

    def test_falls_back_to_type_name(self):
        assert error_message(RuntimeError()) == "RuntimeError"
