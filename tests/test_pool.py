"""
Tests for the Pool consumption methods.

Key behaviors to verify:
1. map() returns one entry per input, aligned with input order
2. imap() yields the same sequence as map(), incrementally
3. imap_unordered()/imap_unordered_extended() deliver every index exactly once
4. Failures surface as None results / error strings, never abort the run
5. Hooks fire exactly once per task, before the value is exposed
"""

import pytest

from taskmill import Pool, PoolState, TaskResponse
from tests.tasks import (
    Arithmetic,
    async_double,
    async_inputs,
    always_fail,
    exit_on_one,
    fail_odd,
    fail_on_five,
    identity,
    raise_without_message,
    return_error,
    return_none,
    sleepy,
    square,
)


class TestMap:
    """Eager, input-ordered collection."""

    def test_squares_in_input_order(self, any_pool):
        """Test results line up with inputs on both backends."""
        assert any_pool.map([1, 2, 3, 4], square) == [1, 4, 9, 16]

    def test_order_independent_of_completion_order(self, thread_pool):
        """Test later inputs finishing first doesn't reorder the list."""
        inputs = [(i, 0.01 * (6 - i)) for i in range(6)]
        assert thread_pool.map(inputs, sleepy) == [0, 1, 2, 3, 4, 5]

    def test_empty_inputs(self, thread_pool):
        """Test an empty run returns [] without hooks or busy workers."""
        calls = []
        result = thread_pool.map([], square, on_success=lambda *a: calls.append(a))
        assert result == []
        assert calls == []
        assert thread_pool.dispatcher.busy_workers() == {}

    def test_accepts_task_path_string(self, thread_pool):
        """Test a "module:function" path works like the callable."""
        assert thread_pool.map([2, 3], "tests.tasks:square") == [4, 9]

    def test_accepts_generator_inputs(self, thread_pool):
        assert thread_pool.map((x for x in range(5)), square) == [0, 1, 4, 9, 16]

    def test_accepts_async_generator_inputs(self, any_pool):
        """Test an async source is drained before dispatch."""
        assert any_pool.map(async_inputs([1, 2, 3]), square) == [1, 4, 9]

    def test_async_inputs_in_lazy_methods(self, thread_pool):
        """Test imap and imap_unordered take async sources too."""
        assert list(thread_pool.imap(async_inputs([4, 5]), square)) == [16, 25]
        assert sorted(thread_pool.imap_unordered(async_inputs([1, 2]), square)) == [1, 4]

    def test_failed_entries_are_none(self, any_pool):
        """Test a failing task leaves None at its position."""
        result = any_pool.map([3, 4, 5, 6], fail_on_five)
        assert result == [9, 16, None, 36]

    def test_length_matches_inputs_for_larger_run(self, thread_pool):
        """Test 200 mixed outcomes keep their positions."""
        inputs = list(range(200))
        result = thread_pool.map(inputs, fail_odd)
        assert len(result) == len(inputs)
        for i, value in enumerate(result):
            assert value == (None if i % 2 else i)

    def test_nested_qualname(self, thread_pool):
        assert thread_pool.map([2], Arithmetic.cube) == [8]


class TestErrorScenario:
    """The 'boom' scenario: input 5 at index 2 fails."""

    def test_error_handler_receives_message_input_index(self, any_pool):
        """Test on_error gets (message, input, index) and on_success the rest."""
        errors = []
        successes = []

        result = any_pool.map(
            [3, 4, 5, 6],
            fail_on_five,
            on_success=lambda r, x, i: successes.append((r, x, i)),
            on_error=lambda e, x, i: errors.append((e, x, i)),
        )

        assert errors == [("boom", 5, 2)]
        assert sorted(successes) == [(9, 3, 0), (16, 4, 1), (36, 6, 3)]
        assert result[2] is None

    def test_always_failing_task(self, thread_pool):
        """Test every task failing still completes the run."""
        errors = []
        result = thread_pool.map(range(3), always_fail, on_error=lambda e, x, i: errors.append(e))
        assert result == [None, None, None]
        assert errors == ["boom", "boom", "boom"]

    def test_system_exit_fails_only_that_task(self, any_pool):
        """Test SystemExit from a task doesn't take the worker down."""
        errors = []
        result = any_pool.map([0, 1, 2], exit_on_one, on_error=lambda e, x, i: errors.append((e, i)))

        assert result == [0, None, 2]
        assert errors == [("bye", 1)]
        assert any_pool.state is PoolState.IDLE
        assert all(w.is_alive() for w in any_pool.workers.values())
        assert any_pool.map([5, 6], identity) == [5, 6]

    def test_returned_exception_counts_as_failure(self, thread_pool):
        """Test a returned exception is reported like a raised one."""
        responses = list(thread_pool.imap_unordered_extended([7], return_error))
        assert responses == [TaskResponse(0, None, "bad input 7")]

    def test_empty_exception_message_uses_type_name(self, thread_pool):
        responses = list(thread_pool.imap_unordered_extended([1], raise_without_message))
        assert responses[0].error == "KeyError"

    def test_none_result_is_success(self, thread_pool):
        """Test returning None is a success, not a failure."""
        successes = []
        responses = list(thread_pool.imap_unordered_extended(
            [1], return_none, on_success=lambda r, x, i: successes.append(i)
        ))
        assert responses == [TaskResponse(0, None, None)]
        assert successes == [0]


class TestImap:
    """Lazy, input-ordered streaming."""

    def test_matches_map(self, any_pool):
        """Test imap yields exactly what map returns."""
        inputs = list(range(20))
        assert list(any_pool.imap(inputs, fail_on_five)) == any_pool.map(inputs, fail_on_five)

    def test_reorders_out_of_order_completions(self, thread_pool):
        """Test reverse completion order is yielded in input order."""
        inputs = [(i, 0.01 * (8 - i)) for i in range(8)]
        assert list(thread_pool.imap(inputs, sleepy)) == list(range(8))

    def test_yields_prefix_before_slow_tail(self, thread_pool):
        """Test a fast index 0 is available before a slow index 1 finishes."""
        inputs = [("fast", 0.0), ("slow", 0.3)]
        stream = thread_pool.imap(inputs, sleepy)
        assert next(stream) == "fast"
        assert next(stream) == "slow"
        with pytest.raises(StopIteration):
            next(stream)

    def test_empty_inputs(self, thread_pool):
        assert list(thread_pool.imap([], square)) == []


class TestImapUnordered:
    """Lazy, completion-order streaming."""

    def test_every_result_once(self, any_pool):
        """Test every result appears exactly once."""
        inputs = list(range(10))
        assert sorted(any_pool.imap_unordered(inputs, square)) == [x * x for x in inputs]

    def test_completion_order(self):
        """Test a fast task overtakes a slow one."""
        with Pool(2, backend="thread", poll_interval=0.02) as pool:
            inputs = [("slow", 0.3), ("fast", 0.0)]
            assert list(pool.imap_unordered(inputs, sleepy)) == ["fast", "slow"]

    def test_failures_are_none(self, thread_pool):
        """Test failed tasks are yielded as None."""
        result = list(thread_pool.imap_unordered([1, 2, 3, 4], fail_odd))
        assert sorted(v for v in result if v is not None) == [2, 4]
        assert result.count(None) == 2

    def test_single_worker_preserves_submission_order(self):
        """Test one worker makes completion order equal input order."""
        with Pool(1, backend="process") as pool:
            inputs = [10, 20, 30]
            unordered = list(pool.imap_unordered(inputs, identity))
            ordered = list(pool.imap(inputs, identity))
        assert unordered == ordered == [10, 20, 30]


class TestImapUnorderedExtended:
    """Completion-order streaming with full detail."""

    def test_indices_are_a_permutation(self, any_pool):
        """Test indices cover 0..N-1 exactly once."""
        inputs = list(range(25))
        responses = list(any_pool.imap_unordered_extended(inputs, fail_odd))
        assert sorted(r.index for r in responses) == inputs

    def test_exactly_one_of_result_or_error(self, thread_pool):
        """Test each response carries a result or an error, never both."""
        for response in thread_pool.imap_unordered_extended(range(10), fail_odd):
            if response.index % 2:
                assert response.result is None
                assert response.error == f"odd input {response.index}"
            else:
                assert response.error is None
                assert response.result == response.index

    def test_responses_unpack_as_triples(self, thread_pool):
        for index, result, error in thread_pool.imap_unordered_extended([4], square):
            assert (index, result, error) == (0, 16, None)


class TestHooks:
    """on_success / on_error observer hooks."""

    def test_each_task_reported_once(self, any_pool):
        """Test exactly one hook call per task, of the right kind."""
        seen = []
        any_pool.map(
            range(30),
            fail_odd,
            on_success=lambda r, x, i: seen.append(("ok", i)),
            on_error=lambda e, x, i: seen.append(("err", i)),
        )
        assert len(seen) == 30
        assert sorted(i for _, i in seen) == list(range(30))
        assert all((kind == "err") == bool(i % 2) for kind, i in seen)

    def test_hook_runs_before_value_is_exposed(self, thread_pool):
        """Test the hook has already seen a value when it is yielded."""
        seen = []
        for value in thread_pool.imap_unordered(range(5), square, on_success=lambda r, x, i: seen.append(r)):
            assert value in seen

    def test_hook_receives_original_input_object(self, thread_pool):
        """Test hooks get the caller's input object, not a copy."""
        payload = {"n": 3}
        received = []
        thread_pool.map([payload], identity, on_success=lambda r, x, i: received.append(x))
        assert received[0] is payload

    def test_hooks_are_per_run(self, thread_pool):
        """Test a run's hooks don't fire for the next run."""
        first = []
        thread_pool.map([1, 2], square, on_success=lambda r, x, i: first.append(r))
        thread_pool.map([3, 4], square)
        assert sorted(first) == [1, 4]


class TestAsyncTasks:

    def test_coroutine_functions_are_awaited(self, any_pool):
        """Test async task functions return their awaited value."""
        assert any_pool.map([1, 2, 3], async_double) == [2, 4, 6]


class TestPoolReuse:

    def test_sequential_runs_restart_indices(self, any_pool):
        """Test each run numbers its tasks from 0."""
        first = list(any_pool.imap_unordered_extended([1, 2], square))
        second = list(any_pool.imap_unordered_extended([3, 4, 5], square))
        assert sorted(r.index for r in first) == [0, 1]
        assert sorted(r.index for r in second) == [0, 1, 2]

    def test_different_tasks_on_same_pool(self, thread_pool):
        assert thread_pool.map([2], square) == [4]
        assert thread_pool.map([2], async_double) == [4]
