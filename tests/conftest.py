"""
Shared fixtures for taskmill tests.

Pools are real: thread pools for fast engine tests, process pools where
process isolation itself is under test. No mocking of the engine.
"""

import pytest

from taskmill import Pool


@pytest.fixture(autouse=True)
def clean_env(monkeypatch):
    """Keep a developer's TASKMILL_* environment out of the tests."""
    import os
    for name in list(os.environ):
        if name.startswith("TASKMILL_"):
            monkeypatch.delenv(name, raising=False)


@pytest.fixture
def thread_pool():
    pool = Pool(4, backend="thread", poll_interval=0.02)
    yield pool
    pool.close()


@pytest.fixture
def process_pool():
    pool = Pool(2, backend="process", poll_interval=0.05)
    yield pool
    pool.close()


@pytest.fixture(params=["thread", "process"])
def any_pool(request):
    """The same test against both worker runtimes."""
    pool = Pool(2, backend=request.param, poll_interval=0.02)
    yield pool
    pool.close()


@pytest.fixture
def log_dir(tmp_path):
    log_path = tmp_path / "logs"
    log_path.mkdir()
    return log_path
