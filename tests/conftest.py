"""Shared executor doubles for driving fetches deterministically."""

from concurrent.futures import Future

import pytest


class InlineExecutor:
    """Runs submitted work immediately on the calling thread."""

    def submit(self, fn, *args, **kwargs):
        future = Future()
        try:
            future.set_result(fn(*args, **kwargs))
        except Exception as exc:
            future.set_exception(exc)
        return future

    def shutdown(self, wait=True, cancel_futures=False):
        pass


class DeferredExecutor:
    """Queues submitted work until ``run_all`` is called, even if its future was cancelled."""

    def __init__(self):
        self.calls = []

    def submit(self, fn, *args, **kwargs):
        future = Future()
        self.calls.append((fn, args, kwargs))
        return future

    def run_all(self, reverse=False):
        calls = list(reversed(self.calls)) if reverse else list(self.calls)
        self.calls.clear()
        for fn, args, kwargs in calls:
            fn(*args, **kwargs)

    def shutdown(self, wait=True, cancel_futures=False):
        pass


@pytest.fixture
def inline_executor():
    return InlineExecutor()


@pytest.fixture
def deferred_executor():
    return DeferredExecutor()
