import os
import sys
from concurrent.futures import Future
from types import SimpleNamespace

import pytest

PROJECT_ROOT = os.path.dirname(os.path.dirname(__file__))
SRC_DIR = os.path.join(PROJECT_ROOT, "src")
if SRC_DIR not in sys.path:
    sys.path.insert(0, SRC_DIR)


class ImmediateExecutor:
    """Runs submitted work inline so tests stay single-threaded."""

    def __init__(self):
        self.submitted = 0

    def submit(self, fn):
        self.submitted += 1
        future = Future()
        try:
            future.set_result(fn())
        except Exception as e:
            future.set_exception(e)
        return future

    def shutdown(self, wait=True, cancel_futures=False):
        pass


class StalledExecutor:
    """Accepts work and never runs it, like a provider call that hangs."""

    def submit(self, fn):
        return Future()

    def shutdown(self, wait=True, cancel_futures=False):
        pass


class FakeClock:
    def __init__(self, now=1000.0):
        self.now = now

    def __call__(self):
        return self.now

    def advance(self, seconds):
        self.now += seconds


def run_task(command):
    """Execute a Task command inline and return the message it produces."""
    try:
        return command.fn()
    except Exception as e:
        if command.on_error is None:
            raise
        return command.on_error(e)


@pytest.fixture
def settings():
    return SimpleNamespace(
        poll_interval=5.0,
        lookback_ms=15 * 60 * 1000,
        tail_capacity=1000,
        events_per_group=100,
        request_timeout=30.0,
        list_timeout=120.0,
    )


@pytest.fixture
def clock():
    return FakeClock()
