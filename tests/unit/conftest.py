import os
import sys
import tempfile
from concurrent.futures import Future
from pathlib import Path

import pytest

SRC = Path(__file__).resolve().parents[2] / "src"
if str(SRC) not in sys.path:
    sys.path.insert(0, str(SRC))

# The logger singleton reads this on first use
os.environ.setdefault("SCREENER_LOG_DIR", tempfile.mkdtemp(prefix="screener-test-logs-"))

from screener.errors import ClassifierFailure, FailureReason  # noqa: E402


class FakeClock:
    def __init__(self, start: float = 1000.0):
        self.now = start

    def __call__(self) -> float:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now += seconds


class ImmediateExecutor:
    """Runs submitted calls inline and returns an already finished future."""

    def __init__(self):
        self.submitted = []
        self.shut_down = False

    def submit(self, fn, *args, **kwargs):
        self.submitted.append(args)
        future = Future()
        try:
            future.set_result(fn(*args, **kwargs))
        except BaseException as e:
            future.set_exception(e)
        return future

    def shutdown(self, wait=True, cancel_futures=False):
        self.shut_down = True


class DeferredExecutor(ImmediateExecutor):
    """Holds submitted calls until ``run_all`` is called."""

    def __init__(self):
        super().__init__()
        self.pending = []

    def submit(self, fn, *args, **kwargs):
        self.submitted.append(args)
        future = Future()
        self.pending.append((future, fn, args, kwargs))
        return future

    def run_all(self):
        pending, self.pending = self.pending, []
        for future, fn, args, kwargs in pending:
            try:
                future.set_result(fn(*args, **kwargs))
            except BaseException as e:
                future.set_exception(e)


class FakeClassifier:
    def __init__(self, description="Login Error: 404!! Page", failure=None, credential=True):
        self.description = description
        self.failure = failure
        self.credential = credential
        self.calls = []

    def has_credential(self):
        return self.credential

    def describe(self, file_path):
        self.calls.append(file_path)
        if self.failure is not None:
            raise self.failure
        return self.description


@pytest.fixture
def clock():
    return FakeClock()


@pytest.fixture
def executor():
    return ImmediateExecutor()


@pytest.fixture
def classifier():
    return FakeClassifier()


@pytest.fixture
def failing_classifier():
    return FakeClassifier(failure=ClassifierFailure(FailureReason.NETWORK, "connection refused"))


@pytest.fixture
def screenshot(tmp_path):
    path = tmp_path / "Screenshot 2025-01-01 at 10.00.00.png"
    path.write_bytes(b"\x89PNG" + b"\0" * 496)
    return path


@pytest.fixture
def deferred_executor():
    return DeferredExecutor()


@pytest.fixture
def make_classifier():
    return FakeClassifier
