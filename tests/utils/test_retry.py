import pytest
from protean.exceptions import ExpectedVersionError

from marketplace.errors import TransientStoreConflict
from marketplace.utils.retry import run_with_retry


class FlakyOperation:
    def __init__(self, failures):
        self.failures = failures
        self.calls = 0

    def __call__(self):
        self.calls += 1
        if self.calls <= self.failures:
            raise ExpectedVersionError("Wrong expected version")
        return "done"


class TestRunWithRetry:
    def test_returns_first_success(self):
        operation = FlakyOperation(failures=0)
        assert run_with_retry("reserve", operation, attempts=3, base_delay=0) == "done"
        assert operation.calls == 1

    def test_retries_version_conflicts(self):
        operation = FlakyOperation(failures=2)
        assert run_with_retry("reserve", operation, attempts=3, base_delay=0) == "done"
        assert operation.calls == 3

    def test_gives_up_after_attempts(self):
        operation = FlakyOperation(failures=5)
        with pytest.raises(TransientStoreConflict) as exc:
            run_with_retry("reserve", operation, attempts=3, base_delay=0)
        assert exc.value.attempts == 3
        assert operation.calls == 3

    def test_other_errors_are_not_retried(self):
        calls = []

        def boom():
            calls.append(1)
            raise ValueError("bad input")

        with pytest.raises(ValueError):
            run_with_retry("reserve", boom, attempts=3, base_delay=0)
        assert len(calls) == 1
