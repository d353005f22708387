import time

import pytest
from common.deadlines import Deadline, call_with_timeout
from common.exceptions import OperationTimeout


def test_never_deadline_does_not_expire():
    deadline = Deadline.never()
    assert deadline.remaining() is None
    assert not deadline.expired()
    deadline.check()


def test_zero_budget_expires_immediately():
    deadline = Deadline(0)
    assert deadline.expired()
    with pytest.raises(OperationTimeout) as exc:
        deadline.check("lookup")
    assert exc.value.details["retryable"] is True


def test_call_with_timeout_returns_result():
    assert call_with_timeout(lambda a, b: a + b, 1.0, 2, 3) == 5


def test_call_with_timeout_without_budget_runs_inline():
    assert call_with_timeout(lambda: "ok", None) == "ok"


def test_call_with_timeout_raises_on_slow_call():
    with pytest.raises(OperationTimeout):
        call_with_timeout(time.sleep, 0.05, 0.5, what="sleep")


def test_call_with_timeout_propagates_errors():
    def boom():
        raise ValueError("bad")

    with pytest.raises(ValueError):
        call_with_timeout(boom, 1.0)
