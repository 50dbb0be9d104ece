"""Tests for the context, retry helpers, waiter and worker pool."""

import threading
import time

import pytest
from botocore.exceptions import ClientError

from scaleway_provider.utils.context import Context
from scaleway_provider.utils.errors import (
    CancelledError,
    ConflictError,
    FatalError,
    NotFoundError,
    TransientError,
    ValidationError,
)
from scaleway_provider.utils.retry import RetryStrategy, retry, retry_on_transient_state, retry_when_s3_code_equals
from scaleway_provider.utils.waiter import WaitDescriptor, wait_for
from scaleway_provider.utils.workerpool import WorkerPool


class Sequence:
    """Callable answering each call with the next item; exceptions are raised."""

    def __init__(self, *items):
        self.items = list(items)
        self.calls = 0

    def __call__(self):
        item = self.items[min(self.calls, len(self.items) - 1)]
        self.calls += 1
        if isinstance(item, Exception):
            raise item
        return item


class TestContext:
    def test_cancel_propagates_to_children(self):
        parent = Context.background()
        child = parent.with_timeout(60)
        parent.cancel()
        assert child.cancelled
        with pytest.raises(CancelledError):
            child.check()

    def test_child_of_cancelled_parent_is_cancelled(self):
        parent = Context.background()
        parent.cancel()
        assert parent.with_timeout(None).cancelled

    def test_sleep_wakes_up_on_cancel(self):
        ctx = Context.background()
        threading.Timer(0.05, ctx.cancel).start()
        start = time.monotonic()
        with pytest.raises(CancelledError):
            ctx.sleep(10)
        assert time.monotonic() - start < 5

    def test_child_deadline_is_bounded_by_parent(self):
        parent = Context.background().with_timeout(1)
        child = parent.with_timeout(100)
        assert child.deadline == parent.deadline


class TestRetry:
    def test_retries_conflicts(self):
        operation = Sequence(ConflictError("busy"), TransientError("again"), "done")
        assert retry(operation, timeout=5, interval=0) == "done"
        assert operation.calls == 3

    def test_non_retryable_error_is_raised(self):
        operation = Sequence(ValidationError("bad"))
        with pytest.raises(ValidationError):
            retry(operation, timeout=5, interval=0)
        assert operation.calls == 1

    def test_timeout(self):
        operation = Sequence(ConflictError("busy"))
        with pytest.raises(TransientError):
            retry(operation, timeout=0.05, interval=0.01)

    def test_cancelled_context(self):
        ctx = Context.background()
        ctx.cancel()
        with pytest.raises(CancelledError):
            retry(Sequence("never"), timeout=5, interval=0, ctx=ctx)

    def test_retry_on_transient_state_waits_between_attempts(self):
        action = Sequence(ConflictError("busy"), ConflictError("busy"), "ok")
        waits = []
        assert retry_on_transient_state(action, lambda: waits.append(1)) == "ok"
        assert len(waits) == 2

    def test_strategy_without_delay(self):
        strategy = RetryStrategy(max_delay=0)
        assert strategy.get_delay(3) == 0
        assert strategy.should_retry_status(503, 0)
        assert not strategy.should_retry_status(503, strategy.max_retries)
        assert not strategy.should_retry_status(404, 0)

    def test_s3_codes(self):
        def s3_error(code):
            return ClientError({"Error": {"Code": code, "Message": code}}, "PutBucketTagging")

        operation = Sequence(s3_error("NoSuchBucket"), "tagged")
        assert retry_when_s3_code_equals(operation, ["NoSuchBucket"], timeout=5, interval=0) == "tagged"

        denied = Sequence(s3_error("AccessDenied"))
        with pytest.raises(ClientError):
            retry_when_s3_code_equals(denied, ["NoSuchBucket"], timeout=5, interval=0)
        assert denied.calls == 1


class TestWaitFor:
    @staticmethod
    def descriptor(fetch, deleting=False):
        return WaitDescriptor(
            fetch=fetch,
            status_of=lambda resource: resource["status"],
            success=frozenset({"ready"}),
            failure=frozenset({"error"}),
            deleting=deleting,
            name="instance",
        )

    def test_success(self):
        fetch = Sequence({"status": "provisioning"}, TransientError("blip"), {"status": "ready"})
        assert wait_for(self.descriptor(fetch), timeout=5, interval=0) == {"status": "ready"}
        assert fetch.calls == 3

    def test_failure_status(self):
        with pytest.raises(FatalError):
            wait_for(self.descriptor(Sequence({"status": "error"})), timeout=5, interval=0)

    def test_not_found_while_deleting_is_success(self):
        fetch = Sequence({"status": "deleting"}, NotFoundError("gone"))
        assert wait_for(self.descriptor(fetch, deleting=True), timeout=5, interval=0) is None

    def test_not_found_otherwise_is_raised(self):
        with pytest.raises(NotFoundError):
            wait_for(self.descriptor(Sequence(NotFoundError("gone"))), timeout=5, interval=0)

    def test_timeout_is_transient(self):
        with pytest.raises(TransientError):
            wait_for(self.descriptor(Sequence({"status": "provisioning"})), timeout=0.05, interval=0.01)


class TestWorkerPool:
    def test_errors_are_collected(self):
        pool = WorkerPool(4)
        errors = [ValueError(str(i)) if i % 3 == 0 else None for i in range(10)]
        for err in errors:
            pool.add_task(lambda err=err: err)
        collected = pool.close_and_wait()
        assert sorted(str(e) for e in collected) == sorted(str(e) for e in errors if e is not None)

    def test_raising_task_is_reported(self):
        pool = WorkerPool(2)

        def task():
            raise RuntimeError("boom")

        pool.add_task(task)
        (err,) = pool.close_and_wait()
        assert isinstance(err, FatalError)
        assert "boom" in err.message

    def test_concurrency_is_bounded(self):
        size = 3
        pool = WorkerPool(size)
        lock = threading.Lock()
        running = [0]
        peak = [0]

        def task():
            with lock:
                running[0] += 1
                peak[0] = max(peak[0], running[0])
            time.sleep(0.01)
            with lock:
                running[0] -= 1
            return None

        for _ in range(20):
            pool.add_task(task)
        assert pool.close_and_wait() == []
        assert 1 <= peak[0] <= size

    def test_closed_pool_rejects_tasks(self):
        pool = WorkerPool(1)
        pool.close_and_wait()
        with pytest.raises(RuntimeError):
            pool.add_task(lambda: None)
