"""Unit tests for the in-memory job queue state machine."""

import pytest

from uri2pdf.queue import Job, JobQueue, QueueState


@pytest.fixture
def queue():
    return JobQueue()


def make_job(name):
    return Job(uri=f"https://{name}.test", outfile=f"/tmp/{name}.pdf")


def test_new_queue_is_idle(queue):
    assert queue.state is QueueState.IDLE
    assert not queue.active
    assert len(queue) == 0


def test_enqueue_on_idle_queue_requests_start(queue):
    assert queue.enqueue(make_job("a")) is True
    assert queue.state is QueueState.IDLE


def test_enqueue_on_draining_queue_only_appends(queue):
    queue.enqueue(make_job("a"))
    queue.next()

    assert queue.enqueue(make_job("b")) is False
    assert len(queue) == 1


def test_next_is_fifo(queue):
    jobs = [make_job(name) for name in ("a", "b", "c")]
    for job in jobs:
        queue.enqueue(job)

    popped = [queue.next().job for _ in jobs]
    assert popped == jobs
    assert queue.active


def test_drain_reports_once(queue):
    queue.enqueue(make_job("a"))
    queue.next()

    step = queue.next()
    assert step.job is None
    assert step.drained is True
    assert queue.state is QueueState.IDLE

    again = queue.next()
    assert again.job is None
    assert again.drained is False


def test_next_on_fresh_empty_queue_is_noop(queue):
    step = queue.next()
    assert step.job is None
    assert step.drained is False
    assert queue.state is QueueState.IDLE


def test_iteration_does_not_consume(queue):
    queue.enqueue(make_job("a"))
    queue.enqueue(make_job("b"))

    assert [job.uri for job in queue] == ["https://a.test", "https://b.test"]
    assert len(queue) == 2
