"""In-memory FIFO job queue with an explicit drain state."""

from collections import deque
from typing import Deque, Iterator

from .models import Job, QueueState, QueueStep


class JobQueue:
    """Ordered pending jobs plus the idle/draining state.

    ``enqueue`` and ``next`` are the only mutators. The queue never runs
    anything itself; the controller acts on the returned values.
    """

    def __init__(self):
        self._jobs: Deque[Job] = deque()
        self.state = QueueState.IDLE

    def __len__(self) -> int:
        return len(self._jobs)

    def __iter__(self) -> Iterator[Job]:
        return iter(list(self._jobs))

    @property
    def active(self) -> bool:
        """True while a drain cycle is in progress."""
        return self.state is QueueState.DRAINING

    def enqueue(self, job: Job) -> bool:
        """Append ``job`` at the tail.

        Returns:
            True if the queue was idle, i.e. the caller should start it.
        """
        self._jobs.append(job)
        return not self.active

    def next(self) -> QueueStep:
        """Pop the head job, or close the drain cycle when empty."""
        if self._jobs:
            self.state = QueueState.DRAINING
            return QueueStep(job=self._jobs.popleft(), drained=False)

        if self.active:
            self.state = QueueState.IDLE
            return QueueStep(job=None, drained=True)

        return QueueStep(job=None, drained=False)
