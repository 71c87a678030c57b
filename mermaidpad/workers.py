"""Job runners that execute diagram compiles and hand results back."""

from __future__ import annotations

import logging
from typing import Callable, Protocol

from PySide6.QtCore import QObject, QRunnable, QThreadPool, Signal, Slot

from .definition import VectorResult

logger = logging.getLogger(__name__)

Job = Callable[[], VectorResult]
ResultCallback = Callable[[VectorResult], None]


class JobRunner(Protocol):
    def submit(self, job: Job, on_done: ResultCallback) -> None: ...


def run_job(job: Job) -> VectorResult:
    """Run a compile job, turning unexpected failures into an error result."""
    try:
        return job()
    except Exception as exc:
        logger.exception("Diagram job crashed")
        return VectorResult(error=str(exc))


class InlineJobRunner:
    """Run each job immediately on the calling thread."""

    def submit(self, job: Job, on_done: ResultCallback) -> None:
        on_done(run_job(job))


class DiagramJobSignals(QObject):
    """Signals emitted by background diagram compile workers."""

    finished = Signal(object)


class DiagramJobWorker(QRunnable):
    """Compile one diagram in a worker thread."""

    def __init__(self, job: Job):
        super().__init__()
        self.job = job
        self.signals = DiagramJobSignals()

    def run(self) -> None:
        self.signals.finished.emit(run_job(self.job))


class _ResultRelay(QObject):
    def __init__(self, runner: "QtJobRunner", worker: DiagramJobWorker, on_done: ResultCallback):
        super().__init__()
        self._runner = runner
        self._worker = worker
        self._on_done = on_done

    @Slot(object)
    def deliver(self, result: VectorResult) -> None:
        self._runner._release(self)
        self._on_done(result)


class QtJobRunner:
    """Run jobs on a QThreadPool; callbacks fire on the thread that submitted."""

    def __init__(self, max_threads: int = 4, parent: QObject | None = None):
        self._pool = QThreadPool(parent)
        # Independent diagram blocks compile concurrently, within a modest bound.
        self._pool.setMaxThreadCount(max(1, max_threads))
        self._active: set[_ResultRelay] = set()

    def submit(self, job: Job, on_done: ResultCallback) -> None:
        worker = DiagramJobWorker(job)
        relay = _ResultRelay(self, worker, on_done)
        worker.signals.finished.connect(relay.deliver)
        self._active.add(relay)
        self._pool.start(worker)

    def _release(self, relay: _ResultRelay) -> None:
        self._active.discard(relay)
