# -*- coding: utf-8 -*-
"""
Task runners for remote directory calls.

Controllers never call the directory directly on the UI thread; they hand a
callable to a runner together with success/error callbacks:

- QtTaskRunner: one QThread worker per task, results delivered back to the
  thread that scheduled the task through queued signals
- ImmediateTaskRunner: runs inline, for scripts and tests
"""

from abc import ABC, abstractmethod
from typing import Any, Callable, Set

from PyQt5.QtCore import QThread, pyqtSignal

from utils.logger import get_logger

logger = get_logger(__name__)

SuccessCallback = Callable[[Any], None]
ErrorCallback = Callable[[Exception], None]


class TaskRunner(ABC):
    """Interface: run ``func`` and report through exactly one callback."""

    @abstractmethod
    def run(self, name: str, func: Callable[[], Any],
            on_success: SuccessCallback, on_error: ErrorCallback) -> None:
        pass


class ImmediateTaskRunner(TaskRunner):
    """Runs the task synchronously in the caller's thread."""

    def run(self, name, func, on_success, on_error):
        logger.debug(f"Running task inline: {name}")
        try:
            result = func()
        except Exception as e:
            logger.debug(f"Task {name} failed: {e}")
            on_error(e)
            return
        on_success(result)


class _TaskWorker(QThread):
    """Background worker for one directory call."""

    succeeded = pyqtSignal(object)
    failed = pyqtSignal(object)

    def __init__(self, name: str, func: Callable[[], Any]):
        super().__init__()
        self.name = name
        self._func = func

    def run(self):
        try:
            result = self._func()
        except Exception as e:
            logger.warning(f"Background task {self.name} failed: {e}")
            self.failed.emit(e)
            return
        self.succeeded.emit(result)


class QtTaskRunner(TaskRunner):
    """Runs every task on its own QThread."""

    def __init__(self):
        self._workers: Set[_TaskWorker] = set()

    def run(self, name, func, on_success, on_error):
        worker = _TaskWorker(name, func)
        worker.succeeded.connect(on_success)
        worker.failed.connect(on_error)
        worker.finished.connect(lambda w=worker: self._on_worker_finished(w))
        self._workers.add(worker)
        logger.debug(f"Starting background task: {name}")
        worker.start()

    def pending_count(self) -> int:
        return len(self._workers)

    def wait_for_all(self, timeout_ms: int = 5000) -> bool:
        """Block until every worker has stopped (used on shutdown)."""
        done = True
        for worker in list(self._workers):
            done = worker.wait(timeout_ms) and done
        return done

    def _on_worker_finished(self, worker: _TaskWorker):
        self._workers.discard(worker)
        worker.deleteLater()
