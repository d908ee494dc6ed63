# -*- coding: utf-8 -*-
"""
Base Controller
===============
Shared plumbing for controllers that run remote operations.

Operations are tracked by name; the controller counts as loading while
any of them is in flight. Non-Qt listeners can subscribe to named events
through callbacks.
"""

from typing import Callable, Dict, List, Optional, Set

from PyQt5.QtCore import QObject, pyqtSignal

from utils.logger import get_logger

logger = get_logger(__name__)


class BaseController(QObject):
    """
    Base class for controllers.

    Subclasses wrap each remote operation in ``_begin_operation`` /
    ``_finish_operation`` and announce results through their own signals.
    """

    operation_started = pyqtSignal(str)  # operation name
    operation_completed = pyqtSignal(str, bool)  # operation name, success
    operation_error = pyqtSignal(str, str)  # operation name, message
    loading_changed = pyqtSignal(bool)

    def __init__(self, parent=None):
        super().__init__(parent)
        self._active_operations: Set[str] = set()
        self._last_error = ""
        self._callbacks: Dict[str, List[Callable]] = {}

    @property
    def is_loading(self) -> bool:
        return bool(self._active_operations)

    @property
    def last_error(self) -> str:
        """Message of the most recent failed operation."""
        return self._last_error

    def is_running(self, operation: str) -> bool:
        return operation in self._active_operations

    def _begin_operation(self, operation: str):
        was_loading = self.is_loading
        self._active_operations.add(operation)
        logger.debug(f"{self.__class__.__name__}: {operation} started")
        self.operation_started.emit(operation)
        if not was_loading:
            self.loading_changed.emit(True)

    def _finish_operation(self, operation: str, error: Optional[str] = None):
        """End an operation; a message marks it as failed."""
        self._active_operations.discard(operation)
        if error:
            self._last_error = error
            logger.error(f"{self.__class__.__name__}: {operation} failed: {error}")
            self.operation_error.emit(operation, error)
        self.operation_completed.emit(operation, not error)
        if not self.is_loading:
            self.loading_changed.emit(False)

    def _clear_error(self):
        self._last_error = ""

    def _log_operation(self, operation: str, **details):
        logger.info(f"{self.__class__.__name__}.{operation}: {details}")

    # ==================== Callbacks ====================

    def register_callback(self, event: str, callback: Callable):
        """Call ``callback`` whenever ``event`` fires."""
        self._callbacks.setdefault(event, []).append(callback)

    def unregister_callback(self, event: str, callback: Callable):
        listeners = self._callbacks.get(event, [])
        if callback in listeners:
            listeners.remove(callback)

    def _trigger_callbacks(self, event: str, *args, **kwargs):
        # A failing listener must not stop the others
        for callback in list(self._callbacks.get(event, [])):
            try:
                callback(*args, **kwargs)
            except Exception as e:
                logger.error(f"Callback for {event} raised: {e}", exc_info=True)
