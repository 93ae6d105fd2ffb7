"""
Background Task Execution
=========================

This module runs network-bound work (classification, insights) on Qt's
global thread pool so the capture window stays responsive.

Classes
-------
TaskSignals
    Qt signals carrying a task's result or error back to the GUI thread
Task
    QRunnable wrapper for an arbitrary callable
TaskRunner
    Submits tasks tagged with a capture generation and drops stale results

Functions
---------
submit
    Submit a function to the global thread pool

Notes
-----
Cancellation is coarse: a running task is never interrupted, but when the
user starts a new capture the runner's generation moves on and any result
from an older generation is discarded instead of being emitted.

Examples
--------
>>> from opg_ui.core.tasks import submit
>>> signals = submit(pipeline.analyze)
>>> signals.finished.connect(show_outcome)
>>> signals.error.connect(show_error)

See Also
--------
opg_ui.ui.capture_tab : Runs analysis through a TaskRunner
"""

import logging

from PySide6.QtCore import QObject, QRunnable, QThreadPool, Signal

logger = logging.getLogger(__name__)


class TaskSignals(QObject):
    """
    Signals emitted by a Task.

    Signals
    -------
    finished : Signal(object)
        Return value of the wrapped callable
    error : Signal(str)
        Message of the exception it raised
    """

    finished = Signal(object)
    error = Signal(str)


class Task(QRunnable):
    """
    Execute ``fn(*args, **kwargs)`` on a worker thread.

    Parameters
    ----------
    fn : callable
        Function to execute
    *args, **kwargs
        Arguments for ``fn``
    is_current : callable, optional
        Checked after ``fn`` returns; if it returns False nothing is emitted
    """

    def __init__(self, fn, *args, is_current=None, **kwargs):
        super().__init__()
        self.fn = fn
        self.args = args
        self.kwargs = kwargs
        self.is_current = is_current or (lambda: True)
        self.signals = TaskSignals()

    def run(self):
        try:
            res = self.fn(*self.args, **self.kwargs)
        except Exception as e:
            logger.exception("Background task %s failed", getattr(self.fn, "__name__", self.fn))
            if self.is_current():
                self.signals.error.emit(str(e))
            return
        if self.is_current():
            self.signals.finished.emit(res)
        else:
            logger.debug("Dropping result of superseded task")


_pool = QThreadPool.globalInstance()


def submit(fn, *args, **kwargs):
    """
    Submit ``fn`` to the global thread pool.

    Returns
    -------
    TaskSignals
        Connect to ``finished`` and ``error`` to receive the outcome
    """
    t = Task(fn, *args, **kwargs)
    _pool.start(t)
    return t.signals


class TaskRunner:
    """Submits tasks bound to a capture generation."""

    def __init__(self):
        self.generation = 0

    def advance(self) -> int:
        self.generation += 1
        return self.generation

    def submit(self, fn, *args, **kwargs):
        gen = self.generation
        return submit(fn, *args, is_current=lambda: gen == self.generation, **kwargs)
