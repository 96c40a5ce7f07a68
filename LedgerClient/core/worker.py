"""Background asyncio event loop for network requests.

All requests, and all mutations of :class:`LedgerClient.core.state.LedgerState`, run on a
single asyncio loop hosted by an :class:`EventLoopThread`. Widgets never await anything: they
:func:`submit` a coroutine and receive the outcome through the Qt signals of the returned
:class:`Request`, which Qt delivers to the GUI thread.
"""
import asyncio
import logging
import threading
from concurrent.futures import Future
from typing import Any, Callable, Coroutine, Optional, Set

from PySide6 import QtCore

from ..status import status

_loop_thread: Optional['EventLoopThread'] = None
_pending: Set['Request'] = set()


class EventLoopThread(QtCore.QThread):
    """Thread running an asyncio event loop forever."""

    def __init__(self, parent: Optional[QtCore.QObject] = None) -> None:
        super().__init__(parent)
        self.setObjectName('LedgerClientEventLoop')
        self.loop: asyncio.AbstractEventLoop = asyncio.new_event_loop()
        self._ready = threading.Event()

    def run(self) -> None:
        asyncio.set_event_loop(self.loop)
        self._ready.set()
        logging.debug(f'[Thread-{threading.get_ident()}] Event loop started.')
        try:
            self.loop.run_forever()
        finally:
            pending = asyncio.all_tasks(self.loop)
            for task in pending:
                task.cancel()
            if pending:
                self.loop.run_until_complete(asyncio.gather(*pending, return_exceptions=True))
            self.loop.run_until_complete(self.loop.shutdown_asyncgens())
            self.loop.close()
            logging.debug('Event loop closed.')

    def start_loop(self) -> None:
        """Starts the thread and blocks until the loop accepts work."""
        self.start()
        self._ready.wait()

    def submit(self, coro: Coroutine) -> Future:
        if not self.isRunning():
            coro.close()
            raise RuntimeError('The event loop thread is not running')
        return asyncio.run_coroutine_threadsafe(coro, self.loop)

    def stop(self) -> None:
        if self.isRunning():
            self.loop.call_soon_threadsafe(self.loop.stop)
            self.wait()


class Request(QtCore.QObject):
    """
    One coroutine scheduled on the event loop thread.

    Signals:
        resultReady (object): Emitted with the coroutine's result on success.
        errorOccurred (object): Emitted with the exception on failure.
    """
    resultReady = QtCore.Signal(object)
    errorOccurred = QtCore.Signal(object)

    def __init__(self, coro: Coroutine, parent: Optional[QtCore.QObject] = None) -> None:
        super().__init__(parent)
        self.coro = coro
        self.future: Optional[Future] = None

    def start(self) -> 'Request':
        _pending.add(self)
        self.resultReady.connect(self._release)
        self.errorOccurred.connect(self._release)
        self.future = get_loop_thread().submit(self.coro)
        self.future.add_done_callback(self._on_done)
        return self

    @QtCore.Slot(object)
    def _release(self, *args) -> None:
        _pending.discard(self)

    def _on_done(self, future: Future) -> None:
        # called on the event loop thread
        if future.cancelled():
            return
        ex = future.exception()
        if ex is None:
            self.resultReady.emit(future.result())
            return
        if not isinstance(ex, status.BaseStatusException):
            # status exceptions log themselves
            logging.error(f'Request failed: {ex!r}')
        self.errorOccurred.emit(ex)


def get_loop_thread() -> EventLoopThread:
    """Returns the running event loop thread, starting it on first use."""
    global _loop_thread
    if _loop_thread is None or not _loop_thread.isRunning():
        _loop_thread = EventLoopThread()
        _loop_thread.start_loop()
    return _loop_thread


def submit(coro: Coroutine,
           on_result: Optional[Callable[[Any], None]] = None,
           on_error: Optional[Callable[[Exception], None]] = None) -> Request:
    """
    Schedules ``coro`` on the event loop thread.

    Args:
        coro: The coroutine to run.
        on_result: Called on the GUI thread with the result.
        on_error: Called on the GUI thread with the exception.

    Returns:
        Request: The scheduled request.

    """
    request = Request(coro)
    if on_result is not None:
        request.resultReady.connect(on_result)
    if on_error is not None:
        request.errorOccurred.connect(on_error)
    return request.start()


def wait(coro: Coroutine, timeout: Optional[float] = None) -> Any:
    """Runs ``coro`` on the event loop thread and blocks until it finished."""
    return get_loop_thread().submit(coro).result(timeout)


def shutdown() -> None:
    """Stops the event loop thread. Pending requests are cancelled."""
    global _loop_thread
    if _loop_thread is not None:
        _loop_thread.stop()
        _loop_thread = None
    _pending.clear()
