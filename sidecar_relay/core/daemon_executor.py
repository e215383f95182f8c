"""
Daemon thread executor

A single-worker executor for blocking reads that may never return. Unlike
ThreadPoolExecutor, whose workers are joined at interpreter exit, the worker
here is a daemon thread, so a read still parked on a pipe is abandoned when
the process ends.
"""

import queue
import threading
from concurrent.futures import Executor, Future


class DaemonThreadExecutor(Executor):
    """Runs submitted calls one at a time on a daemon thread."""

    def __init__(self, name: str):
        self._work: "queue.SimpleQueue" = queue.SimpleQueue()
        self._lock = threading.Lock()
        self._shutdown = False
        self._thread = threading.Thread(target=self._worker, name=name, daemon=True)
        self._thread.start()

    def submit(self, fn, *args, **kwargs) -> Future:
        with self._lock:
            if self._shutdown:
                raise RuntimeError("cannot schedule new futures after shutdown")
            future: Future = Future()
            self._work.put((future, fn, args, kwargs))
            return future

    def shutdown(self, wait: bool = True, *, cancel_futures: bool = False) -> None:
        with self._lock:
            if self._shutdown:
                return
            self._shutdown = True
            if cancel_futures:
                self._cancel_queued()
            self._work.put(None)
        if wait:
            self._thread.join()

    def _cancel_queued(self) -> None:
        while True:
            try:
                item = self._work.get_nowait()
            except queue.Empty:
                return
            if item is not None:
                item[0].cancel()

    def _worker(self) -> None:
        while True:
            item = self._work.get()
            if item is None:
                return

            future, fn, args, kwargs = item
            if not future.set_running_or_notify_cancel():
                continue
            try:
                result = fn(*args, **kwargs)
            except BaseException as e:
                future.set_exception(e)
            else:
                future.set_result(result)
