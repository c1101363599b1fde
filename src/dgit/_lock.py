"""Advisory lock serializing staging-index updates across threads and processes."""

from __future__ import annotations

import os
import threading
from contextlib import contextmanager

# Per-process threading locks, keyed by resolved index path
_thread_locks: dict[str, threading.Lock] = {}
_thread_locks_guard = threading.Lock()


def _get_thread_lock(index_path: str) -> threading.Lock:
    key = os.path.normcase(os.path.realpath(index_path))
    with _thread_locks_guard:
        if key not in _thread_locks:
            _thread_locks[key] = threading.Lock()
        return _thread_locks[key]


def _lock_path(index_path: str) -> str:
    lock_path = index_path + ".lock"
    os.makedirs(os.path.dirname(lock_path) or ".", exist_ok=True)
    return lock_path


try:
    import fcntl

    @contextmanager
    def index_lock(index_path: str | os.PathLike[str]):
        index_path = os.fspath(index_path)
        tlock = _get_thread_lock(index_path)
        tlock.acquire()
        try:
            fd = os.open(
                _lock_path(index_path),
                os.O_CREAT | os.O_RDWR | getattr(os, "O_CLOEXEC", 0),
            )
            try:
                fcntl.flock(fd, fcntl.LOCK_EX)
                yield
            finally:
                fcntl.flock(fd, fcntl.LOCK_UN)
                os.close(fd)
        finally:
            tlock.release()

except ImportError:
    import msvcrt

    @contextmanager
    def index_lock(index_path: str | os.PathLike[str]):
        index_path = os.fspath(index_path)
        tlock = _get_thread_lock(index_path)
        tlock.acquire()
        try:
            fd = os.open(_lock_path(index_path), os.O_CREAT | os.O_RDWR)
            os.set_inheritable(fd, False)
            try:
                msvcrt.locking(fd, msvcrt.LK_LOCK, 1)
                yield
            finally:
                msvcrt.locking(fd, msvcrt.LK_UNLCK, 1)
                os.close(fd)
        finally:
            tlock.release()
