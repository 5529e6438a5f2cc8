"""
DecryptWorker — warm, single-threaded decryption context
=========================================================
One background thread owns the open file handle, key, IV and payload
length of the most recently used file. Every request is funnelled
through a FIFO command queue, so the cached state is never touched by
two requests at once.

States:
    idle   — no file open
    ready  — (path, key, handle, iv, payload_length) cached
    closed — shut down; further requests raise WorkerClosed

Commands:
    _OpenFile  — reopen only if (path, key) differs from the cache
    _Decrypt   — stream a range of the cached file to the reply queue
    None       — shut down

Reply queue items: bytes chunk | Exception | END_OF_STREAM.

A call sends _OpenFile, waits for its ack, then sends _Decrypt while
holding the submission lock, so no other caller can swap the cached
file between a call's open and its decrypt.
"""

import logging
import os
import threading
from queue import Queue
from typing import Iterator, Optional

from .errors import WorkerClosed, WorkerNotReady
from .keys import validate_key
from .range_decrypt import RangeDecryptor

logger = logging.getLogger(__name__)

END_OF_STREAM = object()


class _OpenFile:
    __slots__ = ("path", "key", "reply")

    def __init__(self, path: str, key: bytes, reply: Queue):
        self.path  = path
        self.key   = key
        self.reply = reply


class _Decrypt:
    __slots__ = ("start", "end", "reply")

    def __init__(self, start: int, end: Optional[int], reply: Queue):
        self.start = start
        self.end   = end
        self.reply = reply


class DecryptWorker:
    """Persistent decryption worker. Construct once, close() when done."""

    def __init__(self, chunk_size: int = None, name: str = "decrypt-worker"):
        self._chunk_size = RangeDecryptor.CHUNK_SIZE if chunk_size is None else chunk_size
        if self._chunk_size <= 0:
            raise ValueError("chunk_size must be positive.")
        self._name       = name
        self._commands: Queue = Queue()
        self._thread: Optional[threading.Thread] = None
        self._start_lock  = threading.Lock()
        self._submit_lock = threading.Lock()
        self._closed = False

        # Owned by the worker thread.
        self._path: Optional[str] = None
        self._key: Optional[bytes] = None
        self._handle = None
        self._iv: Optional[bytes] = None
        self._payload_length: Optional[int] = None
        self._open_count = 0

    # ── lifecycle ────────────────────────────────────────────────────────────
    def start(self) -> "DecryptWorker":
        with self._start_lock:
            if self._closed:
                raise WorkerClosed("Worker has been closed.")
            if self._thread is None:
                self._thread = threading.Thread(
                    target=self._run, name=self._name, daemon=True)
                self._thread.start()
                logger.info(f"{self._name} started")
        return self

    def close(self, timeout: float = 5.0) -> None:
        """Stop the thread after queued commands finish; closes the handle."""
        with self._start_lock:
            if self._closed:
                return
            self._closed = True
            thread = self._thread
        if thread is not None:
            with self._submit_lock:
                self._commands.put(None)
            thread.join(timeout=timeout)
        logger.info(f"{self._name} stopped")

    def __enter__(self) -> "DecryptWorker":
        return self.start()

    def __exit__(self, exc_type, exc, tb) -> None:
        self.close()

    # ── instrumentation ──────────────────────────────────────────────────────
    @property
    def state(self) -> str:
        if self._closed:
            return "closed"
        return "ready" if self._handle is not None else "idle"

    @property
    def open_count(self) -> int:
        """Number of real file opens (cache misses) so far."""
        return self._open_count

    @property
    def current_path(self) -> Optional[str]:
        return self._path

    # ── caller side ──────────────────────────────────────────────────────────
    def decrypt(self, path, key: bytes, start: int = 0,
                end: Optional[int] = None) -> Iterator[bytes]:
        """
        Open (if needed) and decrypt as one unit; return a chunk generator.
        Open errors (TruncatedFile, OSError, ...) raise here, before any
        output.
        """
        self.start()
        path  = os.fspath(path)
        reply: Queue = Queue()
        with self._submit_lock:
            if self._closed:
                raise WorkerClosed("Worker has been closed.")
            self._commands.put(_OpenFile(path, key, reply))
            ack = reply.get()
            if isinstance(ack, BaseException):
                raise ack
            self._commands.put(_Decrypt(start, end, reply))
        return self._drain(reply)

    def decrypt_cached(self, start: int = 0,
                       end: Optional[int] = None) -> Iterator[bytes]:
        """Decrypt from whatever file is currently cached. Raises WorkerNotReady if none."""
        self.start()
        reply: Queue = Queue()
        with self._submit_lock:
            if self._closed:
                raise WorkerClosed("Worker has been closed.")
            self._commands.put(_Decrypt(start, end, reply))
        return self._drain(reply)

    @staticmethod
    def _drain(reply: Queue) -> Iterator[bytes]:
        while True:
            item = reply.get()
            if item is END_OF_STREAM:
                return
            if isinstance(item, BaseException):
                raise item
            yield item

    # ── worker thread ────────────────────────────────────────────────────────
    def _run(self) -> None:
        try:
            while True:
                cmd = self._commands.get()
                if cmd is None:
                    break
                if isinstance(cmd, _OpenFile):
                    self._handle_open(cmd)
                elif isinstance(cmd, _Decrypt):
                    self._handle_decrypt(cmd)
        finally:
            self._close_handle()

    def _handle_open(self, cmd: _OpenFile) -> None:
        if self._handle is not None and cmd.path == self._path and cmd.key == self._key:
            logger.debug(f"Cache hit: {cmd.path}")
            cmd.reply.put(True)
            return

        self._close_handle()
        try:
            validate_key(cmd.key)
            handle = open(cmd.path, "rb")
            try:
                iv, payload_length = RangeDecryptor.read_header(handle)
            except BaseException:
                handle.close()
                raise
        except Exception as e:
            logger.error(f"Open failed for {cmd.path}: {e}")
            cmd.reply.put(e)
            return

        self._path, self._key, self._handle = cmd.path, cmd.key, handle
        self._iv, self._payload_length = iv, payload_length
        self._open_count += 1
        logger.info(f"Opened {cmd.path} ({payload_length} payload bytes)")
        cmd.reply.put(True)

    def _handle_decrypt(self, cmd: _Decrypt) -> None:
        if self._handle is None:
            cmd.reply.put(WorkerNotReady("No file open; send an open request first."))
            return
        try:
            decryptor = RangeDecryptor(self._key, self._iv, self._chunk_size)
            for chunk in decryptor.stream(self._handle, cmd.start, cmd.end,
                                          payload_length=self._payload_length):
                cmd.reply.put(chunk)
        except Exception as e:
            logger.error(f"Decrypt failed for {self._path}: {e}")
            self._close_handle()
            cmd.reply.put(e)
            return
        cmd.reply.put(END_OF_STREAM)

    def _close_handle(self) -> None:
        if self._handle is not None:
            self._handle.close()
            logger.debug(f"Closed {self._path}")
        self._path = self._key = self._handle = None
        self._iv = self._payload_length = None

    def __repr__(self):
        return f"DecryptWorker({self.state}, path={self._path!r})"
