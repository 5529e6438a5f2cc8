"""
Public request API
==================
open_decrypt_read(file, key, start=None, end=None, worker=None)

Returns a lazy iterator of plaintext chunks for payload bytes
start..end (inclusive). Pass a DecryptWorker to reuse an open handle
across calls; without one the file is opened and closed per call. The
bytes produced are the same either way.
"""

import logging
import os
from typing import Iterator, Optional, Union

from .keys import decode_key
from .range_decrypt import RangeDecryptor
from .worker import DecryptWorker

logger = logging.getLogger(__name__)

KeyInput = Union[str, bytes]


def open_decrypt_read(encrypted_file, key: KeyInput,
                      start: Optional[int] = None,
                      end: Optional[int] = None,
                      worker: Optional[DecryptWorker] = None) -> Iterator[bytes]:
    """
    encrypted_file : path to an iv(16) || ciphertext file
    key            : base64 string or raw bytes (16 or 32 bytes decoded)
    start          : first payload byte, default 0
    end            : last payload byte (inclusive), default end of payload

    Key problems raise immediately. File problems raise immediately when
    a worker is used, otherwise on first iteration.
    """
    raw_key = decode_key(key)
    start = 0 if start is None else start
    if start < 0:
        raise ValueError("start must be non-negative.")

    if worker is not None:
        return worker.decrypt(encrypted_file, raw_key, start, end)
    return _cold_read(os.fspath(encrypted_file), raw_key, start, end)


def _cold_read(path: str, key: bytes, start: int,
               end: Optional[int]) -> Iterator[bytes]:
    with open(path, "rb") as handle:
        iv, payload_length = RangeDecryptor.read_header(handle)
        logger.debug(f"Cold read {path} [{start}, {end}]")
        yield from RangeDecryptor(key, iv).stream(
            handle, start, end, payload_length=payload_length)


def read_range(encrypted_file, key: KeyInput, start: Optional[int] = None,
               end: Optional[int] = None,
               worker: Optional[DecryptWorker] = None) -> bytes:
    """open_decrypt_read, joined into a single bytes object."""
    return b"".join(open_decrypt_read(encrypted_file, key, start, end, worker))


def payload_size(encrypted_file) -> int:
    """Length of the ciphertext payload (file size minus the IV)."""
    with open(encrypted_file, "rb") as handle:
        return RangeDecryptor.read_header(handle)[1]
