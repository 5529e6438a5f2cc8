"""
RangeDecryptor — random-access AES-CTR decryption
==================================================
Decrypts any inclusive byte range of an encrypted file without touching
the bytes before it.

File format: iv(16) || ciphertext
    The IV is the counter for payload block 0. Block n is encrypted
    with counter IV + n (128-bit big-endian, wrapping).

Seeking works because CTR keystream depends only on the counter. To
start at payload byte `start`:
    counter = IV + start // 16
    discard   start % 16 keystream bytes
    read from 16 + start

Output is a generator of byte chunks (CHUNK_SIZE at most). Only the
concatenation matters; chunk boundaries are a buffering detail.

Dependencies: cryptography >= 41.0
"""

import logging
import os
from typing import BinaryIO, Iterator, Optional, Tuple

from cryptography.hazmat.primitives.ciphers import Cipher, algorithms, modes

from .counter import add_blocks
from .errors import TruncatedFile
from .keys import KEY_SIZES, validate_key

logger = logging.getLogger(__name__)


class RangeDecryptor:
    """AES-CTR decryption of arbitrary payload ranges."""

    BLOCK_SIZE = 16          # AES block width
    IV_SIZE    = 16          # IV prefix at the head of every file
    CHUNK_SIZE = 64 * 1024   # largest chunk yielded per read
    KEY_SIZES  = KEY_SIZES

    def __init__(self, key: bytes, iv: bytes, chunk_size: int = None):
        self._key = validate_key(key)
        if len(iv) != self.IV_SIZE:
            raise ValueError(f"IV must be {self.IV_SIZE} bytes.")
        self._iv = bytes(iv)
        self._chunk_size = self.CHUNK_SIZE if chunk_size is None else chunk_size
        if self._chunk_size <= 0:
            raise ValueError("chunk_size must be positive.")

    @property
    def iv(self) -> bytes:
        return self._iv

    @classmethod
    def read_header(cls, handle: BinaryIO) -> Tuple[bytes, int]:
        """
        Read the IV and measure the payload.
        Returns: (iv, payload_length)
        Raises TruncatedFile if the file cannot hold an IV.
        """
        handle.seek(0)
        iv = handle.read(cls.IV_SIZE)
        if len(iv) < cls.IV_SIZE:
            raise TruncatedFile(
                f"File is {len(iv)} bytes; need at least {cls.IV_SIZE} for the IV."
            )
        total = handle.seek(0, os.SEEK_END)
        return iv, total - cls.IV_SIZE

    def _cipher_at(self, block_index: int):
        counter = add_blocks(self._iv, block_index)
        return Cipher(algorithms.AES(self._key), modes.CTR(counter)).decryptor()

    def stream(self, handle: BinaryIO, start: int = 0,
               end: Optional[int] = None,
               payload_length: Optional[int] = None) -> Iterator[bytes]:
        """
        Yield plaintext chunks for payload bytes start..end (inclusive).

        end=None decrypts to the end of the payload. start > end yields
        nothing. A short read ends the stream early (EOF is not an error).
        """
        if start < 0:
            raise ValueError("start must be non-negative.")
        if end is None and payload_length is not None:
            end = payload_length - 1
        if end is not None and start > end:
            return

        block_index, block_offset = divmod(start, self.BLOCK_SIZE)
        decryptor = self._cipher_at(block_index)
        logger.debug(f"Range start={start} end={end} "
                     f"block={block_index} offset={block_offset}")

        handle.seek(self.IV_SIZE + start)

        # Advance the keystream to `start` inside its block.
        if block_offset:
            decryptor.update(bytes(block_offset))

        remaining = None if end is None else end - start + 1
        while remaining is None or remaining > 0:
            want = self._chunk_size if remaining is None else min(remaining, self._chunk_size)
            data = handle.read(want)
            if not data:
                break
            yield decryptor.update(data)
            if remaining is not None:
                remaining -= len(data)


def decrypt_range(handle: BinaryIO, key: bytes, iv: bytes, start: int = 0,
                  end: Optional[int] = None,
                  chunk_size: int = None) -> Iterator[bytes]:
    """One-shot helper: RangeDecryptor(key, iv).stream(handle, start, end)."""
    return RangeDecryptor(key, iv, chunk_size).stream(handle, start, end)
