"""
seekable_crypto
===============
Random-access decryption of AES-CTR encrypted files.

A file is laid out as iv(16) || ciphertext. Any byte range of the
payload can be decrypted without processing the bytes before it, and
the plaintext is produced lazily as a sequence of chunks.

Components:
    add_blocks        — 128-bit big-endian counter arithmetic
    RangeDecryptor    — seek + keystream alignment + chunked decrypt
    DecryptWorker     — background thread that keeps the last file warm
    open_decrypt_read — public entry point

License: Apache 2.0
"""

__version__ = "1.0.0"

from .counter       import add_blocks
from .keys          import decode_key
from .range_decrypt import RangeDecryptor, decrypt_range
from .worker        import DecryptWorker
from .api           import open_decrypt_read, read_range, payload_size
from .errors        import (
    SeekableCryptoError,
    InvalidKeyLength,
    InvalidKeyEncoding,
    TruncatedFile,
    WorkerNotReady,
    WorkerClosed,
)

__all__ = [
    "add_blocks",
    "decode_key",
    "RangeDecryptor",
    "decrypt_range",
    "DecryptWorker",
    "open_decrypt_read",
    "read_range",
    "payload_size",
    "SeekableCryptoError",
    "InvalidKeyLength",
    "InvalidKeyEncoding",
    "TruncatedFile",
    "WorkerNotReady",
    "WorkerClosed",
]
