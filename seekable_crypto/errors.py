"""
Error kinds raised by seekable_crypto.

Configuration problems (bad key, truncated file) are ValueErrors, worker
usage problems are RuntimeErrors, so callers that only know the builtin
types still catch them.
"""


class SeekableCryptoError(Exception):
    """Base class for every error this package raises on its own."""


class InvalidKeyLength(SeekableCryptoError, ValueError):
    """Key is not 16 or 32 bytes once decoded."""


class InvalidKeyEncoding(SeekableCryptoError, ValueError):
    """Key string is not standard base64."""


class TruncatedFile(SeekableCryptoError, ValueError):
    """File is too short to hold the 16-byte IV prefix."""


class WorkerNotReady(SeekableCryptoError, RuntimeError):
    """Decrypt was requested before any file was opened on the worker."""


class WorkerClosed(SeekableCryptoError, RuntimeError):
    """Request sent to a worker that has been shut down."""
