"""
Key decoding
============
Keys arrive either as standard base64 text or as raw bytes. Either way
the decoded key must be an AES-128 or AES-256 key.
"""

import base64
import binascii
from typing import Union

from .errors import InvalidKeyEncoding, InvalidKeyLength

KEY_SIZES = (16, 32)


def validate_key(key: bytes) -> bytes:
    if len(key) not in KEY_SIZES:
        raise InvalidKeyLength(
            f"AES key must be 16 or 32 bytes, got {len(key)}."
        )
    return key


def decode_key(key: Union[str, bytes]) -> bytes:
    """
    str   -> base64-decoded, then length-checked.
    bytes -> used verbatim, then length-checked.
    """
    if isinstance(key, str):
        try:
            raw = base64.b64decode(key.strip(), validate=True)
        except (binascii.Error, ValueError) as e:
            raise InvalidKeyEncoding(f"Key is not valid base64: {e}") from e
    elif isinstance(key, (bytes, bytearray, memoryview)):
        raw = bytes(key)
    else:
        raise TypeError(f"Key must be str or bytes, not {type(key).__name__}.")
    return validate_key(raw)
