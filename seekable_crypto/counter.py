"""
CTR counter arithmetic
======================
The counter for block n is the file IV plus n, both read as 128-bit
big-endian integers. Overflow wraps modulo 2**128.
"""

COUNTER_SIZE = 16


def add_blocks(counter: bytes, blocks: int) -> bytes:
    """
    Return `counter` advanced by `blocks` blocks.

    Byte-wise add from the least significant end; the loop stops once the
    carry is spent, and any carry out of the top byte is dropped.
    """
    if len(counter) != COUNTER_SIZE:
        raise ValueError(f"Counter must be {COUNTER_SIZE} bytes.")
    if blocks < 0:
        raise ValueError("Block count must be non-negative.")

    out   = bytearray(counter)
    carry = blocks
    for i in range(COUNTER_SIZE - 1, -1, -1):
        total  = out[i] + (carry & 0xFF)
        out[i] = total & 0xFF
        carry  = (carry >> 8) + (total >> 8)
        if carry == 0:
            break
    return bytes(out)
