"""
seekable_crypto — Live Demo: random-access AES-CTR reads
========================================================
Run:  python examples/demo_seek.py

Encrypts a sample payload into iv(16) || ciphertext, then reads ranges
from it cold and through a warm DecryptWorker, with timings.
"""

import sys, os, time, base64, logging, tempfile
sys.path.insert(0, os.path.dirname(os.path.dirname(os.path.abspath(__file__))))

from cryptography.hazmat.primitives.ciphers import Cipher, algorithms, modes

from seekable_crypto import DecryptWorker, read_range, payload_size

LINE = "═" * 70

def header(name):
    print(f"\n{LINE}")
    print(f"  {name}")
    print(LINE)

def ok(label, value=""):
    print(f"  ✓  {label}{f': {value}' if value else ''}")


logging.basicConfig(level=logging.INFO, format=' %(message)s')

key       = os.urandom(32)
iv        = os.urandom(16)
plaintext = os.urandom(8 * 1024 * 1024)
b64_key   = base64.b64encode(key).decode()

enc  = Cipher(algorithms.AES(key), modes.CTR(iv)).encryptor()
path = os.path.join(tempfile.mkdtemp(), "sample.enc")
with open(path, "wb") as fh:
    fh.write(iv + enc.update(plaintext) + enc.finalize())

# ─────────────────────────────────────────────────────────────────────────────
header("Cold reads")
ok("Payload size", f"{payload_size(path):,} bytes")
for start, end in [(0, 99), (100, 199), (5_000_001, 5_000_100)]:
    t0  = time.perf_counter()
    out = read_range(path, b64_key, start, end)
    elapsed = time.perf_counter() - t0
    assert out == plaintext[start:end + 1]
    ok(f"[{start}, {end}]", f"{len(out)} bytes in {elapsed*1000:.2f} ms")

# ─────────────────────────────────────────────────────────────────────────────
header("Warm worker")
with DecryptWorker() as worker:
    for start, end in [(0, 99), (100, 199), (5_000_001, 5_000_100), (7_000_000, None)]:
        t0  = time.perf_counter()
        out = read_range(path, b64_key, start, end, worker=worker)
        elapsed = time.perf_counter() - t0
        assert out == (plaintext[start:] if end is None else plaintext[start:end + 1])
        ok(f"[{start}, {end}]", f"{len(out)} bytes in {elapsed*1000:.2f} ms")
    ok("File opens", worker.open_count)

os.remove(path)
print(f"\n{LINE}\n  All reads matched.\n{LINE}\n")
