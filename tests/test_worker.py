"""
seekable_crypto — DecryptWorker tests
=====================================
Run with:  python -m pytest tests/ -v
"""

import sys
import os
import base64
import threading
sys.path.insert(0, os.path.dirname(os.path.dirname(os.path.abspath(__file__))))

import pytest
from cryptography.hazmat.primitives.ciphers import Cipher, algorithms, modes

from seekable_crypto import (
    DecryptWorker, open_decrypt_read, read_range,
    InvalidKeyLength, TruncatedFile, WorkerNotReady, WorkerClosed,
)

KEY_A = bytes(range(32))
KEY_B = bytes(range(50, 66))
IV_A  = bytes.fromhex("a0a1a2a3a4a5a6a7a8a9aaabacadaeaf")
IV_B  = bytes.fromhex("00000000000000000000000000000ff0")


def make_file(path, key, iv, plaintext):
    enc = Cipher(algorithms.AES(key), modes.CTR(iv)).encryptor()
    path.write_bytes(iv + enc.update(plaintext) + enc.finalize())
    return path


@pytest.fixture
def worker():
    w = DecryptWorker(chunk_size=256)
    yield w
    w.close()


@pytest.fixture
def files(tmp_path):
    pt_a = os.urandom(10_000)
    pt_b = os.urandom(7_777)
    a = make_file(tmp_path / "a.enc", KEY_A, IV_A, pt_a)
    b = make_file(tmp_path / "b.enc", KEY_B, IV_B, pt_b)
    return (a, pt_a), (b, pt_b)


# ── Lifecycle ─────────────────────────────────────────────────────────────────
def test_worker_starts_idle_and_lazily(worker):
    assert worker.state == "idle"
    assert worker.open_count == 0

def test_close_is_idempotent_and_blocks_further_use(files):
    (a, _), _ = files
    w = DecryptWorker()
    assert read_range(a, KEY_A, 0, 9, worker=w)
    w.close()
    w.close()
    assert w.state == "closed"
    with pytest.raises(WorkerClosed):
        open_decrypt_read(a, KEY_A, worker=w)

def test_context_manager_closes(files):
    (a, pt_a), _ = files
    with DecryptWorker() as w:
        assert read_range(a, KEY_A, 5, 50, worker=w) == pt_a[5:51]
    assert w.state == "closed"


# ── Warm cache ────────────────────────────────────────────────────────────────
def test_warm_calls_reuse_handle(worker, files):
    (a, pt_a), _ = files
    b64 = base64.b64encode(KEY_A).decode()
    first  = read_range(a, b64, 0, 999, worker=worker)
    second = read_range(a, b64, 123, 4567, worker=worker)
    assert worker.open_count == 1
    assert worker.state == "ready"
    assert worker.current_path == os.fspath(a)
    assert first == pt_a[:1000] == read_range(a, b64, 0, 999)
    assert second == pt_a[123:4568] == read_range(a, b64, 123, 4567)

def test_switching_file_or_key_reopens(worker, files):
    (a, pt_a), (b, pt_b) = files
    assert read_range(a, KEY_A, worker=worker) == pt_a
    assert read_range(b, KEY_B, worker=worker) == pt_b
    assert read_range(b, KEY_B, 1, 2, worker=worker) == pt_b[1:3]
    assert worker.open_count == 2
    assert read_range(a, KEY_A, 9_000, worker=worker) == pt_a[9_000:]
    assert worker.open_count == 3

def test_same_path_different_key_reopens(worker, files):
    (a, pt_a), _ = files
    read_range(a, KEY_A, 0, 15, worker=worker)
    wrong = read_range(a, KEY_B, 0, 15, worker=worker)
    assert worker.open_count == 2
    assert wrong != pt_a[:16]

def test_worker_matches_cold_for_many_ranges(worker, files):
    (a, _), _ = files
    for start, end in [(0, 0), (1, 16), (15, 17), (4095, 8191), (9_990, None), (300, 200)]:
        assert read_range(a, KEY_A, start, end, worker=worker) == read_range(a, KEY_A, start, end)


# ── Errors ────────────────────────────────────────────────────────────────────
def test_decrypt_while_idle_is_usage_error(worker):
    with pytest.raises(WorkerNotReady):
        list(worker.decrypt_cached(0, 10))

def test_decrypt_cached_after_open(worker, files):
    (a, pt_a), _ = files
    read_range(a, KEY_A, 0, 0, worker=worker)
    assert b"".join(worker.decrypt_cached(40, 80)) == pt_a[40:81]

def test_truncated_file_surfaces_before_output(worker, tmp_path, files):
    (a, pt_a), _ = files
    short = tmp_path / "short.enc"
    short.write_bytes(b"0123456789")
    read_range(a, KEY_A, 0, 0, worker=worker)
    with pytest.raises(TruncatedFile):
        open_decrypt_read(short, KEY_A, worker=worker)
    assert worker.state == "idle"
    # Worker keeps serving after a failed open.
    assert read_range(a, KEY_A, 0, 31, worker=worker) == pt_a[:32]

def test_missing_file_raises_oserror(worker, tmp_path):
    with pytest.raises(OSError):
        open_decrypt_read(tmp_path / "nope.enc", KEY_A, worker=worker)

@pytest.mark.parametrize("size", [10, 20])
def test_open_rejects_bad_key_without_caching(worker, files, size):
    (a, _), _ = files
    with pytest.raises(InvalidKeyLength):
        worker.decrypt(a, bytes(size), 0, 10)
    assert worker.open_count == 0
    assert worker.state == "idle"

def test_bad_key_replaces_warm_file_and_leaves_worker_idle(worker, files):
    (a, pt_a), _ = files
    read_range(a, KEY_A, 0, 0, worker=worker)
    with pytest.raises(InvalidKeyLength):
        worker.decrypt(a, bytes(10))
    assert worker.state == "idle"
    assert read_range(a, KEY_A, 0, 31, worker=worker) == pt_a[:32]

def test_read_failure_mid_stream_ends_with_error(worker, files):
    (a, pt_a), _ = files
    read_range(a, KEY_A, 0, 0, worker=worker)
    assert worker.state == "ready"
    # Worker thread is parked on the command queue; break its cached handle.
    worker._handle.close()
    with pytest.raises(ValueError):
        list(worker.decrypt(a, KEY_A, 100, 200))
    assert worker.state == "idle"
    assert read_range(a, KEY_A, 100, 200, worker=worker) == pt_a[100:201]
    assert worker.open_count == 2

def test_zero_chunk_size_rejected():
    with pytest.raises(ValueError):
        DecryptWorker(chunk_size=0)

@pytest.mark.parametrize("size", [10, 20])
def test_bad_key_never_reaches_worker(worker, files, size):
    (a, _), _ = files
    with pytest.raises(InvalidKeyLength):
        open_decrypt_read(a, base64.b64encode(bytes(size)).decode(), worker=worker)
    assert worker.open_count == 0


# ── Concurrency ───────────────────────────────────────────────────────────────
def test_abandoned_stream_does_not_poison_next_call(worker, files):
    (a, pt_a), _ = files
    stream = open_decrypt_read(a, KEY_A, 0, None, worker=worker)
    assert next(stream) == pt_a[:256]
    del stream
    assert read_range(a, KEY_A, 5000, 5100, worker=worker) == pt_a[5000:5101]

def test_concurrent_callers_on_different_files(worker, files):
    (a, pt_a), (b, pt_b) = files
    errors = []

    def hammer(path, key, pt, offset):
        try:
            for i in range(25):
                start = (offset + i * 97) % len(pt)
                end = min(start + 1234, len(pt) - 1)
                got = read_range(path, key, start, end, worker=worker)
                if got != pt[start:end + 1]:
                    errors.append((path, start, end))
        except Exception as e:
            errors.append(e)

    threads = [
        threading.Thread(target=hammer, args=(a, KEY_A, pt_a, 0)),
        threading.Thread(target=hammer, args=(b, KEY_B, pt_b, 13)),
        threading.Thread(target=hammer, args=(a, KEY_A, pt_a, 501)),
    ]
    for t in threads:
        t.start()
    for t in threads:
        t.join(timeout=60)
    assert not any(t.is_alive() for t in threads)
    assert errors == []


if __name__ == "__main__":
    sys.exit(pytest.main([__file__, "-v"]))
