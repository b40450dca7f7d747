import hashlib
import threading
from pathlib import Path
from unittest.mock import patch

import pytest

from hashgate import hasher
from hashgate.hasher import CHUNK_SIZE, BufferPool, HashingError, hash_file

HELLO_WORLD_SHA256 = "b94d27b9934d3e08a52e52d7da7dabfac484efe37a5380ee9088f7ace2efcde9"


def test_hash_file_matches_known_digest(tmp_path: Path):
    """Verify the digest of a well-known input."""
    test_file = tmp_path / "hello.txt"
    test_file.write_bytes(b"hello world")

    assert hash_file(test_file) == HELLO_WORLD_SHA256


def test_hash_file_is_deterministic(tmp_path: Path):
    test_file = tmp_path / "data.bin"
    test_file.write_bytes(b"some content\n" * 10)

    assert hash_file(test_file) == hash_file(test_file)


def test_hash_file_empty_file(tmp_path: Path):
    test_file = tmp_path / "empty"
    test_file.touch()

    assert hash_file(test_file) == hashlib.sha256(b"").hexdigest()


def test_hash_file_spans_multiple_chunks(tmp_path: Path):
    """Files larger than one buffer hash the same as a single-shot digest."""
    content = bytes(range(256)) * (CHUNK_SIZE // 256 * 3 + 7)
    test_file = tmp_path / "large.bin"
    test_file.write_bytes(content)

    assert hash_file(test_file) == hashlib.sha256(content).hexdigest()


def test_hash_file_missing_file_raises(tmp_path: Path):
    missing = tmp_path / "missing.txt"

    with pytest.raises(HashingError) as excinfo:
        hash_file(missing)

    assert excinfo.value.path == str(missing)
    assert isinstance(excinfo.value.cause, FileNotFoundError)
    assert isinstance(excinfo.value, OSError)


def test_hash_file_directory_raises(tmp_path: Path):
    with pytest.raises(HashingError):
        hash_file(tmp_path)


def test_buffer_returned_to_pool_after_failure(tmp_path: Path):
    pool = BufferPool(buffer_size=16, max_idle=4)

    with pytest.raises(HashingError):
        hash_file(tmp_path / "missing", pool=pool)

    assert pool.idle_count == 1
    assert pool.allocated == 1


def test_buffer_pool_reuses_buffers(tmp_path: Path):
    pool = BufferPool(buffer_size=8, max_idle=2)
    test_file = tmp_path / "reuse.txt"
    test_file.write_bytes(b"hello world")

    for _ in range(5):
        assert hash_file(test_file, pool=pool) == HELLO_WORLD_SHA256

    assert pool.allocated == 1
    assert pool.idle_count == 1


def test_buffer_pool_borrow_releases_on_exception():
    pool = BufferPool(buffer_size=4, max_idle=1)

    with pytest.raises(RuntimeError):
        with pool.borrow() as buffer:
            assert len(buffer) == 4
            raise RuntimeError("boom")

    assert pool.idle_count == 1


def test_buffer_pool_caps_idle_buffers():
    pool = BufferPool(buffer_size=4, max_idle=1)

    with pool.borrow() as first, pool.borrow() as second:
        assert first is not second

    assert pool.allocated == 2
    assert pool.idle_count == 1


def test_buffer_pool_rejects_invalid_sizes():
    with pytest.raises(ValueError):
        BufferPool(buffer_size=0)
    with pytest.raises(ValueError):
        BufferPool(max_idle=-1)


def test_concurrent_hashing_shares_pool_safely(tmp_path: Path):
    pool = BufferPool(buffer_size=32, max_idle=8)
    files = []
    for index in range(8):
        path = tmp_path / f"file{index}.txt"
        path.write_bytes(f"content {index}".encode() * 50)
        files.append(path)

    results: dict[Path, str] = {}
    lock = threading.Lock()

    def _hash(path: Path) -> None:
        digest = hash_file(path, pool=pool)
        with lock:
            results[path] = digest

    threads = [threading.Thread(target=_hash, args=(path,)) for path in files]
    for thread in threads:
        thread.start()
    for thread in threads:
        thread.join()

    for path in files:
        assert results[path] == hashlib.sha256(path.read_bytes()).hexdigest()
    assert pool.idle_count <= pool.allocated <= len(files)


@patch(
    "hashgate.hasher.open",
    create=True,
    side_effect=PermissionError(13, "Permission denied"),
)
def test_hash_file_permission_error(mock_open, tmp_path: Path):
    with pytest.raises(HashingError) as excinfo:
        hash_file(tmp_path / "locked.txt")

    assert isinstance(excinfo.value.cause, PermissionError)
    assert hasher._default_pool.idle_count >= 1
