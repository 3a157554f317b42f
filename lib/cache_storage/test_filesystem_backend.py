"""
Tests for FSCacheBackend, dood!

Covers the on-disk layout, durability across backend instances, atomic
writes and handling of damaged files.
"""

import json

import pytest

from lib.cache_storage import CacheBackendError, CachedResponse, FSCacheBackend
from lib.cache_storage.backends.filesystem import PARTITION_META_FILE
from lib.cache_storage.utils import hashKey

KEY = "GET http://localhost:5173/index.html"


def makeEntry(body: bytes = b"<html></html>") -> CachedResponse:
    return CachedResponse(
        url="http://localhost:5173/index.html",
        method="GET",
        statusCode=200,
        headers=[("content-type", "text/html"), ("set-cookie", "a=1"), ("set-cookie", "b=2")],
        body=body,
        storedAt=1700000000.0,
    )


@pytest.fixture
def baseDir(tmp_path):
    return tmp_path / "cache"


@pytest.fixture
def backend(baseDir) -> FSCacheBackend:
    return FSCacheBackend(str(baseDir))


class TestFSLayout:
    """Test files written by the backend, dood!"""

    @pytest.mark.asyncio
    async def test_partition_is_directory_with_meta(self, backend, baseDir):
        """createPartition() makes a directory with a metadata file, dood!"""
        await backend.createPartition("bw1-v1-static")

        metaPath = baseDir / "bw1-v1-static" / PARTITION_META_FILE
        assert metaPath.is_file()
        assert json.loads(metaPath.read_text())["name"] == "bw1-v1-static"

    @pytest.mark.asyncio
    async def test_entry_file_named_by_key_digest(self, backend, baseDir):
        """Each entry lives in <sha256(key)>.json, dood!"""
        await backend.putEntry("bw1-v1-static", KEY, makeEntry())

        entryPath = baseDir / "bw1-v1-static" / f"{hashKey(KEY)}.json"
        assert entryPath.is_file()
        assert json.loads(entryPath.read_text())["key"] == KEY
        assert not list((baseDir / "bw1-v1-static").glob("*.tmp"))

    @pytest.mark.asyncio
    async def test_traversal_names_stay_inside_base_dir(self, backend, baseDir):
        """Partition names can't escape the base directory, dood!"""
        await backend.createPartition("../outside")

        assert (baseDir / "outside").is_dir()
        assert not (baseDir.parent / "outside").exists()


class TestFSDurability:
    """Test that entries survive a new backend instance, dood!"""

    @pytest.mark.asyncio
    async def test_entries_survive_restart(self, backend, baseDir):
        """A new backend on the same directory sees earlier writes, dood!"""
        await backend.putEntry("bw1-v1-static", KEY, makeEntry(b"persisted"))

        restarted = FSCacheBackend(str(baseDir))
        entry = await restarted.getEntry("bw1-v1-static", KEY)

        assert entry is not None
        assert entry.body == b"persisted"
        assert entry.headers == makeEntry().headers
        assert entry.storedAt == 1700000000.0
        assert await restarted.listPartitions() == ["bw1-v1-static"]
        assert await restarted.listEntries("bw1-v1-static") == [KEY]

    @pytest.mark.asyncio
    async def test_overwrite_and_delete(self, backend):
        """putEntry() overwrites, deleteEntry() removes, dood!"""
        await backend.putEntry("bw1-v1-api", KEY, makeEntry(b"old"))
        await backend.putEntry("bw1-v1-api", KEY, makeEntry(b"new"))

        entry = await backend.getEntry("bw1-v1-api", KEY)
        assert entry is not None
        assert entry.body == b"new"

        assert await backend.deleteEntry("bw1-v1-api", KEY) is True
        assert await backend.deleteEntry("bw1-v1-api", KEY) is False
        assert await backend.getEntry("bw1-v1-api", KEY) is None

    @pytest.mark.asyncio
    async def test_delete_partition(self, backend, baseDir):
        """deletePartition() removes the directory tree, dood!"""
        await backend.putEntry("bw1-v0-static", KEY, makeEntry())

        assert await backend.deletePartition("bw1-v0-static") is True
        assert not (baseDir / "bw1-v0-static").exists()
        assert await backend.deletePartition("bw1-v0-static") is False
        assert await backend.hasPartition("bw1-v0-static") is False

    @pytest.mark.asyncio
    async def test_missing_entries_miss(self, backend):
        assert await backend.getEntry("bw1-v1-static", KEY) is None
        assert await backend.listEntries("bw1-v1-static") == []


class TestFSDamage:
    """Test handling of damaged files, dood!"""

    @pytest.mark.asyncio
    async def test_corrupted_entry_raises_backend_error(self, backend, baseDir):
        """Unparseable entry files raise CacheBackendError, dood!"""
        await backend.putEntry("bw1-v1-static", KEY, makeEntry())
        (baseDir / "bw1-v1-static" / f"{hashKey(KEY)}.json").write_text("{not json")

        with pytest.raises(CacheBackendError):
            await backend.getEntry("bw1-v1-static", KEY)

    @pytest.mark.asyncio
    async def test_foreign_directory_is_not_a_partition(self, backend, baseDir):
        """Directories without metadata are ignored, dood!"""
        (baseDir / "stray").mkdir()
        await backend.createPartition("bw1-v1-api")

        assert await backend.listPartitions() == ["bw1-v1-api"]

    def test_base_dir_is_a_file(self, tmp_path):
        """A file in place of the base directory is rejected, dood!"""
        filePath = tmp_path / "not-a-dir"
        filePath.write_text("x")

        with pytest.raises(CacheBackendError):
            FSCacheBackend(str(filePath))
