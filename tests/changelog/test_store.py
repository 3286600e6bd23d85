# Copyright Red Hat
#
# tests/changelog/test_store.py - Changelog store tests
#
# This file is part of the dumpdiff project.
#
# SPDX-License-Identifier: Apache-2.0
import unittest
import tempfile
import lzma
import os
import stat
from unittest.mock import patch

try:
    import zstandard as zstd
    _HAVE_ZSTD = True
except ModuleNotFoundError:
    _HAVE_ZSTD = False

from dumpdiff import DumpdiffArgumentError, DumpdiffNotFoundError, DumpdiffStoreError
from dumpdiff.changelog import store
from dumpdiff.changelog.store import (
    KIND_EXCEL,
    KIND_TEXTMAP,
    FileChangelogStore,
    MemoryChangelogStore,
)

DATA = {"EN": {"lang_code": "EN", "added": {"1": "a"}, "removed": {}, "updated": {}}}


class TestMemoryChangelogStore(unittest.TestCase):
    def setUp(self):
        self.store = MemoryChangelogStore()

    def test_load_missing(self):
        with self.assertRaises(DumpdiffNotFoundError):
            self.store.load(KIND_TEXTMAP, "4.2")
        self.assertFalse(self.store.exists(KIND_TEXTMAP, "4.2"))

    def test_round_trip(self):
        self.store.save(KIND_TEXTMAP, "4.2", DATA)
        self.assertTrue(self.store.exists(KIND_TEXTMAP, "4.2"))
        self.assertFalse(self.store.exists(KIND_EXCEL, "4.2"))
        self.assertEqual(self.store.load(KIND_TEXTMAP, "4.2"), DATA)

    def test_copies(self):
        data = {"a": {"b": 1}}
        self.store.save(KIND_EXCEL, "1.0", data)
        data["a"]["b"] = 2
        loaded = self.store.load(KIND_EXCEL, "1.0")
        self.assertEqual(loaded, {"a": {"b": 1}})
        loaded["a"]["b"] = 3
        self.assertEqual(self.store.load(KIND_EXCEL, "1.0"), {"a": {"b": 1}})

    def test_write_once(self):
        self.store.save(KIND_EXCEL, "1.0", {})
        with self.assertRaises(DumpdiffStoreError):
            self.store.save(KIND_EXCEL, "1.0", {"x": 1})

    def test_versions(self):
        self.store.save(KIND_EXCEL, "2.0", {})
        self.store.save(KIND_TEXTMAP, "1.0", {})
        self.store.save(KIND_EXCEL, "1.0", {})
        self.assertEqual(self.store.versions(), ["1.0", "2.0"])

    def test_bad_kind(self):
        with self.assertRaises(DumpdiffArgumentError):
            self.store.save("other", "1.0", {})


class TestFileChangelogStore(unittest.TestCase):
    def setUp(self):
        self._tmp = tempfile.TemporaryDirectory()
        self.directory = os.path.join(self._tmp.name, "changelogs")

    def tearDown(self):
        self._tmp.cleanup()

    def _round_trip(self, compress, ext):
        fstore = FileChangelogStore(self.directory, compress=compress)
        fstore.save(KIND_TEXTMAP, "4.2", DATA)
        path = os.path.join(self.directory, "TextMapChangeLog.4.2.json" + ext)
        self.assertTrue(os.path.isfile(path))
        self.assertFalse(os.path.exists(path + ".tmp"))
        self.assertTrue(fstore.exists(KIND_TEXTMAP, "4.2"))
        self.assertEqual(fstore.load(KIND_TEXTMAP, "4.2"), DATA)
        # Any encoding is readable by an uncompressed store
        self.assertEqual(FileChangelogStore(self.directory).load(KIND_TEXTMAP, "4.2"), DATA)
        return path

    def test_round_trip_plain(self):
        self._round_trip(None, "")

    def test_round_trip_lzma(self):
        path = self._round_trip("lzma", ".xz")
        with lzma.open(path, "rb") as fp:
            self.assertTrue(fp.read().startswith(b"{"))

    @unittest.skipIf(not _HAVE_ZSTD, "zstandard not available")
    def test_round_trip_zstd(self):
        self._round_trip("zstd", ".zst")

    def test_directory_created(self):
        self.assertFalse(os.path.exists(self.directory))
        FileChangelogStore(self.directory).save(KIND_EXCEL, "1.0", {})
        self.assertTrue(os.path.isdir(self.directory))
        self.assertTrue(
            os.path.isfile(os.path.join(self.directory, "ExcelChangeLog.1.0.json"))
        )

    def test_load_missing(self):
        with self.assertRaises(DumpdiffNotFoundError):
            FileChangelogStore(self.directory).load(KIND_EXCEL, "1.0")

    def test_write_once(self):
        fstore = FileChangelogStore(self.directory)
        fstore.save(KIND_EXCEL, "1.0", {"a": 1})
        with self.assertRaises(DumpdiffStoreError):
            FileChangelogStore(self.directory, compress="lzma").save(KIND_EXCEL, "1.0", {})
        self.assertEqual(fstore.load(KIND_EXCEL, "1.0"), {"a": 1})

    def test_corrupt_artifact(self):
        os.makedirs(self.directory)
        with open(os.path.join(self.directory, "ExcelChangeLog.1.0.json"), "w") as fp:
            fp.write("{not json")
        with self.assertRaises(DumpdiffStoreError):
            FileChangelogStore(self.directory).load(KIND_EXCEL, "1.0")

    def test_corrupt_lzma_artifact(self):
        os.makedirs(self.directory)
        with open(os.path.join(self.directory, "ExcelChangeLog.1.0.json.xz"), "wb") as fp:
            fp.write(b"not lzma")
        with self.assertRaises(DumpdiffStoreError):
            FileChangelogStore(self.directory).load(KIND_EXCEL, "1.0")

    def test_not_an_object(self):
        os.makedirs(self.directory)
        with open(os.path.join(self.directory, "ExcelChangeLog.1.0.json"), "w") as fp:
            fp.write("[]")
        with self.assertRaises(DumpdiffStoreError):
            FileChangelogStore(self.directory).load(KIND_EXCEL, "1.0")

    def test_versions(self):
        fstore = FileChangelogStore(self.directory)
        self.assertEqual(fstore.versions(), [])
        fstore.save(KIND_EXCEL, "2.1", {})
        fstore.save(KIND_TEXTMAP, "2.1", {})
        FileChangelogStore(self.directory, compress="lzma").save(KIND_TEXTMAP, "1.0", {})
        with open(os.path.join(self.directory, "README"), "w") as fp:
            fp.write("x")
        self.assertEqual(fstore.versions(), ["1.0", "2.1"])

    def test_unknown_compression(self):
        with self.assertRaises(DumpdiffArgumentError):
            FileChangelogStore(self.directory, compress="bzip2")

    @patch("dumpdiff.changelog.store._HAVE_ZSTD", False)
    def test_zstd_unavailable(self):
        with self.assertRaises(DumpdiffArgumentError):
            FileChangelogStore(self.directory, compress="zstd")

    def test_symlink_rejected(self):
        target = os.path.join(self._tmp.name, "target")
        os.makedirs(target)
        os.symlink(target, self.directory)
        with self.assertRaisesRegex(DumpdiffStoreError, "is a symlink"):
            FileChangelogStore(self.directory).save(KIND_EXCEL, "1.0", {})

    def test_not_a_directory(self):
        with open(self.directory, "w") as fp:
            fp.write("x")
        with self.assertRaisesRegex(DumpdiffStoreError, "is not a directory"):
            FileChangelogStore(self.directory).save(KIND_EXCEL, "1.0", {})

    @patch("os.makedirs")
    @patch("os.path.lexists", return_value=False)
    def test_check_store_dir_create(self, mock_lexists, mock_makedirs):
        store._check_store_dir("/tmp/changelogs", 0o755, "test")
        mock_makedirs.assert_called_with("/tmp/changelogs", mode=0o755, exist_ok=True)

    @patch("os.makedirs", side_effect=OSError("denied"))
    @patch("os.path.lexists", return_value=False)
    def test_check_store_dir_create_error(self, mock_lexists, mock_makedirs):
        with self.assertRaisesRegex(DumpdiffStoreError, "Failed to create"):
            store._check_store_dir("/tmp/changelogs", 0o755, "test")

    @patch("os.path.lexists", return_value=True)
    @patch("os.lstat")
    def test_check_store_dir_existing(self, mock_lstat, mock_lexists):
        mock_lstat.return_value.st_mode = stat.S_IFDIR | 0o755
        self.assertEqual(
            store._check_store_dir("/tmp/changelogs", 0o755, "test"), "/tmp/changelogs"
        )
