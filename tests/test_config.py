# Copyright Red Hat
#
# tests/test_config.py - Dumpdiff configuration tests
#
# This file is part of the dumpdiff project.
#
# SPDX-License-Identifier: Apache-2.0
import unittest
import tempfile
import os

from dumpdiff import DumpdiffConfigError
from dumpdiff.config import DumpdiffConfig, load_config

_CONFIG = """
[Global]
PrevArchive = /data/4.1
CurrArchive = /data/4.2
ChangelogDir = /data/changelogs
SchemaFile = /etc/dumpdiff/schema.ini
Compress = lzma
"""


class TestDumpdiffConfig(unittest.TestCase):
    def setUp(self):
        self._tmp = tempfile.TemporaryDirectory()
        self.config_file = os.path.join(self._tmp.name, "dumpdiff.conf")

    def tearDown(self):
        self._tmp.cleanup()

    def _write(self, text):
        with open(self.config_file, "w", encoding="utf8") as fp:
            fp.write(text)

    def test_from_file(self):
        self._write(_CONFIG)
        config = DumpdiffConfig.from_file(self.config_file)
        self.assertEqual(config.prev_archive, "/data/4.1")
        self.assertEqual(config.curr_archive, "/data/4.2")
        self.assertEqual(config.changelog_dir, "/data/changelogs")
        self.assertEqual(config.schema_file, "/etc/dumpdiff/schema.ini")
        self.assertEqual(config.compression, "lzma")

    def test_from_file_missing(self):
        self.assertEqual(DumpdiffConfig.from_file(self.config_file), DumpdiffConfig())

    def test_from_file_no_global(self):
        self._write("[Other]\nPrevArchive = /x\n")
        self.assertEqual(DumpdiffConfig.from_file(self.config_file), DumpdiffConfig())

    def test_from_file_malformed(self):
        self._write("PrevArchive = /x\n")
        with self.assertRaises(DumpdiffConfigError):
            DumpdiffConfig.from_file(self.config_file)

    def test_from_env(self):
        env = {
            "DUMPDIFF_PREV_ARCHIVE": "/p",
            "DUMPDIFF_CURR_ARCHIVE": "/c",
            "DUMPDIFF_CHANGELOGS": "/o",
            "DUMPDIFF_SCHEMA": "",
        }
        config = DumpdiffConfig.from_env(env)
        self.assertEqual(
            config, DumpdiffConfig(prev_archive="/p", curr_archive="/c", changelog_dir="/o")
        )

    def test_precedence(self):
        self._write(_CONFIG)
        env = {"DUMPDIFF_CURR_ARCHIVE": "/env/curr", "DUMPDIFF_CHANGELOGS": "/env/out"}
        config = load_config(self.config_file, environ=env)
        config = config.merge(DumpdiffConfig(changelog_dir="/cli/out"))
        self.assertEqual(config.prev_archive, "/data/4.1")
        self.assertEqual(config.curr_archive, "/env/curr")
        self.assertEqual(config.changelog_dir, "/cli/out")

    def test_compression_none(self):
        self.assertIsNone(DumpdiffConfig(compress="none").compression)
        self.assertIsNone(DumpdiffConfig().compression)

    def test_check(self):
        config = DumpdiffConfig(prev_archive="/p", changelog_dir="/o")
        with self.assertRaises(DumpdiffConfigError) as cm:
            config.check()
        self.assertIn("curr_archive (DUMPDIFF_CURR_ARCHIVE)", str(cm.exception))
        self.assertIn("schema_file (DUMPDIFF_SCHEMA)", str(cm.exception))
        self.assertNotIn("prev_archive", str(cm.exception))
        config.check(need_archives=False)

    def test_check_compress(self):
        config = DumpdiffConfig(
            prev_archive="/p", curr_archive="/c", changelog_dir="/o",
            schema_file="/s", compress="bzip2",
        )
        with self.assertRaisesRegex(DumpdiffConfigError, "compression"):
            config.check()
