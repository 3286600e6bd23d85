# Copyright Red Hat
#
# tests/changelog/test_snapshot.py - Snapshot file loading tests
#
# This file is part of the dumpdiff project.
#
# SPDX-License-Identifier: Apache-2.0
import unittest
import tempfile
import os

from dumpdiff import DumpdiffSnapshotError
from dumpdiff.changelog.snapshot import load_json, load_records, load_textmap

from ._util import write_json


class TestSnapshot(unittest.TestCase):
    def setUp(self):
        self._tmp = tempfile.TemporaryDirectory()
        self.root = self._tmp.name

    def tearDown(self):
        self._tmp.cleanup()

    def test_load_json(self):
        write_json(self.root, "a/b.json", {"x": [1, None]})
        self.assertEqual(load_json(self.root, "a/b.json", "B"), {"x": [1, None]})

    def test_load_missing(self):
        with self.assertRaisesRegex(DumpdiffSnapshotError, "Table B: .* not found"):
            load_json(self.root, "a/b.json", "B")

    def test_load_malformed(self):
        with open(os.path.join(self.root, "bad.json"), "w") as fp:
            fp.write("[1, 2")
        with self.assertRaisesRegex(DumpdiffSnapshotError, "malformed JSON"):
            load_json(self.root, "bad.json", "Bad")

    def test_load_textmap(self):
        write_json(self.root, "TextMapEN.json", {"1": "a"})
        self.assertEqual(load_textmap(self.root, "TextMapEN.json", "TextMapEN"), {"1": "a"})

    def test_load_textmap_not_object(self):
        write_json(self.root, "TextMapEN.json", ["a"])
        with self.assertRaises(DumpdiffSnapshotError):
            load_textmap(self.root, "TextMapEN.json", "TextMapEN")

    def test_load_records(self):
        write_json(self.root, "T.json", [{"id": 1}])
        self.assertEqual(load_records(self.root, "T.json", "T"), [{"id": 1}])

    def test_load_records_not_array(self):
        write_json(self.root, "T.json", {"id": 1})
        with self.assertRaises(DumpdiffSnapshotError):
            load_records(self.root, "T.json", "T")
