# Copyright Red Hat
#
# tests/changelog/test_options.py - ChangelogOptions tests.
#
# This file is part of the dumpdiff project.
#
# SPDX-License-Identifier: Apache-2.0
import unittest
from argparse import Namespace

from dumpdiff.changelog.options import (
    ChangelogOptions,
    EXCLUDED_TABLE_PREFIXES,
    EXCLUDED_TABLE_NAMES,
)


class TestChangelogOptions(unittest.TestCase):
    def test_ChangelogOptions__str__(self):
        opts = ChangelogOptions(obfuscated_min_length=12)
        s = str(opts)
        self.assertIn("obfuscated_min_length=12", s)
        self.assertIn("excluded_prefixes=Relation_ PlainLineMap TextMap", s)

    def test_is_hash_field(self):
        opts = ChangelogOptions()
        self.assertTrue(opts.is_hash_field("TitleTextMapHash"))
        self.assertTrue(opts.is_hash_field("TipsTextMapHashList"))
        self.assertFalse(opts.is_hash_field("TitleTextMapHashes"))
        self.assertFalse(opts.is_hash_field("[0]"))
        self.assertFalse(opts.is_hash_field(None))

    def test_is_excluded_table(self):
        opts = ChangelogOptions()
        self.assertFalse(opts.is_excluded_table("AvatarExcelConfigData", "id"))
        self.assertTrue(opts.is_excluded_table("AvatarExcelConfigData", None))
        self.assertTrue(opts.is_excluded_table("TextMapEN", "id", lang_code="EN"))
        self.assertTrue(opts.is_excluded_table("Relation_Foo", "id"))
        self.assertTrue(opts.is_excluded_table("PlainLineMapEN", "id"))
        self.assertTrue(opts.is_excluded_table("TextMapMediumEN", "id"))
        self.assertTrue(opts.is_excluded_table("CodexQuestExcelConfigData", "id"))
        self.assertFalse(opts.is_excluded_table("CodexQuestExcelConfigDataX", "id"))

    def test_from_cmd_args(self):
        """Test initialization from argparse Namespace."""
        args = Namespace(
            excluded_tables=["FooExcelConfigData"],
            excluded_prefixes=None,
            unknown_arg="ignored",
        )
        opts = ChangelogOptions.from_cmd_args(args)

        self.assertEqual(
            opts.excluded_tables, EXCLUDED_TABLE_NAMES + ("FooExcelConfigData",)
        )
        # Should use defaults for missing args
        self.assertEqual(opts.excluded_prefixes, EXCLUDED_TABLE_PREFIXES)
        self.assertTrue(opts.is_excluded_table("FooExcelConfigData", "id"))

    def test_hashable(self):
        self.assertEqual(hash(ChangelogOptions()), hash(ChangelogOptions()))
