# Copyright Red Hat
#
# dumpdiff/changelog/__init__.py - Dumpdiff changelog package
#
# This file is part of the dumpdiff project.
#
# SPDX-License-Identifier: Apache-2.0
"""
Changelog package.

Provides version changelog computation for dataset snapshots: localized
string table diffs, record table diffs with text change propagation and a
store for computed changelogs. The main entry points are
``ChangelogDiffer`` and ``ChangelogOptions``.
"""
from .changes import ChangeRecord, ExcelFileChanges, FieldChange, TextChange
from .changetypes import ChangeType, WalkAction
from .differ import ChangelogDiffer, load_changelog
from .engine import Changelog, ExcelDiffEngine
from .options import ChangelogOptions
from .store import ChangelogStore, FileChangelogStore, MemoryChangelogStore
from .textmap import CompositeHashIndex, TextMapChanges, TextMapDiffer

__all__ = [
    "ChangeRecord",
    "ChangeType",
    "Changelog",
    "ChangelogDiffer",
    "ChangelogOptions",
    "ChangelogStore",
    "CompositeHashIndex",
    "ExcelDiffEngine",
    "ExcelFileChanges",
    "FieldChange",
    "FileChangelogStore",
    "MemoryChangelogStore",
    "TextChange",
    "TextMapChanges",
    "TextMapDiffer",
    "WalkAction",
    "load_changelog",
]
