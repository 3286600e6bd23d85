# Copyright Red Hat
#
# dumpdiff/changelog/differ.py - Dumpdiff changelog orchestrator
#
# This file is part of the dumpdiff project.
#
# SPDX-License-Identifier: Apache-2.0
"""
Top-level changelog interface.
"""
from typing import Callable, Dict, List, Optional, TypeVar
import logging

from dumpdiff import (
    LANG_CODES,
    DumpdiffSnapshotError,
    DumpdiffWalkError,
    parse_version_label,
)
from dumpdiff.schema import SchemaRegistry, SchemaTable

from .changes import ExcelFileChanges
from .engine import Changelog, ExcelDiffEngine
from .options import ChangelogOptions
from .snapshot import load_records, load_textmap
from .store import KIND_EXCEL, KIND_TEXTMAP, ChangelogStore
from .textmap import CompositeHashIndex, TextMapChanges, TextMapDiffer

_log = logging.getLogger(__name__)

_log_debug = _log.debug
_log_info = _log.info
_log_warn = _log.warning
_log_error = _log.error

_T = TypeVar("_T")


def _lang_order(lang_code: str) -> int:
    return LANG_CODES.index(lang_code) if lang_code in LANG_CODES else len(LANG_CODES)


class ChangelogDiffer:
    """
    Top-level interface for generating version changelogs from a pair of
    dataset snapshots.
    """

    # pylint: disable=too-many-arguments
    def __init__(
        self,
        schema: SchemaRegistry,
        prev_root: str,
        curr_root: str,
        store: ChangelogStore,
        options: Optional[ChangelogOptions] = None,
    ):
        """
        Initialise a new ``ChangelogDiffer``.

        :param schema: The dataset schema.
        :type schema: ``SchemaRegistry``
        :param prev_root: Root directory of the previous snapshot.
        :type prev_root: ``str``
        :param curr_root: Root directory of the current snapshot.
        :type curr_root: ``str``
        :param store: The store used to persist and reload changelogs.
        :type store: ``ChangelogStore``
        :param options: Options to control change computation.
        :type options: ``Optional[ChangelogOptions]``
        """
        options = options or ChangelogOptions()
        self.schema: SchemaRegistry = schema
        self.prev_root: str = prev_root
        self.curr_root: str = curr_root
        self.store: ChangelogStore = store
        self.options: ChangelogOptions = options
        self.textmap_differ: TextMapDiffer = TextMapDiffer()
        self.excel_engine: ExcelDiffEngine = ExcelDiffEngine(options)

    def _compute_tables(
        self,
        phase: str,
        tables: List[SchemaTable],
        compute: Callable[[SchemaTable], _T],
    ) -> Dict[str, _T]:
        """
        Run ``compute`` for each table, collecting the tables that fail.

        :raises DumpdiffSnapshotError: Listing every failed table, once all
                                       tables have been attempted.
        """
        results = {}
        failed = []
        for table in tables:
            try:
                results[table.name] = compute(table)
            except (DumpdiffSnapshotError, DumpdiffWalkError) as err:
                _log_error("Failed to compute changes for table %s: %s", table.name, err)
                failed.append(table.name)
        if failed:
            raise DumpdiffSnapshotError(
                f"Failed to compute {phase} changes for {len(failed)} "
                f"table(s): {', '.join(failed)}"
            )
        return results

    def compute_textmap_changes(self, version: str) -> Dict[str, TextMapChanges]:
        """
        Return the text map changes for ``version``, computing and storing
        them if they are not already stored.

        :param version: The version label.
        :type version: ``str``
        :returns: Text map changes keyed by language code.
        :rtype: ``Dict[str, TextMapChanges]``
        """
        version = parse_version_label(version)
        if self.store.exists(KIND_TEXTMAP, version):
            _log_info("Using stored TextMap changelog for version %s", version)
            return Changelog.textmap_from_dict(self.store.load(KIND_TEXTMAP, version))

        def _compute(table: SchemaTable) -> TextMapChanges:
            _log_info("Computing TextMap%s changes", table.lang_code)
            prev = load_textmap(self.prev_root, table.json_file, table.name)
            curr = load_textmap(self.curr_root, table.json_file, table.name)
            return self.textmap_differ.compute_changes(table.lang_code, prev, curr)

        tables = sorted(
            self.schema.textmap_tables(), key=lambda t: _lang_order(t.lang_code)
        )
        results = self._compute_tables("text map", tables, _compute)
        changes = {result.lang_code: result for result in results.values()}

        self.store.save(
            KIND_TEXTMAP,
            version,
            {lang: lang_changes.to_dict() for lang, lang_changes in changes.items()},
        )
        return changes

    def compute_composites(
        self, textmap: Dict[str, TextMapChanges]
    ) -> CompositeHashIndex:
        """
        Build the cross-language composite hash index for ``textmap``.

        :param textmap: Text map changes keyed by language code.
        :type textmap: ``Dict[str, TextMapChanges]``
        :rtype: ``CompositeHashIndex``
        """
        composite = CompositeHashIndex.from_changes(textmap.values())
        _log_info(
            "Composite TextMap changes: %d added, %d updated, %d removed",
            len(composite.added),
            len(composite.updated),
            len(composite.removed),
        )
        return composite

    def compute_excel_changes(
        self,
        version: str,
        textmap: Dict[str, TextMapChanges],
        composite: CompositeHashIndex,
    ) -> Dict[str, ExcelFileChanges]:
        """
        Return the record table changes for ``version``, computing and
        storing them if they are not already stored.

        Tables are processed in schema order. A table that cannot be loaded
        is logged and skipped; once every table has been attempted a
        ``DumpdiffSnapshotError`` lists the failures and nothing is stored.

        :param version: The version label.
        :type version: ``str``
        :param textmap: Text map changes keyed by language code.
        :type textmap: ``Dict[str, TextMapChanges]``
        :param composite: The composite hash index for ``textmap``.
        :type composite: ``CompositeHashIndex``
        :returns: Changes keyed by table name, for tables with changes.
        :rtype: ``Dict[str, ExcelFileChanges]``
        """
        version = parse_version_label(version)
        if self.store.exists(KIND_EXCEL, version):
            _log_info("Using stored Excel changelog for version %s", version)
            return Changelog.excel_from_dict(self.store.load(KIND_EXCEL, version))

        textmap = dict(
            sorted(textmap.items(), key=lambda item: _lang_order(item[0]))
        )

        def _compute(table: SchemaTable) -> ExcelFileChanges:
            prev = load_records(self.prev_root, table.json_file, table.name)
            curr = load_records(self.curr_root, table.json_file, table.name)
            return self.excel_engine.compute_table_changes(
                table.name, table.primary_key, prev, curr, textmap, composite
            )

        tables = []
        for table in self.schema.record_tables():
            if self.options.is_excluded_table(
                table.name, primary_key=table.primary_key, lang_code=table.lang_code
            ):
                _log_debug("Skipping excluded table %s", table.name)
                continue
            tables.append(table)

        results = self._compute_tables("record table", tables, _compute)
        # Every eligible table is kept, including those without changes.
        self.store.save(
            KIND_EXCEL,
            version,
            {name: table_changes.to_dict() for name, table_changes in results.items()},
        )
        return results

    def create_changelog(self, version: str) -> Changelog:
        """
        Create, or load from the store, the changelog for ``version``.

        :param version: The version label, e.g. ``"v4.2"``.
        :type version: ``str``
        :returns: The changelog.
        :rtype: ``Changelog``
        :raises DumpdiffInvalidIdentifierError: If ``version`` is malformed.
        """
        version = parse_version_label(version)
        _log_info(
            "Creating changelog for version %s (%s -> %s)",
            version,
            self.prev_root,
            self.curr_root,
        )
        textmap = self.compute_textmap_changes(version)
        composite = self.compute_composites(textmap)
        excel = self.compute_excel_changes(version, textmap, composite)
        return Changelog(version, textmap, excel)

    def load_changelog(self, version: str) -> Changelog:
        """
        Load a stored changelog without computing anything.

        :raises DumpdiffNotFoundError: If either part of the changelog is
                                       not stored.
        """
        return load_changelog(self.store, version)


def load_changelog(store: ChangelogStore, version: str) -> Changelog:
    """
    Load the changelog for ``version`` from ``store``.

    :param store: The store to load from.
    :type store: ``ChangelogStore``
    :param version: The version label.
    :type version: ``str``
    :rtype: ``Changelog``
    :raises DumpdiffNotFoundError: If either part of the changelog is not
                                   stored.
    """
    version = parse_version_label(version)
    textmap = Changelog.textmap_from_dict(store.load(KIND_TEXTMAP, version))
    excel = Changelog.excel_from_dict(store.load(KIND_EXCEL, version))
    return Changelog(version, textmap, excel)


__all__ = [
    "ChangelogDiffer",
    "load_changelog",
]
