# Copyright Red Hat
#
# dumpdiff/changelog/engine.py - Dumpdiff record table diff engine
#
# This file is part of the dumpdiff project.
#
# SPDX-License-Identifier: Apache-2.0
"""
Record table diff engine
"""
from typing import Any, Dict, Iterable, List, Mapping, Optional
import logging
import json

from dumpdiff import (
    DUMPDIFF_SUBSYSTEM_EXCEL,
    DumpdiffNotFoundError,
    DumpdiffSnapshotError,
    DumpdiffStoreError,
)

from .changes import ChangeRecord, ExcelFileChanges, TextChange, is_equivalent
from .changetypes import ChangeType, WalkAction
from .options import ChangelogOptions
from .textmap import CompositeHashIndex, TextMapChanges
from .treewalk import (
    MISSING,
    Field,
    is_branch,
    is_obfuscated_field,
    resolve_path,
    strip_fields,
    walk_record,
)

_log = logging.getLogger(__name__)

_log_debug = _log.debug
_log_info = _log.info
_log_warn = _log.warning
_log_error = _log.error


def _log_debug_excel(msg, *args, **kwargs):
    """A wrapper for excel subsystem debug logs."""
    _log.debug(msg, *args, extra={"subsystem": DUMPDIFF_SUBSYSTEM_EXCEL}, **kwargs)


def _same_shape_branch(curr_value: Any, prev_value: Any) -> bool:
    """
    Return ``True`` if ``curr_value`` is a non-empty container of the same
    kind as ``prev_value``, so that their children can be compared.
    """
    if not is_branch(curr_value):
        return False
    if isinstance(curr_value, dict):
        return isinstance(prev_value, dict)
    return isinstance(prev_value, list)


class Changelog:
    """
    Container for the text map and record table changes of one version.
    """

    def __init__(
        self,
        version: str,
        textmap: Dict[str, TextMapChanges],
        excel: Dict[str, ExcelFileChanges],
    ):
        """
        Initialise a new ``Changelog``.

        :param version: The version label of the changelog.
        :type version: ``str``
        :param textmap: Text map changes keyed by language code.
        :type textmap: ``Dict[str, TextMapChanges]``
        :param excel: Record table changes keyed by table name.
        :type excel: ``Dict[str, ExcelFileChanges]``
        """
        self.version = version
        self.textmap = textmap
        self.excel = excel

    def __repr__(self) -> str:
        return (
            f"Changelog({self.version!r}, [{len(self.textmap)} languages], "
            f"[{len(self.excel)} tables])"
        )

    def __eq__(self, other) -> bool:
        if not isinstance(other, Changelog):
            return NotImplemented
        return self.to_dict() == other.to_dict()

    @property
    def tables(self) -> List[str]:
        """
        Names of tables with at least one changed record.
        """
        return [name for name, changes in self.excel.items() if len(changes)]

    @property
    def total_changes(self) -> int:
        """
        Total number of changed records across all tables.
        """
        return sum(len(changes) for changes in self.excel.values())

    def table(self, name: str) -> ExcelFileChanges:
        """
        Return the changes for table ``name``.

        :raises DumpdiffNotFoundError: If the table is not in this changelog.
        """
        if name not in self.excel:
            raise DumpdiffNotFoundError(
                f"No table named '{name}' in changelog {self.version}"
            )
        return self.excel[name]

    def language(self, lang_code: str) -> TextMapChanges:
        """
        Return the text map changes for ``lang_code``.

        :raises DumpdiffNotFoundError: If the language is not in this
                                       changelog.
        """
        if lang_code not in self.textmap:
            raise DumpdiffNotFoundError(
                f"No text map for language '{lang_code}' in changelog {self.version}"
            )
        return self.textmap[lang_code]

    def textmap_to_dict(self) -> Dict[str, Any]:
        """
        Return the text map changes as a dictionary suitable for encoding as
        JSON.
        """
        return {lang: changes.to_dict() for lang, changes in self.textmap.items()}

    def excel_to_dict(self) -> Dict[str, Any]:
        """
        Return the record table changes as a dictionary suitable for encoding
        as JSON.
        """
        return {name: changes.to_dict() for name, changes in self.excel.items()}

    def to_dict(self) -> Dict[str, Any]:
        """
        Convert this ``Changelog`` into a dictionary representation suitable
        for encoding as JSON.

        :rtype: ``Dict[str, Any]``
        """
        return {
            "version": self.version,
            "textmap": self.textmap_to_dict(),
            "excel": self.excel_to_dict(),
        }

    @staticmethod
    def textmap_from_dict(data: Dict[str, Any]) -> Dict[str, TextMapChanges]:
        """
        Decode text map changes from their dictionary representation.
        """
        if not isinstance(data, dict):
            raise DumpdiffStoreError("Malformed text map changelog")
        return {lang: TextMapChanges.from_dict(value) for lang, value in data.items()}

    @staticmethod
    def excel_from_dict(data: Dict[str, Any]) -> Dict[str, ExcelFileChanges]:
        """
        Decode record table changes from their dictionary representation.
        """
        if not isinstance(data, dict):
            raise DumpdiffStoreError("Malformed excel changelog")
        return {name: ExcelFileChanges.from_dict(value) for name, value in data.items()}

    def json(self, pretty: bool = False) -> str:
        """
        Return a JSON representation of this changelog.

        :param pretty: Indent JSON to be human readable.
        :type pretty: ``bool``
        :rtype: ``str``
        """
        return json.dumps(self.to_dict(), indent=4 if pretty else None)

    def summary(self) -> str:
        """
        Return a summary of this ``Changelog`` instance.

        :returns: A string summarizing this instance.
        :rtype: ``str``
        """
        tables = self.excel.values()
        added = sum(len(t.added) for t in tables)
        removed = sum(len(t.removed) for t in tables)
        updated = sum(len(t.updated) for t in tables)
        lines = [
            f"Changelog for version {self.version}",
            f"Total record changes: {self.total_changes}",
            f"  Records added:   {added}",
            f"  Records removed: {removed}",
            f"  Records updated: {updated}",
            f"  Tables changed:  {len(self.tables)}",
        ]
        for lang, changes in self.textmap.items():
            lines.append(
                f"  TextMap{lang}: {len(changes.added)} added, "
                f"{len(changes.removed)} removed, {len(changes.updated)} updated"
            )
        return "\n".join(lines)

    def full(self, table: Optional[str] = None) -> str:
        """
        Return a string describing every changed record, optionally limited
        to one table.

        :param table: An optional table name to report.
        :type table: ``Optional[str]``
        :rtype: ``str``
        """
        names = [table] if table else self.tables
        out = []
        for name in names:
            changes = self.table(name)
            out.append(f"Table: {name}")
            out.extend(str(record) for record in changes.change_record_map.values())
        return "\n".join(out)


class ExcelDiffEngine:
    """
    Core class for computing record table changes.
    """

    def __init__(self, options: Optional[ChangelogOptions] = None):
        """
        Initialise a new ``ExcelDiffEngine`` instance.

        :param options: Options to apply to change computation.
        :type options: ``Optional[ChangelogOptions]``
        """
        self.options = options or ChangelogOptions()

    def _is_obfuscated(self, field: Field) -> bool:
        return is_obfuscated_field(field, self.options.obfuscated_min_length)

    def _strip(self, value: Any) -> Any:
        """
        Return ``value`` with obfuscated fields removed.
        """
        if isinstance(value, (dict, list)):
            return strip_fields(value, self._is_obfuscated)
        return value

    def map_records(
        self, table_name: str, records: Iterable[Any], primary_key: str
    ) -> Dict[str, Any]:
        """
        Key a table's records by primary key value.

        Duplicate keys are logged and the last record wins. Records lacking
        the primary key are logged and skipped.

        :param table_name: The table name, for diagnostics.
        :type table_name: ``str``
        :param records: The records to map.
        :type records: ``Iterable[Any]``
        :param primary_key: The primary key field name.
        :type primary_key: ``str``
        :returns: A dictionary of string key values to records.
        :rtype: ``Dict[str, Any]``
        :raises DumpdiffSnapshotError: If a record is not a mapping.
        """
        mapped = {}
        for index, record in enumerate(records):
            if not isinstance(record, dict):
                raise DumpdiffSnapshotError(
                    f"Table {table_name}: record {index} is not an object"
                )
            value = record.get(primary_key)
            if value is None:
                _log_warn(
                    "Table %s: record %d has no primary key '%s' (skipped)",
                    table_name,
                    index,
                    primary_key,
                )
                continue
            key = str(value)
            if key in mapped:
                _log_warn(
                    "Table %s: duplicate primary key %s=%s (keeping last)",
                    table_name,
                    primary_key,
                    key,
                )
            mapped[key] = record
        return mapped

    # pylint: disable=too-many-arguments
    def compute_table_changes(
        self,
        table_name: str,
        primary_key: str,
        prev_records: Iterable[Any],
        curr_records: Iterable[Any],
        textmap: Mapping[str, TextMapChanges],
        composite: CompositeHashIndex,
    ) -> ExcelFileChanges:
        """
        Compute the record level changes for one table.

        :param table_name: The table name.
        :type table_name: ``str``
        :param primary_key: The table's primary key field.
        :type primary_key: ``str``
        :param prev_records: The records of the previous snapshot.
        :param curr_records: The records of the current snapshot.
        :param textmap: Text map changes keyed by language code.
        :type textmap: ``Mapping[str, TextMapChanges]``
        :param composite: The composite text map hash index.
        :type composite: ``CompositeHashIndex``
        :returns: The table's changes.
        :rtype: ``ExcelFileChanges``
        """
        prev_data = self.map_records(table_name, prev_records, primary_key)
        curr_data = self.map_records(table_name, curr_records, primary_key)

        _log_info(
            "Computing changelog for table %s (primary key: %s, current keys: %d, "
            "previous keys: %d)",
            table_name,
            primary_key,
            len(curr_data),
            len(prev_data),
        )

        changes = ExcelFileChanges(table_name)

        for key, record in curr_data.items():
            if key not in prev_data:
                _log_debug_excel("Table %s: key %s added", table_name, key)
                changes.add(
                    ChangeRecord(key, ChangeType.ADDED, added_record=self._strip(record))
                )

        for key, record in prev_data.items():
            if key not in curr_data:
                _log_debug_excel("Table %s: key %s removed", table_name, key)
                changes.add(
                    ChangeRecord(
                        key, ChangeType.REMOVED, removed_record=self._strip(record)
                    )
                )

        for key, curr_record in curr_data.items():
            if key not in prev_data:
                continue
            record = self.compare_records(
                key, prev_data[key], curr_record, textmap, composite
            )
            if record is not None:
                _log_debug_excel(
                    "Table %s: key %s updated (%d fields)",
                    table_name,
                    key,
                    len(record.updated_fields),
                )
                changes.add(record)

        _log_debug_excel(
            "Table %s: %d added, %d removed, %d updated",
            table_name,
            len(changes.added),
            len(changes.removed),
            len(changes.updated),
        )
        return changes

    # pylint: disable=too-many-arguments
    def compare_records(
        self,
        key: str,
        prev_record: Any,
        curr_record: Any,
        textmap: Mapping[str, TextMapChanges],
        composite: CompositeHashIndex,
    ) -> Optional[ChangeRecord]:
        """
        Compare two versions of one record field by field.

        The current record is walked first to find added and updated fields
        and text changes behind string-hash fields; the previous record is
        then walked to find removed fields.

        :param key: The primary key value of the record.
        :type key: ``str``
        :param prev_record: The previous version of the record.
        :param curr_record: The current version of the record.
        :param textmap: Text map changes keyed by language code.
        :type textmap: ``Mapping[str, TextMapChanges]``
        :param composite: The composite text map hash index.
        :type composite: ``CompositeHashIndex``
        :returns: A ``ChangeRecord`` of type ``UPDATED``, or ``None`` if the
                  records are equivalent.
        :rtype: ``Optional[ChangeRecord]``
        """
        record = ChangeRecord(key, ChangeType.UPDATED)
        visited = set()
        # Paths whose subtree is fully described by a change in the first pass.
        settled = set()

        def _check_text_changes(field: Field):
            hashes = field.value if isinstance(field.value, list) else [field.value]
            for text_hash in hashes:
                if isinstance(text_hash, (dict, list)) or not composite.was_updated(
                    text_hash
                ):
                    continue
                for lang_changes in textmap.values():
                    update = lang_changes.updated.get(str(text_hash))
                    if update is None:
                        continue
                    record.field_change(field.path).add_text_change(
                        TextChange(
                            lang_changes.lang_code, update.old_value, update.new_value
                        )
                    )

        def _visit_curr(field: Field) -> WalkAction:
            if self._is_obfuscated(field):
                return WalkAction.NO_DESCEND

            visited.add(field.segments)
            is_hash = self.options.is_hash_field(field.basename)
            prev_value = resolve_path(prev_record, field.segments)
            action = WalkAction.CONTINUE

            if prev_value is MISSING:
                record.field_change(field.path).new_value = self._strip(field.value)
                settled.add(field.segments)
                action = WalkAction.NO_DESCEND
            elif not is_hash and _same_shape_branch(field.value, prev_value):
                # Recorded, but left unsettled so both passes reach children.
                if not is_equivalent(field.value, prev_value, self._is_obfuscated):
                    change = record.field_change(field.path)
                    change.old_value = self._strip(prev_value)
                    change.new_value = self._strip(field.value)
            elif not is_equivalent(field.value, prev_value, self._is_obfuscated):
                change = record.field_change(field.path)
                change.old_value = self._strip(prev_value)
                change.new_value = self._strip(field.value)
                settled.add(field.segments)
                action = WalkAction.NO_DESCEND

            if is_hash:
                _check_text_changes(field)
                settled.add(field.segments)
                action = WalkAction.NO_DESCEND

            return action

        def _visit_prev(field: Field) -> WalkAction:
            if self._is_obfuscated(field):
                return WalkAction.NO_DESCEND

            if field.segments in visited:
                if field.segments in settled:
                    return WalkAction.NO_DESCEND
                if self.options.is_hash_field(field.basename):
                    return WalkAction.NO_DESCEND
                return WalkAction.CONTINUE

            record.field_change(field.path).old_value = self._strip(field.value)
            return WalkAction.NO_DESCEND

        walk_record(curr_record, _visit_curr)
        walk_record(prev_record, _visit_prev)

        if not record.updated_fields:
            return None
        return record


__all__ = [
    "Changelog",
    "ExcelDiffEngine",
]
