# Copyright Red Hat
#
# dumpdiff/changelog/changes.py - Dumpdiff record change representation
#
# This file is part of the dumpdiff project.
#
# SPDX-License-Identifier: Apache-2.0
"""
Record change detection primitives and change records.
"""
from typing import Any, Callable, Dict, List, Optional
import logging

from dumpdiff import DumpdiffStoreError

from .changetypes import ChangeType
from .treewalk import MISSING, Field

_log = logging.getLogger(__name__)

_log_debug = _log.debug
_log_info = _log.info
_log_warn = _log.warning
_log_error = _log.error


def _is_number(value: Any) -> bool:
    return isinstance(value, (int, float)) and not isinstance(value, bool)


# pylint: disable=too-many-return-statements
def is_equivalent(
    value_a: Any,
    value_b: Any,
    exclude_field: Optional[Callable[[Field], bool]] = None,
    _segments: tuple = (),
) -> bool:
    """
    Deep compare two JSON-shaped values.

    Sequences must have the same length and compare element-wise in order.
    Mappings must have the same key set once keys matching
    ``exclude_field`` have been removed, at every nesting level. Booleans
    never compare equal to numbers.

    :param value_a: The first value.
    :param value_b: The second value.
    :param exclude_field: An optional callable returning ``True`` for mapping
                          fields to ignore.
    :type exclude_field: ``Optional[Callable[[Field], bool]]``
    :returns: ``True`` if the values are equivalent.
    :rtype: ``bool``
    """
    if isinstance(value_a, dict) and isinstance(value_b, dict):

        def _keep(mapping):
            return {
                key: val
                for key, val in mapping.items()
                if not (
                    exclude_field
                    and exclude_field(Field(_segments + (key,), val, parent=mapping))
                )
            }

        kept_a = _keep(value_a)
        kept_b = _keep(value_b)
        if kept_a.keys() != kept_b.keys():
            return False
        return all(
            is_equivalent(val, kept_b[key], exclude_field, _segments + (key,))
            for key, val in kept_a.items()
        )

    if isinstance(value_a, list) and isinstance(value_b, list):
        if len(value_a) != len(value_b):
            return False
        return all(
            is_equivalent(val_a, val_b, exclude_field, _segments + (index,))
            for index, (val_a, val_b) in enumerate(zip(value_a, value_b))
        )

    if isinstance(value_a, (dict, list)) or isinstance(value_b, (dict, list)):
        return False

    if _is_number(value_a) and _is_number(value_b):
        return value_a == value_b

    if isinstance(value_a, bool) or isinstance(value_b, bool):
        return isinstance(value_a, bool) and isinstance(value_b, bool) and (
            value_a == value_b
        )

    return type(value_a) is type(value_b) and value_a == value_b


class TextChange:
    """
    A change to the localized text referenced by a string-hash field, in
    one language.
    """

    def __init__(self, lang_code: str, old_value: str, new_value: str):
        """
        Initialise a new ``TextChange`` object.

        :param lang_code: The language of the changed text.
        :type lang_code: ``str``
        :param old_value: The previous text.
        :type old_value: ``str``
        :param new_value: The current text.
        :type new_value: ``str``
        """
        self.lang_code = lang_code
        self.old_value = old_value
        self.new_value = new_value

    def __repr__(self) -> str:
        return (
            f"TextChange({self.lang_code!r}, {self.old_value!r}, {self.new_value!r})"
        )

    def __eq__(self, other) -> bool:
        if not isinstance(other, TextChange):
            return NotImplemented
        return self.to_dict() == other.to_dict()

    def to_dict(self) -> Dict[str, str]:
        """
        Convert this ``TextChange`` into a dictionary suitable for encoding
        as JSON.

        :rtype: ``Dict[str, str]``
        """
        return {
            "lang_code": self.lang_code,
            "old_value": self.old_value,
            "new_value": self.new_value,
        }

    @classmethod
    def from_dict(cls, data: Dict[str, str]) -> "TextChange":
        """
        Initialise a ``TextChange`` from its dictionary representation.
        """
        try:
            return cls(data["lang_code"], data["old_value"], data["new_value"])
        except (KeyError, TypeError) as err:
            raise DumpdiffStoreError(f"Malformed text change: {data!r}") from err


class FieldChange:
    """
    Representation of a change to a single field of a record.

    A field with only ``new_value`` was added, one with only ``old_value``
    was removed and one with both was updated. Absent values are
    ``MISSING``; ``None`` is a legitimate JSON ``null``.
    """

    def __init__(self, path: str, old_value: Any = MISSING, new_value: Any = MISSING):
        """
        Initialise a new ``FieldChange`` object.

        :param path: The path of the changed field.
        :type path: ``str``
        :param old_value: The previous value, or ``MISSING``.
        :param new_value: The current value, or ``MISSING``.
        """
        self.path = path
        self.old_value = old_value
        self.new_value = new_value
        self.text_changes: List[TextChange] = []

    def __str__(self) -> str:
        """
        Return a string representation of this ``FieldChange`` object.

        :returns: A human readable string representation of this instance.
        :rtype: str
        """
        out = f"    {self.path}: {self.description}"
        if self.has_old_value:
            out += f"\n      old_value: {self.old_value!r}"
        if self.has_new_value:
            out += f"\n      new_value: {self.new_value!r}"
        for text_change in self.text_changes:
            out += (
                f"\n      text [{text_change.lang_code}]: "
                f"{text_change.old_value!r} -> {text_change.new_value!r}"
            )
        return out

    def __repr__(self) -> str:
        return f"FieldChange({self.path!r}, {self.old_value!r}, {self.new_value!r})"

    def __eq__(self, other) -> bool:
        if not isinstance(other, FieldChange):
            return NotImplemented
        return self.to_dict() == other.to_dict()

    @property
    def has_old_value(self) -> bool:
        """``True`` if this change records a previous value."""
        return self.old_value is not MISSING

    @property
    def has_new_value(self) -> bool:
        """``True`` if this change records a current value."""
        return self.new_value is not MISSING

    @property
    def description(self) -> str:
        """
        A short description of this change: "added", "removed", "updated" or
        "text changed".
        """
        if self.has_old_value and self.has_new_value:
            return "updated"
        if self.has_new_value:
            return "added"
        if self.has_old_value:
            return "removed"
        return "text changed"

    def add_text_change(self, text_change: TextChange):
        """
        Record a change to the text referenced by this field.

        :param text_change: The text change to record.
        :type text_change: ``TextChange``
        """
        self.text_changes.append(text_change)

    def to_dict(self) -> Dict[str, Any]:
        """
        Convert this ``FieldChange`` object into a dictionary representation
        suitable for encoding as JSON. Absent values are omitted.

        :returns: A dictionary mapping this instance's keys to values.
        :rtype: ``Dict[str, Any]``
        """
        out = {"path": self.path}
        if self.has_old_value:
            out["old_value"] = self.old_value
        if self.has_new_value:
            out["new_value"] = self.new_value
        out["text_changes"] = [change.to_dict() for change in self.text_changes]
        return out

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "FieldChange":
        """
        Initialise a ``FieldChange`` from its dictionary representation.
        """
        try:
            change = cls(
                data["path"],
                old_value=data.get("old_value", MISSING),
                new_value=data.get("new_value", MISSING),
            )
            for text_change in data.get("text_changes", []):
                change.add_text_change(TextChange.from_dict(text_change))
        except (KeyError, TypeError, AttributeError) as err:
            raise DumpdiffStoreError(f"Malformed field change: {data!r}") from err
        return change


class ChangeRecord:
    """
    The change to one record (identified by primary key) of a table.
    """

    def __init__(
        self,
        key: str,
        change_type: ChangeType,
        added_record: Any = MISSING,
        removed_record: Any = MISSING,
    ):
        """
        Initialise a new ``ChangeRecord`` object.

        :param key: The primary key value of the changed record.
        :type key: ``str``
        :param change_type: The kind of change.
        :type change_type: ``ChangeType``
        :param added_record: The full record, for added records.
        :param removed_record: The full record, for removed records.
        """
        self.key = key
        self.change_type = change_type
        self.added_record = added_record
        self.removed_record = removed_record
        self.updated_fields: Dict[str, FieldChange] = {}

    def __str__(self) -> str:
        """
        Return a string representation of this ``ChangeRecord`` object.

        :returns: A human readable representation of this ``ChangeRecord``.
        :rtype: ``str``
        """
        out = f"  Key: {self.key}\n    change_type: {self.change_type.value}"
        if self.updated_fields:
            out += "\n" + "\n".join(str(fc) for fc in self.updated_fields.values())
        return out

    def __repr__(self) -> str:
        return f"ChangeRecord({self.key!r}, {self.change_type})"

    def __eq__(self, other) -> bool:
        if not isinstance(other, ChangeRecord):
            return NotImplemented
        return self.key == other.key and self.to_dict() == other.to_dict()

    def field_change(self, path: str) -> FieldChange:
        """
        Return the ``FieldChange`` for ``path``, creating it if needed.

        :param path: The field path.
        :type path: ``str``
        :rtype: ``FieldChange``
        """
        if path not in self.updated_fields:
            self.updated_fields[path] = FieldChange(path)
        return self.updated_fields[path]

    def to_dict(self) -> Dict[str, Any]:
        """
        Convert this ``ChangeRecord`` object into a dictionary representation
        suitable for encoding as JSON.

        :returns: A dictionary mapping this instance's keys to values.
        :rtype: ``Dict[str, Any]``
        """
        out = {"change_type": self.change_type.value}
        if self.change_type == ChangeType.ADDED:
            out["added_record"] = self.added_record
        elif self.change_type == ChangeType.REMOVED:
            out["removed_record"] = self.removed_record
        else:
            out["updated_fields"] = {
                path: change.to_dict() for path, change in self.updated_fields.items()
            }
        return out

    @classmethod
    def from_dict(cls, key: str, data: Dict[str, Any]) -> "ChangeRecord":
        """
        Initialise a ``ChangeRecord`` from its dictionary representation.
        """
        try:
            record = cls(
                key,
                ChangeType(data["change_type"]),
                added_record=data.get("added_record", MISSING),
                removed_record=data.get("removed_record", MISSING),
            )
            for path, change in data.get("updated_fields", {}).items():
                record.updated_fields[path] = FieldChange.from_dict(change)
        except (KeyError, TypeError, ValueError, AttributeError) as err:
            raise DumpdiffStoreError(
                f"Malformed change record for key {key}: {err}"
            ) from err
        return record


class ExcelFileChanges:
    """
    All record changes for one table.
    """

    def __init__(self, name: str):
        """
        Initialise a new, empty ``ExcelFileChanges`` object.

        :param name: The table name.
        :type name: ``str``
        """
        self.name = name
        self.change_record_map: Dict[str, ChangeRecord] = {}

    def __repr__(self) -> str:
        return f"ExcelFileChanges({self.name!r}, [{len(self)} records])"

    def __len__(self) -> int:
        return len(self.change_record_map)

    def __eq__(self, other) -> bool:
        if not isinstance(other, ExcelFileChanges):
            return NotImplemented
        return self.to_dict() == other.to_dict()

    def add(self, record: ChangeRecord):
        """
        Add a change record, keyed by its primary key value.

        :param record: The record to add.
        :type record: ``ChangeRecord``
        """
        self.change_record_map[record.key] = record

    def _of_type(self, change_type: ChangeType) -> List[ChangeRecord]:
        return [
            rec
            for rec in self.change_record_map.values()
            if rec.change_type == change_type
        ]

    @property
    def added(self) -> List[ChangeRecord]:
        """Change records with ``ChangeType.ADDED`` type."""
        return self._of_type(ChangeType.ADDED)

    @property
    def removed(self) -> List[ChangeRecord]:
        """Change records with ``ChangeType.REMOVED`` type."""
        return self._of_type(ChangeType.REMOVED)

    @property
    def updated(self) -> List[ChangeRecord]:
        """Change records with ``ChangeType.UPDATED`` type."""
        return self._of_type(ChangeType.UPDATED)

    def to_dict(self) -> Dict[str, Any]:
        """
        Convert this ``ExcelFileChanges`` object into a dictionary
        representation suitable for encoding as JSON.

        :rtype: ``Dict[str, Any]``
        """
        return {
            "name": self.name,
            "change_record_map": {
                key: record.to_dict() for key, record in self.change_record_map.items()
            },
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "ExcelFileChanges":
        """
        Initialise an ``ExcelFileChanges`` from its dictionary representation.
        """
        try:
            changes = cls(data["name"])
            for key, record in data["change_record_map"].items():
                changes.add(ChangeRecord.from_dict(key, record))
        except (KeyError, TypeError, AttributeError) as err:
            raise DumpdiffStoreError(f"Malformed table changes: {err}") from err
        return changes


__all__ = [
    "is_equivalent",
    "TextChange",
    "FieldChange",
    "ChangeRecord",
    "ExcelFileChanges",
]
