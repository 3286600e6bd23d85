# Copyright Red Hat
#
# dumpdiff/changelog/textmap.py - Dumpdiff localized string table diffs
#
# This file is part of the dumpdiff project.
#
# SPDX-License-Identifier: Apache-2.0
"""
Localized string table (text map) change detection.
"""
from typing import Any, Dict, Iterable, Mapping, Set, Union
import logging

from dumpdiff import DUMPDIFF_SUBSYSTEM_TEXTMAP, DumpdiffStoreError

_log = logging.getLogger(__name__)

_log_debug = _log.debug
_log_info = _log.info
_log_warn = _log.warning
_log_error = _log.error

#: A key into a localized string table.
TextMapHash = Union[str, int]


def _log_debug_textmap(msg, *args, **kwargs):
    """A wrapper for textmap subsystem debug logs."""
    _log.debug(msg, *args, extra={"subsystem": DUMPDIFF_SUBSYSTEM_TEXTMAP}, **kwargs)


class TextUpdate:
    """
    An updated localized string: the previous and current text.
    """

    def __init__(self, old_value: str, new_value: str):
        self.old_value = old_value
        self.new_value = new_value

    def __repr__(self) -> str:
        return f"TextUpdate({self.old_value!r}, {self.new_value!r})"

    def __eq__(self, other) -> bool:
        if not isinstance(other, TextUpdate):
            return NotImplemented
        return (self.old_value, self.new_value) == (other.old_value, other.new_value)

    def to_dict(self) -> Dict[str, str]:
        """
        Convert this ``TextUpdate`` into a dictionary suitable for encoding
        as JSON.
        """
        return {"old_value": self.old_value, "new_value": self.new_value}


class TextMapChanges:
    """
    The changes to one language's localized string table.

    A hash appears in at most one of ``added``, ``removed`` and
    ``updated``.
    """

    def __init__(
        self,
        lang_code: str,
        added: Dict[str, str] = None,
        removed: Dict[str, str] = None,
        updated: Dict[str, TextUpdate] = None,
    ):
        """
        Initialise a new ``TextMapChanges`` object.

        :param lang_code: The language code of the string table.
        :type lang_code: ``str``
        :param added: Mapping of added hashes to their text.
        :param removed: Mapping of removed hashes to their previous text.
        :param updated: Mapping of updated hashes to ``TextUpdate`` values.
        """
        self.lang_code = lang_code
        self.added: Dict[str, str] = added if added is not None else {}
        self.removed: Dict[str, str] = removed if removed is not None else {}
        self.updated: Dict[str, TextUpdate] = updated if updated is not None else {}

    def __repr__(self) -> str:
        return (
            f"TextMapChanges({self.lang_code!r}, added={len(self.added)}, "
            f"removed={len(self.removed)}, updated={len(self.updated)})"
        )

    def __len__(self) -> int:
        return len(self.added) + len(self.removed) + len(self.updated)

    def __eq__(self, other) -> bool:
        if not isinstance(other, TextMapChanges):
            return NotImplemented
        return self.to_dict() == other.to_dict()

    def to_dict(self) -> Dict[str, Any]:
        """
        Convert this ``TextMapChanges`` object into a dictionary
        representation suitable for encoding as JSON.

        :returns: A dictionary mapping this instance's keys to values.
        :rtype: ``Dict[str, Any]``
        """
        return {
            "lang_code": self.lang_code,
            "added": dict(self.added),
            "removed": dict(self.removed),
            "updated": {key: upd.to_dict() for key, upd in self.updated.items()},
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "TextMapChanges":
        """
        Initialise a ``TextMapChanges`` from its dictionary representation.

        :param data: A dictionary as returned by ``to_dict()``.
        :type data: ``Dict[str, Any]``
        :rtype: ``TextMapChanges``
        """
        try:
            return cls(
                data["lang_code"],
                added=dict(data["added"]),
                removed=dict(data["removed"]),
                updated={
                    key: TextUpdate(upd["old_value"], upd["new_value"])
                    for key, upd in data["updated"].items()
                },
            )
        except (KeyError, TypeError, ValueError, AttributeError) as err:
            raise DumpdiffStoreError(f"Malformed text map changes: {err}") from err


class TextMapDiffer:
    """
    Compute ``TextMapChanges`` for a pair of localized string tables.
    """

    def compute_changes(
        self,
        lang_code: str,
        prev: Mapping[TextMapHash, str],
        curr: Mapping[TextMapHash, str],
    ) -> TextMapChanges:
        """
        Compare the previous and current string table for one language.

        :param lang_code: The language of both tables.
        :type lang_code: ``str``
        :param prev: The previous string table.
        :type prev: ``Mapping[TextMapHash, str]``
        :param curr: The current string table.
        :type curr: ``Mapping[TextMapHash, str]``
        :returns: The added, removed and updated hashes.
        :rtype: ``TextMapChanges``
        """
        prev = {str(key): text for key, text in prev.items()}
        curr = {str(key): text for key, text in curr.items()}

        changes = TextMapChanges(lang_code)
        for text_hash, text in curr.items():
            if text_hash not in prev:
                changes.added[text_hash] = text
            elif prev[text_hash] != text:
                changes.updated[text_hash] = TextUpdate(prev[text_hash], text)

        for text_hash, text in prev.items():
            if text_hash not in curr:
                changes.removed[text_hash] = text

        _log_debug_textmap(
            "Computed TextMap%s changes: added=%d, removed=%d, updated=%d",
            lang_code,
            len(changes.added),
            len(changes.removed),
            len(changes.updated),
        )
        return changes


class CompositeHashIndex:
    """
    Cross-language union of text map change sets, used to detect records
    whose referenced text changed.
    """

    def __init__(
        self,
        added: Set[str] = None,
        updated: Set[str] = None,
        removed: Set[str] = None,
    ):
        self.added: Set[str] = added if added is not None else set()
        self.updated: Set[str] = updated if updated is not None else set()
        self.removed: Set[str] = removed if removed is not None else set()

    def __repr__(self) -> str:
        return (
            f"CompositeHashIndex(added={len(self.added)}, "
            f"updated={len(self.updated)}, removed={len(self.removed)})"
        )

    @classmethod
    def from_changes(cls, changes: Iterable[TextMapChanges]) -> "CompositeHashIndex":
        """
        Build a composite index from per-language ``TextMapChanges``.

        :param changes: The per-language changes to merge.
        :type changes: ``Iterable[TextMapChanges]``
        :rtype: ``CompositeHashIndex``
        """
        index = cls()
        for lang_changes in changes:
            index.added.update(lang_changes.added)
            index.updated.update(lang_changes.updated)
            index.removed.update(lang_changes.removed)
        _log_debug_textmap("Built composite text map index: %r", index)
        return index

    def was_added(self, text_hash: TextMapHash) -> bool:
        """Return ``True`` if ``text_hash`` was added in any language."""
        return str(text_hash) in self.added

    def was_updated(self, text_hash: TextMapHash) -> bool:
        """Return ``True`` if ``text_hash`` was updated in any language."""
        return str(text_hash) in self.updated

    def was_removed(self, text_hash: TextMapHash) -> bool:
        """Return ``True`` if ``text_hash`` was removed in any language."""
        return str(text_hash) in self.removed


__all__ = [
    "TextUpdate",
    "TextMapChanges",
    "TextMapDiffer",
    "CompositeHashIndex",
]
