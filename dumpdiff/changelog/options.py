# Copyright Red Hat
#
# dumpdiff/changelog/options.py - Dumpdiff changelog options
#
# This file is part of the dumpdiff project.
#
# SPDX-License-Identifier: Apache-2.0
"""
Changelog computation options.
"""
from dataclasses import dataclass, fields
from typing import Optional, Tuple
from argparse import Namespace
import logging

_log = logging.getLogger(__name__)

_log_debug = _log.debug
_log_info = _log.info
_log_warn = _log.warning
_log_error = _log.error

#: Table name prefixes that are never diffed.
EXCLUDED_TABLE_PREFIXES = ("Relation_", "PlainLineMap", "TextMap")

#: Table names that are never diffed.
EXCLUDED_TABLE_NAMES = ("CodexQuestExcelConfigData",)

#: Field name suffixes marking a string-hash reference.
TEXT_MAP_HASH_SUFFIXES = ("MapHash", "MapHashList")

#: Shortest field name treated as obfuscated.
OBFUSCATED_MIN_LENGTH = 11


@dataclass(frozen=True)
class ChangelogOptions:
    """
    Changelog computation options.
    """

    #: Table name prefixes excluded from record diffing
    excluded_prefixes: Tuple[str, ...] = EXCLUDED_TABLE_PREFIXES
    #: Table names excluded from record diffing
    excluded_tables: Tuple[str, ...] = EXCLUDED_TABLE_NAMES
    #: Field name suffixes treated as string-hash references
    hash_suffixes: Tuple[str, ...] = TEXT_MAP_HASH_SUFFIXES
    #: Minimum length of an all upper-case obfuscated field name
    obfuscated_min_length: int = OBFUSCATED_MIN_LENGTH

    def __str__(self):
        """
        Return a human readable string representation of this
        ``ChangelogOptions`` instance.

        :returns: A human readable string.
        :rtype: ``str``
        """
        items = [
            (key, val) if not isinstance(val, tuple) else (key, " ".join(val))
            for key, val in self.__dict__.items()
        ]
        return "\n".join(f"{key}={val}" for key, val in items)

    def is_hash_field(self, name: str) -> bool:
        """
        Return ``True`` if a field named ``name`` holds string-hash
        references.

        :param name: The field basename.
        :type name: ``str``
        :rtype: ``bool``
        """
        return isinstance(name, str) and name.endswith(self.hash_suffixes)

    def is_excluded_table(
        self,
        name: str,
        primary_key: Optional[str] = None,
        lang_code: Optional[str] = None,
    ) -> bool:
        """
        Return ``True`` if the table ``name`` must be skipped by the record
        table differ.

        :param name: The table name.
        :type name: ``str``
        :param primary_key: The table's primary key field, if any.
        :type primary_key: ``Optional[str]``
        :param lang_code: The table's language code, if it is a localized
                          string table.
        :type lang_code: ``Optional[str]``
        :rtype: ``bool``
        """
        if lang_code:
            return True
        if not primary_key:
            return True
        if name.startswith(self.excluded_prefixes):
            return True
        return name in self.excluded_tables

    @classmethod
    def from_cmd_args(cls, cmd_args: Namespace) -> "ChangelogOptions":
        """
        Initialise ChangelogOptions from command line arguments.

        Tuple valued arguments extend the built-in defaults rather than
        replacing them.

        :param cmd_args: The command line arguments.
        :type cmd_args: ``Namespace``
        :returns: A new ``ChangelogOptions`` instance
        :rtype: ``ChangelogOptions``
        """
        defaults = cls()

        def get_value(name: str):
            attr = getattr(cmd_args, name)
            if isinstance(attr, list):
                return getattr(defaults, name) + tuple(attr)
            return attr

        field_names = {f.name for f in fields(cls)}
        kwargs = {
            name: get_value(name)
            for name in field_names
            if getattr(cmd_args, name, None) is not None
        }
        options = cls(**kwargs)
        _log_debug("Initialised ChangelogOptions from arguments: %s", repr(options))
        return options
