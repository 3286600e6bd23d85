# Copyright Red Hat
#
# dumpdiff/schema.py - Dumpdiff dataset schema registry
#
# This file is part of the dumpdiff project.
#
# SPDX-License-Identifier: Apache-2.0
"""
Dataset schema registry.

The schema describes every table in a dataset snapshot: the JSON file it is
stored in, its language code for localized string tables and its primary
key field for record tables. It is read from an INI file with one section
per table::

    [TextMapEN]
    JsonFile = TextMap/TextMapEN.json
    LangCode = EN

    [AvatarExcelConfigData]
    JsonFile = ExcelBinOutput/AvatarExcelConfigData.json
    PrimaryKey = id
"""
from configparser import ConfigParser, Error as ConfigParserError
from dataclasses import dataclass
from typing import Dict, Iterator, List, Optional
from os.path import exists
import logging

from dumpdiff import (
    LANG_CODES,
    DumpdiffConfigError,
    DumpdiffNotFoundError,
)

_log = logging.getLogger(__name__)

_log_debug = _log.debug
_log_info = _log.info
_log_warn = _log.warning
_log_error = _log.error

_SCHEMA_JSON_FILE = "JsonFile"
_SCHEMA_LANG_CODE = "LangCode"
_SCHEMA_PRIMARY_KEY = "PrimaryKey"


@dataclass(frozen=True)
class SchemaTable:
    """
    Description of one dataset table.
    """

    #: The table name
    name: str
    #: Path of the table's JSON file relative to a snapshot root
    json_file: str
    #: Language code of a localized string table
    lang_code: Optional[str] = None
    #: Primary key field of a record table
    primary_key: Optional[str] = None

    @property
    def is_textmap(self) -> bool:
        """``True`` if this table is a localized string table."""
        return bool(self.lang_code)


class SchemaRegistry:
    """
    Ordered collection of ``SchemaTable`` descriptions.
    """

    def __init__(self, tables: Optional[List[SchemaTable]] = None):
        self._tables: Dict[str, SchemaTable] = {}
        for table in tables or []:
            self.add(table)

    def __iter__(self) -> Iterator[SchemaTable]:
        return iter(self._tables.values())

    def __len__(self) -> int:
        return len(self._tables)

    def __contains__(self, name) -> bool:
        return name in self._tables

    def __repr__(self) -> str:
        return f"SchemaRegistry([{len(self._tables)} tables])"

    def add(self, table: SchemaTable):
        """
        Add ``table`` to this registry.

        :param table: The table to add.
        :type table: ``SchemaTable``
        :raises DumpdiffConfigError: If the table is invalid or a table of the
                                     same name exists.
        """
        if table.name in self._tables:
            raise DumpdiffConfigError(f"Duplicate schema table: {table.name}")
        if not table.json_file:
            raise DumpdiffConfigError(f"Schema table {table.name} has no JSON file")
        if table.lang_code and table.lang_code not in LANG_CODES:
            raise DumpdiffConfigError(
                f"Schema table {table.name} has unknown language code "
                f"'{table.lang_code}'"
            )
        if table.lang_code and any(
            other.lang_code == table.lang_code for other in self._tables.values()
        ):
            raise DumpdiffConfigError(
                f"Duplicate string table for language '{table.lang_code}': "
                f"{table.name}"
            )
        self._tables[table.name] = table

    def get(self, name: str) -> SchemaTable:
        """
        Return the table named ``name``.

        :raises DumpdiffNotFoundError: If there is no such table.
        """
        if name not in self._tables:
            raise DumpdiffNotFoundError(f"No schema table named '{name}'")
        return self._tables[name]

    def textmap_tables(self) -> List[SchemaTable]:
        """
        Return the localized string tables in declaration order.
        """
        return [table for table in self if table.is_textmap]

    def record_tables(self) -> List[SchemaTable]:
        """
        Return every table that is not a localized string table, in
        declaration order.
        """
        return [table for table in self if not table.is_textmap]

    @classmethod
    def from_file(cls, schema_file: str) -> "SchemaRegistry":
        """
        Load a ``SchemaRegistry`` from the INI-style file at ``schema_file``.

        :param schema_file: Path to the schema file.
        :type schema_file: ``str``
        :returns: A new ``SchemaRegistry`` instance.
        :rtype: ``SchemaRegistry``
        :raises DumpdiffConfigError: If the file is missing, malformed or
                                     describes an invalid table.
        """
        if not exists(schema_file):
            raise DumpdiffConfigError(f"Schema file '{schema_file}' not found")

        _log_debug("Loading schema from '%s'", schema_file)
        cfg = ConfigParser()
        try:
            cfg.read([schema_file], encoding="utf8")
        except ConfigParserError as err:
            raise DumpdiffConfigError(
                f"Malformed schema file '{schema_file}': {err}"
            ) from err

        registry = cls()
        for name in cfg.sections():
            section = cfg[name]
            if not section.get(_SCHEMA_JSON_FILE):
                raise DumpdiffConfigError(
                    f"Schema table {name} has no {_SCHEMA_JSON_FILE}"
                )
            lang_code = section.get(_SCHEMA_LANG_CODE)
            registry.add(
                SchemaTable(
                    name,
                    section[_SCHEMA_JSON_FILE].strip(),
                    lang_code=lang_code.strip().upper() if lang_code else None,
                    primary_key=section.get(_SCHEMA_PRIMARY_KEY, "").strip() or None,
                )
            )

        _log_debug("Loaded %d schema tables from '%s'", len(registry), schema_file)
        return registry


__all__ = [
    "SchemaTable",
    "SchemaRegistry",
]
