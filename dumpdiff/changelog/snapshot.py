# Copyright Red Hat
#
# dumpdiff/changelog/snapshot.py - Dumpdiff snapshot file loading
#
# This file is part of the dumpdiff project.
#
# SPDX-License-Identifier: Apache-2.0
"""
Snapshot file loading.
"""
from typing import Any, Dict, List
import logging
import json
import os

from dumpdiff import DumpdiffSnapshotError

_log = logging.getLogger(__name__)

_log_debug = _log.debug
_log_info = _log.info
_log_warn = _log.warning
_log_error = _log.error


def load_json(root: str, rel_path: str, table: str) -> Any:
    """
    Load and parse one JSON file from a snapshot root.

    :param root: The snapshot root directory.
    :type root: ``str``
    :param rel_path: The path of the file relative to ``root``.
    :type rel_path: ``str``
    :param table: The table name, for error messages.
    :type table: ``str``
    :returns: The decoded JSON value.
    :raises DumpdiffSnapshotError: If the file is missing, unreadable or is
                                   not valid JSON.
    """
    path = os.path.join(root, rel_path)
    _log_debug("Loading table %s from %s", table, path)
    try:
        with open(path, "r", encoding="utf8") as fp:
            return json.load(fp)
    except FileNotFoundError as err:
        raise DumpdiffSnapshotError(
            f"Table {table}: snapshot file {path} not found"
        ) from err
    except OSError as err:
        raise DumpdiffSnapshotError(
            f"Table {table}: error reading {path}: {err}"
        ) from err
    except (json.JSONDecodeError, UnicodeDecodeError) as err:
        raise DumpdiffSnapshotError(
            f"Table {table}: malformed JSON in {path}: {err}"
        ) from err


def load_textmap(root: str, rel_path: str, table: str) -> Dict[str, str]:
    """
    Load a localized string table: a JSON object mapping hashes to text.

    :raises DumpdiffSnapshotError: If the file cannot be loaded or is not a
                                   JSON object.
    """
    data = load_json(root, rel_path, table)
    if not isinstance(data, dict):
        raise DumpdiffSnapshotError(
            f"Table {table}: expected a JSON object in {os.path.join(root, rel_path)}"
        )
    return data


def load_records(root: str, rel_path: str, table: str) -> List[Any]:
    """
    Load a record table: a JSON array of records.

    :raises DumpdiffSnapshotError: If the file cannot be loaded or is not a
                                   JSON array.
    """
    data = load_json(root, rel_path, table)
    if not isinstance(data, list):
        raise DumpdiffSnapshotError(
            f"Table {table}: expected a JSON array in {os.path.join(root, rel_path)}"
        )
    return data


__all__ = [
    "load_json",
    "load_textmap",
    "load_records",
]
