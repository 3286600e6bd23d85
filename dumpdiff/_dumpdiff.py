# Copyright Red Hat
#
# dumpdiff/_dumpdiff.py - Dataset dump differ global definitions
#
# This file is part of the dumpdiff project.
#
# SPDX-License-Identifier: Apache-2.0
"""
Global definitions for the top-level dumpdiff package.
"""
import logging
import re

_log = logging.getLogger("dumpdiff")

_log_debug = _log.debug
_log_info = _log.info
_log_warn = _log.warning
_log_error = _log.error

# Dumpdiff debugging subsystem mask
DUMPDIFF_DEBUG_TEXTMAP = 1
DUMPDIFF_DEBUG_EXCEL = 2
DUMPDIFF_DEBUG_STORE = 4
DUMPDIFF_DEBUG_COMMAND = 8
DUMPDIFF_DEBUG_ALL = (
    DUMPDIFF_DEBUG_TEXTMAP
    | DUMPDIFF_DEBUG_EXCEL
    | DUMPDIFF_DEBUG_STORE
    | DUMPDIFF_DEBUG_COMMAND
)

# Dumpdiff debugging subsystem names
DUMPDIFF_SUBSYSTEM_TEXTMAP = "dumpdiff.textmap"
DUMPDIFF_SUBSYSTEM_EXCEL = "dumpdiff.excel"
DUMPDIFF_SUBSYSTEM_STORE = "dumpdiff.store"
DUMPDIFF_SUBSYSTEM_COMMAND = "dumpdiff.command"

_DEBUG_MASK_TO_SUBSYSTEM = {
    DUMPDIFF_DEBUG_TEXTMAP: DUMPDIFF_SUBSYSTEM_TEXTMAP,
    DUMPDIFF_DEBUG_EXCEL: DUMPDIFF_SUBSYSTEM_EXCEL,
    DUMPDIFF_DEBUG_STORE: DUMPDIFF_SUBSYSTEM_STORE,
    DUMPDIFF_DEBUG_COMMAND: DUMPDIFF_SUBSYSTEM_COMMAND,
}

_debug_subsystems = set()

#: Language codes for localized string tables, in canonical order.
LANG_CODES = (
    "CHS",
    "CHT",
    "DE",
    "EN",
    "ES",
    "FR",
    "ID",
    "JP",
    "KR",
    "PT",
    "RU",
    "TH",
    "VI",
)

#: Human readable language names.
LANG_CODES_TO_NAME = {
    "CHS": "Chinese (Simplified)",
    "CHT": "Chinese (Traditional)",
    "DE": "German",
    "EN": "English",
    "ES": "Spanish",
    "FR": "French",
    "ID": "Indonesian",
    "JP": "Japanese",
    "KR": "Korean",
    "PT": "Portuguese",
    "RU": "Russian",
    "TH": "Thai",
    "VI": "Vietnamese",
}

_VERSION_LABEL_RE = re.compile(r"^\d\.\d$")


class SubsystemFilter(logging.Filter):
    """
    Filters DEBUG records based on a set of enabled subsystem names.
    Non-DEBUG records or DEBUG records without a 'subsystem' attribute
    are always passed through.
    """

    def __init__(self, name=""):
        super().__init__(name)
        self.enabled_subsystems = set(_debug_subsystems)

    def filter(self, record):
        # Always pass non-DEBUG messages.
        if record.levelno != logging.DEBUG:
            return True

        # Always pass DEBUG messages that aren't for a specific subsystem.
        if not hasattr(record, "subsystem"):
            return True

        return record.subsystem in self.enabled_subsystems

    def set_debug_subsystems(self, subsystems):
        """Sets the collection of subsystems to allow."""
        self.enabled_subsystems = set(subsystems)


def get_debug_mask():
    """
    Return the current debug mask for the ``dumpdiff`` package.

    :returns: The current debug mask value
    :rtype: int
    """
    enabled_subsystems = set(_debug_subsystems)
    dumpdiff_log = logging.getLogger("dumpdiff")

    for handler in dumpdiff_log.handlers:
        for f in handler.filters:
            if isinstance(f, SubsystemFilter):
                enabled_subsystems.update(f.enabled_subsystems)

    mask_map = {v: k for k, v in _DEBUG_MASK_TO_SUBSYSTEM.items()}
    mask = 0
    for subsystem_name in enabled_subsystems:
        mask |= mask_map.get(subsystem_name, 0)
    return mask


def set_debug_mask(mask):
    """
    Set the debug mask for the ``dumpdiff`` package.

    :param mask: the logical OR of the ``DUMPDIFF_DEBUG_*``
                 values to log.
    :rtype: None
    """
    # pylint: disable=global-statement
    global _debug_subsystems

    if mask < 0 or mask > DUMPDIFF_DEBUG_ALL:
        raise ValueError(f"Invalid dumpdiff debug mask: {mask}")

    enabled_subsystems = []
    for flag, subsystem_name in _DEBUG_MASK_TO_SUBSYSTEM.items():
        if mask & flag:
            enabled_subsystems.append(subsystem_name)

    dumpdiff_log = logging.getLogger("dumpdiff")
    for handler in dumpdiff_log.handlers:
        for f in handler.filters:
            if isinstance(f, SubsystemFilter):
                f.set_debug_subsystems(enabled_subsystems)

    _debug_subsystems = set(enabled_subsystems)


#
# Dumpdiff exception types
#


class DumpdiffError(Exception):
    """
    Base class for dataset dump differ errors.
    """


class DumpdiffConfigError(DumpdiffError):
    """
    A required configuration value is missing or invalid.
    """


class DumpdiffInvalidIdentifierError(DumpdiffError):
    """
    An invalid identifier was given, for e.g. a malformed version label.
    """


class DumpdiffNotFoundError(DumpdiffError):
    """
    The requested object does not exist.
    """


class DumpdiffSnapshotError(DumpdiffError):
    """
    A snapshot file is missing, unreadable or has an unexpected shape.
    """


class DumpdiffStoreError(DumpdiffError):
    """
    A stored changelog artifact could not be read or written.
    """


class DumpdiffWalkError(DumpdiffError):
    """
    A record is nested too deeply to be walked.
    """


class DumpdiffArgumentError(DumpdiffError):
    """
    An invalid argument was passed to a dumpdiff API call.
    """


def parse_version_label(label: str) -> str:
    """
    Normalise and validate a changelog version label.

    The label is lower-cased and any leading 'v' characters are stripped;
    the remainder must have the form ``<digit>.<digit>``.

    :param label: The version label to check, e.g. ``"v4.2"``.
    :type label: ``str``
    :returns: The normalised label, e.g. ``"4.2"``.
    :rtype: ``str``
    :raises DumpdiffInvalidIdentifierError: If the label is malformed.
    """
    if not isinstance(label, str):
        raise DumpdiffInvalidIdentifierError(f"Invalid version: {label!r}")
    version = label.strip().lower().lstrip("v")
    if not _VERSION_LABEL_RE.match(version):
        raise DumpdiffInvalidIdentifierError(f"Invalid version: {label}")
    return version


__all__ = [
    "DUMPDIFF_DEBUG_TEXTMAP",
    "DUMPDIFF_DEBUG_EXCEL",
    "DUMPDIFF_DEBUG_STORE",
    "DUMPDIFF_DEBUG_COMMAND",
    "DUMPDIFF_DEBUG_ALL",
    # Debug logging - subsystem name interface
    "SubsystemFilter",
    "DUMPDIFF_SUBSYSTEM_TEXTMAP",
    "DUMPDIFF_SUBSYSTEM_EXCEL",
    "DUMPDIFF_SUBSYSTEM_STORE",
    "DUMPDIFF_SUBSYSTEM_COMMAND",
    "set_debug_mask",
    "get_debug_mask",
    # Languages
    "LANG_CODES",
    "LANG_CODES_TO_NAME",
    # Version labels
    "parse_version_label",
    # Exceptions
    "DumpdiffError",
    "DumpdiffConfigError",
    "DumpdiffInvalidIdentifierError",
    "DumpdiffNotFoundError",
    "DumpdiffSnapshotError",
    "DumpdiffStoreError",
    "DumpdiffWalkError",
    "DumpdiffArgumentError",
]
