# Copyright Red Hat
#
# dumpdiff/config.py - Dumpdiff configuration
#
# This file is part of the dumpdiff project.
#
# SPDX-License-Identifier: Apache-2.0
"""
Dumpdiff configuration.

Configuration is assembled from an INI-style configuration file, the
process environment and the command line, in increasing order of
precedence.
"""
from configparser import ConfigParser, Error as ConfigParserError
from dataclasses import dataclass, fields, replace
from typing import Mapping, Optional
from os.path import exists
import logging
import os

from dumpdiff import DumpdiffConfigError

_log = logging.getLogger(__name__)

_log_debug = _log.debug
_log_info = _log.info
_log_warn = _log.warning
_log_error = _log.error

#: Default configuration file path
DUMPDIFF_CONFIG_FILE = "/etc/dumpdiff/dumpdiff.conf"

_DUMPDIFF_CFG_GLOBAL = "Global"

#: Configuration file keys by field name
_CFG_KEYS = {
    "prev_archive": "PrevArchive",
    "curr_archive": "CurrArchive",
    "changelog_dir": "ChangelogDir",
    "schema_file": "SchemaFile",
    "compress": "Compress",
}

#: Environment variables by field name
_ENV_KEYS = {
    "prev_archive": "DUMPDIFF_PREV_ARCHIVE",
    "curr_archive": "DUMPDIFF_CURR_ARCHIVE",
    "changelog_dir": "DUMPDIFF_CHANGELOGS",
    "schema_file": "DUMPDIFF_SCHEMA",
    "compress": "DUMPDIFF_COMPRESS",
}

#: Accepted compression settings
COMPRESS_TYPES = ("none", "lzma", "zstd")


@dataclass(frozen=True)
class DumpdiffConfig:
    """
    Dumpdiff configuration.
    """

    #: Root directory of the previous dataset snapshot
    prev_archive: Optional[str] = None
    #: Root directory of the current dataset snapshot
    curr_archive: Optional[str] = None
    #: Output directory for changelog artifacts
    changelog_dir: Optional[str] = None
    #: Path to the dataset schema file
    schema_file: Optional[str] = None
    #: Compression applied to new artifacts: "none", "lzma" or "zstd"
    compress: Optional[str] = None

    @property
    def compression(self) -> Optional[str]:
        """
        The store compression type: ``None`` for uncompressed artifacts.
        """
        if not self.compress or self.compress == "none":
            return None
        return self.compress

    @classmethod
    def from_file(cls, config_file: str) -> "DumpdiffConfig":
        """
        Load ``DumpdiffConfig`` from an INI-style configuration file located
        at ``config_file``.

        :param config_file: path to dumpdiff.conf
        :type config_file: ``str``.
        :returns: A ``DumpdiffConfig`` instance initialised from
                  ``config_file``.
        :rtype: ``DumpdiffConfig``
        """
        if not exists(config_file):
            return DumpdiffConfig()

        _log_debug("Loading configuration from '%s'", config_file)
        cfg = ConfigParser()
        try:
            cfg.read([config_file], encoding="utf8")
        except ConfigParserError as err:
            raise DumpdiffConfigError(
                f"Malformed configuration file '{config_file}': {err}"
            ) from err

        values = {}
        if cfg.has_section(_DUMPDIFF_CFG_GLOBAL):
            for name, key in _CFG_KEYS.items():
                if cfg.has_option(_DUMPDIFF_CFG_GLOBAL, key):
                    value = cfg[_DUMPDIFF_CFG_GLOBAL][key].strip()
                    if value:
                        values[name] = value

        return DumpdiffConfig(**values)

    @classmethod
    def from_env(cls, environ: Optional[Mapping[str, str]] = None) -> "DumpdiffConfig":
        """
        Load ``DumpdiffConfig`` from environment variables.

        :param environ: The environment to read, or ``None`` for
                        ``os.environ``.
        :type environ: ``Optional[Mapping[str, str]]``
        :rtype: ``DumpdiffConfig``
        """
        environ = os.environ if environ is None else environ
        values = {
            name: environ[var] for name, var in _ENV_KEYS.items() if environ.get(var)
        }
        if values:
            _log_debug("Loaded configuration from environment: %s", values)
        return DumpdiffConfig(**values)

    def merge(self, other: "DumpdiffConfig") -> "DumpdiffConfig":
        """
        Return a new ``DumpdiffConfig`` with the non-empty values of
        ``other`` overlaid on this instance.

        :param other: The higher precedence configuration.
        :type other: ``DumpdiffConfig``
        :rtype: ``DumpdiffConfig``
        """
        overlay = {
            f.name: getattr(other, f.name) for f in fields(self) if getattr(other, f.name)
        }
        return replace(self, **overlay)

    def check(self, need_archives: bool = True):
        """
        Check that the configuration is complete.

        :param need_archives: Require snapshot roots and a schema file in
                              addition to the changelog directory.
        :type need_archives: ``bool``
        :raises DumpdiffConfigError: Naming every missing value, or for an
                                     unknown compression type.
        """
        required = ["changelog_dir"]
        if need_archives:
            required = ["prev_archive", "curr_archive", "schema_file"] + required
        missing = [
            f"{name} ({_ENV_KEYS[name]})" for name in required if not getattr(self, name)
        ]
        if missing:
            raise DumpdiffConfigError(
                f"Missing configuration values: {', '.join(missing)}"
            )
        if self.compress and self.compress not in COMPRESS_TYPES:
            raise DumpdiffConfigError(f"Unknown compression type: {self.compress}")


def load_config(
    config_file: Optional[str] = None,
    environ: Optional[Mapping[str, str]] = None,
) -> DumpdiffConfig:
    """
    Load the file and environment configuration layers.

    :param config_file: The configuration file, or ``None`` for the default.
    :param environ: The environment to read, or ``None`` for ``os.environ``.
    :rtype: ``DumpdiffConfig``
    """
    file_config = DumpdiffConfig.from_file(config_file or DUMPDIFF_CONFIG_FILE)
    return file_config.merge(DumpdiffConfig.from_env(environ))


__all__ = [
    "COMPRESS_TYPES",
    "DUMPDIFF_CONFIG_FILE",
    "DumpdiffConfig",
    "load_config",
]
