# Copyright Red Hat
#
# dumpdiff/changelog/store.py - Dumpdiff changelog store
#
# This file is part of the dumpdiff project.
#
# SPDX-License-Identifier: Apache-2.0
"""
Persistent storage for computed changelog artifacts.

Artifacts are keyed by kind (``"textmap"`` or ``"excel"``) and version
label. A version label is write-once: once an artifact has been saved it is
returned unchanged by every later load.
"""
from typing import Any, Dict, List, Optional, Tuple
from stat import S_ISDIR, S_ISLNK
import copy
import logging
import json
import lzma
import os
import re

try:
    import zstandard as zstd

    _HAVE_ZSTD = True
except ModuleNotFoundError:
    _HAVE_ZSTD = False

from dumpdiff import (
    DUMPDIFF_SUBSYSTEM_STORE,
    DumpdiffArgumentError,
    DumpdiffNotFoundError,
    DumpdiffStoreError,
)

_log = logging.getLogger(__name__)

_log_debug = _log.debug
_log_info = _log.info
_log_warn = _log.warning
_log_error = _log.error


def _log_debug_store(msg, *args, **kwargs):
    """A wrapper for store subsystem debug logs."""
    _log.debug(msg, *args, extra={"subsystem": DUMPDIFF_SUBSYSTEM_STORE}, **kwargs)


#: Text map changelog artifact kind
KIND_TEXTMAP = "textmap"

#: Record table changelog artifact kind
KIND_EXCEL = "excel"

#: Artifact file name prefix by kind
_KIND_PREFIXES: Dict[str, str] = {
    KIND_TEXTMAP: "TextMapChangeLog",
    KIND_EXCEL: "ExcelChangeLog",
}

#: Compression types
_COMPRESSION_EXTENSIONS: Dict[Optional[str], str] = {
    None: "",
    "lzma": ".xz",
    "zstd": ".zst",
}

#: Store directory file mode
_STORE_DIR_MODE: int = 0o755

_ARTIFACT_RE = re.compile(
    r"^(TextMapChangeLog|ExcelChangeLog)\.(\d\.\d)\.json(\.xz|\.zst)?$"
)


def _check_kind(kind: str):
    if kind not in _KIND_PREFIXES:
        raise DumpdiffArgumentError(f"Unknown changelog kind: {kind}")


def _check_compress(compress: Optional[str]):
    if compress not in _COMPRESSION_EXTENSIONS:
        raise DumpdiffArgumentError(f"Unknown compression type: {compress}")
    if compress == "zstd" and not _HAVE_ZSTD:
        raise DumpdiffArgumentError(
            "zstd compression requested but zstandard is not available"
        )


def _check_store_dir(dirpath: str, mode: int, name: str) -> str:
    """
    Check for the presence of a changelog store directory and create
    it if necessary.

    :param dirpath: Path to the directory
    :param mode: Permissions mode for a newly created directory
    :param name: Human-readable name for error messages
    :returns: The directory path
    """
    if os.path.lexists(dirpath):
        try:
            st = os.lstat(dirpath)
        except OSError as err:
            raise DumpdiffStoreError(f"Failed to stat {name} {dirpath}: {err}") from err
        if S_ISLNK(st.st_mode):
            raise DumpdiffStoreError(f"{name} {dirpath} is a symlink (not allowed)")
        if not S_ISDIR(st.st_mode):
            raise DumpdiffStoreError(f"{name} {dirpath} exists but is not a directory")
        return dirpath

    try:
        os.makedirs(dirpath, mode=mode, exist_ok=True)
    except OSError as err:
        raise DumpdiffStoreError(f"Failed to create {name} {dirpath}: {err}") from err
    _log_debug_store("Created %s %s", name, dirpath)
    return dirpath


class ChangelogStore:
    """
    Abstract key/value store for changelog artifacts.
    """

    def load(self, kind: str, version: str) -> Dict[str, Any]:
        """
        Load the artifact of ``kind`` for ``version``.

        :param kind: The artifact kind: ``"textmap"`` or ``"excel"``.
        :type kind: ``str``
        :param version: The normalised version label.
        :type version: ``str``
        :returns: The decoded artifact.
        :rtype: ``Dict[str, Any]``
        :raises DumpdiffNotFoundError: If no artifact is stored.
        """
        raise NotImplementedError

    def save(self, kind: str, version: str, data: Dict[str, Any]):
        """
        Save ``data`` as the artifact of ``kind`` for ``version``.

        :raises DumpdiffStoreError: If the artifact already exists or cannot
                                    be written.
        """
        raise NotImplementedError

    def exists(self, kind: str, version: str) -> bool:
        """
        Return ``True`` if an artifact of ``kind`` is stored for ``version``.
        """
        raise NotImplementedError

    def versions(self) -> List[str]:
        """
        Return the sorted version labels with at least one stored artifact.
        """
        raise NotImplementedError


class MemoryChangelogStore(ChangelogStore):
    """
    In-memory changelog store. Artifacts are deep copied on the way in and
    on the way out.
    """

    def __init__(self):
        self._artifacts: Dict[Tuple[str, str], Dict[str, Any]] = {}

    def load(self, kind: str, version: str) -> Dict[str, Any]:
        _check_kind(kind)
        if (kind, version) not in self._artifacts:
            raise DumpdiffNotFoundError(f"No {kind} changelog for version {version}")
        return copy.deepcopy(self._artifacts[(kind, version)])

    def save(self, kind: str, version: str, data: Dict[str, Any]):
        _check_kind(kind)
        if (kind, version) in self._artifacts:
            raise DumpdiffStoreError(
                f"A {kind} changelog for version {version} already exists"
            )
        self._artifacts[(kind, version)] = copy.deepcopy(data)

    def exists(self, kind: str, version: str) -> bool:
        _check_kind(kind)
        return (kind, version) in self._artifacts

    def versions(self) -> List[str]:
        return sorted({version for (_, version) in self._artifacts})


class FileChangelogStore(ChangelogStore):
    """
    Directory backed changelog store writing one JSON document per
    artifact, optionally compressed with ``lzma`` or ``zstd``.
    """

    def __init__(self, directory: str, compress: Optional[str] = None):
        """
        Initialise a new ``FileChangelogStore``.

        :param directory: The directory holding changelog artifacts.
        :type directory: ``str``
        :param compress: The compression to apply to new artifacts:
                         ``None``, ``"lzma"`` or ``"zstd"``.
        :type compress: ``Optional[str]``
        """
        _check_compress(compress)
        self.directory = directory
        self.compress = compress

    def __repr__(self) -> str:
        return f"FileChangelogStore({self.directory!r}, compress={self.compress!r})"

    def _base_name(self, kind: str, version: str) -> str:
        _check_kind(kind)
        return f"{_KIND_PREFIXES[kind]}.{version}.json"

    def _find(self, kind: str, version: str) -> Optional[Tuple[str, Optional[str]]]:
        """
        Find an existing artifact in any supported encoding.

        :returns: A ``(path, compression)`` tuple or ``None``.
        """
        base = os.path.join(self.directory, self._base_name(kind, version))
        for compress, ext in _COMPRESSION_EXTENSIONS.items():
            path = base + ext
            if os.path.isfile(path):
                return (path, compress)
        return None

    def exists(self, kind: str, version: str) -> bool:
        return self._find(kind, version) is not None

    def load(self, kind: str, version: str) -> Dict[str, Any]:
        found = self._find(kind, version)
        if found is None:
            raise DumpdiffNotFoundError(f"No {kind} changelog for version {version}")
        path, compress = found
        _log_info("Loading %s changelog for version %s from %s", kind, version, path)

        errors: Tuple[type, ...] = (OSError, ValueError, lzma.LZMAError)
        if _HAVE_ZSTD:
            errors += (zstd.ZstdError,)

        try:
            if compress == "zstd":
                if not _HAVE_ZSTD:
                    raise DumpdiffStoreError(
                        f"Cannot read {path}: zstd support not available"
                    )
                dctx = zstd.ZstdDecompressor()
                with open(path, mode="rb") as fp:
                    with dctx.stream_reader(fp) as reader:
                        raw = reader.read()
            elif compress == "lzma":
                with lzma.LZMAFile(filename=path, mode="rb") as reader:
                    raw = reader.read()
            else:
                with open(path, mode="rb") as fp:
                    raw = fp.read()
            data = json.loads(raw.decode("utf8"))
        except errors as err:
            raise DumpdiffStoreError(f"Error reading changelog {path}: {err}") from err

        if not isinstance(data, dict):
            raise DumpdiffStoreError(f"Malformed changelog {path}: expected an object")
        _log_debug_store("Loaded %d entries from %s", len(data), path)
        return data

    def save(self, kind: str, version: str, data: Dict[str, Any]):
        _check_store_dir(self.directory, _STORE_DIR_MODE, "changelog dir")
        if self.exists(kind, version):
            raise DumpdiffStoreError(
                f"A {kind} changelog for version {version} already exists"
            )

        path = os.path.join(self.directory, self._base_name(kind, version))
        path += _COMPRESSION_EXTENSIONS[self.compress]
        tmp_path = path + ".tmp"

        errors: Tuple[type, ...] = (OSError, TypeError, ValueError, lzma.LZMAError)
        if _HAVE_ZSTD:
            errors += (zstd.ZstdError,)

        try:
            raw = json.dumps(data).encode("utf8")
            if self.compress == "zstd":
                cctx = zstd.ZstdCompressor()
                with open(tmp_path, "wb") as fc:
                    with cctx.stream_writer(fc) as compressor:
                        compressor.write(raw)
            elif self.compress == "lzma":
                with lzma.LZMAFile(filename=tmp_path, mode="wb") as compressor:
                    compressor.write(raw)
            else:
                with open(tmp_path, "wb") as fp:
                    fp.write(raw)
            os.replace(tmp_path, path)
        except errors as err:
            _log_error("Error saving changelog %s: %s", path, err)
            if os.path.exists(tmp_path):
                try:
                    os.unlink(tmp_path)
                except OSError as err2:
                    _log_error("Error unlinking partial changelog %s: %s", tmp_path, err2)
            raise DumpdiffStoreError(f"Error writing changelog {path}: {err}") from err

        _log_info("Saved %s changelog for version %s to %s", kind, version, path)

    def versions(self) -> List[str]:
        if not os.path.isdir(self.directory):
            return []
        found = set()
        for file_name in os.listdir(self.directory):
            match = _ARTIFACT_RE.match(file_name)
            if not match:
                _log_debug_store("Ignoring unknown file in store: %s", file_name)
                continue
            found.add(match.group(2))
        return sorted(found)


__all__ = [
    "KIND_TEXTMAP",
    "KIND_EXCEL",
    "ChangelogStore",
    "MemoryChangelogStore",
    "FileChangelogStore",
]
