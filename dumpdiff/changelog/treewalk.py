# Copyright Red Hat
#
# dumpdiff/changelog/treewalk.py - Dumpdiff record tree walk
#
# This file is part of the dumpdiff project.
#
# SPDX-License-Identifier: Apache-2.0
"""
Tree walking support for changelog computation.

Records are JSON-shaped trees of mappings, sequences and scalars. The
walker visits every field below a root value in preorder and lets a visitor
prune or delete fields as it goes. Fields are addressed by paths such as
``a.b[2].c``.
"""
from typing import Any, Callable, List, Optional, Tuple, Union
import copy
import logging
import re

from dumpdiff import DumpdiffArgumentError, DumpdiffWalkError

from .changetypes import WalkAction
from .options import OBFUSCATED_MIN_LENGTH

_log = logging.getLogger(__name__)

_log_debug = _log.debug
_log_info = _log.info
_log_warn = _log.warning
_log_error = _log.error

#: Deepest nesting level the walker will descend to. Copying and comparing a
#: subtree recurse about two frames per level below the walked field, so a
#: full record diff stays inside the default interpreter recursion limit.
MAX_WALK_DEPTH = 256

_PATH_TOKEN_RE = re.compile(r"\[(\d+)\]|\.?([^.\[\]]+)")

#: A path segment: a mapping key or a sequence index.
Segment = Union[str, int]


class _Missing:
    """
    Sentinel type for values that are absent, as opposed to ``None``.
    """

    def __repr__(self) -> str:
        return "MISSING"

    def __bool__(self) -> bool:
        return False

    def __copy__(self):
        return self

    def __deepcopy__(self, memo):
        return self


#: Singleton marking an absent value.
MISSING = _Missing()


def format_path(segments: Tuple[Segment, ...]) -> str:
    """
    Format a tuple of path segments as a path string.

    :param segments: Mapping keys (``str``) and sequence indices (``int``).
    :type segments: ``Tuple[Segment, ...]``
    :returns: A path string, for e.g. ``a.b[2].c``.
    :rtype: ``str``
    """
    path = ""
    for segment in segments:
        if isinstance(segment, int):
            path += f"[{segment}]"
        else:
            path += f".{segment}" if path else str(segment)
    return path


def parse_path(path: str) -> Tuple[Segment, ...]:
    """
    Split a path string into its segments.

    Mapping keys containing '.', '[' or ']' cannot be expressed in a path
    string: use a segment tuple to address such fields.

    :param path: The path string to parse.
    :type path: ``str``
    :returns: A tuple of segments.
    :rtype: ``Tuple[Segment, ...]``
    """
    segments = []
    pos = 0
    while pos < len(path):
        match = _PATH_TOKEN_RE.match(path, pos)
        if not match or match.end() == pos:
            raise DumpdiffArgumentError(f"Malformed field path: {path}")
        index, key = match.groups()
        segments.append(int(index) if index is not None else key)
        pos = match.end()
    return tuple(segments)


class Field:
    """
    A single field visited by the tree walker.
    """

    def __init__(self, segments: Tuple[Segment, ...], value: Any, parent: Any = None):
        """
        Initialise a new ``Field`` object.

        :param segments: The path segments from the walk root to this field.
        :type segments: ``Tuple[Segment, ...]``
        :param value: The value held by this field.
        :param parent: The mapping or sequence containing this field.
        """
        self.segments = segments
        self.value = value
        self.parent = parent

    def __repr__(self) -> str:
        return f"Field({self.path!r}, {self.value!r})"

    @property
    def key(self) -> Optional[Segment]:
        """
        The raw final path segment, or ``None`` for the walk root.
        """
        return self.segments[-1] if self.segments else None

    @property
    def path(self) -> str:
        """
        The path string of this field.
        """
        return format_path(self.segments)

    @property
    def basename(self) -> str:
        """
        The final path segment as a string: the mapping key, or ``[i]`` for
        sequence elements.
        """
        key = self.key
        if key is None:
            return ""
        return f"[{key}]" if isinstance(key, int) else key


#: Signature of a walk visitor.
Visitor = Callable[[Field], Optional[WalkAction]]


def is_obfuscated_name(name: str, min_length: int = OBFUSCATED_MIN_LENGTH) -> bool:
    """
    Return ``True`` if ``name`` looks like an auto-generated field name
    such as ``GFLDJMJKIKE``: at least ``min_length`` characters long and
    entirely upper-case.

    :param name: The field name to check.
    :type name: ``str``
    :param min_length: Minimum length of an obfuscated name.
    :type min_length: ``int``
    :rtype: ``bool``
    """
    return isinstance(name, str) and len(name) >= min_length and name.upper() == name


def is_obfuscated_field(field: Field, min_length: int = OBFUSCATED_MIN_LENGTH) -> bool:
    """
    Return ``True`` if ``field`` is a mapping key with an obfuscated name.
    Sequence elements are never obfuscated.

    :param field: The field to check.
    :type field: ``Field``
    :param min_length: Minimum length of an obfuscated name.
    :type min_length: ``int``
    :rtype: ``bool``
    """
    return isinstance(field.key, str) and is_obfuscated_name(field.key, min_length)


def is_branch(value: Any) -> bool:
    """
    Return ``True`` if ``value`` is a non-empty mapping or sequence, i.e.
    something the walker can descend into.
    """
    return isinstance(value, (dict, list)) and len(value) > 0


def _children(value: Any) -> List[Tuple[Segment, Any]]:
    if isinstance(value, dict):
        return list(value.items())
    if isinstance(value, list):
        return list(enumerate(value))
    return []


def _walk(
    container: Any,
    segments: Tuple[Segment, ...],
    visitor: Visitor,
    depth: int,
):
    if depth > MAX_WALK_DEPTH:
        raise DumpdiffWalkError(
            f"Maximum nesting depth ({MAX_WALK_DEPTH}) exceeded at "
            f"'{format_path(segments)}'"
        )

    deleted = []
    for key, value in _children(container):
        field = Field(segments + (key,), value, parent=container)
        action = visitor(field)
        if action is None:
            action = WalkAction.CONTINUE
        elif not isinstance(action, WalkAction):
            raise DumpdiffArgumentError(
                f"Invalid walk action for '{field.path}': {action!r}"
            )

        if action == WalkAction.DELETE:
            deleted.append(key)
            continue
        if action == WalkAction.NO_DESCEND:
            continue
        if is_branch(value):
            _walk(value, field.segments, visitor, depth + 1)

    # Sequence deletions run back to front so visited indices stay valid.
    for key in reversed(deleted):
        del container[key]


def walk_record(root: Any, visitor: Visitor):
    """
    Walk every field below ``root`` in preorder, calling ``visitor`` once
    per field.

    Mapping fields are visited in insertion order and sequence elements in
    index order. The visitor's return value controls the walk:
    ``WalkAction.CONTINUE`` (or ``None``) descends into non-empty mappings
    and sequences, ``WalkAction.NO_DESCEND`` treats the field as a leaf and
    ``WalkAction.DELETE`` removes the field from ``root`` without
    descending. The root value itself is not visited.

    :param root: The tree to walk.
    :param visitor: A callable taking a ``Field`` and returning an optional
                    ``WalkAction``.
    :raises DumpdiffWalkError: If ``root`` is nested deeper than
                               ``MAX_WALK_DEPTH``.
    """
    _walk(root, (), visitor, 0)


def resolve_path(root: Any, path: Union[str, Tuple[Segment, ...]]) -> Any:
    """
    Look up the value at ``path`` below ``root``.

    :param root: The tree to search.
    :param path: A path string or a tuple of path segments.
    :returns: The value found, or ``MISSING`` if the path does not exist.
    """
    segments = parse_path(path) if isinstance(path, str) else path
    value = root
    for segment in segments:
        if isinstance(segment, int):
            if not isinstance(value, list) or not 0 <= segment < len(value):
                return MISSING
        elif not isinstance(value, dict) or segment not in value:
            return MISSING
        value = value[segment]
    return value


def strip_fields(value: Any, predicate: Callable[[Field], bool]) -> Any:
    """
    Return a deep copy of ``value`` with every field matching ``predicate``
    removed.

    :param value: The tree to filter.
    :param predicate: A callable returning ``True`` for fields to drop.
    :returns: The filtered copy.
    """
    filtered = copy.deepcopy(value)
    walk_record(
        filtered,
        lambda field: WalkAction.DELETE if predicate(field) else WalkAction.CONTINUE,
    )
    return filtered


__all__ = [
    "MAX_WALK_DEPTH",
    "MISSING",
    "Field",
    "format_path",
    "parse_path",
    "is_obfuscated_name",
    "is_obfuscated_field",
    "is_branch",
    "walk_record",
    "resolve_path",
    "strip_fields",
]
