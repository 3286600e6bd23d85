# Copyright Red Hat
#
# dumpdiff/changelog/changetypes.py - Dumpdiff change and walk types
#
# This file is part of the dumpdiff project.
#
# SPDX-License-Identifier: Apache-2.0
"""
Changelog change types and tree walk actions.
"""
from enum import Enum


class ChangeType(Enum):
    """
    Enum for record level change types.
    """

    ADDED = "added"
    REMOVED = "removed"
    UPDATED = "updated"


class WalkAction(Enum):
    """
    Enum of actions a tree walk visitor may return for a field.
    """

    #: Descend into the field's children (the default).
    CONTINUE = "continue"
    #: Treat the field as a leaf.
    NO_DESCEND = "no-descend"
    #: Remove the field from its container and do not descend.
    DELETE = "delete"
