# Copyright Red Hat
#
# dumpdiff/__init__.py - Dataset dump differ package initialisation
#
# This file is part of the dumpdiff project.
#
# SPDX-License-Identifier: Apache-2.0
"""
Dumpdiff top-level package.
"""
from ._dumpdiff import *  # noqa: F401, F403
from ._dumpdiff import __all__  # noqa: F401

__version__ = "0.1.0"
