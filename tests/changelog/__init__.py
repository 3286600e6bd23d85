# Copyright Red Hat
#
# tests/changelog/__init__.py - Changelog engine test package
#
# This file is part of the dumpdiff project.
#
# SPDX-License-Identifier: Apache-2.0
