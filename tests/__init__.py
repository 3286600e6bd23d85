# Copyright Red Hat
#
# tests/__init__.py - Dumpdiff test package
#
# This file is part of the dumpdiff project.
#
# SPDX-License-Identifier: Apache-2.0
import logging

log = logging.getLogger()
log.setLevel(logging.DEBUG)
formatter = logging.Formatter('%(asctime)s %(levelname)s %(name)s %(message)s')
file_handler = logging.FileHandler("test.log")
file_handler.setFormatter(formatter)
console_handler = logging.StreamHandler()
console_handler.setFormatter(formatter)
log.addHandler(file_handler)
log.addHandler(console_handler)


class MockArgs(object):
    debug = None
    verbose = 0
    config = None
    version = None
    prev = None
    curr = None
    output = None
    schema = None
    compress = None
    excluded_prefixes = None
    excluded_tables = None
    table = None
    lang = None
    json = False
    pretty = False
