# Copyright Red Hat
#
# dumpdiff/command.py - Dumpdiff command interface
#
# This file is part of the dumpdiff project.
#
# SPDX-License-Identifier: Apache-2.0
"""The ``dumpdiff.command`` module provides both the dumpdiff command line
interface infrastructure, and a simple procedural interface to the
``dumpdiff`` library modules.

The procedural interface is used by the ``dumpdiff`` command line tool
and may be used by application programs, or interactively in the
Python shell by users who do not require all the features present
in the dumpdiff object API.
"""
from argparse import ArgumentParser
from os.path import basename, exists
from json import dumps
from typing import List, Optional
import logging
import sys

from dumpdiff import (
    DUMPDIFF_DEBUG_TEXTMAP,
    DUMPDIFF_DEBUG_EXCEL,
    DUMPDIFF_DEBUG_STORE,
    DUMPDIFF_DEBUG_COMMAND,
    DUMPDIFF_DEBUG_ALL,
    DUMPDIFF_SUBSYSTEM_COMMAND,
    SubsystemFilter,
    DumpdiffError,
    DumpdiffConfigError,
    LANG_CODES_TO_NAME,
    set_debug_mask,
    __version__,
)
from dumpdiff.config import COMPRESS_TYPES, DumpdiffConfig, load_config
from dumpdiff.schema import SchemaRegistry

from .changelog import (
    Changelog,
    ChangelogDiffer,
    ChangelogOptions,
    FileChangelogStore,
    TextMapChanges,
    load_changelog,
)

_log = logging.getLogger(__name__)

_log_debug = _log.debug
_log_info = _log.info
_log_warn = _log.warning
_log_error = _log.error


def _log_debug_command(msg, *args, **kwargs):
    """A wrapper for command subsystem debug logs."""
    _log.debug(msg, *args, extra={"subsystem": DUMPDIFF_SUBSYSTEM_COMMAND}, **kwargs)


_DEFAULT_LOG_LEVEL = logging.WARNING
_CONSOLE_HANDLER = None

CREATE_CMD = "create"
SHOW_CMD = "show"
LIST_CMD = "list"


def _textmap_str(changes: TextMapChanges) -> str:
    """
    Format the changes to one language's string table as text.

    :param changes: The text map changes to format.
    :type changes: ``TextMapChanges``
    :rtype: ``str``
    """
    name = LANG_CODES_TO_NAME.get(changes.lang_code, changes.lang_code)
    lines = [
        f"TextMap{changes.lang_code} ({name}): {len(changes.added)} added, "
        f"{len(changes.removed)} removed, {len(changes.updated)} updated"
    ]
    lines.extend(f"  + {key}: {text}" for key, text in changes.added.items())
    lines.extend(f"  - {key}: {text}" for key, text in changes.removed.items())
    lines.extend(
        f"  ~ {key}: {update.old_value!r} -> {update.new_value!r}"
        for key, update in changes.updated.items()
    )
    return "\n".join(lines)


def create_changelog(
    config: DumpdiffConfig,
    version: str,
    options: Optional[ChangelogOptions] = None,
) -> Changelog:
    """
    Create the changelog for ``version`` from the snapshots named in
    ``config``, or load it if it has already been stored.

    :param config: The effective configuration.
    :type config: ``DumpdiffConfig``
    :param version: The version label.
    :type version: ``str``
    :param options: Options to control change computation.
    :type options: ``Optional[ChangelogOptions]``
    :returns: The changelog.
    :rtype: ``Changelog``
    """
    config.check()
    schema = SchemaRegistry.from_file(config.schema_file)
    store = FileChangelogStore(config.changelog_dir, compress=config.compression)
    differ = ChangelogDiffer(
        schema, config.prev_archive, config.curr_archive, store, options=options
    )
    return differ.create_changelog(version)


def show_changelog(config: DumpdiffConfig, version: str) -> Changelog:
    """
    Load a stored changelog.

    :param config: The effective configuration.
    :type config: ``DumpdiffConfig``
    :param version: The version label.
    :type version: ``str``
    :rtype: ``Changelog``
    """
    config.check(need_archives=False)
    return load_changelog(FileChangelogStore(config.changelog_dir), version)


def list_changelogs(config: DumpdiffConfig) -> List[str]:
    """
    Return the version labels present in the changelog store.

    :param config: The effective configuration.
    :type config: ``DumpdiffConfig``
    :rtype: ``List[str]``
    """
    config.check(need_archives=False)
    return FileChangelogStore(config.changelog_dir).versions()


def _config_from_args(cmd_args) -> DumpdiffConfig:
    """
    Build the effective configuration: file, then environment, then command
    line.

    :param cmd_args: Command line arguments for the command
    :returns: The merged configuration.
    :rtype: ``DumpdiffConfig``
    """
    if cmd_args.config and not exists(cmd_args.config):
        raise DumpdiffConfigError(f"Configuration file '{cmd_args.config}' not found")
    config = load_config(cmd_args.config)
    cmdline = DumpdiffConfig(
        prev_archive=getattr(cmd_args, "prev", None),
        curr_archive=getattr(cmd_args, "curr", None),
        changelog_dir=getattr(cmd_args, "output", None),
        schema_file=getattr(cmd_args, "schema", None),
        compress=getattr(cmd_args, "compress", None),
    )
    config = config.merge(cmdline)
    _log_debug_command("Effective configuration: %s", config)
    return config


def _create_cmd(cmd_args):
    """
    Create changelog command handler.

    Compute (or load) the changelog for the given version and print a
    summary or its JSON representation.

    :param cmd_args: Command line arguments for the command
    :returns: integer status code returned from ``main()``
    """
    config = _config_from_args(cmd_args)
    options = ChangelogOptions.from_cmd_args(cmd_args)
    changelog = create_changelog(config, cmd_args.version, options=options)
    if cmd_args.json:
        print(changelog.json(pretty=cmd_args.pretty))
    else:
        print(changelog.summary())
    return 0


def _show_cmd(cmd_args):
    """
    Show changelog command handler.

    :param cmd_args: Command line arguments for the command
    :returns: integer status code returned from ``main()``
    """
    config = _config_from_args(cmd_args)
    changelog = show_changelog(config, cmd_args.version)
    indent = 4 if cmd_args.pretty else None

    if cmd_args.table:
        table = changelog.table(cmd_args.table)
        if cmd_args.json:
            print(dumps(table.to_dict(), indent=indent))
        else:
            print(changelog.full(table=cmd_args.table))
    elif cmd_args.lang:
        changes = changelog.language(cmd_args.lang.upper())
        if cmd_args.json:
            print(dumps(changes.to_dict(), indent=indent))
        else:
            print(_textmap_str(changes))
    elif cmd_args.json:
        print(changelog.json(pretty=cmd_args.pretty))
    else:
        print(changelog.summary())
    return 0


def _list_cmd(cmd_args):
    """
    List changelogs command handler.

    :param cmd_args: Command line arguments for the command
    :returns: integer status code returned from ``main()``
    """
    config = _config_from_args(cmd_args)
    for version in list_changelogs(config):
        print(version)
    return 0


def setup_logging(cmd_args):
    """
    Set up dumpdiff logging.
    """
    # pylint: disable=global-statement
    global _CONSOLE_HANDLER
    level = _DEFAULT_LOG_LEVEL
    if cmd_args.verbose and cmd_args.verbose > 1:
        level = logging.DEBUG
    elif cmd_args.verbose and cmd_args.verbose > 0:
        level = logging.INFO

    dumpdiff_log = logging.getLogger("dumpdiff")
    formatter = logging.Formatter("%(levelname)s - %(message)s")
    dumpdiff_log.setLevel(level)
    if dumpdiff_log.hasHandlers():
        dumpdiff_log.handlers.clear()

    # Subsystem log filtering
    _dumpdiff_subsystem_filter = SubsystemFilter("dumpdiff")

    # Main console handler
    _CONSOLE_HANDLER = logging.StreamHandler()

    _CONSOLE_HANDLER.setLevel(level)
    _CONSOLE_HANDLER.setFormatter(formatter)
    _CONSOLE_HANDLER.addFilter(_dumpdiff_subsystem_filter)

    dumpdiff_log.addHandler(_CONSOLE_HANDLER)


def shutdown_logging():
    """
    Shut down dumpdiff logging.
    """
    logging.shutdown()


def set_debug(debug_arg):
    """
    Set debugging mask from command line argument.
    """
    if not debug_arg:
        return

    mask_map = {
        "textmap": DUMPDIFF_DEBUG_TEXTMAP,
        "excel": DUMPDIFF_DEBUG_EXCEL,
        "store": DUMPDIFF_DEBUG_STORE,
        "command": DUMPDIFF_DEBUG_COMMAND,
        "all": DUMPDIFF_DEBUG_ALL,
    }

    mask = 0
    for name in debug_arg.split(","):
        if name not in mask_map:
            raise ValueError(f"Unknown debug option: {name}")
        mask |= mask_map[name]
    set_debug_mask(mask)


def _add_version_arg(parser):
    parser.add_argument(
        "version",
        metavar="VERSION",
        type=str,
        action="store",
        help="The version label of the changelog, for e.g. 4.2",
    )


def _add_output_arg(parser):
    parser.add_argument(
        "-o",
        "--output",
        metavar="DIR",
        type=str,
        help="The directory holding changelog artifacts",
    )


def _add_json_args(parser):
    parser.add_argument(
        "-j",
        "--json",
        action="store_true",
        help="Display output in JSON notation",
    )
    parser.add_argument(
        "-p",
        "--pretty",
        action="store_true",
        help="Indent JSON output to be human readable",
    )


def _add_create_args(parser):
    """
    Add create command arguments.
    """
    parser.add_argument(
        "--prev",
        metavar="DIR",
        type=str,
        help="The root directory of the previous dataset snapshot",
    )
    parser.add_argument(
        "--curr",
        metavar="DIR",
        type=str,
        help="The root directory of the current dataset snapshot",
    )
    parser.add_argument(
        "-s",
        "--schema",
        metavar="FILE",
        type=str,
        help="The dataset schema file",
    )
    parser.add_argument(
        "-z",
        "--compress",
        choices=COMPRESS_TYPES,
        help="Compression to apply to new changelog artifacts",
    )
    parser.add_argument(
        "--exclude-prefix",
        dest="excluded_prefixes",
        metavar="PREFIX",
        action="append",
        help="Exclude tables whose name starts with PREFIX (may be repeated)",
    )
    parser.add_argument(
        "--exclude-table",
        dest="excluded_tables",
        metavar="TABLE",
        action="append",
        help="Exclude the table named TABLE (may be repeated)",
    )


def main(args):
    """
    Main entry point for dumpdiff.
    """
    parser = ArgumentParser(description="Dataset dump differ", prog=basename(args[0]))

    # Global arguments
    parser.add_argument(
        "-d",
        "--debug",
        metavar="DEBUGOPTS",
        type=str,
        help="A list of debug options to enable",
    )
    parser.add_argument("-v", "--verbose", help="Enable verbose output", action="count")
    parser.add_argument(
        "-V",
        "--version",
        action="version",
        help="Report the version number of dumpdiff",
        version=__version__,
    )
    parser.add_argument(
        "-c",
        "--config",
        metavar="CONFIG",
        type=str,
        help="Path to an alternate configuration file",
    )

    command_subparser = parser.add_subparsers(dest="command", help="Command")

    create_parser = command_subparser.add_parser(
        CREATE_CMD, help="Create a version changelog"
    )
    create_parser.set_defaults(func=_create_cmd)
    _add_version_arg(create_parser)
    _add_output_arg(create_parser)
    _add_create_args(create_parser)
    _add_json_args(create_parser)

    show_parser = command_subparser.add_parser(
        SHOW_CMD, help="Show a stored version changelog"
    )
    show_parser.set_defaults(func=_show_cmd)
    _add_version_arg(show_parser)
    _add_output_arg(show_parser)
    show_parser.add_argument(
        "-t",
        "--table",
        metavar="NAME",
        type=str,
        help="Show the changed records of one table",
    )
    show_parser.add_argument(
        "-l",
        "--lang",
        metavar="CODE",
        type=str,
        help="Show the string table changes of one language",
    )
    _add_json_args(show_parser)

    list_parser = command_subparser.add_parser(
        LIST_CMD, help="List stored version changelogs"
    )
    list_parser.set_defaults(func=_list_cmd)
    _add_output_arg(list_parser)

    cmd_args = parser.parse_args(args[1:])

    status = 1

    try:
        set_debug(cmd_args.debug)
    except ValueError as err:
        print(err)
        parser.print_help()
        return status

    setup_logging(cmd_args)

    _log_debug_command("Parsed %s", " ".join(args[1:]))

    if "func" not in cmd_args:
        parser.print_help()
        return status

    if cmd_args.debug:
        status = cmd_args.func(cmd_args)
    else:
        try:
            status = cmd_args.func(cmd_args)
        except KeyboardInterrupt:  # pragma: no cover
            _log_info("Exiting on user cancel")
        except DumpdiffError as err:
            _log_error("Command failed: %s", err)

    shutdown_logging()
    return status


def run():
    """
    Console script entry point.
    """
    sys.exit(main(sys.argv))


# vim: set et ts=4 sw=4 :
