#!/usr/bin/env python
"""
The main module provides the executable entrypoint for the validation
reconciler
"""

# Standard
from typing import List, Optional, Tuple
import argparse
import sys

# First Party
import alog

# Local
from . import config
from .cmd import CheckHeartbeatCmd, RunReconcilerCmd
from .config import library_config
from .log_format import ReconcilerJsonFormatter

## Constants ###################################################################

log = alog.use_channel("MAIN")

# Command used when the first argument does not name one
DEFAULT_COMMAND = "run"

## Helpers #####################################################################


def add_library_config_args(parser) -> List[str]:
    """Add a --<key> override for every library config key. The config is
    flat, so each key maps straight onto one argument with the current value
    as its default.

    Returns:
        keys:  List[str]
            The config keys that can be overridden from the parsed args
    """
    keys = []
    for key, default in library_config.items():
        kwargs = {
            "default": default,
            "help": f"Override the {key} library config value",
        }
        if isinstance(default, bool):
            kwargs["action"] = argparse.BooleanOptionalAction
        elif isinstance(default, list):
            kwargs["nargs"] = "*"
        elif default is not None:
            kwargs["type"] = type(default)
        parser.add_argument(f"--{key}", **kwargs)
        keys.append(key)
    return keys


def apply_library_config_args(args: argparse.Namespace, keys: List[str]):
    """Write the parsed overrides back into the library config"""
    for key in keys:
        value = getattr(args, key)
        if value != library_config[key]:
            log.debug("Overriding %s from the command line", key)
        library_config[key] = value


def build_parser() -> Tuple[argparse.ArgumentParser, argparse._SubParsersAction]:
    """Set up the parser with one subparser per command. Every command accepts
    the library config overrides.
    """
    parser = argparse.ArgumentParser(description=__doc__)
    subparsers = parser.add_subparsers(help="Available commands", dest="command")
    for cmd in (RunReconcilerCmd(), CheckHeartbeatCmd()):
        cmd_parser = cmd.add_subparser(subparsers)
        cmd_parser.set_defaults(func=cmd.cmd)
        add_library_config_args(cmd_parser.add_argument_group("Library Configuration"))
    return parser, subparsers


## Main ########################################################################


def main(argv: Optional[List[str]] = None):
    """Parse the command line, apply the config overrides, reconfigure logging
    and run the selected command
    """
    argv = list(sys.argv[1:] if argv is None else argv)
    parser, subparsers = build_parser()
    if not argv or argv[0] not in [*subparsers.choices, "-h", "--help"]:
        argv.insert(0, DEFAULT_COMMAND)
    args = parser.parse_args(argv)

    apply_library_config_args(args, list(library_config.keys()))

    alog.configure(
        default_level=config.log_level,
        filters=config.log_filters,
        formatter=ReconcilerJsonFormatter() if config.log_json else "pretty",
        thread_id=config.log_thread_id,
    )

    args.func(args)


if __name__ == "__main__":  # pragma: no cover
    main()
