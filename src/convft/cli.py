"""
convft: convert between a file tree and a single text artifact.

Overview
--------
``convft ft`` (alias ``encode``) writes every text file of the current
project into ``all_files_text.txt``:

    DirectoryTree (base: ., depth: 1):
    ...
    EndDirectoryTree

    Filepath: src/app.py
    Content:
    print("hi")

``convft tf`` (alias ``decode``) reads ``all_files_text.txt`` from the
current directory and recreates the files it describes.

Without ``--include``, files come from ``git ls-files`` (tracked plus
untracked, ignored files left out) when the current directory is inside a
git working tree, and from a filesystem walk otherwise.

Usage
-----
    convft ft -i /my/project -t 3 -e /my/project/temp /my/project/build.sh
    convft ft -i /path/to/file1.txt /path/to/dir1
    convft tf

Defaults for ``--tree-depth`` and ``--log-file`` can be set with
``CONVFT_TREE_DEPTH`` and ``CONVFT_LOG_FILE`` (environment or ``.env``).
"""

from __future__ import annotations

import argparse
import sys
from enum import StrEnum
from pathlib import Path
from typing import TYPE_CHECKING

from convft import __version__
from convft.decoder import Decoder
from convft.encoder import Encoder
from convft.exceptions import ArtifactMissingError, UserInputError
from convft.logging import logger, setup_logging
from convft.settings import Settings, build_settings, environment_defaults

if TYPE_CHECKING:
    from collections.abc import Sequence


class Command(StrEnum):
    ENCODE = "ft"
    DECODE = "tf"
    HELP = "help"


_ALIASES = {"encode": Command.ENCODE, "decode": Command.DECODE, "help": Command.HELP}


def build_parser() -> argparse.ArgumentParser:
    """Build the CLI parser.

    Returns:
        argparse.ArgumentParser: Configured parser.
    """
    parser = argparse.ArgumentParser(
        prog="convft",
        description="Convert between file structures and a single text file representation.",
    )
    parser.add_argument("--version", action="version", version=f"%(prog)s {__version__}")
    sub = parser.add_subparsers(dest="command", metavar="COMMAND")

    ft = sub.add_parser("ft", aliases=["encode"], help="Convert files to text.")
    ft.add_argument(
        "-i",
        "--include",
        nargs="+",
        action="extend",
        default=[],
        metavar="PATH",
        help="Process only these files or directories (defaults to the current directory).",
    )
    ft.add_argument(
        "-e",
        "--exclude",
        nargs="+",
        action="extend",
        default=[],
        metavar="PATH",
        help="Exclude directories, files or patterns.",
    )
    ft.add_argument(
        "-t",
        "--tree-depth",
        type=str,
        default=None,
        metavar="DEPTH",
        help="Directory tree depth (default 1).",
    )
    ft.add_argument("--log-file", type=str, default=None, help="Log file path.")

    tf = sub.add_parser("tf", aliases=["decode"], help="Convert text to files.")
    tf.add_argument("extra", nargs="*", help=argparse.SUPPRESS)
    tf.add_argument("--log-file", type=str, default=None, help="Log file path.")

    sub.add_parser("help", help="Display this help message.")
    return parser


def parse_args(argv: Sequence[str], workdir: Path | None = None) -> tuple[Command, Settings]:
    """Parse command line arguments into a command and validated settings.

    Args:
        argv (Sequence[str]): arguments without the program name
        workdir (Path | None): working directory; defaults to the current directory

    Raises:
        UserInputError: if a value is invalid (e.g. a non-numeric tree depth).

    Returns:
        tuple[Command, Settings]: the command to run and its settings
    """
    args = build_parser().parse_args(list(argv))
    name = args.command or Command.HELP.value
    command = _ALIASES.get(name) or Command(name)
    root = (workdir or Path.cwd()).resolve()
    env = environment_defaults(workdir)

    if command is Command.HELP:
        return command, build_settings(workdir=root)

    log_file = args.log_file if args.log_file is not None else env.get("log_file")
    if command is Command.DECODE:
        if args.extra:
            logger.warning("decode_ignores_arguments", arguments=list(args.extra))
        return command, build_settings(workdir=root, log_file=log_file)

    tree_depth = args.tree_depth if args.tree_depth is not None else env.get("tree_depth")
    if tree_depth is not None and not str(tree_depth).strip().isdigit():
        raise UserInputError(message=f"Tree depth must be a non-negative integer, got {tree_depth!r}.")
    return command, build_settings(
        workdir=root,
        include=list(args.include),
        exclude=list(args.exclude),
        tree_depth=tree_depth,
        log_file=log_file,
    )


def run_encode(settings: Settings) -> int:
    encoder = Encoder(settings.workdir, artifact_name=settings.artifact)
    result = encoder.run(
        include_paths=settings.include,
        exclude_patterns=settings.exclude,
        tree_depth=settings.tree_depth,
    )
    print(f"Conversion completed. {result.record_count} file(s) processed. Output saved to {settings.artifact}")
    return 0


def run_decode(settings: Settings) -> int:
    decoder = Decoder(settings.workdir, artifact_name=settings.artifact)
    result = decoder.run()
    print(
        f"Conversion completed. {result.created_count} file(s) created/updated, "
        f"{result.skipped_count} skipped.",
    )
    return 0


def main(argv: Sequence[str] | None = None) -> int:
    args = list(sys.argv[1:] if argv is None else argv)
    if not args:
        build_parser().print_help()
        return 0
    try:
        command, settings = parse_args(args)
    except UserInputError as e:
        logger.error("invalid_arguments", message=e.message)
        return 1

    if settings.log_file:
        setup_logging(settings.log_file, force=True)

    try:
        match command:
            case Command.ENCODE:
                try:
                    return run_encode(settings)
                except OSError as e:
                    logger.error("artifact_unwritable", path=str(settings.artifact_path), error=str(e))
                    return 1
            case Command.DECODE:
                return run_decode(settings)
            case Command.HELP:
                build_parser().print_help()
                return 0
    except ArtifactMissingError as e:
        logger.error("artifact_missing", path=str(e.path), message=e.message)
        return 1
    return 0


if __name__ == "__main__":
    raise SystemExit(main())
