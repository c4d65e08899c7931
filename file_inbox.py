#!/usr/bin/env python3
"""
fileinbox - Move files from an inbox into a dated archive, using their names.

Every file in the inbox must be named like 20160825_pge_taxes2016.pdf: an
8 digit date, an underscore and a destination. It is moved to

    <root>/filed/<destination>/<year>/<file name>

Loose files already sitting in <root>/filed/<destination>/ are sorted into
their year folders along the way.

Usage:
    fileinbox --root ~/Documents/archive     # root is remembered afterwards
    fileinbox                                # file using the stored root
    fileinbox --force                        # create missing destinations
"""

import argparse
import faulthandler
import logging
import os
import signal
import sys
import time
from dataclasses import dataclass, field
from pathlib import Path
from typing import Optional

from file_ops import copy_file, ensure_dir, move
from filename_parser import ParseError, parse_file_name
from organizer import DestinationAccumulator, OrganizeError, organize
from settings import Config, ConfigError, load_config


# ==============================================================================
# LOGGING CONFIGURATION
# ==============================================================================

LOG_LEVEL_ENV = "FILEINBOX_LOG_LEVEL"
LOG_FILE_ENV = "FILEINBOX_LOG_FILE"


def setup_logging(level: Optional[str] = None) -> logging.Logger:
    """Configure the fileinbox logger.

    The level comes from `level`, else FILEINBOX_LOG_LEVEL, else INFO.
    FILEINBOX_LOG_FILE adds a detailed log file next to the console output.
    Calling this again only adjusts the level.
    """
    level_name = (level or os.getenv(LOG_LEVEL_ENV) or "INFO").upper()
    log_file = os.getenv(LOG_FILE_ENV, "")

    logger = logging.getLogger("fileinbox")
    logger.setLevel(getattr(logging, level_name, logging.INFO))

    if logger.handlers:
        return logger

    console = logging.StreamHandler()
    console.setFormatter(logging.Formatter(
        "%(asctime)s [%(levelname)s] %(message)s",
        datefmt="%Y-%m-%d %H:%M:%S"
    ))
    logger.addHandler(console)

    if log_file:
        detailed = logging.FileHandler(log_file, encoding="utf-8")
        detailed.setFormatter(logging.Formatter(
            "%(asctime)s [%(levelname)s] %(module)s:%(funcName)s:%(lineno)d - %(message)s"
        ))
        logger.addHandler(detailed)

    return logger


logger = setup_logging()


# ==============================================================================
# RESULTS
# ==============================================================================

class FileInboxError(Exception):
    """Raised when an inbox as a whole cannot be processed."""


@dataclass
class FileResult:
    """Counters for one inbox, or for a whole run once merged."""

    ok_count: int = 0
    org_count: int = 0
    org_duration: float = 0.0
    failure_count: int = 0
    missing_dirs: set = field(default_factory=set)

    @property
    def ok(self) -> bool:
        return self.failure_count == 0

    def merge(self, other: "FileResult"):
        self.ok_count += other.ok_count
        self.org_count += other.org_count
        self.org_duration += other.org_duration
        self.failure_count += other.failure_count
        self.missing_dirs |= other.missing_dirs

    def summarize(self, duration: float) -> str:
        lines = [
            "",
            f"{self.ok_count} files moved in {duration:.2f}s.",
            f"{self.org_count} files organized in {self.org_duration:.2f}s.",
        ]
        if self.missing_dirs:
            lines.append("")
            lines.append("The following directories are missing:")
            lines.extend(f"    {d}" for d in sorted(self.missing_dirs))
            lines.append("")
            lines.append(
                "You can automatically create the above directories by running "
                "this command again with the --force flag"
            )
        if not self.ok:
            lines.append("")
            lines.append(f"There were {self.failure_count} failures")
        return "\n".join(lines)


# ==============================================================================
# FILING
# ==============================================================================

def process_inbox(inbox, config: Config, force: bool = False,
                  result: Optional[FileResult] = None) -> FileResult:
    """File everything in one inbox.

    Problems with single files are counted in the result and skipped. Only
    problems with the inbox itself, with creating a forced destination or
    with organizing a destination raise FileInboxError; counts gathered up
    to that point stay in `result` when the caller passed one in.
    """
    if result is None:
        result = FileResult()
    inbox = Path(inbox)

    if not inbox.is_dir():
        raise FileInboxError(f"{inbox} does not appear to be a directory")
    try:
        names = sorted(os.listdir(inbox))
    except OSError as e:
        raise FileInboxError(f"Unable to list {inbox}: {e}") from e

    # Figure out what we are working on
    all_parsed = []
    acc = DestinationAccumulator()
    for name in names:
        try:
            parsed = parse_file_name(force, name)
        except ParseError as e:
            logger.warning(f"Unable to parse {inbox / name}, skipping: {e}")
            result.failure_count += 1
            continue
        all_parsed.append(parsed)
        acc.add(parsed.destination, parsed.year)

    # Make sure destination directories are ready
    missing = set()
    for needs in acc.iterate():
        dest = config.dest(needs.destination)
        if not os.path.isdir(dest):
            if not force:
                waiting = sum(1 for p in all_parsed if p.destination == needs.destination)
                logger.warning(f"Missing directory {dest}, leaving {waiting} file(s) in {inbox}")
                result.missing_dirs.add(dest)
                result.failure_count += waiting
                missing.add(needs.destination)
                continue
            try:
                ensure_dir(dest, parents=True)
            except OSError as e:
                raise FileInboxError(f"Failed creating dir for {dest}: {e}") from e
            logger.info(f"Created {dest}")

        org_start = time.monotonic()
        try:
            moved = organize(force, dest, needs.years)
        except OrganizeError as e:
            result.org_count += e.moved
            raise FileInboxError(f"Failed organizing {dest}: {e}") from e
        finally:
            result.org_duration += time.monotonic() - org_start
        result.org_count += moved

    # Move the inbox files into place
    tasks = len(all_parsed)
    for i, parsed in enumerate(all_parsed, 1):
        # Already counted as failures above
        if parsed.destination in missing:
            continue

        src = inbox / parsed.base_name
        cc_dir = config.cc_dest(parsed.destination)
        if cc_dir:
            cc_path = Path(cc_dir) / parsed.year / parsed.base_name
            try:
                ensure_dir(cc_path.parent, parents=True)
                copy_file(src, cc_path)
            except OSError as e:
                logger.warning(f"Unable to copy from {src} to {cc_path}: {e}")
                result.failure_count += 1
                continue

        new_path = Path(config.dest(parsed.destination)) / parsed.year / parsed.base_name
        try:
            move(src, new_path)
        except OSError as e:
            logger.warning(f"Unable to move from {src} to {new_path}: {e}")
            result.failure_count += 1
            continue
        logger.debug(f"Filed {src} -> {new_path}")
        result.ok_count += 1
        print(f"({i}/{tasks}) Filed", end="\r", flush=True)

    if tasks:
        print()

    return result


def file_all(config: Config, force: bool = False) -> tuple[FileResult, list]:
    """Process the main inbox and every extra inbox.

    Each inbox is handled independently: an inbox that fails does not stop
    the others. Returns the merged result and the errors of failed inboxes.
    """
    total = FileResult()
    errors = []
    for inbox in config.inboxes():
        result = FileResult()
        try:
            process_inbox(inbox, config, force, result)
        except FileInboxError as e:
            logger.error(f"Processing {inbox} failed: {e}")
            errors.append(e)
        total.merge(result)
    return total, errors


# ==============================================================================
# CLI
# ==============================================================================

def install_stack_dump():
    """Dump the stack of every thread to stderr on SIGQUIT (Ctrl-\\).

    Returns False when the dump cannot be installed, e.g. on Windows or when
    the process has no real stderr. Filing goes ahead either way.
    """
    if not hasattr(signal, "SIGQUIT") or not hasattr(faulthandler, "register"):
        return False
    # faulthandler writes to a raw file descriptor, so a replaced sys.stderr
    # (pytest capture, embedding) cannot be used
    stream = sys.__stderr__
    if stream is None:
        return False
    try:
        faulthandler.register(signal.SIGQUIT, file=stream, all_threads=True)
    except (AttributeError, ValueError, OSError) as e:
        logger.debug(f"Stack dump on SIGQUIT not available: {e}")
        return False
    return True


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="fileinbox",
        description="Move files into the correct place, using their names.",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Files must be named YYYYMMDD_<destination>[anything], for example:
  20160825_pge.pdf            -> <root>/filed/pge/2016/20160825_pge.pdf
  20160825_pge_taxes2016.pdf  -> <root>/filed/pge/2016/20160825_pge_taxes2016.pdf

Environment:
  FILEINBOX_ROOT       root directory when neither --root nor the config file set one
  FILEINBOX_LOG_LEVEL  DEBUG, INFO, WARNING or ERROR (default: INFO)
  FILEINBOX_LOG_FILE   also write a detailed log to this file
        """
    )
    parser.add_argument("--root", "-r",
                        help="Root directory. Will be saved into the fileinbox config file")
    parser.add_argument("--force", "-f", action="store_true",
                        help="Create destination directories as needed and accept dates far in the future")
    # Meant for testing
    parser.add_argument("--skip-config", action="store_true", help=argparse.SUPPRESS)
    return parser


def main(argv=None) -> int:
    install_stack_dump()
    parser = build_parser()
    args = parser.parse_args(argv)

    start = time.monotonic()
    try:
        config = load_config(persist=not args.skip_config, cli_root=args.root)
    except ConfigError as e:
        parser.error(str(e))

    result, errors = file_all(config, args.force)

    print(result.summarize(time.monotonic() - start))
    for e in errors:
        print(f"\nError: {e}")

    if errors or not result.ok:
        return 1
    return 0


if __name__ == "__main__":
    sys.exit(main())
