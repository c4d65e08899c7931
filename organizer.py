#!/usr/bin/env python3
"""
Destination bookkeeping and year-folder organization.

Filed directories look like filed/<destination>/<year>/<file>. Files that were
dropped straight into filed/<destination>/ (older layouts, manual copies) are
retrofitted into their year folder by organize().
"""

import logging
import os
import time
from dataclasses import dataclass
from pathlib import Path
from typing import Iterable

from file_ops import ensure_dir, move
from filename_parser import ParseError, parse_file_name


logger = logging.getLogger("fileinbox")


class OrganizeError(Exception):
    """Raised when a filed directory cannot be organized.

    moved holds the number of files already moved before the failure.
    """

    def __init__(self, message: str, moved: int = 0):
        super().__init__(message)
        self.moved = moved


@dataclass(frozen=True)
class DestinationNeeds:
    destination: str
    years: frozenset


class DestinationAccumulator:
    """Collects which years each destination needs during one filing pass."""

    def __init__(self):
        self._years: dict[str, set[str]] = {}

    def add(self, destination: str, year: str):
        self._years.setdefault(destination, set()).add(year)

    def iterate(self) -> list[DestinationNeeds]:
        # Sorted only so that runs are reproducible
        return [
            DestinationNeeds(destination, frozenset(years))
            for destination, years in sorted(self._years.items())
        ]

    def __len__(self) -> int:
        return len(self._years)

    def __contains__(self, destination) -> bool:
        return destination in self._years


def _ensure_year_dir(dest_dir: Path, year: str, have: set):
    if year in have:
        return
    ensure_dir(dest_dir / year)
    have.add(year)


def organize(force: bool, dest_dir, years: Iterable[str] = ()) -> int:
    """Move loose files in dest_dir into year folders and make sure every
    year in `years` has a folder.

    Returns the number of files moved. Any unparsable loose file or failed
    move aborts with OrganizeError; nothing in a filed directory is skipped
    silently.
    """
    start = time.monotonic()
    dest_dir = Path(dest_dir)
    moved = 0

    have = set()
    loose = []
    try:
        with os.scandir(dest_dir) as entries:
            for entry in sorted(entries, key=lambda e: e.name):
                if entry.is_dir():
                    have.add(entry.name)
                else:
                    loose.append(entry.name)
    except OSError as e:
        raise OrganizeError(f"Unable to list {dest_dir}: {e}") from e

    # The year folders are not counted, they usually exist already
    tasks = len(loose)

    for i, name in enumerate(loose, 1):
        try:
            parsed = parse_file_name(force, name)
        except ParseError as e:
            raise OrganizeError(f"Unable to organize {dest_dir / name}: {e}", moved) from e

        old_path = dest_dir / name
        new_path = dest_dir / parsed.year / name
        try:
            _ensure_year_dir(dest_dir, parsed.year, have)
            move(old_path, new_path)
        except OSError as e:
            raise OrganizeError(f"Failed organizing {old_path}: {e}", moved) from e
        moved += 1
        print(f"({i}/{tasks}) organizing {dest_dir}", end="\r", flush=True)

    if tasks:
        print()

    for year in years:
        try:
            _ensure_year_dir(dest_dir, year, have)
        except OSError as e:
            raise OrganizeError(f"Unable to create {dest_dir / year}: {e}", moved) from e

    if tasks:
        logger.info(f"Organized {dest_dir} in {time.monotonic() - start:.2f}s")

    return moved
