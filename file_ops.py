#!/usr/bin/env python3
"""
Moving and copying files without ever leaving a half-written file behind.

A move is a plain rename whenever possible. When source and destination live
on different filesystems the rename fails with EXDEV and we fall back to
copying the bytes into an exclusively created destination and deleting the
source afterwards. The same copy routine backs the carbon-copy path.
"""

import errno
import logging
import os
import shutil
from pathlib import Path


logger = logging.getLogger("fileinbox")

DIR_MODE = 0o700
COPY_BUFSIZE = 1024 * 1024


def is_cross_device(err: OSError) -> bool:
    """True if a failed rename must be replaced by copy + delete."""
    return err.errno == errno.EXDEV


def ensure_dir(path, parents: bool = False) -> Path:
    """Create an owner-only directory. An existing directory is fine.

    With parents=True every missing ancestor is created owner-only as well;
    Path.mkdir(parents=True) would give them the default permissions.
    """
    path = Path(path)
    if parents:
        for ancestor in reversed(path.parents):
            if not ancestor.is_dir():
                ancestor.mkdir(mode=DIR_MODE, exist_ok=True)
    path.mkdir(mode=DIR_MODE, exist_ok=True)
    return path


def move(src, dst) -> None:
    """Move src to dst, refusing to replace an existing dst.

    Falls back to copy + delete across filesystems. The source is removed
    only once the destination has been fully written and closed; if the copy
    fails the partial destination is removed and the source is left alone.
    """
    if os.path.lexists(dst):
        raise FileExistsError(errno.EEXIST, "Destination already exists", str(dst))
    try:
        os.rename(src, dst)
        return
    except OSError as e:
        if not is_cross_device(e):
            raise

    logger.debug(f"Cross-device move, copying {src} to {dst}")
    _stream_copy(src, dst)
    os.remove(src)


def copy_file(src, dst) -> None:
    """Copy src to a new file dst. Fails if dst already exists."""
    _stream_copy(src, dst)


def _stream_copy(src, dst) -> None:
    with open(src, "rb") as source:
        # "x" gives us O_CREAT | O_EXCL, so an existing file is never touched
        target = open(dst, "xb")
        try:
            with target:
                shutil.copyfileobj(source, target, COPY_BUFSIZE)
                target.flush()
                os.fsync(target.fileno())
        except BaseException:
            _discard(dst)
            raise


def _discard(path) -> None:
    try:
        os.remove(path)
    except FileNotFoundError:
        pass
    except OSError as e:
        logger.warning(f"Could not remove partial file {path}: {e}")
