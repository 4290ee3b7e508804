"""
File utility functions.
"""

import logging
import os
import shutil
from pathlib import Path
from typing import Iterable, Optional, Union

from asset_stager.application.interfaces import IProgressReporter
from asset_stager.core.exceptions import FilesystemError

logger = logging.getLogger(__name__)

PathLike = Union[str, Path]


def ensure_dir(path: PathLike) -> Path:
    """Create a directory (and parents) if missing.

    Raises:
        FilesystemError: If the directory cannot be created
    """
    p = Path(path)
    try:
        p.mkdir(parents=True, exist_ok=True)
    except OSError as e:
        raise FilesystemError(f"cannot create directory {p}: {e}") from e
    return p


def remove_file(path: PathLike) -> bool:
    """Delete a file if it exists. Returns True when something was deleted."""
    p = Path(path)
    try:
        p.unlink()
    except FileNotFoundError:
        return False
    except OSError as e:
        raise FilesystemError(f"cannot delete {p}: {e}") from e
    logger.debug("Removed file: %s", p)
    return True


def clear_directory(path: PathLike) -> int:
    """Delete everything inside a directory, keeping the directory itself.

    A missing directory is not an error. Returns the number of top level
    entries removed.
    """
    p = Path(path)
    if not p.is_dir():
        return 0
    removed = 0
    try:
        for child in p.iterdir():
            if child.is_dir() and not child.is_symlink():
                shutil.rmtree(child)
            else:
                child.unlink()
            removed += 1
    except OSError as e:
        raise FilesystemError(f"cannot clear directory {p}: {e}") from e
    logger.debug("Cleared %d entries from %s", removed, p)
    return removed


def copy_file(src: PathLike, dst: PathLike) -> Path:
    """Byte-copy src to dst, creating dst's parent and overwriting dst."""
    dst_path = Path(dst)
    ensure_dir(dst_path.parent)
    try:
        shutil.copyfile(src, dst_path)
    except OSError as e:
        raise FilesystemError(f"cannot copy {src} to {dst_path}: {e}") from e
    return dst_path


def stream_to_file(
    chunks: Iterable[bytes],
    output_path: PathLike,
    reporter: Optional[IProgressReporter] = None,
) -> int:
    """Write an iterable of byte chunks to output_path.

    The file is truncated first. If anything goes wrong while reading chunks
    or writing them, the partial file is deleted and the original exception is
    re-raised, so a failed transfer never leaves a truncated file behind.
    The reporter (if any) is advanced per chunk and completed once on success.

    Returns:
        Total bytes written
    """
    out = Path(output_path)
    written = 0
    try:
        with open(out, "wb") as f:
            for chunk in chunks:
                if not chunk:
                    continue
                f.write(chunk)
                written += len(chunk)
                if reporter is not None:
                    reporter.advance(len(chunk))
    except BaseException:
        _discard_partial(out)
        if reporter is not None:
            reporter.close()
        raise

    if reporter is not None:
        reporter.complete()
    return written


def _discard_partial(path: Path) -> None:
    try:
        os.remove(path)
        logger.warning("Removed partial file: %s", path)
    except FileNotFoundError:
        pass
    except OSError as e:
        logger.error("Failed to remove partial file %s: %s", path, e)
