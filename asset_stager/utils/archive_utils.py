"""
Zip archive extraction helpers.

Two modes are supported:
- extract_all: recursive extraction of every entry into a directory, refusing
  entries whose names would land outside that directory
- extract_member: copy of a single named entry to an explicit file path
"""

import logging
import os
import shutil
import stat
import zipfile
from pathlib import Path
from typing import Union

from asset_stager.core.exceptions import (
    ArchiveError,
    ArchiveMemberNotFoundError,
    FilesystemError,
    UnsafeArchivePathError,
)
from asset_stager.utils.file_utils import ensure_dir, remove_file

logger = logging.getLogger(__name__)

PathLike = Union[str, Path]

DEFAULT_FILE_MODE = 0o644
COPY_BUFFER_SIZE = 64 * 1024


def normalize_member_name(name: str) -> str:
    """Use forward slashes for archive member names regardless of the producing OS."""
    return name.replace("\\", "/")


def _open_zip(archive_path: PathLike) -> zipfile.ZipFile:
    try:
        return zipfile.ZipFile(archive_path, "r")
    except FileNotFoundError as e:
        raise ArchiveError(f"archive not found: {archive_path}") from e
    except zipfile.BadZipFile as e:
        raise ArchiveError(f"not a valid zip archive: {archive_path}: {e}") from e
    except OSError as e:
        raise ArchiveError(f"cannot open archive {archive_path}: {e}") from e


def safe_target(destination: str, member_name: str) -> str:
    """Return the extraction path of member_name under destination.

    The check is lexical: the joined, normalized path must be destination
    itself or lie below it. Absolute member names and '..' components that
    climb out of destination are rejected.

    Raises:
        UnsafeArchivePathError: If the member would escape destination
    """
    base = os.path.normpath(os.path.abspath(destination))
    target = os.path.normpath(os.path.join(base, normalize_member_name(member_name)))
    if target != base and not target.startswith(base + os.sep):
        raise UnsafeArchivePathError(
            f"unsafe path in archive: {member_name!r} resolves outside {base}"
        )
    return target


def _file_mode(info: zipfile.ZipInfo) -> int:
    mode = stat.S_IMODE(info.external_attr >> 16)
    return mode or DEFAULT_FILE_MODE


def extract_all(archive_path: PathLike, destination: PathLike) -> int:
    """Extract every entry of a zip archive into destination.

    Entries are processed in archive order. An unsafe entry aborts the
    extraction; files written before it stay on disk (no rollback). Existing
    files are truncated and rewritten.

    Args:
        archive_path: Path to the zip file
        destination: Directory to extract into (created if missing)

    Returns:
        Number of files written

    Raises:
        ArchiveError: If the archive cannot be opened or read
        UnsafeArchivePathError: If an entry escapes destination
        FilesystemError: If a directory or file cannot be written
    """
    dest = str(ensure_dir(destination))
    files_written = 0

    with _open_zip(archive_path) as zf:
        for info in zf.infolist():
            target = safe_target(dest, info.filename)

            if info.is_dir():
                ensure_dir(target)
                continue
            if target == os.path.normpath(os.path.abspath(dest)):
                raise UnsafeArchivePathError(
                    f"unsafe path in archive: {info.filename!r} names the destination itself"
                )

            ensure_dir(os.path.dirname(target))
            _write_member(zf, info, target, _file_mode(info))
            files_written += 1

    logger.info(
        "Extracted %d files from %s into %s",
        files_written,
        os.path.basename(str(archive_path)),
        dest,
    )
    return files_written


def _write_member(
    zf: zipfile.ZipFile, info: zipfile.ZipInfo, target: str, mode: int
) -> None:
    try:
        fd = os.open(target, os.O_WRONLY | os.O_CREAT | os.O_TRUNC, mode)
    except OSError as e:
        raise FilesystemError(f"cannot create {target}: {e}") from e

    with os.fdopen(fd, "wb") as out:
        try:
            with zf.open(info, "r") as src:
                shutil.copyfileobj(src, out, COPY_BUFFER_SIZE)
        except (zipfile.BadZipFile, zipfile.LargeZipFile, EOFError) as e:
            raise ArchiveError(f"cannot read {info.filename!r}: {e}") from e
        except OSError as e:
            raise FilesystemError(f"cannot write {target}: {e}") from e


def extract_member(archive_path: PathLike, member_path: str, dest_path: PathLike) -> Path:
    """Copy one member of a zip archive to dest_path.

    Member names are compared after separator normalization; the match is
    exact and case-sensitive, and the first matching entry wins.

    Raises:
        ArchiveMemberNotFoundError: If no entry matches (no file is created)
        ArchiveError: If the archive cannot be opened or read
        FilesystemError: If the destination cannot be written

    A read or write failure removes the partially written dest_path.
    """
    wanted = normalize_member_name(member_path)
    dest = Path(dest_path)

    with _open_zip(archive_path) as zf:
        info = next(
            (i for i in zf.infolist() if normalize_member_name(i.filename) == wanted),
            None,
        )
        if info is None:
            raise ArchiveMemberNotFoundError(
                f"file '{wanted}' not found in archive '{archive_path}'"
            )

        ensure_dir(dest.parent)
        try:
            out = open(dest, "wb")
        except OSError as e:
            raise FilesystemError(f"cannot create {dest}: {e}") from e
        try:
            with out:
                with zf.open(info, "r") as src:
                    shutil.copyfileobj(src, out, COPY_BUFFER_SIZE)
        except (zipfile.BadZipFile, EOFError) as e:
            remove_file(dest)
            raise ArchiveError(f"cannot read {wanted!r}: {e}") from e
        except OSError as e:
            remove_file(dest)
            raise FilesystemError(f"cannot write {dest}: {e}") from e

    logger.info("Extracted %s from %s to %s", wanted, os.path.basename(str(archive_path)), dest)
    return dest
