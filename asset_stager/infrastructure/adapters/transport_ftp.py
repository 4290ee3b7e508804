from __future__ import annotations

import ftplib
import logging
import posixpath
import re
import socket
from contextlib import contextmanager
from pathlib import Path
from typing import Callable, Iterator, List, Optional, Tuple, Union

from asset_stager.application.interfaces import IProgressReporter, IRemoteLister, ITransport
from asset_stager.core.exceptions import FilesystemError, NetworkError
from asset_stager.core.schemas import RemoteEntry, TransferOutcome
from asset_stager.utils.file_utils import ensure_dir, stream_to_file
from asset_stager.infrastructure.adapters.progress import NullProgressReporter

logger = logging.getLogger(__name__)

DEFAULT_FTP_PORT = 21

# 01-16-24  10:22AM       <DIR>          Patches
_DOS_LINE = re.compile(
    r"^\d{2}-\d{2}-\d{2,4}\s+\d{1,2}:\d{2}\s*(?:AM|PM)?\s+(?P<size><DIR>|\d+)\s+(?P<name>.+)$",
    re.IGNORECASE,
)


def split_host(host: str) -> Tuple[str, int]:
    """Split 'host' or 'host:port' into its parts."""
    host = host.strip()
    if host.count(":") == 1:
        name, _, port = host.partition(":")
        if port.isdigit():
            return name, int(port)
    return host, DEFAULT_FTP_PORT


def parse_list_line(line: str) -> Optional[RemoteEntry]:
    """Parse one line of a LIST reply (Unix `ls -l` or DOS/IIS style).

    Returns None for blank lines, 'total' headers, '.' and '..', and lines
    that match neither format.
    """
    line = line.rstrip("\r\n")
    if not line.strip() or line.lower().startswith("total "):
        return None

    m = _DOS_LINE.match(line)
    if m:
        name = m.group("name")
        is_dir = m.group("size").upper() == "<DIR>"
    else:
        parts = line.split(None, 8)
        if len(parts) < 9:
            return None
        perms, name = parts[0], parts[8]
        is_dir = perms.startswith("d")
        if perms.startswith("l") and " -> " in name:
            name = name.split(" -> ", 1)[0]

    if name in (".", ".."):
        return None
    return RemoteEntry(name=name, is_directory=is_dir)


class FTPTransport(ITransport, IRemoteLister):
    """Authenticated FTP downloads and directory listings.

    Every public call opens its own control connection and quits it before
    returning, whatever the outcome.
    """

    def __init__(
        self,
        host: str,
        user: str = "",
        password: str = "",
        *,
        connect_timeout: float = 10.0,
        transfer_timeout: Optional[float] = None,
        chunk_size: int = 64 * 1024,
        reporter_factory: Optional[Callable[[], IProgressReporter]] = None,
        ftp_factory: Callable[[], ftplib.FTP] = ftplib.FTP,
    ) -> None:
        self.host = host
        self.user = user
        self.password = password
        self.connect_timeout = connect_timeout
        self.transfer_timeout = transfer_timeout
        self.chunk_size = chunk_size
        self.reporter_factory = reporter_factory or NullProgressReporter
        self.ftp_factory = ftp_factory

    # ----- connection handling -----
    @contextmanager
    def session(self) -> Iterator[ftplib.FTP]:
        ftp = self._connect()
        try:
            yield ftp
        finally:
            self._quit(ftp)

    def _connect(self) -> ftplib.FTP:
        host, port = split_host(self.host)
        if not host:
            raise NetworkError("FTP host is not configured")

        ftp = self.ftp_factory()
        try:
            ftp.connect(host, port, timeout=self.connect_timeout)
        except ftplib.all_errors as e:
            ftp.close()
            logger.error("Cannot connect to FTP %s: %s", self.host, e)
            raise NetworkError(
                f"cannot connect to FTP server {self.host}: {e}", remote=self.host
            ) from e

        try:
            ftp.login(self.user, self.password)
        except ftplib.all_errors as e:
            self._quit(ftp)
            logger.error("FTP login to %s failed: %s", self.host, e)
            raise NetworkError(f"FTP login failed: {e}", remote=self.host) from e

        # The connect timeout only bounds connection setup
        ftp.timeout = self.transfer_timeout
        if getattr(ftp, "sock", None) is not None:
            ftp.sock.settimeout(self.transfer_timeout)
        return ftp

    @staticmethod
    def _quit(ftp: ftplib.FTP) -> None:
        try:
            ftp.quit()
        except ftplib.all_errors as e:
            logger.debug("FTP QUIT failed (%s), closing connection", e)
            ftp.close()

    # ----- size / retrieve -----
    def _remote_size(self, ftp: ftplib.FTP, path: str) -> Tuple[Optional[int], Optional[str]]:
        try:
            ftp.voidcmd("TYPE I")
            size = ftp.size(path)
        except (ftplib.error_perm, ftplib.error_reply, ftplib.error_temp, ValueError) as e:
            size, reason = None, str(e)
        except ftplib.all_errors as e:
            raise NetworkError(f"SIZE {path} failed: {e}", remote=path) from e
        else:
            reason = "server returned no size"

        if size is not None and size >= 0:
            return size, None
        warning = (
            f"cannot get size of '{path}' on FTP ({reason}); "
            f"downloading without size check"
        )
        logger.debug(warning)
        return None, warning

    def _open_data(self, ftp: ftplib.FTP, path: str) -> socket.socket:
        try:
            ftp.voidcmd("TYPE I")
            return ftp.transfercmd(f"RETR {path}")
        except ftplib.all_errors as e:
            raise NetworkError(f"cannot start FTP download: {e}", remote=path) from e

    def _read_data(
        self, ftp: ftplib.FTP, conn: socket.socket, path: str
    ) -> Iterator[bytes]:
        while True:
            try:
                data = conn.recv(self.chunk_size)
            except OSError as e:
                raise NetworkError(f"FTP transfer interrupted: {e}", remote=path) from e
            if not data:
                break
            yield data
        conn.close()
        try:
            ftp.voidresp()
        except ftplib.all_errors as e:
            raise NetworkError(f"FTP transfer not confirmed: {e}", remote=path) from e

    def fetch(self, remote: str, local_path: Union[str, Path]) -> TransferOutcome:
        local = Path(local_path)
        file_name = posixpath.basename(remote) or local.name
        ensure_dir(local.parent)

        logger.info("Downloading ftp://%s%s -> %s", self.host, remote, local)
        with self.session() as ftp:
            remote_size, warning = self._remote_size(ftp, remote)
            warnings = (warning,) if warning else ()

            if local.exists():
                if remote_size is not None and local.stat().st_size == remote_size:
                    logger.info(
                        "File '%s' already exists with matching size, skipping", file_name
                    )
                    return TransferOutcome(
                        skipped=True,
                        local_path=str(local),
                        remote_size=remote_size,
                        warnings=warnings,
                    )
                logger.info("File '%s' exists but size differs, downloading again", file_name)

            conn = self._open_data(ftp, remote)
            reporter = self.reporter_factory()
            reporter.start(file_name, remote_size)
            try:
                written = stream_to_file(
                    self._read_data(ftp, conn, remote), local, reporter
                )
            except OSError as e:
                logger.error("Cannot write %s: %s", local, e)
                raise FilesystemError(
                    f"cannot store download at {local}: {e}", remote=remote
                ) from e
            finally:
                conn.close()

        logger.info("Downloaded %s (%d bytes)", file_name, written)
        return TransferOutcome(
            skipped=False,
            local_path=str(local),
            remote_size=remote_size,
            bytes_written=written,
            warnings=warnings,
        )

    # ----- listing -----
    def list_directory(self, path: str) -> List[RemoteEntry]:
        with self.session() as ftp:
            try:
                entries = self._mlsd(ftp, path)
            except ftplib.error_perm as e:
                logger.debug("MLSD not available (%s), falling back to LIST", e)
                entries = self._list(ftp, path)
            except ftplib.all_errors as e:
                raise NetworkError(f"cannot list '{path}': {e}", remote=path) from e
        logger.debug("Listed %d entries in %s", len(entries), path)
        return entries

    @staticmethod
    def _mlsd(ftp: ftplib.FTP, path: str) -> List[RemoteEntry]:
        entries = []
        for name, facts in ftp.mlsd(path, facts=["type"]):
            kind = facts.get("type", "").lower()
            if kind in ("cdir", "pdir") or name in (".", ".."):
                continue
            entries.append(RemoteEntry(name=name, is_directory=kind == "dir"))
        return entries

    @staticmethod
    def _list(ftp: ftplib.FTP, path: str) -> List[RemoteEntry]:
        lines: List[str] = []
        try:
            ftp.retrlines(f"LIST {path}" if path else "LIST", lines.append)
        except ftplib.all_errors as e:
            raise NetworkError(f"cannot list '{path}': {e}", remote=path) from e
        return [entry for entry in map(parse_list_line, lines) if entry is not None]
