from __future__ import annotations

import logging
import os
from pathlib import Path
from typing import Callable, Optional, Union

import requests

from asset_stager.application.interfaces import IProgressReporter, ITransport
from asset_stager.core.exceptions import FilesystemError, NetworkError
from asset_stager.core.schemas import TransferOutcome, url_basename
from asset_stager.utils.file_utils import ensure_dir, stream_to_file
from asset_stager.infrastructure.adapters.progress import NullProgressReporter

logger = logging.getLogger(__name__)

HTTP_OK = 200


def content_length(response: requests.Response) -> Optional[int]:
    """Remote size advertised by a response, None when it cannot be trusted.

    A content-encoded body is decoded while streaming, so its header length
    does not describe the bytes that end up on disk.
    """
    encoding = response.headers.get("Content-Encoding", "").strip().lower()
    if encoding and encoding != "identity":
        return None
    raw = response.headers.get("Content-Length")
    if raw is None:
        return None
    try:
        size = int(raw)
    except (TypeError, ValueError):
        return None
    return size if size >= 0 else None


class HTTPTransport(ITransport):
    """Bulk HTTP(S) downloads over a requests session."""

    def __init__(
        self,
        session: Optional[requests.Session] = None,
        *,
        timeout: Optional[float] = None,
        chunk_size: int = 64 * 1024,
        reporter_factory: Optional[Callable[[], IProgressReporter]] = None,
    ) -> None:
        self.session = session or requests.Session()
        self.timeout = timeout
        self.chunk_size = chunk_size
        self.reporter_factory = reporter_factory or NullProgressReporter

    def fetch(self, remote: str, local_path: Union[str, Path]) -> TransferOutcome:
        local = Path(local_path)
        file_name = url_basename(remote) or local.name
        ensure_dir(local.parent)

        logger.info("Downloading %s -> %s", remote, local)
        try:
            response = self.session.get(remote, stream=True, timeout=self.timeout)
        except requests.RequestException as e:
            logger.error("HTTP request failed for %s: %s", remote, e)
            raise NetworkError(f"request failed: {e}", remote=remote) from e

        with response:
            if response.status_code != HTTP_OK:
                status = f"{response.status_code} {response.reason or ''}".strip()
                logger.error("Bad HTTP status for %s: %s", remote, status)
                raise NetworkError(f"bad status: {status}", remote=remote)

            remote_size = content_length(response)
            if local.exists():
                if remote_size is not None and os.path.getsize(local) == remote_size:
                    logger.info(
                        "File '%s' already exists with matching size, skipping", file_name
                    )
                    return TransferOutcome(
                        skipped=True, local_path=str(local), remote_size=remote_size
                    )
                logger.info("File '%s' exists but size differs, downloading again", file_name)

            reporter = self.reporter_factory()
            reporter.start(file_name, remote_size)
            try:
                written = stream_to_file(
                    response.iter_content(chunk_size=self.chunk_size), local, reporter
                )
            except requests.RequestException as e:
                logger.error("Transfer of %s interrupted: %s", remote, e)
                raise NetworkError(f"transfer interrupted: {e}", remote=remote) from e
            except OSError as e:
                logger.error("Cannot write %s: %s", local, e)
                raise FilesystemError(
                    f"cannot store download at {local}: {e}", remote=remote
                ) from e

        logger.info("Downloaded %s (%d bytes)", file_name, written)
        return TransferOutcome(
            skipped=False,
            local_path=str(local),
            remote_size=remote_size,
            bytes_written=written,
        )
