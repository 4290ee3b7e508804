from __future__ import annotations
from typing import Protocol, List, Union
from pathlib import Path

from asset_stager.core.schemas import RemoteEntry, TransferOutcome


class ITransport(Protocol):
    """Fetches one remote artifact to a local path."""

    def fetch(self, remote: str, local_path: Union[str, Path]) -> TransferOutcome:
        """Transfer `remote` to `local_path` unless a same-sized file is already there.

        Raises NetworkError / FilesystemError on failure; a failed transfer
        never leaves a partial file at `local_path`.
        """
        ...


class IRemoteLister(Protocol):
    """Lists a remote directory (FTP only)."""

    def list_directory(self, path: str) -> List[RemoteEntry]:
        ...
