from __future__ import annotations
from pathlib import Path
from typing import Protocol, List, Union, runtime_checkable

from asset_stager.core.schemas import DeployConfig, RemoteEntry


@runtime_checkable
class IAssetManager(Protocol):
    """Fetches catalog assets into a local cache and stages them under the install root.

    Consumed by install workflows; tests substitute an in-memory double.
    """

    @property
    def config(self) -> DeployConfig:
        """Read-only access to the loaded deployment configuration."""
        ...

    def download_to_cache(self, asset_name: str) -> Path:
        """Ensure the asset's artifact is in the cache and return its cache path."""
        ...

    def process_from_cache(self, asset_name: str, cache_path: Union[str, Path]) -> None:
        """Copy or extract a cached artifact into its destination directory."""
        ...

    def get(self, asset_name: str) -> Path:
        """Download (if needed) and stage an asset; return its destination directory."""
        ...

    def purge_asset(self, asset_name: str) -> None:
        """Forget the cached artifact and the staged files of an asset."""
        ...

    def extract_file(
        self,
        archive_path: Union[str, Path],
        member_path: str,
        dest_path: Union[str, Path],
    ) -> None:
        ...

    def list_remote_directory(self, path: str) -> List[RemoteEntry]:
        ...

    def download_http(self, url: str, local_path: Union[str, Path]) -> bool:
        """Raw HTTP download; returns True when skipped as already present."""
        ...

    def download_ftp(self, ftp_path: str, local_path: Union[str, Path]) -> bool:
        """Raw FTP download; returns True when skipped as already present."""
        ...

    def fetch_url_to_cache(self, url: str) -> Path:
        """Download an ad-hoc http(s) URL into the cache; return its cache path."""
        ...
