"""
Custom error types for asset acquisition and staging
"""

from typing import Optional


class AssetError(Exception):
    """Base exception for every asset acquisition failure.

    Args:
        message: Human readable error message
        asset_name: Catalog name of the asset involved (if known)
        remote: Remote URL or server path involved (if known)
    """

    def __init__(
        self,
        message: str,
        *,
        asset_name: Optional[str] = None,
        remote: Optional[str] = None,
    ):
        self.message = message
        self.asset_name = asset_name
        self.remote = remote
        super().__init__(self.message)

    def with_asset(self, asset_name: str, action: str) -> "AssetError":
        """Return a copy of this error of the same type, prefixed with asset context.

        Example:
            >>> err = NetworkError("bad status: 404 Not Found", remote="http://x/a.zip")
            >>> str(err.with_asset("pkgA", "download to cache"))
            "download to cache failed for asset 'pkgA': bad status: 404 Not Found"
        """
        return type(self)(
            f"{action} failed for asset '{asset_name}': {self.message}",
            asset_name=asset_name,
            remote=self.remote,
        )


class AssetNotFoundError(AssetError):
    """Exception raised when a name is absent from the asset catalog"""


class UnknownTransportError(AssetError):
    """Exception raised when a catalog entry names an unsupported download method"""


class UnknownArtifactTypeError(AssetError):
    """Exception raised when a catalog entry names an unsupported artifact type"""


class NetworkError(AssetError):
    """Exception raised on connect, login, status or transfer failures"""


class FilesystemError(AssetError):
    """Exception raised when a local directory or file cannot be created, written or copied"""


class ConfigurationError(AssetError):
    """Exception raised when configuration cannot be loaded or is invalid"""


class ArchiveError(AssetError):
    """Exception raised when an archive cannot be opened or read"""


class UnsafeArchivePathError(ArchiveError):
    """Exception raised when an archive entry would escape the extraction directory

    Extraction stops at the offending entry. Entries written before it are kept.
    """


class ArchiveMemberNotFoundError(ArchiveError):
    """Exception raised when a requested member is not present in an archive"""
