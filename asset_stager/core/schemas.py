from __future__ import annotations

import posixpath
from dataclasses import dataclass
from enum import Enum
from typing import Dict, Optional, Tuple
from urllib.parse import unquote, urlparse

from pydantic import BaseModel, ConfigDict, Field


class ArtifactType(str, Enum):
    zip = "zip"
    file = "file"


class TransportKind(str, Enum):
    http = "HTTP"
    ftp = "FTP"


def url_basename(url: str) -> str:
    """Return the file name component of a URL path ("" when the path ends with '/')."""
    return posixpath.basename(urlparse(url).path)


class AssetDescriptor(BaseModel):
    """One catalog entry as consumed from the deployment configuration.

    `type` and `download_method` are kept as raw strings: unsupported values
    are rejected when the entry is used, not when the catalog is loaded.
    """

    model_config = ConfigDict(frozen=True, extra="ignore")

    url: str
    type: str = ""
    destination: str = ""
    download_method: Optional[str] = None

    @property
    def transport(self) -> str:
        """Upper-cased download method, HTTP when empty."""
        method = (self.download_method or "").strip().upper()
        return method or TransportKind.http.value

    @property
    def artifact_type(self) -> str:
        return (self.type or "").strip().lower()

    @property
    def file_name(self) -> str:
        return url_basename(self.url)

    @property
    def remote_path(self) -> str:
        """Decoded server-side path of the URL, used by the FTP transport."""
        return unquote(urlparse(self.url).path)


class FTPConfig(BaseModel):
    model_config = ConfigDict(frozen=True, populate_by_name=True, extra="ignore")

    host: str = ""
    user: str = ""
    password: str = Field(default="", alias="pass")


class DeployConfig(BaseModel):
    """Deployment configuration document (JSON).

    Only the keys used by the asset subsystem are modelled; product specific
    sections of the same document are ignored.
    """

    model_config = ConfigDict(frozen=True, populate_by_name=True, extra="ignore")

    root_path: str
    assets_cache_path: str
    ftp: FTPConfig = Field(default_factory=FTPConfig, alias="ftp_config")
    asset_catalog: Dict[str, AssetDescriptor] = Field(default_factory=dict)


class RemoteEntry(BaseModel):
    model_config = ConfigDict(frozen=True)

    name: str
    is_directory: bool = False


@dataclass(frozen=True)
class TransferOutcome:
    """Result of a single transport fetch.

    Attributes:
        skipped: True when the local file already matched the remote size
        local_path: Where the artifact lives locally
        remote_size: Size reported by the server, None when unknown
        bytes_written: Bytes copied during this call (0 when skipped)
        warnings: Non fatal conditions worth surfacing to the caller
    """

    skipped: bool
    local_path: str
    remote_size: Optional[int] = None
    bytes_written: int = 0
    warnings: Tuple[str, ...] = ()
