from __future__ import annotations

import logging
import os
from functools import partial
from pathlib import Path
from typing import List, Optional, Union

from asset_stager.application.interfaces import IAssetManager, ITransport
from asset_stager.core.config import TransportConfig
from asset_stager.core.exceptions import (
    AssetError,
    ConfigurationError,
    FilesystemError,
    UnknownArtifactTypeError,
    UnknownTransportError,
)
from asset_stager.core.schemas import (
    ArtifactType,
    AssetDescriptor,
    DeployConfig,
    RemoteEntry,
    TransferOutcome,
    TransportKind,
)
from asset_stager.utils.archive_utils import extract_all, extract_member
from asset_stager.utils.file_utils import clear_directory, copy_file, ensure_dir, remove_file
from asset_stager.infrastructure.adapters.cache_store import CacheStore
from asset_stager.infrastructure.adapters.catalog_resolver import CatalogResolver
from asset_stager.infrastructure.adapters.progress import make_progress_reporter
from asset_stager.infrastructure.adapters.transport_ftp import FTPTransport
from asset_stager.infrastructure.adapters.transport_http import HTTPTransport

logger = logging.getLogger(__name__)

PathLike = Union[str, Path]


class AssetManager(IAssetManager):
    """Fetch catalog assets into a flat cache and stage them under the install root.

    Layout:
        {assets_cache_path}/{basename(url)}      raw downloaded artifact
        {root_path}/{destination}/...            extracted zip contents or copied file

    Both directories are created on construction. The manager keeps no
    mutable state besides the configuration; concurrent downloads of the
    same asset are not synchronized and must be serialized by callers.
    """

    def __init__(
        self,
        config: DeployConfig,
        transport_config: Optional[TransportConfig] = None,
        *,
        http_transport: Optional[ITransport] = None,
        ftp_transport: Optional[FTPTransport] = None,
    ) -> None:
        self._config = config
        self.transport_config = transport_config or TransportConfig.from_config(config)
        self.root_path = Path(config.root_path)
        self.cache_path = Path(config.assets_cache_path)

        for label, path in (("root", self.root_path), ("cache", self.cache_path)):
            try:
                ensure_dir(path)
            except FilesystemError as e:
                raise FilesystemError(f"cannot create {label} directory {path}: {e.message}") from e

        self.catalog = CatalogResolver(config.asset_catalog)
        self.cache = CacheStore(self.cache_path)

        tc = self.transport_config
        reporter_factory = partial(
            make_progress_reporter, tc.progress_enabled, tc.progress_refresh_interval
        )
        self.http = http_transport or HTTPTransport(
            timeout=tc.http_timeout,
            chunk_size=tc.chunk_size,
            reporter_factory=reporter_factory,
        )
        self.ftp = ftp_transport or FTPTransport(
            tc.ftp_host,
            tc.ftp_user,
            tc.ftp_password,
            connect_timeout=tc.ftp_connect_timeout,
            transfer_timeout=tc.ftp_transfer_timeout,
            chunk_size=tc.chunk_size,
            reporter_factory=reporter_factory,
        )

        for file_name, names in self.catalog.cache_collisions().items():
            logger.warning(
                "Assets %s share the cache file '%s' and will overwrite each other",
                ", ".join(names),
                file_name,
            )

    @property
    def config(self) -> DeployConfig:
        return self._config

    # ----- helpers -----
    def _destination_for(self, asset_name: str, descriptor: AssetDescriptor) -> Path:
        root = os.path.normpath(os.path.abspath(self.root_path))
        target = os.path.normpath(os.path.join(root, descriptor.destination))
        if target != root and not target.startswith(root + os.sep):
            raise ConfigurationError(
                f"destination '{descriptor.destination}' is outside the install root",
                asset_name=asset_name,
            )
        return self.root_path / descriptor.destination

    @staticmethod
    def _report_warnings(outcome: TransferOutcome, subject: str) -> None:
        for warning in outcome.warnings:
            logger.warning("%s: %s", subject, warning)

    def _fetch(self, descriptor: AssetDescriptor, cache_path: Path) -> TransferOutcome:
        transport = descriptor.transport
        if transport == TransportKind.http.value:
            return self.http.fetch(descriptor.url, cache_path)
        if transport == TransportKind.ftp.value:
            return self.ftp.fetch(descriptor.remote_path, cache_path)
        raise UnknownTransportError(f"unknown download method: {descriptor.download_method}")

    # ----- catalog operations -----
    def download_to_cache(self, asset_name: str) -> Path:
        descriptor = self.catalog.resolve(asset_name)
        try:
            cache_path = self.cache.path_for(descriptor.url)
            outcome = self._fetch(descriptor, cache_path)
        except AssetError as e:
            raise e.with_asset(asset_name, "download to cache") from e

        self._report_warnings(outcome, asset_name)
        if outcome.skipped:
            logger.info("Asset '%s' already cached at %s", asset_name, cache_path)
        return cache_path

    def process_from_cache(self, asset_name: str, cache_path: PathLike) -> None:
        descriptor = self.catalog.resolve(asset_name)
        destination = self._destination_for(asset_name, descriptor)
        file_name = descriptor.file_name

        try:
            ensure_dir(destination)
            kind = descriptor.artifact_type
            if kind == ArtifactType.zip.value:
                extract_all(cache_path, destination)
            elif kind == ArtifactType.file.value:
                copy_file(cache_path, destination / file_name)
            else:
                raise UnknownArtifactTypeError(f"unknown artifact type: {descriptor.type!r}")
        except AssetError as e:
            raise e.with_asset(asset_name, f"processing '{file_name}'") from e

        logger.info("Asset '%s' processed from cache into %s", asset_name, destination)

    def get(self, asset_name: str) -> Path:
        cache_path = self.download_to_cache(asset_name)
        self.process_from_cache(asset_name, cache_path)
        descriptor = self.catalog.resolve(asset_name)
        return self.root_path / descriptor.destination

    def purge_asset(self, asset_name: str) -> None:
        descriptor = self.catalog.resolve(asset_name)
        destination = self._destination_for(asset_name, descriptor)
        try:
            self.cache.remove(descriptor.url)
            removed = self._clear_staged(descriptor, destination)
        except AssetError as e:
            raise e.with_asset(asset_name, "purge") from e
        logger.info(
            "Purged asset '%s' (%d staged entries removed from %s)",
            asset_name,
            removed,
            destination,
        )

    def _clear_staged(self, descriptor: AssetDescriptor, destination: Path) -> int:
        root = os.path.normpath(os.path.abspath(self.root_path))
        if os.path.normpath(os.path.abspath(destination)) != root:
            return clear_directory(destination)
        # Assets staged directly into the root share it with every other asset
        if descriptor.artifact_type == ArtifactType.file.value and descriptor.file_name:
            return int(remove_file(destination / descriptor.file_name))
        logger.warning(
            "Not clearing install root %s for asset without a destination directory", destination
        )
        return 0

    # ----- catalog independent operations -----
    def extract_file(self, archive_path: PathLike, member_path: str, dest_path: PathLike) -> None:
        extract_member(archive_path, member_path, dest_path)

    def list_remote_directory(self, path: str) -> List[RemoteEntry]:
        return self.ftp.list_directory(path)

    def download_http(self, url: str, local_path: PathLike) -> bool:
        outcome = self.http.fetch(url, local_path)
        self._report_warnings(outcome, url)
        return outcome.skipped

    def download_ftp(self, ftp_path: str, local_path: PathLike) -> bool:
        outcome = self.ftp.fetch(ftp_path, local_path)
        self._report_warnings(outcome, ftp_path)
        return outcome.skipped

    def fetch_url_to_cache(self, url: str) -> Path:
        """Download an arbitrary http(s) URL into the cache, keyed by its basename."""
        cache_path = self.cache.path_for(url)
        self.http.fetch(url, cache_path)
        return cache_path
