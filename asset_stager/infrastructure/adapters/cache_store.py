from __future__ import annotations

import logging
from pathlib import Path
from typing import Union

from asset_stager.core.exceptions import ConfigurationError
from asset_stager.core.schemas import url_basename
from asset_stager.utils.file_utils import remove_file

logger = logging.getLogger(__name__)


class CacheStore:
    """Flat directory of raw downloaded artifacts keyed by remote file name.

    The cache path of an asset is a pure function of its URL basename:
    {cache_dir}/{basename(url)}. Distinct URLs sharing a basename share a
    cache file; see CatalogResolver.cache_collisions().
    """

    def __init__(self, cache_dir: Union[str, Path]) -> None:
        self.cache_dir = Path(cache_dir)

    def path_for(self, url: str) -> Path:
        name = url_basename(url)
        if not name or name in (".", ".."):
            raise ConfigurationError(f"URL has no file name to cache under: {url}", remote=url)
        return self.cache_dir / name

    def contains(self, url: str) -> bool:
        return self.path_for(url).is_file()

    def remove(self, url: str) -> bool:
        """Delete the cached file for url; a missing file is not an error."""
        removed = remove_file(self.path_for(url))
        if removed:
            logger.info("Removed cached file for %s", url)
        return removed
