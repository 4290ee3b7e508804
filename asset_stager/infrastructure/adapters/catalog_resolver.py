from __future__ import annotations

from collections import defaultdict
from typing import Dict, List, Mapping

from asset_stager.core.exceptions import AssetNotFoundError
from asset_stager.core.schemas import AssetDescriptor


class CatalogResolver:
    """Read-only lookup of asset descriptors by (case-sensitive) name."""

    def __init__(self, catalog: Mapping[str, AssetDescriptor]) -> None:
        self._catalog: Dict[str, AssetDescriptor] = dict(catalog)

    def resolve(self, name: str) -> AssetDescriptor:
        try:
            return self._catalog[name]
        except KeyError:
            raise AssetNotFoundError(
                f"asset '{name}' not found in catalog", asset_name=name
            ) from None

    def names(self) -> List[str]:
        return sorted(self._catalog)

    def __contains__(self, name: object) -> bool:
        return name in self._catalog

    def __len__(self) -> int:
        return len(self._catalog)

    def cache_collisions(self) -> Dict[str, List[str]]:
        """Cache file names claimed by more than one asset.

        Example:
            >>> CatalogResolver({
            ...     "a": AssetDescriptor(url="http://h/x/setup.exe", type="file"),
            ...     "b": AssetDescriptor(url="http://h/y/setup.exe", type="file"),
            ... }).cache_collisions()
            {'setup.exe': ['a', 'b']}
        """
        by_file: Dict[str, List[str]] = defaultdict(list)
        for name in sorted(self._catalog):
            by_file[self._catalog[name].file_name].append(name)
        return {f: names for f, names in by_file.items() if len(names) > 1}
