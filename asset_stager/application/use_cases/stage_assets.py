import logging
from pathlib import Path
from typing import Dict, Iterable

from asset_stager.application.interfaces import IAssetManager

logger = logging.getLogger(__name__)


class StageAssetsUseCase:
    """Fetch and materialize a list of catalog assets, in order.

    The first failure propagates unchanged; assets staged before it stay in
    place. Works against any IAssetManager, including test doubles.
    """

    def __init__(self, manager: IAssetManager) -> None:
        self._manager = manager

    def execute(self, names: Iterable[str]) -> Dict[str, Path]:
        staged: Dict[str, Path] = {}
        for name in names:
            staged[name] = Path(self._manager.get(name))
            logger.info("Staged asset '%s' at %s", name, staged[name])
        return staged
