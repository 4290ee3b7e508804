from pathlib import Path

import pytest

from asset_stager.application.interfaces import IAssetManager
from asset_stager.application.use_cases.stage_assets import StageAssetsUseCase
from asset_stager.core.exceptions import AssetNotFoundError, NetworkError


def test_fake_manager_satisfies_interface(fake_manager):
    assert isinstance(fake_manager, IAssetManager)


def test_stages_assets_in_order(fake_manager):
    result = StageAssetsUseCase(fake_manager).execute(["pkgB", "pkgA"])

    root = Path(fake_manager.config.root_path)
    assert result == {"pkgB": root / "tools", "pkgA": root / "appA"}
    assert fake_manager.calls == [("get", "pkgB"), ("get", "pkgA")]


def test_stops_at_first_failure(fake_manager):
    fake_manager.failing.add("pkgA")

    with pytest.raises(NetworkError) as exc:
        StageAssetsUseCase(fake_manager).execute(["pkgA", "pkgB"])

    assert exc.value.asset_name == "pkgA"
    assert fake_manager.calls == [("get", "pkgA")]


def test_unknown_asset_propagates(fake_manager):
    with pytest.raises(AssetNotFoundError):
        StageAssetsUseCase(fake_manager).execute(["pkgA", "nope", "pkgB"])
    assert ("get", "pkgB") not in fake_manager.calls
