"""
Tests for model asset resolution.

Author: Yobie Benjamin
Date: 2026-10-19
"""

import pytest

from smsguard.core.assets import ModelAsset
from smsguard.core.exceptions import AssetNotFoundError


@pytest.fixture
def dirs(tmp_path):
    models = tmp_path / "models"
    assets = tmp_path / "assets"
    assets.mkdir()
    return models, assets


class TestModelAsset:
    """Test lookup order."""

    def test_override_wins(self, dirs, tmp_path):
        models, assets = dirs
        override = tmp_path / "external.gguf"
        override.write_bytes(b"external")
        (assets / "model.gguf").write_bytes(b"bundled")

        asset = ModelAsset("model.gguf", models, assets, override_path=override)

        assert asset.resolve() == override
        assert not asset.local_path.exists()

    def test_missing_override_falls_back_to_assets(self, dirs, tmp_path):
        models, assets = dirs
        (assets / "model.gguf").write_bytes(b"bundled")

        asset = ModelAsset("model.gguf", models, assets, override_path=tmp_path / "nope.gguf")

        assert asset.resolve() == models / "model.gguf"

    def test_copies_bundled_asset_once(self, dirs):
        models, assets = dirs
        (assets / "model.gguf").write_bytes(b"bundled")
        asset = ModelAsset("model.gguf", models, assets)

        path = asset.resolve()
        assert path.read_bytes() == b"bundled"
        assert not (models / "model.gguf.partial").exists()

        (assets / "model.gguf").write_bytes(b"changed")
        assert asset.resolve().read_bytes() == b"bundled"

    def test_existing_local_copy(self, dirs):
        models, assets = dirs
        models.mkdir()
        (models / "model.gguf").write_bytes(b"local")

        assert ModelAsset("model.gguf", models, assets).resolve().read_bytes() == b"local"

    def test_missing_everywhere(self, dirs):
        models, assets = dirs

        with pytest.raises(AssetNotFoundError):
            ModelAsset("model.gguf", models, assets).resolve()

    def test_at_path(self, tmp_path):
        path = tmp_path / "embedder.onnx"
        path.write_bytes(b"x")

        asset = ModelAsset.at(path)

        assert asset.filename == "embedder.onnx"
        assert asset.resolve() == path

    def test_at_missing_path(self, tmp_path):
        with pytest.raises(AssetNotFoundError):
            ModelAsset.at(tmp_path / "missing.onnx").resolve()
