"""
Model asset resolution.

A model is looked up at an externally provisioned override path first,
then in the local model directory, and finally copied there once from
the bundled assets directory.

Author: Yobie Benjamin
Date: 2026-10-19
"""

import os
import shutil
from dataclasses import dataclass
from pathlib import Path
from typing import Optional, Union

from loguru import logger

from smsguard.core.exceptions import AssetNotFoundError


@dataclass(frozen=True)
class ModelAsset:
    """Location of one model file."""

    filename: str
    models_dir: Path
    assets_dir: Optional[Path] = None
    override_path: Optional[Path] = None

    @classmethod
    def at(cls, path: Union[str, Path]) -> "ModelAsset":
        """Asset that already lives at a fixed local path."""
        path = Path(path)
        return cls(filename=path.name, models_dir=path.parent)

    @property
    def local_path(self) -> Path:
        return self.models_dir / self.filename

    def resolve(self) -> Path:
        """
        Find a readable copy of the model.

        Returns:
            Path to the model file

        Raises:
            AssetNotFoundError: If no copy exists and the bundled asset
                cannot be copied
        """
        if self.override_path is not None:
            override = Path(self.override_path)
            if override.is_file() and os.access(override, os.R_OK):
                logger.debug(f"Using external model from: {override}")
                return override
            logger.debug(f"External model not found at {override}, falling back to assets")

        local = self.local_path
        if local.is_file():
            logger.debug(f"Model already exists at: {local}")
            return local

        if self.assets_dir is None:
            raise AssetNotFoundError(f"Model not found: {local}")

        bundled = Path(self.assets_dir) / self.filename
        if not bundled.is_file():
            raise AssetNotFoundError(
                f"Model not found in assets: {bundled}",
                details={"local_path": str(local)},
            )

        logger.info(f"Copying model from assets: {bundled} -> {local}")
        try:
            local.parent.mkdir(parents=True, exist_ok=True)
            partial = local.with_name(local.name + ".partial")
            shutil.copyfile(bundled, partial)
            partial.replace(local)
        except OSError as e:
            raise AssetNotFoundError(f"Failed to copy model from assets: {e}") from e

        return local
