import json
import logging
import time
from pathlib import Path
from typing import Dict, Optional, Union

from sitemigrate.config import settings
from sitemigrate.models.assets import MANIFEST_VERSION, AssetManifest, ImageAsset

logger = logging.getLogger(__name__)


class AssetManifestManager:
    """Persists the ``source URL -> ImageAsset`` map between runs."""

    def __init__(self, manifest_path: Optional[Union[str, Path]] = None) -> None:
        self.manifest_path = Path(manifest_path or settings.asset_manifest_path)
        self.manifest = AssetManifest(timestamp=_now_ms())

    def load(self) -> AssetManifest:
        """Read the manifest from disk; a missing or unreadable file starts empty."""
        try:
            raw = self.manifest_path.read_text(encoding="utf-8")
        except FileNotFoundError:
            logger.info("No asset manifest at %s, starting fresh", self.manifest_path)
            self.manifest = AssetManifest(timestamp=_now_ms())
            return self.manifest

        try:
            self.manifest = AssetManifest.model_validate_json(raw)
        except ValueError as exc:
            logger.warning("Ignoring unreadable asset manifest %s: %s", self.manifest_path, exc)
            self.manifest = AssetManifest(timestamp=_now_ms())
        return self.manifest

    def save(self) -> None:
        self.manifest.version = MANIFEST_VERSION
        self.manifest.timestamp = _now_ms()
        self.manifest_path.parent.mkdir(parents=True, exist_ok=True)
        self.manifest_path.write_text(
            json.dumps(self.manifest.model_dump(), indent=2), encoding="utf-8"
        )

    def add_asset(self, asset: ImageAsset) -> None:
        # Store the plain ImageAsset so extractor-only fields stay out of the file
        self.manifest.assets[asset.url] = ImageAsset.model_validate(
            asset.model_dump(include=set(ImageAsset.model_fields))
        )

    def get_asset(self, url: str) -> Optional[ImageAsset]:
        return self.manifest.assets.get(url)

    def get_all_assets(self) -> Dict[str, ImageAsset]:
        return dict(self.manifest.assets)

    def remove_asset(self, url: str) -> bool:
        return self.manifest.assets.pop(url, None) is not None

    def clear(self) -> None:
        self.manifest.assets.clear()


def _now_ms() -> int:
    return int(time.time() * 1000)
