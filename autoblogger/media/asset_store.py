"""
Asset Store
===========

Interface to the binary store hosting downloaded images, plus a local
directory implementation.

The store does not hand back an identifier for an upload; callers locate
the new asset among the most recently created ones.
"""

import asyncio
import re
from abc import ABC, abstractmethod
from dataclasses import dataclass
from datetime import datetime, timezone
from pathlib import Path, PurePosixPath
from typing import List, Optional
from urllib.parse import unquote, urlparse

import aiohttp

from ..config.settings import get_settings
from ..utils.http import http_session
from ..utils.logging import get_logger_for_component
from ..utils.exceptions import AssetError


@dataclass
class StoredAsset:
    """An image registered in the asset store."""
    asset_id: str
    url: str
    created_at: datetime


def url_basename(url: str) -> str:
    """Last path segment of ``url``, percent-decoded, without query string."""
    return unquote(PurePosixPath(urlparse(url).path).name)


class AssetStore(ABC):
    """External binary asset store."""

    @abstractmethod
    async def store_image(self, url: str) -> None:
        """Download ``url`` and register it as a new asset.

        Raises:
            AssetError: If the image cannot be downloaded or stored
        """

    @abstractmethod
    def recent_assets(self, limit: int = 5) -> List[StoredAsset]:
        """Most recently created assets, newest first."""


class LocalAssetStore(AssetStore):
    """Stores images as files in a local directory."""

    SAFE_NAME_PATTERN = re.compile(r"[^A-Za-z0-9._-]+")

    def __init__(self, asset_dir: Optional[str] = None, timeout: Optional[int] = None):
        settings = get_settings()
        self.asset_dir = Path(asset_dir or settings.media.asset_dir)
        self.asset_dir.mkdir(parents=True, exist_ok=True)
        self.timeout = timeout or settings.limits.image_timeout
        self.user_agent = settings.limits.user_agent
        self.logger = get_logger_for_component("asset_store")

    async def store_image(self, url: str) -> None:
        data = await self._download(url)
        try:
            target = self._unique_path(url)
            target.write_bytes(data)
        except OSError as e:
            raise AssetError(f"Failed to write image: {e}", url=url) from e
        self.logger.info(f"Stored image {target.name} ({len(data)} bytes) from {url}")

    async def _download(self, url: str) -> bytes:
        try:
            async with http_session(self.timeout, headers={"User-Agent": self.user_agent}) as session:
                async with session.get(url, allow_redirects=True) as response:
                    if not 200 <= response.status < 300:
                        raise AssetError(f"HTTP {response.status} downloading image", url=url)
                    if not response.content_type.startswith("image/"):
                        raise AssetError(f"Not an image: {response.content_type}", url=url)
                    return await response.read()
        except asyncio.TimeoutError as e:
            raise AssetError(f"Image download timeout after {self.timeout}s", url=url) from e
        except aiohttp.ClientError as e:
            raise AssetError(f"Image download failed: {e}", url=url) from e

    def _unique_path(self, url: str) -> Path:
        name = self.SAFE_NAME_PATTERN.sub("-", url_basename(url)).strip("-.") or "image"
        stem, suffix = Path(name).stem, Path(name).suffix
        candidate = self.asset_dir / name
        counter = 1
        while candidate.exists():
            candidate = self.asset_dir / f"{stem}-{counter}{suffix}"
            counter += 1
        return candidate

    def recent_assets(self, limit: int = 5) -> List[StoredAsset]:
        try:
            entries = list(self.asset_dir.iterdir())
        except OSError as e:
            raise AssetError(f"Cannot list asset directory {self.asset_dir}: {e}") from e

        stamped = []
        for path in entries:
            try:
                if path.is_file():
                    stamped.append((path.stat().st_mtime, path))
            except FileNotFoundError:
                continue
            except OSError as e:
                raise AssetError(f"Cannot read asset {path.name}: {e}") from e

        stamped.sort(key=lambda entry: entry[0], reverse=True)
        return [
            StoredAsset(
                asset_id=path.name,
                url=path.resolve().as_uri(),
                created_at=datetime.fromtimestamp(mtime, tz=timezone.utc),
            )
            for mtime, path in stamped[:limit]
        ]
