"""
Image Resolver
==============

Finds a representative image in article markup and resolves it to an asset
in the asset store.
"""

from typing import Optional
from urllib.parse import urlparse

from bs4 import BeautifulSoup

from ..config.settings import get_settings
from ..utils.logging import get_logger_for_component
from ..utils.exceptions import AssetError
from .asset_store import AssetStore, url_basename


class ImageResolver:
    """Candidate image detection and asset correlation."""

    def __init__(self, asset_store: AssetStore, recent_window: Optional[int] = None):
        self.asset_store = asset_store
        self.recent_window = recent_window or get_settings().media.recent_assets_window
        self.logger = get_logger_for_component("image_resolver")

    @staticmethod
    def find_candidate_image(markup: str, page_url: Optional[str] = None) -> Optional[str]:
        """First ``img`` whose src is absolute http(s) or scheme-relative.

        Scheme-relative sources take the scheme of ``page_url``, https when
        the page scheme is unknown.
        """
        if not markup:
            return None

        soup = BeautifulSoup(markup, "html.parser")
        for img in soup.find_all("img"):
            src = (img.get("src") or "").strip()
            if src.startswith("//"):
                scheme = urlparse(page_url).scheme.lower() if page_url else ""
                if scheme not in ("http", "https"):
                    scheme = "https"
                return f"{scheme}:{src}"
            if urlparse(src).scheme.lower() in ("http", "https"):
                return src
        return None

    async def resolve_asset(self, url: str) -> Optional[str]:
        """Store ``url`` and find the new asset among the most recent ones.

        Correlation is by filename, so it is best-effort: concurrent uploads
        of images with the same name can be confused. None when the store
        fails or no recent asset matches.
        """
        basename = url_basename(url).lower()
        try:
            await self.asset_store.store_image(url)
            recent = self.asset_store.recent_assets(limit=self.recent_window)
        except AssetError as e:
            self.logger.warning(f"Image store failed: {e}", extra=e.to_dict())
            return None
        except Exception as e:
            self.logger.error(f"Unexpected image store failure for {url}: {e}", exc_info=True)
            return None

        if not basename:
            return None

        for asset in recent:
            candidate = url_basename(asset.url).lower() or asset.asset_id.lower()
            if basename in candidate:
                return asset.asset_id

        self.logger.info(f"No recent asset matches {basename}")
        return None

    async def resolve(self, markup: str, page_url: Optional[str] = None) -> Optional[str]:
        """Candidate image of ``markup`` resolved to an asset reference."""
        candidate = self.find_candidate_image(markup, page_url)
        if candidate is None:
            return None
        return await self.resolve_asset(candidate)
