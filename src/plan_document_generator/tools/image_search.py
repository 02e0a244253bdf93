"""Photo search capability backed by the Unsplash API."""

from __future__ import annotations

import logging
from typing import Protocol

import httpx

from ..errors import ProviderError
from ..models import ImageProviderConfig, ImageSearchHit

logger = logging.getLogger(__name__)


class ImageSearchProvider(Protocol):
    async def search_images(self, keywords: list[str], count: int) -> list[ImageSearchHit]: ...


class UnsplashImageSearch:
    """Landscape photo search. Returns ``[]`` when no access key is configured."""

    def __init__(
        self,
        config: ImageProviderConfig,
        *,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        self.config = config
        self._transport = transport

    async def search_images(self, keywords: list[str], count: int) -> list[ImageSearchHit]:
        if not self.config.unsplash_access_key:
            logger.debug("Unsplash access key not set; skipping photo search")
            return []
        query = " ".join(k for k in keywords if k).strip()
        if not query:
            return []

        params = {"query": query, "per_page": count, "orientation": "landscape"}
        headers = {"Authorization": f"Client-ID {self.config.unsplash_access_key}"}
        async with httpx.AsyncClient(
            base_url=self.config.unsplash_base_url,
            timeout=httpx.Timeout(self.config.request_timeout),
            transport=self._transport,
        ) as client:
            try:
                response = await client.get("/search/photos", params=params, headers=headers)
                response.raise_for_status()
            except httpx.HTTPError as e:
                raise ProviderError("unsplash", str(e)) from e
            payload = response.json()

        hits: list[ImageSearchHit] = []
        for photo in (payload.get("results") or [])[:count]:
            url = (photo.get("urls") or {}).get("regular")
            if not url:
                continue
            user = (photo.get("user") or {}).get("name")
            hits.append(ImageSearchHit(
                url=url,
                caption=photo.get("alt_description") or photo.get("description"),
                credit=f"Photo by {user} on Unsplash" if user else None,
            ))
        return hits
