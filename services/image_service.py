"""
Image materializer.

In passthrough mode product images keep the vendor URLs. In materialize
mode each image is downloaded and re-hosted through the blob store, so
the catalog stops depending on the vendor's CDN. A failed image always
keeps its original URL.
"""

import os
from typing import Optional
from urllib.parse import urlparse
import requests
import structlog

from config.settings import settings
from integrations.catalog import BlobStore
from models.product import MappedProduct, ProductImage

logger = structlog.get_logger(__name__)

DEFAULT_CONTENT_TYPE = "image/jpeg"


def image_filename(url: str, handle: str, index: int) -> str:
    """Last path segment of the URL, or a generated name when it has none."""
    name = os.path.basename(urlparse(url).path)
    if name and "." in name:
        return name
    return f"product-{handle}-image-{index}.jpg"


class ImageService:
    """Applies the configured image mode to mapped products."""

    def __init__(
        self,
        blob_store: Optional[BlobStore] = None,
        mode: Optional[str] = None,
        timeout: Optional[int] = None
    ):
        self.blob_store = blob_store
        self.mode = mode or settings.image_mode
        self.timeout = timeout or settings.image_fetch_timeout_seconds

        if self.mode == "materialize" and self.blob_store is None:
            logger.warning("image_blob_store_missing", mode=self.mode)
            self.mode = "passthrough"

    def process(self, product: MappedProduct) -> MappedProduct:
        """
        Replace image URLs with blob store URLs (materialize mode only).

        Returns:
            The same product, images updated in place
        """
        if self.mode != "materialize" or not product.images:
            return product

        images = []
        stored = 0
        for index, image in enumerate(product.images, start=1):
            url = self._materialize(image.url, product.handle, index)
            if url != image.url:
                stored += 1
            images.append(ProductImage(url=url))

        product.images = images
        logger.debug("images_materialized", handle=product.handle, stored=stored, total=len(images))
        return product

    def _materialize(self, url: str, handle: str, index: int) -> str:
        try:
            response = requests.get(url, timeout=self.timeout)
            response.raise_for_status()
        except requests.RequestException as e:
            logger.warning("image_download_failed", url=url, error=str(e))
            return url

        content_type = response.headers.get("content-type") or DEFAULT_CONTENT_TYPE
        filename = image_filename(url, handle, index)

        try:
            return self.blob_store.put(response.content, content_type, filename)
        except Exception as e:
            logger.warning("image_upload_failed", url=url, filename=filename, error=str(e))
            return url
