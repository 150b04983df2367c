"""Gallery listing service.

The filesystem is the only index: every call rescans the namespace
directory, keeps regular files whose extension the policy allows, and sorts
them by name so repeated calls return a stable order.
"""
import asyncio
import logging
import os
from typing import List

from .catalog import GalleryCatalog, public_url
from .ingest import split_extension
from .schemas import GalleryEntry

logger = logging.getLogger(__name__)


class ListingService:
    """Builds GalleryEntry lists straight from disk."""

    def __init__(self, catalog: GalleryCatalog) -> None:
        self._catalog = catalog

    async def list_gallery(self, namespace: str) -> List[GalleryEntry]:
        return await asyncio.get_running_loop().run_in_executor(
            None, self.scan, namespace
        )

    def scan(self, namespace: str) -> List[GalleryEntry]:
        """Synchronous scan; a missing or unreadable directory lists as empty."""
        gallery = self._catalog.get(namespace)
        if gallery is None:
            return []

        names = []
        try:
            with os.scandir(gallery.directory) as entries:
                for entry in entries:
                    try:
                        if not entry.is_file():
                            continue
                    except OSError:
                        continue
                    _, ext = split_extension(entry.name)
                    if self._catalog.policy.allowed(namespace, ext):
                        names.append(entry.name)
        except FileNotFoundError:
            return []
        except OSError as exc:
            logger.warning("Cannot read gallery directory %s: %s", gallery.directory, exc)
            return []

        names.sort()
        return [GalleryEntry(name=name, url=public_url(namespace, name)) for name in names]
