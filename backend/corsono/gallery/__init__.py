"""Media gallery module for Corsono.

Handles multi-file uploads into named galleries and lists what is stored.
Files live on local disk, one directory per gallery namespace, under
UUID-based names; the directory listing is the only index.

Stock galleries:
- corsono: photos (jpg, jpeg, png, webp), form field "photos"
- art: artwork and clips (jpg, jpeg, png, webp, gif, mp4, mov), form field "artwork"
"""

from .catalog import GalleryCatalog, GalleryNamespace, public_url
from .errors import IngestError, ProtocolFault, StorageFault
from .ingest import IngestionPipeline, sanitize_filename
from .listing import ListingService
from .policy import ExtensionPolicy
from .router import images_router, router

__all__ = [
    "ExtensionPolicy",
    "GalleryCatalog",
    "GalleryNamespace",
    "IngestError",
    "IngestionPipeline",
    "ListingService",
    "ProtocolFault",
    "StorageFault",
    "images_router",
    "public_url",
    "router",
    "sanitize_filename",
]
