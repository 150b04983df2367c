"""Gallery router: upload, listing and static retrieval endpoints.

Endpoints:
    POST /api/{namespace}/gallery/upload  : Multipart upload into a gallery
    GET  /api/{namespace}/gallery         : Sorted listing of stored files
    GET  /images/{namespace}/{filename}   : Raw bytes of one stored file

The namespace is data: one set of handlers serves every configured gallery.
"""
import logging
from typing import AsyncIterator, List, Optional

from fastapi import APIRouter, Request
from fastapi.responses import FileResponse, JSONResponse
from starlette.datastructures import FormData, UploadFile

from .catalog import GalleryCatalog
from .errors import IngestError
from .ingest import IngestionPipeline, sanitize_filename, split_extension
from .listing import ListingService
from .multipart import parse_upload_form
from .schemas import ErrorResponse, GalleryEntry, UploadPart, UploadResponse

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api", tags=["gallery"])
images_router = APIRouter(prefix="/images", tags=["gallery"])

_ERROR_RESPONSES = {
    400: {"model": ErrorResponse},
    500: {"model": ErrorResponse},
    503: {"model": ErrorResponse},
}

# ---------------------------------------------------------------------------
# Singleton catalog management
# ---------------------------------------------------------------------------

_catalog: Optional[GalleryCatalog] = None


def get_catalog() -> Optional[GalleryCatalog]:
    """Return the global GalleryCatalog, or None if not configured."""
    return _catalog


def set_catalog(catalog: Optional[GalleryCatalog]) -> None:
    """Set (or clear) the global GalleryCatalog."""
    global _catalog
    _catalog = catalog


def _error(message: str, status_code: int) -> JSONResponse:
    return JSONResponse({"error": message}, status_code=status_code)


def _not_configured() -> JSONResponse:
    logger.warning("[gallery] Catalog not configured, returning 503")
    return _error("Gallery storage not configured", 503)


class _TextBody:
    """Body of a form field sent without a filename."""

    def __init__(self, value: str) -> None:
        self._data = value.encode("utf-8")

    async def read(self, size: int = -1) -> bytes:
        return self._data if size < 0 else self._data[:size]


async def _iter_parts(form: FormData) -> AsyncIterator[UploadPart]:
    # multi_items() preserves arrival order. Text values have no filename and
    # end up as "unnamed" rejections when sent under the upload field.
    for field_name, value in form.multi_items():
        if isinstance(value, UploadFile):
            yield UploadPart(field_name=field_name, filename=value.filename, body=value)
        else:
            yield UploadPart(field_name=field_name, filename=None, body=_TextBody(value))


# ---------------------------------------------------------------------------
# Endpoints
# ---------------------------------------------------------------------------


@router.post(
    "/{namespace}/gallery/upload",
    response_model=UploadResponse,
    responses=_ERROR_RESPONSES,
)
async def upload_gallery(request: Request, namespace: str) -> UploadResponse | JSONResponse:
    """Store every acceptable file part of a multipart upload.

    Parts under other field names, with disallowed extensions or over the
    size limit are skipped; the response reports how many were stored.

    Returns:
        UploadResponse with generated filenames and count.
        400 JSON error for non-multipart bodies or unreadable parts.
        500 JSON error if the gallery directory or a file cannot be written.
    """
    catalog = get_catalog()
    if catalog is None:
        return _not_configured()

    content_type = request.headers.get("content-type", "").lower()
    if not content_type.startswith("multipart/form-data"):
        return _error("Expected a multipart/form-data request body", 400)

    try:
        form = await parse_upload_form(request, catalog.max_files)
    except IngestError as exc:
        logger.warning("[gallery/upload] Bad request for %s: %s", namespace, exc.message)
        return _error(exc.message, exc.status_code)

    try:
        manifest = await IngestionPipeline(catalog).ingest(namespace, _iter_parts(form))
    except IngestError as exc:
        return _error(exc.message, exc.status_code)
    finally:
        await form.close()

    logger.info(
        "[gallery/upload] namespace=%s saved=%d rejected=%d",
        namespace, manifest.count, len(manifest.rejected),
    )
    return UploadResponse(
        saved=manifest.stored,
        count=manifest.count,
        message=f"Uploaded {manifest.count} file(s) to {namespace} gallery",
        rejected=manifest.rejected,
    )


@router.get(
    "/{namespace}/gallery",
    response_model=List[GalleryEntry],
    responses={503: {"model": ErrorResponse}},
)
async def list_gallery(namespace: str) -> List[GalleryEntry] | JSONResponse:
    """List a gallery's files sorted by name; unknown or empty galleries give []."""
    catalog = get_catalog()
    if catalog is None:
        return _not_configured()
    return await ListingService(catalog).list_gallery(namespace)


@images_router.get("/{namespace}/{filename}", responses={404: {"model": ErrorResponse}})
async def serve_gallery_file(namespace: str, filename: str):
    """Serve a stored file's raw bytes."""
    catalog = get_catalog()
    if catalog is None:
        return _not_configured()

    gallery = catalog.get(namespace)
    _, ext = split_extension(filename)
    if (
        gallery is None
        or sanitize_filename(filename) != filename
        or not catalog.policy.allowed(namespace, ext)
    ):
        return _error("File not found", 404)

    file_path = gallery.directory / filename
    if not file_path.is_file():
        return _error("File not found", 404)

    return FileResponse(path=file_path)
