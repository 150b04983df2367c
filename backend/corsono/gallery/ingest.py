"""Multipart ingestion pipeline for gallery uploads.

Each part goes through, in order: field filter, filename sanitization,
extension check, size check, unique name generation, directory creation and
an atomic write. Stored files land in:

    <gallery directory>/<uuid>[-<stem>].<ext>

Policy rejections only shrink the manifest. Unreadable parts raise
ProtocolFault and filesystem failures raise StorageFault; both abort the
request.
"""
import asyncio
import logging
import os
import re
import uuid
from pathlib import Path, PurePosixPath
from typing import AsyncIterable, Iterable, Optional, Tuple, Union

from .catalog import GalleryCatalog
from .errors import ProtocolFault, StorageFault
from .policy import normalize_extension
from .schemas import Manifest, StoredItem, UploadPart

logger = logging.getLogger(__name__)

PLACEHOLDER_FILENAME = "unnamed"
MAX_STEM_LENGTH = 40

_STEM_UNSAFE_RE = re.compile(r"[^A-Za-z0-9_-]+")


def sanitize_filename(filename: Optional[str]) -> str:
    """Reduce an untrusted client filename to a bare base name.

    Both ``/`` and ``\\`` count as separators so Windows-style paths cannot
    smuggle directory components through. Missing or degenerate names become
    ``unnamed``.
    """
    if not filename:
        return PLACEHOLDER_FILENAME
    cleaned = filename.replace("\x00", "").replace("\\", "/")
    base = PurePosixPath(cleaned).name.strip()
    if base in ("", ".", ".."):
        return PLACEHOLDER_FILENAME
    return base


def split_extension(basename: str) -> Tuple[str, str]:
    """Return ``(stem, lower-cased extension)``; dot-files have no extension."""
    path = PurePosixPath(basename)
    return path.stem, normalize_extension(path.suffix)


def build_stored_name(extension: str, stem: Optional[str] = None) -> str:
    """Generate a collision-free storage filename."""
    name = str(uuid.uuid4())
    if stem:
        slug = _STEM_UNSAFE_RE.sub("-", stem).strip("-")[:MAX_STEM_LENGTH]
        if slug:
            name = f"{name}-{slug}"
    return f"{name}.{extension}"


def _write_atomic(target: Path, data: bytes) -> None:
    """Write ``data`` to a hidden temp file next to ``target`` and rename it in.

    Listing only ever sees the complete file or nothing.
    """
    tmp_path = target.with_name(f".{target.name}.tmp")
    try:
        with tmp_path.open("xb") as fh:
            fh.write(data)
            fh.flush()
            os.fsync(fh.fileno())
        os.replace(tmp_path, target)
    except BaseException:
        tmp_path.unlink(missing_ok=True)
        raise


PartSource = Union[AsyncIterable[UploadPart], Iterable[UploadPart]]


class IngestionPipeline:
    """Stores the accepted parts of one upload request."""

    def __init__(self, catalog: GalleryCatalog) -> None:
        self._catalog = catalog

    async def ingest(self, namespace: str, parts: PartSource) -> Manifest:
        """Process ``parts`` in arrival order and return what was stored.

        Args:
            namespace: Gallery to store into.
            parts: Upload parts, sync or async iterable.

        Returns:
            Manifest of stored filenames plus policy-rejected client names.

        Raises:
            ProtocolFault: If a part body cannot be read.
            StorageFault: If the directory or a file cannot be written.
        """
        manifest = Manifest()
        gallery = self._catalog.get(namespace)
        directory_ready = False

        async for part in _aiter(parts):
            # Other form fields are tolerated, not rejected.
            if gallery is not None and part.field_name != gallery.field_name:
                logger.debug(
                    "Skipping field %r for gallery %s", part.field_name, namespace
                )
                continue

            basename = sanitize_filename(part.filename)
            stem, ext = split_extension(basename)

            if gallery is None or not self._catalog.policy.allowed(namespace, ext):
                logger.info(
                    "Rejected %r for gallery %s: extension %r not allowed",
                    basename, namespace, ext,
                )
                manifest.rejected.append(basename)
                continue

            # At most limit + 1 bytes are read from the part.
            limit = self._catalog.max_file_size_bytes
            try:
                data = await part.body.read(-1 if limit is None else limit + 1)
            except (OSError, ValueError) as exc:
                logger.error("Failed to read upload part %r: %s", basename, exc)
                raise ProtocolFault(f"Failed to read upload part {basename!r}: {exc}") from exc

            if limit is not None and len(data) > limit:
                logger.info(
                    "Rejected %r for gallery %s: %d bytes exceeds limit of %d",
                    basename, namespace, len(data), limit,
                )
                manifest.rejected.append(basename)
                continue

            if not directory_ready:
                await _run_blocking(self._ensure_directory, gallery.directory)
                directory_ready = True

            stored_name = build_stored_name(ext, stem if self._catalog.keep_stem else None)
            target = gallery.directory / stored_name
            try:
                await _run_blocking(_write_atomic, target, data)
            except OSError as exc:
                logger.error("Failed to write %s: %s", target, exc)
                raise StorageFault(f"Failed to write file: {exc}") from exc

            logger.info(
                "Saved %s (%d bytes) to gallery %s from %r",
                stored_name, len(data), namespace, basename,
            )
            manifest.items.append(
                StoredItem(namespace=namespace, filename=stored_name, size_bytes=len(data))
            )

        return manifest

    @staticmethod
    def _ensure_directory(directory: Path) -> None:
        try:
            directory.mkdir(parents=True, exist_ok=True)
        except OSError as exc:
            logger.error("Failed to ensure directory %s: %s", directory, exc)
            raise StorageFault(f"Failed to ensure directory: {exc}") from exc


async def _aiter(parts: PartSource):
    if hasattr(parts, "__aiter__"):
        async for part in parts:
            yield part
    else:
        for part in parts:
            yield part


async def _run_blocking(func, *args):
    return await asyncio.get_running_loop().run_in_executor(None, func, *args)
