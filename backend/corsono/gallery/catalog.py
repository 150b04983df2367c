"""Immutable gallery catalog built once at startup.

Holds, per namespace, the storage directory and upload field name together
with the shared ExtensionPolicy. Both the ingestion pipeline and the listing
service receive the same catalog instance.
"""
from dataclasses import dataclass
from pathlib import Path
from types import MappingProxyType
from typing import FrozenSet, Iterator, Mapping, Optional

from corsono.config import MediaSettings

from .policy import ExtensionPolicy


@dataclass(frozen=True)
class GalleryNamespace:
    name: str
    directory: Path
    field_name: str


class GalleryCatalog:
    """Namespace registry plus upload limits."""

    def __init__(
        self,
        namespaces: Mapping[str, GalleryNamespace],
        policy: ExtensionPolicy,
        max_file_size_bytes: Optional[int] = None,
        max_files: int = 1000,
        keep_stem: bool = False,
    ) -> None:
        self._namespaces = MappingProxyType(dict(namespaces))
        self.policy = policy
        self.max_file_size_bytes = max_file_size_bytes
        self.max_files = max_files
        self.keep_stem = keep_stem

    @classmethod
    def from_settings(cls, media: MediaSettings) -> "GalleryCatalog":
        namespaces = {}
        extensions = {}
        for ns in media.namespaces:
            namespaces[ns.name] = GalleryNamespace(
                name=ns.name,
                directory=Path(media.directory_for(ns)),
                field_name=ns.field_name,
            )
            extensions[ns.name] = ns.allowed_extensions()
        return cls(
            namespaces,
            ExtensionPolicy(extensions),
            max_file_size_bytes=media.max_file_size_bytes,
            max_files=media.max_files,
            keep_stem=media.keep_stem,
        )

    def get(self, namespace: str) -> Optional[GalleryNamespace]:
        return self._namespaces.get(namespace)

    def extensions_for(self, namespace: str) -> FrozenSet[str]:
        return self.policy.extensions_for(namespace)

    def __iter__(self) -> Iterator[GalleryNamespace]:
        return iter(self._namespaces.values())

    def __len__(self) -> int:
        return len(self._namespaces)


def public_url(namespace: str, filename: str) -> str:
    """Public path under which the static route serves a stored file."""
    return f"/images/{namespace}/{filename}"
