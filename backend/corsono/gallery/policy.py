"""Extension allow-listing per gallery namespace.

The policy is the single authority on which files a gallery accepts, both on
upload and when listing what is already on disk. Unknown namespaces map to an
empty set so that everything is rejected.
"""
from types import MappingProxyType
from typing import FrozenSet, Mapping, Optional

_EMPTY: FrozenSet[str] = frozenset()


def normalize_extension(extension: Optional[str]) -> str:
    """Lower-case an extension and drop a leading dot (``.PNG`` -> ``png``)."""
    if not extension:
        return ""
    return extension.lstrip(".").lower()


class ExtensionPolicy:
    """Immutable namespace -> AllowedExtensionSet mapping."""

    def __init__(self, extensions: Mapping[str, FrozenSet[str]]) -> None:
        self._extensions = MappingProxyType({
            namespace: frozenset(normalize_extension(ext) for ext in allowed)
            for namespace, allowed in extensions.items()
        })

    def extensions_for(self, namespace: str) -> FrozenSet[str]:
        return self._extensions.get(namespace, _EMPTY)

    def allowed(self, namespace: str, extension: Optional[str]) -> bool:
        ext = normalize_extension(extension)
        if not ext:
            return False
        return ext in self.extensions_for(namespace)

    def __contains__(self, namespace: object) -> bool:
        return namespace in self._extensions

    def __repr__(self) -> str:
        parts = ", ".join(
            f"{ns}={sorted(exts)}" for ns, exts in sorted(self._extensions.items())
        )
        return f"ExtensionPolicy({parts})"
