"""Corsono application configuration.

Loads settings from a single YAML file:
  * corsono.settings.yaml: server, logging and media gallery settings

The file location can be overridden with the ``CORSONO_SETTINGS`` environment
variable. A missing file is not an error: every section has defaults that
reproduce the two stock galleries (``corsono`` photos and ``art`` artwork).
"""
from __future__ import annotations

import logging
import os
import re
from pathlib import Path
from typing import Any, Dict, List, Optional

import yaml
from pydantic import BaseModel, Field, field_validator, model_validator

logger = logging.getLogger(__name__)

# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------

SETTINGS_FILE = Path("corsono.settings.yaml")
SETTINGS_ENV_VAR = "CORSONO_SETTINGS"

# Named extension policies a namespace can refer to.
IMAGE_EXTENSIONS = ("jpg", "jpeg", "png", "webp")
MEDIA_EXTENSIONS = ("jpg", "jpeg", "png", "webp", "gif", "mp4", "mov")

POLICIES: Dict[str, tuple] = {
    "image": IMAGE_EXTENSIONS,
    "media": MEDIA_EXTENSIONS,
}

_SEGMENT_RE = re.compile(r"^[a-z0-9][a-z0-9_-]*$")


def _load_yaml(path: Path) -> Dict[str, Any]:
    if not path.exists():
        logger.warning("Config file not found: %s", path)
        return {}
    with path.open(encoding="utf-8") as fh:
        return yaml.safe_load(fh) or {}


# ---------------------------------------------------------------------------
# Settings models
# ---------------------------------------------------------------------------


class ServerSettings(BaseModel):
    host:            str       = "127.0.0.1"
    port:            int       = 3001
    reload:          bool      = False
    allowed_origins: List[str] = Field(default_factory=lambda: ["*"])


class LoggingSettings(BaseModel):
    level: str = "info"


class NamespaceSettings(BaseModel):
    """One gallery: where it lives, which form field feeds it, what it accepts.

    Either ``policy`` (a named extension set) or an explicit ``extensions``
    list decides the accepted file types; ``extensions`` wins when both are
    given. ``directory`` defaults to ``<media.root>/<name>``.
    """
    name:       str
    field_name: str
    policy:     Optional[str]       = "image"
    extensions: Optional[List[str]] = None
    directory:  Optional[str]       = None

    @field_validator("name")
    @classmethod
    def _name_is_path_segment(cls, value: str) -> str:
        if not _SEGMENT_RE.match(value):
            raise ValueError(
                f"namespace name {value!r} must be a lower-case path segment "
                "(letters, digits, '-' or '_')"
            )
        return value

    @field_validator("extensions")
    @classmethod
    def _normalize_extensions(cls, value: Optional[List[str]]) -> Optional[List[str]]:
        if value is None:
            return None
        cleaned = [ext.strip().lstrip(".").lower() for ext in value]
        cleaned = [ext for ext in cleaned if ext]
        if not cleaned:
            raise ValueError("extensions must not be empty")
        return cleaned

    @model_validator(mode="after")
    def _policy_is_known(self) -> "NamespaceSettings":
        if self.extensions is None:
            if self.policy not in POLICIES:
                raise ValueError(
                    f"unknown extension policy {self.policy!r} for namespace "
                    f"{self.name!r}; expected one of {sorted(POLICIES)}"
                )
        return self

    def allowed_extensions(self) -> frozenset:
        if self.extensions is not None:
            return frozenset(self.extensions)
        return frozenset(POLICIES[self.policy])


def _default_namespaces() -> List[NamespaceSettings]:
    return [
        NamespaceSettings(name="corsono", field_name="photos", policy="image"),
        NamespaceSettings(name="art", field_name="artwork", policy="media"),
    ]


class MediaSettings(BaseModel):
    root:                str  = "images"
    max_file_size_bytes: int  = Field(default=20 * 1024 * 1024, gt=0)
    max_files:           int  = Field(default=1000, gt=0)
    keep_stem:           bool = False
    namespaces: List[NamespaceSettings] = Field(default_factory=_default_namespaces)

    @model_validator(mode="after")
    def _namespaces_are_disjoint(self) -> "MediaSettings":
        seen_names = set()
        seen_dirs = set()
        for ns in self.namespaces:
            if ns.name in seen_names:
                raise ValueError(f"duplicate gallery namespace: {ns.name!r}")
            seen_names.add(ns.name)
            directory = os.path.normpath(self.directory_for(ns))
            if directory in seen_dirs:
                raise ValueError(
                    f"gallery namespace {ns.name!r} shares directory {directory!r} "
                    "with another namespace"
                )
            seen_dirs.add(directory)
        return self

    def directory_for(self, ns: NamespaceSettings) -> str:
        if ns.directory:
            return ns.directory
        return str(Path(self.root) / ns.name)


class AppConfig(BaseModel):
    server:  ServerSettings  = Field(default_factory=ServerSettings)
    logging: LoggingSettings = Field(default_factory=LoggingSettings)
    media:   MediaSettings   = Field(default_factory=MediaSettings)


# ---------------------------------------------------------------------------
# Path resolution
# ---------------------------------------------------------------------------


def _resolve_media_paths(config: AppConfig, base_dir: Path) -> AppConfig:
    """Anchor relative media paths to the directory holding the settings file."""
    media = config.media

    def _anchor(value: str) -> str:
        path = Path(value).expanduser()
        if path.is_absolute():
            return str(path)
        return str(base_dir / path)

    data = media.model_dump()
    data["root"] = _anchor(media.root)
    for ns in data["namespaces"]:
        if ns["directory"]:
            ns["directory"] = _anchor(ns["directory"])
    # The shared-directory check runs again on the anchored paths.
    resolved = MediaSettings.model_validate(data)
    return config.model_copy(update={"media": resolved})


# ---------------------------------------------------------------------------
# Public loader
# ---------------------------------------------------------------------------


def load_config(settings_path: Optional[Path] = None) -> AppConfig:
    """Load *AppConfig* from YAML.

    Resolution order for the settings file: explicit ``settings_path``, the
    ``CORSONO_SETTINGS`` environment variable, then ``corsono.settings.yaml``
    in the working directory.
    """
    if settings_path is None:
        settings_path = Path(os.environ.get(SETTINGS_ENV_VAR, SETTINGS_FILE))
    settings_path = Path(settings_path)

    data = _load_yaml(settings_path)
    config = AppConfig(**data)
    config = _resolve_media_paths(config, settings_path.resolve().parent)

    logger.info(
        "Settings loaded (server=%s:%s, media.root=%s, namespaces=%s)",
        config.server.host,
        config.server.port,
        config.media.root,
        [ns.name for ns in config.media.namespaces],
    )
    return config


_config: Optional[AppConfig] = None


def get_config() -> AppConfig:
    """Return the process-wide configuration, loading it on first use."""
    global _config
    if _config is None:
        _config = load_config()
    return _config


def set_config(config: Optional[AppConfig]) -> None:
    """Set (or clear) the process-wide configuration."""
    global _config
    _config = config
