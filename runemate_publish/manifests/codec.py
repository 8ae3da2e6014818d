"""Manifest codec - reads and writes manifests as YAML or JSON."""

import json
import logging
from enum import Enum
from pathlib import Path
from typing import Any, Dict, Tuple, Type

import yaml
from pydantic import ValidationError

from runemate_publish.constants import ENTRY_POINT_KEY
from runemate_publish.errors import (
    MalformedManifestError,
    NotAManifestError,
    UnsupportedFormatError,
)
from runemate_publish.manifests.schema import BotManifest

logger = logging.getLogger(__name__)


class ManifestFormat(str, Enum):
    """On-disk manifest encodings, selected by file extension."""

    YAML = "yaml"
    JSON = "json"

    @property
    def extensions(self) -> Tuple[str, ...]:
        return _EXTENSIONS[self]

    @property
    def suffix(self) -> str:
        """Extension used when writing a manifest in this format."""
        return self.extensions[0]

    @classmethod
    def of(cls, path: Path) -> "ManifestFormat":
        extension = Path(path).suffix.lstrip(".").lower()
        for fmt in cls:
            if extension in fmt.extensions:
                return fmt
        raise UnsupportedFormatError(f"No manifest format for extension '.{extension}' ({path})")

    @classmethod
    def matches(cls, path: Path) -> bool:
        extension = Path(path).suffix.lstrip(".").lower()
        return any(extension in fmt.extensions for fmt in cls)


_EXTENSIONS: Dict[ManifestFormat, Tuple[str, ...]] = {
    ManifestFormat.YAML: ("yaml", "yml"),
    ManifestFormat.JSON: ("json",),
}


def _describe(error: Dict[str, Any]) -> str:
    location = ".".join(str(part) for part in error.get("loc", ())) or "<root>"
    return f"{location}={error.get('input')!r}: {error.get('msg')}"


class ManifestCodec:
    """Base codec: turns raw bytes into a BotManifest and back.

    Subclasses only implement the textual layer (``_load`` / ``_dump``).
    Codecs hold no state and can be shared freely.
    """

    format: ManifestFormat

    def decode(self, data: bytes) -> BotManifest:
        """Decode ``data`` into a manifest.

        Raises:
            NotAManifestError: data is not in this format, is not a mapping,
                or lacks a required field
            MalformedManifestError: a field holds a value of the wrong type
        """
        try:
            raw = self._load(data)
        except (ValueError, yaml.YAMLError) as e:
            raise NotAManifestError(f"Not parseable as {self.format.value}: {e}")

        if not isinstance(raw, dict):
            raise NotAManifestError(f"Top level is {type(raw).__name__}, expected a mapping")

        try:
            return BotManifest.model_validate(raw)
        except ValidationError as e:
            errors = e.errors()
            missing = [err for err in errors if err.get("type") == "missing"]
            if missing:
                fields = ", ".join(".".join(str(p) for p in err["loc"]) for err in missing)
                raise NotAManifestError(f"Missing required field(s): {fields}")
            raise MalformedManifestError(
                "Invalid value " + "; ".join(_describe(err) for err in errors)
            )

    def encode(self, manifest: BotManifest) -> bytes:
        payload = manifest.model_dump(mode="json", by_alias=True, exclude_none=True)
        return self._dump(payload)

    def _load(self, data: bytes) -> Any:
        raise NotImplementedError

    def _dump(self, payload: Dict[str, Any]) -> bytes:
        raise NotImplementedError


class YamlManifestCodec(ManifestCodec):
    format = ManifestFormat.YAML

    def _load(self, data: bytes) -> Any:
        return yaml.safe_load(data)

    def _dump(self, payload: Dict[str, Any]) -> bytes:
        return yaml.safe_dump(payload, sort_keys=False, allow_unicode=True).encode("utf-8")


class JsonManifestCodec(ManifestCodec):
    format = ManifestFormat.JSON

    def _load(self, data: bytes) -> Any:
        return json.loads(data)

    def _dump(self, payload: Dict[str, Any]) -> bytes:
        return json.dumps(payload, indent=2, ensure_ascii=False).encode("utf-8")


CODECS: Dict[ManifestFormat, Type[ManifestCodec]] = {
    ManifestFormat.YAML: YamlManifestCodec,
    ManifestFormat.JSON: JsonManifestCodec,
}


def codec_for(fmt: ManifestFormat) -> ManifestCodec:
    return CODECS[fmt]()


def is_candidate(path: Path) -> bool:
    """Cheap pre-filter: known extension and the entry-point key appears in the file."""
    path = Path(path)
    if not ManifestFormat.matches(path):
        return False
    try:
        return ENTRY_POINT_KEY.encode("utf-8") in path.read_bytes()
    except OSError as e:
        logger.debug(f"Could not read {path}: {e}")
        return False


def read_manifest(path: Path) -> BotManifest:
    """Decode the manifest stored at ``path``, picking the codec by extension."""
    path = Path(path)
    codec = codec_for(ManifestFormat.of(path))
    try:
        return codec.decode(path.read_bytes())
    except NotAManifestError as e:
        raise NotAManifestError(str(e), source=str(path)) from e
    except MalformedManifestError as e:
        raise MalformedManifestError(str(e), source=str(path)) from e
