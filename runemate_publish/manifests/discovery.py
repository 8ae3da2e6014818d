"""Manifest discovery - scans directories for manifest files."""

import logging
from pathlib import Path
from typing import Dict, Iterable, Optional

from runemate_publish.errors import MalformedManifestError, NotAManifestError
from runemate_publish.manifests.codec import is_candidate, read_manifest
from runemate_publish.manifests.schema import BotManifest

logger = logging.getLogger(__name__)


class ManifestDiscovery:
    """Finds manifest files under a set of directories.

    Every file is run through the cheap candidate filter first; only
    candidates are decoded. Results are keyed by a source label of the form
    ``file <path relative to root_dir>``.
    """

    def __init__(self, root_dir: Path):
        """Initialize discovery.

        Args:
            root_dir: Directory that source labels are made relative to
        """
        self.root_dir = root_dir

    def discover_all(
        self, search_paths: Iterable[Path], strict: bool = False
    ) -> Dict[str, BotManifest]:
        """Discover manifests under every search path.

        Args:
            search_paths: Directories to scan recursively, in order
            strict: Re-raise MalformedManifestError instead of skipping the file

        Returns:
            Source label -> decoded (not yet validated) manifest
        """
        discovered: Dict[str, BotManifest] = {}

        for search_path in search_paths:
            if not search_path.is_dir():
                logger.debug(f"Manifest search path does not exist: {search_path}")
                continue

            for file in sorted(p for p in search_path.rglob("*") if p.is_file()):
                if not is_candidate(file):
                    continue
                manifest = self._load_manifest(file, strict)
                if manifest is not None:
                    discovered[self.label(file)] = manifest

        logger.debug(f"Discovered {len(discovered)} manifest(s)")
        return discovered

    def label(self, file: Path) -> str:
        try:
            relative = file.resolve().relative_to(self.root_dir.resolve())
        except ValueError:
            relative = file
        return f"file {relative.as_posix()}"

    def _load_manifest(self, file: Path, strict: bool) -> Optional[BotManifest]:
        """Decode one candidate file.

        Returns:
            The manifest, or None if the file was skipped
        """
        try:
            manifest = read_manifest(file)
            logger.debug(f"Discovered manifest '{manifest.internal_id}' at {file}")
            return manifest
        except NotAManifestError as e:
            logger.info(f"{file} was not parseable as a manifest: {e}")
        except MalformedManifestError as e:
            if strict:
                raise
            logger.error(f"Invalid value in {file}: {e}")
        return None
