"""Publish stages.

Per project:
  1. generateManifests - write manifests built from the declarations
  2. validateManifests - check generated and discovered manifests
  3. verifyDependencies - apply the dependency allow-list
  4. collectSubmissionSources - copy source roots into the staging tree

Root project only:
  5. clean - wipe the staging area so the archive never holds stale files
  6. buildSubmission - create the distribution .tar.gz
  7. submitForReview - submit the archive for review
"""
from __future__ import annotations

import logging
import shutil
import tarfile
from pathlib import Path
from typing import Dict, Iterable, List, Optional, TYPE_CHECKING

from runemate_publish.constants import SUBMISSION_KEY_ENV
from runemate_publish.dependencies import check_dependencies
from runemate_publish.errors import ConfigurationError, PipelineIOError
from runemate_publish.manifests.codec import codec_for
from runemate_publish.manifests.discovery import ManifestDiscovery
from runemate_publish.manifests.rules import check_duplicate_ids, validate_manifest
from runemate_publish.manifests.schema import BotManifest
from runemate_publish.pipeline.registry import Stage
from runemate_publish.utils import manifest_file_name, manifest_slug

if TYPE_CHECKING:
    from runemate_publish.project import PublishProject
    from runemate_publish.services.submission import SubmissionClient, SubmissionResult

logger = logging.getLogger(__name__)

TASK_GENERATE_MANIFESTS = "generateManifests"
TASK_VALIDATE_MANIFESTS = "validateManifests"
TASK_VERIFY_DEPENDENCIES = "verifyDependencies"
TASK_COLLECT_SOURCES = "collectSubmissionSources"
TASK_CLEAN = "clean"
TASK_BUILD_SUBMISSION = "buildSubmission"
TASK_SUBMIT = "submitForReview"


class GeneratedManifests:
    """The generated-manifest directory shared by every generate stage of one run.

    The first stage to write clears manifests left by earlier runs. File
    names are claimed per project; two projects producing the same file
    would overwrite each other, so that is an error.
    """

    def __init__(self, directory: Path):
        self.directory = directory
        self.owners: Dict[str, str] = {}
        self._prepared = False

    def prepare(self) -> None:
        if self._prepared:
            return
        if self.directory.is_dir():
            for stale in sorted(self.directory.glob("*.manifest.*")):
                stale.unlink()
                logger.debug(f"Removed stale manifest {stale}")
        self._prepared = True

    def claim(self, file_name: str, owner: str) -> None:
        previous = self.owners.get(file_name)
        if previous is not None and previous != owner:
            raise ConfigurationError(
                f"Projects {previous} and {owner} both generate {file_name}, "
                f"rename one of the manifests"
            )
        self.owners[file_name] = owner


class GenerateManifests(Stage):
    task_name = TASK_GENERATE_MANIFESTS
    description = "Writes manifests for every declaration marked for publishing"

    def __init__(
        self,
        project: PublishProject,
        depends_on: Iterable[str] = (),
        outputs: Optional[GeneratedManifests] = None,
    ):
        super().__init__(project, depends_on)
        self.outputs = outputs or GeneratedManifests(project.manifest_dir)
        self.written: List[Path] = []

    def run(self) -> None:
        fmt = self.project.root_project.settings.manifest_format
        codec = codec_for(fmt)

        manifests: Dict[str, BotManifest] = {}
        for declaration in self.project.declarations.publishable():
            manifest = validate_manifest(declaration.build(), f"generate {declaration.name}")
            slug = manifest_slug(manifest.name)
            if slug in manifests:
                logger.warning(f"Manifest '{declaration.name}' replaces another with slug '{slug}'")
            manifests[slug] = manifest

        files = {slug: manifest_file_name(m.name, fmt.suffix) for slug, m in manifests.items()}
        for file_name in files.values():
            self.outputs.claim(file_name, self.project.path)
        self.outputs.prepare()

        if not manifests:
            logger.debug(f"No manifests to generate in {self.project.path}")
            return

        directory = self.outputs.directory
        for slug, manifest in manifests.items():
            file = directory / files[slug]
            try:
                directory.mkdir(parents=True, exist_ok=True)
                file.write_bytes(codec.encode(manifest))
                self.written.append(file)
                logger.debug(f"Writing manifest {file}")
            except OSError as e:
                logger.warning(f"Failed to write manifest '{slug}': {e}")

        logger.info(
            f"Generated {len(self.written)} manifest(s): {[f.name for f in self.written]}"
        )


class ValidateManifests(Stage):
    """Validates generated manifests plus those found in the project's source roots.

    The duplicate-id check covers the manifests generated for the whole build
    (every generate stage runs first) and the files discovered in this
    project's own source roots.
    """

    task_name = TASK_VALIDATE_MANIFESTS
    description = "Scans project source for manifests and validates them"

    def __init__(self, project: PublishProject, depends_on: Iterable[str] = ()):
        super().__init__(project, depends_on)
        self.validated: Dict[str, BotManifest] = {}

    def run(self) -> None:
        discovery = ManifestDiscovery(self.project.root_dir)

        # Generated manifests came from declarations, so a bad value there is fatal
        manifests = discovery.discover_all([self.project.manifest_dir], strict=True)
        manifests.update(discovery.discover_all(self.project.source_roots))

        for source, manifest in manifests.items():
            validate_manifest(manifest, source)
        logger.debug(f"Validated contents of {len(manifests)} manifest(s)")

        check_duplicate_ids(manifests)
        self.validated = manifests
        logger.info(f"{len(manifests)} manifest(s) valid in {self.project.path}")


class VerifyDependencies(Stage):
    task_name = TASK_VERIFY_DEPENDENCIES
    description = "Checks resolved dependencies against the allow-list"

    def __init__(self, project: PublishProject, depends_on: Iterable[str] = ()):
        super().__init__(project, depends_on)
        self.disallowed: List[str] = []

    def run(self) -> None:
        settings = self.project.root_project.settings
        self.disallowed = check_dependencies(
            self.project.dependencies, fail_on_external=settings.fail_on_external
        )


class CollectSources(Stage):
    task_name = TASK_COLLECT_SOURCES
    description = "Copies source and resource roots into the staging tree"

    def run(self) -> None:
        target = self.project.sources_dir
        target.mkdir(parents=True, exist_ok=True)

        for root in self.project.source_roots:
            if not root.is_dir():
                logger.debug(f"Source root does not exist: {root}")
                continue
            try:
                target.resolve().relative_to(root.resolve())
            except ValueError:
                pass
            else:
                raise ConfigurationError(f"Source root {root} contains the staging directory {target}")

            try:
                shutil.copytree(root, target, dirs_exist_ok=True)
            except OSError as e:
                raise PipelineIOError(f"Failed to copy {root} into {target}: {e}") from e
            logger.debug(f"Collected {root}")


class CleanStaging(Stage):
    task_name = TASK_CLEAN
    description = "Deletes the RuneMate build directory"

    def run(self) -> None:
        directory = self.project.runemate_dir
        if not directory.exists():
            return
        try:
            shutil.rmtree(directory)
        except OSError as e:
            raise PipelineIOError(f"Failed to delete {directory}: {e}") from e
        logger.info(f"Deleted {directory}")


class BuildArchive(Stage):
    task_name = TASK_BUILD_SUBMISSION
    description = "Packages the staging tree into runemate-publish.tar.gz"

    def run(self) -> None:
        source = self.project.sources_dir
        archive = self.project.archive_path

        try:
            archive.parent.mkdir(parents=True, exist_ok=True)
            with tarfile.open(archive, "w:gz") as tf:
                if source.is_dir():
                    for path in sorted(source.rglob("*")):
                        tf.add(path, arcname=path.relative_to(source).as_posix(), recursive=False)
        except (OSError, tarfile.TarError) as e:
            archive.unlink(missing_ok=True)
            raise PipelineIOError(f"Failed to build submission archive: {e}") from e

        logger.info(f"Built {archive} ({archive.stat().st_size} bytes)")


class SubmitForReview(Stage):
    task_name = TASK_SUBMIT
    description = "Submits all source code to the store"

    def __init__(
        self,
        project: PublishProject,
        client: SubmissionClient,
        depends_on: Iterable[str] = (),
    ):
        super().__init__(project, depends_on)
        self.client = client
        self.result: Optional[SubmissionResult] = None

    def run(self) -> None:
        key = self.project.settings.submission_key
        if not key:
            raise ConfigurationError(
                f"No submission key configured, set submission_key or {SUBMISSION_KEY_ENV}"
            )

        logger.warning("Submission from the command line is an incubating feature")
        logger.info(f"Submitting project '{self.project.name}' for review")
        self.result = self.client.submit(self.project.archive_path, key)
        logger.info(
            "Submission successful - you will receive a forum message "
            "when your submission has been reviewed."
        )
