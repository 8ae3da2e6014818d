"""Project model - the inputs a publish run works on."""
from __future__ import annotations

from dataclasses import dataclass, field
from pathlib import Path
from typing import Iterator, List, Optional

from runemate_publish import constants
from runemate_publish.manifests.codec import ManifestFormat
from runemate_publish.manifests.declaration import ManifestDeclarations


@dataclass
class PublishSettings:
    """Settings that apply to the whole build. Only the root project's are used."""

    submission_key: Optional[str] = None
    allow_external_dependencies: bool = False
    manifest_format: ManifestFormat = ManifestFormat.JSON

    @property
    def fail_on_external(self) -> bool:
        return not self.allow_external_dependencies


@dataclass
class PublishProject:
    """One project in the build, possibly with sub-projects."""

    name: str
    project_dir: Path
    source_roots: List[Path] = field(default_factory=list)
    declarations: ManifestDeclarations = field(default_factory=ManifestDeclarations)
    dependencies: List[str] = field(default_factory=list)
    settings: PublishSettings = field(default_factory=PublishSettings)
    parent: Optional[PublishProject] = field(default=None, repr=False)
    subprojects: List[PublishProject] = field(default_factory=list, repr=False)

    def add_subproject(self, child: PublishProject) -> PublishProject:
        child.parent = self
        self.subprojects.append(child)
        return child

    @property
    def root_project(self) -> PublishProject:
        project = self
        while project.parent is not None:
            project = project.parent
        return project

    @property
    def is_root(self) -> bool:
        return self.parent is None

    @property
    def path(self) -> str:
        """Project path: ``:`` for the root, ``:parent:child`` below it."""
        if self.parent is None:
            return ":"
        parent_path = self.parent.path
        return f"{parent_path}{self.name}" if parent_path == ":" else f"{parent_path}:{self.name}"

    def task_path(self, task_name: str) -> str:
        return f":{task_name}" if self.is_root else f"{self.path}:{task_name}"

    def all_projects(self) -> Iterator[PublishProject]:
        """This project followed by every descendant, depth first."""
        yield self
        for child in self.subprojects:
            yield from child.all_projects()

    # Build layout, always under the root project directory

    @property
    def root_dir(self) -> Path:
        return self.root_project.project_dir

    @property
    def sources_dir(self) -> Path:
        return constants.sources_dir(self.root_dir)

    @property
    def manifest_dir(self) -> Path:
        return constants.manifest_dir(self.root_dir)

    @property
    def runemate_dir(self) -> Path:
        return constants.runemate_dir(self.root_dir)

    @property
    def archive_path(self) -> Path:
        return constants.archive_path(self.root_dir)
