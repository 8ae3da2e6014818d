"""Project configuration - loads runemate-publish.yaml into a PublishProject tree.

File format::

    name: my-bots
    source_roots: [src/main/java, src/main/resources]
    dependencies: ["org.json:json:20231013"]
    subprojects: [woodcutter, fisher]

    # root project only
    submission_key: null              # falls back to RUNEMATE_SUBMISSION_KEY
    allow_external_dependencies: false
    manifest_format: json             # json | yaml

    manifests:
      Magic Woodcutter:
        main_class: com/example/Woodcutter
        tagline: Cuts magic logs
        description: Cuts and banks magic logs anywhere
        version: 1.0.0
        categories: [woodcutting]
        pricing:
          price: 4.99
          trial: {allowance: PT2H, window: P7D}
        features: {optional: [direct_input]}
        resources: ["images/*.png"]
        tags: [woodcutting, money]
        obfuscation: ["com.example.api.*"]
"""

import logging
import os
from datetime import timedelta
from pathlib import Path
from typing import Any, Dict, List, Optional

import yaml
from pydantic import BaseModel, ConfigDict, Field, ValidationError
from pydantic.alias_generators import to_camel

from runemate_publish.constants import DEFAULT_SOURCE_ROOTS, PROJECT_FILE, SUBMISSION_KEY_ENV
from runemate_publish.errors import ConfigurationError
from runemate_publish.manifests.codec import ManifestFormat
from runemate_publish.manifests.declaration import ManifestDeclarations
from runemate_publish.manifests.schema import (
    AccessValue,
    CategoryValue,
    FeatureTypeValue,
    GameTypeValue,
)
from runemate_publish.project import PublishProject, PublishSettings

logger = logging.getLogger(__name__)


class _Entry(BaseModel):
    model_config = ConfigDict(
        extra="forbid",
        alias_generator=to_camel,
        populate_by_name=True,
        coerce_numbers_to_str=True,
    )


class TrialEntry(_Entry):
    allowance: timedelta = timedelta(0)
    window: timedelta = timedelta(0)


class PricingEntry(_Entry):
    price: float = 0.0
    trial: Optional[TrialEntry] = None


class FeaturesEntry(_Entry):
    required: List[FeatureTypeValue] = Field(default_factory=list)
    optional: List[FeatureTypeValue] = Field(default_factory=list)


class ManifestEntry(_Entry):
    """One entry under ``manifests:``. Unset required fields stay unset on the declaration."""

    publish: bool = True
    main_class: Optional[str] = None
    tagline: Optional[str] = None
    description: Optional[str] = None
    version: Optional[str] = None
    internal_id: Optional[str] = None
    compatibility: Optional[List[GameTypeValue]] = None
    categories: Optional[List[CategoryValue]] = None
    access: Optional[AccessValue] = None
    hidden: bool = False
    open_source: bool = False
    pricing: Optional[PricingEntry] = None
    features: Optional[FeaturesEntry] = None
    resources: List[str] = Field(default_factory=list)
    tags: List[str] = Field(default_factory=list)
    obfuscation: List[str] = Field(default_factory=list)


class ProjectFile(_Entry):
    name: Optional[str] = None
    source_roots: Optional[List[str]] = None
    dependencies: List[str] = Field(default_factory=list)
    subprojects: List[str] = Field(default_factory=list)
    submission_key: Optional[str] = None
    allow_external_dependencies: Optional[bool] = None
    manifest_format: Optional[str] = None
    manifests: Dict[str, ManifestEntry] = Field(default_factory=dict)


_ROOT_ONLY = ("submission_key", "allow_external_dependencies", "manifest_format")


def declare_manifests(declarations: ManifestDeclarations, manifests: Dict[str, ManifestEntry]) -> None:
    """Create one declaration per entry through the declaration builder."""
    for name, entry in manifests.items():
        declaration = declarations.create(name)
        declaration.publish = entry.publish

        for required in declaration.REQUIRED_FIELDS:
            value = getattr(entry, required)
            if value is not None:
                setattr(declaration, required, value)

        if entry.internal_id is not None:
            declaration.internal_id = entry.internal_id
        if entry.compatibility is not None:
            declaration.compatibility = set(entry.compatibility)
        if entry.categories is not None:
            declaration.categories = set(entry.categories)
        if entry.access is not None:
            declaration.access = entry.access
        declaration.hidden = entry.hidden
        declaration.open_source = entry.open_source
        declaration.tags = set(entry.tags)

        if entry.pricing is not None:
            with declaration.pricing() as pricing:
                pricing.price = entry.pricing.price
                if entry.pricing.trial is not None:
                    with pricing.trial() as trial:
                        trial.allowance = entry.pricing.trial.allowance
                        trial.window = entry.pricing.trial.window

        if entry.features is not None:
            with declaration.features() as features:
                for feature in entry.features.required:
                    features.required(feature)
                for feature in entry.features.optional:
                    features.optional(feature)

        with declaration.resources() as resources:
            for rule in entry.resources:
                resources.include(rule)

        with declaration.obfuscation() as obfuscation:
            for rule in entry.obfuscation:
                obfuscation.exclude(rule)


class ProjectLoader:
    """Loads a project directory (and its sub-projects) from project files."""

    def __init__(self, file_name: str = PROJECT_FILE):
        self.file_name = file_name

    def load(self, project_dir: Path) -> PublishProject:
        """Load the root project at ``project_dir``.

        Raises:
            ConfigurationError: missing or invalid project file
        """
        project = self._load_project(Path(project_dir).resolve(), parent=None)
        logger.info(
            f"Loaded project '{project.name}' with "
            f"{sum(1 for _ in project.all_projects())} project(s)"
        )
        return project

    def _read(self, project_dir: Path) -> ProjectFile:
        config_file = project_dir / self.file_name
        if not config_file.is_file():
            raise ConfigurationError(f"No {self.file_name} found at {project_dir}")
        try:
            with open(config_file, "r", encoding="utf-8") as f:
                raw: Any = yaml.safe_load(f) or {}
        except (yaml.YAMLError, OSError) as e:
            raise ConfigurationError(f"Error loading {config_file}: {e}") from e
        if not isinstance(raw, dict):
            raise ConfigurationError(f"{config_file} must contain a mapping")
        try:
            return ProjectFile.model_validate(raw)
        except ValidationError as e:
            raise ConfigurationError(f"Invalid project file {config_file}: {e}") from e

    def _load_project(self, project_dir: Path, parent: Optional[PublishProject]) -> PublishProject:
        data = self._read(project_dir)

        roots = data.source_roots if data.source_roots is not None else list(DEFAULT_SOURCE_ROOTS)
        project = PublishProject(
            name=data.name or project_dir.name,
            project_dir=project_dir,
            source_roots=[project_dir / root for root in roots],
            dependencies=list(data.dependencies),
        )

        if parent is None:
            project.settings = self._settings(data)
        else:
            parent.add_subproject(project)
            for key in _ROOT_ONLY:
                if getattr(data, key) is not None:
                    logger.warning(f"'{key}' is only read from the root project, ignoring it in {project.path}")

        declare_manifests(project.declarations, data.manifests)

        for child in data.subprojects:
            self._load_project((project_dir / child).resolve(), parent=project)

        return project

    def _settings(self, data: ProjectFile) -> PublishSettings:
        settings = PublishSettings(
            submission_key=data.submission_key or os.getenv(SUBMISSION_KEY_ENV) or None,
        )
        if data.allow_external_dependencies is not None:
            settings.allow_external_dependencies = data.allow_external_dependencies
        if data.manifest_format is not None:
            try:
                settings.manifest_format = ManifestFormat(data.manifest_format.lower())
            except ValueError:
                raise ConfigurationError(
                    f"Unknown manifest_format '{data.manifest_format}', expected json or yaml"
                )
        return settings
