"""Publish pipeline - top-level orchestrator for the publish stages."""

import logging
from typing import List, Optional, Set

from runemate_publish.errors import ConfigurationError
from runemate_publish.pipeline.lifecycle import StageLifecycle
from runemate_publish.pipeline.registry import Stage, StageRegistry
from runemate_publish.pipeline.stages import (
    BuildArchive,
    CleanStaging,
    CollectSources,
    GeneratedManifests,
    GenerateManifests,
    SubmitForReview,
    ValidateManifests,
    VerifyDependencies,
)
from runemate_publish.project import PublishProject
from runemate_publish.services.submission import SubmissionClient

logger = logging.getLogger(__name__)


class PublishPipeline:
    """Assembles and runs the publish stages for a project tree.

    Every project contributes generate / validate / verify / collect stages.
    The clean, archive and submit stages exist once, on the root project, and
    depend on every project's collect stage.
    """

    def __init__(
        self,
        project: PublishProject,
        submission_client: Optional[SubmissionClient] = None,
    ):
        self.root_project = project.root_project
        self.submission_client = submission_client or SubmissionClient()
        self.registry = StageRegistry()
        self.lifecycle = StageLifecycle()
        self.generated = GeneratedManifests(self.root_project.manifest_dir)
        self._assembled = False

    def assemble(self) -> "PublishPipeline":
        """Register every stage. Runs once; later calls are no-ops."""
        if self._assembled:
            return self

        projects = list(self.root_project.all_projects())
        generate = [
            self.registry.register(GenerateManifests(project, outputs=self.generated)).path
            for project in projects
        ]
        for project in projects:
            self._register_project_stages(project, generate)
        self._register_root_stages()

        self._assembled = True
        logger.debug(f"Pipeline assembled with {self.registry.count()} stage(s)")
        return self

    def plan(self, *targets: str) -> List[Stage]:
        """Return the stages ``targets`` need, dependencies first, without duplicates.

        Args:
            targets: Stage paths (``:woodcutter:validateManifests``) or task
                names (``validateManifests`` selects it in every project)
        """
        self.assemble()

        ordered: List[Stage] = []
        seen: Set[str] = set()

        def visit(stage: Stage, trail: List[str]) -> None:
            if stage.path in seen:
                return
            if stage.path in trail:
                raise ConfigurationError(f"Stage cycle: {' -> '.join(trail + [stage.path])}")
            for dependency in stage.depends_on:
                upstream = self.registry.get(dependency)
                if upstream is None:
                    raise ConfigurationError(f"{stage.path} depends on unknown stage {dependency}")
                visit(upstream, trail + [stage.path])
            seen.add(stage.path)
            ordered.append(stage)

        for target in targets:
            selected = self.registry.select(target)
            if not selected:
                raise ConfigurationError(f"Unknown stage '{target}'")
            for stage in selected:
                visit(stage, [])

        # clean always goes first, otherwise it would wipe outputs of stages planned before it
        cleaning = [s for s in ordered if isinstance(s, CleanStaging)]
        return cleaning + [s for s in ordered if not isinstance(s, CleanStaging)]

    def run(self, *targets: str) -> List[Stage]:
        """Run ``targets`` and everything they depend on.

        Stops at the first failing stage and re-raises its error.

        Returns:
            The stages that were run, in order
        """
        stages = self.plan(*targets)
        logger.info(f"Running {len(stages)} stage(s): {[s.path for s in stages]}")
        for stage in stages:
            self.lifecycle.execute(stage)
        return stages

    def _register_project_stages(self, project: PublishProject, generate: List[str]) -> None:
        # Every validate sees the complete generated set, whatever order projects run in
        validate = self.registry.register(
            ValidateManifests(project, depends_on=generate)
        )
        verify = self.registry.register(VerifyDependencies(project))
        self.registry.register(
            CollectSources(project, depends_on=[validate.path, verify.path])
        )

    def _register_root_stages(self) -> None:
        root = self.root_project
        clean = self.registry.register(CleanStaging(root))
        collect = [s.path for s in self.registry.get_all() if isinstance(s, CollectSources)]

        # Clean first so the archive is always rebuilt from freshly collected sources
        bundle = self.registry.register(BuildArchive(root, depends_on=[clean.path, *collect]))
        self.registry.register(
            SubmitForReview(root, self.submission_client, depends_on=[bundle.path])
        )
