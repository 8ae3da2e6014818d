"""Tests for the publish pipeline."""

import json
import tarfile
from unittest.mock import MagicMock

import pytest

from runemate_publish.errors import (
    ConfigurationError,
    DuplicateIdentityError,
    ExternalDependencyError,
    ManifestValidationError,
    PipelineIOError,
)
from runemate_publish.manifests.codec import ManifestFormat
from runemate_publish.manifests.schema import Access
from runemate_publish.pipeline import (
    TASK_BUILD_SUBMISSION,
    TASK_CLEAN,
    TASK_COLLECT_SOURCES,
    TASK_GENERATE_MANIFESTS,
    TASK_SUBMIT,
    TASK_VALIDATE_MANIFESTS,
    TASK_VERIFY_DEPENDENCIES,
    PublishPipeline,
    Stage,
    StageLifecycle,
    StageRegistry,
    StageState,
)
from runemate_publish.pipeline.stages import GenerateManifests
from runemate_publish.project import PublishProject
from runemate_publish.services.submission import SubmissionResult

from conftest import WOODCUTTER


def project_archive_exists(project: PublishProject) -> bool:
    return project.archive_path.is_file()


def declare_woodcutter(project: PublishProject, name: str = "Woodcutter"):
    decl = project.declarations.create(name)
    decl.main_class = "bots/Woodcutter"
    decl.tagline = "Simple woodcutting bot"
    decl.description = "Chops trees"
    decl.version = "1.0.0"
    return decl


@pytest.fixture
def project(tmp_path):
    src = tmp_path / "src"
    (src / "bots").mkdir(parents=True)
    (src / "bots" / "Woodcutter.java").write_text("class Woodcutter {}\n")
    root = PublishProject(name="bots", project_dir=tmp_path, source_roots=[src])
    declare_woodcutter(root)
    return root


class TestPipelineAssembly:
    """Tests for stage registration and planning."""

    def test_stage_paths(self, project):
        """Per-project stages plus the root-only stages are registered once."""
        child = project.add_subproject(PublishProject(name="fisher", project_dir=project.project_dir / "fisher"))
        pipeline = PublishPipeline(project, submission_client=MagicMock()).assemble()
        pipeline.assemble()

        paths = {s.path for s in pipeline.registry.get_all()}
        assert ":generateManifests" in paths
        assert ":fisher:collectSubmissionSources" in paths
        assert ":fisher:buildSubmission" not in paths
        assert pipeline.registry.count() == 11
        assert child.task_path(TASK_VALIDATE_MANIFESTS) == ":fisher:validateManifests"

    def test_register_is_idempotent(self, project):
        """Registering a taken path keeps the existing stage."""
        registry = StageRegistry()
        first = registry.register(GenerateManifests(project))
        second = registry.register(GenerateManifests(project))

        assert second is first
        assert registry.count() == 1

    def test_plan_orders_dependencies(self, project):
        """Clean runs first and every stage follows its dependencies."""
        pipeline = PublishPipeline(project, submission_client=MagicMock())
        plan = [s.task_name for s in pipeline.plan(TASK_SUBMIT)]

        assert plan[0] == TASK_CLEAN
        assert plan[-1] == TASK_SUBMIT
        assert plan.index(TASK_GENERATE_MANIFESTS) < plan.index(TASK_VALIDATE_MANIFESTS)
        assert plan.index(TASK_VERIFY_DEPENDENCIES) < plan.index(TASK_COLLECT_SOURCES)
        assert plan.index(TASK_COLLECT_SOURCES) < plan.index(TASK_BUILD_SUBMISSION)
        assert len(plan) == len(set(plan))

    def test_plan_selects_task_in_every_project(self, project):
        """A bare task name selects that task in every project."""
        project.add_subproject(PublishProject(name="fisher", project_dir=project.project_dir / "fisher"))
        pipeline = PublishPipeline(project, submission_client=MagicMock())

        paths = [s.path for s in pipeline.plan(TASK_GENERATE_MANIFESTS)]
        assert paths == [":generateManifests", ":fisher:generateManifests"]

    def test_validate_waits_for_every_generate(self, project):
        """Each project's validate stage depends on the generate stage of every project."""
        project.add_subproject(PublishProject(name="fisher", project_dir=project.project_dir / "fisher"))
        pipeline = PublishPipeline(project, submission_client=MagicMock()).assemble()

        assert pipeline.registry.get(":validateManifests").depends_on == [
            ":generateManifests",
            ":fisher:generateManifests",
        ]

    def test_unknown_target(self, project):
        """Unknown stages are configuration errors."""
        with pytest.raises(ConfigurationError):
            PublishPipeline(project, submission_client=MagicMock()).plan("deploy")


class TestPublishStages:
    """Tests for running the stages against a real directory."""

    def test_generate_writes_json_manifest(self, project):
        """Generated manifests are written to the staging manifest directory."""
        PublishPipeline(project, submission_client=MagicMock()).run(TASK_GENERATE_MANIFESTS)

        file = project.manifest_dir / "woodcutter.manifest.json"
        data = json.loads(file.read_text())
        assert data["internalId"] == "Woodcutter"
        assert data["mainClass"] == "bots/Woodcutter"

    def test_generate_respects_format_and_publish_flag(self, project):
        """YAML output is used when configured and unpublished declarations are skipped."""
        project.settings.manifest_format = ManifestFormat.YAML
        declare_woodcutter(project, "Draft").publish = False

        PublishPipeline(project, submission_client=MagicMock()).run(TASK_GENERATE_MANIFESTS)

        assert [p.name for p in project.manifest_dir.iterdir()] == ["woodcutter.manifest.yaml"]

    def test_generate_rejects_invalid_declaration(self, project):
        """Declarations are validated before they are written."""
        decl = project.declarations.get("Woodcutter")
        with decl.pricing() as pricing:
            pricing.price = 5.00
        decl.access = Access.SUPPORTER
        pipeline = PublishPipeline(project, submission_client=MagicMock())

        with pytest.raises(ManifestValidationError) as exc_info:
            pipeline.run(TASK_GENERATE_MANIFESTS)

        assert exc_info.value.source == "generate Woodcutter"
        assert pipeline.registry.get(":generateManifests").state == StageState.FAILED
        assert not project.manifest_dir.exists()

    def test_validate_finds_duplicate_across_sources(self, project):
        """A declared manifest and a file manifest with the same id collide."""
        (project.source_roots[0] / "woodcutter.manifest.json").write_text(json.dumps(WOODCUTTER))
        pipeline = PublishPipeline(project, submission_client=MagicMock())

        with pytest.raises(DuplicateIdentityError) as exc_info:
            pipeline.run(TASK_VALIDATE_MANIFESTS)

        assert exc_info.value.internal_id == "Woodcutter"
        assert "file src/woodcutter.manifest.json" in exc_info.value.sources

    def test_renamed_declaration_replaces_old_manifest(self, project):
        """Manifests generated by an earlier run are removed before writing."""
        PublishPipeline(project, submission_client=MagicMock()).run(TASK_VALIDATE_MANIFESTS)

        renamed = PublishProject(name="bots", project_dir=project.project_dir, source_roots=project.source_roots)
        declare_woodcutter(renamed, "Oak Woodcutter")
        pipeline = PublishPipeline(renamed, submission_client=MagicMock())
        pipeline.run(TASK_VALIDATE_MANIFESTS)

        assert [p.name for p in renamed.manifest_dir.iterdir()] == ["oak-woodcutter.manifest.json"]
        assert list(pipeline.registry.get(":validateManifests").validated.values())[0].name == "Oak Woodcutter"

    def test_same_file_from_two_projects(self, tmp_path):
        """Two sub-projects generating the same file name is a configuration error."""
        root = PublishProject(name="bots", project_dir=tmp_path)
        first = root.add_subproject(PublishProject(name="a", project_dir=tmp_path / "a"))
        second = root.add_subproject(PublishProject(name="b", project_dir=tmp_path / "b"))
        declare_woodcutter(first)
        declare_woodcutter(second).main_class = "bots/OtherCutter"

        with pytest.raises(ConfigurationError) as exc_info:
            PublishPipeline(root, submission_client=MagicMock()).run(TASK_BUILD_SUBMISSION)

        assert ":a" in str(exc_info.value)
        assert ":b" in str(exc_info.value)
        assert not project_archive_exists(root)

    def test_root_validate_sees_subproject_manifests(self, project):
        """Duplicates between a sub-project declaration and a root file are found by the root."""
        (project.source_roots[0] / "woodcutter.manifest.json").write_text(json.dumps(WOODCUTTER))
        root = PublishProject(name="bots", project_dir=project.project_dir, source_roots=project.source_roots)
        declare_woodcutter(root.add_subproject(
            PublishProject(name="a", project_dir=project.project_dir / "a", source_roots=[])
        ))

        with pytest.raises(DuplicateIdentityError) as exc_info:
            PublishPipeline(root, submission_client=MagicMock()).run(":validateManifests")

        assert "file src/woodcutter.manifest.json" in exc_info.value.sources

    def test_validate_collects_manifests(self, project):
        """Validated manifests are recorded on the stage."""
        fisher = dict(WOODCUTTER, mainClass="bots/Fisher", name="Fisher")
        (project.source_roots[0] / "fisher.manifest.json").write_text(json.dumps(fisher))
        pipeline = PublishPipeline(project, submission_client=MagicMock())
        pipeline.run(TASK_VALIDATE_MANIFESTS)

        validated = pipeline.registry.get(":validateManifests").validated
        assert sorted(m.internal_id for m in validated.values()) == ["Fisher", "Woodcutter"]

    def test_verify_dependencies_both_polarities(self, project):
        """External dependencies fail by default and only warn when allowed."""
        project.dependencies = ["com.google.guava:guava:32.1.2-jre"]
        with pytest.raises(ExternalDependencyError):
            PublishPipeline(project, submission_client=MagicMock()).run(TASK_VERIFY_DEPENDENCIES)

        project.settings.allow_external_dependencies = True
        pipeline = PublishPipeline(project, submission_client=MagicMock())
        pipeline.run(TASK_VERIFY_DEPENDENCIES)
        assert pipeline.registry.get(":verifyDependencies").disallowed == ["com.google.guava:guava"]

    def test_build_submission_archive(self, project):
        """The archive holds the collected sources and generated manifests."""
        stale = project.sources_dir / "stale.txt"
        stale.parent.mkdir(parents=True)
        stale.write_text("old")

        PublishPipeline(project, submission_client=MagicMock()).run(TASK_BUILD_SUBMISSION)

        with tarfile.open(project.archive_path, "r:gz") as tf:
            names = tf.getnames()
        assert "bots/Woodcutter.java" in names
        assert ".runemate/woodcutter.manifest.json" in names
        assert "stale.txt" not in names

    def test_collect_rejects_root_containing_staging(self, project):
        """A source root that contains the build directory would copy into itself."""
        project.source_roots = [project.project_dir]
        with pytest.raises(ConfigurationError):
            PublishPipeline(project, submission_client=MagicMock()).run(TASK_COLLECT_SOURCES)


class TestSubmitStage:
    """Tests for submitForReview."""

    def test_submit(self, project):
        """The archive is handed to the client with the configured key."""
        project.settings.submission_key = "secret"
        client = MagicMock()
        client.submit.return_value = SubmissionResult(status=200)
        pipeline = PublishPipeline(project, submission_client=client)

        pipeline.run(TASK_SUBMIT)

        client.submit.assert_called_once_with(project.archive_path, "secret")
        assert pipeline.registry.get(":submitForReview").result.accepted

    def test_submit_without_key(self, project):
        """Submitting without a key fails before contacting the service."""
        client = MagicMock()
        with pytest.raises(ConfigurationError):
            PublishPipeline(project, submission_client=client).run(TASK_SUBMIT)
        client.submit.assert_not_called()


class _Flaky(Stage):
    task_name = "flaky"

    def __init__(self, project, error=None):
        super().__init__(project)
        self.error_to_raise = error
        self.calls = 0

    def run(self):
        self.calls += 1
        if self.error_to_raise is not None:
            raise self.error_to_raise


class TestStageLifecycle:
    """Tests for StageLifecycle.execute."""

    def test_success_runs_once(self, project):
        """A succeeded stage is not run again."""
        stage = _Flaky(project)
        lifecycle = StageLifecycle()
        lifecycle.execute(stage)
        lifecycle.execute(stage)

        assert stage.state == StageState.SUCCEEDED
        assert stage.calls == 1

    def test_os_error_is_wrapped(self, project):
        """Filesystem errors become PipelineIOError and mark the stage failed."""
        stage = _Flaky(project, PermissionError("denied"))

        with pytest.raises(PipelineIOError):
            StageLifecycle().execute(stage)

        assert stage.state == StageState.FAILED
        assert stage.to_dict()["error"] == "denied"
