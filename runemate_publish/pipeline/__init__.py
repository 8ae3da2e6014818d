"""Publish pipeline: stage registry, lifecycle, stages and orchestrator."""

from runemate_publish.pipeline.lifecycle import StageLifecycle
from runemate_publish.pipeline.manager import PublishPipeline
from runemate_publish.pipeline.registry import Stage, StageRegistry, StageState
from runemate_publish.pipeline.stages import (
    TASK_BUILD_SUBMISSION,
    TASK_CLEAN,
    TASK_COLLECT_SOURCES,
    TASK_GENERATE_MANIFESTS,
    TASK_SUBMIT,
    TASK_VALIDATE_MANIFESTS,
    TASK_VERIFY_DEPENDENCIES,
)

__all__ = [
    "PublishPipeline",
    "Stage",
    "StageLifecycle",
    "StageRegistry",
    "StageState",
    "TASK_BUILD_SUBMISSION",
    "TASK_CLEAN",
    "TASK_COLLECT_SOURCES",
    "TASK_GENERATE_MANIFESTS",
    "TASK_SUBMIT",
    "TASK_VALIDATE_MANIFESTS",
    "TASK_VERIFY_DEPENDENCIES",
]
